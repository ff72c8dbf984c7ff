from django.contrib import admin

from . import tree
from .models import Menu, MenuItem


@admin.register(Menu)
class MenuAdmin(admin.ModelAdmin):
    list_display = ['name', 'slug', 'created_at']
    search_fields = ['name', 'slug']
    prepopulated_fields = {'slug': ('name',)}


@admin.register(MenuItem)
class MenuItemAdmin(admin.ModelAdmin):
    """Items are arranged through the API; the admin only edits content"""
    list_display = ['__str__', 'menu', 'locale', 'path', 'order', 'type', 'enabled']
    list_filter = ['menu', 'locale', 'type', 'enabled']
    search_fields = ['name', 'path']
    readonly_fields = ['menu', 'locale', 'parent', 'path', 'order', 'created_at', 'updated_at']

    def has_add_permission(self, request):
        return False

    def delete_model(self, request, obj):
        tree.delete_item(obj.pk)

    def delete_queryset(self, request, queryset):
        for item in sorted(queryset, key=lambda item: item.depth):
            if MenuItem.objects.filter(pk=item.pk).exists():
                tree.delete_item(item.pk)
