from django.urls import path
from . import views

app_name = 'menus'

urlpatterns = [
    # Menus
    path('menus/', views.MenuListView.as_view(), name='menu-list'),
    path('menus/copy/', views.copy_menu_items, name='menu-copy'),
    path('menus/<int:menu_id>/items/', views.menu_items, name='menu-items'),
    path('menus/<int:menu_id>/item-types/', views.menu_item_types, name='menu-item-types'),

    # Menu items
    path('items/', views.create_menu_item, name='item-create'),
    path('items/<int:item_id>/', views.menu_item_detail, name='item-detail'),
    path('items/<int:item_id>/duplicate/', views.duplicate_menu_item, name='item-duplicate'),
]
