from django.db import models
from django.db.models import Max

from . import paths


class TimeStampedModel(models.Model):
    """Base model with created_at and updated_at fields"""
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


# =============== MENUS ===============

class Menu(TimeStampedModel):
    """A named navigation tree; every locale holds its own forest of root items"""
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True)

    class Meta:
        db_table = 'menus_menu'
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.slug})"

    @property
    def title(self):
        return str(self)

    def root_items(self, locale=None):
        items = self.items.filter(parent__isnull=True)
        if locale is not None:
            items = items.filter(locale=locale)
        return items


# =============== MENU ITEMS ===============

class MenuItemQuerySet(models.QuerySet):
    """Path-prefix and sibling-order queries over menu item rows"""

    def for_menu(self, menu_id, locale):
        return self.filter(menu_id=menu_id, locale=locale)

    def in_scope(self, menu_id, locale, parent_id):
        """Siblings sharing (menu, locale, parent); ``parent_id=None`` is the root scope"""
        qs = self.for_menu(menu_id, locale)
        if parent_id is None:
            return qs.filter(parent__isnull=True)
        return qs.filter(parent_id=parent_id)

    def ordered(self):
        return self.order_by('order', 'id')

    def below_path(self, menu_id, path):
        return self.filter(menu_id=menu_id, path__startswith=paths.descendant_prefix(path))

    def descendants_of(self, item):
        return self.below_path(item.menu_id, item.path)

    def subtree_of(self, item):
        return self.filter(pk=item.pk) | self.descendants_of(item)

    def max_order(self, menu_id, locale, parent_id):
        result = self.in_scope(menu_id, locale, parent_id).aggregate(highest=Max('order'))
        return result['highest'] or 0


class MenuItem(TimeStampedModel):
    """A node in a menu tree"""
    menu = models.ForeignKey(Menu, on_delete=models.CASCADE, related_name='items')
    locale = models.CharField(max_length=16)
    parent = models.ForeignKey(
        'self',
        null=True,
        blank=True,
        related_name='children',
        on_delete=models.CASCADE,
    )
    # Ancestor ids down to and including our own id, e.g. "4.17.23"
    path = models.CharField(max_length=1024, blank=True, db_index=True)
    # 1-based, dense within (menu, locale, parent)
    order = models.PositiveIntegerField(default=1)

    type = models.CharField(max_length=100)
    name = models.CharField(max_length=255, blank=True)
    fields = models.JSONField(default=dict, blank=True)
    enabled = models.BooleanField(default=True)

    objects = MenuItemQuerySet.as_manager()

    class Meta:
        db_table = 'menus_menu_item'
        ordering = ['order', 'id']
        indexes = [
            models.Index(fields=['menu', 'locale', 'parent', 'order'], name='menu_item_scope_idx'),
        ]

    def __str__(self):
        return self.name or f"{self.type} #{self.pk}"

    @property
    def scope(self):
        return (self.menu_id, self.locale, self.parent_id)

    @property
    def depth(self):
        return paths.depth_of(self.path)

    @property
    def ancestor_ids(self):
        return [int(part) for part in paths.split_path(self.path)[:-1]]

    def expected_path(self):
        parent_path = self.parent.path if self.parent_id else None
        return paths.child_path(parent_path, self.pk)

    def save(self, *args, **kwargs):
        is_new = self.pk is None
        super().save(*args, **kwargs)

        # The path embeds our own id, so it can only be written once we have one
        if is_new or not self.path:
            self.path = self.expected_path()
            MenuItem.objects.filter(pk=self.pk).update(path=self.path)

    def move_under(self, parent):
        """
        Attach below ``parent`` (``None`` makes this a root item) and rebase
        the path of every descendant. ``order`` is left to the caller.
        """
        self.refresh_from_db(fields=['path', 'parent'])
        old_path = self.path
        self.parent = parent
        self.path = paths.child_path(parent.path if parent is not None else None, self.pk)

        if self.path != old_path:
            descendants = MenuItem.objects.below_path(self.menu_id, old_path).order_by('path')
            # Individual saves so per-row observers fire
            for descendant in descendants:
                descendant.path = paths.rebase_path(descendant.path, old_path, self.path)
                descendant.save(update_fields=['path', 'updated_at'])

        self.save(update_fields=['parent', 'path', 'updated_at'])
