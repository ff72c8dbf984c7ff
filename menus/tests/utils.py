from django.core.cache import cache
from django.test import TestCase

from menus import paths, tree
from menus.models import Menu, MenuItem


class MenuTestCase(TestCase):
    """Base case with a "main" menu and helpers to grow trees through the tree API"""

    def setUp(self):
        cache.clear()
        self.menu = Menu.objects.create(name='Main', slug='main')

    def add(self, name, parent=None, locale='en', menu=None, type='text', **kwargs):
        menu = menu or self.menu
        return tree.create_item(
            menu.pk,
            locale,
            type,
            name=name,
            parent_id=parent.pk if parent is not None else None,
            **kwargs,
        )

    def reload(self, item):
        return MenuItem.objects.get(pk=item.pk)

    def scope(self, parent=None, locale='en', menu=None):
        """[(name, order), ...] of one sibling scope, in order"""
        menu = menu or self.menu
        parent_id = parent.pk if parent is not None else None
        return [
            (item.name, item.order)
            for item in MenuItem.objects.in_scope(menu.pk, locale, parent_id).ordered()
        ]

    def assertTreeIsConsistent(self, menu=None):
        """Every path extends its parent's path and every scope is numbered 1..n"""
        menu = menu or self.menu
        scopes = {}
        for item in MenuItem.objects.filter(menu=menu).select_related('parent'):
            parent_path = item.parent.path if item.parent_id else None
            self.assertEqual(item.path, paths.child_path(parent_path, item.pk), f"bad path on {item}")
            if item.parent_id:
                self.assertEqual(item.locale, item.parent.locale)
            scopes.setdefault(item.scope, []).append(item.order)

        for scope, orders in scopes.items():
            self.assertEqual(sorted(orders), list(range(1, len(orders) + 1)), f"gap in scope {scope}")
