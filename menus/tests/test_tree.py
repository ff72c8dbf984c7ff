from unittest import mock

from django.db import IntegrityError, OperationalError

from menus import tree
from menus.exceptions import (
    ConcurrencyConflict, InvalidLocale, InvalidParent, ItemNotFound,
    LocaleRequired, MenuNotFound, StoreError,
)
from menus.models import Menu, MenuItem

from .utils import MenuTestCase


def shape(item):
    """(name, type, fields, [children...]) of a stored subtree"""
    children = MenuItem.objects.in_scope(item.menu_id, item.locale, item.pk).ordered()
    return (item.name, item.type, item.fields, [shape(child) for child in children])


def state(menu):
    return list(
        MenuItem.objects.filter(menu=menu)
        .order_by('pk')
        .values_list('pk', 'parent_id', 'path', 'order', 'locale')
    )


class CreateItemTests(MenuTestCase):

    def test_items_are_appended_to_their_scope(self):
        a = self.add('A')
        b = self.add('B')
        a1 = self.add('A1', parent=a)

        self.assertEqual((a.order, b.order, a1.order), (1, 2, 1))
        self.assertEqual(a.path, str(a.pk))
        self.assertEqual(a1.path, f"{a.pk}.{a1.pk}")
        self.assertEqual(self.reload(a1).path, a1.path)

    def test_stores_fields_and_flags(self):
        item = self.add('Docs', type='static-url', fields={'value': '/docs'}, enabled=False)

        item = self.reload(item)
        self.assertEqual(item.type, 'static-url')
        self.assertEqual(item.fields, {'value': '/docs'})
        self.assertFalse(item.enabled)

    def test_locales_are_separate_forests(self):
        self.add('A')
        et = self.add('Avaleht', locale='et')

        self.assertEqual(et.order, 1)

    def test_parent_from_other_locale_is_rejected(self):
        a = self.add('A')
        with self.assertRaises(InvalidParent):
            tree.create_item(self.menu.pk, 'et', 'text', name='X', parent_id=a.pk)

    def test_parent_from_other_menu_is_rejected(self):
        other = Menu.objects.create(name='Footer', slug='footer')
        a = self.add('A', menu=other)
        with self.assertRaises(InvalidParent):
            tree.create_item(self.menu.pk, 'en', 'text', name='X', parent_id=a.pk)

    def test_unknown_parent(self):
        with self.assertRaises(ItemNotFound):
            tree.create_item(self.menu.pk, 'en', 'text', parent_id=424242)

    def test_unknown_menu(self):
        with self.assertRaises(MenuNotFound):
            tree.create_item(424242, 'en', 'text')

    def test_locale_checks(self):
        with self.assertRaises(LocaleRequired):
            tree.create_item(self.menu.pk, '', 'text')
        with self.assertRaises(InvalidLocale):
            tree.create_item(self.menu.pk, 'xx', 'text')


class UpdateItemTests(MenuTestCase):

    def test_merges_fields_and_sets_attributes(self):
        item = self.add('Old', fields={'value': '/a', 'target': '_self'})

        tree.update_item(item.pk, name='New', enabled=False, fields={'target': '_blank'})

        item = self.reload(item)
        self.assertEqual(item.name, 'New')
        self.assertFalse(item.enabled)
        self.assertEqual(item.fields, {'value': '/a', 'target': '_blank'})

    def test_path_and_order_are_not_updatable(self):
        item = self.add('A')
        with self.assertRaises(ValueError):
            tree.update_item(item.pk, order=5)

    def test_unknown_item(self):
        with self.assertRaises(ItemNotFound):
            tree.update_item(424242, name='x')


class DuplicateItemTests(MenuTestCase):

    def test_copy_lands_right_after_the_original(self):
        a, b, c = self.add('A'), self.add('B'), self.add('C')

        duplicate = tree.duplicate_item(a.pk)

        self.assertEqual(duplicate.order, 2)
        self.assertIsNone(duplicate.parent_id)
        orders = dict(MenuItem.objects.filter(menu=self.menu).values_list('pk', 'order'))
        self.assertEqual(orders, {a.pk: 1, duplicate.pk: 2, b.pk: 3, c.pk: 4})
        self.assertTreeIsConsistent()

    def test_subtree_is_copied_with_new_ids(self):
        a = self.add('A', fields={'value': '/a'})
        self.add('B')
        a1 = self.add('A1', parent=a, fields={'parameters': {'x': 1}})
        a2 = self.add('A2', parent=a)
        a2a = self.add('A2a', parent=a2)

        duplicate = tree.duplicate_item(a.pk)

        copies = MenuItem.objects.descendants_of(duplicate)
        self.assertEqual(copies.count(), 3)
        self.assertFalse({copy.pk for copy in copies} & {a1.pk, a2.pk, a2a.pk})
        # Names are dropped on copies, the rest of the shape is identical
        original = shape(self.reload(a))
        copied = shape(self.reload(duplicate))

        def without_names(node):
            return (node[1], node[2], [without_names(child) for child in node[3]])

        self.assertEqual(without_names(copied), without_names(original))
        self.assertEqual(
            [item.order for item in MenuItem.objects.in_scope(self.menu.pk, 'en', duplicate.pk).ordered()],
            [1, 2],
        )
        self.assertTreeIsConsistent()

    def test_copy_drops_name_and_enabled(self):
        a = self.add('A', enabled=False)

        duplicate = tree.duplicate_item(a.pk)

        self.assertEqual(duplicate.name, '')
        self.assertTrue(duplicate.enabled)

    def test_name_can_be_given(self):
        a = self.add('A')

        duplicate = tree.duplicate_item(a.pk, name='A (copy)')

        self.assertEqual(self.reload(duplicate).name, 'A (copy)')

    def test_duplicate_inside_a_child_scope(self):
        a = self.add('A')
        a1, a2 = self.add('A1', parent=a), self.add('A2', parent=a)
        self.add('B')

        duplicate = tree.duplicate_item(a1.pk)

        self.assertEqual(duplicate.parent_id, a.pk)
        self.assertEqual(duplicate.path, f"{a.pk}.{duplicate.pk}")
        self.assertEqual(self.reload(a2).order, 3)
        self.assertEqual(self.scope(), [('A', 1), ('B', 2)])
        self.assertTreeIsConsistent()

    def test_unknown_item(self):
        with self.assertRaises(ItemNotFound):
            tree.duplicate_item(424242)

    def test_failure_leaves_nothing_behind(self):
        a, b = self.add('A'), self.add('B')
        self.add('A1', parent=a)
        before = state(self.menu)

        original_save = MenuItem.save
        calls = []

        def flaky_save(item, *args, **kwargs):
            # shift of B and the top copy succeed, the first child copy fails
            calls.append(item)
            if len(calls) == 3:
                raise RuntimeError('disk full')
            return original_save(item, *args, **kwargs)

        with mock.patch.object(MenuItem, 'save', flaky_save):
            with self.assertRaises(RuntimeError):
                tree.duplicate_item(a.pk)

        self.assertEqual(len(calls), 3)

        self.assertEqual(state(self.menu), before)


class CopyMenuItemsTests(MenuTestCase):

    def setUp(self):
        super().setUp()
        self.target = Menu.objects.create(name='Footer', slug='footer')
        for name in ('F1', 'F2', 'F3'):
            self.add(name, menu=self.target, locale='et')

        self.x = self.add('X', fields={'value': '/x'})
        self.x1 = self.add('X1', parent=self.x)
        self.x2 = self.add('X2', parent=self.x, enabled=False)
        self.y = self.add('Y')
        self.add('Z', locale='et')

    def test_roots_are_appended_after_existing_ones(self):
        created = tree.copy_menu_items(self.menu.pk, self.target.pk, 'en', 'et')

        self.assertEqual(len(created), 4)
        self.assertEqual(
            self.scope(menu=self.target, locale='et'),
            [('F1', 1), ('F2', 2), ('F3', 3), ('X', 4), ('Y', 5)],
        )
        self.assertTreeIsConsistent(self.target)

    def test_subtrees_keep_relative_order_and_payload(self):
        tree.copy_menu_items(self.menu.pk, self.target.pk, 'en', 'et')

        x_copy = MenuItem.objects.get(menu=self.target, name='X')
        self.assertEqual(x_copy.locale, 'et')
        self.assertEqual(x_copy.fields, {'value': '/x'})
        children = list(MenuItem.objects.in_scope(self.target.pk, 'et', x_copy.pk).ordered())
        self.assertEqual([(child.name, child.order, child.enabled) for child in children],
                         [('X1', 1, True), ('X2', 2, False)])

    def test_only_source_locale_is_copied(self):
        tree.copy_menu_items(self.menu.pk, self.target.pk, 'en', 'et')

        self.assertFalse(MenuItem.objects.filter(menu=self.target, name='Z').exists())

    def test_source_is_untouched(self):
        before = state(self.menu)

        tree.copy_menu_items(self.menu.pk, self.target.pk, 'en', 'et')

        self.assertEqual(state(self.menu), before)

    def test_copy_into_same_menu_and_locale(self):
        created = tree.copy_menu_items(self.menu.pk, self.menu.pk, 'en', 'en')

        self.assertEqual(len(created), 4)
        self.assertEqual(self.scope(), [('X', 1), ('Y', 2), ('X', 3), ('Y', 4)])
        self.assertTreeIsConsistent()

    def test_unknown_menus(self):
        with self.assertRaises(MenuNotFound):
            tree.copy_menu_items(424242, self.target.pk, 'en', 'et')
        with self.assertRaises(MenuNotFound):
            tree.copy_menu_items(self.menu.pk, 424242, 'en', 'et')

    def test_locales_required(self):
        with self.assertRaises(LocaleRequired):
            tree.copy_menu_items(self.menu.pk, self.target.pk, 'en', None)

    def test_failure_leaves_nothing_behind(self):
        before_source, before_target = state(self.menu), state(self.target)

        original_save = MenuItem.save
        calls = []

        def flaky_save(item, *args, **kwargs):
            # X and X1 are copied, X2 fails
            calls.append(item)
            if len(calls) == 3:
                raise RuntimeError('disk full')
            return original_save(item, *args, **kwargs)

        with mock.patch.object(MenuItem, 'save', flaky_save):
            with self.assertRaises(RuntimeError):
                tree.copy_menu_items(self.menu.pk, self.target.pk, 'en', 'et')

        self.assertEqual(len(calls), 3)
        self.assertEqual(state(self.menu), before_source)
        self.assertEqual(state(self.target), before_target)


class ReorderTreeTests(MenuTestCase):

    def setUp(self):
        super().setUp()
        self.a = self.add('A')
        self.b = self.add('B')
        self.c = self.add('C')

    def test_nesting_and_positions_are_committed(self):
        tree.reorder_tree(self.menu.pk, 'en', [
            {'id': self.c.pk},
            {'id': self.a.pk, 'children': [{'id': self.b.pk}]},
        ])

        c, a, b = self.reload(self.c), self.reload(self.a), self.reload(self.b)
        self.assertEqual((c.order, c.parent_id), (1, None))
        self.assertEqual((a.order, a.parent_id), (2, None))
        self.assertEqual((b.order, b.parent_id), (1, a.pk))
        self.assertEqual(b.path, f"{a.path}.{b.pk}")
        self.assertTreeIsConsistent()

    def test_applying_twice_changes_nothing(self):
        snapshot = [
            {'id': self.b.pk, 'children': [{'id': self.c.pk, 'children': [{'id': self.a.pk}]}]},
        ]
        tree.reorder_tree(self.menu.pk, 'en', snapshot)
        once = state(self.menu)

        tree.reorder_tree(self.menu.pk, 'en', snapshot)

        self.assertEqual(state(self.menu), once)
        self.assertEqual(self.reload(self.a).path, f"{self.b.pk}.{self.c.pk}.{self.a.pk}")

    def test_child_can_become_root(self):
        a1 = self.add('A1', parent=self.a)

        tree.reorder_tree(self.menu.pk, 'en', [
            {'id': a1.pk}, {'id': self.a.pk}, {'id': self.b.pk}, {'id': self.c.pk},
        ])

        a1 = self.reload(a1)
        self.assertIsNone(a1.parent_id)
        self.assertEqual(a1.path, str(a1.pk))
        self.assertEqual(self.scope(), [('A1', 1), ('A', 2), ('B', 3), ('C', 4)])

    def test_moved_subtree_paths_follow(self):
        b1 = self.add('B1', parent=self.b)
        b1a = self.add('B1a', parent=b1)

        tree.reorder_tree(self.menu.pk, 'en', [
            {'id': self.a.pk, 'children': [{'id': self.b.pk}]},
            {'id': self.c.pk},
        ])

        self.assertEqual(self.reload(b1a).path, f"{self.a.pk}.{self.b.pk}.{b1.pk}.{b1a.pk}")
        self.assertEqual(self.scope(), [('A', 1), ('C', 2)])
        self.assertTreeIsConsistent()

    def test_parent_and_child_can_swap(self):
        a1 = self.add('A1', parent=self.a)

        tree.reorder_tree(self.menu.pk, 'en', [
            {'id': a1.pk, 'children': [{'id': self.a.pk}]},
            {'id': self.b.pk},
            {'id': self.c.pk},
        ])

        self.assertEqual(self.reload(self.a).path, f"{a1.pk}.{self.a.pk}")
        self.assertTreeIsConsistent()

    def test_items_left_out_are_numbered_after_submitted_ones(self):
        tree.reorder_tree(self.menu.pk, 'en', [{'id': self.c.pk}, {'id': self.a.pk}])

        self.assertEqual(self.scope(), [('C', 1), ('A', 2), ('B', 3)])

    def test_unknown_item_aborts_everything(self):
        before = state(self.menu)

        with self.assertRaises(ItemNotFound) as ctx:
            tree.reorder_tree(self.menu.pk, 'en', [
                {'id': self.c.pk}, {'id': self.a.pk, 'children': [{'id': 424242}]},
            ])

        self.assertEqual(ctx.exception.details['item_id'], 424242)
        self.assertEqual(state(self.menu), before)

    def test_failure_midway_leaves_nothing_behind(self):
        before = state(self.menu)

        original_save = MenuItem.save
        calls = []

        def flaky_save(item, *args, **kwargs):
            # C and A are renumbered, moving B under A fails
            calls.append(item)
            if len(calls) == 3:
                raise RuntimeError('disk full')
            return original_save(item, *args, **kwargs)

        with mock.patch.object(MenuItem, 'save', flaky_save):
            with self.assertRaises(RuntimeError):
                tree.reorder_tree(self.menu.pk, 'en', [
                    {'id': self.c.pk},
                    {'id': self.a.pk, 'children': [{'id': self.b.pk}]},
                ])

        self.assertEqual([item.pk for item in calls], [self.c.pk, self.a.pk, self.b.pk])
        self.assertEqual(state(self.menu), before)

    def test_cross_locale_item_is_rejected(self):
        et = self.add('Avaleht', locale='et')
        with self.assertRaises(InvalidParent):
            tree.reorder_tree(self.menu.pk, 'en', [{'id': self.a.pk, 'children': [{'id': et.pk}]}])

    def test_item_of_another_menu_is_rejected(self):
        other = Menu.objects.create(name='Footer', slug='footer')
        foreign = self.add('F', menu=other)
        with self.assertRaises(InvalidParent):
            tree.reorder_tree(self.menu.pk, 'en', [{'id': foreign.pk}])

    def test_repeated_id_is_rejected(self):
        with self.assertRaises(InvalidParent):
            tree.reorder_tree(self.menu.pk, 'en', [
                {'id': self.a.pk, 'children': [{'id': self.b.pk, 'children': [{'id': self.a.pk}]}]},
            ])

    def test_locale_required(self):
        with self.assertRaises(LocaleRequired):
            tree.reorder_tree(self.menu.pk, None, [])


class DeleteItemTests(MenuTestCase):

    def test_removes_subtree_only(self):
        a, b = self.add('A'), self.add('B')
        a1 = self.add('A1', parent=a)
        a1a = self.add('A1a', parent=a1)
        b1 = self.add('B1', parent=b)

        result = tree.delete_item(a.pk)

        self.assertEqual(result.root.pk, a.pk)
        self.assertEqual({item.pk for item in result.descendants}, {a1.pk, a1a.pk})
        self.assertEqual(result.count, 3)
        remaining = set(MenuItem.objects.values_list('pk', flat=True))
        self.assertEqual(remaining, {b.pk, b1.pk})

    def test_prefix_lookalikes_survive(self):
        a = self.add('A')
        self.add('A1', parent=a)
        lookalike = self.add('Z')
        # A path that shares the characters but not the segment
        MenuItem.objects.filter(pk=lookalike.pk).update(path=f"{a.pk}0")

        tree.delete_item(a.pk)

        self.assertEqual(list(MenuItem.objects.values_list('pk', flat=True)), [lookalike.pk])

    def test_gap_is_closed(self):
        self.add('A')
        b = self.add('B')
        self.add('C')

        tree.delete_item(b.pk)

        self.assertEqual(self.scope(), [('A', 1), ('C', 2)])
        self.assertTreeIsConsistent()

    def test_unknown_item(self):
        with self.assertRaises(ItemNotFound):
            tree.delete_item(424242)


class LockingTests(MenuTestCase):

    def test_lock_failure_is_a_concurrency_conflict(self):
        a = self.add('A')

        with mock.patch.object(Menu.objects, 'select_for_update', side_effect=OperationalError('locked')):
            with self.assertRaises(ConcurrencyConflict):
                tree.duplicate_item(a.pk)

        self.assertEqual(MenuItem.objects.count(), 1)

    def test_conflict_while_writing_is_a_concurrency_conflict(self):
        a = self.add('A')

        with mock.patch.object(MenuItem, 'save', side_effect=OperationalError('deadlock detected')):
            with self.assertRaises(ConcurrencyConflict):
                tree.duplicate_item(a.pk)

        self.assertEqual(state(self.menu), [(a.pk, None, str(a.pk), 1, 'en')])

    def test_other_store_errors_are_store_errors(self):
        a = self.add('A')
        self.add('A1', parent=a)

        with mock.patch.object(MenuItem, 'delete', side_effect=IntegrityError('constraint failed')):
            with self.assertRaises(StoreError) as ctx:
                tree.delete_item(a.pk)

        self.assertEqual(ctx.exception.details, {'menu_ids': [self.menu.pk]})
        self.assertEqual(MenuItem.objects.count(), 2)


class ListItemsTests(MenuTestCase):

    def test_children_map_groups_in_order(self):
        a, b = self.add('A'), self.add('B')
        a1, a2 = self.add('A1', parent=a), self.add('A2', parent=a)
        tree.reorder_tree(self.menu.pk, 'en', [
            {'id': b.pk}, {'id': a.pk, 'children': [{'id': a2.pk}, {'id': a1.pk}]},
        ])

        menu, items = tree.list_items(self.menu.pk, 'en')
        grouped = tree.children_map(items)

        self.assertEqual([item.name for item in grouped[None]], ['B', 'A'])
        self.assertEqual([item.name for item in grouped[a.pk]], ['A2', 'A1'])

    def test_errors(self):
        with self.assertRaises(MenuNotFound):
            tree.list_items(424242, 'en')
        with self.assertRaises(LocaleRequired):
            tree.list_items(self.menu.pk, None)
