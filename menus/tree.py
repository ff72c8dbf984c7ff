"""Tree mutations for menu items.

Every public function here is one unit of work: it runs in a single
transaction and holds a row lock on the menu(s) it touches until commit, so
two requests editing the same menu cannot interleave their order shifts.
Failures roll the whole operation back; callers never see a half-copied
subtree.

Store errors are translated into ``menus.exceptions`` before they leave
this module.
"""

import copy
import logging
from contextlib import contextmanager
from dataclasses import dataclass

from django.db import DatabaseError, OperationalError, transaction

from . import ordering
from .conf import get_setting
from .exceptions import (
    ConcurrencyConflict, InvalidLocale, InvalidParent, ItemNotFound,
    LocaleRequired, MenuNotFound, StoreError,
)
from .models import Menu, MenuItem
from .ordering import SnapshotNode
from .signals import menu_item_updated, menu_items_created, menu_items_deleted

logger = logging.getLogger(__name__)

UPDATABLE_ATTRIBUTES = ('name', 'enabled', 'type')


@dataclass(frozen=True)
class CloneTarget:
    """Where clones land and which source attributes they keep"""
    menu_id: int
    locale: str
    keep_name: bool = True
    # Item types carry no enabled default, so a dropped flag falls back to
    # the model default (enabled)
    keep_enabled: bool = True


@dataclass
class DeleteResult:
    root: MenuItem
    descendants: list

    @property
    def count(self):
        return len(self.descendants) + 1


# =============== LOOKUPS ===============

def require_locale(locale):
    if not locale:
        raise LocaleRequired()
    if locale not in get_setting('LOCALES'):
        raise InvalidLocale(f"Locale '{locale}' is not configured", locale=locale)
    return locale


def get_menu(menu_id):
    try:
        return Menu.objects.get(pk=menu_id)
    except (Menu.DoesNotExist, ValueError, TypeError):
        raise MenuNotFound(menu_id=menu_id)


def get_item(item_id):
    try:
        return MenuItem.objects.select_related('parent').get(pk=item_id)
    except (MenuItem.DoesNotExist, ValueError, TypeError):
        raise ItemNotFound(item_id=item_id)


@contextmanager
def locked_menus(*menu_ids):
    """
    Open a transaction and lock the given menus, lowest id first.

    Yields ``{menu_id: Menu}``. Raises MenuNotFound for an unknown id and
    ConcurrencyConflict when the lock cannot be taken. Store errors raised
    inside the block roll the transaction back and leave as
    ConcurrencyConflict (lock waits, deadlocks) or StoreError.
    """
    wanted = sorted(set(menu_ids))
    with transaction.atomic():
        try:
            menus = list(
                Menu.objects.select_for_update(nowait=get_setting('LOCK_NOWAIT'))
                .filter(pk__in=wanted)
                .order_by('pk')
            )
        except DatabaseError as exc:
            logger.warning(f"Could not lock menus {wanted}: {exc}")
            raise ConcurrencyConflict(menu_ids=wanted) from exc

        found = {menu.pk: menu for menu in menus}
        for menu_id in wanted:
            if menu_id not in found:
                raise MenuNotFound(menu_id=menu_id)

        try:
            yield found
        except OperationalError as exc:
            logger.warning(f"Store conflict while editing menus {wanted}: {exc}")
            raise ConcurrencyConflict(menu_ids=wanted) from exc
        except DatabaseError as exc:
            logger.error(f"Store error while editing menus {wanted}: {exc}")
            raise StoreError(menu_ids=wanted) from exc


def _announce(signal, **kwargs):
    transaction.on_commit(lambda: signal.send(sender=MenuItem, **kwargs))


# =============== READS ===============

def list_menus():
    return Menu.objects.all()


def list_items(menu_id, locale):
    """All items of one menu/locale, parents before children, siblings in order"""
    menu = get_menu(menu_id)
    require_locale(locale)
    return menu, list(MenuItem.objects.for_menu(menu.pk, locale).order_by('parent_id', 'order', 'id'))


def children_map(items):
    """Group items by parent id; each list is in sibling order"""
    grouped = {}
    for item in sorted(items, key=lambda item: (item.order, item.pk)):
        grouped.setdefault(item.parent_id, []).append(item)
    return grouped


# =============== CREATE / UPDATE ===============

def create_item(menu_id, locale, type, name='', fields=None, enabled=True, parent_id=None):
    """Append a new item at the end of its sibling scope"""
    require_locale(locale)

    with locked_menus(menu_id):
        parent = None
        if parent_id is not None:
            parent = get_item(parent_id)
            if parent.menu_id != menu_id:
                raise InvalidParent("Parent belongs to another menu", parent_id=parent_id)
            if parent.locale != locale:
                raise InvalidParent("Parent belongs to another locale", parent_id=parent_id)

        item = MenuItem(
            menu_id=menu_id,
            locale=locale,
            parent=parent,
            order=MenuItem.objects.max_order(menu_id, locale, parent_id) + 1,
            type=type,
            name=name or '',
            fields=fields or {},
            enabled=enabled,
        )
        item.save()
        _announce(menu_items_created, items=[item])

    logger.info(f"Created menu item {item.pk} in menu {menu_id} ({locale})")
    return item


def update_item(item_id, fields=None, **changes):
    """Change plain attributes and merge ``fields`` into the stored payload"""
    unknown = set(changes) - set(UPDATABLE_ATTRIBUTES)
    if unknown:
        raise ValueError(f"Cannot update {sorted(unknown)} on a menu item")

    menu_id = get_item(item_id).menu_id
    with locked_menus(menu_id):
        item = get_item(item_id)
        for attribute, value in changes.items():
            setattr(item, attribute, value)
        if fields:
            item.fields = {**item.fields, **fields}
        item.save()
        _announce(menu_item_updated, item_id=item.pk)

    return item


# =============== DELETE ===============

def delete_item(item_id):
    """
    Delete an item and its whole subtree, then close the gap it leaves.

    The result reports descendants and the root separately so callers can
    notify about each set.
    """
    menu_id = get_item(item_id).menu_id
    with locked_menus(menu_id):
        item = get_item(item_id)
        scope = item.scope
        root_id = item.pk

        descendants = list(MenuItem.objects.descendants_of(item).order_by('path'))
        MenuItem.objects.descendants_of(item).delete()
        item.delete()
        # Django clears the pk on delete; keep it for reporting
        item.pk = root_id

        ordering.compact(*scope)

        _announce(menu_items_deleted, items=descendants)
        _announce(menu_items_deleted, items=[item])

    logger.info(f"Deleted menu item {root_id} and {len(descendants)} descendant(s)")
    return DeleteResult(root=item, descendants=descendants)


# =============== CLONING ===============

def _clone_level(sources, parent, first_order, target, created):
    """
    Clone ``sources`` (and their subtrees) as siblings under ``parent``,
    numbering them from ``first_order``. Returns the next free order.
    """
    order = first_order
    for source in sources:
        clone = MenuItem(
            menu_id=target.menu_id,
            locale=target.locale,
            parent=parent,
            order=order,
            type=source.type,
            name=source.name if target.keep_name else '',
            fields=copy.deepcopy(source.fields),
        )
        if target.keep_enabled:
            clone.enabled = source.enabled
        clone.save()
        created.append(clone)

        children = MenuItem.objects.in_scope(source.menu_id, source.locale, source.pk).ordered()
        _clone_level(list(children), clone, 1, target, created)
        order += 1
    return order


def duplicate_item(item_id, name=None):
    """
    Copy an item and its subtree right after the original.

    Later siblings move down one slot. The copy drops the name and the
    enabled flag; ``name`` sets the top copy's name.
    """
    menu_id = get_item(item_id).menu_id
    with locked_menus(menu_id):
        source = get_item(item_id)
        ordering.shift_up(*source.scope, threshold=source.order)

        target = CloneTarget(
            menu_id=source.menu_id,
            locale=source.locale,
            keep_name=False,
            keep_enabled=False,
        )
        created = []
        _clone_level([source], source.parent, source.order + 1, target, created)

        duplicate = created[0]
        if name:
            duplicate.name = name
            duplicate.save(update_fields=['name', 'updated_at'])

        _announce(menu_items_created, items=created)

    logger.info(f"Duplicated menu item {item_id} as {duplicate.pk} ({len(created)} item(s))")
    return duplicate


def copy_menu_items(from_menu_id, to_menu_id, from_locale, to_locale):
    """
    Clone every root item of one menu/locale (with subtrees) into another,
    appended after the target's existing root items.
    """
    require_locale(from_locale)
    require_locale(to_locale)

    with locked_menus(from_menu_id, to_menu_id):
        roots = list(
            MenuItem.objects.in_scope(from_menu_id, from_locale, None).ordered()
        )
        max_order = MenuItem.objects.max_order(to_menu_id, to_locale, None)

        created = []
        target = CloneTarget(menu_id=to_menu_id, locale=to_locale)
        _clone_level(roots, None, max_order + 1, target, created)

        _announce(menu_items_created, items=created)

    logger.info(
        f"Copied {len(created)} item(s) from menu {from_menu_id} ({from_locale}) "
        f"to menu {to_menu_id} ({to_locale})"
    )
    return created


# =============== REORDER ===============

def _collect_ids(entries, seen):
    for entry in entries:
        item_id = entry['id']
        if item_id in seen:
            raise InvalidParent(f"Item {item_id} appears more than once in the tree", item_id=item_id)
        seen.append(item_id)
        _collect_ids(entry.get('children') or [], seen)
    return seen


def _resolve(entries, items):
    return [
        SnapshotNode(item=items[entry['id']], children=_resolve(entry.get('children') or [], items))
        for entry in entries
    ]


def _submitted_scopes(nodes, parent_id, scopes):
    scopes.setdefault(parent_id, []).extend(node.item.pk for node in nodes)
    for node in nodes:
        _submitted_scopes(node.children, node.item.pk, scopes)
    return scopes


def reorder_tree(menu_id, locale, snapshot):
    """
    Commit a client-edited tree shape.

    ``snapshot`` is a list of ``{"id": ..., "children": [...]}``. Top-level
    entries become root items; nesting decides parents; list position
    decides order. Items of the menu left out of the snapshot stay where
    they are and are numbered after the submitted siblings of their scope.
    """
    require_locale(locale)

    with locked_menus(menu_id):
        ids = _collect_ids(snapshot, [])
        items = MenuItem.objects.in_bulk(ids)

        for item_id in ids:
            item = items.get(item_id)
            if item is None:
                raise ItemNotFound(f"Menu item {item_id} not found", item_id=item_id)
            if item.menu_id != menu_id:
                raise InvalidParent(f"Item {item_id} belongs to another menu", item_id=item_id)
            if item.locale != locale:
                raise InvalidParent(f"Item {item_id} belongs to another locale", item_id=item_id)

        previous_scopes = {item.parent_id for item in items.values()}
        nodes = _resolve(snapshot, items)
        ordering.resequence(nodes)

        submitted = _submitted_scopes(nodes, None, {})
        for parent_id in previous_scopes | set(submitted):
            ordering.compact(menu_id, locale, parent_id, leading_ids=submitted.get(parent_id, ()))

    logger.info(f"Reordered {len(ids)} item(s) in menu {menu_id} ({locale})")
    return len(ids)
