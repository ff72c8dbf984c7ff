"""Sibling order maintenance.

Within every (menu, locale, parent) scope the ``order`` values are exactly
1..n. The helpers below save rows one at a time so that post_save observers
(audit, cache) see every affected item.
"""

import logging
from dataclasses import dataclass, field

from . import paths
from .models import MenuItem

logger = logging.getLogger(__name__)


@dataclass
class SnapshotNode:
    """One entry of a submitted tree, resolved to its stored item"""
    item: MenuItem
    children: list = field(default_factory=list)


def _set_order(item, order):
    if item.order == order:
        return False
    item.order = order
    item.save(update_fields=['order', 'updated_at'])
    return True


def shift_up(menu_id, locale, parent_id, threshold):
    """Push every sibling ordered after ``threshold`` one slot down, opening a gap"""
    siblings = (
        MenuItem.objects.in_scope(menu_id, locale, parent_id)
        .filter(order__gt=threshold)
        .ordered()
    )

    shifted = 0
    # Do individual updates to trigger observer(s)
    for sibling in siblings:
        sibling.order = sibling.order + 1
        sibling.save(update_fields=['order', 'updated_at'])
        shifted += 1

    logger.debug(f"Shifted {shifted} item(s) after order {threshold} in scope {(menu_id, locale, parent_id)}")
    return shifted


def compact(menu_id, locale, parent_id, leading_ids=()):
    """
    Renumber a scope to 1..n.

    Items named in ``leading_ids`` come first, in that order; the rest
    follow in their current (order, id) order.
    """
    siblings = list(MenuItem.objects.in_scope(menu_id, locale, parent_id).ordered())
    by_id = {sibling.pk: sibling for sibling in siblings}

    leading = [by_id[pk] for pk in leading_ids if pk in by_id]
    leading_set = {item.pk for item in leading}
    rest = [sibling for sibling in siblings if sibling.pk not in leading_set]

    changed = 0
    for position, item in enumerate(leading + rest, start=1):
        if _set_order(item, position):
            changed += 1
    return changed


def resequence(nodes, parent=None, start=1):
    """
    Commit a submitted tree: every node gets ``order`` by its position and is
    attached under ``parent``; children recurse with their node as parent.

    Returns the next free order value of this level.
    """
    parent_id = parent.pk if parent is not None else None
    position = start

    for node in nodes:
        item = node.item
        # An earlier move may have rebased this row underneath us
        item.refresh_from_db(fields=['path', 'parent', 'order'])

        expected = paths.child_path(parent.path if parent is not None else None, item.pk)
        if item.parent_id != parent_id or item.path != expected:
            item.move_under(parent)

        _set_order(item, position)
        resequence(node.children, parent=item)
        position += 1

    return position
