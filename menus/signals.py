# Observers for menu item changes: audit log lines and tree cache invalidation
import logging

from django.db import transaction
from django.db.models.signals import post_save, post_delete
from django.dispatch import Signal, receiver

from .cache import invalidate_tree
from .models import MenuItem

audit_logger = logging.getLogger('menus.audit')

# Sent after commit. ``items`` is a list of MenuItem instances.
menu_items_created = Signal()
menu_items_deleted = Signal()
# Sent after commit with ``item_id``.
menu_item_updated = Signal()


@receiver([post_save, post_delete], sender=MenuItem)
def invalidate_cached_tree(sender, instance, **kwargs):
    """Drop the cached tree of the item's menu/locale on every row change"""
    menu_id, locale = instance.menu_id, instance.locale
    invalidate_tree(menu_id, locale)
    # Readers inside the same transaction window could have re-filled it
    transaction.on_commit(lambda: invalidate_tree(menu_id, locale))


@receiver(menu_items_created)
def audit_created(sender, items, **kwargs):
    audit_logger.info(f"Created {len(items)} menu item(s): {[item.pk for item in items]}")


@receiver(menu_items_deleted)
def audit_deleted(sender, items, **kwargs):
    audit_logger.info(f"Deleted {len(items)} menu item(s): {[item.pk for item in items]}")


@receiver(menu_item_updated)
def audit_updated(sender, item_id, **kwargs):
    audit_logger.info(f"Updated menu item {item_id}")
