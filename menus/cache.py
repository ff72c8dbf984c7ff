from django.core.cache import cache

from .conf import get_setting


def tree_cache_key(menu_id, locale):
    return f"menus:tree:{menu_id}:{locale}"


def get_tree(menu_id, locale, build):
    """Return the rendered tree of (menu, locale), building it on a miss"""
    key = tree_cache_key(menu_id, locale)
    tree = cache.get(key)
    if tree is None:
        tree = build()
        cache.set(key, tree, get_setting('CACHE_TIMEOUT'))
    return tree


def invalidate_tree(menu_id, locale):
    cache.delete(tree_cache_key(menu_id, locale))
