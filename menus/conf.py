from django.conf import settings

DEFAULTS = {
    'LOCALES': {'en': 'English'},
    'PATH_SEPARATOR': '.',
    'LOCK_NOWAIT': False,
    'CACHE_TIMEOUT': 300,
    'ITEM_TYPES': [
        'menus.item_types.TEXT',
        'menus.item_types.STATIC_URL',
    ],
    'MENUS': {},
}


def menu_settings():
    """Project MENU_BUILDER values merged over the app defaults"""
    merged = dict(DEFAULTS)
    merged.update(getattr(settings, 'MENU_BUILDER', {}))
    return merged


def get_setting(name):
    return menu_settings()[name]
