"""Menu item type registry.

Item types are described by ``TypeDescriptor`` values listed in settings. The
registry is built once when the app is ready and handed to the views; tree
operations never consult it.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string


@dataclass(frozen=True)
class TypeDescriptor:
    name: str
    type: str
    is_default: bool = False
    # Field schemas: {"name", "label", "kind", "required"}
    fields: tuple = ()
    options_provider: Optional[Callable] = None

    def render(self, locale):
        data = {
            'name': self.name,
            'type': self.type,
            'default': self.is_default,
            'fields': [dict(schema) for schema in self.fields],
        }
        if self.options_provider is not None:
            options = self.options_provider(locale) or {}
            data['options'] = [
                {'id': str(key), 'label': label} for key, label in options.items()
            ]
        return data


class ItemTypeRegistry:
    def __init__(self):
        self._global = []
        self._per_menu = {}

    def register(self, descriptor, menu_slug=None):
        if not isinstance(descriptor, TypeDescriptor):
            raise ImproperlyConfigured(f"{descriptor!r} is not a TypeDescriptor")
        if menu_slug is None:
            self._global.append(descriptor)
        else:
            self._per_menu.setdefault(menu_slug, []).append(descriptor)
        return descriptor

    def types_for(self, menu_slug):
        """Global types followed by the ones configured for ``menu_slug``"""
        return [*self._global, *self._per_menu.get(menu_slug, [])]

    def render(self, menu_slug, locale):
        return [descriptor.render(locale) for descriptor in self.types_for(menu_slug)]

    @classmethod
    def from_settings(cls, config):
        registry = cls()
        for dotted_path in config.get('ITEM_TYPES', []):
            registry.register(_load(dotted_path))
        for slug, menu_config in config.get('MENUS', {}).items():
            for dotted_path in menu_config.get('item_types', []):
                registry.register(_load(dotted_path), menu_slug=slug)
        return registry


def _load(dotted_path):
    try:
        return import_string(dotted_path)
    except ImportError as exc:
        raise ImproperlyConfigured(f"Menu item type {dotted_path!r} could not be imported") from exc
