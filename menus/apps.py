from django.apps import AppConfig


class MenusConfig(AppConfig):
    name = 'menus'
    verbose_name = 'Menus'
    default_auto_field = 'django.db.models.BigAutoField'

    def ready(self):
        from . import signals  # noqa: F401
        from .conf import menu_settings
        from .registry import ItemTypeRegistry

        self.item_types = ItemTypeRegistry.from_settings(menu_settings())
