from .registry import TypeDescriptor


def menu_options(locale):
    """Other menus a "menu-link" item can point at"""
    from .models import Menu

    return {menu.pk: menu.title for menu in Menu.objects.order_by('name')}


TEXT = TypeDescriptor(
    name='Text',
    type='text',
    is_default=True,
)

STATIC_URL = TypeDescriptor(
    name='Static URL',
    type='static-url',
    fields=(
        {'name': 'value', 'label': 'URL', 'kind': 'text', 'required': True},
        {'name': 'target', 'label': 'Target', 'kind': 'select', 'required': False},
        {'name': 'parameters', 'label': 'Parameters', 'kind': 'json', 'required': False},
    ),
)

MENU_LINK = TypeDescriptor(
    name='Menu link',
    type='menu-link',
    fields=(
        {'name': 'value', 'label': 'Menu', 'kind': 'select', 'required': True},
    ),
    options_provider=menu_options,
)
