from django.apps import apps
from django_filters.rest_framework import DjangoFilterBackend
from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import filters, generics, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from . import tree
from .cache import get_tree
from .models import MenuItem
from .permissions import IsMenuEditor
from .serializers import (
    DuplicateSerializer, MenuCopySerializer, MenuItemCreateSerializer,
    MenuItemSerializer, MenuItemUpdateSerializer, MenuSerializer,
    ReorderSerializer, plain_tree,
)

locale_parameter = openapi.Parameter(
    'locale', openapi.IN_QUERY, description="Locale code, e.g. 'en'", type=openapi.TYPE_STRING, required=True,
)


def success(status_code=status.HTTP_200_OK, **payload):
    return Response({'success': True, **payload}, status=status_code)


# =============== MENUS ===============

class MenuListView(generics.ListAPIView):
    """List all menus"""
    queryset = tree.list_menus()
    serializer_class = MenuSerializer
    permission_classes = [IsMenuEditor]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['slug']
    search_fields = ['name', 'slug']
    ordering_fields = ['name', 'slug', 'created_at']
    ordering = ['name']


@swagger_auto_schema(
    method='post',
    operation_description="Copy every root item (with subtrees) of one menu/locale into another menu/locale",
    request_body=MenuCopySerializer,
    responses={200: 'Copied', 400: 'Locale missing', 404: 'Menu not found'},
)
@api_view(['POST'])
@permission_classes([IsMenuEditor])
def copy_menu_items(request):
    serializer = MenuCopySerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    created = tree.copy_menu_items(
        data['from_menu_id'], data['to_menu_id'], data['from_locale'], data['to_locale'],
    )
    return success(copied=len(created))


def _render_tree(menu_id, locale):
    menu = tree.get_menu(menu_id)
    tree.require_locale(locale)

    def build():
        _, items = tree.list_items(menu.pk, locale)
        grouped = tree.children_map(items)
        roots = grouped.get(None, [])
        return MenuItemSerializer(roots, many=True, context={'children_map': grouped}).data

    return get_tree(menu.pk, locale, build)


@swagger_auto_schema(
    method='get',
    operation_description="Return the item tree of one menu for a locale",
    manual_parameters=[locale_parameter],
    responses={200: MenuItemSerializer(many=True), 400: 'Locale missing', 404: 'Menu not found'},
)
@swagger_auto_schema(
    method='post',
    operation_description="Save a reordered tree: list position sets order, nesting sets parents",
    request_body=ReorderSerializer,
    responses={200: 'Saved', 400: 'Invalid tree', 404: 'Menu or item not found'},
)
@api_view(['GET', 'POST'])
@permission_classes([IsMenuEditor])
def menu_items(request, menu_id):
    if request.method == 'GET':
        return Response(_render_tree(menu_id, request.query_params.get('locale')))

    tree.get_menu(menu_id)
    serializer = ReorderSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    count = tree.reorder_tree(menu_id, data['locale'], plain_tree(data['menu_items']))
    return success(reordered=count)


@swagger_auto_schema(
    method='get',
    operation_description="Item types available in a menu, with their fields and options",
    manual_parameters=[locale_parameter],
)
@api_view(['GET'])
@permission_classes([IsMenuEditor])
def menu_item_types(request, menu_id):
    menu = tree.get_menu(menu_id)
    locale = tree.require_locale(request.query_params.get('locale'))
    registry = apps.get_app_config('menus').item_types
    return Response(registry.render(menu.slug, locale))


# =============== MENU ITEMS ===============

def _item_data(item):
    """One item with its subtree nested under ``children``"""
    grouped = tree.children_map(MenuItem.objects.descendants_of(item))
    return MenuItemSerializer(item, context={'children_map': grouped}).data


@swagger_auto_schema(
    method='post',
    operation_description="Create a menu item at the end of its sibling list",
    request_body=MenuItemCreateSerializer,
    responses={201: MenuItemSerializer, 400: 'Validation error', 404: 'Menu not found'},
)
@api_view(['POST'])
@permission_classes([IsMenuEditor])
def create_menu_item(request):
    serializer = MenuItemCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    item = tree.create_item(
        data['menu_id'],
        data['locale'],
        data['type'],
        name=data['name'],
        fields=data['fields'],
        enabled=data['enabled'],
        parent_id=data['parent_id'],
    )
    return success(
        status.HTTP_201_CREATED,
        id=item.pk,
        item=MenuItemSerializer(item).data,
    )


@swagger_auto_schema(
    methods=['put', 'patch'],
    request_body=MenuItemUpdateSerializer,
    responses={200: MenuItemSerializer, 404: 'Menu item not found'},
)
@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsMenuEditor])
def menu_item_detail(request, item_id):
    """
    get: Menu item details
    put/patch: Update name, type, enabled flag or field values
    delete: Delete the item together with its descendants
    """
    if request.method == 'GET':
        return Response(_item_data(tree.get_item(item_id)))

    if request.method == 'DELETE':
        result = tree.delete_item(item_id)
        return success(deleted=result.count)

    serializer = MenuItemUpdateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    changes = dict(serializer.validated_data)
    fields = changes.pop('fields', None)

    item = tree.update_item(item_id, fields=fields, **changes)
    return success(item=_item_data(item))


@swagger_auto_schema(
    method='post',
    operation_description="Duplicate a menu item and its subtree right after the original",
    request_body=DuplicateSerializer,
    responses={201: MenuItemSerializer, 404: 'Menu item not found'},
)
@api_view(['POST'])
@permission_classes([IsMenuEditor])
def duplicate_menu_item(request, item_id):
    serializer = DuplicateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    duplicate = tree.duplicate_item(item_id, name=serializer.validated_data.get('name'))
    return success(
        status.HTTP_201_CREATED,
        id=duplicate.pk,
        item=_item_data(duplicate),
    )
