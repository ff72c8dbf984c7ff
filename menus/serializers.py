from rest_framework import serializers

from .fields import decode_fields, to_storage
from .models import Menu, MenuItem


class FieldBagField(serializers.Field):
    """
    Opaque per-item payload. Incoming values are tagged scalar/structured
    here and stored as plain JSON.
    """
    default_error_messages = {
        'not_a_dict': 'Expected an object of field values but got {input_type}.',
    }

    def to_internal_value(self, data):
        if not isinstance(data, dict):
            self.fail('not_a_dict', input_type=type(data).__name__)
        return to_storage(decode_fields(data))

    def to_representation(self, value):
        return value


class MenuSerializer(serializers.ModelSerializer):
    title = serializers.CharField(read_only=True)

    class Meta:
        model = Menu
        fields = ['id', 'title', 'name', 'slug']


class MenuItemSerializer(serializers.ModelSerializer):
    fields = FieldBagField(read_only=True)
    depth = serializers.IntegerField(read_only=True)
    children = serializers.SerializerMethodField()

    class Meta:
        model = MenuItem
        fields = [
            'id', 'menu', 'locale', 'parent', 'path', 'depth', 'order',
            'type', 'name', 'fields', 'enabled', 'children',
            'created_at', 'updated_at',
        ]
        read_only_fields = [
            'id', 'menu', 'locale', 'parent', 'path', 'order',
            'type', 'name', 'enabled', 'created_at', 'updated_at',
        ]

    def get_children(self, obj):
        """Nested children when rendered as a tree, otherwise empty"""
        children_map = self.context.get('children_map')
        if children_map is None:
            return []
        children = children_map.get(obj.pk, [])
        return MenuItemSerializer(children, many=True, context=self.context).data


class MenuItemCreateSerializer(serializers.Serializer):
    menu_id = serializers.IntegerField()
    # Missing locale is reported as locale_required by the tree layer
    locale = serializers.CharField(required=False, allow_blank=True, default='')
    type = serializers.CharField(max_length=100)
    name = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    enabled = serializers.BooleanField(required=False, default=True)
    parent_id = serializers.IntegerField(required=False, allow_null=True, default=None)
    fields = FieldBagField(required=False, default=dict)


class MenuItemUpdateSerializer(serializers.Serializer):
    type = serializers.CharField(max_length=100, required=False)
    name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    enabled = serializers.BooleanField(required=False)
    fields = FieldBagField(required=False)


class DuplicateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, required=False, allow_blank=True)


class MenuCopySerializer(serializers.Serializer):
    from_menu_id = serializers.IntegerField()
    to_menu_id = serializers.IntegerField()
    from_locale = serializers.CharField(required=False, allow_blank=True, default='')
    to_locale = serializers.CharField(required=False, allow_blank=True, default='')


class SnapshotEntrySerializer(serializers.Serializer):
    """One node of a submitted tree: ``{"id": 3, "children": [...]}``"""
    id = serializers.IntegerField()
    children = serializers.ListField(child=serializers.DictField(), required=False, default=list)

    def validate_children(self, value):
        serializer = SnapshotEntrySerializer(data=value, many=True)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data


class ReorderSerializer(serializers.Serializer):
    locale = serializers.CharField(required=False, allow_blank=True, default='')
    menu_items = SnapshotEntrySerializer(many=True, allow_empty=True)


def plain_tree(entries):
    """Validated snapshot entries as plain ``{"id", "children"}`` dicts"""
    return [
        {'id': entry['id'], 'children': plain_tree(entry.get('children') or [])}
        for entry in entries
    ]
