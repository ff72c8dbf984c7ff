from rest_framework import permissions


class IsMenuEditor(permissions.BasePermission):
    """
    Permission to only allow staff users to read and edit menus
    """
    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and request.user.is_staff)
