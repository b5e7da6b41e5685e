# permissions.py
from rest_framework.permissions import BasePermission, SAFE_METHODS


class IsStoreAdmin(BasePermission):
    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_staff)


class IsStoreAdminOrReadOnly(BasePermission):
    def has_permission(self, request, view):
        if request.method in SAFE_METHODS:
            return True
        return IsStoreAdmin().has_permission(request, view)
