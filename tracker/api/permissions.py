from __future__ import annotations

from typing import Iterable

from rest_framework.permissions import SAFE_METHODS, BasePermission

from tracker.models import User


class RolePermission(BasePermission):
    """Allow-list of roles per view; ``allowed_roles`` is set from the viewset's role_map."""

    allowed_roles: Iterable[str] | None = None

    def has_permission(self, request, view) -> bool:
        user = getattr(request, 'user', None)
        if not user or not user.is_authenticated:
            return False
        roles = getattr(view, 'allowed_roles', None) or self.allowed_roles
        if not roles:
            return True
        if user.is_superuser:
            return True
        has_any = getattr(user, 'has_any_role', None)
        if callable(has_any):
            return has_any(*roles)
        return getattr(user, 'role', None) in roles


class ReadOnlyForViewers(BasePermission):
    message = 'Viewers have read-only access.'

    def has_permission(self, request, view) -> bool:
        user = getattr(request, 'user', None)
        if not user or not user.is_authenticated:
            return False
        if request.method in SAFE_METHODS or user.is_superuser:
            return True
        return getattr(user, 'role', None) != User.Roles.VIEWER
