from rest_framework import permissions
from users.models import User


class HasRole(permissions.BasePermission):
    """
    Admit authenticated users whose role is in ``allowed_roles``.
    Subclasses set ``allowed_roles`` and a ``message``.
    """
    allowed_roles = ()
    message = 'You do not have permission to perform this action.'

    def has_permission(self, request, view):
        return bool(
            request.user and
            request.user.is_authenticated and
            request.user.role in self.allowed_roles
        )


class IsAdmin(HasRole):
    """Only Admin users have access"""
    allowed_roles = (User.Role.ADMIN,)
    message = 'Admin access required.'


class IsOwner(HasRole):
    """Only store Owners have access"""
    allowed_roles = (User.Role.OWNER,)
    message = 'Owner access required.'


class IsStoreUser(HasRole):
    """Only normal (rating) users have access"""
    allowed_roles = (User.Role.USER,)
    message = 'User access required.'
