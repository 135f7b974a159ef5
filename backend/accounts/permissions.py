from rest_framework import permissions

class IsManager(permissions.BasePermission):
    """
    Custom permission to only allow manager users to perform certain actions.
    """
    def has_permission(self, request, view):
        return request.user.is_authenticated and (request.user.role == 'manager' or request.user.is_superuser)

class CanManageRateCards(permissions.BasePermission):
    """
    Anyone signed in can read the catalogue; only managers can change it.
    """
    def has_permission(self, request, view):
        if not request.user.is_authenticated:
            return False
        if request.method in permissions.SAFE_METHODS:
            return True
        return request.user.role == 'manager' or request.user.is_superuser
