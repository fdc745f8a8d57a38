from rest_framework.permissions import BasePermission
from .models import STAFF_ROLES


class IsStoreStaff(BasePermission):
    """
    Chief admins, shop reps and developers manage the catalog.
    """
    def has_permission(self, request, view):
        return (
            request.user.is_authenticated and
            (request.user.is_superuser or request.user.role in STAFF_ROLES)
        )
