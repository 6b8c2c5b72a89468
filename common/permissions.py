import logging

from rest_framework import permissions

logger = logging.getLogger(__name__)


class HasRole(permissions.BasePermission):
    """
    Allow only authenticated users whose `role` matches `required_role`.
    Subclasses set `required_role`.
    """
    required_role = None
    message = "Insufficient permissions"

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        if user.role != self.required_role:
            logger.warning(
                "Insufficient permissions user=%s role=%s required=%s path=%s",
                user.pk, user.role, self.required_role, request.path,
            )
            return False
        return True


class IsClient(HasRole):
    required_role = "client"


class IsFreelancer(HasRole):
    required_role = "freelancer"
