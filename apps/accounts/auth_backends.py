# accounts/auth_backends.py
from typing import Optional

from django.contrib.auth.backends import ModelBackend
from django.utils import timezone

from .models import User


class EmailRoleBackend(ModelBackend):
    """
    Auth with email (case-insensitive) and password, optionally restricted to
    a role. Login requests name the role the user signs in as; a matching
    email registered under the other role does not authenticate.
    """

    def authenticate(self, request, username: Optional[str] = None, password: Optional[str] = None,
                     role: Optional[str] = None, **kwargs):
        email = kwargs.get("email") or username
        if not email or not password:
            return None

        user = User.objects.filter(email__iexact=User.objects.normalize_email(email)).first()
        if user is None:
            # Run the hasher anyway to keep response timing uniform.
            User().set_password(password)
            return None

        if role is not None and user.role != role:
            return None
        if not user.check_password(password) or not self.user_can_authenticate(user):
            return None

        user.last_login = timezone.now()
        user.save(update_fields=["last_login", "updated_at"])
        return user
