"""
Accounts models: the marketplace identity store.

A user is either a client or a freelancer. The role also decides the shape of
the `profile` document (see serializers.PROFILE_SERIALIZERS).
"""
from typing import Optional

from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.db import models

from common.models import BaseEntity


class Role(models.TextChoices):
    CLIENT = "client", "Client"
    FREELANCER = "freelancer", "Freelancer"


class Availability(models.TextChoices):
    AVAILABLE = "available", "Available"
    BUSY = "busy", "Busy"
    UNAVAILABLE = "unavailable", "Unavailable"


def default_profile(role: str) -> dict:
    if role == Role.FREELANCER:
        return {
            "bio": "",
            "skills": [],
            "hourlyRate": 0,
            "portfolio": [],
            "location": "",
            "availability": Availability.AVAILABLE.value,
        }
    return {
        "bio": "",
        "company": "",
        "location": "",
        "projectsPosted": 0,
    }


# ---------------------------------------------------------------------
# User manager
# ---------------------------------------------------------------------
class UserManager(BaseUserManager):
    use_in_migrations = True

    @staticmethod
    def normalize_email(email: Optional[str]) -> str:
        # Emails are unique case-insensitively, so store them case-folded.
        return (email or "").strip().lower()

    def _create_user(self, *, email: str, password: Optional[str], name: str, role: str, **extra):
        if not email:
            raise ValueError("Users must have an email address")
        if role not in Role.values:
            raise ValueError(f"Unknown role: {role}")

        user = self.model(
            email=self.normalize_email(email),
            name=name.strip(),
            role=role,
            profile=extra.pop("profile", None) or default_profile(role),
            **extra,
        )
        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()
        user.save(using=self._db)
        return user

    def create_user(self, email: str, password: Optional[str] = None, **extra):
        name = extra.pop("name", "")
        role = extra.pop("role", Role.CLIENT)
        extra.setdefault("is_staff", False)
        extra.setdefault("is_superuser", False)
        return self._create_user(email=email, password=password, name=name, role=role, **extra)

    def create_superuser(self, email: str, password: str, **extra):
        if not password:
            raise ValueError("Superuser must have a password")
        name = extra.pop("name", "Administrator")
        role = extra.pop("role", Role.CLIENT)
        extra.setdefault("is_staff", True)
        extra.setdefault("is_superuser", True)
        if extra.get("is_staff") is not True:
            raise ValueError("Superuser must have is_staff=True.")
        if extra.get("is_superuser") is not True:
            raise ValueError("Superuser must have is_superuser=True.")
        return self._create_user(email=email, password=password, name=name, role=role, **extra)

    def get_by_natural_key(self, key: str):
        return self.get(email__iexact=self.normalize_email(key))

    def freelancers(self):
        return self.filter(role=Role.FREELANCER, is_active=True)


# ---------------------------------------------------------------------
# User model
# ---------------------------------------------------------------------
class User(AbstractBaseUser, PermissionsMixin, BaseEntity):
    email = models.EmailField(unique=True)
    name = models.CharField(max_length=200)
    role = models.CharField(max_length=20, choices=Role.choices, db_index=True)
    profile = models.JSONField(default=dict, blank=True)

    # Django
    is_staff = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)

    objects = UserManager()

    USERNAME_FIELD = "email"
    EMAIL_FIELD = "email"
    REQUIRED_FIELDS = ["name", "role"]

    class Meta(BaseEntity.Meta):
        verbose_name = "User"
        verbose_name_plural = "Users"

    def __str__(self) -> str:
        return f"{self.name} <{self.email}>"

    @property
    def is_client(self) -> bool:
        return self.role == Role.CLIENT

    @property
    def is_freelancer(self) -> bool:
        return self.role == Role.FREELANCER

    def public_profile(self) -> dict:
        """Profile fields safe to show to other users."""
        profile = {**default_profile(self.role), **(self.profile or {})}
        public = {
            "bio": profile.get("bio", ""),
            "location": profile.get("location", ""),
        }
        if self.is_freelancer:
            public.update(
                skills=profile.get("skills", []),
                portfolio=profile.get("portfolio", []),
                hourlyRate=profile.get("hourlyRate", 0),
                availability=profile.get("availability", Availability.AVAILABLE.value),
            )
        else:
            public.update(
                company=profile.get("company", ""),
                projectsPosted=profile.get("projectsPosted", 0),
            )
        return public

    def increment_projects_posted(self) -> None:
        """Bump the posted-projects counter. Must run inside a transaction."""
        locked = type(self).objects.select_for_update().get(pk=self.pk)
        profile = {**default_profile(locked.role), **(locked.profile or {})}
        profile["projectsPosted"] = int(profile.get("projectsPosted") or 0) + 1
        locked.profile = profile
        locked.save(update_fields=["profile", "updated_at"])
        self.profile = locked.profile
        self.updated_at = locked.updated_at
