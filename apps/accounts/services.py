import logging
from typing import Optional

from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Count, Q, Sum

from common.exceptions import Conflict, DependencyFailure

from .models import Role, User, default_profile

logger = logging.getLogger(__name__)


def register_user(*, name: str, email: str, password: str, role: str) -> User:
    """Create an account with the role's default profile."""
    if User.objects.filter(email__iexact=email).exists():
        logger.warning("Registration failed - user exists email=%s", email)
        raise Conflict("User already exists with this email address")
    try:
        with transaction.atomic():
            user = User.objects.create_user(email=email, password=password, name=name, role=role)
    except IntegrityError as exc:
        raise Conflict("User already exists with this email address") from exc
    except DatabaseError as exc:
        logger.exception("Database error during registration email=%s", email)
        raise DependencyFailure("Failed to create user account") from exc
    logger.info("User registered user=%s role=%s", user.pk, role)
    return user


def update_profile(user: User, *, name: Optional[str] = None, profile: Optional[dict] = None) -> User:
    """Merge validated profile fields into the user's role-shaped profile."""
    with transaction.atomic():
        # re-read under lock so a concurrent projectsPosted bump is not overwritten
        user = User.objects.select_for_update().get(pk=user.pk)
        stored = user.profile or {}
        merged = {**default_profile(user.role), **stored}
        merged.update(profile or {})
        if user.is_client:
            # server-maintained counter
            merged["projectsPosted"] = stored.get("projectsPosted", 0)
        user.profile = merged
        fields = ["profile", "updated_at"]
        if name:
            user.name = name.strip()
            fields.append("name")
        user.save(update_fields=fields)
    logger.info("Profile updated user=%s", user.pk)
    return user


def user_stats(user: User) -> dict:
    from apps.projects.models import Project, ProjectStatus
    from apps.proposals.models import Proposal, ProposalStatus

    if user.role == Role.CLIENT:
        projects = Project.objects.filter(client=user).aggregate(
            total=Count("id"),
            active=Count("id", filter=Q(status=ProjectStatus.IN_PROGRESS)),
            completed=Count("id", filter=Q(status=ProjectStatus.COMPLETED)),
        )
        proposals = Proposal.objects.filter(project__client=user).aggregate(
            total=Count("id"),
            pending=Count("id", filter=Q(status=ProposalStatus.PENDING)),
        )
        return {
            "totalProjects": projects["total"],
            "activeProjects": projects["active"],
            "completedProjects": projects["completed"],
            "totalProposals": proposals["total"],
            "pendingProposals": proposals["pending"],
        }

    proposals = Proposal.objects.filter(freelancer=user).aggregate(
        total=Count("id"),
        accepted=Count("id", filter=Q(status=ProposalStatus.ACCEPTED)),
        pending=Count("id", filter=Q(status=ProposalStatus.PENDING)),
        rejected=Count("id", filter=Q(status=ProposalStatus.REJECTED)),
        earnings=Sum("proposed_budget", filter=Q(status=ProposalStatus.ACCEPTED)),
    )
    total = proposals["total"]
    return {
        "totalProposals": total,
        "acceptedProposals": proposals["accepted"],
        "pendingProposals": proposals["pending"],
        "rejectedProposals": proposals["rejected"],
        "successRate": round(proposals["accepted"] * 100 / total) if total else 0,
        "totalEarnings": proposals["earnings"] or 0,
    }
