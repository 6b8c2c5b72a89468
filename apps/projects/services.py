# Project repository operations: creation, owner-only updates and deletion.
import logging
from typing import Any, Dict

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, transaction
from django.utils import timezone

from common.exceptions import DependencyFailure, Forbidden, InvalidState, NotFound, ValidationFailed
from apps.proposals.models import ProposalStatus

from .models import Project, ProjectStatus

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("title", "description", "budget", "category", "skills", "deadline", "status")


def _ensure_future(deadline) -> None:
    if deadline <= timezone.localdate():
        raise ValidationFailed("Deadline must be in the future")


def get_project(project_id) -> Project:
    try:
        return Project.objects.with_summary().get(pk=project_id)
    except (Project.DoesNotExist, DjangoValidationError):
        raise NotFound("Project not found")


def _owned_project(actor, project_id, *, lock: bool = False) -> Project:
    qs = Project.objects.select_for_update() if lock else Project.objects.all()
    try:
        project = qs.get(pk=project_id)
    except (Project.DoesNotExist, DjangoValidationError):
        raise NotFound("Project not found")
    if project.client_id != actor.pk:
        logger.warning("Unauthorized project access user=%s project=%s", actor.pk, project.pk)
        raise Forbidden("Not authorized to modify this project")
    return project


def create_project(client, fields: Dict[str, Any]) -> Project:
    """
    Create an open project for `client` and bump the client's projectsPosted
    counter in the same transaction.
    """
    _ensure_future(fields["deadline"])
    try:
        with transaction.atomic():
            project = Project.objects.create(
                client=client,
                title=fields["title"].strip(),
                description=fields["description"].strip(),
                budget=fields["budget"],
                category=fields["category"].strip(),
                skills=fields["skills"],
                deadline=fields["deadline"],
                status=ProjectStatus.OPEN,
            )
            client.increment_projects_posted()
    except DatabaseError as exc:
        logger.exception("Database error creating project client=%s", client.pk)
        raise DependencyFailure("Failed to create project") from exc

    logger.info("Project created project=%s client=%s", project.pk, client.pk)
    return get_project(project.pk)


def update_project(actor, project_id, fields: Dict[str, Any]) -> Project:
    try:
        with transaction.atomic():
            project = _owned_project(actor, project_id, lock=True)

            new_status = fields.get("status")
            if new_status and not project.can_transition_to(new_status):
                raise InvalidState(f"Cannot change project status from {project.status} to {new_status}")
            if "deadline" in fields and fields["deadline"] != project.deadline:
                _ensure_future(fields["deadline"])

            changed = []
            for name in UPDATABLE_FIELDS:
                if name in fields:
                    value = fields[name]
                    setattr(project, name, value.strip() if isinstance(value, str) else value)
                    changed.append(name)
            if changed:
                project.save(update_fields=changed + ["updated_at"])
    except DatabaseError as exc:
        logger.exception("Database error updating project=%s", project_id)
        raise DependencyFailure("Failed to update project") from exc

    logger.info("Project updated project=%s fields=%s", project.pk, ",".join(changed))
    return get_project(project.pk)


def delete_project(actor, project_id) -> None:
    """Delete a project and its proposals, unless a proposal was already accepted."""
    try:
        with transaction.atomic():
            project = _owned_project(actor, project_id, lock=True)
            if project.proposals.filter(status=ProposalStatus.ACCEPTED).exists():
                raise InvalidState("Cannot delete a project with an accepted proposal")
            project.delete()
    except DatabaseError as exc:
        logger.exception("Database error deleting project=%s", project_id)
        raise DependencyFailure("Failed to delete project") from exc

    logger.info("Project deleted project=%s client=%s", project_id, actor.pk)


def list_for_client(actor):
    return (
        Project.objects.for_client(actor)
        .with_summary()
        .prefetch_related("proposals__freelancer")
        .order_by("-created_at")
    )
