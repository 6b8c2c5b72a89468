"""
Proposal workflow: submission, the accept/reject cascade, withdrawal and the
two listing views.

Every precondition is checked before the first write. The accept-cascade
(proposal accepted, project in progress, pending siblings rejected) runs in a
single transaction with the proposal and project rows locked, so concurrent
accepts on one project serialize and only the first to commit succeeds.
"""
import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, IntegrityError, transaction

from apps.projects.models import Project, ProjectStatus
from common.exceptions import (
    Conflict,
    DependencyFailure,
    Forbidden,
    InvalidOperation,
    InvalidState,
    NotFound,
    ValidationFailed,
)

from .models import Proposal, ProposalStatus

logger = logging.getLogger(__name__)

DECISIONS = (ProposalStatus.ACCEPTED, ProposalStatus.REJECTED)


class ProposalWorkflow:
    """
    Core proposal state machine. `notifier` receives best-effort
    notifications (proposal_submitted / proposal_status_changed); it is never
    allowed to fail an operation.
    """

    def __init__(self, notifier):
        self.notifier = notifier

    # ------------------------------------------------------------------
    # lookups
    # ------------------------------------------------------------------
    @staticmethod
    def _get_project(project_id, *, lock=False) -> Project:
        qs = Project.objects.select_for_update() if lock else Project.objects.select_related("client")
        try:
            return qs.get(pk=project_id)
        except (Project.DoesNotExist, DjangoValidationError):
            raise NotFound("Project not found")

    @staticmethod
    def _get_proposal(proposal_id, *, lock=False) -> Proposal:
        qs = Proposal.objects.select_for_update() if lock else Proposal.objects.all()
        try:
            return qs.get(pk=proposal_id)
        except (Proposal.DoesNotExist, DjangoValidationError):
            raise NotFound("Proposal not found")

    # ------------------------------------------------------------------
    # operations
    # ------------------------------------------------------------------
    def submit(self, actor, project_id, cover_letter: str, proposed_budget: int, timeline: str) -> Proposal:
        try:
            with transaction.atomic():
                # the project row lock serializes submission against a concurrent accept-cascade
                project = self._get_project(project_id, lock=True)
                if project.status != ProjectStatus.OPEN:
                    raise InvalidState("Project is not accepting proposals")
                if project.client_id == actor.pk:
                    raise InvalidOperation("Cannot submit proposal to your own project")
                if Proposal.objects.filter(project=project, freelancer=actor).exists():
                    raise Conflict("You have already submitted a proposal for this project")

                try:
                    with transaction.atomic():
                        proposal = Proposal.objects.create(
                            project=project,
                            freelancer=actor,
                            cover_letter=cover_letter.strip(),
                            proposed_budget=proposed_budget,
                            timeline=timeline.strip(),
                            status=ProposalStatus.PENDING,
                        )
                except IntegrityError as exc:
                    # lost the race against a concurrent submission for the same pair
                    raise Conflict("You have already submitted a proposal for this project") from exc
        except DatabaseError as exc:
            logger.exception("Database error submitting proposal project=%s freelancer=%s", project_id, actor.pk)
            raise DependencyFailure("Failed to submit proposal") from exc

        logger.info("Proposal submitted proposal=%s project=%s freelancer=%s", proposal.pk, project.pk, actor.pk)
        self.notifier.proposal_submitted(proposal)
        return proposal

    def update_status(self, actor, proposal_id, new_status: str) -> Proposal:
        if new_status not in DECISIONS:
            raise ValidationFailed("Status must be either accepted or rejected")

        cascaded = []
        try:
            with transaction.atomic():
                proposal = self._get_proposal(proposal_id, lock=True)
                project = self._get_project(proposal.project_id, lock=True)

                if project.client_id != actor.pk:
                    logger.warning("Unauthorized proposal status update user=%s proposal=%s", actor.pk, proposal.pk)
                    raise Forbidden("Not authorized to update this proposal")
                if proposal.status != ProposalStatus.PENDING:
                    raise InvalidState("Only pending proposals can be updated")
                if new_status == ProposalStatus.ACCEPTED and project.status != ProjectStatus.OPEN:
                    raise InvalidState("Project is no longer accepting proposals")

                proposal.status = new_status
                proposal.save(update_fields=["status", "updated_at"])

                if new_status == ProposalStatus.ACCEPTED:
                    project.status = ProjectStatus.IN_PROGRESS
                    project.save(update_fields=["status", "updated_at"])
                    cascaded = Proposal.objects.reject_pending_siblings(proposal)
        except DatabaseError as exc:
            logger.exception("Database error updating proposal=%s status=%s", proposal_id, new_status)
            raise DependencyFailure("Failed to update proposal status") from exc

        proposal = Proposal.objects.with_display().get(pk=proposal.pk)
        logger.info("Proposal %s proposal=%s project=%s cascaded=%d",
                    new_status, proposal.pk, proposal.project_id, len(cascaded))

        self.notifier.proposal_status_changed(proposal)
        if cascaded:
            for sibling in Proposal.objects.with_display().filter(pk__in=cascaded):
                self.notifier.proposal_status_changed(sibling)
        return proposal

    def delete(self, actor, proposal_id) -> None:
        try:
            with transaction.atomic():
                proposal = self._get_proposal(proposal_id, lock=True)
                if proposal.freelancer_id != actor.pk:
                    logger.warning("Unauthorized proposal delete user=%s proposal=%s", actor.pk, proposal.pk)
                    raise Forbidden("Not authorized to delete this proposal")
                if proposal.status == ProposalStatus.ACCEPTED:
                    raise InvalidState("Cannot delete an accepted proposal")
                proposal.delete()
        except DatabaseError as exc:
            logger.exception("Database error deleting proposal=%s", proposal_id)
            raise DependencyFailure("Failed to delete proposal") from exc

        logger.info("Proposal deleted proposal=%s freelancer=%s", proposal_id, actor.pk)

    def list_for_project(self, actor, project_id):
        project = self._get_project(project_id)
        if project.client_id != actor.pk:
            logger.warning("Unauthorized proposal listing user=%s project=%s", actor.pk, project.pk)
            raise Forbidden("Not authorized to view these proposals")
        return Proposal.objects.with_display().for_project(project).order_by("-created_at")

    def list_for_freelancer(self, actor):
        return Proposal.objects.with_display().for_freelancer(actor).order_by("-created_at")
