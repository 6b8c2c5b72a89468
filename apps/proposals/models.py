"""
Proposals: a freelancer's bid on an open project.

At most one proposal exists per (project, freelancer). A proposal leaves
`pending` exactly once; the only later write is the sibling rejection done by
the accept-cascade.
"""
from django.conf import settings
from django.db import models
from django.utils import timezone

from common.models import BaseEntity


class ProposalStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    ACCEPTED = "accepted", "Accepted"
    REJECTED = "rejected", "Rejected"


class ProposalQuerySet(models.QuerySet):
    def with_display(self):
        return self.select_related("project", "project__client", "freelancer")

    def for_project(self, project):
        return self.filter(project=project)

    def for_freelancer(self, user):
        return self.filter(freelancer=user)

    def pending_siblings(self, proposal):
        return self.filter(project_id=proposal.project_id, status=ProposalStatus.PENDING).exclude(pk=proposal.pk)

    def reject_pending_siblings(self, proposal) -> list:
        """Reject every other pending proposal on the project; returns the rejected ids."""
        siblings = self.pending_siblings(proposal)
        ids = list(siblings.values_list("pk", flat=True))
        if ids:
            self.filter(pk__in=ids, status=ProposalStatus.PENDING).update(
                status=ProposalStatus.REJECTED, updated_at=timezone.now(),
            )
        return ids


class Proposal(BaseEntity):
    project = models.ForeignKey("projects.Project", on_delete=models.CASCADE, related_name="proposals")
    freelancer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="proposals")
    cover_letter = models.TextField()
    proposed_budget = models.PositiveIntegerField()
    timeline = models.CharField(max_length=255)
    status = models.CharField(max_length=20, choices=ProposalStatus.choices,
                              default=ProposalStatus.PENDING, db_index=True)

    objects = ProposalQuerySet.as_manager()

    class Meta(BaseEntity.Meta):
        verbose_name = "Proposal"
        verbose_name_plural = "Proposals"
        constraints = [
            models.UniqueConstraint(fields=["project", "freelancer"], name="unique_proposal_per_freelancer"),
        ]

    def __str__(self) -> str:
        return f"{self.freelancer_id} -> {self.project_id} ({self.status})"

    @property
    def is_pending(self) -> bool:
        return self.status == ProposalStatus.PENDING
