"""
Projects posted by clients.

A project is `open` while it accepts proposals, moves to `in_progress` only
through the proposal accept-cascade, and ends `completed` or `cancelled`.
"""
from django.conf import settings
from django.db import models
from django.db.models import Count

from common.models import BaseEntity


class ProjectStatus(models.TextChoices):
    OPEN = "open", "Open"
    IN_PROGRESS = "in_progress", "In progress"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


# Status changes a client may make directly; open -> in_progress belongs to
# the accept-cascade.
ALLOWED_STATUS_TRANSITIONS = {
    ProjectStatus.OPEN: {ProjectStatus.CANCELLED},
    ProjectStatus.IN_PROGRESS: {ProjectStatus.COMPLETED, ProjectStatus.CANCELLED},
    ProjectStatus.COMPLETED: set(),
    ProjectStatus.CANCELLED: set(),
}


class ProjectQuerySet(models.QuerySet):
    def with_summary(self):
        return self.select_related("client").annotate(proposal_count=Count("proposals"))

    def open(self):
        return self.filter(status=ProjectStatus.OPEN)

    def for_client(self, user):
        return self.filter(client=user)


class Project(BaseEntity):
    client = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="projects")
    title = models.CharField(max_length=200)
    description = models.TextField()
    budget = models.PositiveIntegerField()
    category = models.CharField(max_length=100, db_index=True)
    skills = models.JSONField(default=list, blank=True)
    deadline = models.DateField()
    status = models.CharField(max_length=20, choices=ProjectStatus.choices,
                              default=ProjectStatus.OPEN, db_index=True)

    objects = ProjectQuerySet.as_manager()

    class Meta(BaseEntity.Meta):
        verbose_name = "Project"
        verbose_name_plural = "Projects"

    def __str__(self) -> str:
        return self.title

    @property
    def is_open(self) -> bool:
        return self.status == ProjectStatus.OPEN

    def can_transition_to(self, status: str) -> bool:
        return status == self.status or status in ALLOWED_STATUS_TRANSITIONS.get(self.status, set())
