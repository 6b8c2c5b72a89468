import logging

from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail
from django.template.loader import render_to_string

logger = logging.getLogger(__name__)


def _deliver(template: str, subject: str, recipient: str, context: dict) -> bool:
    if not getattr(settings, "NOTIFICATIONS_EMAIL_ENABLED", False):
        logger.info("Email disabled; skipping %s to=%s", template, recipient)
        return False
    context = {**context, "frontend_url": settings.FRONTEND_URL}
    body = render_to_string(f"notifications/{template}.txt", context)
    send_mail(subject, body, settings.DEFAULT_FROM_EMAIL, [recipient])
    logger.info("Email sent template=%s to=%s", template, recipient)
    return True


def _retry_or_log(task, exc, what):
    if task.request.retries >= task.max_retries:
        logger.error("Giving up on %s after %d retries: %s", what, task.request.retries, exc)
        return False
    raise task.retry(exc=exc, countdown=min(60 * 2 ** task.request.retries, 3600))


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def send_welcome_email(self, user_id):
    from apps.accounts.models import User

    user = User.objects.filter(pk=user_id).first()
    if user is None:
        return False
    try:
        return _deliver("welcome", "Welcome to SkillBridge!", user.email, {"user": user})
    except Exception as exc:
        return _retry_or_log(self, exc, f"welcome email user={user_id}")


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def send_proposal_submitted_email(self, proposal_id):
    from apps.proposals.models import Proposal

    proposal = Proposal.objects.with_display().filter(pk=proposal_id).first()
    if proposal is None:
        return False
    client = proposal.project.client
    try:
        return _deliver(
            "proposal_submitted",
            f"New proposal for {proposal.project.title}",
            client.email,
            {"client": client, "proposal": proposal, "project": proposal.project, "freelancer": proposal.freelancer},
        )
    except Exception as exc:
        return _retry_or_log(self, exc, f"proposal submitted email proposal={proposal_id}")


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def send_proposal_status_email(self, proposal_id):
    from apps.proposals.models import Proposal

    proposal = Proposal.objects.with_display().filter(pk=proposal_id).first()
    if proposal is None:
        return False
    try:
        return _deliver(
            "proposal_status",
            f"Your proposal for {proposal.project.title} was {proposal.status}",
            proposal.freelancer.email,
            {"freelancer": proposal.freelancer, "proposal": proposal, "project": proposal.project},
        )
    except Exception as exc:
        return _retry_or_log(self, exc, f"proposal status email proposal={proposal_id}")
