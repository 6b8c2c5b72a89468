"""
Signals for new accounts: queue the welcome email once the user row commits.
"""
import logging

from django.db.models.signals import post_save
from django.dispatch import receiver

from .models import User

logger = logging.getLogger(__name__)


@receiver(post_save, sender=User)
def send_welcome_on_create(sender, instance: User, created: bool, raw: bool = False, **kwargs):
    if not created or raw or instance.is_superuser:
        return

    from apps.notifications.services import EmailNotifier

    EmailNotifier().welcome(instance)
