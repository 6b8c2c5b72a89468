"""
Best-effort e-mail notifications.

Each notification is registered with transaction.on_commit so nothing goes out
for a rolled-back write, then handed to a Celery task. A failure to enqueue is
logged and dropped; it never reaches the caller.
"""
import logging

from django.db import transaction

from . import tasks

logger = logging.getLogger(__name__)


class EmailNotifier:

    def welcome(self, user):
        self._enqueue(tasks.send_welcome_email, str(user.pk))

    def proposal_submitted(self, proposal):
        self._enqueue(tasks.send_proposal_submitted_email, str(proposal.pk))

    def proposal_status_changed(self, proposal):
        self._enqueue(tasks.send_proposal_status_email, str(proposal.pk))

    @staticmethod
    def _enqueue(task, *args):
        def _send():
            try:
                task.delay(*args)
            except Exception:
                logger.exception("Failed to enqueue %s args=%s", task.name, args)

        transaction.on_commit(_send)
