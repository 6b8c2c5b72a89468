from datetime import timedelta
from unittest import mock

from django.core import mail
from django.test import TestCase, override_settings
from django.utils import timezone

from apps.accounts.models import Role, User
from apps.projects.models import Project
from apps.proposals.models import Proposal, ProposalStatus

from . import tasks
from .services import EmailNotifier


class NotificationTaskTests(TestCase):
    def setUp(self):
        self.owner = User.objects.create_user(email="client@example.com", password="secret123",
                                              name="Carla", role=Role.CLIENT)
        self.freelancer = User.objects.create_user(email="dev@example.com", password="secret123",
                                                   name="Dev", role=Role.FREELANCER)
        project = Project.objects.create(client=self.owner, title="Build a website & blog",
                                         description="We need a marketing website with a blog.", budget=1000,
                                         category="Web", skills=["react"],
                                         deadline=timezone.localdate() + timedelta(days=30))
        self.proposal = Proposal.objects.create(project=project, freelancer=self.freelancer,
                                                cover_letter="x" * 60, proposed_budget=900, timeline="2 weeks")

    def test_welcome_email(self):
        self.assertTrue(tasks.send_welcome_email(str(self.freelancer.pk)))
        self.assertEqual(mail.outbox[0].to, ["dev@example.com"])
        self.assertIn("Hi Dev", mail.outbox[0].body)

    def test_proposal_submitted_email_goes_to_client(self):
        tasks.send_proposal_submitted_email(str(self.proposal.pk))
        message = mail.outbox[0]
        self.assertEqual(message.to, ["client@example.com"])
        self.assertIn("Dev submitted a proposal", message.body)
        self.assertIn('"Build a website & blog"', message.body)

    def test_proposal_status_email_goes_to_freelancer(self):
        Proposal.objects.filter(pk=self.proposal.pk).update(status=ProposalStatus.REJECTED)
        tasks.send_proposal_status_email(str(self.proposal.pk))
        self.assertEqual(mail.outbox[0].to, ["dev@example.com"])
        self.assertIn("was rejected", mail.outbox[0].subject)

    def test_missing_proposal_is_ignored(self):
        self.assertFalse(tasks.send_proposal_status_email("00000000-0000-0000-0000-000000000000"))
        self.assertEqual(mail.outbox, [])

    @override_settings(NOTIFICATIONS_EMAIL_ENABLED=False)
    def test_disabled_email_only_logs(self):
        with self.assertLogs("apps.notifications.tasks", level="INFO"):
            self.assertFalse(tasks.send_welcome_email(str(self.owner.pk)))
        self.assertEqual(mail.outbox, [])


class EmailNotifierTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(email="client@example.com", password="secret123",
                                             name="Carla", role=Role.CLIENT)

    def test_nothing_sent_before_commit(self):
        with self.captureOnCommitCallbacks(execute=False) as callbacks:
            EmailNotifier().welcome(self.user)
        self.assertEqual(len(callbacks), 1)
        self.assertEqual(mail.outbox, [])

    def test_enqueue_failure_is_logged_and_swallowed(self):
        with mock.patch.object(tasks.send_welcome_email, "delay", side_effect=ConnectionError("broker down")):
            with self.assertLogs("apps.notifications.services", level="ERROR"):
                with self.captureOnCommitCallbacks(execute=True):
                    EmailNotifier().welcome(self.user)
        self.assertEqual(mail.outbox, [])
