from datetime import timedelta
from unittest import mock

from django.db import DatabaseError
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from apps.accounts.models import Role, User
from apps.accounts.tokens import issue_token_for_user
from apps.projects.models import Project, ProjectStatus
from common.exceptions import Conflict, DependencyFailure, Forbidden, InvalidOperation, InvalidState, NotFound

from .models import Proposal, ProposalQuerySet, ProposalStatus
from .services import ProposalWorkflow

COVER_LETTER = "I have shipped several similar projects and can start right away on this one."
MISSING_ID = "00000000-0000-0000-0000-000000000000"


class RecordingNotifier:
    def __init__(self):
        self.submitted = []
        self.status_changed = []

    def proposal_submitted(self, proposal):
        self.submitted.append(proposal.pk)

    def proposal_status_changed(self, proposal):
        self.status_changed.append((proposal.pk, proposal.status))


def make_user(email, role, name=None):
    return User.objects.create_user(email=email, password="secret123", name=name or email.split("@")[0], role=role)


def make_project(client, **overrides):
    fields = {
        "title": "Build a website",
        "description": "We need a marketing website with a blog.",
        "budget": 1000,
        "category": "Web",
        "skills": ["react"],
        "deadline": timezone.localdate() + timedelta(days=30),
    }
    fields.update(overrides)
    return Project.objects.create(client=client, **fields)


def make_proposal(project, freelancer, status=ProposalStatus.PENDING):
    return Proposal.objects.create(project=project, freelancer=freelancer, cover_letter=COVER_LETTER,
                                   proposed_budget=900, timeline="2 weeks", status=status)


class WorkflowTestCase(TestCase):
    def setUp(self):
        self.owner = make_user("client@example.com", Role.CLIENT)
        self.other_client = make_user("other@example.com", Role.CLIENT)
        self.f1 = make_user("f1@example.com", Role.FREELANCER)
        self.f2 = make_user("f2@example.com", Role.FREELANCER)
        self.f3 = make_user("f3@example.com", Role.FREELANCER)
        self.project = make_project(self.owner)
        self.notifier = RecordingNotifier()
        self.workflow = ProposalWorkflow(self.notifier)

    def submit(self, actor, project=None):
        return self.workflow.submit(actor, (project or self.project).pk, COVER_LETTER, 900, "2 weeks")


class SubmitTests(WorkflowTestCase):
    def test_submit_creates_pending_proposal(self):
        proposal = self.submit(self.f1)
        self.assertEqual(proposal.status, ProposalStatus.PENDING)
        self.assertEqual(proposal.project.title, "Build a website")
        self.assertEqual(proposal.freelancer.name, "f1")
        self.assertEqual(self.notifier.submitted, [proposal.pk])

    def test_missing_project(self):
        with self.assertRaises(NotFound):
            self.workflow.submit(self.f1, MISSING_ID, COVER_LETTER, 900, "2 weeks")

    def test_closed_projects_reject_submissions(self):
        for status in (ProjectStatus.IN_PROGRESS, ProjectStatus.COMPLETED, ProjectStatus.CANCELLED):
            project = make_project(self.owner, status=status)
            with self.assertRaises(InvalidState):
                self.submit(self.f1, project)
        self.assertFalse(Proposal.objects.exists())

    def test_closed_check_precedes_self_proposal_check(self):
        project = make_project(self.owner, status=ProjectStatus.CANCELLED)
        with self.assertRaises(InvalidState):
            self.submit(self.owner, project)

    def test_cannot_propose_to_own_project(self):
        with self.assertRaises(InvalidOperation):
            self.submit(self.owner)

    def test_duplicate_pair_is_conflict(self):
        self.submit(self.f1)
        with self.assertRaises(Conflict):
            self.submit(self.f1)
        self.assertEqual(Proposal.objects.filter(project=self.project, freelancer=self.f1).count(), 1)

    def test_submission_rechecks_status_under_project_lock(self):
        # an accept-cascade commits while this submission waits for the project row
        rival = make_proposal(self.project, self.f2)
        lookup = ProposalWorkflow._get_project

        def accept_lands_first(project_id, *, lock=False):
            if lock:
                Proposal.objects.filter(pk=rival.pk).update(status=ProposalStatus.ACCEPTED)
                Project.objects.filter(pk=project_id).update(status=ProjectStatus.IN_PROGRESS)
            return lookup(project_id, lock=lock)

        with mock.patch.object(ProposalWorkflow, "_get_project", side_effect=accept_lands_first):
            with self.assertRaises(InvalidState):
                self.submit(self.f1)
        self.assertFalse(Proposal.objects.filter(freelancer=self.f1).exists())
        self.assertEqual(self.notifier.submitted, [])

    def test_unique_constraint_closes_check_then_insert_race(self):
        make_proposal(self.project, self.f1)
        with mock.patch("apps.proposals.services.Proposal.objects.filter") as pre_check:
            pre_check.return_value.exists.return_value = False
            with self.assertRaises(Conflict):
                self.submit(self.f1)
        self.assertEqual(Proposal.objects.filter(project=self.project, freelancer=self.f1).count(), 1)


class UpdateStatusTests(WorkflowTestCase):
    def test_accept_cascade(self):
        a = make_proposal(self.project, self.f1)
        b = make_proposal(self.project, self.f2)
        c = make_proposal(self.project, self.f3, status=ProposalStatus.REJECTED)
        c_updated_at = c.updated_at

        result = self.workflow.update_status(self.owner, a.pk, ProposalStatus.ACCEPTED)

        self.assertEqual(result.status, ProposalStatus.ACCEPTED)
        for proposal, expected in ((a, "accepted"), (b, "rejected"), (c, "rejected")):
            proposal.refresh_from_db()
            self.assertEqual(proposal.status, expected)
        self.assertEqual(c.updated_at, c_updated_at)
        self.project.refresh_from_db()
        self.assertEqual(self.project.status, ProjectStatus.IN_PROGRESS)
        self.assertEqual(self.notifier.status_changed, [(a.pk, "accepted"), (b.pk, "rejected")])

    def test_reject_has_no_cascade(self):
        a = make_proposal(self.project, self.f1)
        b = make_proposal(self.project, self.f2)
        self.workflow.update_status(self.owner, a.pk, ProposalStatus.REJECTED)
        a.refresh_from_db()
        b.refresh_from_db()
        self.project.refresh_from_db()
        self.assertEqual(a.status, ProposalStatus.REJECTED)
        self.assertEqual(b.status, ProposalStatus.PENDING)
        self.assertEqual(self.project.status, ProjectStatus.OPEN)

    def test_second_accept_on_same_project_fails(self):
        a = make_proposal(self.project, self.f1)
        b = make_proposal(self.project, self.f2)
        self.workflow.update_status(self.owner, a.pk, ProposalStatus.ACCEPTED)
        with self.assertRaises(InvalidState):
            self.workflow.update_status(self.owner, b.pk, ProposalStatus.ACCEPTED)
        self.assertEqual(Proposal.objects.filter(project=self.project, status=ProposalStatus.ACCEPTED).count(), 1)

    def test_accept_rereads_project_status(self):
        # a pending proposal on a project that left `open` after it was submitted
        b = make_proposal(self.project, self.f2)
        Project.objects.filter(pk=self.project.pk).update(status=ProjectStatus.IN_PROGRESS)
        with self.assertRaises(InvalidState):
            self.workflow.update_status(self.owner, b.pk, ProposalStatus.ACCEPTED)
        b.refresh_from_db()
        self.assertEqual(b.status, ProposalStatus.PENDING)
        self.assertEqual(self.notifier.status_changed, [])

    def test_only_pending_proposals_can_be_updated(self):
        rejected = make_proposal(self.project, self.f1, status=ProposalStatus.REJECTED)
        for new_status in (ProposalStatus.ACCEPTED, ProposalStatus.REJECTED):
            with self.assertRaises(InvalidState):
                self.workflow.update_status(self.owner, rejected.pk, new_status)

    def test_non_owner_is_forbidden_regardless_of_status(self):
        proposals = [
            make_proposal(self.project, self.f1),
            make_proposal(self.project, self.f2, status=ProposalStatus.REJECTED),
            make_proposal(make_project(self.owner, status=ProjectStatus.IN_PROGRESS), self.f3,
                          status=ProposalStatus.ACCEPTED),
        ]
        for proposal in proposals:
            for actor in (self.other_client, proposal.freelancer, self.f3):
                for new_status in (ProposalStatus.ACCEPTED, ProposalStatus.REJECTED):
                    with self.assertRaises(Forbidden):
                        self.workflow.update_status(actor, proposal.pk, new_status)

    def test_failed_cascade_leaves_nothing_applied(self):
        a = make_proposal(self.project, self.f1)
        b = make_proposal(self.project, self.f2)
        with mock.patch.object(ProposalQuerySet, "reject_pending_siblings",
                               side_effect=DatabaseError("disk I/O error")):
            with self.assertLogs("apps.proposals.services", level="ERROR"):
                with self.assertRaises(DependencyFailure):
                    self.workflow.update_status(self.owner, a.pk, ProposalStatus.ACCEPTED)

        a.refresh_from_db()
        b.refresh_from_db()
        self.project.refresh_from_db()
        self.assertEqual(a.status, ProposalStatus.PENDING)
        self.assertEqual(b.status, ProposalStatus.PENDING)
        self.assertEqual(self.project.status, ProjectStatus.OPEN)
        self.assertEqual(self.notifier.status_changed, [])

    def test_missing_proposal(self):
        with self.assertRaises(NotFound):
            self.workflow.update_status(self.owner, MISSING_ID, ProposalStatus.ACCEPTED)


class DeleteTests(WorkflowTestCase):
    def test_delete_twice_is_not_found(self):
        proposal = make_proposal(self.project, self.f1)
        self.workflow.delete(self.f1, proposal.pk)
        with self.assertRaises(NotFound):
            self.workflow.delete(self.f1, proposal.pk)

    def test_only_owner_can_delete(self):
        proposal = make_proposal(self.project, self.f1)
        for actor in (self.f2, self.owner):
            with self.assertRaises(Forbidden):
                self.workflow.delete(actor, proposal.pk)
        self.assertTrue(Proposal.objects.filter(pk=proposal.pk).exists())

    def test_accepted_proposal_cannot_be_deleted(self):
        proposal = make_proposal(self.project, self.f1)
        self.workflow.update_status(self.owner, proposal.pk, ProposalStatus.ACCEPTED)
        with self.assertRaises(InvalidState):
            self.workflow.delete(self.f1, proposal.pk)
        self.assertTrue(Proposal.objects.filter(pk=proposal.pk).exists())

    def test_rejected_proposal_can_be_deleted(self):
        proposal = make_proposal(self.project, self.f1, status=ProposalStatus.REJECTED)
        self.workflow.delete(self.f1, proposal.pk)
        self.assertFalse(Proposal.objects.filter(pk=proposal.pk).exists())


class ListingTests(WorkflowTestCase):
    def test_list_for_project(self):
        first = make_proposal(self.project, self.f1)
        second = make_proposal(self.project, self.f2)
        make_proposal(make_project(self.other_client), self.f3)
        Proposal.objects.filter(pk=first.pk).update(created_at=timezone.now() - timedelta(hours=1))

        proposals = list(self.workflow.list_for_project(self.owner, self.project.pk))
        self.assertEqual([p.pk for p in proposals], [second.pk, first.pk])

    def test_list_for_project_requires_owner(self):
        with self.assertRaises(Forbidden):
            self.workflow.list_for_project(self.other_client, self.project.pk)
        with self.assertRaises(NotFound):
            self.workflow.list_for_project(self.owner, MISSING_ID)

    def test_list_for_freelancer(self):
        mine = make_proposal(self.project, self.f1)
        make_proposal(self.project, self.f2)
        self.assertEqual([p.pk for p in self.workflow.list_for_freelancer(self.f1)], [mine.pk])


class ProposalAPITests(TestCase):
    def setUp(self):
        self.client_user = make_user("client@example.com", Role.CLIENT, name="Carla Client")
        self.f = make_user("f@example.com", Role.FREELANCER, name="Fiona Freelancer")
        self.g = make_user("g@example.com", Role.FREELANCER, name="Gary Freelancer")
        self.project = make_project(self.client_user)

    def api_for(self, user):
        api = APIClient()
        api.credentials(HTTP_AUTHORIZATION=f"Bearer {issue_token_for_user(user)}")
        return api

    def submit(self, user, **overrides):
        payload = {"projectId": str(self.project.pk), "coverLetter": COVER_LETTER,
                   "proposedBudget": 1000, "timeline": "2 weeks"}
        payload.update(overrides)
        return self.api_for(user).post("/api/proposals", payload, format="json")

    def test_end_to_end_scenario(self):
        resp = self.submit(self.g)
        self.assertEqual(resp.status_code, 201)
        g_proposal_id = resp.data["proposal"]["id"]

        resp = self.submit(self.f)
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.data["proposal"]["status"], "pending")
        self.assertEqual(resp.data["proposal"]["projectTitle"], "Build a website")
        self.assertEqual(resp.data["proposal"]["freelancerName"], "Fiona Freelancer")
        f_proposal_id = resp.data["proposal"]["id"]

        resp = self.api_for(self.client_user).put(f"/api/proposals/{f_proposal_id}/status",
                                                  {"status": "accepted"}, format="json")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["proposal"]["status"], "accepted")
        self.project.refresh_from_db()
        self.assertEqual(self.project.status, ProjectStatus.IN_PROGRESS)
        self.assertEqual(Proposal.objects.get(pk=g_proposal_id).status, ProposalStatus.REJECTED)

        resp = self.api_for(self.g).delete(f"/api/proposals/{g_proposal_id}")
        self.assertEqual(resp.status_code, 200)

        resp = self.api_for(self.f).delete(f"/api/proposals/{f_proposal_id}")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.data["code"], "invalid_state")

    def test_submission_errors(self):
        self.assertEqual(self.submit(self.f, projectId=MISSING_ID).status_code, 404)
        self.assertEqual(self.submit(self.f).status_code, 201)

        resp = self.submit(self.f)
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.data["code"], "conflict")

        resp = self.submit(self.g, coverLetter="Too short", proposedBudget=0, timeline="x")
        self.assertEqual(resp.status_code, 400)
        for field in ("coverLetter", "proposedBudget", "timeline"):
            self.assertIn(field, resp.data["details"])

    def test_role_gates(self):
        resp = self.submit(self.client_user)
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.data["error"], "Insufficient permissions")

        proposal = make_proposal(self.project, self.f)
        resp = self.api_for(self.f).put(f"/api/proposals/{proposal.pk}/status", {"status": "accepted"},
                                        format="json")
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(APIClient().get("/api/proposals/my-proposals").status_code, 401)

    def test_database_failure_is_a_generic_500(self):
        proposal = make_proposal(self.project, self.f)
        with mock.patch.object(ProposalQuerySet, "reject_pending_siblings",
                               side_effect=DatabaseError("disk I/O error")):
            with self.assertLogs("apps.proposals.services", level="ERROR"):
                resp = self.api_for(self.client_user).put(f"/api/proposals/{proposal.pk}/status",
                                                          {"status": "accepted"}, format="json")
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.data["code"], "dependency_failure")
        self.assertEqual(resp.data["error"], "Failed to update proposal status")
        self.assertNotIn("trace", resp.data)
        self.assertNotIn("disk I/O", str(resp.data))
        proposal.refresh_from_db()
        self.assertEqual(proposal.status, ProposalStatus.PENDING)

    def test_status_update_errors(self):
        proposal = make_proposal(self.project, self.f)
        other = make_user("other@example.com", Role.CLIENT)

        resp = self.api_for(other).put(f"/api/proposals/{proposal.pk}/status", {"status": "rejected"},
                                       format="json")
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.data["code"], "forbidden")

        resp = self.api_for(self.client_user).put(f"/api/proposals/{MISSING_ID}/status",
                                                  {"status": "accepted"}, format="json")
        self.assertEqual(resp.status_code, 404)

        resp = self.api_for(self.client_user).put(f"/api/proposals/{proposal.pk}/status",
                                                  {"status": "pending"}, format="json")
        self.assertEqual(resp.status_code, 400)

    def test_listings(self):
        make_proposal(self.project, self.f)
        make_proposal(self.project, self.g)

        resp = self.api_for(self.client_user).get(f"/api/proposals/project/{self.project.pk}")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(resp.data["proposals"]), 2)
        self.assertIn("freelancerProfile", resp.data["proposals"][0])
        self.assertNotIn("email", resp.data["proposals"][0]["freelancerProfile"])

        resp = self.api_for(self.f).get("/api/proposals/my-proposals")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["meta"]["count"], 1)
        mine = resp.data["results"][0]
        self.assertEqual(mine["projectBudget"], 1000)
        self.assertEqual(mine["projectStatus"], "open")
        self.assertEqual(mine["clientName"], "Carla Client")

    def test_notifications_sent_after_commit(self):
        from django.core import mail

        with self.captureOnCommitCallbacks(execute=True):
            resp = self.submit(self.f)
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(mail.outbox[-1].to, ["client@example.com"])
        self.assertIn("Build a website", mail.outbox[-1].subject)

        with self.captureOnCommitCallbacks(execute=True):
            self.api_for(self.client_user).put(f"/api/proposals/{resp.data['proposal']['id']}/status",
                                               {"status": "accepted"}, format="json")
        self.assertEqual(mail.outbox[-1].to, ["f@example.com"])
        self.assertIn("accepted", mail.outbox[-1].subject)
