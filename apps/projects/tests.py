from datetime import timedelta

from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from apps.accounts.models import Role, User
from apps.accounts.tokens import issue_token_for_user
from apps.proposals.models import Proposal, ProposalStatus
from common.exceptions import Forbidden, InvalidState, ValidationFailed

from . import services
from .models import Project, ProjectStatus


def future(days=30):
    return timezone.localdate() + timedelta(days=days)


def make_project(client, **overrides):
    fields = {
        "title": "Build a website",
        "description": "We need a marketing website with a blog.",
        "budget": 1000,
        "category": "Web Development",
        "skills": ["react", "node"],
        "deadline": future(),
    }
    fields.update(overrides)
    return Project.objects.create(client=client, **fields)


class ProjectServiceTests(TestCase):
    def setUp(self):
        self.owner = User.objects.create_user(email="client@example.com", password="secret123",
                                              name="Client", role=Role.CLIENT)
        self.other = User.objects.create_user(email="other@example.com", password="secret123",
                                              name="Other", role=Role.CLIENT)
        self.freelancer = User.objects.create_user(email="dev@example.com", password="secret123",
                                                   name="Dev", role=Role.FREELANCER)

    def test_create_increments_projects_posted(self):
        project = services.create_project(self.owner, {
            "title": "Data pipeline", "description": "Build an ETL pipeline for sales data.",
            "budget": 2500, "category": "Data", "skills": ["python"], "deadline": future(),
        })
        self.assertEqual(project.status, ProjectStatus.OPEN)
        self.assertEqual(project.proposal_count, 0)
        self.owner.refresh_from_db()
        self.assertEqual(self.owner.profile["projectsPosted"], 1)

    def test_projects_posted_counts_every_creation_from_stale_copies(self):
        fields = {"title": "Data pipeline", "description": "Build an ETL pipeline for sales data.",
                  "budget": 2500, "category": "Data", "skills": ["python"]}
        first = User.objects.get(pk=self.owner.pk)
        second = User.objects.get(pk=self.owner.pk)
        services.create_project(first, {**fields, "deadline": future()})
        services.create_project(second, {**fields, "deadline": future()})
        self.owner.refresh_from_db()
        self.assertEqual(self.owner.profile["projectsPosted"], 2)

    def test_create_rejects_past_deadline(self):
        with self.assertRaises(ValidationFailed):
            services.create_project(self.owner, {
                "title": "Data pipeline", "description": "Build an ETL pipeline for sales data.",
                "budget": 2500, "category": "Data", "skills": ["python"], "deadline": timezone.localdate(),
            })
        self.assertFalse(Project.objects.exists())

    def test_update_requires_owner(self):
        project = make_project(self.owner)
        with self.assertRaises(Forbidden):
            services.update_project(self.other, project.id, {"title": "Hijacked title"})

    def test_status_transitions(self):
        project = make_project(self.owner)
        with self.assertRaises(InvalidState):
            services.update_project(self.owner, project.id, {"status": ProjectStatus.IN_PROGRESS})
        with self.assertRaises(InvalidState):
            services.update_project(self.owner, project.id, {"status": ProjectStatus.COMPLETED})

        project = services.update_project(self.owner, project.id, {"status": ProjectStatus.CANCELLED})
        self.assertEqual(project.status, ProjectStatus.CANCELLED)
        with self.assertRaises(InvalidState):
            services.update_project(self.owner, project.id, {"status": ProjectStatus.OPEN})

    def test_in_progress_can_complete(self):
        project = make_project(self.owner, status=ProjectStatus.IN_PROGRESS)
        project = services.update_project(self.owner, project.id, {"status": ProjectStatus.COMPLETED})
        self.assertEqual(project.status, ProjectStatus.COMPLETED)

    def test_delete_cascades_to_proposals(self):
        project = make_project(self.owner)
        Proposal.objects.create(project=project, freelancer=self.freelancer, cover_letter="x" * 60,
                                proposed_budget=900, timeline="2 weeks")
        services.delete_project(self.owner, project.id)
        self.assertFalse(Project.objects.exists())
        self.assertFalse(Proposal.objects.exists())

    def test_delete_blocked_by_accepted_proposal(self):
        project = make_project(self.owner, status=ProjectStatus.IN_PROGRESS)
        Proposal.objects.create(project=project, freelancer=self.freelancer, cover_letter="x" * 60,
                                proposed_budget=900, timeline="2 weeks", status=ProposalStatus.ACCEPTED)
        with self.assertRaises(InvalidState):
            services.delete_project(self.owner, project.id)
        self.assertTrue(Project.objects.filter(pk=project.pk).exists())


class ProjectAPITests(TestCase):
    def setUp(self):
        self.api = APIClient()
        self.owner = User.objects.create_user(email="client@example.com", password="secret123",
                                              name="Client", role=Role.CLIENT)
        self.freelancer = User.objects.create_user(email="dev@example.com", password="secret123",
                                                   name="Dev", role=Role.FREELANCER)

    def auth(self, user):
        self.api.credentials(HTTP_AUTHORIZATION=f"Bearer {issue_token_for_user(user)}")

    def payload(self, **overrides):
        data = {
            "title": "Mobile app MVP",
            "description": "Cross-platform app for booking appointments.",
            "budget": 5000,
            "category": "Mobile",
            "skills": ["Flutter", " Dart "],
            "deadline": future().isoformat(),
        }
        data.update(overrides)
        return data

    def test_client_creates_project(self):
        self.auth(self.owner)
        resp = self.api.post("/api/projects", self.payload(), format="json")
        self.assertEqual(resp.status_code, 201)
        project = resp.data["project"]
        self.assertEqual(project["status"], "open")
        self.assertEqual(project["skills"], ["flutter", "dart"])
        self.assertEqual(project["clientId"], str(self.owner.id))
        self.assertEqual(project["client"]["name"], "Client")

    def test_freelancer_cannot_create_project(self):
        self.auth(self.freelancer)
        resp = self.api.post("/api/projects", self.payload(), format="json")
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.data["error"], "Insufficient permissions")

    def test_anonymous_cannot_create_project(self):
        resp = self.api.post("/api/projects", self.payload(), format="json")
        self.assertEqual(resp.status_code, 401)

    def test_create_validation(self):
        self.auth(self.owner)
        resp = self.api.post("/api/projects", self.payload(title="App", skills=[], budget=0), format="json")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.data["code"], "validation_failed")
        for field in ("title", "skills", "budget"):
            self.assertIn(field, resp.data["details"])

        yesterday = (timezone.localdate() - timedelta(days=1)).isoformat()
        resp = self.api.post("/api/projects", self.payload(deadline=yesterday), format="json")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.data["error"], "Deadline must be in the future")

    def test_list_filters_and_sorting(self):
        make_project(self.owner, title="React storefront", budget=800, skills=["react"], category="Web")
        make_project(self.owner, title="Django backend", budget=3000, skills=["python", "django"],
                     category="Web", description="REST API for an inventory system.")
        make_project(self.owner, title="Logo design", budget=200, skills=["figma"], category="Design")
        make_project(self.owner, title="Closed project", status=ProjectStatus.CANCELLED)

        def titles(query=""):
            resp = self.api.get(f"/api/projects{query}")
            self.assertEqual(resp.status_code, 200)
            return [p["title"] for p in resp.data["results"]]

        self.assertEqual(len(titles()), 3)
        self.assertEqual(set(titles("?category=web")), {"React storefront", "Django backend"})
        self.assertEqual(set(titles("?skills=react,figma")), {"React storefront", "Logo design"})
        self.assertEqual(titles("?minBudget=500&maxBudget=1000"), ["React storefront"])
        self.assertEqual(titles("?search=inventory"), ["Django backend"])
        self.assertEqual(titles("?status=cancelled"), ["Closed project"])
        self.assertEqual(titles("?sortBy=budget&sortOrder=asc"),
                         ["Logo design", "React storefront", "Django backend"])
        self.assertEqual(len(titles("?sortBy=password")), 3)

    def test_pagination(self):
        for i in range(3):
            make_project(self.owner, title=f"Project number {i}")
        resp = self.api.get("/api/projects?limit=2&page=2")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["meta"]["count"], 3)
        self.assertEqual(resp.data["meta"]["total_pages"], 2)
        self.assertEqual(len(resp.data["results"]), 1)

    def test_retrieve(self):
        project = make_project(self.owner)
        Proposal.objects.create(project=project, freelancer=self.freelancer, cover_letter="x" * 60,
                                proposed_budget=900, timeline="2 weeks")
        resp = self.api.get(f"/api/projects/{project.id}")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["project"]["proposalCount"], 1)
        self.assertNotIn("email", resp.data["project"]["client"])

    def test_retrieve_missing(self):
        resp = self.api.get("/api/projects/00000000-0000-0000-0000-000000000000")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.data["code"], "not_found")

    def test_update_and_delete(self):
        project = make_project(self.owner)
        self.auth(self.owner)
        resp = self.api.put(f"/api/projects/{project.id}", {"budget": 1500}, format="json")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["project"]["budget"], 1500)
        self.assertEqual(resp.data["project"]["title"], "Build a website")

        resp = self.api.delete(f"/api/projects/{project.id}")
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(Project.objects.exists())

    def test_update_by_non_owner_forbidden(self):
        project = make_project(self.owner)
        self.auth(self.freelancer)
        resp = self.api.patch(f"/api/projects/{project.id}", {"budget": 1}, format="json")
        self.assertEqual(resp.status_code, 403)

    def test_my_projects(self):
        project = make_project(self.owner)
        make_project(User.objects.create_user(email="x@example.com", password="secret123", name="X",
                                              role=Role.CLIENT))
        Proposal.objects.create(project=project, freelancer=self.freelancer, cover_letter="x" * 60,
                                proposed_budget=900, timeline="2 weeks")
        self.auth(self.owner)
        resp = self.api.get("/api/projects/user/my-projects")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(resp.data["results"]), 1)
        self.assertEqual(resp.data["results"][0]["proposals"][0]["freelancerName"], "Dev")
