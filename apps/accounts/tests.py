from datetime import timedelta

from django.core import mail
from django.db import transaction
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken

from apps.projects.models import Project, ProjectStatus
from apps.proposals.models import Proposal, ProposalStatus

from . import services
from .models import Availability, Role, User
from .tokens import issue_token_for_user


def make_user(email, role, name="Test User", password="secret123", **profile):
    user = User.objects.create_user(email=email, password=password, name=name, role=role)
    if profile:
        user.profile = {**user.profile, **profile}
        user.save(update_fields=["profile"])
    return user


class UserModelTests(TestCase):
    def test_create_user_sets_role_profile(self):
        user = make_user("Dev@Example.com", Role.FREELANCER)
        self.assertEqual(user.email, "dev@example.com")
        self.assertEqual(user.profile["availability"], Availability.AVAILABLE)
        self.assertEqual(user.profile["skills"], [])
        self.assertNotIn("company", user.profile)

    def test_client_profile_shape(self):
        user = make_user("client@example.com", Role.CLIENT)
        self.assertEqual(user.profile["projectsPosted"], 0)
        self.assertNotIn("hourlyRate", user.profile)

    def test_public_profile_hides_nothing_sensitive(self):
        user = make_user("client@example.com", Role.CLIENT, company="Acme")
        public = user.public_profile()
        self.assertEqual(public["company"], "Acme")
        self.assertNotIn("email", public)


class RegisterLoginTests(TestCase):
    def setUp(self):
        self.client = APIClient()

    def register(self, **overrides):
        payload = {"name": "Jane Doe", "email": "jane@example.com", "password": "secret123", "userType": "client"}
        payload.update(overrides)
        return self.client.post("/api/auth/register", payload, format="json")

    def test_register_returns_token_with_claims(self):
        resp = self.register()
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.data["user"]["userType"], "client")
        self.assertNotIn("password", resp.data["user"])

        token = AccessToken(resp.data["token"])
        user = User.objects.get(email="jane@example.com")
        self.assertEqual(token["userId"], str(user.id))
        self.assertEqual(token["email"], "jane@example.com")
        self.assertEqual(token["userType"], "client")

    def test_register_duplicate_email_is_conflict(self):
        self.register()
        resp = self.register(email="JANE@example.com", userType="freelancer")
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.data["code"], "conflict")
        self.assertEqual(User.objects.count(), 1)

    def test_register_validation_errors(self):
        resp = self.register(password="123", name="J", userType="admin")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.data["code"], "validation_failed")
        for field in ("password", "name", "userType"):
            self.assertIn(field, resp.data["details"])

    def test_register_sends_welcome_email_after_commit(self):
        with self.captureOnCommitCallbacks(execute=True):
            resp = self.register()
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ["jane@example.com"])
        self.assertIn("Welcome", mail.outbox[0].subject)

    def test_login(self):
        make_user("dev@example.com", Role.FREELANCER)
        resp = self.client.post("/api/auth/login",
                                {"email": "DEV@example.com", "password": "secret123", "userType": "freelancer"},
                                format="json")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["user"]["email"], "dev@example.com")
        self.assertIsNotNone(User.objects.get(email="dev@example.com").last_login)

    def test_login_with_wrong_role_or_password_fails(self):
        make_user("dev@example.com", Role.FREELANCER)
        for payload in (
            {"email": "dev@example.com", "password": "secret123", "userType": "client"},
            {"email": "dev@example.com", "password": "wrong-pass", "userType": "freelancer"},
            {"email": "nobody@example.com", "password": "secret123", "userType": "freelancer"},
        ):
            resp = self.client.post("/api/auth/login", payload, format="json")
            self.assertEqual(resp.status_code, 401)
            self.assertEqual(resp.data["error"], "Invalid email, password, or user type")


class TokenAuthTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = make_user("client@example.com", Role.CLIENT)

    def test_me_requires_token(self):
        resp = self.client.get("/api/auth/me")
        self.assertEqual(resp.status_code, 401)
        self.assertIn("timestamp", resp.data)

    def test_me_with_token(self):
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {issue_token_for_user(self.user)}")
        resp = self.client.get("/api/auth/me")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["user"]["id"], str(self.user.id))

    def test_invalid_token_rejected(self):
        self.client.credentials(HTTP_AUTHORIZATION="Bearer not-a-token")
        self.assertEqual(self.client.get("/api/auth/me").status_code, 401)

    def test_expired_token_rejected(self):
        token = AccessToken.for_user(self.user)
        token.set_exp(from_time=timezone.now() - timedelta(days=8))
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
        self.assertEqual(self.client.get("/api/auth/me").status_code, 401)

    def test_token_for_deleted_user_rejected(self):
        token = issue_token_for_user(self.user)
        self.user.delete()
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
        self.assertEqual(self.client.get("/api/auth/me").status_code, 401)

    def test_logout(self):
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {issue_token_for_user(self.user)}")
        resp = self.client.post("/api/auth/logout")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["message"], "Logout successful")


class ProfileTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.freelancer = make_user("dev@example.com", Role.FREELANCER)
        self.owner = make_user("client@example.com", Role.CLIENT)

    def auth(self, user):
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {issue_token_for_user(user)}")

    def test_freelancer_updates_profile(self):
        self.auth(self.freelancer)
        resp = self.client.put("/api/users/profile",
                               {"name": "Dev Person", "skills": [" python ", "django"], "hourlyRate": 45},
                               format="json")
        self.assertEqual(resp.status_code, 200)
        self.freelancer.refresh_from_db()
        self.assertEqual(self.freelancer.name, "Dev Person")
        self.assertEqual(self.freelancer.profile["skills"], ["python", "django"])
        self.assertEqual(self.freelancer.profile["hourlyRate"], 45)
        self.assertEqual(self.freelancer.profile["availability"], "available")

    def test_negative_hourly_rate_rejected(self):
        self.auth(self.freelancer)
        resp = self.client.put("/api/users/profile", {"hourlyRate": -5}, format="json")
        self.assertEqual(resp.status_code, 400)
        self.assertIn("hourlyRate", resp.data["details"])

    def test_client_cannot_set_projects_posted(self):
        self.auth(self.owner)
        resp = self.client.put("/api/users/profile", {"company": "Acme", "projectsPosted": 99}, format="json")
        self.assertEqual(resp.status_code, 200)
        self.owner.refresh_from_db()
        self.assertEqual(self.owner.profile["company"], "Acme")
        self.assertEqual(self.owner.profile["projectsPosted"], 0)
        self.assertNotIn("hourlyRate", self.owner.profile)

    def test_public_profile_has_no_email(self):
        resp = self.client.get(f"/api/users/{self.freelancer.id}")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["user"]["name"], "Test User")
        self.assertNotIn("email", resp.data["user"])

    def test_public_profile_accepts_uppercase_id(self):
        resp = self.client.get(f"/api/users/{str(self.freelancer.id).upper()}")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["user"]["id"], str(self.freelancer.id))

    def test_profile_update_keeps_concurrent_projects_posted(self):
        stale = User.objects.get(pk=self.owner.pk)
        with transaction.atomic():
            User.objects.get(pk=self.owner.pk).increment_projects_posted()
        services.update_profile(stale, profile={"company": "Acme"})
        self.owner.refresh_from_db()
        self.assertEqual(self.owner.profile["projectsPosted"], 1)
        self.assertEqual(self.owner.profile["company"], "Acme")

    def test_public_profile_unknown_user(self):
        resp = self.client.get("/api/users/00000000-0000-0000-0000-000000000000")
        self.assertEqual(resp.status_code, 404)


class FreelancerSearchTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        make_user("a@example.com", Role.FREELANCER, name="Alice", skills=["React", "Node"], hourlyRate=40,
                  location="Berlin")
        make_user("b@example.com", Role.FREELANCER, name="Bob", skills=["Python"], hourlyRate=80,
                  location="Lisbon")
        make_user("c@example.com", Role.FREELANCER, name="Carol", skills=["React"], hourlyRate=60,
                  availability=Availability.BUSY)
        make_user("client@example.com", Role.CLIENT, name="Client")

    def names(self, query=""):
        resp = self.client.get(f"/api/users/search/freelancers{query}")
        self.assertEqual(resp.status_code, 200)
        return {u["name"] for u in resp.data["results"]}

    def test_defaults_to_available_freelancers(self):
        self.assertEqual(self.names(), {"Alice", "Bob"})

    def test_filters(self):
        self.assertEqual(self.names("?skills=react"), {"Alice"})
        self.assertEqual(self.names("?skills=react&availability=busy"), {"Carol"})
        self.assertEqual(self.names("?minRate=50"), {"Bob"})
        self.assertEqual(self.names("?maxRate=50"), {"Alice"})
        self.assertEqual(self.names("?location=lis"), {"Bob"})

    def test_skill_matches_whole_tags(self):
        make_user("j@example.com", Role.FREELANCER, name="Jo", skills=["Java"])
        make_user("s@example.com", Role.FREELANCER, name="Sam", skills=["JavaScript"])
        self.assertEqual(self.names("?skills=java"), {"Jo"})
        self.assertEqual(self.names("?skills=javascript"), {"Sam"})
        self.assertEqual(self.names("?skills=no"), set())

    def test_sort_by_hourly_rate(self):
        resp = self.client.get("/api/users/search/freelancers?sortBy=hourlyRate&sortOrder=asc")
        self.assertEqual([u["name"] for u in resp.data["results"]], ["Alice", "Bob"])


class StatsTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.owner = make_user("client@example.com", Role.CLIENT)
        self.freelancer = make_user("dev@example.com", Role.FREELANCER)
        deadline = timezone.localdate() + timedelta(days=30)
        fields = {"description": "A reasonably long description", "category": "web", "skills": ["python"],
                  "deadline": deadline}
        self.p1 = Project.objects.create(client=self.owner, title="Project one", budget=1000,
                                         status=ProjectStatus.IN_PROGRESS, **fields)
        self.p2 = Project.objects.create(client=self.owner, title="Project two", budget=500, **fields)
        self.p3 = Project.objects.create(client=self.owner, title="Project three", budget=300, **fields)
        letter = "x" * 60
        Proposal.objects.create(project=self.p1, freelancer=self.freelancer, cover_letter=letter,
                                proposed_budget=900, timeline="2 weeks", status=ProposalStatus.ACCEPTED)
        Proposal.objects.create(project=self.p2, freelancer=self.freelancer, cover_letter=letter,
                                proposed_budget=450, timeline="1 week")
        Proposal.objects.create(project=self.p3, freelancer=self.freelancer, cover_letter=letter,
                                proposed_budget=250, timeline="1 week", status=ProposalStatus.REJECTED)

    def stats_for(self, user):
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {issue_token_for_user(user)}")
        resp = self.client.get("/api/users/stats")
        self.assertEqual(resp.status_code, 200)
        return resp.data["stats"]

    def test_freelancer_stats(self):
        stats = self.stats_for(self.freelancer)
        self.assertEqual(stats["totalProposals"], 3)
        self.assertEqual(stats["acceptedProposals"], 1)
        self.assertEqual(stats["pendingProposals"], 1)
        self.assertEqual(stats["rejectedProposals"], 1)
        self.assertEqual(stats["successRate"], 33)
        self.assertEqual(stats["totalEarnings"], 900)

    def test_client_stats(self):
        stats = self.stats_for(self.owner)
        self.assertEqual(stats["totalProjects"], 3)
        self.assertEqual(stats["activeProjects"], 1)
        self.assertEqual(stats["completedProjects"], 0)
        self.assertEqual(stats["totalProposals"], 3)
        self.assertEqual(stats["pendingProposals"], 1)


class HealthTests(TestCase):
    def test_health(self):
        resp = APIClient().get("/api/health")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["status"], "OK")
