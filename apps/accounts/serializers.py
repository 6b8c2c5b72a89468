"""
Serializers for accounts app: registration/login payloads, user
representations and the role-shaped profile documents.
"""
from django.contrib.auth import authenticate
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import exceptions, serializers

from .models import Availability, Role, User


# -------------------------------------------------------------------
# Profile serializers (one per role)
# -------------------------------------------------------------------
class FreelancerProfileSerializer(serializers.Serializer):
    bio = serializers.CharField(required=False, allow_blank=True, max_length=2000)
    skills = serializers.ListField(child=serializers.CharField(max_length=50), required=False)
    hourlyRate = serializers.FloatField(required=False, min_value=0,
                                        error_messages={"min_value": "Hourly rate cannot be negative"})
    portfolio = serializers.ListField(child=serializers.CharField(max_length=500), required=False)
    location = serializers.CharField(required=False, allow_blank=True, max_length=200)
    availability = serializers.ChoiceField(choices=Availability.choices, required=False)

    def validate_skills(self, value):
        return [s.strip() for s in value if s.strip()]


class ClientProfileSerializer(serializers.Serializer):
    bio = serializers.CharField(required=False, allow_blank=True, max_length=2000)
    company = serializers.CharField(required=False, allow_blank=True, max_length=200)
    location = serializers.CharField(required=False, allow_blank=True, max_length=200)
    # maintained by the server when projects are posted
    projectsPosted = serializers.IntegerField(read_only=True)


PROFILE_SERIALIZERS = {
    Role.CLIENT: ClientProfileSerializer,
    Role.FREELANCER: FreelancerProfileSerializer,
}


# -------------------------------------------------------------------
# User serializers
# -------------------------------------------------------------------
class UserSerializer(serializers.ModelSerializer):
    userType = serializers.CharField(source="role", read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)

    class Meta:
        model = User
        fields = ["id", "name", "email", "userType", "profile", "createdAt"]
        read_only_fields = fields


class PublicUserSerializer(serializers.ModelSerializer):
    userType = serializers.CharField(source="role", read_only=True)
    profile = serializers.SerializerMethodField()
    memberSince = serializers.DateTimeField(source="created_at", read_only=True)

    class Meta:
        model = User
        fields = ["id", "name", "userType", "profile", "memberSince"]
        read_only_fields = fields

    def get_profile(self, obj) -> dict:
        return obj.public_profile()


class RegisterSerializer(serializers.Serializer):
    name = serializers.CharField(min_length=2, max_length=200)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, trim_whitespace=False)
    userType = serializers.ChoiceField(choices=Role.choices,
                                       error_messages={"invalid_choice": "User type must be either client or freelancer"})

    def validate_email(self, value):
        return User.objects.normalize_email(value)

    def validate_password(self, value):
        try:
            validate_password(value)
        except DjangoValidationError as exc:
            raise serializers.ValidationError(list(exc.messages))
        return value


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField(write_only=True)
    password = serializers.CharField(write_only=True, trim_whitespace=False)
    userType = serializers.ChoiceField(choices=Role.choices, write_only=True)

    def validate(self, attrs):
        # Prefer passing a Django HttpRequest to auth backends
        req = self.context.get("request")
        if hasattr(req, "_request"):
            req = req._request

        user = authenticate(request=req, email=attrs["email"], password=attrs["password"], role=attrs["userType"])
        if user is None:
            raise exceptions.AuthenticationFailed("Invalid email, password, or user type")

        attrs["user"] = user
        return attrs


class ProfileUpdateSerializer(serializers.Serializer):
    """Top-level user fields; profile fields go through PROFILE_SERIALIZERS."""
    name = serializers.CharField(required=False, min_length=2, max_length=200)


class FreelancerStatsSerializer(serializers.Serializer):
    totalProposals = serializers.IntegerField()
    acceptedProposals = serializers.IntegerField()
    pendingProposals = serializers.IntegerField()
    rejectedProposals = serializers.IntegerField()
    successRate = serializers.IntegerField()
    totalEarnings = serializers.IntegerField()


class ClientStatsSerializer(serializers.Serializer):
    totalProjects = serializers.IntegerField()
    activeProjects = serializers.IntegerField()
    completedProjects = serializers.IntegerField()
    totalProposals = serializers.IntegerField()
    pendingProposals = serializers.IntegerField()
