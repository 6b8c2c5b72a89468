"""
Accounts views with JWT-based auth.

- Register & Login issue a SimpleJWT access token (payload {userId, email, userType}).
- Logout is stateless: clients discard the token.
- Users: public profiles, profile updates, freelancer search and dashboard stats.
"""
import logging

from django.shortcuts import get_object_or_404
from django.utils import timezone
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import exceptions, mixins, serializers, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from . import services
from .filters import FreelancerFilter
from .models import User
from .tokens import issue_token_for_user
from .serializers import (
    PROFILE_SERIALIZERS,
    ClientStatsSerializer,
    FreelancerStatsSerializer,
    LoginSerializer,
    ProfileUpdateSerializer,
    PublicUserSerializer,
    RegisterSerializer,
    UserSerializer,
)

logger = logging.getLogger(__name__)


# -----------------------------
# Response shapes
# -----------------------------
class AuthResponseSerializer(serializers.Serializer):
    message = serializers.CharField(read_only=True)
    user = UserSerializer(read_only=True)
    token = serializers.CharField(read_only=True)


# -----------------------------
# Auth endpoints: Register/Login/Me/Logout (JWT)
# -----------------------------
@extend_schema(
    summary="Register a new account (returns JWT)",
    request=RegisterSerializer,
    responses={201: AuthResponseSerializer, 409: OpenApiResponse(description="Email already registered")},
    tags=["Auth"],
)
class RegisterView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_scope = "auth"

    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        logger.info("Registration attempt email=%s role=%s", data["email"], data["userType"])

        user = services.register_user(
            name=data["name"], email=data["email"], password=data["password"], role=data["userType"],
        )
        return Response(
            {
                "message": "Account created successfully",
                "user": UserSerializer(user).data,
                "token": issue_token_for_user(user),
            },
            status=status.HTTP_201_CREATED,
        )


@extend_schema(
    summary="Login (email + password + user type) -> returns JWT",
    request=LoginSerializer,
    responses={200: AuthResponseSerializer, 401: OpenApiResponse(description="Invalid credentials")},
    tags=["Auth"],
)
class LoginView(APIView):
    permission_classes = [AllowAny]
    throttle_scope = "auth"

    def post(self, request):
        logger.info("Login attempt email=%s role=%s", request.data.get("email"), request.data.get("userType"))
        serializer = LoginSerializer(data=request.data, context={"request": request})
        try:
            serializer.is_valid(raise_exception=True)
        except exceptions.APIException:
            logger.warning("Login failed email=%s", request.data.get("email"))
            raise
        user = serializer.validated_data["user"]

        logger.info("User logged in user=%s role=%s", user.pk, user.role)
        return Response(
            {
                "message": "Login successful",
                "user": UserSerializer(user).data,
                "token": issue_token_for_user(user),
            },
            status=status.HTTP_200_OK,
        )


@extend_schema(summary="Current user", responses={200: UserSerializer}, tags=["Auth"])
class MeView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response({"user": UserSerializer(request.user).data})


@extend_schema(
    summary="Logout (JWT)",
    description="Tokens are stateless; this endpoint records the logout and clients discard the token.",
    request=None,
    tags=["Auth"],
)
class LogoutView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        logger.info("User logged out user=%s", request.user.pk)
        return Response({"message": "Logout successful"})


@extend_schema(summary="Health check", request=None, tags=["Health"])
class HealthView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        return Response({
            "status": "OK",
            "message": "SkillBridge API is running",
            "timestamp": timezone.now().isoformat(),
        })


# -----------------------------
# Users
# -----------------------------
class UserViewSet(mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    queryset = User.objects.filter(is_active=True)
    serializer_class = PublicUserSerializer
    filterset_class = None
    lookup_value_regex = "[0-9a-fA-F-]{36}"

    def get_permissions(self):
        if self.action in ("retrieve", "search_freelancers"):
            return [AllowAny()]
        return [IsAuthenticated()]

    @extend_schema(summary="Public profile of a user", tags=["Users"])
    def retrieve(self, request, *args, **kwargs):
        user = get_object_or_404(self.get_queryset(), pk=kwargs["pk"])
        logger.info("Public profile fetched user=%s", user.pk)
        return Response({"user": PublicUserSerializer(user).data})

    @extend_schema(
        summary="Update the caller's profile",
        description="Accepts `name` plus the profile fields of the caller's role.",
        request=ProfileUpdateSerializer,
        responses={200: UserSerializer},
        tags=["Users"],
    )
    @action(detail=False, methods=["put", "patch"], url_path="profile")
    def profile(self, request):
        user = request.user
        top = ProfileUpdateSerializer(data=request.data)
        top.is_valid(raise_exception=True)
        profile = PROFILE_SERIALIZERS[user.role](data=request.data, partial=True)
        profile.is_valid(raise_exception=True)

        user = services.update_profile(user, name=top.validated_data.get("name"), profile=profile.validated_data)
        return Response({"message": "Profile updated successfully", "user": UserSerializer(user).data})

    @extend_schema(summary="Search freelancers", responses={200: PublicUserSerializer(many=True)}, tags=["Users"])
    @action(detail=False, methods=["get"], url_path="search/freelancers",
            filter_backends=[DjangoFilterBackend], filterset_class=FreelancerFilter)
    def search_freelancers(self, request):
        queryset = self.filter_queryset(User.objects.freelancers())
        ascending = request.query_params.get("sortOrder") == "asc"
        if request.query_params.get("sortBy") == "hourlyRate":
            queryset = queryset.order_by(("" if ascending else "-") + "profile__hourlyRate")
        else:
            queryset = queryset.order_by("created_at" if ascending else "-created_at")

        page = self.paginate_queryset(queryset)
        data = PublicUserSerializer(page, many=True).data
        logger.info("Freelancers search completed count=%s", len(data))
        return self.get_paginated_response(data)

    @extend_schema(
        summary="Dashboard statistics for the caller",
        responses={200: OpenApiResponse(description="Client or freelancer stats")},
        tags=["Users"],
    )
    @action(detail=False, methods=["get"], url_path="stats")
    def stats(self, request):
        user = request.user
        serializer_class = ClientStatsSerializer if user.is_client else FreelancerStatsSerializer
        stats = serializer_class(services.user_stats(user)).data
        logger.info("User stats fetched user=%s role=%s", user.pk, user.role)
        return Response({"stats": stats})
