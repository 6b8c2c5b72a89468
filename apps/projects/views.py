import logging

from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import OpenApiParameter, extend_schema, extend_schema_view
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from common.permissions import IsClient

from . import services
from .filters import ProjectFilter, ordering_from_params
from .models import Project
from .serializers import MyProjectSerializer, ProjectSerializer, ProjectWriteSerializer

logger = logging.getLogger(__name__)

UUID_PATTERN = "[0-9a-fA-F-]{36}"


@extend_schema_view(
    list=extend_schema(
        summary="Browse projects",
        parameters=[
            OpenApiParameter("sortBy", str, enum=["created_at", "budget", "deadline", "title"]),
            OpenApiParameter("sortOrder", str, enum=["asc", "desc"]),
        ],
        tags=["Projects"],
    ),
    retrieve=extend_schema(summary="Project details", tags=["Projects"]),
    create=extend_schema(summary="Post a project", request=ProjectWriteSerializer, tags=["Projects"]),
    update=extend_schema(summary="Update a project", request=ProjectWriteSerializer, tags=["Projects"]),
    partial_update=extend_schema(summary="Update a project", request=ProjectWriteSerializer, tags=["Projects"]),
    destroy=extend_schema(summary="Delete a project", tags=["Projects"]),
)
class ProjectViewSet(viewsets.GenericViewSet):
    serializer_class = ProjectSerializer
    filter_backends = [DjangoFilterBackend]
    filterset_class = ProjectFilter
    lookup_value_regex = UUID_PATTERN

    def get_queryset(self):
        return Project.objects.with_summary()

    def get_permissions(self):
        if self.action in ("list", "retrieve"):
            return [AllowAny()]
        if self.action in ("create", "my_projects"):
            return [IsAuthenticated(), IsClient()]
        return [IsAuthenticated()]

    def get_throttles(self):
        if self.action == "create":
            self.throttle_scope = "project_create"
        return super().get_throttles()

    def list(self, request):
        queryset = self.filter_queryset(self.get_queryset()).order_by(ordering_from_params(request.query_params))
        page = self.paginate_queryset(queryset)
        return self.get_paginated_response(ProjectSerializer(page, many=True).data)

    def retrieve(self, request, pk=None):
        project = services.get_project(pk)
        return Response({"project": ProjectSerializer(project).data})

    def create(self, request):
        serializer = ProjectWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        project = services.create_project(request.user, serializer.validated_data)
        return Response(
            {"message": "Project created successfully", "project": ProjectSerializer(project).data},
            status=status.HTTP_201_CREATED,
        )

    def update(self, request, pk=None):
        serializer = ProjectWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        project = services.update_project(request.user, pk, serializer.validated_data)
        return Response({"message": "Project updated successfully", "project": ProjectSerializer(project).data})

    partial_update = update

    def destroy(self, request, pk=None):
        services.delete_project(request.user, pk)
        return Response({"message": "Project deleted successfully"})

    @extend_schema(summary="Projects posted by the caller", responses={200: MyProjectSerializer(many=True)},
                   tags=["Projects"])
    @action(detail=False, methods=["get"], url_path="user/my-projects", filter_backends=[])
    def my_projects(self, request):
        queryset = services.list_for_client(request.user)
        page = self.paginate_queryset(queryset)
        return self.get_paginated_response(MyProjectSerializer(page, many=True).data)
