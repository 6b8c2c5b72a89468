import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from apps.notifications.services import EmailNotifier
from common.permissions import IsClient, IsFreelancer

from .services import ProposalWorkflow
from .serializers import (
    MyProposalSerializer,
    ProjectProposalSerializer,
    ProposalSerializer,
    ProposalStatusSerializer,
    ProposalSubmitSerializer,
)

logger = logging.getLogger(__name__)


class ProposalViewSet(viewsets.GenericViewSet):
    """
    Proposal endpoints. Freelancers submit, list and withdraw their own
    proposals; a project's client lists and decides on the proposals it got.
    """
    serializer_class = ProposalSerializer
    lookup_value_regex = "[0-9a-fA-F-]{36}"

    CLIENT_ACTIONS = ("for_project", "set_status")

    def get_permissions(self):
        if self.action in self.CLIENT_ACTIONS:
            return [IsAuthenticated(), IsClient()]
        return [IsAuthenticated(), IsFreelancer()]

    def get_throttles(self):
        if self.action == "create":
            self.throttle_scope = "proposal_submit"
        return super().get_throttles()

    def get_workflow(self) -> ProposalWorkflow:
        return ProposalWorkflow(notifier=EmailNotifier())

    @extend_schema(
        summary="Submit a proposal",
        request=ProposalSubmitSerializer,
        responses={201: ProposalSerializer, 404: OpenApiResponse(description="Project not found"),
                   409: OpenApiResponse(description="Already submitted")},
        tags=["Proposals"],
    )
    def create(self, request):
        serializer = ProposalSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        proposal = self.get_workflow().submit(
            request.user,
            data["projectId"],
            cover_letter=data["coverLetter"],
            proposed_budget=data["proposedBudget"],
            timeline=data["timeline"],
        )
        return Response(
            {"message": "Proposal submitted successfully", "proposal": ProposalSerializer(proposal).data},
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(summary="Withdraw a proposal", tags=["Proposals"])
    def destroy(self, request, pk=None):
        self.get_workflow().delete(request.user, pk)
        return Response({"message": "Proposal deleted successfully"})

    @extend_schema(summary="Proposals received for a project", responses={200: ProjectProposalSerializer(many=True)},
                   tags=["Proposals"])
    @action(detail=False, methods=["get"], url_path=r"project/(?P<project_id>[0-9a-fA-F-]{36})")
    def for_project(self, request, project_id=None):
        proposals = self.get_workflow().list_for_project(request.user, project_id)
        return Response({"proposals": ProjectProposalSerializer(proposals, many=True).data})

    @extend_schema(summary="The caller's proposals", responses={200: MyProposalSerializer(many=True)},
                   tags=["Proposals"])
    @action(detail=False, methods=["get"], url_path="my-proposals")
    def my_proposals(self, request):
        page = self.paginate_queryset(self.get_workflow().list_for_freelancer(request.user))
        return self.get_paginated_response(MyProposalSerializer(page, many=True).data)

    @extend_schema(summary="Accept or reject a proposal", request=ProposalStatusSerializer,
                   responses={200: ProposalSerializer}, tags=["Proposals"])
    @action(detail=True, methods=["put"], url_path="status")
    def set_status(self, request, pk=None):
        serializer = ProposalStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        new_status = serializer.validated_data["status"]
        proposal = self.get_workflow().update_status(request.user, pk, new_status)
        return Response({"message": f"Proposal {new_status} successfully", "proposal": ProposalSerializer(proposal).data})
