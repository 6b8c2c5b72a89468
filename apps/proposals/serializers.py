from rest_framework import serializers

from .models import Proposal, ProposalStatus


class ProposalSerializer(serializers.ModelSerializer):
    projectId = serializers.UUIDField(source="project_id", read_only=True)
    freelancerId = serializers.UUIDField(source="freelancer_id", read_only=True)
    coverLetter = serializers.CharField(source="cover_letter", read_only=True)
    proposedBudget = serializers.IntegerField(source="proposed_budget", read_only=True)
    projectTitle = serializers.CharField(source="project.title", read_only=True)
    freelancerName = serializers.CharField(source="freelancer.name", read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)

    class Meta:
        model = Proposal
        fields = ["id", "projectId", "freelancerId", "coverLetter", "proposedBudget", "timeline", "status",
                  "projectTitle", "freelancerName", "createdAt", "updatedAt"]
        read_only_fields = fields


class ProjectProposalSerializer(ProposalSerializer):
    """A proposal as the project's client sees it, with the bidder's public profile."""
    freelancerProfile = serializers.SerializerMethodField()

    class Meta(ProposalSerializer.Meta):
        fields = ProposalSerializer.Meta.fields + ["freelancerProfile"]
        read_only_fields = fields

    def get_freelancerProfile(self, obj) -> dict:
        return obj.freelancer.public_profile()


class MyProposalSerializer(ProposalSerializer):
    projectBudget = serializers.IntegerField(source="project.budget", read_only=True)
    projectStatus = serializers.CharField(source="project.status", read_only=True)
    clientName = serializers.CharField(source="project.client.name", read_only=True)

    class Meta(ProposalSerializer.Meta):
        fields = ProposalSerializer.Meta.fields + ["projectBudget", "projectStatus", "clientName"]
        read_only_fields = fields


class ProposalSubmitSerializer(serializers.Serializer):
    projectId = serializers.UUIDField()
    coverLetter = serializers.CharField(min_length=50, max_length=5000,
                                        error_messages={"min_length": "Cover letter must be at least 50 characters"})
    proposedBudget = serializers.IntegerField(min_value=1,
                                              error_messages={"min_value": "Proposed budget must be a positive number"})
    timeline = serializers.CharField(min_length=3, max_length=255)


class ProposalStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=[ProposalStatus.ACCEPTED.value, ProposalStatus.REJECTED.value],
        error_messages={"invalid_choice": "Status must be either accepted or rejected"},
    )
