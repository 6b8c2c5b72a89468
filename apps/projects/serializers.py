from rest_framework import serializers

from .models import Project, ProjectStatus


class ClientSummarySerializer(serializers.Serializer):
    id = serializers.UUIDField(read_only=True)
    name = serializers.CharField(read_only=True)
    profile = serializers.SerializerMethodField()

    def get_profile(self, obj) -> dict:
        return obj.public_profile()


class ProjectSerializer(serializers.ModelSerializer):
    clientId = serializers.UUIDField(source="client_id", read_only=True)
    client = ClientSummarySerializer(read_only=True)
    proposalCount = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)

    class Meta:
        model = Project
        fields = ["id", "title", "description", "budget", "category", "skills", "deadline", "status",
                  "clientId", "client", "proposalCount", "createdAt", "updatedAt"]
        read_only_fields = fields

    def get_proposalCount(self, obj) -> int:
        count = getattr(obj, "proposal_count", None)
        return count if count is not None else obj.proposals.count()


class MyProjectProposalSerializer(serializers.Serializer):
    id = serializers.UUIDField(read_only=True)
    status = serializers.CharField(read_only=True)
    freelancerName = serializers.CharField(source="freelancer.name", read_only=True)


class MyProjectSerializer(ProjectSerializer):
    proposals = MyProjectProposalSerializer(many=True, read_only=True)

    class Meta(ProjectSerializer.Meta):
        fields = ProjectSerializer.Meta.fields + ["proposals"]
        read_only_fields = fields


class ProjectWriteSerializer(serializers.Serializer):
    """Payload for create (all required) and update (partial=True)."""
    title = serializers.CharField(min_length=5, max_length=200)
    description = serializers.CharField(min_length=20)
    budget = serializers.IntegerField(min_value=1, error_messages={"min_value": "Budget must be a positive number"})
    category = serializers.CharField(min_length=2, max_length=100)
    skills = serializers.ListField(child=serializers.CharField(max_length=50), min_length=1,
                                   error_messages={"min_length": "At least one skill is required"})
    deadline = serializers.DateField()
    status = serializers.ChoiceField(choices=ProjectStatus.choices, required=False)

    def validate_skills(self, value):
        skills = []
        for skill in (s.strip().lower() for s in value):
            if skill and skill not in skills:
                skills.append(skill)
        if not skills:
            raise serializers.ValidationError("At least one skill is required")
        return skills

    def validate(self, attrs):
        if not self.partial and "status" in attrs:
            # new projects always start open
            attrs.pop("status")
        return attrs
