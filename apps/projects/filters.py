from functools import reduce
from operator import or_

import django_filters as filters
from django.db.models import Q

from .models import Project, ProjectStatus

SORTABLE_FIELDS = {"created_at", "budget", "deadline", "title"}
DEFAULT_ORDERING = "-created_at"


class ProjectFilter(filters.FilterSet):
    category = filters.CharFilter(field_name="category", lookup_expr="iexact")
    minBudget = filters.NumberFilter(field_name="budget", lookup_expr="gte")
    maxBudget = filters.NumberFilter(field_name="budget", lookup_expr="lte")
    skills = filters.CharFilter(method="filter_skills")
    search = filters.CharFilter(method="filter_search")
    status = filters.ChoiceFilter(choices=ProjectStatus.choices)

    class Meta:
        model = Project
        fields = []

    def __init__(self, data=None, *args, **kwargs):
        if data is not None and "status" not in data:
            data = data.copy()
            data["status"] = ProjectStatus.OPEN.value
        super().__init__(data, *args, **kwargs)

    def filter_skills(self, queryset, name, value):
        tags = [s.strip().lower() for s in value.split(",") if s.strip()]
        if not tags:
            return queryset
        # skills is stored as a JSON list of strings; match a quoted element
        return queryset.filter(reduce(or_, (Q(skills__icontains=f'"{tag}"') for tag in tags)))

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(Q(title__icontains=value) | Q(description__icontains=value))


def ordering_from_params(params) -> str:
    """Translate sortBy/sortOrder into an order_by() key, falling back to newest first."""
    field = params.get("sortBy") or "created_at"
    if field not in SORTABLE_FIELDS:
        return DEFAULT_ORDERING
    return field if params.get("sortOrder") == "asc" else f"-{field}"
