import django_filters as filters

from .models import Availability, User


class FreelancerFilter(filters.FilterSet):
    """Filters over the freelancer profile document."""
    skills = filters.CharFilter(method="filter_skills")
    location = filters.CharFilter(field_name="profile__location", lookup_expr="icontains")
    minRate = filters.NumberFilter(method="filter_min_rate")
    maxRate = filters.NumberFilter(method="filter_max_rate")
    availability = filters.ChoiceFilter(field_name="profile__availability", choices=Availability.choices)

    class Meta:
        model = User
        fields = []

    def __init__(self, data=None, *args, **kwargs):
        if data is not None and "availability" not in data:
            data = data.copy()
            data["availability"] = Availability.AVAILABLE.value
        super().__init__(data, *args, **kwargs)

    def filter_skills(self, queryset, name, value):
        # skills is a JSON list of strings; match whole quoted elements
        for skill in (s.strip() for s in value.split(",")):
            if skill:
                queryset = queryset.filter(profile__skills__icontains=f'"{skill}"')
        return queryset

    def filter_min_rate(self, queryset, name, value):
        return queryset.filter(profile__hourlyRate__gte=float(value))

    def filter_max_rate(self, queryset, name, value):
        return queryset.filter(profile__hourlyRate__lte=float(value))
