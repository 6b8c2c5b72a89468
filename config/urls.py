from django.contrib import admin
from django.urls import path, include
from drf_spectacular.views import (
    SpectacularAPIView,
    SpectacularSwaggerView,
    SpectacularRedocView,
)

from apps.accounts.views import HealthView

urlpatterns = [
    path("admin/", admin.site.urls),

    # --- App routes ---
    path("api/", include("apps.accounts.urls")),
    path("api/", include("apps.projects.urls")),
    path("api/", include("apps.proposals.urls")),
    path("api/health", HealthView.as_view(), name="health"),

    # --- OpenAPI / Docs ---
    path("api/schema", SpectacularAPIView.as_view(), name="schema"),
    path("api/docs", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),
    path("api/docs/redoc", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
]
