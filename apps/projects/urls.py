from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import ProjectViewSet

router = DefaultRouter(trailing_slash=False)
router.include_root_view = False
router.register(r"projects", ProjectViewSet, basename="projects")

urlpatterns = [
    path("", include(router.urls)),
]
