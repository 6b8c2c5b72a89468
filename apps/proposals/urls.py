from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import ProposalViewSet

router = DefaultRouter(trailing_slash=False)
router.include_root_view = False
router.register(r"proposals", ProposalViewSet, basename="proposals")

urlpatterns = [
    path("", include(router.urls)),
]
