from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import (
    LoginView,
    LogoutView,
    MeView,
    RegisterView,
    UserViewSet,
)

router = DefaultRouter(trailing_slash=False)
router.include_root_view = False
router.register(r"users", UserViewSet, basename="users")

urlpatterns = [
    path("auth/register", RegisterView.as_view(), name="auth-register"),
    path("auth/login", LoginView.as_view(), name="auth-login"),
    path("auth/me", MeView.as_view(), name="auth-me"),
    path("auth/logout", LogoutView.as_view(), name="auth-logout"),

    path("", include(router.urls)),
]
