"""
Accounts app URL configuration.

All routes are namespaced under ``accounts`` and designed to be included
in the project-level ``urls.py`` as::

    path('api/accounts/', include('accounts.urls')),

Endpoint Map
------------
Authentication
    POST   /auth/register/              → RegisterView
    POST   /auth/login/                 → LoginView
    POST   /auth/token/refresh/         → TokenRefreshView (SimpleJWT)

Current User Profile ("Me")
    GET    /me/                         → MeView  (retrieve)
    PATCH  /me/                         → MeView  (partial update)

User Management
    GET    /users/                      → UserViewSet.list
    GET    /users/{id}/                 → UserViewSet.retrieve
    PATCH  /users/{id}/change-role/     → UserViewSet.change_role
    PATCH  /users/{id}/activate/        → UserViewSet.activate
    PATCH  /users/{id}/deactivate/      → UserViewSet.deactivate

Permission Overrides
    GET    /users/{user_pk}/permissions/         → UserPermissionViewSet.list
    POST   /users/{user_pk}/permissions/grant/   → UserPermissionViewSet.grant
    POST   /users/{user_pk}/permissions/revoke/  → UserPermissionViewSet.revoke
    DELETE /users/{user_pk}/permissions/{code}/  → UserPermissionViewSet.destroy

Utility
    GET    /permissions/                → PermissionCatalogView
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter
from rest_framework_nested.routers import NestedDefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView

from .views import (
    LoginView,
    MeView,
    PermissionCatalogView,
    RegisterView,
    UserPermissionViewSet,
    UserViewSet,
)

app_name = "accounts"

router = DefaultRouter()
router.register(r"users", UserViewSet, basename="user")

# Parent lookup kwarg → user_pk
permissions_router = NestedDefaultRouter(router, r"users", lookup="user")
permissions_router.register(
    r"permissions",
    UserPermissionViewSet,
    basename="user-permission",
)

urlpatterns = [
    # ── Authentication ───────────────────────────────────────────────
    path("auth/register/", RegisterView.as_view(), name="register"),
    path("auth/login/", LoginView.as_view(), name="login"),
    path(
        "auth/token/refresh/",
        TokenRefreshView.as_view(),
        name="token-refresh",
    ),

    # ── Current User (Me) ───────────────────────────────────────────
    path("me/", MeView.as_view(), name="me"),

    # ── Utility ──────────────────────────────────────────────────────
    path("permissions/", PermissionCatalogView.as_view(), name="permission-catalog"),

    # ── Router-registered viewsets (users/, users/{pk}/permissions/) ─
    path("", include(router.urls)),
    path("", include(permissions_router.urls)),
]
