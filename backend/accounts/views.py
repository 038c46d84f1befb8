"""
Accounts app views.

All views follow the **Thin View** pattern: validate input via
serializers, delegate to the service layer, and return the result
wrapped in a DRF ``Response``.  **No business logic** resides here.

View Map
--------
- ``RegisterView``            — POST /auth/register/
- ``LoginView``               — POST /auth/login/
- ``MeView``                  — GET / PATCH /me/
- ``UserViewSet``             — /users/  (list, retrieve, change-role,
                                activate, deactivate)
- ``UserPermissionViewSet``   — /users/{user_pk}/permissions/  (list,
                                grant, revoke, clear)
- ``PermissionCatalogView``   — GET /permissions/
"""

from __future__ import annotations

from rest_framework import generics, status, viewsets
from rest_framework.decorators import action
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
)

from core.domain.permissions import get_default_catalog

from .serializers import (
    ChangeRoleSerializer,
    CustomTokenObtainPairSerializer,
    LoginRequestSerializer,
    MeUpdateSerializer,
    PermissionCatalogSerializer,
    PermissionGrantRequestSerializer,
    PermissionGrantSerializer,
    RegisterRequestSerializer,
    UserDetailSerializer,
    UserListSerializer,
    UserPermissionsSerializer,
)
from .services import (
    CurrentUserService,
    PermissionGrantService,
    UserManagementService,
    UserRegistrationService,
)


def _parse_bool(value: str | None) -> bool | None:
    if value is None or value == "":
        return None
    return value.lower() in ("1", "true", "yes")


# ═══════════════════════════════════════════════════════════════════
#  Authentication Views
# ═══════════════════════════════════════════════════════════════════


class RegisterView(generics.CreateAPIView):
    """
    POST /api/accounts/auth/register/

    Public endpoint.  Creates a new user with the ``CITIZEN`` role.

    Request body  → ``RegisterRequestSerializer``
    Response body → ``UserDetailSerializer`` (201 Created)
    """

    permission_classes = [AllowAny]
    authentication_classes = []
    serializer_class = RegisterRequestSerializer

    @extend_schema(
        summary="Register",
        responses={
            201: OpenApiResponse(response=UserDetailSerializer, description="Registered citizen."),
            400: OpenApiResponse(description="Validation error."),
            409: OpenApiResponse(description="Unique field already taken."),
        },
        tags=["Auth"],
    )
    def create(self, request: Request, *args, **kwargs) -> Response:
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = UserRegistrationService.register_user(serializer.validated_data)
        return Response(UserDetailSerializer(user).data, status=status.HTTP_201_CREATED)


class LoginView(APIView):
    """
    POST /api/accounts/auth/login/

    Public endpoint.  Authenticates a user via any of the four
    unique identifiers (username, national_id, phone_number, email)
    plus password and returns a JWT pair with the user profile.
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        summary="Login",
        request=LoginRequestSerializer,
        responses={
            200: OpenApiResponse(description="Access / refresh tokens and the user profile."),
            400: OpenApiResponse(description="Invalid credentials."),
        },
        tags=["Auth"],
    )
    def post(self, request: Request) -> Response:
        serializer = CustomTokenObtainPairSerializer(
            data=request.data,
            context={"request": request},
        )
        serializer.is_valid(raise_exception=True)

        payload = dict(serializer.validated_data)
        payload["user"] = UserDetailSerializer(serializer.user).data
        return Response(payload, status=status.HTTP_200_OK)


# ═══════════════════════════════════════════════════════════════════
#  Current User ("Me") View
# ═══════════════════════════════════════════════════════════════════


class MeView(APIView):
    """
    GET  /api/accounts/me/  → Retrieve current user profile.
    PATCH /api/accounts/me/ → Update own profile fields.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Current user",
        responses={200: UserDetailSerializer},
        tags=["Auth"],
    )
    def get(self, request: Request) -> Response:
        user = CurrentUserService.get_profile(request.user)
        return Response(UserDetailSerializer(user).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Update current user",
        request=MeUpdateSerializer,
        responses={200: UserDetailSerializer},
        tags=["Auth"],
    )
    def patch(self, request: Request) -> Response:
        serializer = MeUpdateSerializer(
            instance=request.user,
            data=request.data,
            partial=True,
        )
        serializer.is_valid(raise_exception=True)
        user = CurrentUserService.update_profile(request.user, serializer.validated_data)
        return Response(UserDetailSerializer(user).data, status=status.HTTP_200_OK)


# ═══════════════════════════════════════════════════════════════════
#  User Management ViewSet
# ═══════════════════════════════════════════════════════════════════


class UserPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = "limit"
    max_page_size = 100


class UserViewSet(viewsets.ViewSet):
    """
    /api/accounts/users/

    Administrative user management (list, retrieve, change-role,
    activate, deactivate).  Authorization is checked by
    ``UserManagementService`` against the permission catalog.
    """

    permission_classes = [IsAuthenticated]
    lookup_value_regex = r"\d+"

    @extend_schema(
        summary="List users",
        parameters=[
            OpenApiParameter(name="role", type=str, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="is_active", type=bool, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="search", type=str, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="page", type=int, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="limit", type=int, location=OpenApiParameter.QUERY),
        ],
        responses={200: UserListSerializer(many=True)},
        tags=["Users"],
    )
    def list(self, request: Request) -> Response:
        params = request.query_params
        qs = UserManagementService.list_users(
            request.user,
            role=params.get("role") or None,
            is_active=_parse_bool(params.get("is_active")),
            search=params.get("search") or None,
        )
        paginator = UserPagination()
        page = paginator.paginate_queryset(qs, request, view=self)
        return paginator.get_paginated_response(UserListSerializer(page, many=True).data)

    @extend_schema(summary="Retrieve user", responses={200: UserDetailSerializer}, tags=["Users"])
    def retrieve(self, request: Request, pk: str = None) -> Response:
        user = UserManagementService.get_user(request.user, int(pk))
        return Response(UserDetailSerializer(user).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Change role",
        request=ChangeRoleSerializer,
        responses={
            200: UserDetailSerializer,
            403: OpenApiResponse(description="Missing users.edit.role or protected target."),
        },
        tags=["Users"],
    )
    @action(detail=True, methods=["patch"], url_path="change-role")
    def change_role(self, request: Request, pk: str = None) -> Response:
        serializer = ChangeRoleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = UserManagementService.change_role(
            request.user,
            int(pk),
            role=serializer.validated_data["role"],
            sector=serializer.validated_data.get("sector"),
        )
        return Response(UserDetailSerializer(user).data, status=status.HTTP_200_OK)

    @extend_schema(summary="Activate user", request=None, responses={200: UserDetailSerializer}, tags=["Users"])
    @action(detail=True, methods=["patch"], url_path="activate")
    def activate(self, request: Request, pk: str = None) -> Response:
        user = UserManagementService.activate_user(request.user, int(pk))
        return Response(UserDetailSerializer(user).data, status=status.HTTP_200_OK)

    @extend_schema(summary="Deactivate user", request=None, responses={200: UserDetailSerializer}, tags=["Users"])
    @action(detail=True, methods=["patch"], url_path="deactivate")
    def deactivate(self, request: Request, pk: str = None) -> Response:
        user = UserManagementService.deactivate_user(request.user, int(pk))
        return Response(UserDetailSerializer(user).data, status=status.HTTP_200_OK)


# ═══════════════════════════════════════════════════════════════════
#  Per-user Permission Overrides (nested under /users/{user_pk}/)
# ═══════════════════════════════════════════════════════════════════


class UserPermissionViewSet(viewsets.ViewSet):
    """
    /api/accounts/users/{user_pk}/permissions/

    GET     …/permissions/          → defaults, overrides, effective codes
    POST    …/permissions/grant/    → GRANT override
    POST    …/permissions/revoke/   → REVOKE override
    DELETE  …/permissions/{code}/   → remove the override
    """

    permission_classes = [IsAuthenticated]
    lookup_field = "code"
    lookup_value_regex = r"[\w.\-]+"

    @extend_schema(summary="User permissions", responses={200: UserPermissionsSerializer}, tags=["Permissions"])
    def list(self, request: Request, user_pk: str = None) -> Response:
        data = PermissionGrantService.describe(request.user, int(user_pk))
        return Response(UserPermissionsSerializer(data).data, status=status.HTTP_200_OK)

    def _set(self, request: Request, user_pk: str, method) -> Response:
        serializer = PermissionGrantRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        grant = method(
            request.user,
            int(user_pk),
            code=serializer.validated_data["code"],
            expires_at=serializer.validated_data.get("expires_at"),
        )
        return Response(PermissionGrantSerializer(grant).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Grant permission",
        request=PermissionGrantRequestSerializer,
        responses={200: PermissionGrantSerializer},
        tags=["Permissions"],
    )
    @action(detail=False, methods=["post"], url_path="grant")
    def grant(self, request: Request, user_pk: str = None) -> Response:
        return self._set(request, user_pk, PermissionGrantService.grant)

    @extend_schema(
        summary="Revoke permission",
        request=PermissionGrantRequestSerializer,
        responses={200: PermissionGrantSerializer},
        tags=["Permissions"],
    )
    @action(detail=False, methods=["post"], url_path="revoke")
    def revoke(self, request: Request, user_pk: str = None) -> Response:
        return self._set(request, user_pk, PermissionGrantService.revoke)

    @extend_schema(summary="Clear override", responses={204: None}, tags=["Permissions"])
    def destroy(self, request: Request, user_pk: str = None, code: str = None) -> Response:
        PermissionGrantService.clear(request.user, int(user_pk), code=code)
        return Response(status=status.HTTP_204_NO_CONTENT)


# ═══════════════════════════════════════════════════════════════════
#  Permission Catalog View (Utility)
# ═══════════════════════════════════════════════════════════════════


class PermissionCatalogView(APIView):
    """
    GET /api/accounts/permissions/

    Lists every permission code and each role's flattened defaults.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(summary="Permission catalog", responses={200: PermissionCatalogSerializer}, tags=["Permissions"])
    def get(self, request: Request) -> Response:
        catalog = get_default_catalog()
        data = {
            "codes": sorted(catalog.universe),
            "role_defaults": {
                role: sorted(codes) for role, codes in sorted(catalog.role_defaults.items())
            },
        }
        return Response(PermissionCatalogSerializer(data).data, status=status.HTTP_200_OK)
