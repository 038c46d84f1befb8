"""
Complaints app views — **Thin Views**.

``ComplaintViewSet`` maps HTTP verbs and custom actions onto
``ComplaintService`` methods.  Validation, authorization, visibility and
state changes all happen in the service; the view extracts the payload,
passes the authenticated actor (and client IP for security events), and
serialises the result.
"""

from __future__ import annotations

from typing import Any

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
)

from core import constants
from core.domain.security import client_ip_from_request

from .serializers import (
    AssignSerializer,
    ComplaintAuditEntrySerializer,
    ComplaintContentSerializer,
    ComplaintCreateSerializer,
    ComplaintDetailSerializer,
    ComplaintListSerializer,
    RejectSerializer,
    ResolveSerializer,
    UnassignSerializer,
)
from .services import ComplaintService


def _plain(data: Any) -> dict[str, Any]:
    """Request payload as a plain dict (form data arrives as a QueryDict)."""
    if hasattr(data, "dict"):
        return data.dict()
    return dict(data or {})


class ComplaintPagination(PageNumberPagination):
    page_size = constants.DEFAULT_PAGE_SIZE
    page_size_query_param = "limit"
    max_page_size = constants.MAX_PAGE_SIZE


_TRANSITION_ERRORS = {
    403: OpenApiResponse(description="Missing permission."),
    404: OpenApiResponse(description="Complaint not found or not visible."),
    409: OpenApiResponse(description="Transition not allowed from the current state."),
}


class ComplaintViewSet(viewsets.ViewSet):
    """
    **Complaint API**

    Endpoints
    ---------
    GET    /api/complaints/                  → list (scoped, filtered, paginated)
    POST   /api/complaints/                  → submit
    GET    /api/complaints/{id}/             → retrieve
    PATCH  /api/complaints/{id}/             → edit title / description
    DELETE /api/complaints/{id}/             → withdraw
    POST   /api/complaints/{id}/accept/      → accept
    POST   /api/complaints/{id}/reject/      → reject
    POST   /api/complaints/{id}/assign/      → assign to a local authority
    POST   /api/complaints/{id}/unassign/    → unassign
    POST   /api/complaints/{id}/resolve/     → resolve
    POST   /api/complaints/{id}/archive/     → archive
    GET    /api/complaints/{id}/history/     → audit trail
    """

    permission_classes = [IsAuthenticated]

    @property
    def service(self) -> ComplaintService:
        return ComplaintService.default()

    def _detail(self, complaint, code: int = status.HTTP_200_OK) -> Response:
        return Response(ComplaintDetailSerializer(complaint).data, status=code)

    # ── Standard actions ─────────────────────────────────────────

    @extend_schema(
        summary="List complaints",
        description=(
            "Complaints visible to the caller, newest first.  Citizens see "
            "their own, local authorities those assigned to them, delegations "
            "their sector, administrators and governors everything."
        ),
        parameters=[
            OpenApiParameter(name="status", type=str, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="assignment", type=str, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="category", type=str, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="commune_id", type=int, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="archived", type=bool, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="urgent", type=bool, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="search", type=str, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="page", type=int, location=OpenApiParameter.QUERY),
            OpenApiParameter(name="limit", type=int, location=OpenApiParameter.QUERY),
        ],
        responses={200: ComplaintListSerializer(many=True)},
        tags=["Complaints"],
    )
    def list(self, request: Request) -> Response:
        filters = {
            key: value
            for key, value in request.query_params.dict().items()
            if key not in ("page", "limit")
        }
        qs = self.service.list(request.user, filters)
        paginator = ComplaintPagination()
        page = paginator.paginate_queryset(qs, request, view=self)
        return paginator.get_paginated_response(ComplaintListSerializer(page, many=True).data)

    @extend_schema(
        summary="Submit a complaint",
        request=ComplaintCreateSerializer,
        responses={
            201: ComplaintDetailSerializer,
            400: OpenApiResponse(description="Validation error."),
            403: OpenApiResponse(description="Missing reclamations.create."),
        },
        tags=["Complaints"],
    )
    def create(self, request: Request) -> Response:
        complaint = self.service.submit(request.user, _plain(request.data))
        return self._detail(complaint, status.HTTP_201_CREATED)

    @extend_schema(
        summary="Retrieve a complaint",
        responses={200: ComplaintDetailSerializer, 404: OpenApiResponse(description="Not found.")},
        tags=["Complaints"],
    )
    def retrieve(self, request: Request, pk: str = None) -> Response:
        complaint = self.service.get(request.user, pk, ip=client_ip_from_request(request))
        return self._detail(complaint)

    @extend_schema(
        summary="Edit complaint content",
        description="Owner edit of title and description while the complaint is pending.",
        request=ComplaintContentSerializer,
        responses={200: ComplaintDetailSerializer, 400: OpenApiResponse(description="Invalid fields."), **_TRANSITION_ERRORS},
        tags=["Complaints"],
    )
    def partial_update(self, request: Request, pk: str = None) -> Response:
        complaint = self.service.edit_content(
            request.user,
            pk,
            _plain(request.data),
            client_ip=client_ip_from_request(request),
        )
        return self._detail(self.service.get(request.user, complaint.pk))

    @extend_schema(
        summary="Withdraw a complaint",
        responses={204: None, **_TRANSITION_ERRORS},
        tags=["Complaints"],
    )
    def destroy(self, request: Request, pk: str = None) -> Response:
        self.service.withdraw(request.user, pk, ip=client_ip_from_request(request))
        return Response(status=status.HTTP_204_NO_CONTENT)

    # ── Transitions ──────────────────────────────────────────────

    @extend_schema(summary="Accept", request=None, responses={200: ComplaintDetailSerializer, **_TRANSITION_ERRORS}, tags=["Complaints"])
    @action(detail=True, methods=["post"], url_path="accept")
    def accept(self, request: Request, pk: str = None) -> Response:
        complaint = self.service.accept(request.user, pk, ip=client_ip_from_request(request))
        return self._detail(complaint)

    @extend_schema(summary="Reject", request=RejectSerializer, responses={200: ComplaintDetailSerializer, **_TRANSITION_ERRORS}, tags=["Complaints"])
    @action(detail=True, methods=["post"], url_path="reject")
    def reject(self, request: Request, pk: str = None) -> Response:
        complaint = self.service.reject(
            request.user, pk, request.data.get("reason"), ip=client_ip_from_request(request),
        )
        return self._detail(complaint)

    @extend_schema(summary="Assign", request=AssignSerializer, responses={200: ComplaintDetailSerializer, **_TRANSITION_ERRORS}, tags=["Complaints"])
    @action(detail=True, methods=["post"], url_path="assign")
    def assign(self, request: Request, pk: str = None) -> Response:
        complaint = self.service.assign(
            request.user,
            pk,
            request.data.get("authority_id"),
            sector=request.data.get("sector"),
            comment=request.data.get("comment") or "",
            ip=client_ip_from_request(request),
        )
        return self._detail(complaint)

    @extend_schema(summary="Unassign", request=UnassignSerializer, responses={200: ComplaintDetailSerializer, **_TRANSITION_ERRORS}, tags=["Complaints"])
    @action(detail=True, methods=["post"], url_path="unassign")
    def unassign(self, request: Request, pk: str = None) -> Response:
        complaint = self.service.unassign(
            request.user, pk, request.data.get("comment") or "", ip=client_ip_from_request(request),
        )
        return self._detail(complaint)

    @extend_schema(summary="Resolve", request=ResolveSerializer, responses={200: ComplaintDetailSerializer, **_TRANSITION_ERRORS}, tags=["Complaints"])
    @action(detail=True, methods=["post"], url_path="resolve")
    def resolve(self, request: Request, pk: str = None) -> Response:
        complaint = self.service.resolve(
            request.user, pk, request.data.get("solution") or "", ip=client_ip_from_request(request),
        )
        return self._detail(complaint)

    @extend_schema(summary="Archive", request=None, responses={200: ComplaintDetailSerializer, **_TRANSITION_ERRORS}, tags=["Complaints"])
    @action(detail=True, methods=["post"], url_path="archive")
    def archive(self, request: Request, pk: str = None) -> Response:
        complaint = self.service.archive(request.user, pk, ip=client_ip_from_request(request))
        return self._detail(complaint)

    @extend_schema(
        summary="Complaint history",
        responses={200: ComplaintAuditEntrySerializer(many=True), 404: OpenApiResponse(description="Not found.")},
        tags=["Complaints"],
    )
    @action(detail=True, methods=["get"], url_path="history")
    def history(self, request: Request, pk: str = None) -> Response:
        entries = self.service.history(request.user, pk, ip=client_ip_from_request(request))
        return Response(ComplaintAuditEntrySerializer(entries, many=True).data, status=status.HTTP_200_OK)
