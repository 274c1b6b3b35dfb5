"""Container, unit and listing API views.

Views are thin: they check permissions, validate request shape through the
write serializers and call the application services. Domain errors raised
by the services are turned into responses by the project exception handler.
"""

from __future__ import annotations

from django.contrib.auth import get_user_model  # type: ignore
from django.db.models import Q  # type: ignore
from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from drf_spectacular.utils import extend_schema  # type: ignore
from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.listings.application.composer import AssociationComposer
from apps.listings.application.hierarchy import PropertyHierarchyStore
from apps.listings.application.lifecycle import ContainerLifecycleManager
from apps.listings.application.repositories import ListingRepository
from shared.domain.exceptions import NotFoundError, ValidationError

from .filters import UnitFilterSet
from .models import Listing
from .serializers import (
    AdminContainerWriteSerializer,
    ChangeModeSerializer,
    ContainerSerializer,
    ContainerSummarySerializer,
    ContainerWriteSerializer,
    ListingSerializer,
    ListingWriteSerializer,
    RejectSerializer,
    RentalStatusSerializer,
    UnitSerializer,
    UnitWriteSerializer,
)


def _is_platform_admin(user) -> bool:
    if not user or not user.is_authenticated:
        return False
    if getattr(user, "is_staff", False) or getattr(user, "is_superuser", False):
        return True
    return hasattr(user, "is_platform_admin") and user.is_platform_admin()


class IsListingOwnerOrAdmin(permissions.BasePermission):
    """Lectura pública; solo el propietario del anuncio o un administrador pueden modificarlo."""

    def has_permission(self, request, view):  # type: ignore
        if request.method in permissions.SAFE_METHODS:
            return True
        user = request.user
        if not user.is_authenticated:
            return False
        if _is_platform_admin(user):
            return True
        if getattr(view, "action", None) == "create":
            return hasattr(user, "is_owner") and user.is_owner()
        return True

    def has_object_permission(self, request, view, obj: Listing):  # type: ignore
        if request.method in permissions.SAFE_METHODS:
            return True
        user = request.user
        if not user.is_authenticated:
            return False
        if _is_platform_admin(user):
            return True
        return obj.owner_id == user.id


class IsPlatformAdmin(permissions.BasePermission):
    """Moderación: personal de la plataforma y administradores."""

    def has_permission(self, request, view):  # type: ignore
        return _is_platform_admin(request.user)


class ListingServicesMixin:
    """Builds the application services used by the viewsets."""

    def initial(self, request, *args, **kwargs):  # type: ignore
        super().initial(request, *args, **kwargs)
        self.listing_repo = ListingRepository()
        self.composer = AssociationComposer(listing_repo=self.listing_repo)
        self.store = PropertyHierarchyStore(listing_repo=self.listing_repo, composer=self.composer)
        self.lifecycle = ContainerLifecycleManager(listing_repo=self.listing_repo)

    def check_listing(self, listing: Listing) -> Listing:
        self.check_object_permissions(self.request, listing)
        return listing

    def check_visible(self, listing: Listing) -> Listing:
        """Unapproved listings are only shown to their owner and to admins."""
        user = self.request.user
        if listing.status == Listing.Status.APPROVED or _is_platform_admin(user):
            return listing
        if user.is_authenticated and listing.owner_id == user.id:
            return listing
        raise NotFoundError(f"Listing {listing.pk} not found", listing_id=listing.pk)


class ContainerViewSet(ListingServicesMixin, viewsets.GenericViewSet):
    """Contenedores (pensiones, apartamentos) y sus unidades."""

    queryset = Listing.objects.containers()
    serializer_class = ContainerSerializer
    permission_classes = [IsListingOwnerOrAdmin]
    filter_backends = [DjangoFilterBackend]
    filterset_class = UnitFilterSet
    lookup_value_regex = r"\d+"

    def get_permissions(self):  # type: ignore
        if self.action in {"approve", "pending", "admin_create"}:
            return [IsPlatformAdmin()]
        return super().get_permissions()

    def get_serializer_class(self):  # type: ignore
        if self.action in {"create", "update", "partial_update"}:
            return ContainerWriteSerializer
        return ContainerSerializer

    def _render(self, container_id: int, status_code: int = status.HTTP_200_OK) -> Response:
        container = self.store.find_container_with_units(container_id)
        return Response(ContainerSerializer(container).data, status=status_code)

    def list(self, request):  # type: ignore
        user = request.user
        visible = Q(status=Listing.Status.APPROVED)
        if _is_platform_admin(user):
            visible = Q()
        elif user.is_authenticated:
            visible |= Q(owner=user)
        queryset = self.store.with_units(Listing.objects.containers().filter(visible)).order_by("-created_at")
        page = self.paginate_queryset(queryset)
        containers = page if page is not None else list(queryset)
        for container in containers:
            container.unit_stats = PropertyHierarchyStore.unit_stats(container)
        data = ContainerSerializer(containers, many=True).data
        if page is not None:
            return self.get_paginated_response(data)
        return Response(data)

    def create(self, request):  # type: ignore
        serializer = ContainerWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        container = self.store.create_container(request.user, serializer.to_payload())
        return self._render(container.pk, status.HTTP_201_CREATED)

    @extend_schema(request=AdminContainerWriteSerializer, responses=ContainerSerializer)
    @action(detail=False, methods=["post"], url_path="admin-create")
    def admin_create(self, request):  # type: ignore
        """Create a container on behalf of an owner account."""
        serializer = AdminContainerWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        owner_id = serializer.validated_data["target_owner"]
        owner = get_user_model().objects.filter(pk=owner_id).first()
        if owner is None:
            raise NotFoundError(f"Owner {owner_id} not found", target_owner=["not_found"])
        if not (owner.is_owner() or owner.is_platform_admin()):
            raise ValidationError(f"User {owner_id} cannot own listings", target_owner=["not_owner"])
        container = self.store.create_container(owner, serializer.to_payload())
        return self._render(container.pk, status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):  # type: ignore
        container = self.check_visible(self.store.find_container_with_units(int(pk)))
        return Response(ContainerSerializer(container).data)

    def update(self, request, pk=None, partial=False):  # type: ignore
        self.check_listing(self.listing_repo.get_container(int(pk)))
        serializer = ContainerWriteSerializer(data=request.data, partial=partial, context={"updating": True})
        serializer.is_valid(raise_exception=True)
        self.store.update_container(int(pk), serializer.to_payload())
        return self._render(int(pk))

    def partial_update(self, request, pk=None):  # type: ignore
        return self.update(request, pk=pk, partial=True)

    def destroy(self, request, pk=None):  # type: ignore
        self.check_listing(self.listing_repo.get_container(int(pk)))
        self.store.delete_container(int(pk))
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(request=None, responses=ContainerSerializer)
    @action(detail=True, methods=["post"], url_path="rent-complete")
    def rent_complete(self, request, pk=None):  # type: ignore
        self.check_listing(self.listing_repo.get_container(int(pk)))
        self.lifecycle.rent_complete_container(int(pk))
        return self._render(int(pk))

    @extend_schema(request=ChangeModeSerializer, responses=ContainerSerializer)
    @action(detail=True, methods=["post"], url_path="change-mode")
    def change_mode(self, request, pk=None):  # type: ignore
        self.check_listing(self.listing_repo.get_container(int(pk)))
        serializer = ChangeModeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        self.lifecycle.change_rental_mode(int(pk), serializer.validated_data["mode"])
        return self._render(int(pk))

    @extend_schema(request=UnitWriteSerializer, responses=UnitSerializer)
    @action(detail=True, methods=["get", "post"], url_path="units")
    def units(self, request, pk=None):  # type: ignore
        if request.method == "GET":
            self.check_visible(self.listing_repo.get_container(int(pk)))
            queryset = self.filter_queryset(self.store.list_units(int(pk)))
            return Response(UnitSerializer(queryset, many=True).data)

        self.check_listing(self.listing_repo.get_container(int(pk)))
        serializer = UnitWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        unit = self.store.create_unit(int(pk), serializer.to_payload())
        return Response(UnitSerializer(unit).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=None, responses=ContainerSerializer)
    @action(detail=True, methods=["put"], url_path="approve")
    def approve(self, request, pk=None):  # type: ignore
        self.store.approve_container(int(pk))
        return self._render(int(pk))

    @extend_schema(responses=ContainerSerializer(many=True))
    @action(detail=False, methods=["get"], url_path="pending")
    def pending(self, request):  # type: ignore
        containers = self.store.pending_containers()
        return Response(ContainerSerializer(containers, many=True).data)


class UnitViewSet(ListingServicesMixin, viewsets.GenericViewSet):
    """Unidades (habitaciones) dentro de un contenedor."""

    queryset = Listing.objects.units()
    serializer_class = UnitSerializer
    permission_classes = [IsListingOwnerOrAdmin]
    lookup_value_regex = r"\d+"

    def get_permissions(self):  # type: ignore
        if self.action in {"approve", "reject"}:
            return [IsPlatformAdmin()]
        return super().get_permissions()

    def get_serializer_class(self):  # type: ignore
        if self.action in {"update", "partial_update"}:
            return UnitWriteSerializer
        return UnitSerializer

    def _render(self, unit_id: int) -> Response:
        unit = (
            Listing.objects.units()
            .select_related("parent", "property_type", "features")
            .prefetch_related("images", "amenities")
            .get(pk=unit_id)
        )
        data = UnitSerializer(unit).data
        data["container"] = ContainerSummarySerializer(unit.parent).data
        return Response(data)

    def retrieve(self, request, pk=None):  # type: ignore
        self.check_visible(self.listing_repo.get_unit(int(pk)))
        return self._render(int(pk))

    def update(self, request, pk=None, partial=False):  # type: ignore
        self.check_listing(self.listing_repo.get_unit(int(pk)))
        serializer = UnitWriteSerializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        self.store.update_unit(int(pk), serializer.to_payload())
        return self._render(int(pk))

    def partial_update(self, request, pk=None):  # type: ignore
        return self.update(request, pk=pk, partial=True)

    def destroy(self, request, pk=None):  # type: ignore
        self.check_listing(self.listing_repo.get_unit(int(pk)))
        self.store.delete_unit(int(pk))
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(request=RentalStatusSerializer, responses=UnitSerializer)
    @action(detail=True, methods=["patch"], url_path="rental-status")
    def rental_status(self, request, pk=None):  # type: ignore
        self.check_listing(self.listing_repo.get_unit(int(pk)))
        serializer = RentalStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        self.lifecycle.update_unit_rental_status(int(pk), serializer.validated_data["is_rented"])
        return self._render(int(pk))

    @extend_schema(request=None, responses=UnitSerializer)
    @action(detail=True, methods=["put"], url_path="approve")
    def approve(self, request, pk=None):  # type: ignore
        self.store.approve_unit(int(pk))
        return self._render(int(pk))

    @extend_schema(request=RejectSerializer, responses=UnitSerializer)
    @action(detail=True, methods=["put"], url_path="reject")
    def reject(self, request, pk=None):  # type: ignore
        serializer = RejectSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        self.store.reject_unit(int(pk), serializer.validated_data["reason"])
        return self._render(int(pk))


class ListingViewSet(ListingServicesMixin, viewsets.GenericViewSet):
    """Anuncios independientes compuestos con todas sus asociaciones."""

    queryset = Listing.objects.all()
    serializer_class = ListingSerializer
    permission_classes = [IsListingOwnerOrAdmin]
    lookup_value_regex = r"\d+"

    def get_serializer_class(self):  # type: ignore
        if self.action in {"create", "update", "partial_update"}:
            return ListingWriteSerializer
        return ListingSerializer

    def _render(self, listing_id: int, status_code: int = status.HTTP_200_OK) -> Response:
        listing = self.composer.find_listing_with_associations(listing_id)
        return Response(ListingSerializer(listing).data, status=status_code)

    def create(self, request):  # type: ignore
        serializer = ListingWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        listing = self.composer.create_listing_with_associations(request.user, serializer.to_payload())
        return self._render(listing.pk, status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):  # type: ignore
        self.check_visible(self.listing_repo.get(int(pk)))
        return self._render(int(pk))

    def update(self, request, pk=None, partial=False):  # type: ignore
        self.check_listing(self.listing_repo.get(int(pk)))
        serializer = ListingWriteSerializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        self.composer.update_listing_with_associations(int(pk), serializer.to_payload())
        return self._render(int(pk))

    def partial_update(self, request, pk=None):  # type: ignore
        return self.update(request, pk=pk, partial=True)
