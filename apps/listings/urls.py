"""URL routing for containers, units and listings."""

from __future__ import annotations

from django.urls import include, path  # type: ignore
from rest_framework.routers import DefaultRouter  # type: ignore

from .views import ContainerViewSet, ListingViewSet, UnitViewSet

router = DefaultRouter()
router.register(r"containers", ContainerViewSet, basename="container")
router.register(r"units", UnitViewSet, basename="unit")
router.register(r"listings", ListingViewSet, basename="listing")

urlpatterns = [
    path("", include(router.urls)),
]
