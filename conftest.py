from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model

from apps.listings.application.composer import AssociationComposer
from apps.listings.application.hierarchy import PropertyHierarchyStore
from apps.listings.application.lifecycle import ContainerLifecycleManager
from apps.listings.domain.inputs import ContainerPayload, ListingPayload, LocationInput
from apps.listings.models import Amenity, CommonArea, Institution, Listing, PropertyType, Region


@pytest.fixture
def owner(db):
    return get_user_model().objects.create_user(
        email="propietario@example.com",
        password="OwnerPass123",
        username="propietario",
        user_type="owner",
    )


@pytest.fixture
def other_owner(db):
    return get_user_model().objects.create_user(
        email="otro@example.com",
        password="OwnerPass123",
        username="otro",
        user_type="owner",
    )


@pytest.fixture
def city(db):
    department = Region.objects.create(name="Antioquia", slug="antioquia", kind=Region.Kind.DEPARTMENT)
    return Region.objects.create(name="Medellín", slug="medellin", kind=Region.Kind.CITY, parent=department)


@pytest.fixture
def pension_type(db):
    return PropertyType.objects.create(slug="pension", name="Pensión")


@pytest.fixture
def room_type(db):
    return PropertyType.objects.create(slug="habitacion", name="Habitación")


@pytest.fixture
def institution(city):
    return Institution.objects.create(name="Universidad de Antioquia", city=city)


@pytest.fixture
def amenity(db):
    return Amenity.objects.create(name="Escritorio")


@pytest.fixture
def common_area(db):
    return CommonArea.objects.create(name="Cocina", slug="cocina")


@pytest.fixture
def location_input(city):
    return LocationInput(street="Calle 10 # 43-12", neighborhood="El Poblado", city_id=city.pk)


@pytest.fixture
def composer():
    return AssociationComposer()


@pytest.fixture
def store():
    return PropertyHierarchyStore()


@pytest.fixture
def lifecycle():
    return ContainerLifecycleManager()


@pytest.fixture
def make_container(store, owner, pension_type, location_input):
    """Create a container with `units` rooms through the hierarchy store."""

    def _make(units: int = 0, title: str = "Pensión El Poblado") -> Listing:
        payload = ContainerPayload(
            listing=ListingPayload(
                fields={"title": title, "description": "Casa para estudiantes", "monthly_rent": Decimal("2400000")},
                type_id=pension_type.pk,
                location=location_input,
            ),
            units=[
                ListingPayload(fields={"title": f"Habitación {index + 1}", "monthly_rent": Decimal("800000")})
                for index in range(units)
            ],
        )
        return store.create_container(owner, payload)

    return _make
