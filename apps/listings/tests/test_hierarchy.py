from decimal import Decimal

import pytest
from django.core.exceptions import ImproperlyConfigured

from apps.listings.domain.inputs import ContainerPayload, ListingPayload, LocationInput, RuleInput, ServiceInput
from apps.listings.models import Listing, ListingRule, ListingService
from apps.listings.tests.helpers import assert_counters_match, unit_ids
from shared.domain.exceptions import InvalidStateError, NotFoundError, ValidationError


def room(title="Habitación interior", rent="750000"):
    return ListingPayload(fields={"title": title, "monthly_rent": Decimal(rent)})


@pytest.mark.django_db
class TestCreateContainer:
    def test_new_container_starts_empty_in_by_unit_mode(self, make_container):
        container = make_container()

        container.refresh_from_db()
        assert container.is_container is True
        assert container.parent_id is None
        assert container.rental_mode == "by_unit"
        assert (container.total_units, container.available_units) == (0, 0)
        assert container.status == Listing.Status.PENDING

    def test_initial_units_inherit_from_container(self, make_container, owner, room_type):
        container = make_container(units=2)

        units = Listing.objects.filter(parent=container).order_by("pk")
        assert units.count() == 2
        for unit in units:
            assert unit.owner_id == owner.pk
            assert unit.location_id == container.location_id
            assert unit.property_type_id == room_type.pk
            assert unit.is_container is False
            assert unit.is_rented is False
        assert (container.total_units, container.available_units) == (2, 2)
        assert_counters_match(container.pk)

    def test_unit_type_falls_back_to_container_type(self, make_container, pension_type):
        container = make_container(units=1)

        unit = Listing.objects.get(parent=container)
        assert unit.property_type_id == pension_type.pk

    def test_container_links_are_stored(self, store, owner, pension_type, location_input, common_area):
        payload = ContainerPayload(
            listing=ListingPayload(fields={"title": "Residencia Laureles"}, type_id=pension_type.pk,
                                   location=location_input),
            services=[ServiceInput("breakfast"), ServiceInput("laundry", is_included=False,
                                                              additional_cost=Decimal("30000"))],
            rules=[RuleInput("visits", is_allowed=False)],
            common_area_ids=[common_area.pk],
        )

        container = store.create_container(owner, payload)

        assert list(container.services.values_list("service_type", flat=True)) == ["breakfast", "laundry"]
        assert container.rules.get().rule_type == ListingRule.RuleType.VISITS
        assert list(container.common_areas.all()) == [common_area]

    def test_invalid_unit_rolls_back_the_whole_container(self, store, owner, pension_type, location_input):
        payload = ContainerPayload(
            listing=ListingPayload(fields={"title": "Pensión"}, type_id=pension_type.pk, location=location_input),
            units=[room(), ListingPayload(fields={"title": "  "})],
        )

        with pytest.raises(ValidationError):
            store.create_container(owner, payload)

        assert Listing.objects.count() == 0

    def test_unit_may_not_choose_a_type(self, store, owner, pension_type, location_input):
        payload = ContainerPayload(
            listing=ListingPayload(fields={"title": "Pensión"}, type_id=pension_type.pk, location=location_input),
            units=[ListingPayload(fields={"title": "Habitación"}, type_id=pension_type.pk)],
        )

        with pytest.raises(ValidationError):
            store.create_container(owner, payload)


@pytest.mark.django_db
class TestUnits:
    def test_create_unit_recounts_container(self, store, make_container):
        container = make_container(units=1)

        unit = store.create_unit(container.pk, room("Habitación con baño"))

        assert unit.parent_id == container.pk
        assert unit.title == "Habitación con baño"
        container.refresh_from_db()
        assert (container.total_units, container.available_units) == (2, 2)
        assert_counters_match(container.pk)

    def test_create_unit_in_missing_container(self, store, db):
        with pytest.raises(NotFoundError):
            store.create_unit(987654, room())

    def test_create_unit_in_a_unit(self, store, make_container):
        container = make_container(units=1)
        [unit_id] = unit_ids(container.pk)

        with pytest.raises(InvalidStateError):
            store.create_unit(unit_id, room())

        assert_counters_match(container.pk)

    def test_create_unit_in_standalone_listing(self, store, composer, owner, pension_type, location_input):
        listing = composer.create_listing_with_associations(
            owner, ListingPayload(fields={"title": "Apartaestudio"}, type_id=pension_type.pk, location=location_input)
        )

        with pytest.raises(InvalidStateError):
            store.create_unit(listing.pk, room())

    def test_unit_may_not_move(self, store, make_container, city):
        container = make_container()

        with pytest.raises(ValidationError):
            store.create_unit(container.pk, ListingPayload(
                fields={"title": "Habitación"},
                location=LocationInput(street="Otra calle 1", neighborhood="Centro", city_id=city.pk),
            ))

    def test_unit_added_while_rented_complete_is_rented(self, store, lifecycle, make_container):
        container = make_container(units=1)
        lifecycle.rent_complete_container(container.pk)

        unit = store.create_unit(container.pk, room())

        assert unit.is_rented is True
        container.refresh_from_db()
        assert (container.total_units, container.available_units) == (2, 0)
        assert_counters_match(container.pk)

    def test_delete_unit_recounts_from_rows(self, store, lifecycle, make_container):
        container = make_container(units=3)
        first, second, third = unit_ids(container.pk)
        lifecycle.update_unit_rental_status(first, True)

        store.delete_unit(second)

        container.refresh_from_db()
        assert (container.total_units, container.available_units) == (2, 1)
        assert unit_ids(container.pk) == [first, third]
        assert_counters_match(container.pk)

    def test_delete_rented_unit(self, store, lifecycle, make_container):
        container = make_container(units=3)
        first = unit_ids(container.pk)[0]
        lifecycle.update_unit_rental_status(first, True)

        store.delete_unit(first)

        container.refresh_from_db()
        assert (container.total_units, container.available_units) == (2, 2)

    def test_delete_unit_requires_a_unit(self, store, make_container):
        container = make_container()

        with pytest.raises(InvalidStateError):
            store.delete_unit(container.pk)
        with pytest.raises(NotFoundError):
            store.delete_unit(987654)

    def test_update_unit_keeps_membership(self, store, make_container):
        container = make_container(units=1)
        [unit_id] = unit_ids(container.pk)

        unit = store.update_unit(unit_id, ListingPayload(fields={"monthly_rent": Decimal("900000")}))

        unit.refresh_from_db()
        assert unit.monthly_rent == Decimal("900000")
        assert unit.parent_id == container.pk
        assert_counters_match(container.pk)

    def test_list_units(self, store, make_container):
        container = make_container(units=2)

        assert [unit.pk for unit in store.list_units(container.pk)] == unit_ids(container.pk)


@pytest.mark.django_db
class TestUpdateContainer:
    def test_location_change_moves_units(self, store, make_container, city):
        container = make_container(units=2)
        new_location = LocationInput(street="Carrera 70 # 44-10", neighborhood="Laureles", city_id=city.pk)

        store.update_container(container.pk, ContainerPayload(listing=ListingPayload(location=new_location)))

        container.refresh_from_db()
        assert container.location.street == "Carrera 70 # 44-10"
        assert set(Listing.objects.filter(parent=container).values_list("location_id", flat=True)) == {
            container.location_id
        }

    def test_services_are_replaced_when_present(self, store, make_container):
        container = make_container()
        store.update_container(container.pk, ContainerPayload(services=[ServiceInput("wifi")]))

        store.update_container(container.pk, ContainerPayload(services=[ServiceInput("lunch"), ServiceInput("dinner")]))
        store.update_container(container.pk, ContainerPayload(listing=ListingPayload(fields={"title": "Nuevo"})))

        assert sorted(ListingService.objects.filter(listing=container).values_list("service_type", flat=True)) == [
            "dinner", "lunch"
        ]


@pytest.mark.django_db
class TestDeleteContainer:
    def test_reject_policy_refuses_containers_with_units(self, store, make_container):
        container = make_container(units=2)

        with pytest.raises(InvalidStateError):
            store.delete_container(container.pk)

        assert Listing.objects.count() == 3
        assert_counters_match(container.pk)

    def test_reject_policy_allows_empty_container(self, store, make_container):
        container = make_container()

        store.delete_container(container.pk)

        assert not Listing.objects.filter(pk=container.pk).exists()

    def test_cascade_policy_deletes_units(self, store, make_container):
        container = make_container(units=2)

        store.delete_container(container.pk, policy="cascade")

        assert Listing.objects.count() == 0

    def test_orphan_policy_detaches_units(self, store, make_container, settings):
        settings.LISTINGS = {"ON_CONTAINER_DELETE": "orphan"}
        container = make_container(units=2)
        ids = unit_ids(container.pk)

        store.delete_container(container.pk)

        assert list(Listing.objects.standalone().order_by("pk").values_list("pk", flat=True)) == ids

    def test_misconfigured_policy(self, store, make_container, settings):
        settings.LISTINGS = {"ON_CONTAINER_DELETE": "shred"}
        container = make_container()

        with pytest.raises(ImproperlyConfigured):
            store.delete_container(container.pk)

    def test_delete_a_unit_as_container(self, store, make_container):
        container = make_container(units=1)

        with pytest.raises(InvalidStateError):
            store.delete_container(unit_ids(container.pk)[0], policy="cascade")


@pytest.mark.django_db
class TestReadAndReview:
    def test_find_container_with_units(self, store, make_container):
        container = make_container(units=2)
        store.approve_unit(unit_ids(container.pk)[0])

        found = store.find_container_with_units(container.pk)

        assert [unit.pk for unit in found.units.all()] == unit_ids(container.pk)
        assert found.unit_stats == {"pending": 1, "approved": 1, "rejected": 0, "total": 2}

    def test_find_container_errors(self, store, make_container):
        container = make_container(units=1)

        with pytest.raises(NotFoundError):
            store.find_container_with_units(987654)
        with pytest.raises(InvalidStateError):
            store.find_container_with_units(unit_ids(container.pk)[0])

    def test_approving_last_unit_approves_container(self, store, make_container):
        container = make_container(units=2)
        first, second = unit_ids(container.pk)

        store.approve_unit(first)
        container.refresh_from_db()
        assert container.status == Listing.Status.PENDING

        store.approve_unit(second)
        container.refresh_from_db()
        assert container.status == Listing.Status.APPROVED
        assert container.is_verified is True

    def test_reject_unit_requires_reason(self, store, make_container):
        container = make_container(units=1)
        [unit_id] = unit_ids(container.pk)

        with pytest.raises(ValidationError):
            store.reject_unit(unit_id, "  ")

        unit = store.reject_unit(unit_id, "Fotos borrosas")
        assert unit.status == Listing.Status.REJECTED
        assert unit.rejection_reason == "Fotos borrosas"

    def test_rejected_unit_returns_to_pending_on_update(self, store, make_container):
        container = make_container(units=1)
        [unit_id] = unit_ids(container.pk)
        store.reject_unit(unit_id, "Precio incorrecto")

        unit = store.update_unit(unit_id, ListingPayload(fields={"monthly_rent": Decimal("700000")}))

        assert unit.status == Listing.Status.PENDING
        assert unit.rejection_reason == ""

    def test_approve_container_approves_pending_units(self, store, make_container):
        container = make_container(units=2)
        first, second = unit_ids(container.pk)
        store.reject_unit(second, "Sin ventana")

        store.approve_container(container.pk)

        statuses = dict(Listing.objects.filter(parent=container).values_list("pk", "status"))
        assert statuses == {first: "approved", second: "rejected"}
        container.refresh_from_db()
        assert container.status == Listing.Status.APPROVED

    def test_pending_containers(self, store, make_container):
        approved = make_container(units=1, title="Aprobada")
        store.approve_container(approved.pk)
        waiting = make_container(units=1, title="En revisión")
        with_new_unit = make_container(title="Con unidad nueva")
        store.approve_container(with_new_unit.pk)
        store.create_unit(with_new_unit.pk, room())

        pending = store.pending_containers()

        assert {container.pk for container in pending} == {waiting.pk, with_new_unit.pk}
