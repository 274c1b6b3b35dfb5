import pytest

from apps.listings.models import Listing
from apps.listings.tests.helpers import assert_counters_match, unit_ids
from shared.domain.exceptions import ConflictError, InvalidStateError, NotFoundError, ValidationError


def rented_flags(container_id):
    return list(Listing.objects.filter(parent_id=container_id).order_by("pk").values_list("is_rented", flat=True))


@pytest.mark.django_db
class TestRentComplete:
    def test_partially_occupied_container_cannot_be_rented_whole(self, lifecycle, make_container):
        container = make_container(units=2)
        first, _ = unit_ids(container.pk)
        lifecycle.update_unit_rental_status(first, True)

        with pytest.raises(ConflictError):
            lifecycle.rent_complete_container(container.pk)

        container.refresh_from_db()
        assert container.rental_mode == "by_unit"
        assert container.is_rented is False
        assert rented_flags(container.pk) == [True, False]
        assert container.available_units == 1
        assert_counters_match(container.pk)

    def test_rent_complete_after_freeing_units(self, lifecycle, make_container):
        container = make_container(units=2)
        first, _ = unit_ids(container.pk)
        lifecycle.update_unit_rental_status(first, True)
        lifecycle.update_unit_rental_status(first, False)

        result = lifecycle.rent_complete_container(container.pk)

        assert result.rental_mode == "complete"
        container.refresh_from_db()
        assert container.rental_mode == "complete"
        assert container.is_rented is True
        assert (container.total_units, container.available_units) == (2, 0)
        assert rented_flags(container.pk) == [True, True]
        assert_counters_match(container.pk)

    def test_rent_complete_twice_conflicts(self, lifecycle, make_container):
        container = make_container(units=1)
        lifecycle.rent_complete_container(container.pk)

        with pytest.raises(ConflictError):
            lifecycle.rent_complete_container(container.pk)

    def test_rent_complete_requires_container(self, lifecycle, make_container):
        container = make_container(units=1)

        with pytest.raises(NotFoundError):
            lifecycle.rent_complete_container(987654)
        with pytest.raises(InvalidStateError):
            lifecycle.rent_complete_container(unit_ids(container.pk)[0])


@pytest.mark.django_db
class TestChangeToByUnit:
    def test_reverse_transition_frees_every_unit(self, lifecycle, make_container):
        container = make_container(units=3)
        lifecycle.rent_complete_container(container.pk)

        lifecycle.change_to_by_unit_mode(container.pk)

        container.refresh_from_db()
        assert container.rental_mode == "by_unit"
        assert container.is_rented is False
        assert container.available_units == container.total_units == 3
        assert rented_flags(container.pk) == [False, False, False]

    def test_by_unit_reset(self, lifecycle, make_container):
        container = make_container(units=2)
        first, second = unit_ids(container.pk)
        lifecycle.update_unit_rental_status(second, True)

        lifecycle.change_to_by_unit_mode(container.pk)

        assert rented_flags(container.pk) == [False, False]
        assert_counters_match(container.pk)

    def test_change_rental_mode_dispatches(self, lifecycle, make_container):
        container = make_container(units=1)

        assert lifecycle.change_rental_mode(container.pk, "complete").rental_mode == "complete"
        assert lifecycle.change_rental_mode(container.pk, "by_unit").rental_mode == "by_unit"

        with pytest.raises(ValidationError):
            lifecycle.change_rental_mode(container.pk, "weekly")


@pytest.mark.django_db
class TestUnitRentalStatus:
    def test_toggle_is_idempotent(self, lifecycle, make_container):
        container = make_container(units=2)
        first, _ = unit_ids(container.pk)

        lifecycle.update_unit_rental_status(first, True)
        container.refresh_from_db()
        snapshot = (container.total_units, container.available_units)

        unit = lifecycle.update_unit_rental_status(first, True)

        assert unit.is_rented is True
        container.refresh_from_db()
        assert (container.total_units, container.available_units) == snapshot == (2, 1)
        assert_counters_match(container.pk)

    def test_toggle_rejected_while_rented_complete(self, lifecycle, make_container):
        container = make_container(units=2)
        lifecycle.rent_complete_container(container.pk)

        with pytest.raises(InvalidStateError):
            lifecycle.update_unit_rental_status(unit_ids(container.pk)[0], False)

        assert rented_flags(container.pk) == [True, True]
        assert_counters_match(container.pk)

    def test_toggle_requires_unit(self, lifecycle, make_container):
        container = make_container()

        with pytest.raises(InvalidStateError):
            lifecycle.update_unit_rental_status(container.pk, True)
        with pytest.raises(NotFoundError):
            lifecycle.update_unit_rental_status(987654, True)


@pytest.mark.django_db(transaction=True)
def test_update_container_availability_needs_unit_of_work(lifecycle, make_container):
    container = make_container(units=1)

    with pytest.raises(RuntimeError):
        lifecycle.update_container_availability(container)
