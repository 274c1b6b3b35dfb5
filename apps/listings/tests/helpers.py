from apps.listings.models import Listing


def assert_counters_match(container_id: int) -> None:
    """Stored counters must equal a fresh count of the container's unit rows."""
    container = Listing.objects.get(pk=container_id)
    units = Listing.objects.filter(parent_id=container_id)

    assert container.total_units == units.count()
    assert container.available_units == units.filter(is_rented=False).count()
    assert 0 <= container.available_units <= container.total_units
    if container.rental_mode == Listing.RentalMode.COMPLETE:
        assert container.available_units == 0
        assert not units.filter(is_rented=False).exists()


def unit_ids(container_id: int) -> list:
    return list(Listing.objects.filter(parent_id=container_id).order_by("pk").values_list("pk", flat=True))
