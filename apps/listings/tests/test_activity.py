import pytest

from apps.listings.models import ActivityLog
from apps.listings.tasks import record_activity
from apps.listings.tests.helpers import unit_ids
from shared.domain.exceptions import ConflictError


@pytest.mark.django_db
def test_container_creation_is_logged_after_commit(make_container, owner, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        container = make_container(units=2)

    assert len(callbacks) == 1
    activity = list(ActivityLog.objects.order_by("pk").values_list("activity_type", "listing_reference"))
    first, second = unit_ids(container.pk)
    assert activity == [
        ("container_created", container.pk),
        ("unit_created", first),
        ("unit_created", second),
    ]
    assert ActivityLog.objects.filter(user=owner).count() == 3


@pytest.mark.django_db
def test_rolled_back_operation_logs_nothing(lifecycle, make_container, django_capture_on_commit_callbacks):
    container = make_container(units=2)
    lifecycle.update_unit_rental_status(unit_ids(container.pk)[0], True)

    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        with pytest.raises(ConflictError):
            lifecycle.rent_complete_container(container.pk)

    assert callbacks == []
    assert not ActivityLog.objects.exists()


@pytest.mark.django_db
def test_idempotent_toggle_logs_once(lifecycle, make_container, django_capture_on_commit_callbacks):
    container = make_container(units=1)
    [unit_id] = unit_ids(container.pk)

    with django_capture_on_commit_callbacks(execute=True):
        lifecycle.update_unit_rental_status(unit_id, True)
    with django_capture_on_commit_callbacks(execute=True):
        lifecycle.update_unit_rental_status(unit_id, True)

    log = ActivityLog.objects.get(activity_type="unit_rental_status_changed")
    assert log.message == f"Unidad {unit_id} marcada como arrendada"
    assert log.listing_id == unit_id


@pytest.mark.django_db
def test_deleted_container_keeps_its_reference(store, make_container, django_capture_on_commit_callbacks):
    container = make_container()
    container_id = container.pk

    with django_capture_on_commit_callbacks(execute=True):
        store.delete_container(container_id)

    log = ActivityLog.objects.get(activity_type="container_deleted")
    assert log.listing is None
    assert log.listing_reference == container_id
    assert log.payload["policy"] == "reject"


@pytest.mark.django_db
def test_unknown_event_is_ignored():
    assert record_activity("SomethingElse", {"listing_id": 1}) is None
    assert not ActivityLog.objects.exists()
