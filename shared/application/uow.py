"""
Transaction boundary for listing writes

Every multi-row write (container with its units, occupancy transitions,
association replacement) runs inside one DjangoUnitOfWork. Activity events
raised during the write reach the message bus only once the outermost
transaction has committed; a rollback drops them.
"""

from typing import List
import logging

from django.db import transaction
from django.db.utils import NotSupportedError

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)


def lock_for_update(queryset):
    """
    Row lock for a container or unit read inside a unit of work

    SQLite has no row locks and serializes writers on the whole database,
    so the queryset comes back unchanged there.
    """
    connection = transaction.get_connection(queryset.db)
    if not connection.in_atomic_block:
        return queryset
    if not connection.features.has_select_for_update:
        return queryset
    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset


def require_atomic_block(operation: str):
    """Counter recomputation and similar helpers call this first"""
    if not transaction.get_connection().in_atomic_block:
        raise RuntimeError(f"{operation} must run inside a unit of work")


class DjangoUnitOfWork:
    """
    transaction.atomic() plus the events of the listings it touched

    Nested units of work become savepoints; their events are published with
    the outermost commit.

        with DjangoUnitOfWork() as uow:
            container = listing_repo.get_container(container_id, lock=True)
            occupancy.rent_complete()
            uow.collect_events(occupancy)
            listing_repo.save_occupancy(occupancy)
    """

    def __init__(self):
        self._events: List[DomainEvent] = []
        self._transaction = None

    def __enter__(self):
        self._transaction = transaction.atomic()
        self._transaction.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            if self._transaction:
                self._transaction.__exit__(exc_type, exc_val, exc_tb)

    def commit(self):
        logger.debug(f"Committing listing write with {len(self._events)} events")

        events = self._events.copy()
        self._events.clear()

        if events:
            transaction.on_commit(lambda: self._publish_events(events))

    def rollback(self):
        logger.warning(f"Listing write rolled back, dropping {len(self._events)} events")
        self._events.clear()

    def collect_events(self, aggregate):
        """Take over the events an occupancy aggregate raised"""
        new_events = aggregate.events
        if new_events:
            self._events.extend(new_events)
            aggregate.clear_events()
            logger.debug(f"Collected {len(new_events)} events from {aggregate.__class__.__name__} {aggregate.id}")

    def add_event(self, event: DomainEvent):
        self._events.append(event)

    def _publish_events(self, events: List[DomainEvent]):
        from shared.application.message_bus import message_bus

        logger.info(f"Publishing {len(events)} listing events after commit")

        try:
            message_bus.publish_events(events)
        except Exception as e:
            logger.error(f"Error publishing events: {e}", exc_info=True)
