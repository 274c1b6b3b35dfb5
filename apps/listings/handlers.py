"""
Listing Event Handlers

Subscribed to the message bus when the app is ready. Handlers run after
the unit of work commits and hand the event to Celery, so the request
never waits for the activity log.
"""

import logging

from shared.application.message_bus import message_bus
from apps.listings.domain.events import (
    ContainerCreated,
    ContainerDeleted,
    ContainerModeChanged,
    ContainerRentedComplete,
    ListingCreated,
    ListingReviewed,
    ListingUpdated,
    UnitCreated,
    UnitDeleted,
    UnitRentalStatusChanged,
)

logger = logging.getLogger(__name__)


@message_bus.subscribe(
    ListingCreated,
    ListingUpdated,
    ListingReviewed,
    ContainerCreated,
    ContainerDeleted,
    ContainerRentedComplete,
    ContainerModeChanged,
    UnitCreated,
    UnitDeleted,
    UnitRentalStatusChanged,
)
def record_listing_activity(event):
    """Queue an activity log entry for the event"""
    from apps.listings.tasks import record_activity

    event_type = event.__class__.__name__
    record_activity.delay(event_type, event.to_dict())
    logger.debug(f"Queued activity for {event_type} (ID: {event.event_id})")
