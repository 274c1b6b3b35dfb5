"""
Listing Domain Events

Events that represent things that have happened to containers, units and
plain listings. They are published after successful transaction commits
and feed the activity log.
"""

from dataclasses import dataclass, field, fields
from typing import List, Optional

from shared.domain.base import DomainEvent


@dataclass
class ListingEvent(DomainEvent):
    """Base for listing events; owner_id is the user the activity belongs to"""
    owner_id: Optional[int] = None

    def to_dict(self) -> dict:
        data = super().to_dict()
        for event_field in fields(self):
            if event_field.name in ('event_id', 'occurred_at'):
                continue
            data.setdefault(event_field.name, getattr(self, event_field.name))
        return data


# ===== Listing Events =====

@dataclass
class ListingCreated(ListingEvent):
    """
    Event: A listing was assembled with its associations

    Triggers:
    - Activity log entry
    - Admin review queue (pending status)
    """
    listing_id: Optional[int] = None
    is_container: bool = False
    parent_id: Optional[int] = None


@dataclass
class ListingUpdated(ListingEvent):
    """Event: Listing scalars or nested blocks were changed"""
    listing_id: Optional[int] = None
    changed: List[str] = field(default_factory=list)


@dataclass
class ListingReviewed(ListingEvent):
    """
    Event: An admin approved or rejected a listing

    Triggers:
    - Activity log entry
    - Owner notification (outside this service)
    """
    listing_id: Optional[int] = None
    status: str = ''
    reason: str = ''


# ===== Container Events =====

@dataclass
class ContainerCreated(ListingEvent):
    container_id: Optional[int] = None
    units_count: int = 0


@dataclass
class ContainerDeleted(ListingEvent):
    """Event: Container removed, units handled according to the delete policy"""
    container_id: Optional[int] = None
    policy: str = ''
    unit_ids: List[int] = field(default_factory=list)


@dataclass
class ContainerRentedComplete(ListingEvent):
    """Event: Whole container rented (by_unit -> complete)"""
    container_id: Optional[int] = None
    units_count: int = 0


@dataclass
class ContainerModeChanged(ListingEvent):
    """Event: Container switched back to by_unit, all units vacant"""
    container_id: Optional[int] = None
    old_mode: str = ''
    new_mode: str = ''


# ===== Unit Events =====

@dataclass
class UnitCreated(ListingEvent):
    container_id: Optional[int] = None
    unit_id: Optional[int] = None


@dataclass
class UnitDeleted(ListingEvent):
    container_id: Optional[int] = None
    unit_id: Optional[int] = None
    was_rented: bool = False


@dataclass
class UnitRentalStatusChanged(ListingEvent):
    container_id: Optional[int] = None
    unit_id: Optional[int] = None
    is_rented: bool = False
