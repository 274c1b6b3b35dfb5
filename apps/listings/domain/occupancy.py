"""
Container Occupancy Aggregate

A container (boarding house, apartment) groups independently rentable
units. The aggregate holds the container's rental mode and the occupancy
flag of every unit, and is the only place where occupancy changes are
decided. Repositories load it under a row lock on the container and write
it back inside the same unit of work.

Rental mode state machine:
- by_unit -> complete (only when no unit is occupied)
- complete -> by_unit (always, every unit becomes vacant)
- by_unit -> by_unit (reset, every unit becomes vacant)
- complete -> complete is rejected

Invariants kept after every operation:
- total_units == number of units
- available_units == number of vacant units
- rental_mode == complete implies every unit is rented
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional

from shared.domain.base import Aggregate
from shared.domain.exceptions import ConflictError, InvalidStateError, NotFoundError


class RentalMode(str, Enum):
    """Container rental modes"""
    BY_UNIT = 'by_unit'      # Rooms rented individually
    COMPLETE = 'complete'    # Whole container rented as one


class RentalModeStateMachine:
    """
    Guards for container rental mode transitions

    There is no terminal state: a container switches between the two
    modes for as long as it exists.
    """

    INITIAL = RentalMode.BY_UNIT

    ALLOWED = {
        RentalMode.BY_UNIT: {RentalMode.BY_UNIT, RentalMode.COMPLETE},
        RentalMode.COMPLETE: {RentalMode.BY_UNIT},
    }

    @classmethod
    def can_transition(cls, current: RentalMode, target: RentalMode, occupied_units: int = 0) -> bool:
        try:
            cls.check(current, target, occupied_units)
        except (ConflictError, InvalidStateError):
            return False
        return True

    @classmethod
    def check(cls, current: RentalMode, target: RentalMode, occupied_units: int = 0):
        """
        Raise if the transition is not permitted

        Raises:
            ConflictError: container already rented as a whole, or some
                unit is occupied when asking for complete mode
        """
        current = RentalMode(current)
        target = RentalMode(target)

        if target not in cls.ALLOWED[current]:
            raise ConflictError(
                f"Cannot switch rental mode from {current.value} to {target.value}: "
                f"container is already rented as a whole",
                current_mode=current.value,
                target_mode=target.value,
            )

        if target == RentalMode.COMPLETE and occupied_units > 0:
            raise ConflictError(
                f"Cannot rent the container as a whole: {occupied_units} unit(s) already rented",
                occupied_units=occupied_units,
            )


@dataclass
class UnitOccupancy:
    """Occupancy view of a single unit inside a container"""
    id: int
    is_rented: bool = False


@dataclass(eq=False)
class ContainerOccupancy(Aggregate):
    """
    Container Occupancy Aggregate Root

    Usage:
        occupancy = listing_repo.load_occupancy(container_id)   # locks the container
        occupancy.rent_complete()
        listing_repo.save_occupancy(occupancy)
        uow.collect_events(occupancy)
    """

    owner_id: Optional[int] = None
    rental_mode: RentalMode = RentalMode.BY_UNIT
    is_rented: bool = False
    units: List[UnitOccupancy] = field(default_factory=list)

    def __post_init__(self):
        self.rental_mode = RentalMode(self.rental_mode or RentalModeStateMachine.INITIAL)

    # ----- derived aggregates -----

    @property
    def total_units(self) -> int:
        return len(self.units)

    @property
    def available_units(self) -> int:
        return sum(1 for unit in self.units if not unit.is_rented)

    @property
    def occupied_units(self) -> int:
        return self.total_units - self.available_units

    def get_unit(self, unit_id: int) -> UnitOccupancy:
        for unit in self.units:
            if unit.id == unit_id:
                return unit
        raise NotFoundError(f"Unit {unit_id} not found in container {self.id}", unit_id=unit_id)

    # ----- mode transitions -----

    def rent_complete(self):
        """
        Rent the whole container (by_unit -> complete)

        Requires a clean slate: if any unit is already rented the request
        is rejected and nothing changes.
        Events: ContainerRentedComplete
        """
        RentalModeStateMachine.check(self.rental_mode, RentalMode.COMPLETE, self.occupied_units)

        from apps.listings.domain.events import ContainerRentedComplete

        for unit in self.units:
            unit.is_rented = True
        self.is_rented = True
        self.rental_mode = RentalMode.COMPLETE

        self.add_event(ContainerRentedComplete(
            aggregate_id=self.id,
            owner_id=self.owner_id,
            container_id=self.id,
            units_count=self.total_units,
        ))

    def change_to_by_unit(self):
        """
        Switch back to renting by unit, every unit becomes vacant

        Always permitted.
        Events: ContainerModeChanged
        """
        old_mode = self.rental_mode
        RentalModeStateMachine.check(old_mode, RentalMode.BY_UNIT)

        from apps.listings.domain.events import ContainerModeChanged

        for unit in self.units:
            unit.is_rented = False
        self.is_rented = False
        self.rental_mode = RentalMode.BY_UNIT

        self.add_event(ContainerModeChanged(
            aggregate_id=self.id,
            owner_id=self.owner_id,
            container_id=self.id,
            old_mode=old_mode.value,
            new_mode=self.rental_mode.value,
        ))

    # ----- unit level changes -----

    def set_unit_rented(self, unit_id: int, is_rented: bool) -> bool:
        """
        Set a unit's occupancy flag

        Idempotent: setting the current value again changes nothing and
        emits no event. Returns True when the flag actually changed.

        Raises:
            InvalidStateError: container is rented as a whole
        """
        if self.rental_mode == RentalMode.COMPLETE:
            raise InvalidStateError(
                f"Container {self.id} is rented as a whole; "
                f"switch it to by_unit mode before changing unit {unit_id}",
                container_id=self.id,
                unit_id=unit_id,
            )

        unit = self.get_unit(unit_id)
        is_rented = bool(is_rented)
        if unit.is_rented == is_rented:
            return False

        from apps.listings.domain.events import UnitRentalStatusChanged

        unit.is_rented = is_rented
        self.add_event(UnitRentalStatusChanged(
            aggregate_id=self.id,
            owner_id=self.owner_id,
            container_id=self.id,
            unit_id=unit_id,
            is_rented=is_rented,
        ))
        return True

    def add_unit(self, unit_id: int) -> UnitOccupancy:
        """
        Register a newly created unit

        A unit joining a container that is rented as a whole starts rented.
        Events: UnitCreated
        """
        from apps.listings.domain.events import UnitCreated

        unit = UnitOccupancy(id=unit_id, is_rented=self.rental_mode == RentalMode.COMPLETE)
        self.units.append(unit)
        self.add_event(UnitCreated(
            aggregate_id=self.id,
            owner_id=self.owner_id,
            container_id=self.id,
            unit_id=unit_id,
        ))
        return unit

    def remove_unit(self, unit_id: int) -> UnitOccupancy:
        """
        Forget a deleted unit

        Events: UnitDeleted
        """
        from apps.listings.domain.events import UnitDeleted

        unit = self.get_unit(unit_id)
        self.units.remove(unit)
        self.add_event(UnitDeleted(
            aggregate_id=self.id,
            owner_id=self.owner_id,
            container_id=self.id,
            unit_id=unit_id,
            was_rented=unit.is_rented,
        ))
        return unit

    def rented_unit_ids(self) -> List[int]:
        return [unit.id for unit in self.units if unit.is_rented]

    def vacant_unit_ids(self) -> List[int]:
        return [unit.id for unit in self.units if not unit.is_rented]

    @classmethod
    def from_rows(cls, container_id: int, owner_id: int, rental_mode: Optional[str],
                  is_rented: bool, unit_rows: Iterable) -> 'ContainerOccupancy':
        """Build from (id, is_rented) pairs of the container's unit rows"""
        return cls(
            id=container_id,
            owner_id=owner_id,
            rental_mode=rental_mode or RentalMode.BY_UNIT,
            is_rented=is_rented,
            units=[UnitOccupancy(id=unit_id, is_rented=rented) for unit_id, rented in unit_rows],
        )

    def __str__(self):
        return (
            f"ContainerOccupancy(container={self.id}, mode={self.rental_mode.value}, "
            f"available={self.available_units}/{self.total_units})"
        )
