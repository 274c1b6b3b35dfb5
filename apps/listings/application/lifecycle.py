"""
Container Lifecycle Manager

Occupancy use cases of a container: renting it as a whole, switching back
to renting by unit and toggling a single unit. Each runs in one unit of
work that locks the container, applies the change through the
ContainerOccupancy aggregate and recounts the container's counters.

Usage:
    manager = ContainerLifecycleManager()
    manager.rent_complete_container(container_id)
    manager.change_to_by_unit_mode(container_id)
    manager.update_unit_rental_status(unit_id, True)
"""

import logging

from shared.application.uow import DjangoUnitOfWork, require_atomic_block
from shared.domain.exceptions import ValidationError
from apps.listings.application.repositories import ListingRepository
from apps.listings.domain.occupancy import RentalMode
from apps.listings.models import Listing

logger = logging.getLogger(__name__)


class ContainerLifecycleManager:
    """Rental mode transitions and unit occupancy of containers"""

    def __init__(self, listing_repo=None):
        self.listing_repo = listing_repo or ListingRepository()

    def rent_complete_container(self, container_id: int) -> Listing:
        """
        Rent the whole container (by_unit -> complete)

        Raises:
            ConflictError: some unit is already rented, or the container is
                already rented as a whole. Nothing is changed.
        """
        logger.info(f"Renting container {container_id} as a whole")

        with DjangoUnitOfWork() as uow:
            container = self.listing_repo.get_container(container_id, lock=True)
            occupancy = self.listing_repo.load_occupancy(container)
            occupancy.rent_complete()
            self.listing_repo.save_occupancy(occupancy, container)
            uow.collect_events(occupancy)

        logger.info(f"Container {container_id} rented as a whole ({container.total_units} unit(s))")
        return container

    def change_to_by_unit_mode(self, container_id: int) -> Listing:
        """
        Switch the container to by_unit, every unit vacant

        Always permitted, also as a reset when already in by_unit mode.
        """
        logger.info(f"Switching container {container_id} to by_unit mode")

        with DjangoUnitOfWork() as uow:
            container = self.listing_repo.get_container(container_id, lock=True)
            occupancy = self.listing_repo.load_occupancy(container)
            occupancy.change_to_by_unit()
            self.listing_repo.save_occupancy(occupancy, container)
            uow.collect_events(occupancy)

        return container

    def change_rental_mode(self, container_id: int, mode: str) -> Listing:
        """Dispatch a requested mode to its transition"""
        try:
            target = RentalMode(mode)
        except ValueError:
            raise ValidationError(
                f"Unknown rental mode {mode!r}",
                mode=[f"expected one of {', '.join(m.value for m in RentalMode)}"],
            )
        if target == RentalMode.COMPLETE:
            return self.rent_complete_container(container_id)
        return self.change_to_by_unit_mode(container_id)

    def update_unit_rental_status(self, unit_id: int, is_rented: bool) -> Listing:
        """
        Set a unit's occupancy and recount its container

        Idempotent. Rejected with InvalidStateError while the container is
        rented as a whole.
        """
        unit = self.listing_repo.get_unit(unit_id)

        with DjangoUnitOfWork() as uow:
            container = self.listing_repo.get_container(unit.parent_id, lock=True)
            occupancy = self.listing_repo.load_occupancy(container)
            changed = occupancy.set_unit_rented(unit_id, is_rented)
            self.update_container_availability(container, occupancy)
            uow.collect_events(occupancy)

        unit.refresh_from_db()
        if changed:
            logger.info(
                f"Unit {unit_id} marked {'rented' if unit.is_rented else 'vacant'}; "
                f"container {container.pk} has {container.available_units}/{container.total_units} available"
            )
        return unit

    def update_container_availability(self, container: Listing, occupancy=None):
        """
        Store unit flags and recount the container's counters

        Only meaningful inside the unit of work that changed them.
        """
        require_atomic_block("update_container_availability")
        if occupancy is None:
            occupancy = self.listing_repo.load_occupancy(container)
        return self.listing_repo.save_occupancy(occupancy, container)
