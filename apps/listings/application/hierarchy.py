"""
Property Hierarchy Store

Use cases for the container/unit hierarchy: creating containers with
their units, adding and removing units, editing either side, deleting a
container under the configured policy, reading a container with its units
and moderating both.

Every operation that changes the set of units of a container locks the
container row first, then its unit rows, and recounts the counters from
the unit rows inside the same transaction.
"""

from typing import Optional
import logging

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.db.models import Prefetch
from django.utils import timezone

from shared.application.uow import DjangoUnitOfWork
from shared.domain.exceptions import InvalidStateError, ValidationError
from apps.listings.application.composer import AssociationComposer
from apps.listings.application.repositories import (
    CommonAreaRepository,
    ListingRepository,
    RuleRepository,
    ServiceRepository,
    pending_review_filter,
)
from apps.listings.domain.events import (
    ContainerCreated,
    ContainerDeleted,
    ListingReviewed,
    ListingUpdated,
)
from apps.listings.domain.inputs import ContainerPayload, ListingPayload
from apps.listings.domain.occupancy import ContainerOccupancy, RentalMode
from apps.listings.models import Listing, ListingCommonArea, PropertyType

logger = logging.getLogger(__name__)

DELETE_POLICIES = ('reject', 'cascade', 'orphan')


def container_delete_policy() -> str:
    policy = getattr(settings, 'LISTINGS', {}).get('ON_CONTAINER_DELETE', 'reject')
    if policy not in DELETE_POLICIES:
        raise ImproperlyConfigured(
            f"LISTINGS['ON_CONTAINER_DELETE'] must be one of {', '.join(DELETE_POLICIES)}, got {policy!r}"
        )
    return policy


class PropertyHierarchyStore:
    """Containers, units and the bookkeeping between them"""

    def __init__(self, listing_repo=None, composer=None, service_repo=None,
                 rule_repo=None, common_area_repo=None):
        self.listing_repo = listing_repo or ListingRepository()
        self.composer = composer or AssociationComposer(listing_repo=self.listing_repo)
        self.service_repo = service_repo or ServiceRepository()
        self.rule_repo = rule_repo or RuleRepository()
        self.common_area_repo = common_area_repo or CommonAreaRepository()

    # ===== Containers =====

    def create_container(self, owner, payload: ContainerPayload) -> Listing:
        """
        Create a container with its associations and optional initial units

        The container starts in by_unit mode with no units; initial units
        go through the same path as create_unit, inside this transaction.
        Events: ContainerCreated, UnitCreated per unit
        """
        logger.info(f"Creating container for owner {owner.pk} with {len(payload.units)} unit(s)")

        with DjangoUnitOfWork() as uow:
            container = self.composer.compose(
                owner,
                payload.listing,
                is_container=True,
                rental_mode=RentalMode.BY_UNIT.value,
                total_units=0,
                available_units=0,
            )
            self._replace_container_links(container, payload)

            uow.add_event(ContainerCreated(
                aggregate_id=container.pk,
                owner_id=owner.pk,
                container_id=container.pk,
                units_count=len(payload.units),
            ))

            if payload.units:
                occupancy = self.listing_repo.load_occupancy(container)
                for unit_payload in payload.units:
                    self._add_unit(container, occupancy, unit_payload)
                self.listing_repo.save_occupancy(occupancy, container)
                uow.collect_events(occupancy)

        logger.info(f"Container {container.pk} created with {container.total_units} unit(s)")
        return container

    def update_container(self, container_id: int, payload: ContainerPayload) -> Listing:
        """
        Update container scalars and replace the blocks present in the payload

        Units are managed through their own operations and are not touched.
        """
        with DjangoUnitOfWork() as uow:
            container = self.listing_repo.get_container(container_id, lock=True)
            changed = self.composer.apply_update(container, payload.listing)
            changed += self._replace_container_links(container, payload)
            if changed:
                uow.add_event(ListingUpdated(
                    aggregate_id=container.pk,
                    owner_id=container.owner_id,
                    listing_id=container.pk,
                    changed=changed,
                ))

        logger.info(f"Container {container_id} updated: {', '.join(changed) or 'nothing'}")
        return container

    def delete_container(self, container_id: int, policy: Optional[str] = None):
        """
        Delete a container, handling its units per policy

        - reject: refuse while the container still has units
        - cascade: delete the units too
        - orphan: detach the units, which become standalone listings

        Events: ContainerDeleted
        """
        policy = policy or container_delete_policy()
        if policy not in DELETE_POLICIES:
            raise ValidationError(f"Unknown container delete policy {policy!r}", policy=[policy])

        with DjangoUnitOfWork() as uow:
            container = self.listing_repo.get_container(container_id, lock=True)
            occupancy = self.listing_repo.load_occupancy(container)
            unit_ids = [unit.id for unit in occupancy.units]
            units = Listing.objects.units_of(container.pk)

            if unit_ids and policy == 'reject':
                raise InvalidStateError(
                    f"Container {container_id} still has {len(unit_ids)} unit(s); delete them first",
                    container_id=container_id,
                    units=unit_ids,
                )
            if policy == 'cascade':
                units.delete()
            elif policy == 'orphan':
                units.update(parent=None)

            owner_id = container.owner_id
            container.delete()

            uow.add_event(ContainerDeleted(
                aggregate_id=container_id,
                owner_id=owner_id,
                container_id=container_id,
                policy=policy,
                unit_ids=unit_ids,
            ))

        logger.info(f"Container {container_id} deleted ({policy}, {len(unit_ids)} unit(s))")

    # ===== Units =====

    def create_unit(self, container_id: int, payload: ListingPayload) -> Listing:
        """
        Add a unit to a container

        The unit inherits owner, location and property type from the
        container. Events: UnitCreated
        """
        with DjangoUnitOfWork() as uow:
            container = self.listing_repo.get_container(container_id, lock=True)
            occupancy = self.listing_repo.load_occupancy(container)
            unit = self._add_unit(container, occupancy, payload)
            self.listing_repo.save_occupancy(occupancy, container)
            uow.collect_events(occupancy)

        unit.refresh_from_db()
        logger.info(f"Unit {unit.pk} added to container {container_id} ({occupancy})")
        return unit

    def _add_unit(self, container: Listing, occupancy: ContainerOccupancy, payload: ListingPayload) -> Listing:
        if payload.type_id is not None or payload.type_name is not None:
            raise ValidationError("Units keep their container's property type", property_type=['read_only'])

        unit = self.composer.compose(
            container.owner,
            payload,
            location=container.location,
            property_type=self._unit_property_type(container),
            parent=container,
        )
        occupancy.add_unit(unit.pk)
        return unit

    def _unit_property_type(self, container: Listing) -> PropertyType:
        slug = getattr(settings, 'LISTINGS', {}).get('UNIT_TYPE_SLUG')
        unit_type = PropertyType.objects.filter(slug=slug).first() if slug else None
        return unit_type or container.property_type

    def update_unit(self, unit_id: int, payload: ListingPayload) -> Listing:
        """Update unit scalars, images and amenities; occupancy is not editable here"""
        with DjangoUnitOfWork() as uow:
            unit = self.listing_repo.get_unit(unit_id, lock=True)
            changed = self.composer.apply_update(unit, payload)
            if changed:
                uow.add_event(ListingUpdated(
                    aggregate_id=unit.pk,
                    owner_id=unit.owner_id,
                    listing_id=unit.pk,
                    changed=changed,
                ))
        return unit

    def delete_unit(self, unit_id: int):
        """
        Remove a unit and recount its container

        Events: UnitDeleted
        """
        unit = self.listing_repo.get_unit(unit_id)

        with DjangoUnitOfWork() as uow:
            container = self.listing_repo.get_container(unit.parent_id, lock=True)
            unit = self.listing_repo.get_unit(unit_id, lock=True)
            occupancy = self.listing_repo.load_occupancy(container)

            occupancy.remove_unit(unit.pk)
            unit.delete()
            total, available = self.listing_repo.save_occupancy(occupancy, container)
            uow.collect_events(occupancy)

        logger.info(f"Unit {unit_id} deleted from container {container.pk}: {available}/{total} available")

    def list_units(self, container_id: int):
        self.listing_repo.get_container(container_id)
        return (
            Listing.objects.units_of(container_id)
            .select_related('property_type', 'features')
            .prefetch_related('images', 'amenities')
            .order_by('pk')
        )

    # ===== Read =====

    def find_container_with_units(self, container_id: int) -> Listing:
        """
        Container with its units and every association, plus unit_stats

        unit_stats is a presentation-only breakdown of units by review
        status and is never stored.
        """
        self.listing_repo.get_container(container_id)
        container = self.with_units(Listing.objects.filter(pk=container_id)).get()
        container.unit_stats = self.unit_stats(container)
        return container

    def with_units(self, queryset):
        return AssociationComposer.with_associations(queryset).prefetch_related(
            Prefetch(
                'units',
                queryset=Listing.objects.select_related('property_type', 'features')
                .prefetch_related('images', 'amenities')
                .order_by('pk'),
            ),
            'services',
            'rules',
            Prefetch(
                'common_area_links',
                queryset=ListingCommonArea.objects.select_related('common_area'),
            ),
        )

    @staticmethod
    def unit_stats(container: Listing) -> dict:
        stats = {status: 0 for status in Listing.Status.values}
        units = container.units.all()
        for unit in units:
            stats[unit.status] = stats.get(unit.status, 0) + 1
        stats['total'] = len(units)
        return stats

    def pending_containers(self):
        """Containers waiting for review, or holding a unit that is"""
        ids = (
            Listing.objects.containers()
            .filter(pending_review_filter())
            .values_list('pk', flat=True)
            .distinct()
        )
        containers = list(self.with_units(Listing.objects.filter(pk__in=list(ids))).order_by('created_at'))
        for container in containers:
            container.unit_stats = self.unit_stats(container)
        return containers

    # ===== Moderation =====

    def approve_unit(self, unit_id: int) -> Listing:
        """
        Approve a unit

        When every unit of the container is approved the container is
        approved with it. Events: ListingReviewed
        """
        unit = self.listing_repo.get_unit(unit_id)

        with DjangoUnitOfWork() as uow:
            container = self.listing_repo.get_container(unit.parent_id, lock=True)
            unit = self.listing_repo.get_unit(unit_id, lock=True)
            self._review(uow, unit, Listing.Status.APPROVED)

            others_pending = (
                Listing.objects.units_of(container.pk)
                .exclude(status=Listing.Status.APPROVED)
                .exists()
            )
            if not others_pending and container.status != Listing.Status.APPROVED:
                self._review(uow, container, Listing.Status.APPROVED)
                logger.info(f"Container {container.pk} approved with its last unit {unit_id}")

        return unit

    def reject_unit(self, unit_id: int, reason: str) -> Listing:
        """Reject a unit with a reason the owner can act on"""
        if not (reason or '').strip():
            raise ValidationError("Rejection reason is required", reason=['required'])

        with DjangoUnitOfWork() as uow:
            unit = self.listing_repo.get_unit(unit_id, lock=True)
            self._review(uow, unit, Listing.Status.REJECTED, reason.strip())
        return unit

    def approve_container(self, container_id: int) -> Listing:
        """Approve a container together with all of its pending units"""
        with DjangoUnitOfWork() as uow:
            container = self.listing_repo.get_container(container_id, lock=True)
            pending_units = list(
                Listing.objects.units_of(container.pk)
                .filter(status=Listing.Status.PENDING)
                .order_by('pk')
            )
            for unit in pending_units:
                self._review(uow, unit, Listing.Status.APPROVED)
            self._review(uow, container, Listing.Status.APPROVED)

        logger.info(f"Container {container_id} approved with {len(pending_units)} pending unit(s)")
        return container

    def _review(self, uow, listing: Listing, status: str, reason: str = ''):
        listing.status = status
        listing.rejection_reason = reason
        listing.reviewed_at = timezone.now()
        if status == Listing.Status.APPROVED:
            listing.is_verified = True
        listing.save(update_fields=['status', 'rejection_reason', 'reviewed_at', 'is_verified', 'updated_at'])
        uow.add_event(ListingReviewed(
            aggregate_id=listing.pk,
            owner_id=listing.owner_id,
            listing_id=listing.pk,
            status=status,
            reason=reason,
        ))

    # ===== Helpers =====

    def _replace_container_links(self, container: Listing, payload: ContainerPayload) -> list:
        changed = []
        if payload.services is not None:
            self.service_repo.replace_set(container, payload.services)
            changed.append('services')
        if payload.rules is not None:
            self.rule_repo.replace_set(container, payload.rules)
            changed.append('rules')
        if payload.common_area_ids is not None:
            self.common_area_repo.replace_set(container, payload.common_area_ids)
            changed.append('common_area_ids')
        return changed
