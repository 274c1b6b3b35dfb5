"""
Listing Repositories

Persistence access for the listings domain. Two kinds live here:

- ListingRepository: loads containers and units (optionally under a row
  lock), turns a container into its ContainerOccupancy aggregate and
  writes the aggregate back, recounting the container's unit counters
  from the unit rows.
- ReplaceableSetRepository subclasses: every one-to-many / many-to-many
  block of a listing (images, institution links, amenities, common areas,
  services, rules) is written with replace_set, which deletes the current
  set and inserts the new one atomically. Sets are never merged.
"""

from typing import Iterable, List, Optional
import logging

from django.db import transaction
from django.db.models import Q

from shared.application.uow import lock_for_update, require_atomic_block
from shared.domain.exceptions import InvalidStateError, NotFoundError, ValidationError
from apps.listings.domain.inputs import (
    ImageInput,
    InstitutionLink,
    RuleInput,
    ServiceInput,
    arrange_images,
)
from apps.listings.domain.occupancy import ContainerOccupancy
from apps.listings.models import (
    Amenity,
    CommonArea,
    Institution,
    Listing,
    ListingCommonArea,
    ListingImage,
    ListingInstitution,
    ListingRule,
    ListingService,
)

logger = logging.getLogger(__name__)


class ListingRepository:
    """Loads and stores listings, containers and their occupancy"""

    def get(self, listing_id: int, lock: bool = False) -> Listing:
        queryset = Listing.objects.filter(pk=listing_id)
        if lock:
            queryset = lock_for_update(queryset)
        listing = queryset.first()
        if listing is None:
            raise NotFoundError(f"Listing {listing_id} not found", listing_id=listing_id)
        return listing

    def get_container(self, container_id: int, lock: bool = False) -> Listing:
        """
        Load a container

        Raises:
            NotFoundError: no listing with this id
            InvalidStateError: the listing is not a container
        """
        queryset = Listing.objects.filter(pk=container_id)
        if lock:
            queryset = lock_for_update(queryset)
        container = queryset.first()
        if container is None:
            raise NotFoundError(f"Container {container_id} not found", container_id=container_id)
        if not container.is_container:
            raise InvalidStateError(
                f"Listing {container_id} is not a container",
                container_id=container_id,
            )
        return container

    def get_unit(self, unit_id: int, lock: bool = False) -> Listing:
        """
        Load a unit

        Raises:
            NotFoundError: no listing with this id
            InvalidStateError: the listing has no parent container
        """
        queryset = Listing.objects.filter(pk=unit_id)
        if lock:
            queryset = lock_for_update(queryset)
        unit = queryset.first()
        if unit is None:
            raise NotFoundError(f"Unit {unit_id} not found", unit_id=unit_id)
        if unit.parent_id is None:
            raise InvalidStateError(f"Listing {unit_id} is not a unit", unit_id=unit_id)
        return unit

    def load_occupancy(self, container: Listing) -> ContainerOccupancy:
        """
        Build the occupancy aggregate of an already locked container

        Unit rows are locked after the container, always in id order.
        """
        require_atomic_block("load_occupancy")
        unit_rows = lock_for_update(
            Listing.objects.units_of(container.pk).order_by('pk')
        ).values_list('pk', 'is_rented')
        return ContainerOccupancy.from_rows(
            container_id=container.pk,
            owner_id=container.owner_id,
            rental_mode=container.rental_mode,
            is_rented=container.is_rented,
            unit_rows=list(unit_rows),
        )

    def save_occupancy(self, occupancy: ContainerOccupancy, container: Optional[Listing] = None):
        """
        Write unit flags and container mode, then recount the counters

        Returns the (total_units, available_units) pair that was stored.
        """
        require_atomic_block("save_occupancy")
        units = Listing.objects.units_of(occupancy.id)

        rented_ids = occupancy.rented_unit_ids()
        vacant_ids = occupancy.vacant_unit_ids()
        if rented_ids:
            units.filter(pk__in=rented_ids, is_rented=False).update(is_rented=True)
        if vacant_ids:
            units.filter(pk__in=vacant_ids, is_rented=True).update(is_rented=False)

        Listing.objects.filter(pk=occupancy.id).update(
            rental_mode=occupancy.rental_mode.value,
            is_rented=occupancy.is_rented,
        )
        total, available = self.recount_aggregates(occupancy.id)

        if total != occupancy.total_units or available != occupancy.available_units:
            logger.warning(
                f"Container {occupancy.id} recount ({available}/{total}) differs from "
                f"aggregate state ({occupancy.available_units}/{occupancy.total_units})"
            )

        if container is not None:
            container.rental_mode = occupancy.rental_mode.value
            container.is_rented = occupancy.is_rented
            container.total_units = total
            container.available_units = available
        return total, available

    def recount_aggregates(self, container_id: int):
        """
        Recompute total_units / available_units from the unit rows

        Counters are always derived by COUNT inside the caller's transaction,
        never incremented or decremented.
        """
        require_atomic_block("recount_aggregates")
        counts = Listing.objects.unit_counts(container_id)
        total = counts['total'] or 0
        available = counts['available'] or 0
        Listing.objects.filter(pk=container_id).update(
            total_units=total,
            available_units=available,
        )
        logger.debug(f"Container {container_id} counters recounted: {available}/{total} available")
        return total, available


class ReplaceableSetRepository:
    """
    Destructive-overwrite writer for one association block of a listing

    Subclasses set `model` and implement `build`; `validate` may reject the
    whole input before anything is deleted.
    """

    model = None
    name = ''

    def validate(self, items: List) -> None:
        pass

    def build(self, listing: Listing, items: List) -> List:
        raise NotImplementedError

    def current(self, listing: Listing):
        return self.model.objects.filter(listing=listing)

    def replace_set(self, listing: Listing, items: Iterable) -> List:
        """Replace every row of this block for the listing, all or nothing"""
        items = list(items)
        with transaction.atomic():
            self.validate(items)
            removed, _ = self.current(listing).delete()
            rows = self.model.objects.bulk_create(self.build(listing, items))
        logger.debug(
            f"Replaced {self.name or self.model.__name__} of listing {listing.pk}: "
            f"{removed} removed, {len(rows)} inserted"
        )
        return rows


def _missing_ids(model, ids: Iterable[int]) -> List[int]:
    wanted = set(ids)
    found = set(model.objects.filter(pk__in=wanted).values_list('pk', flat=True))
    return sorted(wanted - found)


def _unique(ids: Iterable[int]) -> List[int]:
    seen = []
    for item_id in ids:
        if item_id not in seen:
            seen.append(item_id)
    return seen


class ImageRepository(ReplaceableSetRepository):
    model = ListingImage
    name = 'images'

    def validate(self, items: List[ImageInput]) -> None:
        blank = [index for index, image in enumerate(items) if not (image.url or '').strip()]
        if blank:
            raise ValidationError("Image URL must not be empty", images=blank)

    def build(self, listing: Listing, items: List[ImageInput]) -> List[ListingImage]:
        return [
            ListingImage(
                listing=listing,
                url=image.url.strip(),
                is_featured=image.is_featured,
                order_position=position,
            )
            for position, image in arrange_images(items)
        ]


class InstitutionLinkRepository(ReplaceableSetRepository):
    model = ListingInstitution
    name = 'institution links'

    def validate(self, items: List[InstitutionLink]) -> None:
        missing = _missing_ids(Institution, (link.institution_id for link in items))
        if missing:
            raise ValidationError(
                f"Unknown institution(s): {', '.join(str(i) for i in missing)}",
                institutions=missing,
            )
        negative = [link.institution_id for link in items if link.distance is not None and link.distance < 0]
        if negative:
            raise ValidationError("Distance must not be negative", institutions=negative)

    def build(self, listing: Listing, items: List[InstitutionLink]) -> List[ListingInstitution]:
        rows = {}
        for link in items:
            # first mention of an institution wins
            rows.setdefault(link.institution_id, ListingInstitution(
                listing=listing,
                institution_id=link.institution_id,
                distance=link.distance,
            ))
        return list(rows.values())


class CommonAreaRepository(ReplaceableSetRepository):
    model = ListingCommonArea
    name = 'common areas'

    def validate(self, items: List[int]) -> None:
        missing = _missing_ids(CommonArea, items)
        if missing:
            raise ValidationError(
                f"Unknown common area(s): {', '.join(str(i) for i in missing)}",
                common_areas=missing,
            )

    def build(self, listing: Listing, items: List[int]) -> List[ListingCommonArea]:
        return [ListingCommonArea(listing=listing, common_area_id=area_id) for area_id in _unique(items)]


class AmenityRepository(ReplaceableSetRepository):
    """Amenities are a plain many-to-many; the auto-created through table is replaced"""

    model = Listing.amenities.through
    name = 'amenities'

    def current(self, listing: Listing):
        return self.model.objects.filter(listing_id=listing.pk)

    def validate(self, items: List[int]) -> None:
        missing = _missing_ids(Amenity, items)
        if missing:
            raise ValidationError(
                f"Unknown amenity(ies): {', '.join(str(i) for i in missing)}",
                amenities=missing,
            )

    def build(self, listing: Listing, items: List[int]) -> List:
        return [self.model(listing_id=listing.pk, amenity_id=amenity_id) for amenity_id in _unique(items)]


class ServiceRepository(ReplaceableSetRepository):
    model = ListingService
    name = 'services'

    def validate(self, items: List[ServiceInput]) -> None:
        allowed = set(ListingService.ServiceType.values)
        unknown = sorted({item.service_type for item in items} - allowed)
        if unknown:
            raise ValidationError(f"Unknown service type(s): {', '.join(unknown)}", services=unknown)

    def build(self, listing: Listing, items: List[ServiceInput]) -> List[ListingService]:
        return [
            ListingService(
                listing=listing,
                service_type=item.service_type,
                is_included=item.is_included,
                additional_cost=item.additional_cost,
                description=item.description or '',
            )
            for item in items
        ]


class RuleRepository(ReplaceableSetRepository):
    model = ListingRule
    name = 'rules'

    def validate(self, items: List[RuleInput]) -> None:
        allowed = set(ListingRule.RuleType.values)
        unknown = sorted({item.rule_type for item in items} - allowed)
        if unknown:
            raise ValidationError(f"Unknown rule type(s): {', '.join(unknown)}", rules=unknown)

    def build(self, listing: Listing, items: List[RuleInput]) -> List[ListingRule]:
        return [
            ListingRule(
                listing=listing,
                rule_type=item.rule_type,
                is_allowed=item.is_allowed,
                value=item.value or '',
                description=item.description or '',
            )
            for item in items
        ]


def pending_review_filter() -> Q:
    """Containers that are pending themselves or have a pending unit"""
    return Q(status=Listing.Status.PENDING) | Q(units__status=Listing.Status.PENDING)
