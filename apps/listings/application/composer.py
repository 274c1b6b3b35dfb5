"""
Association Composer

Assembles the cluster of records that make up one listing (location,
contact, feature flags, ordered images, institution proximity links,
amenities) as a single unit of work, and updates it with partial,
destructive-overwrite semantics.

Steps of a creation:
1. Resolve or create the Location by its natural key
2. Create the Listing row
3. Create Contact and ListingFeature when supplied
4. Insert images with positions 0..n-1 and one featured image
5. Insert institution links

Any failure rolls the whole graph back.
"""

from typing import Dict, List, Optional
import logging

from django.db.models import Prefetch
from django.utils import timezone

from shared.application.uow import DjangoUnitOfWork, require_atomic_block
from shared.domain.exceptions import NotFoundError, ValidationError
from apps.listings.application.repositories import (
    AmenityRepository,
    ImageRepository,
    InstitutionLinkRepository,
    ListingRepository,
)
from apps.listings.domain.events import ListingCreated, ListingUpdated
from apps.listings.domain.inputs import ListingPayload, LocationInput
from apps.listings.models import (
    Contact,
    Listing,
    ListingFeature,
    ListingInstitution,
    Location,
    PropertyType,
    Region,
)

logger = logging.getLogger(__name__)

# Core columns an owner may set; counters, occupancy, hierarchy and review
# state are owned by the services.
WRITABLE_FIELDS = frozenset({
    'title',
    'description',
    'monthly_rent',
    'deposit',
    'currency',
    'bedrooms',
    'bathrooms',
    'area',
    'floor',
    'available_from',
    'room_type',
    'beds_in_room',
    'requires_deposit',
    'minimum_contract_months',
})

CONTACT_FIELDS = frozenset({'contact_name', 'contact_phone', 'contact_email', 'contact_whatsapp'})
FEATURE_FIELDS = frozenset({'is_furnished', 'has_parking', 'allows_pets'})


def _check_keys(block: str, data: Dict, allowed) -> None:
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ValidationError(
            f"Unknown {block} field(s): {', '.join(unknown)}",
            **{block: unknown}
        )


class AssociationComposer:
    """Creates, updates and reads a listing together with its associations"""

    def __init__(self, listing_repo=None, image_repo=None, institution_repo=None, amenity_repo=None):
        self.listing_repo = listing_repo or ListingRepository()
        self.image_repo = image_repo or ImageRepository()
        self.institution_repo = institution_repo or InstitutionLinkRepository()
        self.amenity_repo = amenity_repo or AmenityRepository()

    # ===== Lookups =====

    def find_or_create_location(self, location_input: LocationInput) -> Location:
        """
        Reuse the Location of the same building or create it

        The (street, neighborhood, city) unique constraint decides; when two
        writers race, get_or_create falls back to reading the winner's row.
        """
        try:
            address = location_input.natural_key()
            coordinates = location_input.coordinates()
        except ValueError as exc:
            raise ValidationError(str(exc), location=[str(exc)])

        city = Region.objects.filter(pk=address.city_id, kind=Region.Kind.CITY).first()
        if city is None:
            raise ValidationError(f"Unknown city {address.city_id}", location=['city'])

        department_id = city.parent_id
        if location_input.department_id is not None:
            department = Region.objects.filter(
                pk=location_input.department_id, kind=Region.Kind.DEPARTMENT
            ).first()
            if department is None:
                raise ValidationError(
                    f"Unknown department {location_input.department_id}", location=['department']
                )
            if department.pk != city.parent_id:
                raise ValidationError(
                    f"City {city.pk} is not in department {department.pk}", location=['department']
                )
            department_id = department.pk

        defaults = {
            'department_id': department_id,
            'zip_code': location_input.zip_code or '',
            'latitude': coordinates.latitude if coordinates else None,
            'longitude': coordinates.longitude if coordinates else None,
        }
        location, created = Location.objects.get_or_create(**address.as_lookup(), defaults=defaults)

        if created:
            logger.info(f"Created location {location.pk} for {address}")
        elif coordinates and location.latitude is None:
            location.latitude = coordinates.latitude
            location.longitude = coordinates.longitude
            location.save(update_fields=['latitude', 'longitude', 'updated_at'])
        return location

    def resolve_property_type(self, type_id: Optional[int] = None, type_name: Optional[str] = None) -> PropertyType:
        """Property type by id, or by name / slug (case-insensitive)"""
        property_type = None
        if type_id is not None:
            property_type = PropertyType.objects.filter(pk=type_id).first()
        elif type_name:
            name = type_name.strip()
            property_type = (
                PropertyType.objects.filter(name__iexact=name).first()
                or PropertyType.objects.filter(slug__iexact=name).first()
            )
        else:
            raise ValidationError("Property type is required", property_type=['required'])

        if property_type is None:
            raise ValidationError(
                f"Unknown property type {type_id if type_id is not None else type_name!r}",
                property_type=['unknown'],
            )
        return property_type

    # ===== Create =====

    def create_listing_with_associations(self, owner, payload: ListingPayload) -> Listing:
        """Create a standalone listing and its associations in one transaction"""
        logger.info(f"Creating listing for owner {owner.pk}")

        with DjangoUnitOfWork() as uow:
            listing = self.compose(owner, payload)
            uow.add_event(ListingCreated(
                aggregate_id=listing.pk,
                owner_id=owner.pk,
                listing_id=listing.pk,
            ))

        logger.info(f"Listing {listing.pk} created with associations")
        return listing

    def compose(self, owner, payload: ListingPayload, *, location: Optional[Location] = None,
                property_type: Optional[PropertyType] = None, parent: Optional[Listing] = None,
                **extra) -> Listing:
        """
        Insert a listing and its associations

        The caller owns the transaction. `location` and `property_type`
        override the payload (units take them from their container); `extra`
        carries columns set by the services, such as is_container.
        """
        require_atomic_block("compose")

        if location is not None:
            if payload.location is not None:
                raise ValidationError("Units share their container's location", location=['read_only'])
        elif payload.location is not None:
            location = self.find_or_create_location(payload.location)
        else:
            raise ValidationError("Location is required", location=['required'])

        if property_type is None:
            property_type = self.resolve_property_type(payload.type_id, payload.type_name)

        _check_keys('fields', payload.fields, WRITABLE_FIELDS)
        if not (payload.fields.get('title') or '').strip():
            raise ValidationError("Title is required", title=['required'])

        listing = Listing.objects.create(
            owner=owner,
            property_type=property_type,
            location=location,
            parent=parent,
            status=Listing.Status.PENDING,
            submitted_at=timezone.now(),
            **payload.fields,
            **extra,
        )

        if payload.contact is not None:
            _check_keys('contact', payload.contact, CONTACT_FIELDS)
            Contact.objects.create(listing=listing, **payload.contact)
        if payload.features is not None:
            _check_keys('features', payload.features, FEATURE_FIELDS)
            ListingFeature.objects.create(listing=listing, **payload.features)
        if payload.images:
            self.image_repo.replace_set(listing, payload.images)
        if payload.institutions:
            self.institution_repo.replace_set(listing, payload.institutions)
        if payload.amenity_ids:
            self.amenity_repo.replace_set(listing, payload.amenity_ids)

        return listing

    # ===== Update =====

    def update_listing_with_associations(self, listing_id: int, payload: ListingPayload) -> Listing:
        """
        Partially update a listing

        Only blocks present in the payload are touched; images, institution
        links and amenities that are present replace the stored set.
        """
        logger.info(f"Updating listing {listing_id}: {', '.join(payload.present_blocks()) or 'nothing'}")

        with DjangoUnitOfWork() as uow:
            listing = self.listing_repo.get(listing_id, lock=True)
            changed = self.apply_update(listing, payload)
            if changed:
                uow.add_event(ListingUpdated(
                    aggregate_id=listing.pk,
                    owner_id=listing.owner_id,
                    listing_id=listing.pk,
                    changed=changed,
                ))

        return listing

    def apply_update(self, listing: Listing, payload: ListingPayload) -> List[str]:
        """Write the present blocks of the payload; the caller owns the transaction"""
        require_atomic_block("apply_update")
        changed = payload.present_blocks()
        if not changed:
            return changed

        if payload.location is not None:
            if listing.parent_id is not None:
                raise ValidationError("Units share their container's location", location=['read_only'])
            listing.location = self.find_or_create_location(payload.location)
            if listing.is_container:
                # the building moved, so did every room in it
                Listing.objects.units_of(listing.pk).update(location=listing.location)

        if payload.type_id is not None or payload.type_name is not None:
            if listing.parent_id is not None:
                raise ValidationError("Units keep their property type", property_type=['read_only'])
            listing.property_type = self.resolve_property_type(payload.type_id, payload.type_name)

        _check_keys('fields', payload.fields, WRITABLE_FIELDS)
        if 'title' in payload.fields and not (payload.fields['title'] or '').strip():
            raise ValidationError("Title is required", title=['required'])
        for name, value in payload.fields.items():
            setattr(listing, name, value)

        if listing.status == Listing.Status.REJECTED:
            listing.status = Listing.Status.PENDING
            listing.rejection_reason = ''
            listing.submitted_at = timezone.now()

        listing.save()

        if payload.contact is not None:
            _check_keys('contact', payload.contact, CONTACT_FIELDS)
            Contact.objects.update_or_create(listing=listing, defaults=payload.contact)
        if payload.features is not None:
            _check_keys('features', payload.features, FEATURE_FIELDS)
            ListingFeature.objects.update_or_create(listing=listing, defaults=payload.features)
        if payload.images is not None:
            self.image_repo.replace_set(listing, payload.images)
        if payload.institutions is not None:
            self.institution_repo.replace_set(listing, payload.institutions)
        if payload.amenity_ids is not None:
            self.amenity_repo.replace_set(listing, payload.amenity_ids)

        return changed

    # ===== Read =====

    def find_listing_with_associations(self, listing_id: int) -> Listing:
        """Listing with the same association graph creation produces"""
        listing = self.with_associations(Listing.objects.all()).filter(pk=listing_id).first()
        if listing is None:
            raise NotFoundError(f"Listing {listing_id} not found", listing_id=listing_id)
        return listing

    @staticmethod
    def with_associations(queryset):
        return queryset.select_related(
            'owner',
            'property_type',
            'location__city',
            'location__department',
            'contact',
            'features',
            'parent',
        ).prefetch_related(
            'images',
            'amenities',
            Prefetch(
                'institution_links',
                queryset=ListingInstitution.objects.select_related('institution'),
            ),
        )

