"""
Composition inputs

Typed payloads accepted by the association composer and the hierarchy
store. Serializers build them at the HTTP boundary; services never look at
raw request dicts.

For every optional nested block, None means "not present in the request"
(leave untouched on update) while an empty list means "replace with
nothing".
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple, Union

from shared.domain.value_objects import Coordinates, NaturalAddress


@dataclass(frozen=True)
class LocationInput:
    street: str
    neighborhood: str
    city_id: int
    department_id: Optional[int] = None
    zip_code: str = ''
    latitude: Optional[Decimal] = None
    longitude: Optional[Decimal] = None

    def natural_key(self) -> NaturalAddress:
        return NaturalAddress(self.street, self.neighborhood, self.city_id)

    def coordinates(self) -> Optional[Coordinates]:
        return Coordinates.from_optional(self.latitude, self.longitude)


@dataclass(frozen=True)
class ImageInput:
    """Image URL handed over by the file storage service"""
    url: str
    is_featured: bool = False


@dataclass(frozen=True)
class InstitutionRef:
    """Nearby institution without a known distance"""
    institution_id: int

    @property
    def distance(self) -> Optional[int]:
        return None


@dataclass(frozen=True)
class InstitutionProximity:
    """Nearby institution with its distance in meters"""
    institution_id: int
    distance: int


InstitutionLink = Union[InstitutionRef, InstitutionProximity]


@dataclass(frozen=True)
class ServiceInput:
    service_type: str
    is_included: bool = True
    additional_cost: Optional[Decimal] = None
    description: str = ''


@dataclass(frozen=True)
class RuleInput:
    rule_type: str
    is_allowed: bool = True
    value: str = ''
    description: str = ''


@dataclass
class ListingPayload:
    """
    Everything needed to create or update one listing

    `fields` carries the core scalar columns (title, monthly_rent, ...);
    on update only the keys present are written.
    """
    fields: Dict[str, Any] = field(default_factory=dict)
    type_id: Optional[int] = None
    type_name: Optional[str] = None
    location: Optional[LocationInput] = None
    contact: Optional[Dict[str, Any]] = None
    features: Optional[Dict[str, Any]] = None
    images: Optional[List[ImageInput]] = None
    institutions: Optional[List[InstitutionLink]] = None
    amenity_ids: Optional[List[int]] = None

    def present_blocks(self) -> List[str]:
        """Names of the parts of the listing this payload touches"""
        blocks = sorted(self.fields)
        for name in ('location', 'contact', 'features', 'images', 'institutions', 'amenity_ids'):
            if getattr(self, name) is not None:
                blocks.append(name)
        if self.type_id is not None or self.type_name is not None:
            blocks.append('property_type')
        return blocks


@dataclass
class ContainerPayload:
    """A container listing plus its container-only links and initial units"""
    listing: ListingPayload = field(default_factory=ListingPayload)
    services: Optional[List[ServiceInput]] = None
    rules: Optional[List[RuleInput]] = None
    common_area_ids: Optional[List[int]] = None
    units: List[ListingPayload] = field(default_factory=list)

    def present_blocks(self) -> List[str]:
        blocks = self.listing.present_blocks()
        for name in ('services', 'rules', 'common_area_ids'):
            if getattr(self, name) is not None:
                blocks.append(name)
        return blocks


def arrange_images(images: List[ImageInput]) -> List[Tuple[int, ImageInput]]:
    """
    Assign display positions 0..n-1 in input order and settle the featured image

    Exactly one image ends up featured: the first one marked by the caller,
    or the image at position 0 when none is marked.
    """
    featured_index = next((index for index, image in enumerate(images) if image.is_featured), 0)
    return [
        (position, ImageInput(url=image.url, is_featured=position == featured_index))
        for position, image in enumerate(images)
    ]
