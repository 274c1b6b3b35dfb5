"""
Common Value Objects

Value objects used across multiple domains:
- Coordinates: Geographic point of a building
- NaturalAddress: Natural key that identifies a building (street, neighborhood, city)
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from shared.domain.base import ValueObject


@dataclass(frozen=True)
class Coordinates(ValueObject):
    """
    Coordinates value object

    Latitude/longitude pair in decimal degrees.
    """
    latitude: Decimal
    longitude: Decimal

    def __post_init__(self):
        if not Decimal('-90') <= Decimal(self.latitude) <= Decimal('90'):
            raise ValueError(f"Latitude out of range: {self.latitude}")
        if not Decimal('-180') <= Decimal(self.longitude) <= Decimal('180'):
            raise ValueError(f"Longitude out of range: {self.longitude}")

    @classmethod
    def from_optional(cls, latitude, longitude) -> Optional['Coordinates']:
        """Build coordinates only when both parts are present"""
        if latitude is None or longitude is None:
            return None
        return cls(Decimal(str(latitude)), Decimal(str(longitude)))

    def __str__(self):
        return f"{self.latitude}, {self.longitude}"


@dataclass(frozen=True)
class NaturalAddress(ValueObject):
    """
    Natural address key

    Two listings in the same building share one location row. The building
    is identified by street, neighborhood and city; surrounding whitespace
    is not significant.
    """
    street: str
    neighborhood: str
    city_id: int

    def __post_init__(self):
        object.__setattr__(self, 'street', (self.street or '').strip())
        object.__setattr__(self, 'neighborhood', (self.neighborhood or '').strip())
        if not self.street:
            raise ValueError("Street is required")
        if not self.neighborhood:
            raise ValueError("Neighborhood is required")
        if not self.city_id:
            raise ValueError("City is required")

    def as_lookup(self) -> dict:
        """ORM lookup kwargs for the unique (street, neighborhood, city) key"""
        return {
            'street': self.street,
            'neighborhood': self.neighborhood,
            'city_id': self.city_id,
        }

    def __str__(self):
        return f"{self.street}, {self.neighborhood} (city {self.city_id})"
