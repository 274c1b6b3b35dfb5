"""FilterSet definitions for units inside a container."""

from __future__ import annotations

import django_filters  # type: ignore

from .models import Listing


class UnitFilterSet(django_filters.FilterSet):
    """Filters for the unit list of a container."""

    status = django_filters.ChoiceFilter(choices=Listing.Status.choices)
    is_rented = django_filters.BooleanFilter()
    room_type = django_filters.ChoiceFilter(choices=Listing.RoomType.choices)
    price_min = django_filters.NumberFilter(field_name="monthly_rent", lookup_expr="gte")
    price_max = django_filters.NumberFilter(field_name="monthly_rent", lookup_expr="lte")

    # CSV of amenity ids, requires all selected amenities
    amenities = django_filters.CharFilter(method="filter_amenities")

    class Meta:
        model = Listing
        fields = ["status", "is_rented", "room_type"]

    def filter_amenities(self, queryset, name, value):  # type: ignore
        try:
            ids = [int(x) for x in str(value).replace(" ", "").split(",") if x]
        except ValueError:
            return queryset
        for amenity_id in ids:
            queryset = queryset.filter(amenities__id=amenity_id)
        return queryset.distinct()
