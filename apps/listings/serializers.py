"""Serializers for containers, units and plain listings.

Read serializers render the hydrated association graph. Write serializers
only validate request shape and hand a typed payload (``to_payload``) to
the application services; they never save models themselves.
"""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from apps.listings.domain.inputs import (
    ContainerPayload,
    ImageInput,
    InstitutionProximity,
    InstitutionRef,
    ListingPayload,
    LocationInput,
    RuleInput,
    ServiceInput,
)
from apps.listings.domain.occupancy import RentalMode

from .models import (
    Amenity,
    CommonArea,
    Contact,
    Institution,
    Listing,
    ListingFeature,
    ListingImage,
    ListingInstitution,
    ListingRule,
    ListingService,
    Location,
    PropertyType,
    Region,
)

SCALAR_FIELDS = [
    "title",
    "description",
    "monthly_rent",
    "deposit",
    "currency",
    "bedrooms",
    "bathrooms",
    "area",
    "floor",
    "available_from",
    "room_type",
    "beds_in_room",
    "requires_deposit",
    "minimum_contract_months",
]


# ===== Read side =====


class RegionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Region
        fields = ["id", "name", "kind", "slug"]


class PropertyTypeSerializer(serializers.ModelSerializer):
    class Meta:
        model = PropertyType
        fields = ["id", "slug", "name", "description"]


class AmenitySerializer(serializers.ModelSerializer):
    class Meta:
        model = Amenity
        fields = ["id", "name", "icon"]


class CommonAreaSerializer(serializers.ModelSerializer):
    class Meta:
        model = CommonArea
        fields = ["id", "name", "slug", "icon", "description"]


class InstitutionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Institution
        fields = ["id", "name", "institution_type", "city"]


class LocationSerializer(serializers.ModelSerializer):
    city = RegionSerializer(read_only=True)
    department = RegionSerializer(read_only=True)

    class Meta:
        model = Location
        fields = ["id", "street", "neighborhood", "city", "department", "zip_code", "latitude", "longitude"]


class ContactSerializer(serializers.ModelSerializer):
    class Meta:
        model = Contact
        fields = ["contact_name", "contact_phone", "contact_email", "contact_whatsapp"]


class ListingFeatureSerializer(serializers.ModelSerializer):
    class Meta:
        model = ListingFeature
        fields = ["is_furnished", "has_parking", "allows_pets"]


class ListingImageSerializer(serializers.ModelSerializer):
    class Meta:
        model = ListingImage
        fields = ["id", "url", "is_featured", "order_position"]


class ListingInstitutionSerializer(serializers.ModelSerializer):
    institution = InstitutionSerializer(read_only=True)

    class Meta:
        model = ListingInstitution
        fields = ["institution", "distance"]


class ListingServiceSerializer(serializers.ModelSerializer):
    service_type_display = serializers.ReadOnlyField(source="get_service_type_display")

    class Meta:
        model = ListingService
        fields = ["id", "service_type", "service_type_display", "is_included", "additional_cost", "description"]


class ListingRuleSerializer(serializers.ModelSerializer):
    rule_type_display = serializers.ReadOnlyField(source="get_rule_type_display")

    class Meta:
        model = ListingRule
        fields = ["id", "rule_type", "rule_type_display", "is_allowed", "value", "description"]


class OwnerSerializer(serializers.Serializer):
    id = serializers.IntegerField(read_only=True)
    username = serializers.CharField(read_only=True)
    email = serializers.EmailField(read_only=True)
    phone = serializers.CharField(read_only=True)


class ContainerSummarySerializer(serializers.ModelSerializer):
    """Container counters shown next to one of its units."""

    class Meta:
        model = Listing
        fields = ["id", "title", "rental_mode", "total_units", "available_units", "is_rented"]


class UnitSerializer(serializers.ModelSerializer):
    images = ListingImageSerializer(many=True, read_only=True)
    amenities = AmenitySerializer(many=True, read_only=True)
    features = ListingFeatureSerializer(read_only=True)
    property_type = PropertyTypeSerializer(read_only=True)

    class Meta:
        model = Listing
        fields = [
            "id",
            "parent_id",
            *SCALAR_FIELDS,
            "property_type",
            "status",
            "rejection_reason",
            "is_rented",
            "features",
            "images",
            "amenities",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ListingSerializer(serializers.ModelSerializer):
    owner = OwnerSerializer(read_only=True)
    property_type = PropertyTypeSerializer(read_only=True)
    location = LocationSerializer(read_only=True)
    contact = ContactSerializer(read_only=True)
    features = ListingFeatureSerializer(read_only=True)
    images = ListingImageSerializer(many=True, read_only=True)
    amenities = AmenitySerializer(many=True, read_only=True)
    institutions = ListingInstitutionSerializer(source="institution_links", many=True, read_only=True)
    parent = ContainerSummarySerializer(read_only=True)

    class Meta:
        model = Listing
        fields = [
            "id",
            "owner",
            "property_type",
            "location",
            "parent",
            *SCALAR_FIELDS,
            "status",
            "rejection_reason",
            "submitted_at",
            "reviewed_at",
            "is_featured",
            "is_verified",
            "is_rented",
            "is_container",
            "rental_mode",
            "total_units",
            "available_units",
            "contact",
            "features",
            "images",
            "amenities",
            "institutions",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ContainerSerializer(ListingSerializer):
    units = UnitSerializer(many=True, read_only=True)
    services = ListingServiceSerializer(many=True, read_only=True)
    rules = ListingRuleSerializer(many=True, read_only=True)
    common_areas = serializers.SerializerMethodField()
    unit_stats = serializers.SerializerMethodField()

    class Meta(ListingSerializer.Meta):
        fields = ListingSerializer.Meta.fields + ["units", "services", "rules", "common_areas", "unit_stats"]
        read_only_fields = fields

    def get_common_areas(self, obj: Listing) -> list:
        return CommonAreaSerializer([link.common_area for link in obj.common_area_links.all()], many=True).data

    def get_unit_stats(self, obj: Listing) -> dict | None:
        return getattr(obj, "unit_stats", None)


# ===== Write side =====


class ImageInputField(serializers.Field):
    """Accepts an image as a bare URL string or as {"url": ..., "is_featured": ...}."""

    default_error_messages = {
        "invalid": "Expected an image URL or an object with a url.",
    }

    def to_internal_value(self, data):  # type: ignore
        if isinstance(data, str):
            url, is_featured = data, False
        elif isinstance(data, dict) and isinstance(data.get("url"), str):
            url, is_featured = data["url"], bool(data.get("is_featured", False))
        else:
            self.fail("invalid")
        if not url.strip():
            self.fail("invalid")
        return ImageInput(url=url.strip(), is_featured=is_featured)

    def to_representation(self, value):  # type: ignore
        return {"url": value.url, "is_featured": value.is_featured}


class InstitutionLinkField(serializers.Field):
    """
    Accepts a nearby institution as its id, or as {"id": ..., "distance": ...}.

    The two shapes become InstitutionRef and InstitutionProximity so that
    services never inspect the raw value.
    """

    default_error_messages = {
        "invalid": "Expected an institution id or an object with id and distance.",
    }

    def to_internal_value(self, data):  # type: ignore
        if isinstance(data, bool):
            self.fail("invalid")
        if isinstance(data, (int, str)):
            return InstitutionRef(institution_id=self._as_int(data))
        if isinstance(data, dict):
            raw_id = data.get("id", data.get("institution_id"))
            if raw_id is None or isinstance(raw_id, bool):
                self.fail("invalid")
            institution_id = self._as_int(raw_id)
            distance = data.get("distance")
            if distance is None:
                return InstitutionRef(institution_id=institution_id)
            return InstitutionProximity(institution_id=institution_id, distance=self._as_int(distance))
        self.fail("invalid")

    def to_representation(self, value):  # type: ignore
        return {"id": value.institution_id, "distance": value.distance}

    def _as_int(self, value) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            self.fail("invalid")


class LocationInputSerializer(serializers.Serializer):
    street = serializers.CharField(max_length=255)
    neighborhood = serializers.CharField(max_length=100)
    city = serializers.IntegerField(min_value=1)
    department = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    zip_code = serializers.CharField(max_length=20, required=False, allow_blank=True)
    latitude = serializers.DecimalField(
        max_digits=10, decimal_places=8, min_value=-90, max_value=90, required=False, allow_null=True
    )
    longitude = serializers.DecimalField(
        max_digits=11, decimal_places=8, min_value=-180, max_value=180, required=False, allow_null=True
    )

    def to_input(self, data: dict) -> LocationInput:
        return LocationInput(
            street=data["street"],
            neighborhood=data["neighborhood"],
            city_id=data["city"],
            department_id=data.get("department"),
            zip_code=data.get("zip_code", ""),
            latitude=data.get("latitude"),
            longitude=data.get("longitude"),
        )


class ContactInputSerializer(serializers.Serializer):
    contact_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    contact_phone = serializers.CharField(max_length=20, required=False, allow_blank=True)
    contact_email = serializers.EmailField(required=False, allow_blank=True)
    contact_whatsapp = serializers.CharField(max_length=20, required=False, allow_blank=True)


class FeatureInputSerializer(serializers.Serializer):
    is_furnished = serializers.BooleanField(required=False)
    has_parking = serializers.BooleanField(required=False)
    allows_pets = serializers.BooleanField(required=False)


class ServiceInputSerializer(serializers.Serializer):
    service_type = serializers.ChoiceField(choices=ListingService.ServiceType.choices)
    is_included = serializers.BooleanField(default=True)
    additional_cost = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)
    description = serializers.CharField(required=False, allow_blank=True, default="")


class RuleInputSerializer(serializers.Serializer):
    rule_type = serializers.ChoiceField(choices=ListingRule.RuleType.choices)
    is_allowed = serializers.BooleanField(default=True)
    value = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    description = serializers.CharField(required=False, allow_blank=True, default="")


class ListingWriteSerializer(serializers.Serializer):
    """Shape of a listing create/update request; every key is optional on update."""

    title = serializers.CharField(max_length=255, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    monthly_rent = serializers.DecimalField(max_digits=15, decimal_places=0, min_value=0, required=False)
    deposit = serializers.DecimalField(max_digits=15, decimal_places=0, min_value=0, required=False, allow_null=True)
    currency = serializers.CharField(max_length=10, required=False)
    bedrooms = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    bathrooms = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    area = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, required=False, allow_null=True)
    floor = serializers.IntegerField(required=False, allow_null=True)
    available_from = serializers.DateField(required=False, allow_null=True)
    room_type = serializers.ChoiceField(choices=Listing.RoomType.choices, required=False, allow_null=True)
    beds_in_room = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    requires_deposit = serializers.BooleanField(required=False)
    minimum_contract_months = serializers.IntegerField(min_value=0, required=False, allow_null=True)

    type = serializers.IntegerField(min_value=1, required=False)
    type_name = serializers.CharField(max_length=100, required=False)
    location = LocationInputSerializer(required=False)
    contact = ContactInputSerializer(required=False)
    features = FeatureInputSerializer(required=False)
    images = serializers.ListField(child=ImageInputField(), required=False)
    institutions = serializers.ListField(child=InstitutionLinkField(), required=False)
    amenities = serializers.ListField(child=serializers.IntegerField(min_value=1), required=False)

    def validate(self, attrs):  # type: ignore
        if attrs.get("type") is not None and attrs.get("type_name"):
            raise serializers.ValidationError("Send either type or type_name, not both.")
        return attrs

    def to_payload(self) -> ListingPayload:
        return listing_payload_from(self.validated_data)


class UnitWriteSerializer(ListingWriteSerializer):
    """Units take location, type and institutions from their container."""

    type = None
    type_name = None
    location = None
    institutions = None


class ContainerWriteSerializer(ListingWriteSerializer):
    services = ServiceInputSerializer(many=True, required=False)
    rules = RuleInputSerializer(many=True, required=False)
    common_areas = serializers.ListField(child=serializers.IntegerField(min_value=1), required=False)
    units = UnitWriteSerializer(many=True, required=False)

    def validate(self, attrs):  # type: ignore
        attrs = super().validate(attrs)
        if self.context.get("updating") and "units" in attrs:
            raise serializers.ValidationError({"units": "Units are managed through their own endpoints."})
        return attrs

    def to_payload(self) -> ContainerPayload:
        data = self.validated_data
        services = data.get("services")
        rules = data.get("rules")
        return ContainerPayload(
            listing=listing_payload_from(data),
            services=[ServiceInput(**item) for item in services] if services is not None else None,
            rules=[RuleInput(**item) for item in rules] if rules is not None else None,
            common_area_ids=data.get("common_areas"),
            units=[listing_payload_from(unit) for unit in data.get("units", [])],
        )


class AdminContainerWriteSerializer(ContainerWriteSerializer):
    """Container payload created by an admin for another account."""

    target_owner = serializers.IntegerField(min_value=1)


class RentalStatusSerializer(serializers.Serializer):
    is_rented = serializers.BooleanField()


class ChangeModeSerializer(serializers.Serializer):
    mode = serializers.ChoiceField(
        choices=[(mode.value, mode.value) for mode in RentalMode],
        default=RentalMode.BY_UNIT.value,
    )


class RejectSerializer(serializers.Serializer):
    reason = serializers.CharField()


def listing_payload_from(data: dict) -> ListingPayload:
    location = data.get("location")
    contact = data.get("contact")
    features = data.get("features")
    return ListingPayload(
        fields={name: data[name] for name in SCALAR_FIELDS if name in data},
        type_id=data.get("type"),
        type_name=data.get("type_name"),
        location=LocationInputSerializer().to_input(location) if location is not None else None,
        contact=dict(contact) if contact is not None else None,
        features=dict(features) if features is not None else None,
        images=data.get("images"),
        institutions=data.get("institutions"),
        amenity_ids=data.get("amenities"),
    )
