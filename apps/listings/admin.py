"""Admin registrations for the listings domain."""

from __future__ import annotations

from django.contrib import admin
from mptt.admin import MPTTModelAdmin

from .models import (
    ActivityLog,
    Amenity,
    CommonArea,
    Institution,
    Listing,
    ListingImage,
    ListingRule,
    ListingService,
    Location,
    PropertyType,
    Region,
)


@admin.register(Region)
class RegionAdmin(MPTTModelAdmin):
    list_display = ("name", "kind", "slug", "is_active")
    list_filter = ("kind", "is_active")
    search_fields = ("name", "slug")
    prepopulated_fields = {"slug": ("name",)}


@admin.register(PropertyType)
class PropertyTypeAdmin(admin.ModelAdmin):
    list_display = ("name", "slug")
    search_fields = ("name", "slug")


@admin.register(Amenity)
class AmenityAdmin(admin.ModelAdmin):
    list_display = ("name", "icon")
    search_fields = ("name",)


@admin.register(CommonArea)
class CommonAreaAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "icon")
    search_fields = ("name",)


@admin.register(Institution)
class InstitutionAdmin(admin.ModelAdmin):
    list_display = ("name", "institution_type", "city")
    list_filter = ("institution_type",)
    search_fields = ("name", "city__name")


@admin.register(Location)
class LocationAdmin(admin.ModelAdmin):
    list_display = ("street", "neighborhood", "city", "department")
    search_fields = ("street", "neighborhood", "city__name")
    list_select_related = ("city", "department")


class ListingImageInline(admin.TabularInline):
    model = ListingImage
    extra = 0
    fields = ("url", "order_position", "is_featured")


class ListingServiceInline(admin.TabularInline):
    model = ListingService
    extra = 0


class ListingRuleInline(admin.TabularInline):
    model = ListingRule
    extra = 0


class UnitInline(admin.TabularInline):
    model = Listing
    fk_name = "parent"
    extra = 0
    fields = ("title", "monthly_rent", "status", "is_rented")
    readonly_fields = fields
    can_delete = False
    show_change_link = True

    def has_add_permission(self, request, obj=None):  # type: ignore
        return False


@admin.register(Listing)
class ListingAdmin(admin.ModelAdmin):
    list_display = (
        "title",
        "owner",
        "property_type",
        "status",
        "is_container",
        "rental_mode",
        "available_units",
        "total_units",
        "is_rented",
    )
    list_filter = ("status", "is_container", "rental_mode", "property_type")
    search_fields = ("title", "owner__email", "location__street")
    raw_id_fields = ("owner", "location", "parent")
    filter_horizontal = ("amenities",)
    # counters and occupancy are maintained by the services
    readonly_fields = (
        "rental_mode",
        "total_units",
        "available_units",
        "is_rented",
        "submitted_at",
        "reviewed_at",
        "created_at",
        "updated_at",
    )
    inlines = (ListingImageInline, ListingServiceInline, ListingRuleInline, UnitInline)


@admin.register(ActivityLog)
class ActivityLogAdmin(admin.ModelAdmin):
    list_display = ("activity_type", "listing_reference", "user", "created_at")
    list_filter = ("activity_type",)
    search_fields = ("message",)
    readonly_fields = ("activity_type", "message", "user", "listing", "listing_reference", "payload", "created_at")
