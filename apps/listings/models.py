"""Listing domain models for RoomNest.

Un anuncio (Listing) es la entidad única que representa tanto un contenedor
(pensión, apartamento, aparta-estudio) como una unidad (habitación) dentro de
él. La jerarquía tiene un solo nivel: la unidad apunta a su contenedor por
``parent`` y un contenedor nunca tiene padre.

Los contadores ``total_units`` y ``available_units`` del contenedor son
desnormalizados; los servicios de ``application`` los recalculan con un
conteo autoritativo dentro de la misma transacción que los modifica.
"""

from __future__ import annotations

from django.conf import settings  # type: ignore
from django.core.validators import MaxValueValidator, MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.db.models import Count, Q  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from .models_region import Region


class PropertyType(models.Model):
    """Catálogo de tipos de inmueble (pensión, habitación, apartamento...)."""

    slug = models.SlugField(max_length=50, unique=True)
    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True)

    class Meta:
        verbose_name = _("Tipo de inmueble")
        verbose_name_plural = _("Tipos de inmueble")
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class Amenity(models.Model):
    """Comodidad de una unidad (escritorio, baño privado, closet...)."""

    name = models.CharField(max_length=100, unique=True)
    icon = models.CharField(
        max_length=100,
        blank=True,
        help_text=_("Identificador del ícono en el frontend."),
    )

    class Meta:
        verbose_name = _("Comodidad")
        verbose_name_plural = _("Comodidades")
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class CommonArea(models.Model):
    """Zona común compartida de un contenedor (cocina, sala, patio...)."""

    name = models.CharField(max_length=100, unique=True)
    slug = models.SlugField(max_length=100, unique=True, null=True, blank=True)
    icon = models.CharField(max_length=100, blank=True)
    description = models.TextField(blank=True)

    class Meta:
        verbose_name = _("Zona común")
        verbose_name_plural = _("Zonas comunes")
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class Institution(models.Model):
    """Institución educativa cercana a la que se asocian los anuncios."""

    class InstitutionType(models.TextChoices):
        UNIVERSITY = "university", _("Universidad")
        COLLEGE = "college", _("Corporación universitaria")
        INSTITUTE = "institute", _("Instituto técnico")
        SCHOOL = "school", _("Colegio")

    name = models.CharField(max_length=255)
    institution_type = models.CharField(
        max_length=20,
        choices=InstitutionType.choices,
        default=InstitutionType.UNIVERSITY,
    )
    city = models.ForeignKey(
        Region,
        on_delete=models.PROTECT,
        related_name="institutions",
        limit_choices_to={"kind": Region.Kind.CITY},
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Institución")
        verbose_name_plural = _("Instituciones")
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(fields=["name", "city"], name="uniq_institution_per_city"),
        ]

    def __str__(self) -> str:
        return self.name


class Location(models.Model):
    """Dirección de un edificio; la comparten todos los anuncios del mismo inmueble."""

    street = models.CharField(max_length=255)
    neighborhood = models.CharField(max_length=100)
    city = models.ForeignKey(
        Region,
        on_delete=models.PROTECT,
        related_name="locations",
        limit_choices_to={"kind": Region.Kind.CITY},
    )
    department = models.ForeignKey(
        Region,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
        limit_choices_to={"kind": Region.Kind.DEPARTMENT},
    )
    zip_code = models.CharField(max_length=20, blank=True)
    latitude = models.DecimalField(
        max_digits=10,
        decimal_places=8,
        null=True,
        blank=True,
        validators=[MinValueValidator(-90), MaxValueValidator(90)],
    )
    longitude = models.DecimalField(
        max_digits=11,
        decimal_places=8,
        null=True,
        blank=True,
        validators=[MinValueValidator(-180), MaxValueValidator(180)],
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Ubicación")
        verbose_name_plural = _("Ubicaciones")
        constraints = [
            models.UniqueConstraint(
                fields=["street", "neighborhood", "city"],
                name="uniq_location_natural_key",
            ),
        ]
        indexes = [
            models.Index(fields=["latitude", "longitude"], name="location_coords_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.street}, {self.neighborhood}"


class ListingQuerySet(models.QuerySet):
    def containers(self):
        return self.filter(is_container=True)

    def units(self):
        return self.filter(parent__isnull=False)

    def standalone(self):
        return self.filter(parent__isnull=True, is_container=False)

    def units_of(self, container_id: int):
        return self.filter(parent_id=container_id)

    def unit_counts(self, container_id: int) -> dict:
        """Authoritative unit counts for a container: {"total": n, "available": m}."""
        return self.units_of(container_id).aggregate(
            total=Count("id"),
            available=Count("id", filter=Q(is_rented=False)),
        )


class Listing(models.Model):
    """Anuncio publicado: contenedor, unidad dentro de un contenedor o inmueble independiente."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pendiente de revisión")
        APPROVED = "approved", _("Aprobado")
        REJECTED = "rejected", _("Rechazado")

    class RentalMode(models.TextChoices):
        BY_UNIT = "by_unit", _("Por habitaciones")
        COMPLETE = "complete", _("Completo")

    class RoomType(models.TextChoices):
        INDIVIDUAL = "individual", _("Individual")
        SHARED = "shared", _("Compartida")

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="listings",
    )
    property_type = models.ForeignKey(
        PropertyType,
        on_delete=models.PROTECT,
        related_name="listings",
    )
    location = models.ForeignKey(
        Location,
        on_delete=models.PROTECT,
        related_name="listings",
    )
    parent = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="units",
        help_text=_("Contenedor al que pertenece la unidad. Vacío para contenedores e inmuebles independientes."),
    )
    title = models.CharField(max_length=255)
    description = models.TextField()

    monthly_rent = models.DecimalField(max_digits=15, decimal_places=0, default=0)
    deposit = models.DecimalField(max_digits=15, decimal_places=0, null=True, blank=True)
    currency = models.CharField(max_length=10, default="COP")

    bedrooms = models.PositiveSmallIntegerField(null=True, blank=True)
    bathrooms = models.PositiveSmallIntegerField(null=True, blank=True)
    area = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    floor = models.SmallIntegerField(null=True, blank=True)
    available_from = models.DateField(null=True, blank=True)

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    rejection_reason = models.TextField(blank=True)
    submitted_at = models.DateTimeField(null=True, blank=True)
    reviewed_at = models.DateTimeField(null=True, blank=True)
    is_featured = models.BooleanField(default=False)
    is_verified = models.BooleanField(default=False)
    is_rented = models.BooleanField(default=False)

    is_container = models.BooleanField(default=False)
    rental_mode = models.CharField(
        max_length=20,
        choices=RentalMode.choices,
        null=True,
        blank=True,
        help_text=_("Solo para contenedores: por habitaciones o completo."),
    )
    total_units = models.PositiveIntegerField(default=0)
    available_units = models.PositiveIntegerField(default=0)

    room_type = models.CharField(max_length=20, choices=RoomType.choices, null=True, blank=True)
    beds_in_room = models.PositiveSmallIntegerField(null=True, blank=True)
    requires_deposit = models.BooleanField(default=True)
    minimum_contract_months = models.PositiveSmallIntegerField(null=True, blank=True)

    amenities = models.ManyToManyField(Amenity, blank=True, related_name="listings")
    common_areas = models.ManyToManyField(
        CommonArea,
        blank=True,
        through="ListingCommonArea",
        related_name="listings",
    )
    institutions = models.ManyToManyField(
        Institution,
        blank=True,
        through="ListingInstitution",
        related_name="listings",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ListingQuerySet.as_manager()

    class Meta:
        verbose_name = _("Anuncio")
        verbose_name_plural = _("Anuncios")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=Q(parent__isnull=True) | Q(is_container=False),
                name="listing_unit_is_not_container",
            ),
            models.CheckConstraint(
                condition=Q(available_units__lte=models.F("total_units")),
                name="listing_available_within_total",
            ),
            models.CheckConstraint(
                condition=Q(is_container=True) | Q(rental_mode__isnull=True),
                name="listing_rental_mode_only_on_containers",
            ),
        ]
        indexes = [
            models.Index(fields=["status"], name="listing_status_idx"),
            models.Index(fields=["owner", "status"], name="listing_owner_status_idx"),
            models.Index(fields=["parent", "is_rented"], name="listing_parent_rented_idx"),
        ]

    def __str__(self) -> str:
        return self.title

    @property
    def is_unit(self) -> bool:
        return self.parent_id is not None


class Contact(models.Model):
    """Datos de contacto del anuncio (1:1)."""

    listing = models.OneToOneField(Listing, on_delete=models.CASCADE, related_name="contact")
    contact_name = models.CharField(max_length=255, blank=True)
    contact_phone = models.CharField(max_length=20, blank=True)
    contact_email = models.EmailField(blank=True)
    contact_whatsapp = models.CharField(max_length=20, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Contacto")
        verbose_name_plural = _("Contactos")

    def __str__(self) -> str:
        return f"Contacto de {self.listing_id}"


class ListingFeature(models.Model):
    """Características básicas del anuncio (1:1)."""

    listing = models.OneToOneField(Listing, on_delete=models.CASCADE, related_name="features")
    is_furnished = models.BooleanField(default=False)
    has_parking = models.BooleanField(default=False)
    allows_pets = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Características")
        verbose_name_plural = _("Características")

    def __str__(self) -> str:
        return f"Características de {self.listing_id}"


class ListingImage(models.Model):
    """Imagen del anuncio; la URL la entrega el servicio de archivos."""

    listing = models.ForeignKey(Listing, on_delete=models.CASCADE, related_name="images")
    url = models.TextField()
    is_featured = models.BooleanField(default=False)
    order_position = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Imagen del anuncio")
        verbose_name_plural = _("Imágenes del anuncio")
        ordering = ["order_position"]
        constraints = [
            models.UniqueConstraint(
                fields=["listing", "order_position"],
                name="uniq_image_position_per_listing",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.listing_id} [{self.order_position}]"


class ListingInstitution(models.Model):
    """Cercanía de un anuncio a una institución, con distancia opcional en metros."""

    listing = models.ForeignKey(Listing, on_delete=models.CASCADE, related_name="institution_links")
    institution = models.ForeignKey(Institution, on_delete=models.CASCADE, related_name="listing_links")
    distance = models.PositiveIntegerField(null=True, blank=True, help_text=_("Distancia en metros"))
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Institución cercana")
        verbose_name_plural = _("Instituciones cercanas")
        ordering = ["distance", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["listing", "institution"],
                name="uniq_listing_institution",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.listing_id} -> {self.institution_id}"


class ListingCommonArea(models.Model):
    listing = models.ForeignKey(Listing, on_delete=models.CASCADE, related_name="common_area_links")
    common_area = models.ForeignKey(CommonArea, on_delete=models.CASCADE, related_name="listing_links")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Zona común del contenedor")
        verbose_name_plural = _("Zonas comunes del contenedor")
        constraints = [
            models.UniqueConstraint(
                fields=["listing", "common_area"],
                name="uniq_listing_common_area",
            ),
        ]


class ListingService(models.Model):
    """Servicio incluido u opcional de un contenedor (alimentación, aseo...)."""

    class ServiceType(models.TextChoices):
        BREAKFAST = "breakfast", _("Desayuno")
        LUNCH = "lunch", _("Almuerzo")
        DINNER = "dinner", _("Cena")
        HOUSEKEEPING = "housekeeping", _("Aseo a la habitación")
        LAUNDRY = "laundry", _("Lavandería")
        WIFI = "wifi", _("WiFi")
        UTILITIES = "utilities", _("Servicios públicos incluidos")

    listing = models.ForeignKey(Listing, on_delete=models.CASCADE, related_name="services")
    service_type = models.CharField(max_length=20, choices=ServiceType.choices)
    is_included = models.BooleanField(default=True)
    additional_cost = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    description = models.TextField(blank=True)

    class Meta:
        verbose_name = _("Servicio")
        verbose_name_plural = _("Servicios")
        ordering = ["id"]

    def __str__(self) -> str:
        return f"{self.listing_id}: {self.service_type}"


class ListingRule(models.Model):
    """Regla de convivencia de un contenedor."""

    class RuleType(models.TextChoices):
        VISITS = "visits", _("Visitas")
        PETS = "pets", _("Mascotas")
        SMOKING = "smoking", _("Fumar")
        NOISE = "noise", _("Horario de silencio")
        CURFEW = "curfew", _("Hora límite de llegada")
        TENANT_PROFILE = "tenant_profile", _("Perfil de inquilino")
        COUPLES = "couples", _("Parejas")
        OTHER = "other", _("Otra")

    listing = models.ForeignKey(Listing, on_delete=models.CASCADE, related_name="rules")
    rule_type = models.CharField(max_length=20, choices=RuleType.choices)
    is_allowed = models.BooleanField(default=True)
    value = models.CharField(max_length=100, blank=True)
    description = models.TextField(blank=True)

    class Meta:
        verbose_name = _("Regla")
        verbose_name_plural = _("Reglas")
        ordering = ["id"]

    def __str__(self) -> str:
        return f"{self.listing_id}: {self.rule_type}"


class ActivityLog(models.Model):
    """Bitácora de actividad de anuncios, alimentada por eventos de dominio."""

    activity_type = models.CharField(max_length=50)
    message = models.TextField()
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="listing_activity",
    )
    listing = models.ForeignKey(
        Listing,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="activity",
    )
    listing_reference = models.BigIntegerField(
        null=True,
        blank=True,
        help_text=_("Id del anuncio, se conserva aunque el anuncio se elimine."),
    )
    payload = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Actividad")
        verbose_name_plural = _("Actividades")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["activity_type", "-created_at"], name="activity_type_created_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.activity_type} @ {self.created_at}"
