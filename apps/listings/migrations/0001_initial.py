import django.core.validators
import django.db.models.deletion
import mptt.fields
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Region",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "name",
                    models.CharField(
                        help_text="Nombre del departamento o de la ciudad", max_length=100, verbose_name="Nombre"
                    ),
                ),
                (
                    "kind",
                    models.CharField(
                        choices=[("department", "Departamento"), ("city", "Ciudad")], default="city", max_length=20
                    ),
                ),
                ("slug", models.SlugField(max_length=120, unique=True, verbose_name="Slug")),
                ("is_active", models.BooleanField(default=True, verbose_name="Activa")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Fecha de creación")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Fecha de actualización")),
                ("lft", models.PositiveIntegerField(editable=False)),
                ("rght", models.PositiveIntegerField(editable=False)),
                ("tree_id", models.PositiveIntegerField(db_index=True, editable=False)),
                ("level", models.PositiveIntegerField(editable=False)),
                (
                    "parent",
                    mptt.fields.TreeForeignKey(
                        blank=True,
                        help_text="Para una ciudad es su departamento, para un departamento queda vacío",
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="children",
                        to="listings.region",
                        verbose_name="Región padre",
                    ),
                ),
            ],
            options={
                "verbose_name": "Región",
                "verbose_name_plural": "Regiones",
                "ordering": ["tree_id", "lft"],
                "indexes": [models.Index(fields=["parent", "name"], name="region_parent_name_idx")],
            },
        ),
        migrations.CreateModel(
            name="PropertyType",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("slug", models.SlugField(unique=True)),
                ("name", models.CharField(max_length=100, unique=True)),
                ("description", models.TextField(blank=True)),
            ],
            options={
                "verbose_name": "Tipo de inmueble",
                "verbose_name_plural": "Tipos de inmueble",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Amenity",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100, unique=True)),
                (
                    "icon",
                    models.CharField(blank=True, help_text="Identificador del ícono en el frontend.", max_length=100),
                ),
            ],
            options={
                "verbose_name": "Comodidad",
                "verbose_name_plural": "Comodidades",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="CommonArea",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100, unique=True)),
                ("slug", models.SlugField(blank=True, max_length=100, null=True, unique=True)),
                ("icon", models.CharField(blank=True, max_length=100)),
                ("description", models.TextField(blank=True)),
            ],
            options={
                "verbose_name": "Zona común",
                "verbose_name_plural": "Zonas comunes",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Institution",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255)),
                (
                    "institution_type",
                    models.CharField(
                        choices=[
                            ("university", "Universidad"),
                            ("college", "Corporación universitaria"),
                            ("institute", "Instituto técnico"),
                            ("school", "Colegio"),
                        ],
                        default="university",
                        max_length=20,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "city",
                    models.ForeignKey(
                        limit_choices_to={"kind": "city"},
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="institutions",
                        to="listings.region",
                    ),
                ),
            ],
            options={
                "verbose_name": "Institución",
                "verbose_name_plural": "Instituciones",
                "ordering": ["name"],
                "constraints": [
                    models.UniqueConstraint(fields=("name", "city"), name="uniq_institution_per_city"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Location",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("street", models.CharField(max_length=255)),
                ("neighborhood", models.CharField(max_length=100)),
                ("zip_code", models.CharField(blank=True, max_length=20)),
                (
                    "latitude",
                    models.DecimalField(
                        blank=True,
                        decimal_places=8,
                        max_digits=10,
                        null=True,
                        validators=[
                            django.core.validators.MinValueValidator(-90),
                            django.core.validators.MaxValueValidator(90),
                        ],
                    ),
                ),
                (
                    "longitude",
                    models.DecimalField(
                        blank=True,
                        decimal_places=8,
                        max_digits=11,
                        null=True,
                        validators=[
                            django.core.validators.MinValueValidator(-180),
                            django.core.validators.MaxValueValidator(180),
                        ],
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "city",
                    models.ForeignKey(
                        limit_choices_to={"kind": "city"},
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="locations",
                        to="listings.region",
                    ),
                ),
                (
                    "department",
                    models.ForeignKey(
                        blank=True,
                        limit_choices_to={"kind": "department"},
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="+",
                        to="listings.region",
                    ),
                ),
            ],
            options={
                "verbose_name": "Ubicación",
                "verbose_name_plural": "Ubicaciones",
                "indexes": [models.Index(fields=["latitude", "longitude"], name="location_coords_idx")],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("street", "neighborhood", "city"), name="uniq_location_natural_key"
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Listing",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=255)),
                ("description", models.TextField()),
                ("monthly_rent", models.DecimalField(decimal_places=0, default=0, max_digits=15)),
                ("deposit", models.DecimalField(blank=True, decimal_places=0, max_digits=15, null=True)),
                ("currency", models.CharField(default="COP", max_length=10)),
                ("bedrooms", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("bathrooms", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("area", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("floor", models.SmallIntegerField(blank=True, null=True)),
                ("available_from", models.DateField(blank=True, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pendiente de revisión"),
                            ("approved", "Aprobado"),
                            ("rejected", "Rechazado"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("rejection_reason", models.TextField(blank=True)),
                ("submitted_at", models.DateTimeField(blank=True, null=True)),
                ("reviewed_at", models.DateTimeField(blank=True, null=True)),
                ("is_featured", models.BooleanField(default=False)),
                ("is_verified", models.BooleanField(default=False)),
                ("is_rented", models.BooleanField(default=False)),
                ("is_container", models.BooleanField(default=False)),
                (
                    "rental_mode",
                    models.CharField(
                        blank=True,
                        choices=[("by_unit", "Por habitaciones"), ("complete", "Completo")],
                        help_text="Solo para contenedores: por habitaciones o completo.",
                        max_length=20,
                        null=True,
                    ),
                ),
                ("total_units", models.PositiveIntegerField(default=0)),
                ("available_units", models.PositiveIntegerField(default=0)),
                (
                    "room_type",
                    models.CharField(
                        blank=True,
                        choices=[("individual", "Individual"), ("shared", "Compartida")],
                        max_length=20,
                        null=True,
                    ),
                ),
                ("beds_in_room", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("requires_deposit", models.BooleanField(default=True)),
                ("minimum_contract_months", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="listings",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "property_type",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="listings",
                        to="listings.propertytype",
                    ),
                ),
                (
                    "location",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="listings",
                        to="listings.location",
                    ),
                ),
                (
                    "parent",
                    models.ForeignKey(
                        blank=True,
                        help_text=(
                            "Contenedor al que pertenece la unidad. "
                            "Vacío para contenedores e inmuebles independientes."
                        ),
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="units",
                        to="listings.listing",
                    ),
                ),
                ("amenities", models.ManyToManyField(blank=True, related_name="listings", to="listings.amenity")),
            ],
            options={
                "verbose_name": "Anuncio",
                "verbose_name_plural": "Anuncios",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status"], name="listing_status_idx"),
                    models.Index(fields=["owner", "status"], name="listing_owner_status_idx"),
                    models.Index(fields=["parent", "is_rented"], name="listing_parent_rented_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("parent__isnull", True), ("is_container", False), _connector="OR"),
                        name="listing_unit_is_not_container",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("available_units__lte", models.F("total_units"))),
                        name="listing_available_within_total",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("is_container", True), ("rental_mode__isnull", True), _connector="OR"),
                        name="listing_rental_mode_only_on_containers",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Contact",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("contact_name", models.CharField(blank=True, max_length=255)),
                ("contact_phone", models.CharField(blank=True, max_length=20)),
                ("contact_email", models.EmailField(blank=True, max_length=254)),
                ("contact_whatsapp", models.CharField(blank=True, max_length=20)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "listing",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="contact",
                        to="listings.listing",
                    ),
                ),
            ],
            options={
                "verbose_name": "Contacto",
                "verbose_name_plural": "Contactos",
            },
        ),
        migrations.CreateModel(
            name="ListingFeature",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("is_furnished", models.BooleanField(default=False)),
                ("has_parking", models.BooleanField(default=False)),
                ("allows_pets", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "listing",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="features",
                        to="listings.listing",
                    ),
                ),
            ],
            options={
                "verbose_name": "Características",
                "verbose_name_plural": "Características",
            },
        ),
        migrations.CreateModel(
            name="ListingImage",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("url", models.TextField()),
                ("is_featured", models.BooleanField(default=False)),
                ("order_position", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "listing",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="images",
                        to="listings.listing",
                    ),
                ),
            ],
            options={
                "verbose_name": "Imagen del anuncio",
                "verbose_name_plural": "Imágenes del anuncio",
                "ordering": ["order_position"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("listing", "order_position"), name="uniq_image_position_per_listing"
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ListingInstitution",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "distance",
                    models.PositiveIntegerField(blank=True, help_text="Distancia en metros", null=True),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "institution",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="listing_links",
                        to="listings.institution",
                    ),
                ),
                (
                    "listing",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="institution_links",
                        to="listings.listing",
                    ),
                ),
            ],
            options={
                "verbose_name": "Institución cercana",
                "verbose_name_plural": "Instituciones cercanas",
                "ordering": ["distance", "id"],
                "constraints": [
                    models.UniqueConstraint(fields=("listing", "institution"), name="uniq_listing_institution"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ListingCommonArea",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "common_area",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="listing_links",
                        to="listings.commonarea",
                    ),
                ),
                (
                    "listing",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="common_area_links",
                        to="listings.listing",
                    ),
                ),
            ],
            options={
                "verbose_name": "Zona común del contenedor",
                "verbose_name_plural": "Zonas comunes del contenedor",
                "constraints": [
                    models.UniqueConstraint(fields=("listing", "common_area"), name="uniq_listing_common_area"),
                ],
            },
        ),
        migrations.AddField(
            model_name="listing",
            name="common_areas",
            field=models.ManyToManyField(
                blank=True,
                related_name="listings",
                through="listings.ListingCommonArea",
                to="listings.commonarea",
            ),
        ),
        migrations.AddField(
            model_name="listing",
            name="institutions",
            field=models.ManyToManyField(
                blank=True,
                related_name="listings",
                through="listings.ListingInstitution",
                to="listings.institution",
            ),
        ),
        migrations.CreateModel(
            name="ListingService",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "service_type",
                    models.CharField(
                        choices=[
                            ("breakfast", "Desayuno"),
                            ("lunch", "Almuerzo"),
                            ("dinner", "Cena"),
                            ("housekeeping", "Aseo a la habitación"),
                            ("laundry", "Lavandería"),
                            ("wifi", "WiFi"),
                            ("utilities", "Servicios públicos incluidos"),
                        ],
                        max_length=20,
                    ),
                ),
                ("is_included", models.BooleanField(default=True)),
                ("additional_cost", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("description", models.TextField(blank=True)),
                (
                    "listing",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="services",
                        to="listings.listing",
                    ),
                ),
            ],
            options={
                "verbose_name": "Servicio",
                "verbose_name_plural": "Servicios",
                "ordering": ["id"],
            },
        ),
        migrations.CreateModel(
            name="ListingRule",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "rule_type",
                    models.CharField(
                        choices=[
                            ("visits", "Visitas"),
                            ("pets", "Mascotas"),
                            ("smoking", "Fumar"),
                            ("noise", "Horario de silencio"),
                            ("curfew", "Hora límite de llegada"),
                            ("tenant_profile", "Perfil de inquilino"),
                            ("couples", "Parejas"),
                            ("other", "Otra"),
                        ],
                        max_length=20,
                    ),
                ),
                ("is_allowed", models.BooleanField(default=True)),
                ("value", models.CharField(blank=True, max_length=100)),
                ("description", models.TextField(blank=True)),
                (
                    "listing",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="rules",
                        to="listings.listing",
                    ),
                ),
            ],
            options={
                "verbose_name": "Regla",
                "verbose_name_plural": "Reglas",
                "ordering": ["id"],
            },
        ),
        migrations.CreateModel(
            name="ActivityLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("activity_type", models.CharField(max_length=50)),
                ("message", models.TextField()),
                (
                    "listing_reference",
                    models.BigIntegerField(
                        blank=True,
                        help_text="Id del anuncio, se conserva aunque el anuncio se elimine.",
                        null=True,
                    ),
                ),
                ("payload", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "listing",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="activity",
                        to="listings.listing",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="listing_activity",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Actividad",
                "verbose_name_plural": "Actividades",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["activity_type", "-created_at"], name="activity_type_created_idx"),
                ],
            },
        ),
    ]
