"""Region models with MPTT tree structure for departments and cities."""

from django.db import models
from django.utils.translation import gettext_lazy as _
from mptt.models import MPTTModel, TreeForeignKey


class Region(MPTTModel):
    """Hierarchical region: departments are roots, cities are their children."""

    class Kind(models.TextChoices):
        DEPARTMENT = "department", _("Departamento")
        CITY = "city", _("Ciudad")

    name = models.CharField(
        max_length=100,
        verbose_name="Nombre",
        help_text="Nombre del departamento o de la ciudad"
    )
    kind = models.CharField(max_length=20, choices=Kind.choices, default=Kind.CITY)
    parent = TreeForeignKey(
        'self',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='children',
        verbose_name="Región padre",
        help_text="Para una ciudad es su departamento, para un departamento queda vacío"
    )
    slug = models.SlugField(
        max_length=120,
        unique=True,
        verbose_name="Slug",
    )
    is_active = models.BooleanField(default=True, verbose_name="Activa")
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Fecha de creación")
    updated_at = models.DateTimeField(auto_now=True, verbose_name="Fecha de actualización")

    class MPTTMeta:
        order_insertion_by = ['name']

    class Meta:
        verbose_name = "Región"
        verbose_name_plural = "Regiones"
        ordering = ['tree_id', 'lft']
        indexes = [
            models.Index(fields=['parent', 'name'], name='region_parent_name_idx'),
        ]

    def __str__(self):
        if self.parent:
            return f"{self.name}, {self.parent.name}"
        return self.name

    @property
    def is_city(self) -> bool:
        return self.kind == self.Kind.CITY

    @property
    def department(self):
        """Department that contains this city (the region itself for departments)."""
        if self.kind == self.Kind.DEPARTMENT:
            return self
        return self.parent
