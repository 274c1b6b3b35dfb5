"""User domain models for RoomNest.

La plataforma distingue propietarios, arrendatarios (estudiantes) y
administradores. Las cuentas se crean desde el servicio de autenticación;
aquí solo se guarda el registro al que apuntan los anuncios.
"""

from __future__ import annotations

from typing import Any

from django.contrib.auth.models import AbstractUser, BaseUserManager  # type: ignore
from django.core.validators import RegexValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


PHONE_VALIDATOR = RegexValidator(
    regex=r"^\+?\d{7,15}$",
    message=_("Formato de teléfono inválido. Use formato internacional sin espacios."),
)


class CustomUserManager(BaseUserManager):
    """Gestor de usuarios que usa el email como login."""

    use_in_migrations = True

    def _create_user(self, email: str, password: str | None, **extra_fields: Any):
        if not email:
            raise ValueError("El email es obligatorio para crear un usuario.")
        email = self.normalize_email(email)

        phone = extra_fields.get("phone")
        if phone:
            extra_fields["phone"] = self.normalize_phone(phone)

        user = self.model(email=email, **extra_fields)
        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()
        user.save(using=self._db)
        return user

    def create_user(self, email: str, password: str | None = None, **extra_fields: Any):
        extra_fields.setdefault("is_staff", False)
        extra_fields.setdefault("is_superuser", False)
        extra_fields.setdefault("user_type", CustomUser.UserType.TENANT)
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email: str, password: str | None = None, **extra_fields: Any):
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        extra_fields.setdefault("user_type", CustomUser.UserType.SUPER_ADMIN)

        if extra_fields.get("is_staff") is not True:
            raise ValueError("El superusuario debe tener is_staff=True.")
        if extra_fields.get("is_superuser") is not True:
            raise ValueError("El superusuario debe tener is_superuser=True.")

        return self._create_user(email, password, **extra_fields)

    @staticmethod
    def normalize_phone(phone: str) -> str:
        return phone.replace(" ", "").replace("-", "")


class CustomUser(AbstractUser):
    """Usuario de la plataforma."""

    class UserType(models.TextChoices):
        OWNER = "owner", _("Propietario")
        TENANT = "tenant", _("Arrendatario")
        ADMIN = "admin", _("Administrador")
        SUPER_ADMIN = "superAdmin", _("Super administrador")

    username = models.CharField(
        _("Nombre visible"),
        max_length=150,
        blank=True,
    )
    email = models.EmailField(_("Email"), unique=True)
    phone = models.CharField(
        _("Teléfono"),
        max_length=20,
        unique=True,
        null=True,
        blank=True,
        validators=[PHONE_VALIDATOR],
    )
    user_type = models.CharField(
        _("Tipo de usuario"),
        max_length=20,
        choices=UserType.choices,
        default=UserType.TENANT,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = CustomUserManager()

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["username"]

    class Meta:
        verbose_name = _("Usuario")
        verbose_name_plural = _("Usuarios")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.email} ({self.get_user_type_display()})"

    def is_owner(self) -> bool:
        return self.user_type == self.UserType.OWNER

    def is_platform_admin(self) -> bool:
        return (
            self.is_staff
            or self.is_superuser
            or self.user_type in {self.UserType.ADMIN, self.UserType.SUPER_ADMIN}
        )


User = CustomUser
