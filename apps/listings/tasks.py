"""Celery tasks for the listings domain."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore
from django.contrib.auth import get_user_model  # type: ignore

from .models import ActivityLog, Listing

logger = logging.getLogger(__name__)

# event name -> (activity type, message template over the event payload)
ACTIVITIES: dict[str, tuple[str, str]] = {
    "ListingCreated": ("listing_created", "Anuncio {listing_id} creado"),
    "ListingUpdated": ("listing_updated", "Anuncio {listing_id} actualizado: {changed_list}"),
    "ListingReviewed": ("listing_reviewed", "Anuncio {listing_id} revisado: {status}"),
    "ContainerCreated": ("container_created", "Contenedor {container_id} creado con {units_count} unidad(es)"),
    "ContainerDeleted": ("container_deleted", "Contenedor {container_id} eliminado ({policy})"),
    "ContainerRentedComplete": (
        "container_rented_complete",
        "Contenedor {container_id} arrendado completo ({units_count} unidad(es))",
    ),
    "ContainerModeChanged": (
        "container_mode_changed",
        "Contenedor {container_id} pasó de {old_mode} a {new_mode}",
    ),
    "UnitCreated": ("unit_created", "Unidad {unit_id} agregada al contenedor {container_id}"),
    "UnitDeleted": ("unit_deleted", "Unidad {unit_id} eliminada del contenedor {container_id}"),
    "UnitRentalStatusChanged": (
        "unit_rental_status_changed",
        "Unidad {unit_id} marcada como {rental_label}",
    ),
}


def _listing_reference(payload: dict) -> int | None:
    for key in ("unit_id", "listing_id", "container_id"):
        if payload.get(key) is not None:
            return payload[key]
    return payload.get("aggregate_id")


@shared_task(name="listings.record_activity")
def record_activity(event_type: str, payload: dict) -> int | None:
    """Guarda en la bitácora un evento de dominio ya confirmado."""

    activity = ACTIVITIES.get(event_type)
    if activity is None:
        logger.warning(f"No activity mapping for event {event_type}")
        return None

    activity_type, template = activity
    context = dict(payload)
    context["changed_list"] = ", ".join(payload.get("changed") or [])
    context["rental_label"] = "arrendada" if payload.get("is_rented") else "disponible"
    try:
        message = template.format(**context)
    except KeyError as exc:
        logger.warning(f"Incomplete payload for {event_type}: missing {exc}")
        message = event_type

    reference = _listing_reference(payload)
    listing = Listing.objects.filter(pk=reference).first() if reference is not None else None
    owner_id = payload.get("owner_id")
    user = get_user_model().objects.filter(pk=owner_id).first() if owner_id is not None else None

    log = ActivityLog.objects.create(
        activity_type=activity_type,
        message=message,
        user=user,
        listing=listing,
        listing_reference=reference,
        payload=payload,
    )
    logger.debug(f"Activity {log.pk} recorded for {event_type}")
    return log.pk
