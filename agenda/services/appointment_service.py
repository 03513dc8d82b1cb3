import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

from agenda.core.errors import NotFoundError, PersistenceError, SchemaDriftError, ValidationError
from agenda.models.appointment import (
    ACTIVE_STATUSES,
    OPTIONAL_FIELDS,
    Appointment,
    AppointmentStatus,
)
from agenda.models.booking import BookingRequest
from agenda.models.client import normalize_email
from agenda.models.slot import AvailabilitySlot
from agenda.models.timestamps import utc_now
from agenda.repositories.base import AppointmentStore, ClientStore, SlotStore
from agenda.services.reconcile_service import reconcile_slot_counter
from agenda.services.time_normalizer import storage_time

logger = logging.getLogger(__name__)

# Retries allowed after the first attempt, one per droppable optional field
MAX_DEGRADATION_RETRIES = len(OPTIONAL_FIELDS)

_S = AppointmentStatus
ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    _S.pending.value: {_S.confirmed.value, _S.cancelled.value},
    _S.confirmed.value: {_S.completed.value, _S.no_show.value, _S.cancelled.value},
    _S.cancelled.value: {_S.confirmed.value},
    _S.completed.value: set(),
    _S.no_show.value: set(),
}


async def upsert_client(clients: ClientStore, request: BookingRequest) -> str | None:
    """Create or update the client record; None if that fails (booking continues)."""
    email = normalize_email(request.email)
    try:
        client_id = await clients.upsert_by_email(email, request.name, request.phone or None)
    except Exception as e:
        logger.warning("Client upsert failed for %s, continuing without client link: %s", email, e)
        return None
    logger.debug("Client %s upserted for %s", client_id, email)
    return client_id


def build_appointment_record(
    request: BookingRequest,
    slot: AvailabilitySlot,
    *,
    client_id: str | None,
    property_id: str | None,
    duration_minutes: int,
) -> dict[str, Any]:
    record: dict[str, Any] = {
        "slot_id": slot.id,
        "agent_id": slot.agent_id,
        "property_id": property_id,
        "client_id": client_id,
        "client_name": request.name,
        "client_email": normalize_email(request.email),
        "client_phone": request.phone or None,
        "operation_type": request.operation_type,
        "budget_range": request.budget_range,
        "operation_details": {request.operation_type: request.operation_details()},
        "appointment_date": slot.date,
        "appointment_time": storage_time(request.time),
        "duration_minutes": duration_minutes,
        "notes": request.notes or None,
    }
    return record


async def write_with_degradation(
    appointments: AppointmentStore,
    record: dict[str, Any],
    write: Callable[[dict[str, Any]], Awaitable[Appointment | None]],
) -> Appointment | None:
    """Run ``write`` with optional link fields the schema lacks removed.

    Fields missing from the store's capability descriptor are dropped up front.
    If the write still reports schema drift, drop the next optional field
    (property_id, then client_id) and retry.
    """
    try:
        supported = await appointments.supported_optional_fields()
    except Exception as e:
        logger.warning("Could not read appointment schema capabilities, assuming full schema: %s", e)
        supported = frozenset(OPTIONAL_FIELDS)

    unsupported = [f for f in OPTIONAL_FIELDS if f in record and f not in supported]
    if unsupported:
        logger.info("Appointment schema lacks %s; writing without them", ", ".join(unsupported))
        record = {k: v for k, v in record.items() if k not in unsupported}

    retries = 0
    while True:
        try:
            return await write(record)
        except SchemaDriftError as e:
            droppable = next((f for f in OPTIONAL_FIELDS if f in record), None)
            if droppable is None or retries >= MAX_DEGRADATION_RETRIES:
                logger.error("Appointment write failed after %d degradation retries: %s", retries, e)
                raise PersistenceError(
                    "Could not save the appointment",
                    details={"reason": str(e), "retries": retries},
                ) from e
            logger.warning("Schema drift on appointment write (%s); retrying without %s", e, droppable)
            record = {k: v for k, v in record.items() if k != droppable}
            retries += 1
        except Exception as e:
            logger.exception("Appointment write failed: %s", e)
            raise PersistenceError("Could not save the appointment", details={"reason": str(e)}) from e


async def create_appointment(
    appointments: AppointmentStore,
    clients: ClientStore,
    slots: SlotStore,
    request: BookingRequest,
    slot: AvailabilitySlot,
    *,
    property_id: str | None = None,
    duration_minutes: int = 45,
) -> Appointment:
    """Write a new pending appointment for an already resolved and capacity-checked slot."""
    client_id = await upsert_client(clients, request)
    record = build_appointment_record(
        request, slot, client_id=client_id, property_id=property_id, duration_minutes=duration_minutes
    )
    record["status"] = AppointmentStatus.pending.value
    if client_id is None:
        record.pop("client_id")

    appointment = await write_with_degradation(appointments, record, appointments.insert)
    if appointment is None:
        raise PersistenceError("Could not save the appointment")
    logger.info(
        "Appointment %s created: slot=%s email=%s client=%s",
        appointment.id,
        slot.id,
        appointment.client_email,
        appointment.client_id or "not linked",
    )
    await reconcile_slot_counter(slots, appointments, slot.id)
    return appointment


async def update_appointment(
    appointments: AppointmentStore,
    clients: ClientStore,
    slots: SlotStore,
    existing: Appointment,
    request: BookingRequest,
    slot: AvailabilitySlot,
    *,
    property_id: str | None = None,
    duration_minutes: int = 45,
) -> Appointment:
    """Rewrite an appointment's booking fields; status is left as is."""
    client_id = await upsert_client(clients, request)
    record = build_appointment_record(
        request, slot, client_id=client_id, property_id=property_id, duration_minutes=duration_minutes
    )
    if client_id is None:
        # keep whatever link the appointment already had
        record.pop("client_id")
    record["updated_at"] = utc_now()
    previous_slot_id = existing.slot_id

    async def _update(r: dict[str, Any]) -> Appointment | None:
        return await appointments.update(existing.id, r)

    updated = await write_with_degradation(appointments, record, _update)
    if updated is None:
        raise NotFoundError(f"Appointment {existing.id} not found", details={"appointmentId": existing.id})

    if previous_slot_id != slot.id:
        logger.info("Appointment %s moved from slot %s to %s", existing.id, previous_slot_id, slot.id)
        await reconcile_slot_counter(slots, appointments, previous_slot_id)
    await reconcile_slot_counter(slots, appointments, slot.id)
    return updated


def parse_status(value: str) -> str:
    try:
        return AppointmentStatus(value).value
    except ValueError:
        raise ValidationError(
            f"Unknown appointment status {value!r}",
            details={"status": value, "allowed": [s.value for s in AppointmentStatus]},
        ) from None


def check_transition(current: str, new: str) -> None:
    """Same-status changes are allowed and become a timestamp-only update."""
    if new != current and new not in ALLOWED_TRANSITIONS.get(current, set()):
        raise ValidationError(
            f"Cannot change appointment status from {current} to {new}",
            details={"from": current, "to": new},
        )


def status_change_record(current: str, new: str, now: datetime) -> dict[str, Any]:
    check_transition(current, new)
    record: dict[str, Any] = {"status": new, "updated_at": now}
    if new == AppointmentStatus.confirmed.value and new != current:
        record["confirmed_at"] = now
        if current == AppointmentStatus.cancelled.value:
            record["cancelled_at"] = None
    if new == AppointmentStatus.cancelled.value and new != current:
        record["cancelled_at"] = now
        if current == AppointmentStatus.confirmed.value:
            record["confirmed_at"] = None
    return record


def reactivates(current: str, new: str) -> bool:
    return current not in ACTIVE_STATUSES and new in ACTIVE_STATUSES


async def update_appointment_status(
    appointments: AppointmentStore,
    slots: SlotStore,
    existing: Appointment,
    status: str,
) -> Appointment:
    record = status_change_record(existing.status, status, utc_now())
    try:
        updated = await appointments.update(existing.id, record)
    except Exception as e:
        logger.exception("Status update failed for appointment %s: %s", existing.id, e)
        raise PersistenceError("Could not update the appointment status", details={"reason": str(e)}) from e
    if updated is None:
        raise NotFoundError(f"Appointment {existing.id} not found", details={"appointmentId": existing.id})
    logger.info("Appointment %s status %s -> %s", existing.id, existing.status, status)
    await reconcile_slot_counter(slots, appointments, existing.slot_id)
    return updated


async def delete_appointment(
    appointments: AppointmentStore, slots: SlotStore, appointment_id: str
) -> None:
    existing = await appointments.get(appointment_id)
    if existing is None:
        raise NotFoundError(f"Appointment {appointment_id} not found", details={"appointmentId": appointment_id})
    try:
        deleted = await appointments.delete(appointment_id)
    except Exception as e:
        logger.exception("Delete failed for appointment %s: %s", appointment_id, e)
        raise PersistenceError("Could not delete the appointment", details={"reason": str(e)}) from e
    if not deleted:
        raise NotFoundError(f"Appointment {appointment_id} not found", details={"appointmentId": appointment_id})
    logger.info("Appointment %s deleted from slot %s", appointment_id, existing.slot_id)
    await reconcile_slot_counter(slots, appointments, existing.slot_id)
