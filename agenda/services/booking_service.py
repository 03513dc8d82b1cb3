"""Booking engine.

Orchestrates a booking request through slot resolution, the live capacity
check, the appointment write and counter reconciliation. The engine holds no
state of its own beyond the store handles and rule settings it is built with,
so one instance is created per request in ``agenda.api.deps``.
"""
import logging
from datetime import date

from agenda.core.config import DEFAULT_AGENT_ID
from agenda.core.errors import NotFoundError
from agenda.models.appointment import ACTIVE_STATUSES, Appointment
from agenda.models.booking import BookingRequest
from agenda.models.slot import AvailabilitySlot, DayAvailability, SlotOccupancy
from agenda.repositories.base import AppointmentStore, ClientStore, PropertyResolver, SlotStore
from agenda.services.appointment_service import (
    check_transition,
    create_appointment,
    delete_appointment,
    parse_status,
    reactivates,
    update_appointment,
    update_appointment_status,
)
from agenda.services.capacity_service import CapacityDecision, verify_capacity
from agenda.services.property_service import check_budget, resolve_property
from agenda.services.slot_service import list_availability, resolve_slot, slot_occupancy

logger = logging.getLogger(__name__)


class BookingEngine:
    def __init__(
        self,
        slots: SlotStore,
        appointments: AppointmentStore,
        clients: ClientStore,
        properties: PropertyResolver,
        *,
        default_agent_id: str = DEFAULT_AGENT_ID,
        duration_minutes: int = 45,
        capacity_fail_open: bool = True,
        enforce_budget_check: bool = True,
    ) -> None:
        self.slots = slots
        self.appointments = appointments
        self.clients = clients
        self.properties = properties
        self.default_agent_id = default_agent_id
        self.duration_minutes = duration_minutes
        self.capacity_fail_open = capacity_fail_open
        self.enforce_budget_check = enforce_budget_check

    async def _property_for(self, request: BookingRequest) -> str | None:
        property_id = await resolve_property(self.properties, request.property_id)
        if property_id and self.enforce_budget_check:
            await check_budget(self.properties, property_id, request.budget_range)
        return property_id

    async def _resolve(self, request: BookingRequest) -> AvailabilitySlot:
        return await resolve_slot(
            self.slots,
            request.date,
            request.time,
            request.agent_id,
            default_agent_id=self.default_agent_id,
        )

    async def _claim_seat(self, slot: AvailabilitySlot) -> CapacityDecision:
        """Lock the slot row for the rest of the transaction, then count live seats."""
        try:
            await self.slots.lock_slot(slot.id)
        except Exception as e:
            logger.warning("Could not lock slot %s, counting seats without the row lock: %s", slot.id, e)
        return await verify_capacity(self.appointments, slot, fail_open=self.capacity_fail_open)

    async def _existing(self, appointment_id: str) -> Appointment:
        existing = await self.appointments.get(appointment_id)
        if existing is None:
            raise NotFoundError(
                f"Appointment {appointment_id} not found", details={"appointmentId": appointment_id}
            )
        return existing

    async def book(self, request: BookingRequest) -> Appointment:
        property_id = await self._property_for(request)
        slot = await self._resolve(request)
        decision = await self._claim_seat(slot)
        logger.debug(
            "Slot %s has %d of %d seats taken (%s)",
            slot.id,
            decision.booked_count,
            decision.capacity,
            decision.source,
        )
        return await create_appointment(
            self.appointments,
            self.clients,
            self.slots,
            request,
            slot,
            property_id=property_id,
            duration_minutes=self.duration_minutes,
        )

    async def update(self, appointment_id: str, request: BookingRequest) -> Appointment:
        existing = await self._existing(appointment_id)
        property_id = await self._property_for(request)
        slot = await self._resolve(request)
        # The appointment already holds a seat in its current slot
        if slot.id != existing.slot_id and existing.status in ACTIVE_STATUSES:
            await self._claim_seat(slot)
        return await update_appointment(
            self.appointments,
            self.clients,
            self.slots,
            existing,
            request,
            slot,
            property_id=property_id,
            duration_minutes=self.duration_minutes,
        )

    async def update_status(self, appointment_id: str, status: str) -> Appointment:
        status = parse_status(status)
        existing = await self._existing(appointment_id)
        check_transition(existing.status, status)
        if reactivates(existing.status, status):
            slot = await self.slots.get_slot(existing.slot_id)
            if slot is None:
                logger.warning(
                    "Appointment %s references missing slot %s; skipping capacity check",
                    existing.id,
                    existing.slot_id,
                )
            else:
                await self._claim_seat(slot)
        return await update_appointment_status(self.appointments, self.slots, existing, status)

    async def delete(self, appointment_id: str) -> None:
        await delete_appointment(self.appointments, self.slots, appointment_id)

    async def availability(
        self, start: date | None = None, end: date | None = None, agent_id: str | None = None
    ) -> list[DayAvailability]:
        return await list_availability(
            self.slots, start, end, agent_id, default_agent_id=self.default_agent_id
        )

    async def occupancy(self, slot_id: str) -> SlotOccupancy:
        return await slot_occupancy(
            self.slots, self.appointments, slot_id, fail_open=self.capacity_fail_open
        )
