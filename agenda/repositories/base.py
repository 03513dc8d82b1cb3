"""Store interfaces the booking services depend on.

The SQL implementations in this package are wired per request in
``agenda.api.deps``; tests pass in-memory fakes.
"""
from collections.abc import Awaitable, Callable
from datetime import date
from typing import Any, Protocol

from agenda.models.appointment import Appointment
from agenda.models.slot import AvailabilitySlot

PriceLookup = Callable[[str], Awaitable[float | None]]


class SlotStore(Protocol):
    async def list_enabled_slots(self, day: date, agent_id: str) -> list[AvailabilitySlot]: ...

    async def list_enabled_slots_between(
        self, start: date, end: date | None, agent_id: str
    ) -> list[AvailabilitySlot]: ...

    async def get_slot(self, slot_id: str) -> AvailabilitySlot | None: ...

    async def set_booked(self, slot_id: str, count: int) -> None: ...

    async def lock_slot(self, slot_id: str) -> None: ...


class AppointmentStore(Protocol):
    async def supported_optional_fields(self) -> frozenset[str]: ...

    async def insert(self, record: dict[str, Any]) -> Appointment: ...

    async def update(self, appointment_id: str, record: dict[str, Any]) -> Appointment | None: ...

    async def get(self, appointment_id: str) -> Appointment | None: ...

    async def delete(self, appointment_id: str) -> bool: ...

    async def count_active(self, slot_id: str) -> int: ...

    async def list_for_slot(self, slot_id: str) -> list[Appointment]: ...


class ClientStore(Protocol):
    async def upsert_by_email(self, email: str, name: str, phone: str | None) -> str: ...


class PropertyResolver(Protocol):
    async def resolve(self, external_ref: str) -> str | None: ...

    async def get_price(self, property_id: str) -> float | None: ...
