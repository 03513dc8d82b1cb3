import logging
from datetime import UTC, date, datetime

from agenda.core.config import DEFAULT_AGENT_ID
from agenda.core.errors import NotFoundError, ValidationError
from agenda.models.appointment import ACTIVE_STATUSES, AppointmentPublic, AppointmentStatus
from agenda.models.slot import AvailabilitySlot, DayAvailability, SlotOccupancy, SlotPublic
from agenda.repositories.base import AppointmentStore, SlotStore
from agenda.services.capacity_service import check_capacity
from agenda.services.time_normalizer import clean_date, normalize_time, parse_date

logger = logging.getLogger(__name__)

_WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def _distinct(values: list[str]) -> list[str]:
    seen: list[str] = []
    for v in values:
        if v not in seen:
            seen.append(v)
    return seen


async def resolve_slot(
    slots: SlotStore,
    requested_date: str | date,
    requested_time: str,
    agent_id: str | None = None,
    *,
    default_agent_id: str = DEFAULT_AGENT_ID,
) -> AvailabilitySlot:
    """Find the enabled slot whose start time matches ``requested_time`` exactly (HH:MM)."""
    day = parse_date(requested_date)
    if day is None:
        raise ValidationError(
            f"Invalid date {clean_date(requested_date)!r}", details={"date": clean_date(requested_date)}
        )
    agent = agent_id or default_agent_id
    target = normalize_time(requested_time)

    candidates = await slots.list_enabled_slots(day, agent)
    matches = [s for s in candidates if normalize_time(s.start_time) == target]

    if not matches:
        available_times = _distinct([normalize_time(s.start_time) for s in candidates])
        logger.warning(
            "No slot at %s on %s for agent %s; slots found: %s",
            target,
            day,
            agent,
            ", ".join(available_times) or "none",
        )
        raise NotFoundError(
            f"No slot found for {target} on {day.isoformat()}. "
            f"Available times: {', '.join(available_times) or 'none'}.",
            details={"date": day.isoformat(), "time": target, "availableTimes": available_times},
        )
    if len(matches) > 1:
        # Duplicate slot rows; the first one returned by the store wins.
        logger.warning(
            "Duplicate slots at %s on %s for agent %s: %s; using %s",
            target,
            day,
            agent,
            [s.id for s in matches],
            matches[0].id,
        )
    return matches[0]


async def list_availability(
    slots: SlotStore,
    start: date | None = None,
    end: date | None = None,
    agent_id: str | None = None,
    *,
    default_agent_id: str = DEFAULT_AGENT_ID,
) -> list[DayAvailability]:
    """Enabled slots grouped per day, availability taken from the cached counter."""
    start = start or datetime.now(UTC).date()
    rows = await slots.list_enabled_slots_between(start, end, agent_id or default_agent_id)
    days: dict[date, DayAvailability] = {}
    for s in rows:
        day = days.get(s.date)
        if day is None:
            day = DayAvailability(date=s.date, day_of_week=_WEEKDAYS[s.date.weekday()], slots=[])
            days[s.date] = day
        day.slots.append(
            SlotPublic(
                time=normalize_time(s.start_time),
                available=s.enabled and s.booked < s.capacity,
                capacity=s.capacity,
                booked=s.booked,
                enabled=s.enabled,
            )
        )
    return list(days.values())


async def slot_occupancy(
    slots: SlotStore, appointments: AppointmentStore, slot_id: str, *, fail_open: bool = True
) -> SlotOccupancy:
    """Who is holding seats in a slot, with the live availability decision."""
    slot = await slots.get_slot(slot_id)
    if slot is None:
        raise NotFoundError(f"Slot {slot_id} not found", details={"slotId": slot_id})
    decision = await check_capacity(appointments, slot, fail_open=fail_open)
    rows = await appointments.list_for_slot(slot_id)
    public = [AppointmentPublic.model_validate(a.model_dump()) for a in rows]
    active = [a for a in public if a.status in ACTIVE_STATUSES]
    return SlotOccupancy(
        slot_id=slot.id,
        date=slot.date,
        time=normalize_time(slot.start_time),
        capacity=slot.capacity,
        booked=slot.booked,
        active=active,
        cancelled=[a for a in public if a.status == AppointmentStatus.cancelled.value],
        total=len(public),
        active_count=len(active),
        available=decision.available,
        remaining=decision.remaining,
    )
