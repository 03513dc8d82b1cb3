import logging
from dataclasses import dataclass

from agenda.core.errors import CapacityExceededError
from agenda.models.slot import AvailabilitySlot
from agenda.repositories.base import AppointmentStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CapacityDecision:
    available: bool
    booked_count: int
    capacity: int
    source: str  # live | cached | fail_open | fail_closed

    @property
    def remaining(self) -> int:
        return max(0, self.capacity - self.booked_count)


def _usable_count(value: object) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return None
    return value


async def check_capacity(
    appointments: AppointmentStore, slot: AvailabilitySlot, *, fail_open: bool = True
) -> CapacityDecision:
    """Decide availability from the live count of active appointments.

    The slot's ``booked`` counter is only consulted when the live count cannot be
    read. When neither signal is usable the decision follows ``fail_open``.
    """
    capacity = _usable_count(slot.capacity)
    live: int | None = None
    try:
        live = _usable_count(await appointments.count_active(slot.id))
    except Exception as e:
        logger.warning("Live appointment count failed for slot %s: %s", slot.id, e)

    if capacity is not None and live is not None:
        if slot.booked != live:
            logger.info("Stale booked counter on slot %s: cached=%s live=%s", slot.id, slot.booked, live)
        return CapacityDecision(live < capacity, live, capacity, "live")

    cached = _usable_count(slot.booked)
    if capacity is not None and cached is not None:
        logger.warning(
            "Low confidence capacity decision for slot %s from cached counter: booked=%d capacity=%d",
            slot.id,
            cached,
            capacity,
        )
        return CapacityDecision(cached < capacity, cached, capacity, "cached")

    logger.warning("No usable occupancy signal for slot %s; fail_open=%s", slot.id, fail_open)
    if fail_open:
        return CapacityDecision(True, 0, capacity or 0, "fail_open")
    return CapacityDecision(False, 0, capacity or 0, "fail_closed")


async def verify_capacity(
    appointments: AppointmentStore, slot: AvailabilitySlot, *, fail_open: bool = True
) -> CapacityDecision:
    decision = await check_capacity(appointments, slot, fail_open=fail_open)
    if not decision.available:
        logger.warning(
            "Slot %s full: %d active for capacity %d (%s)",
            slot.id,
            decision.booked_count,
            decision.capacity,
            decision.source,
        )
        raise CapacityExceededError(capacity=decision.capacity, booked_count=decision.booked_count)
    return decision
