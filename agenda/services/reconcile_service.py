import logging

from agenda.core.errors import ReconciliationWarning
from agenda.repositories.base import AppointmentStore, SlotStore

logger = logging.getLogger(__name__)


async def reconcile_slot_counter(
    slots: SlotStore, appointments: AppointmentStore, slot_id: str | None
) -> int | None:
    """Recompute ``booked = min(capacity, active appointments)`` for one slot.

    Best-effort: failures are logged and swallowed. Returns the stored count, or
    None when nothing was written.
    """
    if not slot_id:
        return None
    try:
        slot = await slots.get_slot(slot_id)
        if slot is None:
            warning = ReconciliationWarning(f"Slot {slot_id} not found", details={"slotId": slot_id})
            logger.warning("Counter reconciliation skipped: %s", warning.message)
            return None
        active = await appointments.count_active(slot_id)
        booked = max(0, min(slot.capacity, active))
        await slots.set_booked(slot_id, booked)
    except Exception as e:
        warning = ReconciliationWarning(
            f"Could not reconcile booked counter for slot {slot_id}: {e}", details={"slotId": slot_id}
        )
        logger.warning("Counter reconciliation failed: %s", warning.message)
        return None
    logger.debug("Slot %s booked counter set to %d", slot_id, booked)
    return booked
