from datetime import date

from fastapi import APIRouter, Depends, Query

from agenda.api.deps import get_booking_engine
from agenda.models.slot import DayAvailability, SlotOccupancy
from agenda.services.booking_service import BookingEngine

router = APIRouter(prefix="/slots", tags=["slots"])


@router.get("/available", response_model=list[DayAvailability])
async def available_slots(
    start: date | None = Query(None),
    end: date | None = Query(None),
    agent_id: str | None = Query(None),
    engine: BookingEngine = Depends(get_booking_engine),
) -> list[DayAvailability]:
    """Enabled slots from ``start`` (default today) through ``end``, grouped per day."""
    return await engine.availability(start, end, agent_id)


@router.get("/{slot_id}/occupancy", response_model=SlotOccupancy)
async def slot_occupancy(
    slot_id: str,
    engine: BookingEngine = Depends(get_booking_engine),
) -> SlotOccupancy:
    return await engine.occupancy(slot_id)
