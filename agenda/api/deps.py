from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.core.config import settings
from agenda.core.db import get_session
from agenda.repositories.appointments import SqlAppointmentStore
from agenda.repositories.clients import SqlClientStore
from agenda.repositories.properties import SqlPropertyResolver
from agenda.repositories.slots import SqlSlotStore
from agenda.services.booking_service import BookingEngine
from agenda.services.easybroker_service import fetch_property_price


async def get_booking_engine(session: AsyncSession = Depends(get_session)) -> BookingEngine:
    """Engine bound to the request's session; everything it writes commits together."""
    price_fallback = fetch_property_price if settings.easybroker_enabled else None
    return BookingEngine(
        SqlSlotStore(session),
        SqlAppointmentStore(session),
        SqlClientStore(session),
        SqlPropertyResolver(session, price_fallback=price_fallback),
        default_agent_id=settings.default_agent_id,
        duration_minutes=settings.appointment_duration_minutes,
        capacity_fail_open=settings.capacity_fail_open,
        enforce_budget_check=settings.enforce_budget_check,
    )
