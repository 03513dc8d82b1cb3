from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.models.slot import AvailabilitySlot


class SqlSlotStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_enabled_slots(self, day: date, agent_id: str) -> list[AvailabilitySlot]:
        result = await self.session.execute(
            select(AvailabilitySlot)
            .where(
                AvailabilitySlot.date == day,
                AvailabilitySlot.agent_id == agent_id,
                AvailabilitySlot.enabled == True,  # noqa: E712
            )
            .order_by(AvailabilitySlot.start_time, AvailabilitySlot.id)
        )
        return list(result.scalars().all())

    async def list_enabled_slots_between(
        self, start: date, end: date | None, agent_id: str
    ) -> list[AvailabilitySlot]:
        q = select(AvailabilitySlot).where(
            AvailabilitySlot.date >= start,
            AvailabilitySlot.agent_id == agent_id,
            AvailabilitySlot.enabled == True,  # noqa: E712
        )
        if end:
            q = q.where(AvailabilitySlot.date <= end)
        result = await self.session.execute(q.order_by(AvailabilitySlot.date, AvailabilitySlot.start_time))
        return list(result.scalars().all())

    async def get_slot(self, slot_id: str) -> AvailabilitySlot | None:
        return await self.session.get(AvailabilitySlot, slot_id)

    async def set_booked(self, slot_id: str, count: int) -> None:
        async with self.session.begin_nested():
            slot = await self.session.get(AvailabilitySlot, slot_id)
            if slot is None:
                return
            slot.booked = count
            self.session.add(slot)
            await self.session.flush()

    async def lock_slot(self, slot_id: str) -> None:
        """SELECT ... FOR UPDATE; the row lock outlives the SAVEPOINT and is held
        until the request transaction commits."""
        async with self.session.begin_nested():
            await self.session.execute(
                select(AvailabilitySlot.id).where(AvailabilitySlot.id == slot_id).with_for_update()
            )
