from datetime import date as Date, time as Time
from uuid import uuid4

from sqlalchemy import Column, Time as SATime
from sqlmodel import Field, SQLModel

from agenda.models.appointment import AppointmentPublic


def _new_id() -> str:
    return str(uuid4())


class AvailabilitySlot(SQLModel, table=True):
    __tablename__ = "availability_slots"
    id: str = Field(default_factory=_new_id, primary_key=True)
    agent_id: str = Field(index=True)
    date: Date = Field(index=True)
    start_time: Time = Field(sa_column=Column(SATime(timezone=True), nullable=False))
    end_time: Time | None = Field(default=None, sa_column=Column(SATime(timezone=True), nullable=True))
    capacity: int = 1
    booked: int = 0  # cached counter; live occupancy is counted from appointments
    enabled: bool = True


class SlotPublic(SQLModel):
    time: str  # HH:MM
    available: bool
    capacity: int
    booked: int
    enabled: bool


class DayAvailability(SQLModel):
    date: Date
    day_of_week: str
    slots: list[SlotPublic]


class SlotOccupancy(SQLModel):
    slot_id: str
    date: Date
    time: str
    capacity: int
    booked: int  # cached counter
    active: list[AppointmentPublic]
    cancelled: list[AppointmentPublic]
    total: int
    active_count: int
    available: bool
    remaining: int
