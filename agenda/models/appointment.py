from datetime import date as Date, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from agenda.models.timestamps import timestamp_column, utc_now


class AppointmentStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"
    completed = "completed"
    no_show = "no-show"


# Statuses that hold a seat in a slot
ACTIVE_STATUSES = (AppointmentStatus.pending.value, AppointmentStatus.confirmed.value)

# Columns older deployments may lack, in the order they are dropped on schema drift
OPTIONAL_FIELDS = ("property_id", "client_id")


class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    slot_id: str = Field(foreign_key="availability_slots.id", index=True)
    agent_id: str = Field(index=True)
    client_id: str | None = Field(default=None, foreign_key="clients.id", index=True)
    property_id: str | None = Field(default=None, foreign_key="properties.id")
    # Denormalized contact copy, kept even when client_id is set
    client_name: str
    client_email: str = Field(index=True)
    client_phone: str | None = None
    operation_type: str
    budget_range: str = ""
    # {"rentar": {...}} or {"comprar": {...}}
    operation_details: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))
    appointment_date: Date
    appointment_time: str  # HH:MM:SS
    duration_minutes: int = 45
    status: str = Field(default=AppointmentStatus.pending.value, index=True)
    notes: str | None = None
    confirmed_at: datetime | None = Field(default=None, sa_column=timestamp_column(nullable=True))
    cancelled_at: datetime | None = Field(default=None, sa_column=timestamp_column(nullable=True))
    created_at: datetime = Field(default_factory=utc_now, sa_column=timestamp_column())
    updated_at: datetime = Field(default_factory=utc_now, sa_column=timestamp_column())


class AppointmentPublic(SQLModel):
    id: str
    slot_id: str
    agent_id: str
    client_id: str | None = None
    property_id: str | None = None
    client_name: str
    client_email: str
    client_phone: str | None = None
    operation_type: str
    budget_range: str
    operation_details: dict[str, Any] | None = None
    appointment_date: Date
    appointment_time: str
    duration_minutes: int
    status: str
    notes: str | None = None
    confirmed_at: datetime | None = None
    cancelled_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
