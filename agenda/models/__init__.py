from agenda.models.appointment import (
    ACTIVE_STATUSES,
    OPTIONAL_FIELDS,
    Appointment,
    AppointmentPublic,
    AppointmentStatus,
)
from agenda.models.client import Client
from agenda.models.property import Property
from agenda.models.slot import AvailabilitySlot, DayAvailability, SlotOccupancy, SlotPublic

__all__ = [
    "ACTIVE_STATUSES",
    "OPTIONAL_FIELDS",
    "Appointment",
    "AppointmentPublic",
    "AppointmentStatus",
    "AvailabilitySlot",
    "Client",
    "DayAvailability",
    "Property",
    "SlotOccupancy",
    "SlotPublic",
]
