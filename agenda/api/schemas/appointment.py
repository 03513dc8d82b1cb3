from pydantic import BaseModel

from agenda.models.appointment import AppointmentStatus


class StatusUpdateRequest(BaseModel):
    status: AppointmentStatus
