import logging

from fastapi import APIRouter, Depends, Response, status

from agenda.api.deps import get_booking_engine
from agenda.api.schemas.appointment import StatusUpdateRequest
from agenda.models.appointment import Appointment, AppointmentPublic
from agenda.models.booking import BookingPayload
from agenda.services.booking_service import BookingEngine

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/appointments", tags=["appointments"])


def _to_public(a: Appointment) -> AppointmentPublic:
    return AppointmentPublic.model_validate(a.model_dump())


@router.post("", response_model=AppointmentPublic, status_code=status.HTTP_201_CREATED)
async def book_appointment(
    body: BookingPayload,
    engine: BookingEngine = Depends(get_booking_engine),
) -> AppointmentPublic:
    request = body.root
    logger.info(
        "Booking request: date=%s time=%s operation=%s email=%s",
        request.date,
        request.time,
        request.operation_type,
        request.email,
    )
    appointment = await engine.book(request)
    return _to_public(appointment)


@router.put("/{appointment_id}", response_model=AppointmentPublic)
async def update_appointment(
    appointment_id: str,
    body: BookingPayload,
    engine: BookingEngine = Depends(get_booking_engine),
) -> AppointmentPublic:
    appointment = await engine.update(appointment_id, body.root)
    return _to_public(appointment)


@router.patch("/{appointment_id}/status", response_model=AppointmentPublic)
async def update_appointment_status(
    appointment_id: str,
    body: StatusUpdateRequest,
    engine: BookingEngine = Depends(get_booking_engine),
) -> AppointmentPublic:
    appointment = await engine.update_status(appointment_id, body.status.value)
    return _to_public(appointment)


@router.delete("/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_appointment(
    appointment_id: str,
    engine: BookingEngine = Depends(get_booking_engine),
) -> Response:
    await engine.delete(appointment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
