"""
Tests for the appointment writer.

Coverage:
- Record shape (denormalized contact, nested operation details, storage time)
- Client upsert failure is non-fatal
- Capability descriptor strips unsupported link fields
- Schema drift degradation order and retry bound
- Update path: slot moves reconcile both slots
"""
from datetime import time

import pytest

from agenda.core.errors import NotFoundError, PersistenceError, StoreError
from agenda.models.booking import parse_booking_request
from agenda.services.appointment_service import (
    MAX_DEGRADATION_RETRIES,
    build_appointment_record,
    create_appointment,
    update_appointment,
)

from conftest import comprar_payload, make_slot, rentar_payload


@pytest.fixture
def slot(slot_store):
    return slot_store.add(make_slot(time(10, 0), capacity=2))


def test_record_shape(slot):
    request = parse_booking_request(comprar_payload(time="2026-11-16T10:00:00Z", notes="Llamar antes"))

    record = build_appointment_record(request, slot, client_id="c-1", property_id=None, duration_minutes=45)

    assert record["slot_id"] == slot.id
    assert record["agent_id"] == slot.agent_id
    assert record["client_email"] == "luis.hernandez@gmail.com"
    assert record["appointment_time"] == "10:00:00"
    assert record["appointment_date"] == slot.date
    assert record["budget_range"] == "4000000-5000000"
    assert record["operation_details"] == {
        "comprar": {"resource_type": "credito-bancario", "banco": "bbva", "credito_preaprobado": "si"}
    }
    assert record["notes"] == "Llamar antes"


@pytest.mark.asyncio
async def test_create_links_client_and_starts_pending(slot, slot_store, appointment_store, client_store):
    request = parse_booking_request(rentar_payload())

    appointment = await create_appointment(appointment_store, client_store, slot_store, request, slot)

    assert appointment.status == "pending"
    assert appointment.client_id == client_store.clients["ana.lopez@gmail.com"]["id"]
    assert appointment.client_name == "Ana López"
    assert appointment.operation_details == {"rentar": {"company": "Grupo Norte S.A."}}
    assert slot.booked == 1


@pytest.mark.asyncio
async def test_client_upsert_failure_is_non_fatal(slot, slot_store, appointment_store, client_store):
    client_store.fail = True
    request = parse_booking_request(rentar_payload())

    appointment = await create_appointment(appointment_store, client_store, slot_store, request, slot)

    assert appointment.client_id is None
    assert "client_id" not in appointment_store.write_attempts[0]
    assert appointment.client_email == "ana.lopez@gmail.com"


@pytest.mark.asyncio
async def test_unsupported_property_column_is_stripped(slot, slot_store, appointment_store, client_store):
    appointment_store.supported = frozenset({"client_id"})
    request = parse_booking_request(rentar_payload())

    appointment = await create_appointment(
        appointment_store, client_store, slot_store, request, slot, property_id="prop-1"
    )

    assert len(appointment_store.write_attempts) == 1
    assert "property_id" not in appointment_store.write_attempts[0]
    assert appointment.property_id is None
    assert appointment.client_id is not None


@pytest.mark.asyncio
async def test_capability_failure_assumes_full_schema(slot, slot_store, appointment_store, client_store):
    appointment_store.fail_capabilities = True
    request = parse_booking_request(rentar_payload())

    appointment = await create_appointment(
        appointment_store, client_store, slot_store, request, slot, property_id="prop-1"
    )
    assert appointment.property_id == "prop-1"


@pytest.mark.asyncio
async def test_drift_drops_property_then_client(slot, slot_store, appointment_store, client_store):
    appointment_store.missing_columns = {"property_id", "client_id"}
    request = parse_booking_request(rentar_payload())

    appointment = await create_appointment(
        appointment_store, client_store, slot_store, request, slot, property_id="prop-1"
    )

    attempts = appointment_store.write_attempts
    assert len(attempts) == 3
    assert {"property_id", "client_id"} <= set(attempts[0])
    assert "property_id" not in attempts[1] and "client_id" in attempts[1]
    assert "property_id" not in attempts[2] and "client_id" not in attempts[2]
    assert appointment.client_id is None and appointment.property_id is None


@pytest.mark.asyncio
async def test_drift_on_required_column_exhausts(slot, slot_store, appointment_store, client_store):
    appointment_store.missing_columns = {"notes"}
    request = parse_booking_request(rentar_payload(notes="Piso alto"))

    with pytest.raises(PersistenceError):
        await create_appointment(
            appointment_store, client_store, slot_store, request, slot, property_id="prop-1"
        )
    assert len(appointment_store.write_attempts) == MAX_DEGRADATION_RETRIES + 1
    assert appointment_store.rows == {}


@pytest.mark.asyncio
async def test_other_store_failure_is_persistence_error(slot, slot_store, appointment_store, client_store):
    appointment_store.fail_write = StoreError("connection reset")
    request = parse_booking_request(rentar_payload())

    with pytest.raises(PersistenceError) as exc_info:
        await create_appointment(appointment_store, client_store, slot_store, request, slot)
    assert len(appointment_store.write_attempts) == 1
    assert exc_info.value.details["reason"] == "connection reset"


@pytest.mark.asyncio
async def test_reconcile_failure_does_not_undo_write(slot, slot_store, appointment_store, client_store):
    slot_store.fail_set_booked = True
    request = parse_booking_request(rentar_payload())

    appointment = await create_appointment(appointment_store, client_store, slot_store, request, slot)

    assert appointment.id in appointment_store.rows
    assert slot.booked == 0


@pytest.mark.asyncio
async def test_update_moves_slot_and_reconciles_both(slot, slot_store, appointment_store, client_store):
    request = parse_booking_request(rentar_payload())
    appointment = await create_appointment(appointment_store, client_store, slot_store, request, slot)
    later = slot_store.add(make_slot(time(12, 0)))
    assert slot.booked == 1

    moved = await update_appointment(
        appointment_store,
        client_store,
        slot_store,
        appointment,
        parse_booking_request(rentar_payload(time="12:00")),
        later,
    )

    assert moved.slot_id == later.id
    assert moved.appointment_time == "12:00:00"
    assert slot.booked == 0
    assert later.booked == 1


@pytest.mark.asyncio
async def test_update_keeps_client_link_when_upsert_fails(slot, slot_store, appointment_store, client_store):
    appointment = await create_appointment(
        appointment_store, client_store, slot_store, parse_booking_request(rentar_payload()), slot
    )
    original_client = appointment.client_id
    client_store.fail = True

    updated = await update_appointment(
        appointment_store,
        client_store,
        slot_store,
        appointment,
        parse_booking_request(rentar_payload(notes="Cambio de notas")),
        slot,
    )

    assert updated.client_id == original_client
    assert updated.notes == "Cambio de notas"


@pytest.mark.asyncio
async def test_update_missing_row(slot, slot_store, appointment_store, client_store):
    appointment = await create_appointment(
        appointment_store, client_store, slot_store, parse_booking_request(rentar_payload()), slot
    )
    appointment_store.rows.clear()

    with pytest.raises(NotFoundError):
        await update_appointment(
            appointment_store,
            client_store,
            slot_store,
            appointment,
            parse_booking_request(rentar_payload()),
            slot,
        )
