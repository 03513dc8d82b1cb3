import logging
from typing import Any
from uuid import uuid4

from sqlalchemy import delete, func, insert, inspect, select, update
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.core.errors import SchemaDriftError, StoreError
from agenda.models.appointment import ACTIVE_STATUSES, OPTIONAL_FIELDS, Appointment
from agenda.models.timestamps import utc_now

logger = logging.getLogger(__name__)

# SQLSTATE for "column does not exist"
_UNDEFINED_COLUMN = "42703"

_table = Appointment.__table__


def _is_undefined_column(exc: DBAPIError) -> bool:
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return code == _UNDEFINED_COLUMN


class SqlAppointmentStore:
    """Appointment writes tolerate deployments whose table lacks optional link columns.

    The live column set is reflected once per store and used both as the capability
    descriptor and to limit which columns are read back.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self._columns: frozenset[str] | None = None

    async def _live_columns(self) -> frozenset[str]:
        if self._columns is None:
            conn = await self.session.connection()
            names = await conn.run_sync(
                lambda sync_conn: [c["name"] for c in inspect(sync_conn).get_columns(_table.name)]
            )
            self._columns = frozenset(names)
        return self._columns

    async def supported_optional_fields(self) -> frozenset[str]:
        columns = await self._live_columns()
        return frozenset(f for f in OPTIONAL_FIELDS if f in columns)

    async def _fetch(self, appointment_id: str) -> Appointment | None:
        columns = await self._live_columns()
        result = await self.session.execute(
            select(*[c for c in _table.c if c.name in columns]).where(_table.c.id == appointment_id)
        )
        row = result.mappings().one_or_none()
        return Appointment(**row) if row else None

    async def _write(self, stmt) -> int:
        try:
            async with self.session.begin_nested():
                result = await self.session.execute(stmt)
        except DBAPIError as e:
            if _is_undefined_column(e):
                # Schema changed under us; reflect again on the next attempt
                self._columns = None
                raise SchemaDriftError(str(e.orig)) from e
            raise StoreError(str(e.orig)) from e
        return result.rowcount or 0

    def _check_keys(self, record: dict[str, Any]) -> None:
        unknown = set(record) - set(_table.c.keys())
        if unknown:
            raise StoreError(f"Unknown appointment fields: {', '.join(sorted(unknown))}")

    async def insert(self, record: dict[str, Any]) -> Appointment:
        self._check_keys(record)
        now = utc_now()
        values = {"id": str(uuid4()), "created_at": now, "updated_at": now, **record}
        await self._write(insert(_table).values(**values))
        appointment = await self._fetch(values["id"])
        if appointment is None:
            raise StoreError("Inserted appointment could not be read back")
        return appointment

    async def update(self, appointment_id: str, record: dict[str, Any]) -> Appointment | None:
        self._check_keys(record)
        values = {"updated_at": utc_now(), **record}
        count = await self._write(update(_table).where(_table.c.id == appointment_id).values(**values))
        if not count:
            return None
        return await self._fetch(appointment_id)

    async def get(self, appointment_id: str) -> Appointment | None:
        return await self._fetch(appointment_id)

    async def delete(self, appointment_id: str) -> bool:
        count = await self._write(delete(_table).where(_table.c.id == appointment_id))
        return count > 0

    async def count_active(self, slot_id: str) -> int:
        async with self.session.begin_nested():
            result = await self.session.execute(
                select(func.count())
                .select_from(_table)
                .where(_table.c.slot_id == slot_id, _table.c.status.in_(ACTIVE_STATUSES))
            )
            return int(result.scalar_one())

    async def list_for_slot(self, slot_id: str) -> list[Appointment]:
        columns = await self._live_columns()
        result = await self.session.execute(
            select(*[c for c in _table.c if c.name in columns])
            .where(_table.c.slot_id == slot_id)
            .order_by(_table.c.created_at.desc())
        )
        return [Appointment(**row) for row in result.mappings().all()]
