import logging

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.models.property import Property
from agenda.repositories.base import PriceLookup

logger = logging.getLogger(__name__)


class SqlPropertyResolver:
    """Maps a caller's property reference (internal id or EasyBroker public id) to a row id."""

    def __init__(self, session: AsyncSession, price_fallback: PriceLookup | None = None) -> None:
        self.session = session
        self.price_fallback = price_fallback

    async def _find(self, ref: str) -> Property | None:
        result = await self.session.execute(
            select(Property).where(or_(Property.id == ref, Property.easybroker_public_id == ref))
        )
        return result.scalars().first()

    async def resolve(self, external_ref: str) -> str | None:
        ref = (external_ref or "").strip()
        if not ref:
            return None
        try:
            async with self.session.begin_nested():
                prop = await self._find(ref)
        except Exception as e:
            logger.warning("Property lookup failed for %r: %s", ref, e)
            return None
        return prop.id if prop else None

    async def get_price(self, property_id: str) -> float | None:
        try:
            prop = await self.session.get(Property, property_id)
        except Exception as e:
            logger.warning("Property price lookup failed for %s: %s", property_id, e)
            return None
        if prop is None:
            return None
        if prop.price:
            return float(prop.price)
        if prop.easybroker_public_id and self.price_fallback:
            try:
                return await self.price_fallback(prop.easybroker_public_id)
            except Exception as e:
                logger.warning("EasyBroker price lookup failed for %s: %s", prop.easybroker_public_id, e)
        return None
