import logging

import httpx

from agenda.core.config import settings

logger = logging.getLogger(__name__)


def _extract_price(data: dict) -> float | None:
    operations = data.get("operations") or []
    if operations and isinstance(operations[0], dict) and operations[0].get("amount"):
        return float(operations[0]["amount"])
    price = data.get("price")
    if isinstance(price, dict):
        price = price.get("amount")
    if isinstance(price, (int, float)) and price > 0:
        return float(price)
    return None


async def fetch_property_price(public_id: str) -> float | None:
    """Listing price from EasyBroker, or None when unavailable."""
    if not settings.easybroker_enabled:
        return None
    url = f"{settings.easybroker_base_url.rstrip('/')}/properties/{public_id}"
    async with httpx.AsyncClient(timeout=settings.easybroker_timeout_seconds) as client:
        resp = await client.get(url, headers={"X-Authorization": settings.easybroker_api_key})
        if resp.status_code != 200:
            logger.warning(
                "EasyBroker property fetch failed: status=%s body=%s public_id=%s",
                resp.status_code,
                resp.text[:500],
                public_id,
            )
            return None
        return _extract_price(resp.json())
