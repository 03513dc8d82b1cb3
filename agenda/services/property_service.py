import logging

from agenda.core.errors import ValidationError
from agenda.repositories.base import PropertyResolver

logger = logging.getLogger(__name__)


def min_budget(budget_range: str | None) -> int:
    """Lower bound of a budget option: ``"30000-40000"`` -> 30000, ``"mas-150000"`` -> 150000."""
    if not budget_range:
        return 0
    if budget_range.startswith("mas-"):
        value = budget_range[len("mas-"):]
    else:
        value = budget_range.split("-", 1)[0]
    try:
        return int(value)
    except ValueError:
        return 0


async def resolve_property(properties: PropertyResolver, external_ref: str | None) -> str | None:
    """Internal property id, or None. Lookup failures never propagate."""
    ref = (external_ref or "").strip()
    if not ref:
        return None
    try:
        property_id = await properties.resolve(ref)
    except Exception as e:
        logger.warning("Property reference %r could not be resolved: %s", ref, e)
        return None
    if property_id is None:
        logger.info("Property reference %r did not match any property; booking without it", ref)
    return property_id


async def check_budget(properties: PropertyResolver, property_id: str, budget_range: str) -> None:
    """Reject a budget range whose lower bound is below the property's price."""
    try:
        price = await properties.get_price(property_id)
    except Exception as e:
        logger.warning("Price lookup failed for property %s: %s", property_id, e)
        return
    minimum = min_budget(budget_range)
    if not price or not minimum or minimum >= price:
        return
    logger.warning(
        "Budget below property price: property=%s price=%s budget=%s", property_id, price, budget_range
    )
    raise ValidationError(
        f"The selected budget range starts at {minimum:,} MXN, below the property's price of "
        f"{price:,.2f} MXN. Please choose a suitable budget range.",
        details={"propertyPrice": price, "selectedBudget": minimum},
    )
