"""
Pricing Resolver

Computes the amount that becomes permanent on a claim: provider-entered
prices are capped at the system reference (union) price, follow-up visits
cost nothing, and partially fulfilled prescriptions are billed only for the
items actually dispensed.
"""
import logging
from decimal import Decimal
from typing import Iterable, List, Optional, Union

from pydantic import BaseModel, Field

from claimflow.core.payloads import ItemLine

logger = logging.getLogger(__name__)

Number = Union[Decimal, int, float, str]

ZERO = Decimal("0")


def _to_decimal(value: Number, name: str) -> Decimal:
    amount = value if isinstance(value, Decimal) else Decimal(str(value))
    if amount < 0:
        raise ValueError(f"{name} must be non-negative, got {amount}")
    return amount


def resolve_price(
    entered_price: Number,
    reference_price: Optional[Number] = None,
    is_follow_up: bool = False,
) -> Decimal:
    """
    Resolve the approved amount for a single service.

    Follow-up claims resolve to 0. Otherwise the result is
    min(entered_price, reference_price); the entered price stands alone only
    when no reference price exists.
    """
    entered = _to_decimal(entered_price, "entered_price")
    reference = None if reference_price is None else _to_decimal(reference_price, "reference_price")

    if is_follow_up:
        return ZERO
    if reference is None:
        return entered
    return min(entered, reference)


def resolve_item_price(item: ItemLine) -> Decimal:
    """Unit price of a line item after the reference-price cap."""
    return resolve_price(item.price, item.reference_price)


class FulfillmentResult(BaseModel):
    """Outcome of matching dispensed items against a prescription."""
    items: List[ItemLine]
    original_item_count: int = Field(..., ge=0)
    fulfilled_item_count: int = Field(..., ge=0)
    is_partial_fulfillment: bool
    amount: Decimal = Field(..., ge=0)


def resolve_fulfillment(
    prescribed_items: Iterable[ItemLine],
    fulfilled_item_ids: Optional[Iterable[str]] = None,
) -> FulfillmentResult:
    """
    Keep only the prescribed items that were dispensed and price them.

    Args:
        prescribed_items: Every item on the original prescription
        fulfilled_item_ids: Ids of the dispensed items; None means all of them

    Returns:
        FulfillmentResult with the dispensed items and their total

    Raises:
        ValueError: If no item is dispensed or an id is not on the prescription
    """
    prescribed = list(prescribed_items)

    if fulfilled_item_ids is None:
        fulfilled = prescribed
    else:
        wanted = [str(item_id) for item_id in fulfilled_item_ids]
        if not wanted:
            raise ValueError("At least one prescribed item must be dispensed")

        known_ids = {item.id for item in prescribed if item.id is not None}
        unknown = [item_id for item_id in wanted if item_id not in known_ids]
        if unknown:
            raise ValueError(f"Items not on the prescription: {unknown}")

        wanted_ids = set(wanted)
        fulfilled = [item for item in prescribed if item.id in wanted_ids]

    amount = sum((resolve_item_price(item) for item in fulfilled), ZERO)
    is_partial = len(fulfilled) < len(prescribed)

    if is_partial:
        logger.info(f"Partial fulfillment: {len(fulfilled)} of {len(prescribed)} items dispensed")

    return FulfillmentResult(
        items=fulfilled,
        original_item_count=len(prescribed),
        fulfilled_item_count=len(fulfilled),
        is_partial_fulfillment=is_partial,
        amount=amount,
    )
