"""
Sale fee quotes from the listing_prices endpoint.

Only a direct lookup: the percentage and fixed fee are read as reported by
the platform for one price. Inferring a fixed fee by comparing quotes at
several probe prices is not done here.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from .client import MeliClient, first_result
from .entities import FeeQuote, Tier
from .errors import MeliError
from .mapping import to_money

logger = logging.getLogger(__name__)


class FeeQuoteError(MeliError):
    """Fee schedule could not be fetched (502)"""
    status_code = 502


def _decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return Decimal("0")


def _matching_entry(data: Any, listing_type_id: str) -> Optional[Dict[str, Any]]:
    """The endpoint answers with one object, or a list when the type filter is ignored."""
    if isinstance(data, dict):
        return data
    if isinstance(data, list):
        for entry in data:
            if isinstance(entry, dict) and entry.get("listing_type_id") == listing_type_id:
                return entry
        first = first_result(data)
        return first if isinstance(first, dict) else None
    return None


def get_fee_quote(client: MeliClient, price: Any, tier: Tier, category_id: str) -> FeeQuote:
    """
    Fee quote for a (price, tier, category) triple.

    Raises:
        ValueError: price is not a positive amount
        FeeQuoteError: the fee schedule could not be fetched
    """
    amount = to_money(price)
    response = client.get_listing_prices(amount, tier.listing_type_id, category_id)
    if not response.ok:
        raise FeeQuoteError(f"Failed to fetch listing prices: {response.error}")

    entry = _matching_entry(response.data, tier.listing_type_id)
    if entry is None:
        raise FeeQuoteError("Listing prices response had no entry for this listing type")

    details = entry.get("sale_fee_details") or {}
    quote = FeeQuote(
        price=amount,
        tier=tier,
        category_id=category_id,
        percentage_fee=_decimal(details.get("percentage_fee")),
        fixed_fee=_decimal(details.get("fixed_fee")),
        sale_fee_amount=_decimal(entry.get("sale_fee_amount")),
        currency_id=entry.get("currency_id"),
    )
    logger.info(
        f"[Fees] price={amount} tier={tier.value} category={category_id} "
        f"pct={quote.percentage_fee} fixed={quote.fixed_fee} total={quote.sale_fee_amount}"
    )
    return quote
