"""
Mercado Livre Mapping - Converts ListingJobs and prices into API payloads.

Deterministic mapping; no I/O.
"""

import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Union

from settings import meli_settings
from .entities import ListingFormat, ListingJob, VariatedListing

logger = logging.getLogger(__name__)

MELI_TITLE_MAX_LENGTH = 60
MELI_BUYING_MODE = "buy_it_now"
MELI_CONDITION = "new"

DEFAULT_SHIPPING = {
    "mode": "me2",
    "local_pick_up": False,
    "free_shipping": False,
}


def to_money(value: Any) -> Decimal:
    """
    Normalize a price to a two-decimal Decimal.

    Raises:
        ValueError: value is not numeric or not positive
    """
    try:
        amount = Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError):
        raise ValueError(f"Invalid price value: {value!r}")
    if amount <= 0:
        raise ValueError(f"Price must be greater than zero, got {amount}")
    return amount


def to_api_number(value: Any) -> Union[int, float]:
    """Price as the JSON number the API expects (100 rather than "100.00")."""
    amount = to_money(value)
    if amount == amount.to_integral_value():
        return int(amount)
    return float(amount)


def _truncate_title(title: str) -> str:
    title = " ".join(title.split())
    if len(title) <= MELI_TITLE_MAX_LENGTH:
        return title
    logger.warning(f"Title truncated from {len(title)} to {MELI_TITLE_MAX_LENGTH} chars: {title!r}")
    return title[:MELI_TITLE_MAX_LENGTH].rstrip()


def build_item_payload(job: ListingJob, currency_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Build the POST /items body for one job.

    Catalog jobs carry no title or pictures (inherited from the catalog
    product); traditional jobs carry both.
    """
    payload: Dict[str, Any] = {
        "category_id": job.category_id,
        "price": to_api_number(job.price),
        "currency_id": currency_id or meli_settings.meli_currency_id,
        "available_quantity": job.stock,
        "buying_mode": MELI_BUYING_MODE,
        "listing_type_id": job.tier.listing_type_id,
        "condition": MELI_CONDITION,
        "catalog_listing": job.format == ListingFormat.CATALOG,
        "catalog_product_id": job.catalog_product_id,
        "shipping": dict(DEFAULT_SHIPPING),
    }

    if job.format == ListingFormat.TRADITIONAL:
        if job.title:
            payload["title"] = _truncate_title(job.title)
        if job.pictures:
            payload["pictures"] = [{"source": url} for url in job.pictures]

    if job.attributes:
        payload["attributes"] = [{"id": a.id, "value_name": a.value_name} for a in job.attributes]

    return payload


def build_root_price_payload(price: Any) -> Dict[str, Any]:
    """PUT /items body that sets the root price field."""
    return {"price": to_api_number(price)}


def build_variation_price_payload(shape: VariatedListing, price: Any) -> Dict[str, Any]:
    """PUT /items body that sets every variation to the same price."""
    amount = to_api_number(price)
    # Variations left out of the body are deleted by the API, so every id is sent
    variations: List[Dict[str, Any]] = [
        {"id": int(v.id) if v.id.isdigit() else v.id, "price": amount}
        for v in shape.variations
    ]
    return {"variations": variations}
