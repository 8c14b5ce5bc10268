"""
Price reconciliation for existing listings.

A listing either keeps its price in the root `price` field (FlatListing) or,
when it has variations, only in each variation (VariatedListing). The shape is
resolved once after fetch and picks the first strategy:

    VariatedListing -> per_variation
    FlatListing     -> root

Some listings reject the shape that should be right for them. When a
per_variation write is rejected for structural or policy reasons, one root
write is attempted. Nothing else is retried: a second rejection, a rejected
root write, or a transport failure is terminal and surfaced with a classified
reason.
"""

import logging
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from .client import ApiResponse, MeliClient
from .entities import Listing, ListingShape, VariatedListing, resolve_shape
from .errors import PriceUpdateError, RejectionKind, classify, rejection_kind
from .mapping import build_root_price_payload, build_variation_price_payload, to_money

logger = logging.getLogger(__name__)


class PriceStrategy(str, Enum):
    ROOT = "root"
    PER_VARIATION = "per_variation"


FALLBACK_KINDS = {RejectionKind.STRUCTURAL, RejectionKind.POLICY}


class PriceAttempt(BaseModel):
    model_config = ConfigDict(frozen=True)

    strategy: PriceStrategy
    ok: bool
    status_code: Optional[int] = None
    error: Optional[str] = None


class PriceUpdateResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    listing_id: str
    price: Decimal
    strategy: PriceStrategy
    attempts: List[PriceAttempt] = Field(default_factory=list)


def select_strategy(shape: ListingShape) -> PriceStrategy:
    if isinstance(shape, VariatedListing):
        return PriceStrategy.PER_VARIATION
    return PriceStrategy.ROOT


def build_price_payload(shape: ListingShape, strategy: PriceStrategy, price: Decimal) -> Dict[str, Any]:
    if strategy == PriceStrategy.PER_VARIATION:
        return build_variation_price_payload(shape, price)
    return build_root_price_payload(price)


class PriceReconciler:
    """Applies a new price to an existing listing."""

    def __init__(self, client: MeliClient):
        self.client = client

    def fetch_listing(self, listing_id: str) -> Listing:
        """
        Fetch the current listing.

        Raises:
            PriceUpdateError: listing could not be fetched (404 when it does not exist)
        """
        response = self.client.get_item(listing_id)
        if not response.ok or not isinstance(response.data, dict):
            classified = classify(None, response.data, response.status_code, response.error)
            status = 404 if response.status_code == 404 else (401 if response.status_code == 401 else None)
            raise PriceUpdateError(listing_id, classified, status_code=status)
        return Listing.from_api(response.data)

    def _apply(self, listing_id: str, shape: ListingShape, strategy: PriceStrategy, price: Decimal) -> ApiResponse:
        payload = build_price_payload(shape, strategy, price)
        logger.info(f"[Price] {listing_id}: applying {strategy.value} price={price}")
        return self.client.update_item(listing_id, payload)

    def update_price(self, listing_id: str, new_price: Any) -> PriceUpdateResult:
        """
        Set a new price on a listing.

        Args:
            listing_id: Marketplace item id
            new_price: New price (listing currency)

        Returns:
            PriceUpdateResult on success

        Raises:
            ValueError: new_price is not a positive amount
            PriceUpdateError: fetch failed or the update was terminally rejected
        """
        price = to_money(new_price)
        listing = self.fetch_listing(listing_id)
        shape = resolve_shape(listing)
        strategy = select_strategy(shape)
        attempts: List[PriceAttempt] = []

        response = self._apply(listing_id, shape, strategy, price)
        attempts.append(PriceAttempt(strategy=strategy, ok=response.ok, status_code=response.status_code, error=response.error))
        if response.ok:
            logger.info(f"[Price] {listing_id}: updated via {strategy.value}")
            return PriceUpdateResult(listing_id=listing_id, price=price, strategy=strategy, attempts=attempts)

        kind = rejection_kind(response.data, response.status_code)
        logger.warning(f"[Price] {listing_id}: {strategy.value} rejected ({kind.value}): {response.error}")

        if strategy == PriceStrategy.PER_VARIATION and kind in FALLBACK_KINDS:
            strategy = PriceStrategy.ROOT
            response = self._apply(listing_id, shape, strategy, price)
            attempts.append(PriceAttempt(strategy=strategy, ok=response.ok, status_code=response.status_code, error=response.error))
            if response.ok:
                logger.info(f"[Price] {listing_id}: updated via root fallback")
                return PriceUpdateResult(listing_id=listing_id, price=price, strategy=strategy, attempts=attempts)
            logger.warning(f"[Price] {listing_id}: root fallback rejected: {response.error}")

        classified = classify(listing, response.data, response.status_code, response.error)
        logger.error(f"[Price] {listing_id}: giving up after {len(attempts)} attempt(s), reason={classified.reason.value}")
        raise PriceUpdateError(listing_id, classified, attempts=attempts)
