"""
Mercado Livre Pricing Routes - Price updates, fee quotes and item lookup.
"""

import logging
from decimal import Decimal
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from integrations.mercadolibre.client import MeliClient
from integrations.mercadolibre.entities import FeeQuote, Tier
from integrations.mercadolibre.errors import MeliError, PriceUpdateError
from integrations.mercadolibre.fees import get_fee_quote
from integrations.mercadolibre.lookup import find_item_id_by_sku
from integrations.mercadolibre.pricing import PriceAttempt, PriceReconciler, PriceStrategy
from routes.deps import get_meli_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/meli", tags=["meli-pricing"])

WHOLESALE_NOTE = (
    "The main price was updated. Wholesale (business) prices are not changed by this "
    "endpoint and must be checked in the seller panel."
)


class PriceUpdateRequest(BaseModel):
    """Request body for a price update."""
    new_price: Decimal = Field(gt=0)
    wholesale_price: Optional[Decimal] = Field(default=None, gt=0)


class PriceUpdateResponse(BaseModel):
    """Response for a successful price update."""
    success: bool = True
    item_id: str
    price: Decimal
    strategy: PriceStrategy
    attempts: List[PriceAttempt] = []
    message: Optional[str] = None


class ItemLookupResponse(BaseModel):
    sku: str
    item_id: str


def _price_error_detail(e: PriceUpdateError) -> dict:
    return {
        "item_id": e.listing_id,
        "reason": e.reason.value,
        "message": e.message,
        "raw_message": e.classified.raw_message,
        "platform_status": e.classified.status_code,
        "attempts": [a.model_dump(mode="json") for a in e.attempts],
    }


@router.post("/items/{item_id}/price", response_model=PriceUpdateResponse)
async def update_listing_price(
    item_id: str,
    request: PriceUpdateRequest,
    client: MeliClient = Depends(get_meli_client)
):
    """
    Update the price of an existing listing.

    Listings with variations get the new price on every variation; flat
    listings get it on the root price. A rejected variation write is retried
    once as a root write. Terminal failures return 422 (404 for unknown items)
    with a seller-facing `reason`.
    """
    try:
        client.ensure_authenticated()
        result = PriceReconciler(client).update_price(item_id, request.new_price)
    except PriceUpdateError as e:
        logger.warning(f"[Price] {e}")
        raise HTTPException(status_code=e.status_code, detail=_price_error_detail(e))
    except MeliError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to update price for {item_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to update price: {str(e)}")

    message = "Price updated on Mercado Livre."
    if request.wholesale_price is not None:
        logger.info(f"[Price] Wholesale price {request.wholesale_price} requested for {item_id}; not applied")
        message = f"{message} {WHOLESALE_NOTE}"

    return PriceUpdateResponse(
        item_id=result.listing_id,
        price=result.price,
        strategy=result.strategy,
        attempts=result.attempts,
        message=message,
    )


@router.get("/fees", response_model=FeeQuote)
async def get_fees(
    price: Decimal = Query(..., gt=0, description="Sale price"),
    tier: Tier = Query(Tier.CLASSIC, description="classic or premium"),
    category_id: str = Query(..., min_length=1, description="Category id, e.g. MLB1000"),
    client: MeliClient = Depends(get_meli_client)
):
    """Sale fee (percentage and fixed component) for a price, tier and category."""
    try:
        client.ensure_authenticated()
        return get_fee_quote(client, price, tier, category_id)
    except MeliError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/items/by-sku/{sku}", response_model=ItemLookupResponse)
async def get_item_by_sku(
    sku: str,
    client: MeliClient = Depends(get_meli_client)
):
    """Find the seller's item id for one of their SKUs."""
    try:
        client.ensure_authenticated()
    except MeliError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    seller_id = client.get_user_id()
    if not seller_id:
        raise HTTPException(status_code=401, detail="Seller id unknown. Set MELI_SELLER_ID or re-authorize.")

    item_id = find_item_id_by_sku(client, seller_id, sku)
    if not item_id:
        raise HTTPException(status_code=404, detail=f"No item found for SKU {sku}")
    return ItemLookupResponse(sku=sku, item_id=item_id)
