"""
Mercado Livre Publishing Routes - Turn a catalog product into live listings.
"""

import logging
from fastapi import APIRouter, Depends, HTTPException

from integrations.mercadolibre.client import MeliClient
from integrations.mercadolibre.entities import ListingIntent
from integrations.mercadolibre.errors import MeliError
from integrations.mercadolibre.publish import PublishOutcome, publish_listings
from routes.deps import get_meli_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/meli/listings", tags=["meli-publish"])


@router.post("", response_model=PublishOutcome)
async def publish_listings_endpoint(
    intent: ListingIntent,
    client: MeliClient = Depends(get_meli_client)
):
    """
    Publish a catalog product as one or more listings.

    Creates up to four listings (classic/premium x catalog/traditional).
    Each listing succeeds or fails on its own; the response lists every
    requested listing exactly once under `created` or `errors`, plus the
    traditional listings skipped because the product is catalog_required.

    Returns 400 when the product or its category cannot be resolved (nothing
    is created in that case) and 401 without a valid Mercado Livre token.
    """
    try:
        return publish_listings(client, intent)
    except MeliError as e:
        logger.warning(f"[Publish] {intent.product_id} refused: {e.message}")
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Failed to publish {intent.product_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to publish listings: {str(e)}")
