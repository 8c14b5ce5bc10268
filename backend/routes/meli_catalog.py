"""
Mercado Livre Catalog Routes - Catalog search and product inspection.
"""

import logging
from typing import Any, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from integrations.mercadolibre.categories import CategoryResolver
from integrations.mercadolibre.client import MeliClient
from integrations.mercadolibre.entities import CatalogProduct
from integrations.mercadolibre.errors import MeliError
from routes.deps import get_meli_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/meli/catalog", tags=["meli-catalog"])


class CatalogSearchResponse(BaseModel):
    results: List[Any] = []


class CatalogProductResponse(BaseModel):
    product: CatalogProduct
    category_id: Optional[str] = None
    category_source: Optional[str] = None
    catalog_required: bool = False


@router.get("/search", response_model=CatalogSearchResponse)
async def search_catalog(
    q: Optional[str] = Query(None, description="EAN/GTIN or free text"),
    client: MeliClient = Depends(get_meli_client)
):
    """Search the catalog; results are returned as the platform sends them."""
    if not q or not q.strip():
        raise HTTPException(status_code=400, detail="Query (EAN/GTIN) required")

    try:
        client.ensure_authenticated()
    except MeliError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    response = client.search_catalog_products(q)
    if not response.ok:
        logger.error(f"[Catalog] Search failed for '{q}': {response.error}")
        raise HTTPException(status_code=502, detail=response.error or "Catalog search failed")

    data = response.data if isinstance(response.data, dict) else {}
    return CatalogSearchResponse(results=data.get("results") or [])


@router.get("/products/{product_id}", response_model=CatalogProductResponse)
async def get_catalog_product(
    product_id: str,
    client: MeliClient = Depends(get_meli_client)
):
    """Catalog product with the category a publish request would use."""
    try:
        client.ensure_authenticated()
        resolution = CategoryResolver(client).resolve(product_id)
    except MeliError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return CatalogProductResponse(
        product=resolution.product,
        category_id=resolution.category_id,
        category_source=resolution.source,
        catalog_required=resolution.catalog_required,
    )
