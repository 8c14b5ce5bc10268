"""
Category resolution for catalog products.

Catalog products rarely carry a category id, but a listing cannot be created
without one. The resolver walks an ordered list of progressively weaker
signals and stops at the first one that yields a category:

    product    -> category_id on the catalog product itself
    domain     -> first category of the product's catalog domain
    search     -> category of the first search hit for the product title
    predictor  -> category predicted from the product title

A failing step (network error, non-2xx, unexpected body) is logged and counts
as "no signal"; only a product that cannot be fetched at all is fatal.
"""

import logging
from typing import Callable, List, Optional, Tuple
from pydantic import BaseModel, ConfigDict

from .client import MeliClient, first_result
from .entities import CatalogProduct
from .errors import CatalogProductNotFoundError

logger = logging.getLogger(__name__)

Attempt = Callable[[CatalogProduct], Optional[str]]


class CategoryResolution(BaseModel):
    """Result of a resolution run; category_id None means Unresolved."""
    model_config = ConfigDict(frozen=True)

    product: CatalogProduct
    category_id: Optional[str] = None
    source: Optional[str] = None

    @property
    def resolved(self) -> bool:
        return bool(self.category_id)

    @property
    def catalog_required(self) -> bool:
        return self.product.catalog_required


class CategoryResolver:
    """Resolves the best-known category for a catalog product."""

    def __init__(self, client: MeliClient):
        self.client = client

    def steps(self) -> List[Tuple[str, Attempt]]:
        """Ordered resolution cascade."""
        return [
            ("product", self._from_product),
            ("domain", self._from_domain),
            ("search", self._from_search),
            ("predictor", self._from_predictor),
        ]

    def fetch_product(self, product_id: str) -> CatalogProduct:
        """
        Fetch and parse a catalog product.

        Raises:
            CatalogProductNotFoundError: product could not be fetched or parsed
        """
        response = self.client.get_product(product_id)
        if not response.ok or not isinstance(response.data, dict):
            raise CatalogProductNotFoundError(
                f"Failed to fetch catalog product {product_id}: {response.error or 'empty response'}"
            )
        try:
            return CatalogProduct.from_api(response.data)
        except (KeyError, ValueError) as e:
            raise CatalogProductNotFoundError(f"Catalog product {product_id} has an unexpected shape: {e}")

    def resolve(self, product_id: str) -> CategoryResolution:
        """Fetch the product and run the cascade against it."""
        product = self.fetch_product(product_id)
        return self.resolve_for(product)

    def resolve_for(self, product: CatalogProduct) -> CategoryResolution:
        """Run the cascade for an already fetched product."""
        for name, attempt in self.steps():
            try:
                category_id = attempt(product)
            except Exception as e:
                logger.warning(f"[Category] Step '{name}' failed for {product.id}: {e}", exc_info=True)
                continue

            if category_id:
                logger.info(f"[Category] {product.id} -> {category_id} (via {name})")
                return CategoryResolution(product=product, category_id=str(category_id), source=name)
            logger.info(f"[Category] Step '{name}' gave no category for {product.id}")

        logger.error(f"[Category] Could not resolve a category for {product.id}")
        return CategoryResolution(product=product)

    def _from_product(self, product: CatalogProduct) -> Optional[str]:
        return product.category_id

    def _from_domain(self, product: CatalogProduct) -> Optional[str]:
        if not product.domain_id:
            return None
        response = self.client.get_domain_categories(product.domain_id)
        if not response.ok:
            logger.warning(f"[Category] Domain lookup failed for {product.domain_id}: {response.error}")
            return None
        first = first_result(response.data)
        return first.get("id") if isinstance(first, dict) else None

    def _from_search(self, product: CatalogProduct) -> Optional[str]:
        if not product.name:
            return None
        response = self.client.search_items(product.name, limit=1)
        if not response.ok:
            logger.warning(f"[Category] Search failed for '{product.name}': {response.error}")
            return None
        first = first_result(response.data)
        return first.get("category_id") if isinstance(first, dict) else None

    def _from_predictor(self, product: CatalogProduct) -> Optional[str]:
        if not product.name:
            return None
        response = self.client.predict_category(product.name, limit=1)
        if not response.ok:
            logger.warning(f"[Category] Prediction failed for '{product.name}': {response.error}")
            return None
        first = first_result(response.data)
        return first.get("category_id") if isinstance(first, dict) else None
