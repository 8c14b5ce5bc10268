"""
Find a seller's item id from their own SKU.

Tried in order, first hit wins; a failing step is logged and skipped:
1. seller items search filtered by sku
2. site search restricted to the seller, sku as free text
3. seller items search with sku as free text
"""

import logging
from typing import Callable, List, Optional, Tuple

from .client import MeliClient, first_result

logger = logging.getLogger(__name__)


def _result_id(result) -> Optional[str]:
    # User item search returns bare ids, site search returns item objects
    if isinstance(result, dict):
        return result.get("id")
    if isinstance(result, str):
        return result
    return None


def find_item_id_by_sku(client: MeliClient, seller_id: str, sku: str) -> Optional[str]:
    steps: List[Tuple[str, Callable]] = [
        ("seller_sku", lambda: client.search_user_items(seller_id, sku=sku)),
        ("site_search", lambda: client.search_items(sku, limit=1, seller_id=seller_id)),
        ("seller_query", lambda: client.search_user_items(seller_id, query=sku)),
    ]

    for name, attempt in steps:
        try:
            response = attempt()
        except Exception as e:
            logger.warning(f"[Lookup] Step '{name}' raised for sku={sku}: {e}")
            continue

        if not response.ok:
            logger.warning(f"[Lookup] Step '{name}' failed for sku={sku}: {response.error}")
            continue

        item_id = _result_id(first_result(response.data))
        if item_id:
            logger.info(f"[Lookup] sku={sku} -> {item_id} (via {name})")
            return item_id

    logger.info(f"[Lookup] No item found for sku={sku}")
    return None
