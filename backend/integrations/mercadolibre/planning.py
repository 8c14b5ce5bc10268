"""
Listing plan builder - expands one ListingIntent into concrete ListingJobs.

Pure and deterministic: the same inputs always produce the same jobs in the
same order (primary tier first, catalog before traditional within a tier).
"""

import logging
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from .entities import (
    Attribute,
    CatalogProduct,
    ListingFormat,
    ListingIntent,
    ListingJob,
    SkippedJob,
    Tier,
)
from .errors import CategoryUnresolvedError

logger = logging.getLogger(__name__)

GTIN_ATTRIBUTE_ID = "GTIN"
CATALOG_REQUIRED_SKIP_REASON = (
    "Product requires catalog listings (catalog_required); traditional listing not created"
)


class ListingPlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    jobs: List[ListingJob] = Field(default_factory=list)
    skipped: List[SkippedJob] = Field(default_factory=list)


def job_label(listing_format: ListingFormat, tier: Tier) -> str:
    """Human label echoed back in results, e.g. 'Catalog (Classic)'."""
    return f"{listing_format.label} ({tier.label})"


def plan_tiers(intent: ListingIntent) -> List[Tier]:
    """Primary tier first, the other tier second when requested."""
    tiers = [intent.tier]
    if intent.create_other_tier:
        tiers.append(intent.tier.other)
    return tiers


def _gtin_attributes(intent: ListingIntent) -> Optional[List[Attribute]]:
    if not intent.ean:
        return None
    return [Attribute(id=GTIN_ATTRIBUTE_ID, value_name=intent.ean)]


def build_plan(
    intent: ListingIntent,
    category_id: Optional[str],
    product: CatalogProduct,
    catalog_required: bool
) -> ListingPlan:
    """
    Build the ordered job list for a publish request.

    Args:
        intent: Seller request
        category_id: Resolved category (must be non-empty)
        product: Fetched catalog product (title/pictures for traditional jobs)
        catalog_required: Suppress traditional jobs when True

    Returns:
        ListingPlan with jobs and recorded skips

    Raises:
        CategoryUnresolvedError: category_id is empty
    """
    if not category_id:
        raise CategoryUnresolvedError(
            f"Could not determine a category for catalog product {product.id}; no listing was created"
        )

    attributes = _gtin_attributes(intent)
    jobs: List[ListingJob] = []
    skipped: List[SkippedJob] = []

    for tier in plan_tiers(intent):
        if intent.format.wants_catalog:
            jobs.append(ListingJob(
                label=job_label(ListingFormat.CATALOG, tier),
                category_id=category_id,
                price=intent.price,
                stock=intent.stock,
                tier=tier,
                format=ListingFormat.CATALOG,
                catalog_product_id=product.id,
                attributes=attributes,
            ))

        if intent.format.wants_traditional:
            label = job_label(ListingFormat.TRADITIONAL, tier)
            if catalog_required:
                logger.info(f"[Plan] Skipping '{label}' for {product.id}: catalog_required")
                skipped.append(SkippedJob(label=label, reason=CATALOG_REQUIRED_SKIP_REASON))
                continue

            jobs.append(ListingJob(
                label=label,
                category_id=category_id,
                price=intent.price,
                stock=intent.stock,
                tier=tier,
                format=ListingFormat.TRADITIONAL,
                catalog_product_id=product.id,
                title=product.name,
                pictures=list(product.pictures),
                attributes=attributes,
            ))

    logger.info(
        f"[Plan] {product.id}: {len(jobs)} job(s) {[j.label for j in jobs]}, {len(skipped)} skipped"
    )
    return ListingPlan(jobs=jobs, skipped=skipped)
