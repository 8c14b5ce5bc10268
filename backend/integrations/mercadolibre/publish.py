"""
Mercado Livre publish flow: resolve category, build the plan, create listings.

Publishing is best-effort per job. A failure on one job (network, validation,
auth) becomes a failure result for that job and the remaining jobs are still
attempted. Results always follow job order.
"""
import logging
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from .client import MeliClient
from .categories import CategoryResolver
from .entities import ListingCreationResult, ListingIntent, ListingJob, SkippedJob
from .errors import CategoryUnresolvedError
from .mapping import build_item_payload
from .planning import build_plan

logger = logging.getLogger(__name__)


class PublishTally(BaseModel):
    model_config = ConfigDict(frozen=True)

    created: List[ListingCreationResult] = Field(default_factory=list)
    errors: List[ListingCreationResult] = Field(default_factory=list)


class PublishOutcome(PublishTally):
    """Tally plus the planning context the caller may want to show."""
    skipped: List[SkippedJob] = Field(default_factory=list)
    product_id: str
    category_id: str
    category_source: Optional[str] = None
    catalog_required: bool = False


def tally(results: List[ListingCreationResult]) -> PublishTally:
    """Split ordered results into created/errors, keeping relative order."""
    return PublishTally(
        created=[r for r in results if r.ok],
        errors=[r for r in results if not r.ok],
    )


class ListingPublisher:
    """Submits ListingJobs to POST /items."""

    def __init__(self, client: MeliClient):
        self.client = client

    def publish_job(self, job: ListingJob) -> ListingCreationResult:
        """Submit one job; never raises."""
        try:
            payload = build_item_payload(job, currency_id=self.client.currency_id)
            logger.info(f"[Publish] Creating '{job.label}' category={job.category_id} tier={job.tier.value}")
            response = self.client.create_item(payload)
        except Exception as e:
            logger.error(f"[Publish] '{job.label}' failed before submission: {e}", exc_info=True)
            return ListingCreationResult.failed(job.label, f"Unexpected error: {str(e)}")

        if not response.ok:
            logger.error(f"[Publish] '{job.label}' rejected: {response.error}")
            return ListingCreationResult.failed(
                job.label,
                response.error or "Listing creation failed",
                status_code=response.status_code,
            )

        data = response.data if isinstance(response.data, dict) else {}
        item_id = data.get("id")
        logger.info(f"[Publish] '{job.label}' created item_id={item_id}")
        return ListingCreationResult.created(job.label, item_id, data.get("permalink"))

    def publish(self, jobs: List[ListingJob]) -> List[ListingCreationResult]:
        """Submit every job sequentially; one result per job, in job order."""
        results: List[ListingCreationResult] = []
        for job in jobs:
            results.append(self.publish_job(job))
        return results


def publish_listings(client: MeliClient, intent: ListingIntent) -> PublishOutcome:
    """
    Turn a seller intent into live listings.

    Raises:
        AuthenticationRequiredError: no valid token
        CatalogProductNotFoundError: product fetch failed (before any mutation)
        CategoryUnresolvedError: no category found (before any mutation)
    """
    client.ensure_authenticated()

    resolution = CategoryResolver(client).resolve(intent.product_id)
    if not resolution.resolved:
        raise CategoryUnresolvedError(
            f"Could not determine a category for catalog product {intent.product_id}; no listing was created"
        )

    if resolution.catalog_required:
        logger.info(f"[Publish] {intent.product_id} is catalog_required; traditional listings will be skipped")

    plan = build_plan(intent, resolution.category_id, resolution.product, resolution.catalog_required)
    results = ListingPublisher(client).publish(plan.jobs)
    summary = tally(results)

    logger.info(
        f"[Publish] {intent.product_id}: {len(summary.created)} created, "
        f"{len(summary.errors)} failed, {len(plan.skipped)} skipped"
    )
    return PublishOutcome(
        created=summary.created,
        errors=summary.errors,
        skipped=plan.skipped,
        product_id=intent.product_id,
        category_id=resolution.category_id,
        category_source=resolution.source,
        catalog_required=resolution.catalog_required,
    )
