"""
Mercado Livre errors and the seller-facing error classifier.

The same HTTP status (usually 400 or 403) covers very different situations:
a listing in a promotion, a catalog listing whose price the platform owns, a
suspended listing, a listing waiting for a mandatory fix. `classify` looks at
the listing's sub-status and tags as well as the error payload and returns a
reason the UI can render without knowing anything about the platform.
"""

import logging
import re
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Pattern, Tuple
from pydantic import BaseModel, ConfigDict

from .entities import Listing

logger = logging.getLogger(__name__)


class MeliError(Exception):
    """Base exception for Mercado Livre integration errors"""
    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code

    @property
    def message(self) -> str:
        return self.args[0]


class AuthenticationRequiredError(MeliError):
    """No valid bearer token available (401)"""
    status_code = 401


class CatalogProductNotFoundError(MeliError):
    """Catalog product could not be fetched (400)"""
    status_code = 400


class CategoryUnresolvedError(MeliError):
    """Every category signal was exhausted (400)"""
    status_code = 400


class FriendlyReason(str, Enum):
    PRICE_POLICY_LOCKED = "price-policy-locked"
    CATALOG_MANAGED = "catalog-managed"
    SUSPENDED_OR_BANNED = "suspended-or-banned"
    PENDING_CORRECTION = "pending-correction"
    GENERIC_POLICY = "generic-policy"
    UNKNOWN = "unknown"


class RejectionKind(str, Enum):
    STRUCTURAL = "structural"  # wrong update shape for this listing
    POLICY = "policy"          # platform refuses the change
    TRANSPORT = "transport"    # no HTTP answer (network, timeout)
    OTHER = "other"


# Listing signals
SUSPENDED_SUB_STATUSES = {"suspended", "banned", "forbidden", "held", "freezed"}
PENDING_SUB_STATUSES = {"waiting_for_patch", "pending_documentation", "under_review", "picture_download_pending"}
PROMOTION_TAGS = {
    "campaign_related",
    "deal_of_the_day",
    "lightning_deal",
    "price_campaign",
    "promotion",
}
CATALOG_TAGS = {"catalog_listing"}

# Payload signals. Markers are matched against the error code and cause codes
# as whole tokens, where "." "_" and "-" separate tokens; free-text messages
# are not inspected.
STRUCTURAL_ERRORS = {"validation_error", "body.invalid_fields", "bad_request", "invalid_fields"}
STRUCTURAL_CAUSE_MARKERS = ("variations?", r"body\.invalid", r"item\.price\.invalid", "invalid_fields?")
POLICY_ERRORS = {"forbidden", "policy_agreement", "not_modifiable", "unauthorized_action"}
POLICY_CAUSE_MARKERS = ("not_modifiable", "forbidden", "polic(?:y|ies)", "not_allowed", "restricted")
PROMOTION_CAUSE_MARKERS = ("promotions?", "campaigns?", "deals?")

ADVICE = {
    FriendlyReason.SUSPENDED_OR_BANNED: (
        "The listing is suspended or banned by Mercado Livre. Resolve the infraction in the seller panel before changing the price."
    ),
    FriendlyReason.PENDING_CORRECTION: (
        "The listing is waiting for a mandatory correction. Apply the requested fix in the seller panel, then try again."
    ),
    FriendlyReason.PRICE_POLICY_LOCKED: (
        "The listing takes part in a promotion or campaign and its price is locked. Leave the campaign to change the price."
    ),
    FriendlyReason.CATALOG_MANAGED: (
        "This is a catalog listing; its price is controlled by the catalog competition rules. Adjust it from the catalog page."
    ),
    FriendlyReason.GENERIC_POLICY: (
        "Mercado Livre refused the change because of a listing policy."
    ),
}


class ClassifiedError(BaseModel):
    model_config = ConfigDict(frozen=True)

    reason: FriendlyReason
    message: str
    raw_message: Optional[str] = None
    status_code: Optional[int] = None


def _causes(error_payload: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    if not isinstance(error_payload, dict):
        return []
    causes = error_payload.get("cause") or []
    if isinstance(causes, dict):
        causes = [causes]
    return [c for c in causes if isinstance(c, dict)]


def _payload_markers(error_payload: Optional[Dict[str, Any]]) -> List[str]:
    """Lower-cased error code and cause codes."""
    markers = []
    if isinstance(error_payload, dict) and error_payload.get("error"):
        markers.append(str(error_payload["error"]).lower())
    for cause in _causes(error_payload):
        if cause.get("code"):
            markers.append(str(cause["code"]).lower())
    return markers


def _marker_pattern(needles: Tuple[str, ...]) -> Pattern:
    # "_" counts as a separator, so "not_modifiable" matches "field_not_modifiable"
    return re.compile(r"(?<![a-z0-9])(?:%s)(?![a-z0-9])" % "|".join(needles))


_STRUCTURAL_PATTERN = _marker_pattern(STRUCTURAL_CAUSE_MARKERS)
_POLICY_PATTERN = _marker_pattern(POLICY_CAUSE_MARKERS)
_PROMOTION_PATTERN = _marker_pattern(PROMOTION_CAUSE_MARKERS)


def _has_marker(markers: Iterable[str], pattern: Pattern) -> bool:
    return any(pattern.search(marker) for marker in markers)


def raw_message(error_payload: Optional[Dict[str, Any]], fallback: Optional[str] = None) -> Optional[str]:
    """Platform message plus cause messages, as the platform wrote them."""
    if not isinstance(error_payload, dict):
        return fallback
    parts = []
    if error_payload.get("message"):
        parts.append(str(error_payload["message"]))
    for cause in _causes(error_payload):
        if cause.get("message") and cause["message"] not in parts:
            parts.append(str(cause["message"]))
    return "; ".join(parts) if parts else fallback


def rejection_kind(error_payload: Optional[Dict[str, Any]], status_code: Optional[int]) -> RejectionKind:
    """Coarse class of a rejected call, used to decide on a strategy fallback."""
    if status_code is None:
        return RejectionKind.TRANSPORT

    markers = _payload_markers(error_payload)
    error_code = None
    if isinstance(error_payload, dict) and error_payload.get("error"):
        error_code = str(error_payload["error"]).lower()

    if status_code == 403 or error_code in POLICY_ERRORS or _has_marker(markers, _POLICY_PATTERN):
        return RejectionKind.POLICY
    if status_code in (400, 422) and (error_code in STRUCTURAL_ERRORS or _has_marker(markers, _STRUCTURAL_PATTERN)):
        return RejectionKind.STRUCTURAL
    return RejectionKind.OTHER


def classify(
    listing: Optional[Listing],
    error_payload: Optional[Dict[str, Any]],
    status_code: Optional[int] = None,
    fallback_message: Optional[str] = None
) -> ClassifiedError:
    """
    Map a rejected update into a seller-facing reason.

    Priority (first match wins): suspended-or-banned, pending-correction,
    price-policy-locked, catalog-managed, generic-policy, unknown.

    Args:
        listing: The listing the call was made against (None if it could not be fetched)
        error_payload: Parsed error body returned by the platform
        status_code: HTTP status of the rejection (None for transport failures)
        fallback_message: Message to use when the payload carries none

    Returns:
        ClassifiedError with reason, advice message and the raw platform message
    """
    raw = raw_message(error_payload, fallback_message)
    markers = _payload_markers(error_payload)

    sub_status = {s.lower() for s in listing.sub_status} if listing else set()
    tags = {t.lower() for t in listing.tags} if listing else set()

    if sub_status & SUSPENDED_SUB_STATUSES:
        reason = FriendlyReason.SUSPENDED_OR_BANNED
    elif sub_status & PENDING_SUB_STATUSES:
        reason = FriendlyReason.PENDING_CORRECTION
    elif tags & PROMOTION_TAGS or _has_marker(markers, _PROMOTION_PATTERN):
        reason = FriendlyReason.PRICE_POLICY_LOCKED
    elif tags & CATALOG_TAGS or (listing is not None and listing.catalog_listing):
        reason = FriendlyReason.CATALOG_MANAGED
    elif rejection_kind(error_payload, status_code) == RejectionKind.POLICY:
        reason = FriendlyReason.GENERIC_POLICY
    else:
        reason = FriendlyReason.UNKNOWN

    if reason == FriendlyReason.UNKNOWN:
        message = raw or "Mercado Livre rejected the request"
    elif reason == FriendlyReason.GENERIC_POLICY and raw:
        message = f"{ADVICE[reason]} ({raw})"
    else:
        message = ADVICE[reason]

    logger.info(
        f"[Classifier] listing={listing.id if listing else None} status={status_code} "
        f"reason={reason.value} raw={raw!r}"
    )
    return ClassifiedError(reason=reason, message=message, raw_message=raw, status_code=status_code)


class PriceUpdateError(MeliError):
    """Terminal price update failure with its classified reason (422)"""
    status_code = 422

    def __init__(
        self,
        listing_id: str,
        classified: ClassifiedError,
        attempts: Optional[list] = None,
        status_code: Optional[int] = None
    ):
        super().__init__(classified.message, status_code)
        self.listing_id = listing_id
        self.classified = classified
        self.attempts = attempts or []

    @property
    def reason(self) -> FriendlyReason:
        return self.classified.reason

    def __str__(self) -> str:
        return f"Price update failed for {self.listing_id} ({self.reason.value}): {self.message}"
