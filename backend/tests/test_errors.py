"""
Error Classifier Tests

Tests for mapping marketplace rejections to seller-facing reasons.
"""

import pytest

from integrations.mercadolibre.entities import Listing
from integrations.mercadolibre.errors import (
    ADVICE,
    FriendlyReason,
    RejectionKind,
    classify,
    raw_message,
    rejection_kind,
)


def make_listing(**overrides):
    data = {"id": "MLB777", "price": 80, "status": "active", "sub_status": [], "tags": []}
    data.update(overrides)
    return Listing.from_api(data)


GENERIC_REJECTION = {"message": "Cannot update item", "error": "bad_request", "status": 400, "cause": []}


class TestClassify:
    """Reason selection from listing signals and the error payload."""

    def test_catalog_tag(self):
        listing = make_listing(tags=["catalog_listing"])

        classified = classify(listing, GENERIC_REJECTION, 400)

        assert classified.reason == FriendlyReason.CATALOG_MANAGED
        assert classified.message == ADVICE[FriendlyReason.CATALOG_MANAGED]
        assert classified.raw_message == "Cannot update item"

    def test_catalog_listing_flag(self):
        classified = classify(make_listing(catalog_listing=True), GENERIC_REJECTION, 400)

        assert classified.reason == FriendlyReason.CATALOG_MANAGED

    def test_suspended_takes_precedence(self):
        listing = make_listing(sub_status=["suspended"], tags=["catalog_listing", "deal_of_the_day"])

        classified = classify(listing, GENERIC_REJECTION, 400)

        assert classified.reason == FriendlyReason.SUSPENDED_OR_BANNED

    @pytest.mark.parametrize("sub_status", ["banned", "forbidden", "held"])
    def test_suspended_variants(self, sub_status):
        classified = classify(make_listing(sub_status=[sub_status]), GENERIC_REJECTION, 400)

        assert classified.reason == FriendlyReason.SUSPENDED_OR_BANNED

    def test_pending_correction(self):
        listing = make_listing(sub_status=["waiting_for_patch"], tags=["catalog_listing"])

        classified = classify(listing, GENERIC_REJECTION, 400)

        assert classified.reason == FriendlyReason.PENDING_CORRECTION

    def test_promotion_tag(self):
        listing = make_listing(tags=["deal_of_the_day", "catalog_listing"])

        classified = classify(listing, GENERIC_REJECTION, 400)

        assert classified.reason == FriendlyReason.PRICE_POLICY_LOCKED

    def test_promotion_cause(self):
        payload = {
            "message": "Item is part of a campaign",
            "error": "bad_request",
            "cause": [{"code": "item.price.campaign_active", "message": "Price locked by campaign"}],
        }

        classified = classify(make_listing(), payload, 400)

        assert classified.reason == FriendlyReason.PRICE_POLICY_LOCKED

    def test_generic_policy_keeps_raw_message(self):
        payload = {"message": "Action not allowed for this seller", "error": "forbidden"}

        classified = classify(make_listing(), payload, 403)

        assert classified.reason == FriendlyReason.GENERIC_POLICY
        assert "Action not allowed for this seller" in classified.message

    def test_unknown_passes_raw_message_through(self):
        classified = classify(make_listing(), GENERIC_REJECTION, 400)

        assert classified.reason == FriendlyReason.UNKNOWN
        assert classified.message == "Cannot update item"

    @pytest.mark.parametrize("tags", [
        ["good_quality_picture", "loyalty_discount_eligible", "immediate_payment", "cart_eligible"],
        ["catalog_product_candidate_required"],
    ])
    def test_ordinary_tags_do_not_change_reason(self, tags):
        """Eligibility and candidate tags say nothing about who controls the price."""
        payload = {
            "message": "Validation error",
            "error": "validation_error",
            "cause": [{"code": "item.price.invalid", "message": "Invalid price"}],
        }

        classified = classify(make_listing(tags=tags), payload, 400)

        assert classified.reason == FriendlyReason.UNKNOWN
        assert classified.message == "Validation error; Invalid price"

    def test_cause_message_words_are_not_signals(self):
        payload = {
            "message": "Cannot update item",
            "error": "bad_request",
            "cause": [{"code": "item.price.range", "message": "The ideal price range was exceeded"}],
        }

        classified = classify(make_listing(), payload, 400)

        assert classified.reason == FriendlyReason.UNKNOWN

    def test_policy_word_in_message_is_not_a_policy_rejection(self):
        payload = {
            "message": "Check our pricing policy",
            "error": "bad_request",
            "cause": [{"code": "item.price.invalid", "message": "See the policy page"}],
        }

        assert classify(make_listing(), payload, 400).reason == FriendlyReason.UNKNOWN
        assert rejection_kind(payload, 400) == RejectionKind.STRUCTURAL

    def test_no_listing_no_payload(self):
        classified = classify(None, None, None, fallback_message="Request timed out after 30.0s")

        assert classified.reason == FriendlyReason.UNKNOWN
        assert classified.message == "Request timed out after 30.0s"
        assert classified.status_code is None


class TestRejectionKind:
    """Coarse rejection classes used for the fallback decision."""

    def test_transport(self):
        assert rejection_kind(None, None) == RejectionKind.TRANSPORT

    def test_structural(self):
        payload = {"error": "validation_error", "cause": [{"code": "item.variations.invalid"}]}
        assert rejection_kind(payload, 400) == RejectionKind.STRUCTURAL

    def test_structural_by_cause_only(self):
        payload = {"error": "some_error", "cause": [{"code": "item.price.invalid"}]}
        assert rejection_kind(payload, 400) == RejectionKind.STRUCTURAL

    def test_policy_by_status(self):
        assert rejection_kind({}, 403) == RejectionKind.POLICY

    def test_policy_by_cause(self):
        payload = {"error": "bad_request", "cause": [{"code": "field_not_modifiable"}]}
        assert rejection_kind(payload, 400) == RejectionKind.POLICY

    def test_markers_match_whole_tokens(self):
        assert rejection_kind({"error": "x", "cause": [{"code": "item.policy_agreement.required"}]}, 400) == RejectionKind.POLICY
        assert rejection_kind({"error": "x", "cause": [{"code": "item.invariation"}]}, 400) == RejectionKind.OTHER
        assert classify(make_listing(), {"error": "x", "cause": [{"code": "item.ideal_range"}]}, 400).reason == FriendlyReason.UNKNOWN

    def test_other(self):
        assert rejection_kind({"error": "internal_error"}, 500) == RejectionKind.OTHER
        assert rejection_kind({"error": "validation_error"}, 500) == RejectionKind.OTHER


def test_raw_message_joins_causes():
    payload = {"message": "Validation error", "cause": [{"message": "price invalid"}, {"message": "price invalid"}]}

    assert raw_message(payload) == "Validation error; price invalid"
    assert raw_message("not a dict", "fallback") == "fallback"
