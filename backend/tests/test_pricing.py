"""
Price Reconciliation Tests

Tests for strategy selection, payload shape and the single root fallback.
"""

import pytest
from decimal import Decimal
from unittest.mock import MagicMock

from integrations.mercadolibre.client import ApiResponse
from integrations.mercadolibre.entities import FlatListing, Listing, VariatedListing, resolve_shape
from integrations.mercadolibre.errors import FriendlyReason, PriceUpdateError
from integrations.mercadolibre.pricing import PriceReconciler, PriceStrategy, select_strategy


def ok(data):
    return ApiResponse(True, data, 200, None)


def rejected(status, body):
    return ApiResponse(False, body, status, f"Error {status}")


def listing_body(**overrides):
    body = {
        "id": "MLB777",
        "price": 80,
        "currency_id": "BRL",
        "listing_type_id": "gold_special",
        "status": "active",
        "sub_status": [],
        "tags": [],
        "variations": [],
    }
    body.update(overrides)
    return body


VARIATIONS = [{"id": 1001, "price": 80}, {"id": 1002, "price": 80}, {"id": 1003, "price": 85}]

STRUCTURAL_REJECTION = {
    "message": "Validation error",
    "error": "validation_error",
    "status": 400,
    "cause": [{"code": "item.variations.price.invalid", "message": "variation price not allowed"}],
}


@pytest.fixture
def meli_client():
    client = MagicMock()
    client.get_item.return_value = ok(listing_body())
    client.update_item.return_value = ok({"id": "MLB777"})
    return client


class TestStrategySelection:
    """Shape resolution and first strategy."""

    def test_flat_listing(self):
        shape = resolve_shape(Listing.from_api(listing_body()))

        assert isinstance(shape, FlatListing)
        assert select_strategy(shape) == PriceStrategy.ROOT

    def test_variated_listing(self):
        shape = resolve_shape(Listing.from_api(listing_body(variations=VARIATIONS)))

        assert isinstance(shape, VariatedListing)
        assert len(shape.variations) == 3
        assert select_strategy(shape) == PriceStrategy.PER_VARIATION


class TestPriceUpdate:
    """Test PriceReconciler.update_price."""

    def test_variations_all_get_new_price(self, meli_client):
        meli_client.get_item.return_value = ok(listing_body(variations=VARIATIONS))

        result = PriceReconciler(meli_client).update_price("MLB777", Decimal("99.90"))

        meli_client.update_item.assert_called_once()
        item_id, payload = meli_client.update_item.call_args.args
        assert item_id == "MLB777"
        assert "price" not in payload
        assert payload["variations"] == [
            {"id": 1001, "price": 99.9},
            {"id": 1002, "price": 99.9},
            {"id": 1003, "price": 99.9},
        ]
        assert result.strategy == PriceStrategy.PER_VARIATION
        assert result.price == Decimal("99.90")

    def test_flat_listing_root_write(self, meli_client):
        result = PriceReconciler(meli_client).update_price("MLB777", "120")

        meli_client.update_item.assert_called_once_with("MLB777", {"price": 120})
        assert result.strategy == PriceStrategy.ROOT
        assert len(result.attempts) == 1

    def test_structural_rejection_falls_back_to_root_once(self, meli_client):
        meli_client.get_item.return_value = ok(listing_body(variations=VARIATIONS))
        meli_client.update_item.side_effect = [
            rejected(400, STRUCTURAL_REJECTION),
            ok({"id": "MLB777"}),
        ]

        result = PriceReconciler(meli_client).update_price("MLB777", Decimal("99.90"))

        assert meli_client.update_item.call_count == 2
        assert "variations" in meli_client.update_item.call_args_list[0].args[1]
        assert meli_client.update_item.call_args_list[1].args[1] == {"price": 99.9}
        assert result.strategy == PriceStrategy.ROOT
        assert [a.strategy for a in result.attempts] == [PriceStrategy.PER_VARIATION, PriceStrategy.ROOT]
        assert result.attempts[0].ok is False

    def test_policy_rejection_falls_back_to_root(self, meli_client):
        meli_client.get_item.return_value = ok(listing_body(variations=VARIATIONS))
        meli_client.update_item.side_effect = [
            rejected(403, {"error": "forbidden", "message": "Not allowed"}),
            ok({"id": "MLB777"}),
        ]

        result = PriceReconciler(meli_client).update_price("MLB777", 50)

        assert meli_client.update_item.call_count == 2
        assert result.strategy == PriceStrategy.ROOT

    def test_second_rejection_is_terminal(self, meli_client):
        meli_client.get_item.return_value = ok(listing_body(variations=VARIATIONS))
        meli_client.update_item.side_effect = [
            rejected(400, STRUCTURAL_REJECTION),
            rejected(400, STRUCTURAL_REJECTION),
            ok({"id": "MLB777"}),
        ]

        with pytest.raises(PriceUpdateError) as exc_info:
            PriceReconciler(meli_client).update_price("MLB777", 50)

        assert meli_client.update_item.call_count == 2
        error = exc_info.value
        assert error.status_code == 422
        assert error.reason == FriendlyReason.UNKNOWN
        assert len(error.attempts) == 2

    def test_root_rejection_is_not_retried(self, meli_client):
        meli_client.update_item.return_value = rejected(400, STRUCTURAL_REJECTION)

        with pytest.raises(PriceUpdateError):
            PriceReconciler(meli_client).update_price("MLB777", 50)

        meli_client.update_item.assert_called_once()

    def test_transport_failure_is_not_retried(self, meli_client):
        meli_client.get_item.return_value = ok(listing_body(variations=VARIATIONS))
        meli_client.update_item.return_value = ApiResponse(False, None, None, "Request timed out after 30.0s")

        with pytest.raises(PriceUpdateError) as exc_info:
            PriceReconciler(meli_client).update_price("MLB777", 50)

        meli_client.update_item.assert_called_once()
        assert exc_info.value.classified.raw_message == "Request timed out after 30.0s"

    def test_other_rejection_is_not_retried(self, meli_client):
        meli_client.get_item.return_value = ok(listing_body(variations=VARIATIONS))
        meli_client.update_item.return_value = rejected(500, {"error": "internal_error", "message": "Oops"})

        with pytest.raises(PriceUpdateError):
            PriceReconciler(meli_client).update_price("MLB777", 50)

        meli_client.update_item.assert_called_once()

    def test_catalog_listing_rejection_is_classified(self, meli_client):
        meli_client.get_item.return_value = ok(listing_body(catalog_listing=True, tags=["catalog_listing"]))
        meli_client.update_item.return_value = rejected(400, {"error": "bad_request", "message": "Cannot modify"})

        with pytest.raises(PriceUpdateError) as exc_info:
            PriceReconciler(meli_client).update_price("MLB777", 50)

        assert exc_info.value.reason == FriendlyReason.CATALOG_MANAGED
        assert exc_info.value.classified.raw_message == "Cannot modify"


class TestPriceUpdatePreconditions:
    """Failures before any write."""

    def test_listing_not_found(self, meli_client):
        meli_client.get_item.return_value = rejected(404, {"error": "not_found", "message": "Item not found"})

        with pytest.raises(PriceUpdateError) as exc_info:
            PriceReconciler(meli_client).update_price("MLB000", 50)

        assert exc_info.value.status_code == 404
        meli_client.update_item.assert_not_called()

    @pytest.mark.parametrize("price", [0, -1, "abc", None])
    def test_invalid_price(self, meli_client, price):
        with pytest.raises(ValueError):
            PriceReconciler(meli_client).update_price("MLB777", price)

        meli_client.get_item.assert_not_called()
