"""
Publish Flow Tests

Tests for per-job publishing and the full publish_listings flow.
"""

import pytest
from decimal import Decimal
from unittest.mock import MagicMock

from integrations.mercadolibre.client import ApiResponse
from integrations.mercadolibre.entities import (
    CatalogProduct,
    FormatSelection,
    ListingCreationResult,
    ListingIntent,
    Tier,
)
from integrations.mercadolibre.errors import (
    AuthenticationRequiredError,
    CatalogProductNotFoundError,
    CategoryUnresolvedError,
)
from integrations.mercadolibre.planning import build_plan
from integrations.mercadolibre.publish import ListingPublisher, publish_listings, tally


def ok(data):
    return ApiResponse(True, data, 200, None)


@pytest.fixture
def meli_client():
    client = MagicMock()
    client.currency_id = "BRL"
    client.get_product.return_value = ok({
        "id": "MLB123",
        "name": "Fone Bluetooth XYZ",
        "category_id": "MLB1000",
        "pictures": [{"url": "https://http2.mlstatic.com/a.jpg"}],
        "settings": {"listing_strategy": "catalog_optional"},
    })
    counter = iter(range(1, 100))
    client.create_item.side_effect = lambda payload: ok({
        "id": f"MLB90{next(counter)}",
        "permalink": "https://produto.mercadolivre.com.br/x",
    })
    return client


@pytest.fixture
def full_intent():
    return ListingIntent(
        product_id="MLB123",
        price=Decimal("100"),
        stock=5,
        tier=Tier.CLASSIC,
        create_other_tier=True,
        format=FormatSelection.BOTH,
    )


class TestPublishListings:
    """Test publish_listings end to end against a mocked client."""

    def test_all_jobs_created(self, meli_client, full_intent):
        outcome = publish_listings(meli_client, full_intent)

        assert len(outcome.created) == 4
        assert outcome.errors == []
        assert outcome.category_id == "MLB1000"
        assert outcome.category_source == "product"
        assert meli_client.create_item.call_count == 4

    def test_payloads(self, meli_client):
        intent = ListingIntent(product_id="MLB123", price=Decimal("100"), stock=5, ean="7891234567895")

        publish_listings(meli_client, intent)

        catalog_payload = meli_client.create_item.call_args_list[0].args[0]
        traditional_payload = meli_client.create_item.call_args_list[1].args[0]

        assert catalog_payload["catalog_listing"] is True
        assert catalog_payload["catalog_product_id"] == "MLB123"
        assert catalog_payload["listing_type_id"] == "gold_special"
        assert catalog_payload["category_id"] == "MLB1000"
        assert catalog_payload["price"] == 100
        assert catalog_payload["currency_id"] == "BRL"
        assert catalog_payload["available_quantity"] == 5
        assert "title" not in catalog_payload
        assert "pictures" not in catalog_payload
        assert catalog_payload["attributes"] == [{"id": "GTIN", "value_name": "7891234567895"}]

        assert traditional_payload["catalog_listing"] is False
        assert traditional_payload["title"] == "Fone Bluetooth XYZ"
        assert traditional_payload["pictures"] == [{"source": "https://http2.mlstatic.com/a.jpg"}]

    @pytest.mark.parametrize("failing_index", [0, 1, 2, 3])
    def test_one_failure_does_not_stop_the_others(self, meli_client, full_intent, failing_index):
        calls = []

        def create_item(payload):
            calls.append(payload)
            if len(calls) - 1 == failing_index:
                return ApiResponse(False, {"error": "validation_error"}, 400, "Error 400 (validation_error): bad")
            return ok({"id": f"MLB{len(calls)}"})

        meli_client.create_item.side_effect = create_item

        outcome = publish_listings(meli_client, full_intent)

        labels = ["Catalog (Classic)", "Traditional (Classic)", "Catalog (Premium)", "Traditional (Premium)"]
        assert len(calls) == 4
        assert len(outcome.created) == 3
        assert len(outcome.errors) == 1
        assert outcome.errors[0].label == labels[failing_index]
        assert outcome.errors[0].status_code == 400
        assert [r.label for r in outcome.created] == [l for i, l in enumerate(labels) if i != failing_index]

    def test_exception_in_one_job_is_captured(self, meli_client, full_intent):
        meli_client.create_item.side_effect = [
            ok({"id": "MLB1"}),
            RuntimeError("socket closed"),
            ok({"id": "MLB3"}),
            ok({"id": "MLB4"}),
        ]

        outcome = publish_listings(meli_client, full_intent)

        assert [r.item_id for r in outcome.created] == ["MLB1", "MLB3", "MLB4"]
        assert "socket closed" in outcome.errors[0].error

    def test_catalog_required_skips_traditional(self, meli_client, full_intent):
        meli_client.get_product.return_value = ok({
            "id": "MLB123",
            "name": "Fone Bluetooth XYZ",
            "category_id": "MLB1000",
            "settings": {"listing_strategy": "catalog_required"},
        })

        outcome = publish_listings(meli_client, full_intent)

        assert outcome.catalog_required is True
        assert [r.label for r in outcome.created] == ["Catalog (Classic)", "Catalog (Premium)"]
        assert len(outcome.skipped) == 2
        for call in meli_client.create_item.call_args_list:
            assert call.args[0]["catalog_listing"] is True


class TestPublishPreconditions:
    """Nothing is created when a precondition fails."""

    def test_unresolved_category(self, meli_client, full_intent):
        meli_client.get_product.return_value = ok({"id": "MLB123", "name": ""})

        with pytest.raises(CategoryUnresolvedError):
            publish_listings(meli_client, full_intent)

        meli_client.create_item.assert_not_called()

    def test_product_not_found(self, meli_client, full_intent):
        meli_client.get_product.return_value = ApiResponse(False, None, 404, "Not found")

        with pytest.raises(CatalogProductNotFoundError):
            publish_listings(meli_client, full_intent)

        meli_client.create_item.assert_not_called()

    def test_not_authenticated(self, meli_client, full_intent):
        meli_client.ensure_authenticated.side_effect = AuthenticationRequiredError("No token")

        with pytest.raises(AuthenticationRequiredError):
            publish_listings(meli_client, full_intent)

        meli_client.get_product.assert_not_called()
        meli_client.create_item.assert_not_called()


class TestPublisher:
    """Test the per-job publisher and tally."""

    def test_results_follow_job_order(self, meli_client, full_intent):
        plan = build_plan(full_intent, "MLB1000", CatalogProduct(id="MLB123", name="X"), False)
        results = ListingPublisher(meli_client).publish(plan.jobs)

        assert [r.label for r in results] == [j.label for j in plan.jobs]

    def test_tally_preserves_order(self):
        results = [
            ListingCreationResult.created("A", "MLB1"),
            ListingCreationResult.failed("B", "nope"),
            ListingCreationResult.created("C", "MLB3"),
            ListingCreationResult.failed("D", "nope"),
        ]

        summary = tally(results)

        assert [r.label for r in summary.created] == ["A", "C"]
        assert [r.label for r in summary.errors] == ["B", "D"]
