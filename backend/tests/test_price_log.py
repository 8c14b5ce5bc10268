"""
Price Log Tests

Tests for the append-only price calculation log.
"""

import pytest
from decimal import Decimal
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from schemas import PriceCalculationCreate
from services.price_log import PriceLogService


@pytest.fixture
def db_session():
    """Create in-memory database session for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)

    with Session(engine) as session:
        yield session


def make_entry(listing_id="MLB777", **overrides):
    values = dict(
        listing_id=listing_id,
        current_price=Decimal("80.00"),
        listing_type="gold_special",
        cost_price=Decimal("40.00"),
        profit_margin=Decimal("20.00"),
        marketplace_fee=Decimal("13.20"),
        recommended_price=Decimal("99.90"),
    )
    values.update(overrides)
    return PriceCalculationCreate(**values)


class TestPriceLogService:

    def test_append(self, db_session):
        row = PriceLogService(db_session).append(make_entry(tax_rate=Decimal("6.5")))

        assert row.id is not None
        assert row.created_at > 0
        assert row.listing_id == "MLB777"
        assert row.tax_rate == Decimal("6.5")
        assert row.other_costs == Decimal("0")

    def test_list_recent_newest_first(self, db_session):
        service = PriceLogService(db_session)
        first = service.append(make_entry())
        second = service.append(make_entry())

        rows = service.list_recent()

        assert [r.id for r in rows] == [second.id, first.id]

    def test_list_recent_filters_by_listing(self, db_session):
        service = PriceLogService(db_session)
        service.append(make_entry("MLB1"))
        service.append(make_entry("MLB2"))
        service.append(make_entry("MLB1"))

        rows = service.list_recent(listing_id="MLB1")

        assert len(rows) == 2
        assert all(r.listing_id == "MLB1" for r in rows)

    def test_list_recent_limit(self, db_session):
        service = PriceLogService(db_session)
        for _ in range(5):
            service.append(make_entry())

        assert len(service.list_recent(limit=3)) == 3

    def test_blank_listing_id_rejected(self):
        with pytest.raises(ValueError):
            make_entry(listing_id="")
