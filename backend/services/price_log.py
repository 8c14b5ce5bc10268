"""
Price Log Service - Append-only history of price calculations.

Rows are only ever inserted; there is no update or delete path.
"""

import logging
from typing import List, Optional
from sqlmodel import Session, select

from models import PriceCalculation
from schemas import PriceCalculationCreate

logger = logging.getLogger(__name__)


class PriceLogService:
    """Service for the price calculation log."""

    def __init__(self, session: Session):
        """
        Initialize price log service.

        Args:
            session: Database session
        """
        self.session = session

    def append(self, entry: PriceCalculationCreate) -> PriceCalculation:
        """
        Append one calculation.

        Args:
            entry: Calculation values as submitted by the caller

        Returns:
            The stored row (with id and created_at)
        """
        row = PriceCalculation(**entry.model_dump())
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        logger.info(f"[PriceLog] Appended calculation {row.id} for {row.listing_id}")
        return row

    def list_recent(self, listing_id: Optional[str] = None, limit: int = 50) -> List[PriceCalculation]:
        """
        Most recent calculations first, optionally for one listing.
        """
        query = select(PriceCalculation)
        if listing_id:
            query = query.where(PriceCalculation.listing_id == listing_id)
        query = query.order_by(PriceCalculation.created_at.desc(), PriceCalculation.id.desc()).limit(limit)
        return list(self.session.exec(query).all())
