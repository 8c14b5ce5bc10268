"""
Price Calculation Routes - Append-only calculation log.
"""

import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from db import get_session
from schemas import PriceCalculation, PriceCalculationCreate
from services.price_log import PriceLogService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/calculations", tags=["calculations"])


@router.post("", response_model=PriceCalculation, status_code=201)
async def append_calculation(
    entry: PriceCalculationCreate,
    session: Session = Depends(get_session)
):
    """Append a price calculation to the log."""
    return PriceLogService(session).append(entry)


@router.get("", response_model=List[PriceCalculation])
async def list_calculations(
    listing_id: Optional[str] = Query(None, description="Only calculations for this item id"),
    limit: int = Query(50, ge=1, le=500),
    session: Session = Depends(get_session)
):
    """Most recent calculations first."""
    return PriceLogService(session).list_recent(listing_id=listing_id, limit=limit)
