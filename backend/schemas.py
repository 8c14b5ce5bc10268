from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict


class PriceCalculationBase(BaseModel):
    """Base price calculation schema"""
    model_config = ConfigDict(from_attributes=True)

    listing_id: str = Field(min_length=1)
    current_price: Optional[Decimal] = None
    listing_type: Optional[str] = None  # "gold_special" or "gold_pro"
    shipping_type: Optional[str] = None
    cost_price: Optional[Decimal] = None
    profit_margin: Optional[Decimal] = None
    marketplace_fee: Optional[Decimal] = None
    shipping_cost: Optional[Decimal] = None
    profit_amount: Optional[Decimal] = None
    recommended_price: Optional[Decimal] = None
    tax_rate: Decimal = Decimal("0")
    other_costs: Decimal = Decimal("0")
    wholesale_price: Decimal = Decimal("0")


class PriceCalculationCreate(PriceCalculationBase):
    """Schema for appending a calculation"""
    pass


class PriceCalculation(PriceCalculationBase):
    """Schema for a stored calculation"""
    id: int
    created_at: int
