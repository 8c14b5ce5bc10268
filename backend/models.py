from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlmodel import SQLModel, Field


class Token(SQLModel, table=True):
    """OAuth token storage for Mercado Livre API access"""
    __tablename__ = "tokens"

    provider: str = Field(primary_key=True, default="meli")  # "meli"
    access_token: str = Field()  # Encrypted in storage
    refresh_token: str = Field()  # Encrypted in storage
    expires_at: int = Field()  # Unix timestamp (milliseconds)
    token_type: str = Field(default="Bearer")
    scope: Optional[str] = Field(default=None)  # OAuth scopes granted
    user_id: Optional[str] = Field(default=None)  # Seller id returned by the token exchange
    created_at: int = Field(default_factory=lambda: int(datetime.now().timestamp() * 1000))
    updated_at: int = Field(default_factory=lambda: int(datetime.now().timestamp() * 1000))


class PriceCalculation(SQLModel, table=True):
    """Append-only log of price calculations made for a listing."""
    __tablename__ = "price_calculations"

    id: Optional[int] = Field(default=None, primary_key=True)
    listing_id: str = Field(index=True)  # MLB item id
    current_price: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)
    listing_type: Optional[str] = Field(default=None)  # gold_special / gold_pro
    shipping_type: Optional[str] = Field(default=None)
    cost_price: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)
    profit_margin: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)
    marketplace_fee: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)
    shipping_cost: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)
    profit_amount: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)
    recommended_price: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)
    tax_rate: Decimal = Field(default=Decimal("0"), max_digits=10, decimal_places=2)
    other_costs: Decimal = Field(default=Decimal("0"), max_digits=10, decimal_places=2)
    wholesale_price: Decimal = Field(default=Decimal("0"), max_digits=10, decimal_places=2)
    created_at: int = Field(default_factory=lambda: int(datetime.now().timestamp() * 1000))
