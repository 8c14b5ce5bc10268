"""
Domain types for catalog publishing and price reconciliation.

Everything here is immutable. Marketplace JSON is parsed once at the boundary
(`from_api`) so the planner, publisher and reconciler never touch raw dicts.
"""

from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator


class Tier(str, Enum):
    """Listing exposure/fee class."""
    CLASSIC = "classic"
    PREMIUM = "premium"

    @property
    def listing_type_id(self) -> str:
        return LISTING_TYPE_IDS[self]

    @property
    def other(self) -> "Tier":
        return Tier.PREMIUM if self == Tier.CLASSIC else Tier.CLASSIC

    @property
    def label(self) -> str:
        return "Classic" if self == Tier.CLASSIC else "Premium"

    @classmethod
    def from_listing_type_id(cls, listing_type_id: Optional[str]) -> Optional["Tier"]:
        for tier, type_id in LISTING_TYPE_IDS.items():
            if type_id == listing_type_id:
                return tier
        return None


LISTING_TYPE_IDS: Dict[Tier, str] = {
    Tier.CLASSIC: "gold_special",
    Tier.PREMIUM: "gold_pro",
}


class FormatSelection(str, Enum):
    """Which presentation formats the seller asked for."""
    CATALOG_ONLY = "catalog_only"
    TRADITIONAL_ONLY = "traditional_only"
    BOTH = "both"

    @property
    def wants_catalog(self) -> bool:
        return self in (FormatSelection.CATALOG_ONLY, FormatSelection.BOTH)

    @property
    def wants_traditional(self) -> bool:
        return self in (FormatSelection.TRADITIONAL_ONLY, FormatSelection.BOTH)


class ListingFormat(str, Enum):
    """Presentation format of one concrete listing."""
    CATALOG = "catalog"
    TRADITIONAL = "traditional"

    @property
    def label(self) -> str:
        return "Catalog" if self == ListingFormat.CATALOG else "Traditional"


class Attribute(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    value_name: str
    name: Optional[str] = None


class CatalogProduct(BaseModel):
    """Marketplace-curated canonical product (GET /products/{id})."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    domain_id: Optional[str] = None
    category_id: Optional[str] = None
    pictures: List[str] = Field(default_factory=list)
    listing_strategy: Optional[str] = None
    attributes: List[Attribute] = Field(default_factory=list)

    @property
    def catalog_required(self) -> bool:
        return self.listing_strategy == "catalog_required"

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "CatalogProduct":
        settings = data.get("settings") or {}
        pictures = [p.get("url") or p.get("secure_url") for p in (data.get("pictures") or []) if isinstance(p, dict)]
        attributes = [
            Attribute(id=str(a["id"]), value_name=str(a["value_name"]), name=a.get("name"))
            for a in (data.get("attributes") or [])
            if isinstance(a, dict) and a.get("id") and a.get("value_name") is not None
        ]
        return cls(
            id=str(data["id"]),
            name=data.get("name") or data.get("title") or "",
            domain_id=data.get("domain_id"),
            category_id=data.get("category_id") or None,
            pictures=[p for p in pictures if p],
            listing_strategy=settings.get("listing_strategy"),
            attributes=attributes,
        )


class ListingIntent(BaseModel):
    """What the seller asked for in one publish request."""
    model_config = ConfigDict(frozen=True)

    product_id: str
    price: Decimal = Field(gt=0)
    stock: int = Field(gt=0)
    tier: Tier = Tier.CLASSIC
    create_other_tier: bool = False
    format: FormatSelection = FormatSelection.BOTH
    ean: Optional[str] = None

    @field_validator("ean", mode="before")
    @classmethod
    def blank_ean_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v


class ListingJob(BaseModel):
    """One concrete listing-creation call."""
    model_config = ConfigDict(frozen=True)

    label: str
    category_id: str = Field(min_length=1)
    price: Decimal
    stock: int
    tier: Tier
    format: ListingFormat
    catalog_product_id: str
    title: Optional[str] = None
    pictures: Optional[List[str]] = None
    attributes: Optional[List[Attribute]] = None


class SkippedJob(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    reason: str


class ListingCreationResult(BaseModel):
    """Outcome of one job: created item or failure."""
    model_config = ConfigDict(frozen=True)

    label: str
    ok: bool
    item_id: Optional[str] = None
    permalink: Optional[str] = None
    error: Optional[str] = None
    status_code: Optional[int] = None

    @classmethod
    def created(cls, label: str, item_id: Optional[str], permalink: Optional[str] = None) -> "ListingCreationResult":
        return cls(label=label, ok=True, item_id=item_id, permalink=permalink)

    @classmethod
    def failed(cls, label: str, error: str, status_code: Optional[int] = None) -> "ListingCreationResult":
        return cls(label=label, ok=False, error=error, status_code=status_code)


class Variation(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    price: Optional[Decimal] = None


class Listing(BaseModel):
    """Existing seller listing (GET /items/{id})."""
    model_config = ConfigDict(frozen=True)

    id: str
    price: Optional[Decimal] = None
    currency_id: Optional[str] = None
    listing_type_id: Optional[str] = None
    category_id: Optional[str] = None
    shipping: Dict[str, Any] = Field(default_factory=dict)
    status: Optional[str] = None
    sub_status: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    catalog_listing: bool = False
    variations: List[Variation] = Field(default_factory=list)

    @property
    def tier(self) -> Optional[Tier]:
        return Tier.from_listing_type_id(self.listing_type_id)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Listing":
        variations = [
            Variation(id=str(v["id"]), price=v.get("price"))
            for v in (data.get("variations") or [])
            if isinstance(v, dict) and v.get("id") is not None
        ]
        return cls(
            id=str(data["id"]),
            price=data.get("price"),
            currency_id=data.get("currency_id"),
            listing_type_id=data.get("listing_type_id"),
            category_id=data.get("category_id"),
            shipping=data.get("shipping") or {},
            status=data.get("status"),
            sub_status=list(data.get("sub_status") or []),
            tags=list(data.get("tags") or []),
            catalog_listing=bool(data.get("catalog_listing")),
            variations=variations,
        )


class FlatListing(BaseModel):
    """Listing whose price lives in the root price field."""
    model_config = ConfigDict(frozen=True)

    listing: Listing


class VariatedListing(BaseModel):
    """Listing whose price lives only in its variations."""
    model_config = ConfigDict(frozen=True)

    listing: Listing
    variations: List[Variation] = Field(min_length=1)


ListingShape = Union[FlatListing, VariatedListing]


def resolve_shape(listing: Listing) -> ListingShape:
    """Resolve the listing variant once, right after fetch."""
    if listing.variations:
        return VariatedListing(listing=listing, variations=listing.variations)
    return FlatListing(listing=listing)


class FeeQuote(BaseModel):
    """Sale fee for a (price, tier, category) triple."""
    model_config = ConfigDict(frozen=True)

    price: Decimal
    tier: Tier
    category_id: str
    percentage_fee: Decimal
    fixed_fee: Decimal
    sale_fee_amount: Decimal
    currency_id: Optional[str] = None
