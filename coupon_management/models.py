import math
from enum import Enum
from typing import Any, FrozenSet, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator


def to_number(value: Any) -> float:
    """Coerce loosely typed input to a finite float, falling back to 0."""
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        if not value.strip():
            return 0.0
        try:
            number = float(value)
        except ValueError:
            return 0.0
    else:
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


class DiscountType(str, Enum):
    FLAT = "FLAT"
    PERCENT = "PERCENT"


class Eligibility(BaseModel):
    model_config = ConfigDict(frozen=True)

    # User based
    allowedUserTiers: Optional[List[str]] = None
    minLifetimeSpend: Optional[float] = None
    minOrdersPlaced: Optional[int] = None
    firstOrderOnly: Optional[bool] = None
    allowedCountries: Optional[List[str]] = None

    # Cart based
    minCartValue: Optional[float] = None
    applicableCategories: Optional[List[str]] = None
    excludedCategories: Optional[List[str]] = None
    minItemsCount: Optional[int] = None


class Coupon(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str = Field(min_length=1)
    description: str = Field(min_length=1)
    discountType: DiscountType
    discountValue: float
    maxDiscountAmount: Optional[float] = None

    # parsed lazily; a coupon whose dates do not parse is never selectable
    startDate: str = Field(min_length=1)
    endDate: str = Field(min_length=1)

    usageLimitPerUser: Optional[int] = Field(default=None, ge=0)
    eligibility: Eligibility = Field(default_factory=Eligibility)


class UserContext(BaseModel):
    userId: str = Field(min_length=1)
    userTier: Optional[str] = None  # e.g. NEW, REGULAR, GOLD
    country: Optional[str] = None
    lifetimeSpend: float = 0.0
    ordersPlaced: int = 0

    @field_validator("userId", mode="before")
    @classmethod
    def coerce_user_id(cls, v):
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("lifetimeSpend", mode="before")
    @classmethod
    def coerce_spend(cls, v):
        return to_number(v)

    @field_validator("ordersPlaced", mode="before")
    @classmethod
    def coerce_orders(cls, v):
        return int(to_number(v))


class CartItem(BaseModel):
    productId: Optional[Union[str, int]] = None
    category: Optional[str] = None
    unitPrice: float = 0.0
    quantity: float = 0.0

    @field_validator("unitPrice", "quantity", mode="before")
    @classmethod
    def coerce_numbers(cls, v):
        return to_number(v)


class Cart(BaseModel):
    items: List[CartItem]


class CartMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    cartValue: float = 0.0
    itemsCount: float = 0.0
    categories: FrozenSet[str] = frozenset()


class BestCouponRequest(BaseModel):
    user: UserContext
    cart: Cart


class BestCouponResponse(BaseModel):
    bestCoupon: Optional[Coupon] = None
    discountAmount: float = 0.0
    finalPrice: float = 0.0


class CouponCreatedResponse(BaseModel):
    message: str
    coupon: Coupon


class CouponListResponse(BaseModel):
    coupons: List[Coupon]
