from datetime import datetime, timezone
from functools import reduce
from typing import Iterable, NamedTuple, Optional

from dateutil import parser as date_parser

from .logger import get_logger
from .models import Cart, CartMetrics, Coupon, DiscountType, Eligibility, UserContext, to_number

logger = get_logger("logic")


class Candidate(NamedTuple):
    coupon: Coupon
    discount: float
    endDate: datetime


# ---------------------------
# Cart metrics
# ---------------------------

def compute_cart_value(cart: Optional[Cart]) -> float:
    if cart is None or not cart.items:
        return 0.0
    return sum(to_number(item.unitPrice) * to_number(item.quantity) for item in cart.items)


def compute_items_count(cart: Optional[Cart]) -> float:
    if cart is None or not cart.items:
        return 0.0
    return sum(to_number(item.quantity) for item in cart.items)


def get_cart_categories(cart: Optional[Cart]) -> frozenset:
    if cart is None or not cart.items:
        return frozenset()
    return frozenset(item.category for item in cart.items if item.category)


def compute_cart_metrics(cart: Optional[Cart]) -> CartMetrics:
    return CartMetrics(
        cartValue=compute_cart_value(cart),
        itemsCount=compute_items_count(cart),
        categories=get_cart_categories(cart),
    )


# ---------------------------
# Validity window
# ---------------------------

def parse_timestamp(value) -> Optional[datetime]:
    """Parse a coupon date; naive values are taken as UTC. Returns None when unparseable."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = date_parser.isoparse(value.strip())
        except (ValueError, OverflowError):
            try:
                parsed = date_parser.parse(value)
            except (ValueError, OverflowError):
                return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_within_date_range(coupon: Coupon, now: Optional[datetime] = None) -> bool:
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    start = parse_timestamp(coupon.startDate)
    end = parse_timestamp(coupon.endDate)
    if start is None or end is None:
        logger.debug(f"Coupon {coupon.code} has an unparseable date range, skipping")
        return False
    return start <= now <= end


# ---------------------------
# Eligibility
# ---------------------------

def user_eligibility_ok(elig: Eligibility, user: UserContext) -> bool:
    if elig.allowedUserTiers and user.userTier not in elig.allowedUserTiers:
        return False

    if elig.minLifetimeSpend is not None and user.lifetimeSpend < elig.minLifetimeSpend:
        return False

    if elig.minOrdersPlaced is not None and user.ordersPlaced < elig.minOrdersPlaced:
        return False

    # ordersPlaced counts completed orders before this one
    if elig.firstOrderOnly is True and user.ordersPlaced != 0:
        return False

    if elig.allowedCountries and user.country not in elig.allowedCountries:
        return False

    return True


def cart_eligibility_ok(elig: Eligibility, metrics: CartMetrics) -> bool:
    if elig.minCartValue is not None and metrics.cartValue < elig.minCartValue:
        return False

    if elig.applicableCategories:
        # at least one item from these categories
        if metrics.categories.isdisjoint(elig.applicableCategories):
            return False

    if elig.excludedCategories:
        if not metrics.categories.isdisjoint(elig.excludedCategories):
            return False

    if elig.minItemsCount is not None and metrics.itemsCount < elig.minItemsCount:
        return False

    return True


def is_eligible(coupon: Coupon, user: UserContext, metrics: CartMetrics) -> bool:
    elig = coupon.eligibility
    return user_eligibility_ok(elig, user) and cart_eligibility_ok(elig, metrics)


# ---------------------------
# Discount
# ---------------------------

def compute_discount(coupon: Coupon, cart_value: float) -> float:
    cart_value = to_number(cart_value)
    if cart_value <= 0:
        return 0.0

    value = to_number(coupon.discountValue)
    if coupon.discountType == DiscountType.FLAT:
        discount = value
    elif coupon.discountType == DiscountType.PERCENT:
        discount = cart_value * value / 100.0
        if coupon.maxDiscountAmount is not None:
            discount = min(discount, to_number(coupon.maxDiscountAmount))
    else:
        discount = 0.0

    # discount cannot exceed cart value and cannot be negative
    return max(0.0, min(discount, cart_value))


# ---------------------------
# Best coupon
# ---------------------------

def is_better_candidate(challenger: Candidate, incumbent: Candidate) -> bool:
    """
    Strict ordering between two candidates:
     1. Highest discount
     2. If tie, earliest endDate
     3. If still tie, lexicographically smaller code
    A full tie keeps the incumbent.
    """
    if challenger.discount != incumbent.discount:
        return challenger.discount > incumbent.discount
    if challenger.endDate != incumbent.endDate:
        return challenger.endDate < incumbent.endDate
    return challenger.coupon.code < incumbent.coupon.code


def pick_best_coupon(candidates: Iterable[Candidate]) -> Optional[Candidate]:
    return reduce(
        lambda best, cand: cand if best is None or is_better_candidate(cand, best) else best,
        candidates,
        None,
    )
