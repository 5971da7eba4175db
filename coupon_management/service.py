"""
Coupon Service

Handles registration, listing and best-coupon selection with usage tracking.
"""
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from .exceptions import DuplicateCouponCodeError
from .logger import get_logger
from .logic import (
    Candidate,
    compute_cart_metrics,
    compute_discount,
    is_eligible,
    is_within_date_range,
    parse_timestamp,
    pick_best_coupon,
)
from .models import BestCouponResponse, Cart, Coupon, UserContext
from .storage import CouponCatalog, UsageTracker

logger = get_logger("service")


class CouponService:
    """
    Coupon catalog plus best-coupon evaluation.

    Features:
    - Registration with unique, case-sensitive codes
    - Date window, usage limit and eligibility filtering
    - Deterministic best-coupon selection
    - Per-user usage tracking
    """

    def __init__(self, catalog: Optional[CouponCatalog] = None, usage: Optional[UsageTracker] = None):
        self.catalog = catalog if catalog is not None else CouponCatalog()
        self.usage = usage if usage is not None else UsageTracker()

    def register_coupon(self, coupon: Coupon) -> Coupon:
        """
        Add a coupon to the catalog.

        Raises:
            DuplicateCouponCodeError: If the code is already registered
        """
        try:
            self.catalog.add(coupon)
        except DuplicateCouponCodeError:
            logger.info(f"Rejected coupon {coupon.code}: code already exists")
            raise
        if parse_timestamp(coupon.startDate) is None or parse_timestamp(coupon.endDate) is None:
            logger.warning(f"Coupon {coupon.code} has an unparseable date range and will never be selected")
        logger.info(f"Registered coupon {coupon.code} ({coupon.discountType.value} {coupon.discountValue})")
        return coupon

    def list_coupons(self) -> List[Coupon]:
        return list(self.catalog.list())

    def get_coupon(self, code: str) -> Coupon:
        return self.catalog.get(code)

    def find_candidates(
        self,
        user: UserContext,
        cart: Cart,
        now: Optional[datetime] = None,
    ) -> Tuple[float, List[Candidate]]:
        """Return the cart value and every coupon that applies to this user and cart."""
        if now is None:
            now = datetime.now(timezone.utc)
        metrics = compute_cart_metrics(cart)
        candidates: List[Candidate] = []

        for coupon in self.catalog.list():
            # 1. date validity
            if not is_within_date_range(coupon, now):
                continue

            # 2. usage limit per user
            if not self.usage.is_under_limit(coupon, user.userId):
                logger.debug(f"Coupon {coupon.code} exhausted for user {user.userId}")
                continue

            # 3. eligibility checks
            if not is_eligible(coupon, user, metrics):
                logger.debug(f"Coupon {coupon.code} not eligible for user {user.userId}")
                continue

            # 4. compute discount
            discount = compute_discount(coupon, metrics.cartValue)
            candidates.append(Candidate(coupon, discount, parse_timestamp(coupon.endDate)))

        return metrics.cartValue, candidates

    def evaluate_best(
        self,
        user: UserContext,
        cart: Cart,
        now: Optional[datetime] = None,
    ) -> BestCouponResponse:
        """
        Pick the best coupon for this user and cart and consume one use of it.

        Returns:
            BestCouponResponse with bestCoupon None when nothing applies
        """
        cart_value, candidates = self.find_candidates(user, cart, now)
        best = pick_best_coupon(candidates)

        # a concurrent request may have used up the winner since the scan
        while best is not None and not self.usage.try_consume(best.coupon, user.userId):
            logger.debug(f"Coupon {best.coupon.code} exhausted for user {user.userId} during selection")
            candidates = [c for c in candidates if c is not best]
            best = pick_best_coupon(candidates)

        if best is None:
            logger.info(f"No eligible coupon for user {user.userId} (cart value {cart_value})")
            return BestCouponResponse(bestCoupon=None, discountAmount=0.0, finalPrice=cart_value)

        logger.info(
            f"Selected coupon {best.coupon.code} for user {user.userId}: "
            f"discount {best.discount}"
        )
        return BestCouponResponse(
            bestCoupon=best.coupon,
            discountAmount=best.discount,
            finalPrice=cart_value - best.discount,
        )
