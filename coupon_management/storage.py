import threading
from typing import Dict, Optional, Tuple

from .exceptions import CouponNotFoundError, DuplicateCouponCodeError
from .models import Coupon


class CouponCatalog:
    """In-memory coupons keyed by code, kept in registration order.

    Writers rebuild an immutable snapshot under a lock, so readers
    never wait on a registration in progress.
    """

    def __init__(self):
        self._lock = threading.Lock()
        # code -> Coupon
        self._by_code: Dict[str, Coupon] = {}
        self._snapshot: Tuple[Coupon, ...] = ()

    def add(self, coupon: Coupon) -> Coupon:
        with self._lock:
            if coupon.code in self._by_code:
                raise DuplicateCouponCodeError(coupon.code)
            self._by_code[coupon.code] = coupon
            self._snapshot = self._snapshot + (coupon,)
        return coupon

    def get(self, code: str) -> Coupon:
        coupon = self._by_code.get(code)
        if coupon is None:
            raise CouponNotFoundError(code)
        return coupon

    def list(self) -> Tuple[Coupon, ...]:
        return self._snapshot

    def __contains__(self, code: str) -> bool:
        return code in self._by_code

    def __len__(self) -> int:
        return len(self._snapshot)


class UsageTracker:
    """Per-user redemption counts: coupon code -> userId -> count."""

    def __init__(self):
        self._lock = threading.Lock()
        self._usage: Dict[str, Dict[str, int]] = {}

    def get_usage(self, code: str, user_id: str) -> int:
        return self._usage.get(code, {}).get(user_id, 0)

    def is_under_limit(self, coupon: Coupon, user_id: str) -> bool:
        if coupon.usageLimitPerUser is None:
            return True
        return self.get_usage(coupon.code, user_id) < coupon.usageLimitPerUser

    def record_usage(self, code: str, user_id: str) -> int:
        with self._lock:
            per_user = self._usage.setdefault(code, {})
            per_user[user_id] = per_user.get(user_id, 0) + 1
            return per_user[user_id]

    def try_consume(self, coupon: Coupon, user_id: str) -> bool:
        """Check the limit and record one use as a single step."""
        with self._lock:
            per_user = self._usage.get(coupon.code, {})
            used = per_user.get(user_id, 0)
            if coupon.usageLimitPerUser is not None and used >= coupon.usageLimitPerUser:
                return False
            self._usage.setdefault(coupon.code, {})[user_id] = used + 1
            return True

    def snapshot(self, code: Optional[str] = None) -> Dict[str, Dict[str, int]]:
        with self._lock:
            if code is not None:
                return {code: dict(self._usage.get(code, {}))}
            return {c: dict(users) for c, users in self._usage.items()}
