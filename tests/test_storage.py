"""
Tests for the coupon catalog and usage tracker.
"""
import threading

import pytest

from conftest import make_coupon
from coupon_management.exceptions import CouponNotFoundError, DuplicateCouponCodeError
from coupon_management.storage import CouponCatalog, UsageTracker


class TestCouponCatalog:

    def test_registration_order_is_kept(self):
        catalog = CouponCatalog()
        for code in ("C", "A", "B"):
            catalog.add(make_coupon(code))
        assert [c.code for c in catalog.list()] == ["C", "A", "B"]
        assert len(catalog) == 3
        assert "A" in catalog

    def test_duplicate_code_keeps_first(self):
        catalog = CouponCatalog()
        first = catalog.add(make_coupon("DUP", discountValue=10))
        with pytest.raises(DuplicateCouponCodeError) as exc_info:
            catalog.add(make_coupon("DUP", discountValue=50))
        assert exc_info.value.code == "DUP"
        assert catalog.list() == (first,)
        assert catalog.get("DUP").discountValue == 10

    def test_codes_are_case_sensitive(self):
        catalog = CouponCatalog()
        catalog.add(make_coupon("save10"))
        catalog.add(make_coupon("SAVE10"))
        assert len(catalog) == 2

    def test_get_unknown_code(self):
        with pytest.raises(CouponNotFoundError):
            CouponCatalog().get("NOPE")

    def test_snapshot_is_not_affected_by_later_registration(self):
        catalog = CouponCatalog()
        catalog.add(make_coupon("A"))
        snapshot = catalog.list()
        catalog.add(make_coupon("B"))
        assert [c.code for c in snapshot] == ["A"]

    def test_concurrent_registration_of_same_code(self):
        catalog = CouponCatalog()
        errors = []

        def register():
            try:
                catalog.add(make_coupon("RACE"))
            except DuplicateCouponCodeError as e:
                errors.append(e)

        threads = [threading.Thread(target=register) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(catalog) == 1
        assert len(errors) == 7


class TestUsageTracker:

    def test_unlimited_when_no_limit(self):
        tracker = UsageTracker()
        coupon = make_coupon()
        for _ in range(5):
            tracker.record_usage(coupon.code, "u1")
        assert tracker.is_under_limit(coupon, "u1")

    def test_limit_per_user(self):
        tracker = UsageTracker()
        coupon = make_coupon(usageLimitPerUser=2)
        assert tracker.is_under_limit(coupon, "u1")
        assert tracker.record_usage(coupon.code, "u1") == 1
        assert tracker.is_under_limit(coupon, "u1")
        assert tracker.record_usage(coupon.code, "u1") == 2
        assert not tracker.is_under_limit(coupon, "u1")
        assert tracker.is_under_limit(coupon, "u2")

    def test_zero_limit_blocks_everyone(self):
        tracker = UsageTracker()
        assert not tracker.is_under_limit(make_coupon(usageLimitPerUser=0), "u1")

    def test_snapshot_is_a_copy(self):
        tracker = UsageTracker()
        tracker.record_usage("A", "u1")
        snapshot = tracker.snapshot()
        snapshot["A"]["u1"] = 99
        assert tracker.get_usage("A", "u1") == 1
        assert tracker.snapshot("A") == {"A": {"u1": 1}}
        assert tracker.snapshot("B") == {"B": {}}

    def test_concurrent_increments_are_not_lost(self):
        tracker = UsageTracker()

        def redeem():
            for _ in range(500):
                tracker.record_usage("HOT", "u1")

        threads = [threading.Thread(target=redeem) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert tracker.get_usage("HOT", "u1") == 4000

    def test_try_consume_respects_limit(self):
        tracker = UsageTracker()
        coupon = make_coupon("TWICE", usageLimitPerUser=2)
        assert tracker.try_consume(coupon, "u1")
        assert tracker.try_consume(coupon, "u1")
        assert not tracker.try_consume(coupon, "u1")
        assert tracker.get_usage("TWICE", "u1") == 2
        assert tracker.try_consume(make_coupon("FREE"), "u1")

    def test_concurrent_try_consume_stops_at_limit(self):
        tracker = UsageTracker()
        coupon = make_coupon("ONCE", usageLimitPerUser=1)
        barrier = threading.Barrier(16)
        wins = []

        def redeem():
            barrier.wait()
            if tracker.try_consume(coupon, "u1"):
                wins.append(1)

        threads = [threading.Thread(target=redeem) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(wins) == 1
        assert tracker.get_usage("ONCE", "u1") == 1
