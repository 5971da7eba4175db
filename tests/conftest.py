"""
Pytest configuration and fixtures for coupon management tests.
"""
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from coupon_management.main import app, get_coupon_service
from coupon_management.models import Cart, CartItem, Coupon, UserContext
from coupon_management.service import CouponService

NOW = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_coupon(code: str = "SAVE10", **overrides) -> Coupon:
    data = {
        "code": code,
        "description": f"{code} test coupon",
        "discountType": "PERCENT",
        "discountValue": 10,
        "startDate": "2000-01-01T00:00:00Z",
        "endDate": "2999-12-31T23:59:59Z",
    }
    data.update(overrides)
    return Coupon(**data)


def make_cart(*items) -> Cart:
    return Cart(items=[CartItem(**item) for item in items])


@pytest.fixture
def service() -> CouponService:
    return CouponService()


@pytest.fixture
def user() -> UserContext:
    return UserContext(userId="u1", userTier="REGULAR", country="IN", lifetimeSpend=500, ordersPlaced=3)


@pytest.fixture
def cart_100() -> Cart:
    return make_cart({"productId": "p1", "category": "electronics", "unitPrice": 50, "quantity": 2})


@pytest.fixture
def client(service):
    """Test client bound to a fresh service."""
    app.dependency_overrides[get_coupon_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()
