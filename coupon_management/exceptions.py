from typing import Any, Callable

from fastapi import Request
from fastapi.responses import JSONResponse


class CouponError(Exception):
    """ Base class for all coupon engine errors. """
    pass


class DuplicateCouponCodeError(CouponError):
    """ Raised when a coupon is registered under a code the catalog already holds. """

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Coupon code already exists: {code}")


class CouponNotFoundError(CouponError):
    """ Raised when a coupon code is not in the catalog. """

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Coupon not found: {code}")


def create_exception_handler(status_code: int, detail: Any) -> Callable[[Request, Exception], JSONResponse]:
    async def exception_handler(request: Request, exception: CouponError):
        return JSONResponse(
            content={"error": detail, "code": getattr(exception, "code", None)},
            status_code=status_code
        )

    return exception_handler
