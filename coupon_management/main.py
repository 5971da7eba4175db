from fastapi import Depends, FastAPI, status

from .config import settings
from .exceptions import CouponNotFoundError, DuplicateCouponCodeError, create_exception_handler
from .logger import get_logger
from .models import (
    BestCouponRequest,
    BestCouponResponse,
    Coupon,
    CouponCreatedResponse,
    CouponListResponse,
)
from .service import CouponService

logger = get_logger("api")

# In-memory catalog and usage, process lifetime only
coupon_service = CouponService()


def get_coupon_service() -> CouponService:
    return coupon_service


# ---------------------------
# FastAPI App & Routes
# ---------------------------

app = FastAPI(title=settings.APP_NAME, debug=settings.DEBUG)

app.add_exception_handler(DuplicateCouponCodeError, create_exception_handler(409, "Coupon code already exists"))
app.add_exception_handler(CouponNotFoundError, create_exception_handler(404, "Coupon not found"))


@app.get("/")
@app.get("/health")
def health_check():
    return {"status": "ok", "message": f"{settings.APP_NAME} is running"}


@app.post("/coupons", response_model=CouponCreatedResponse, status_code=status.HTTP_201_CREATED)
def create_coupon(coupon: Coupon, service: CouponService = Depends(get_coupon_service)):
    service.register_coupon(coupon)
    return CouponCreatedResponse(message="Coupon created", coupon=coupon)


@app.get("/coupons", response_model=CouponListResponse)
def list_coupons(service: CouponService = Depends(get_coupon_service)):
    return CouponListResponse(coupons=service.list_coupons())


@app.get("/coupons/{code}", response_model=Coupon)
def get_coupon(code: str, service: CouponService = Depends(get_coupon_service)):
    return service.get_coupon(code)


@app.post("/best-coupon", response_model=BestCouponResponse)
def get_best_coupon(payload: BestCouponRequest, service: CouponService = Depends(get_coupon_service)):
    return service.evaluate_best(payload.user, payload.cart)


def run():
    import uvicorn
    logger.info(f"Starting {settings.APP_NAME} on {settings.HOST}:{settings.PORT}")
    uvicorn.run(
        "coupon_management.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=False,  # keep False to avoid Windows reload issues
    )


if __name__ == "__main__":
    run()
