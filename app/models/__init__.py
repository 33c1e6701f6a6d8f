# Import all models to register them with SQLModel
from app.models.coupon import Coupon, CouponSource
from app.models.stored_link import StoredLink

__all__ = [
    "Coupon",
    "CouponSource",
    "StoredLink",
]
