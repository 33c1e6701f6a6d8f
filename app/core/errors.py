from typing import Any, Dict, Optional


class CouponServiceError(Exception):
    """Base error rendered to clients as ``{"error": message, **extra}``."""

    status_code = 400

    def __init__(self, message: str, status_code: Optional[int] = None, **extra: Any):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, **self.extra}


class ValidationError(CouponServiceError):
    status_code = 400


class Unauthorized(CouponServiceError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class NotFound(CouponServiceError):
    status_code = 404


class AlreadyClaimed(CouponServiceError):
    status_code = 400


class Expired(CouponServiceError):
    status_code = 400


class InsufficientSupply(CouponServiceError):
    status_code = 400

    def __init__(self, available: int, requested: int):
        super().__init__(
            "Not enough unused links available",
            available=available,
            requested=requested,
        )
        self.available = available
        self.requested = requested


class InternalError(CouponServiceError):
    status_code = 500
