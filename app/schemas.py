from typing import Dict, List, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.models.coupon import CouponSource


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class CouponRead(CamelModel):
    id: int
    code: str
    claim_link: str
    name: str
    is_claimed: bool
    claimed_at: Optional[datetime] = None
    claimed_by: Optional[Dict[str, Optional[str]]] = None
    created_at: datetime
    expires_at: datetime
    created_by: str
    source: CouponSource


class StoredLinkRead(CamelModel):
    id: int
    link: str
    is_used: bool
    used_at: Optional[datetime] = None
    created_at: datetime
    created_by: str


class LinkStats(BaseModel):
    total: int
    available: int


class CouponBatch(BaseModel):
    count: int
    coupons: List[CouponRead]
