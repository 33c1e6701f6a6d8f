from typing import Optional, Dict
from datetime import datetime
from sqlmodel import Field, SQLModel, Column
from sqlalchemy import JSON
from enum import Enum

class CouponSource(str, Enum):
    ADDED = "added"  # Entered manually (single or bulk)
    IMPORTED = "imported"  # Uploaded text file
    GENERATED = "generated"  # Drawn from the link pool

class Coupon(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    # Public code typed by the end user
    code: str = Field(unique=True, index=True)

    # Payload revealed once on claim
    claim_link: str
    name: str = Field(default="general")

    # Claim state (append-once)
    is_claimed: bool = Field(default=False, index=True)
    claimed_at: Optional[datetime] = None
    # {"ip": ..., "userAgent": ...}
    claimed_by: Optional[Dict[str, Optional[str]]] = Field(default=None, sa_column=Column(JSON))

    # Validity
    expires_at: datetime

    # Provenance
    created_by: str
    source: CouponSource = Field(default=CouponSource.ADDED)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
