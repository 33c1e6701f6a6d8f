from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel

class StoredLink(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    link: str

    # Flips to True once, when the link backs a generated coupon
    is_used: bool = Field(default=False, index=True)
    used_at: Optional[datetime] = None

    created_by: str = Field(index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
