from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional
from sqlalchemy import func, desc, and_
from sqlmodel import Session, select

from app.core.errors import ValidationError
from app.models.coupon import Coupon
from app.models.stored_link import StoredLink

COUPON_STATUSES = ("claimed", "active", "expired")


class ReportingService:
    """Read-only views over coupons and the link pool."""

    def __init__(self, session: Session, clock: Callable[[], datetime] = datetime.utcnow):
        self.session = session
        self.clock = clock

    def _status_clause(self, status: str, now: datetime):
        if status == "claimed":
            return Coupon.is_claimed == True  # noqa: E712
        if status == "active":
            return and_(Coupon.is_claimed == False, Coupon.expires_at >= now)  # noqa: E712
        return and_(Coupon.is_claimed == False, Coupon.expires_at < now)  # noqa: E712

    def list_coupons(self, status: Optional[str] = None) -> List[Coupon]:
        query = select(Coupon)
        if status:
            if status not in COUPON_STATUSES:
                raise ValidationError(f"Status must be one of: {', '.join(COUPON_STATUSES)}")
            query = query.where(self._status_clause(status, self.clock()))
        return self.session.exec(query.order_by(desc(Coupon.created_at), desc(Coupon.id))).all()

    def _count(self, model, *clauses) -> int:
        return self.session.exec(select(func.count(model.id)).where(*clauses)).first() or 0

    def analytics(self, owner_id: str, created_by: str) -> Dict[str, Any]:
        now = self.clock()
        seven_days_ago = now - timedelta(days=7)

        total_links = self._count(StoredLink, StoredLink.created_by == owner_id)
        available_links = self._count(
            StoredLink, StoredLink.created_by == owner_id, StoredLink.is_used == False  # noqa: E712
        )

        mine = Coupon.created_by == created_by
        return {
            "links": {
                "total": total_links,
                "available": available_links,
                "used": total_links - available_links,
            },
            "coupons": {
                "total": self._count(Coupon, mine),
                "claimed": self._count(Coupon, mine, self._status_clause("claimed", now)),
                "active": self._count(Coupon, mine, self._status_clause("active", now)),
                "expired": self._count(Coupon, mine, self._status_clause("expired", now)),
            },
            "recentActivity": {
                "imports": self._count(
                    StoredLink, StoredLink.created_by == owner_id, StoredLink.created_at >= seven_days_ago
                ),
                "generated": self._count(Coupon, mine, Coupon.created_at >= seven_days_ago),
                "claims": self._count(
                    Coupon, mine, Coupon.is_claimed == True, Coupon.claimed_at >= seven_days_ago  # noqa: E712
                ),
            },
        }
