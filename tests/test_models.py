from datetime import datetime

from sqlmodel import select

from app.models.coupon import Coupon, CouponSource
from app.models.stored_link import StoredLink


def test_naive_utc_timestamps_round_trip(session):
    created = datetime(2026, 3, 10, 15, 30, 0)
    expires = datetime(2026, 3, 12, 23, 59, 59, 999000)
    session.add(Coupon(code="STOREDCODE", claim_link="https://example.com/a", expires_at=expires,
                       created_by="admin", source=CouponSource.ADDED, created_at=created))
    session.add(StoredLink(link="https://example.com/pool", created_by="1", created_at=created))
    session.commit()

    coupon = session.exec(select(Coupon)).one()
    link = session.exec(select(StoredLink)).one()

    assert coupon.expires_at == expires
    assert coupon.created_at == created
    assert coupon.expires_at.tzinfo is None
    assert link.created_at == created
    assert link.used_at is None


def test_default_timestamps_are_filled(session):
    session.add(Coupon(code="DEFAULTTS1", claim_link="https://example.com/a",
                       expires_at=datetime(2030, 1, 1), created_by="admin"))
    session.add(StoredLink(link="https://example.com/pool", created_by="1"))
    session.commit()

    assert session.exec(select(Coupon)).one().created_at is not None
    assert session.exec(select(StoredLink)).one().created_at is not None
