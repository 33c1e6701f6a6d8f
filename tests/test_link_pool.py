import pytest
from sqlalchemy import update
from sqlmodel import select

from app.core.errors import InsufficientSupply, ValidationError
from app.models.coupon import Coupon, CouponSource
from app.models.stored_link import StoredLink
from app.services.link_pool import parse_links

OWNER = "1"


def test_parse_links_splits_trims_and_drops_blanks():
    raw = ["https://a.example\n\n  https://b.example  ", "", None, "\r\nhttps://c.example\r\n"]
    assert parse_links(raw) == ["https://a.example", "https://b.example", "https://c.example"]


def test_import_accepts_any_non_empty_string(link_pool, session):
    count = link_pool.import_links(["not a url\nhttps://x.example"], OWNER)

    assert count == 2
    links = session.exec(select(StoredLink).order_by(StoredLink.id)).all()
    assert [l.link for l in links] == ["not a url", "https://x.example"]
    assert all(l.is_used is False and l.used_at is None for l in links)
    assert all(l.created_by == OWNER for l in links)


@pytest.mark.parametrize("urls", [[], None, ["", "  \n "]])
def test_import_without_links(link_pool, urls):
    with pytest.raises(ValidationError) as exc_info:
        link_pool.import_links(urls, OWNER)
    assert exc_info.value.message == "No links provided"


def test_import_handles_large_pastes(link_pool):
    paste = "\n".join(f"https://example.com/{i}" for i in range(500))
    assert link_pool.import_links([paste], OWNER) == 500
    assert link_pool.stats(OWNER) == {"total": 500, "available": 500}


def test_stats_are_scoped_to_owner(link_pool):
    link_pool.import_links(["https://a.example", "https://b.example"], OWNER)
    link_pool.import_links(["https://c.example"], "someone-else")

    assert link_pool.stats(OWNER) == {"total": 2, "available": 2}
    assert link_pool.stats("nobody") == {"total": 0, "available": 0}


def test_import_generate_stats_scenario(link_pool, coupon_service, clock):
    link_pool.import_links(["https://a.example\nhttps://b.example\nhttps://c.example"], OWNER)
    assert link_pool.stats(OWNER) == {"total": 3, "available": 3}

    coupons = coupon_service.generate_from_pool(2, 2, "seller-x", owner_id=OWNER, created_by="admin@example.com")

    assert len(coupons) == 2
    assert link_pool.stats(OWNER) == {"total": 3, "available": 1}
    for coupon in coupons:
        assert coupon.source == CouponSource.GENERATED
        assert coupon.name == "seller-x"
        assert coupon.created_by == "admin@example.com"
        assert coupon.is_claimed is False
    assert {c.claim_link for c in coupons} == {"https://a.example", "https://b.example"}


def test_generated_links_are_marked_used(link_pool, coupon_service, session, clock):
    link_pool.import_links(["https://a.example"], OWNER)
    coupon_service.generate_from_pool(1, 1, None, owner_id=OWNER, created_by="admin")

    link = session.exec(select(StoredLink)).one()
    assert link.is_used is True
    assert link.used_at == clock.now


def test_pool_exhaustion_has_no_side_effects(link_pool, coupon_service, session):
    link_pool.import_links(["https://a.example\nhttps://b.example\nhttps://c.example"], OWNER)

    with pytest.raises(InsufficientSupply) as exc_info:
        coupon_service.generate_from_pool(5, 2, "seller", owner_id=OWNER, created_by="admin")

    assert exc_info.value.available == 3
    assert exc_info.value.requested == 5
    assert exc_info.value.to_dict() == {
        "error": "Not enough unused links available",
        "available": 3,
        "requested": 5,
    }
    assert session.exec(select(Coupon)).all() == []
    assert link_pool.stats(OWNER) == {"total": 3, "available": 3}


def test_consumed_links_are_never_selected_again(link_pool, coupon_service):
    link_pool.import_links(["https://a.example\nhttps://b.example\nhttps://c.example"], OWNER)

    first = coupon_service.generate_from_pool(2, 2, None, owner_id=OWNER, created_by="admin")
    second = coupon_service.generate_from_pool(1, 2, None, owner_id=OWNER, created_by="admin")

    first_links = {c.claim_link for c in first}
    assert second[0].claim_link not in first_links
    with pytest.raises(InsufficientSupply):
        coupon_service.generate_from_pool(1, 2, None, owner_id=OWNER, created_by="admin")


def _race_on_first_reservation(coupon_service, session, monkeypatch):
    """Have a competing write mark the first candidate used right before we try it."""
    original = coupon_service._try_reserve
    raced = []

    def try_reserve(link_id, now):
        if not raced:
            raced.append(link_id)
            session.execute(update(StoredLink).where(StoredLink.id == link_id).values(is_used=True, used_at=now))
        return original(link_id, now)

    monkeypatch.setattr(coupon_service, "_try_reserve", try_reserve)
    return raced


def test_link_taken_during_reservation_is_skipped(link_pool, coupon_service, session, monkeypatch):
    link_pool.import_links(["https://a.example\nhttps://b.example\nhttps://c.example"], OWNER)
    raced = _race_on_first_reservation(coupon_service, session, monkeypatch)

    coupons = coupon_service.generate_from_pool(2, 2, None, owner_id=OWNER, created_by="admin")

    assert len(raced) == 1
    assert {c.claim_link for c in coupons} == {"https://b.example", "https://c.example"}


def test_pool_running_dry_mid_reservation_rolls_back(link_pool, coupon_service, session, monkeypatch):
    link_pool.import_links(["https://a.example\nhttps://b.example"], OWNER)
    _race_on_first_reservation(coupon_service, session, monkeypatch)

    with pytest.raises(InsufficientSupply) as exc_info:
        coupon_service.generate_from_pool(2, 2, None, owner_id=OWNER, created_by="admin")

    assert exc_info.value.available == 1
    assert session.exec(select(Coupon)).all() == []
    # The simulated competitor shared our transaction, so it was rolled back too
    assert link_pool.stats(OWNER) == {"total": 2, "available": 2}


@pytest.mark.parametrize("count, days", [(0, 2), (None, 2), (1, 0)])
def test_generate_validation(coupon_service, count, days):
    with pytest.raises(ValidationError):
        coupon_service.generate_from_pool(count, days, None, owner_id=OWNER, created_by="admin")


def test_list_links_filters_by_state(link_pool, coupon_service):
    link_pool.import_links(["https://a.example\nhttps://b.example"], OWNER)
    coupon_service.generate_from_pool(1, 2, None, owner_id=OWNER, created_by="admin")

    assert len(link_pool.list_links(OWNER)) == 2
    assert [l.link for l in link_pool.list_links(OWNER, used=True)] == ["https://a.example"]
    assert [l.link for l in link_pool.list_links(OWNER, used=False)] == ["https://b.example"]
