import logging
import secrets
import string
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.core.config import settings
from app.core.errors import (
    AlreadyClaimed,
    CouponServiceError,
    Expired,
    InsufficientSupply,
    InternalError,
    NotFound,
    ValidationError,
)
from app.models.coupon import Coupon, CouponSource
from app.models.stored_link import StoredLink
from app.services.link_pool import parse_links

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_letters + string.digits


def end_of_day(now: datetime, days: int) -> datetime:
    """Last millisecond of the UTC day ``days`` after ``now``."""
    target = now + timedelta(days=days)
    return target.replace(hour=23, minute=59, second=59, microsecond=999000)


def _require_days(days: Optional[int], field: str = "Days until expiry") -> int:
    if days is None or days < 1:
        raise ValidationError(f"{field} must be at least 1")
    if days > settings.MAX_EXPIRY_DAYS:
        raise ValidationError(f"{field} must be at most {settings.MAX_EXPIRY_DAYS}")
    return int(days)


class CouponService:
    def __init__(self, session: Session, clock: Callable[[], datetime] = datetime.utcnow):
        self.session = session
        self.clock = clock

    # Code allocation

    def generate_code(self) -> str:
        return "".join(secrets.choice(CODE_ALPHABET) for _ in range(settings.COUPON_CODE_LENGTH))

    def _allocate_code(self) -> str:
        for _ in range(settings.COUPON_CODE_ATTEMPTS):
            code = self.generate_code()
            taken = self.session.exec(select(Coupon.id).where(Coupon.code == code)).first()
            if taken is None:
                return code
            logger.warning("Coupon code collision, regenerating")
        raise InternalError("Could not allocate a unique coupon code")

    def _persist(self, build: Callable[[], List[Coupon]]) -> List[Coupon]:
        """Run ``build`` and commit; regenerate codes if the unique constraint fires."""
        for attempt in range(1, settings.COUPON_CODE_ATTEMPTS + 1):
            try:
                coupons = build()
                self.session.commit()
            except IntegrityError:
                self.session.rollback()
                logger.warning("Unique code conflict on commit (attempt %s)", attempt)
                continue
            except CouponServiceError:
                self.session.rollback()
                raise
            for coupon in coupons:
                self.session.refresh(coupon)
            return coupons
        raise InternalError("Could not allocate a unique coupon code")

    def _new_coupon(self, claim_link: str, name: Optional[str], expires_at: datetime,
                    created_by: str, source: CouponSource, now: datetime) -> Coupon:
        coupon = Coupon(
            code=self._allocate_code(),
            claim_link=claim_link,
            name=(name or "").strip() or settings.DEFAULT_COUPON_NAME,
            expires_at=expires_at,
            created_by=created_by,
            source=source,
            created_at=now,
        )
        self.session.add(coupon)
        return coupon

    # Creation

    def create(self, claim_link: Optional[str], name: Optional[str], days_until_expiry: Optional[int],
               created_by: str, source: CouponSource = CouponSource.ADDED) -> Coupon:
        claim_link = (claim_link or "").strip()
        if not claim_link:
            raise ValidationError("Claim link is required")
        days = _require_days(days_until_expiry)

        def build() -> List[Coupon]:
            now = self.clock()
            return [self._new_coupon(claim_link, name, end_of_day(now, days), created_by, source, now)]

        coupon = self._persist(build)[0]
        logger.info("Coupon %s created by %s (source=%s)", coupon.code, created_by, source.value)
        return coupon

    def create_bulk(self, links: Optional[Sequence[str]], name: Optional[str], days_until_expiry: Optional[int],
                    created_by: str, source: CouponSource = CouponSource.ADDED) -> List[Coupon]:
        if not links:
            raise ValidationError("Links are required")
        cleaned = [(link or "").strip() for link in links]
        if any(not link for link in cleaned):
            raise ValidationError("Claim link is required")
        days = _require_days(days_until_expiry)

        def build() -> List[Coupon]:
            now = self.clock()
            expires_at = end_of_day(now, days)
            return [self._new_coupon(link, name, expires_at, created_by, source, now) for link in cleaned]

        coupons = self._persist(build)
        logger.info("%s coupons created by %s (source=%s)", len(coupons), created_by, source.value)
        return coupons

    def import_file(self, content: bytes, name: Optional[str], days_until_expiry: Optional[int],
                    created_by: str) -> List[Coupon]:
        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError:
            raise ValidationError("File must be UTF-8 text")
        links = parse_links([text])
        if not links:
            raise ValidationError("No valid links found in file")
        if days_until_expiry is None:
            days_until_expiry = settings.IMPORT_DEFAULT_EXPIRY_DAYS
        return self.create_bulk(links, name, days_until_expiry, created_by, source=CouponSource.IMPORTED)

    def generate_from_pool(self, count: Optional[int], days_until_expiry: Optional[int], seller_name: Optional[str],
                           owner_id: str, created_by: str) -> List[Coupon]:
        """Create ``count`` coupons backed by unused pool links.

        Links are reserved with a conditional update so two concurrent requests
        can never consume the same link. Reservations and coupons share one
        transaction: a short pool rolls everything back.
        """
        if count is None or count < 1:
            raise ValidationError("Count must be at least 1")
        days = _require_days(days_until_expiry)

        available = self._available_links(owner_id)
        if available < count:
            raise InsufficientSupply(available=available, requested=count)

        def build() -> List[Coupon]:
            now = self.clock()
            expires_at = end_of_day(now, days)
            reserved = self._reserve_links(owner_id, count, now)
            return [
                self._new_coupon(link.link, seller_name, expires_at, created_by, CouponSource.GENERATED, now)
                for link in reserved
            ]

        coupons = self._persist(build)
        logger.info("%s coupons generated from pool for %s", len(coupons), created_by)
        return coupons

    def _available_links(self, owner_id: str) -> int:
        return self.session.exec(
            select(func.count(StoredLink.id)).where(
                StoredLink.created_by == owner_id, StoredLink.is_used == False  # noqa: E712
            )
        ).one()

    def _reserve_links(self, owner_id: str, count: int, now: datetime) -> List[StoredLink]:
        reserved: List[StoredLink] = []
        tried: List[int] = []
        while len(reserved) < count:
            query = select(StoredLink).where(
                StoredLink.created_by == owner_id, StoredLink.is_used == False  # noqa: E712
            )
            if tried:
                query = query.where(StoredLink.id.not_in(tried))
            candidates = self.session.exec(
                query.order_by(StoredLink.id).limit(count - len(reserved))
            ).all()
            if not candidates:
                raise InsufficientSupply(available=len(reserved), requested=count)

            for candidate in candidates:
                tried.append(candidate.id)
                if self._try_reserve(candidate.id, now):
                    reserved.append(candidate)
                else:
                    logger.info("Stored link %s already reserved, skipping", candidate.id)
        return reserved

    def _try_reserve(self, link_id: int, now: datetime) -> bool:
        """Flip one link to used; False if a concurrent request got there first."""
        result = self.session.execute(
            update(StoredLink)
            .where(StoredLink.id == link_id, StoredLink.is_used == False)  # noqa: E712
            .values(is_used=True, used_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    # Lifecycle

    def get(self, coupon_id: int) -> Coupon:
        coupon = self.session.get(Coupon, coupon_id)
        if not coupon:
            raise NotFound("Coupon not found")
        return coupon

    def claim(self, code: Optional[str], ip: Optional[str], user_agent: Optional[str]) -> str:
        """Atomically mark the coupon claimed and return its claim link."""
        code = (code or "").strip()
        if not code:
            raise ValidationError("Coupon code is required")

        now = self.clock()
        result = self.session.execute(
            update(Coupon)
            .where(
                Coupon.code == code,
                Coupon.is_claimed == False,  # noqa: E712
                Coupon.expires_at >= now,
            )
            .values(is_claimed=True, claimed_at=now, claimed_by={"ip": ip, "userAgent": user_agent})
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            claim_link = self.session.exec(select(Coupon.claim_link).where(Coupon.code == code)).one()
            self.session.commit()
            logger.info("Coupon %s claimed from %s", code, ip)
            return claim_link

        self.session.rollback()
        coupon = self.session.exec(select(Coupon).where(Coupon.code == code)).first()
        if not coupon:
            raise NotFound("Coupon not found")
        if coupon.is_claimed:
            raise AlreadyClaimed("Coupon has already been claimed")
        raise Expired("Coupon has expired")

    def extend(self, coupon_id: int, days_to_add: Optional[int]) -> Coupon:
        days = _require_days(days_to_add, field="Days to add")
        coupon = self.get(coupon_id)
        if coupon.is_claimed:
            raise AlreadyClaimed("Cannot extend a claimed coupon")

        new_expiry = end_of_day(self.clock(), days)
        # Reset relative to today, but never shorten an existing expiry
        result = self.session.execute(
            update(Coupon)
            .where(
                Coupon.id == coupon_id,
                Coupon.is_claimed == False,  # noqa: E712
                Coupon.expires_at < new_expiry,
            )
            .values(expires_at=new_expiry)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        self.session.refresh(coupon)
        if result.rowcount == 0 and coupon.is_claimed:
            raise AlreadyClaimed("Cannot extend a claimed coupon")
        logger.info("Coupon %s expiry set to %s", coupon.code, coupon.expires_at.isoformat())
        return coupon

    def delete(self, coupon_id: int) -> None:
        coupon = self.get(coupon_id)
        code = coupon.code
        self.session.delete(coupon)
        self.session.commit()
        logger.info("Coupon %s deleted", code)
