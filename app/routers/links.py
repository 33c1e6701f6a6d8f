import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.db.session import get_session
from app.routers.auth import get_current_admin
from app.routers.coupons import get_coupon_service
from app.schemas import CouponRead, LinkStats, StoredLinkRead
from app.services.auth import AdminIdentity
from app.services.coupon import CouponService
from app.services.link_pool import LinkPoolService

logger = logging.getLogger(__name__)

router = APIRouter()

class LinkImport(BaseModel):
    links: List[str] = []

class LinkImportResult(BaseModel):
    count: int
    stats: Optional[LinkStats] = None
    message: str

class GenerateCoupons(BaseModel):
    count: Optional[int] = None
    daysUntilExpiry: Optional[int] = None
    sellerName: Optional[str] = None

class GenerateResult(BaseModel):
    message: str
    count: int
    coupons: List[CouponRead]

def get_link_pool_service(session: Session = Depends(get_session)) -> LinkPoolService:
    return LinkPoolService(session)


@router.post("/import", response_model=LinkImportResult)
def import_links(
    data: LinkImport,
    admin: AdminIdentity = Depends(get_current_admin),
    service: LinkPoolService = Depends(get_link_pool_service)
):
    """Add pasted links to the pool, one per line"""
    count = service.import_links(data.links, owner_id=admin.id)

    # Stats refresh is best-effort; the import is already committed
    stats = None
    try:
        stats = service.stats(admin.id)
    except SQLAlchemyError:
        logger.warning("Link stats refresh failed after import", exc_info=True)

    return {"count": count, "stats": stats, "message": "Links imported successfully"}

@router.get("/stats", response_model=LinkStats)
def get_link_stats(
    admin: AdminIdentity = Depends(get_current_admin),
    service: LinkPoolService = Depends(get_link_pool_service)
):
    return service.stats(admin.id)

@router.get("", response_model=List[StoredLinkRead])
def list_links(
    used: Optional[bool] = None,
    limit: int = Query(100, ge=1, le=1000),
    admin: AdminIdentity = Depends(get_current_admin),
    service: LinkPoolService = Depends(get_link_pool_service)
):
    """Browse the pool, newest first"""
    return service.list_links(admin.id, used=used, limit=limit)

@router.post("/generate-coupons", response_model=GenerateResult, status_code=status.HTTP_201_CREATED)
def generate_coupons(
    data: GenerateCoupons,
    admin: AdminIdentity = Depends(get_current_admin),
    service: CouponService = Depends(get_coupon_service)
):
    """Generate coupons from unused pool links"""
    coupons = service.generate_from_pool(
        data.count,
        data.daysUntilExpiry,
        data.sellerName,
        owner_id=admin.id,
        created_by=admin.email,
    )
    return {"message": "Coupons generated successfully", "count": len(coupons), "coupons": coupons}
