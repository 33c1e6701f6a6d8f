from typing import List, Optional
from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from pydantic import BaseModel
from sqlmodel import Session

from app.db.session import get_session
from app.routers.auth import get_current_admin
from app.schemas import CouponBatch, CouponRead
from app.services.auth import AdminIdentity
from app.services.coupon import CouponService
from app.services.reporting import ReportingService

router = APIRouter()

# Request bodies (camelCase to match the admin UI)
class CouponCreate(BaseModel):
    claimLink: Optional[str] = None
    name: Optional[str] = None
    daysUntilExpiry: Optional[int] = None

class CouponBulkCreate(BaseModel):
    links: List[str] = []
    name: Optional[str] = None
    daysUntilExpiry: Optional[int] = None

class CouponExtend(BaseModel):
    couponId: int
    daysToAdd: Optional[int] = None

class CouponDelete(BaseModel):
    couponId: int

class CouponClaim(BaseModel):
    code: Optional[str] = None

class CouponExtended(BaseModel):
    message: str
    coupon: CouponRead

class ClaimResult(BaseModel):
    message: str
    claimLink: str

class RedeemResult(BaseModel):
    claimLink: str

def get_coupon_service(session: Session = Depends(get_session)) -> CouponService:
    return CouponService(session)

def get_reporting_service(session: Session = Depends(get_session)) -> ReportingService:
    return ReportingService(session)

def get_client_info(request: Request) -> tuple[Optional[str], Optional[str]]:
    """Requester IP and user agent, taken verbatim from the request."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
    else:
        ip = request.client.host if request.client else None
    return ip, request.headers.get("user-agent")


@router.get("", response_model=List[CouponRead])
def list_coupons(
    status: Optional[str] = Query(None, description="claimed | active | expired"),
    admin: AdminIdentity = Depends(get_current_admin),
    service: ReportingService = Depends(get_reporting_service)
):
    """List all coupons, newest first"""
    return service.list_coupons(status)

@router.post("", response_model=CouponRead, status_code=status.HTTP_201_CREATED)
def create_coupon(
    data: CouponCreate,
    admin: AdminIdentity = Depends(get_current_admin),
    service: CouponService = Depends(get_coupon_service)
):
    """Create a single coupon for a claim link"""
    return service.create(data.claimLink, data.name, data.daysUntilExpiry, created_by=admin.email)

@router.post("/bulk", response_model=List[CouponRead], status_code=status.HTTP_201_CREATED)
def create_bulk_coupons(
    data: CouponBulkCreate,
    admin: AdminIdentity = Depends(get_current_admin),
    service: CouponService = Depends(get_coupon_service)
):
    """Create one coupon per link"""
    return service.create_bulk(data.links, data.name, data.daysUntilExpiry, created_by=admin.email)

@router.post("/import", response_model=CouponBatch)
async def import_coupons(
    file: UploadFile = File(...),
    name: Optional[str] = Form(None),
    daysUntilExpiry: Optional[int] = Form(None),
    admin: AdminIdentity = Depends(get_current_admin),
    service: CouponService = Depends(get_coupon_service)
):
    """Create coupons from an uploaded text file, one claim link per line"""
    content = await file.read()
    coupons = service.import_file(content, name, daysUntilExpiry, created_by=admin.email)
    return {"count": len(coupons), "coupons": coupons}

@router.post("/extend", response_model=CouponExtended)
def extend_coupon(
    data: CouponExtend,
    admin: AdminIdentity = Depends(get_current_admin),
    service: CouponService = Depends(get_coupon_service)
):
    """Push a coupon's expiry out to the end of day N days from now"""
    coupon = service.extend(data.couponId, data.daysToAdd)
    return {"message": "Coupon expiration extended successfully", "coupon": coupon}

@router.post("/delete")
def delete_coupon(
    data: CouponDelete,
    admin: AdminIdentity = Depends(get_current_admin),
    service: CouponService = Depends(get_coupon_service)
):
    """Delete coupon"""
    service.delete(data.couponId)
    return {"success": True}

# Public endpoints

@router.post("/claim", response_model=ClaimResult)
def claim_coupon(
    data: CouponClaim,
    request: Request,
    service: CouponService = Depends(get_coupon_service)
):
    """Exchange a code for its claim link, exactly once"""
    ip, user_agent = get_client_info(request)
    claim_link = service.claim(data.code, ip, user_agent)
    return {"message": "Coupon claimed successfully", "claimLink": claim_link}

@router.post("/redeem", response_model=RedeemResult)
def redeem_coupon(
    data: CouponClaim,
    request: Request,
    service: CouponService = Depends(get_coupon_service)
):
    ip, user_agent = get_client_info(request)
    return {"claimLink": service.claim(data.code, ip, user_agent)}
