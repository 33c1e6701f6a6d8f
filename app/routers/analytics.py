from fastapi import APIRouter, Depends

from app.routers.auth import get_current_admin
from app.routers.coupons import get_reporting_service
from app.services.auth import AdminIdentity
from app.services.reporting import ReportingService

router = APIRouter()

@router.get("/stats")
def get_analytics_stats(
    admin: AdminIdentity = Depends(get_current_admin),
    service: ReportingService = Depends(get_reporting_service)
):
    """Link pool and coupon counts, plus activity over the last 7 days"""
    return service.analytics(owner_id=admin.id, created_by=admin.email)
