"""
Admin dashboard endpoints.
"""

from fastapi import APIRouter, Depends, status

from renteasy.models.user import User
from renteasy.schemas.dashboard import AdminMetricsResponse
from renteasy.schemas.error import get_auth_error_responses
from renteasy.services.dashboard import DashboardService
from renteasy.utils.dependencies import get_dashboard_service, require_admin


router = APIRouter(prefix="/admin/dashboard", tags=["Admin"])


@router.get(
    "/metrics",
    response_model=AdminMetricsResponse,
    status_code=status.HTTP_200_OK,
    summary="Platform metrics",
    description="Listing and user counts plus platform-fee revenue",
    responses=get_auth_error_responses()
)
async def admin_metrics(
    current_user: User = Depends(require_admin),
    dashboard_service: DashboardService = Depends(get_dashboard_service)
) -> AdminMetricsResponse:
    metrics = await dashboard_service.admin_metrics()
    return AdminMetricsResponse.model_validate(metrics)
