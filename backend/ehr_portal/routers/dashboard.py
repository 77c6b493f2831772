from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from ehr_portal.auth import require_roles, UserPrincipal
from ehr_portal.database import get_db
from ehr_portal.models.user import Role
from ehr_portal.schemas.dashboard import DashboardStats
from ehr_portal.services.dashboard_service import dashboard_service

router = APIRouter()


@router.get("/stats", response_model=DashboardStats)
async def get_dashboard_stats(
    current_user: UserPrincipal = Depends(require_roles(Role.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    return await dashboard_service.compute_stats(db)
