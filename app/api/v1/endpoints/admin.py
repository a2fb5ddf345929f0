from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.schemas.exam import AdminStats
from app.core.database import get_db
from app.services.exam import ExamService
from app.utils.roles import AdminUser

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/stats", response_model=AdminStats)
async def get_stats(
        current_user: AdminUser,
        db: AsyncSession = Depends(get_db),
):
    return await ExamService.get_admin_stats(db)
