from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.schemas.exam import StudentExamResponse
from app.api.v1.schemas.mark import StudentMarkResponse
from app.core.database import get_db
from app.core.logger import logger
from app.services.exam import ExamService
from app.services.mark import MarkService
from app.utils.roles import StudentUser

router = APIRouter(prefix="/student", tags=["Student"])


@router.get("/exams", response_model=List[StudentExamResponse])
async def get_student_exams(
        current_user: StudentUser,
        db: AsyncSession = Depends(get_db),
):
    """
    Недавние экзамены с кодом, занятым текущим студентом, если он есть.
    """
    exams = await ExamService.get_student_exams(current_user["id"], db)
    logger.info(f"[ЭКЗАМЕНЫ СТУДЕНТА] Экзаменов: {len(exams)} для {current_user['email']}")
    return exams


@router.get("/marks", response_model=List[StudentMarkResponse])
async def get_student_marks(
        current_user: StudentUser,
        db: AsyncSession = Depends(get_db),
):
    return await MarkService.get_student_marks(current_user["id"], db)
