from typing import List

from fastapi import APIRouter, Depends, Body, HTTPException, Path, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from app.api.v1.schemas.mark import SubmitMark, MarkResponse, ExamMarkResponse
from app.core.database import get_db
from app.core.exceptions import PortalError
from app.core.logger import logger
from app.services.mark import MarkService
from app.utils.roles import MarkerUser, StaffUser

router = APIRouter(prefix="/marks", tags=["Mark"])


@router.post("/", response_model=MarkResponse)
async def submit_mark(
        current_user: MarkerUser,
        data: SubmitMark = Body(...),
        db: AsyncSession = Depends(get_db),
):
    """
    Выставление или перезапись оценки по анонимному коду.

    Args:
        data: ID экзамена, значение кода и оценка
        current_user: Аутентифицированный проверяющий
        db: Асинхронная сессия SQLAlchemy

    Returns:
        MarkResponse: Единственная оценка кода

    Raises:
        HTTPException: 400 - Оценка вне 0..100 или код не занят
        HTTPException: 404 - Код не найден в этом экзамене
        HTTPException: 500 - Ошибка базы данных
    """
    try:
        return await MarkService.submit_mark(data.exam_id, data.qr_code, current_user["id"], data.score, db)
    except PortalError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail) from e
    except SQLAlchemyError as e:
        logger.error(f"[ВЫСТАВЛЕНИЕ ОЦЕНКИ] Ошибка для экзамена ID {data.exam_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to submit mark"
        ) from e


@router.get("/{exam_id}", response_model=List[ExamMarkResponse])
async def get_exam_marks(
        current_user: StaffUser,
        exam_id: str = Path(...),
        db: AsyncSession = Depends(get_db),
):
    """
    Оценки экзамена. Проверяющий видит только свои записи.
    """
    try:
        return await MarkService.get_exam_marks(exam_id, current_user, db)
    except PortalError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail) from e
