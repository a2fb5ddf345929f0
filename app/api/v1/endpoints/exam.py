from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path, Body, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from starlette.responses import Response

from app.api.v1.schemas.code import (
    AnonCodeResponse, ClaimCodeRequest, GenerateCodesRequest, GenerateCodesResponse, RevealMapping
)
from app.api.v1.schemas.exam import CreateExam, ExamResponse, ExamWithStats
from app.core.database import get_db
from app.core.exceptions import PortalError
from app.core.logger import logger
from app.services.code import CodeService
from app.services.exam import ExamService
from app.services.reveal import RevealService
from app.utils.files import attachment_header
from app.utils.roles import AdminUser, CurrentUser, StudentUser

router = APIRouter(prefix="/exams", tags=["Exam"])


@router.get("/", response_model=List[ExamWithStats])
async def get_exams(
        current_user: CurrentUser,
        db: AsyncSession = Depends(get_db),
):
    """
    Список всех экзаменов, новые первыми, со счетчиками кодов.
    """
    try:
        return await ExamService.get_all_exams(db)
    except SQLAlchemyError as e:
        logger.error(f"[ПОЛУЧЕНИЕ ЭКЗАМЕНОВ] Ошибка при получении экзаменов: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch exams"
        ) from e


@router.post("/", response_model=ExamResponse, status_code=status.HTTP_201_CREATED)
async def create_exam(
        exam: CreateExam,
        current_user: AdminUser,
        db: AsyncSession = Depends(get_db),
):
    """
    Создание новой экзаменационной сессии.

    Args:
        exam: Дисциплина, дата и необязательная длительность
        current_user: Аутентифицированный администратор
        db: Асинхронная сессия SQLAlchemy

    Returns:
        ExamResponse: Созданный экзамен
    """
    try:
        return await ExamService.create_exam(exam, db)
    except SQLAlchemyError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create exam"
        ) from e


@router.get("/{exam_id}", response_model=ExamResponse)
async def get_exam(
        current_user: CurrentUser,
        exam_id: str = Path(...),
        db: AsyncSession = Depends(get_db),
):
    try:
        return await ExamService.get_exam(exam_id, db)
    except PortalError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail) from e


@router.get("/{exam_id}/codes", response_model=List[AnonCodeResponse])
async def get_exam_codes(
        current_user: AdminUser,
        exam_id: str = Path(...),
        db: AsyncSession = Depends(get_db),
):
    try:
        return await CodeService.get_exam_codes(exam_id, db)
    except PortalError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail) from e


@router.post("/{exam_id}/generate-codes", response_model=GenerateCodesResponse)
async def generate_codes(
        current_user: AdminUser,
        exam_id: str = Path(...),
        data: GenerateCodesRequest = Body(...),
        db: AsyncSession = Depends(get_db),
):
    """
    Генерация партии анонимных QR-кодов для экзамена.

    Raises:
        HTTPException: 400 - Количество вне 1..500
        HTTPException: 404 - Экзамен не найден
        HTTPException: 500 - Ошибка базы данных
    """
    try:
        codes = await CodeService.generate_codes(exam_id, data.count, db)
    except PortalError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail) from e
    except SQLAlchemyError as e:
        logger.error(f"[ГЕНЕРАЦИЯ КОДОВ] Ошибка для экзамена ID {exam_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate codes"
        ) from e

    return GenerateCodesResponse(
        message=f"{len(codes)} QR codes generated",
        count=len(codes),
        codes=[AnonCodeResponse.model_validate(code) for code in codes],
    )


@router.get("/{exam_id}/download-pdf")
async def download_codes_pdf(
        current_user: AdminUser,
        exam_id: str = Path(...),
        db: AsyncSession = Depends(get_db),
):
    """
    Скачивание листа QR-кодов экзамена для печати.

    Raises:
        HTTPException: 400 - Коды еще не сгенерированы
        HTTPException: 404 - Экзамен не найден
    """
    try:
        pdf, filename = await CodeService.build_codes_pdf(exam_id, db)
    except PortalError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail) from e

    logger.info(f"[ЛИСТ QR] PDF скачан для экзамена ID {exam_id}")
    return Response(content=pdf, media_type="application/pdf", headers=attachment_header(filename))


@router.patch("/{exam_id}/claim-code", response_model=AnonCodeResponse)
async def claim_code(
        current_user: StudentUser,
        exam_id: str = Path(...),
        data: ClaimCodeRequest = Body(...),
        db: AsyncSession = Depends(get_db),
):
    """
    Привязка отсканированного QR-кода к текущему студенту.

    Raises:
        HTTPException: 400 - Пустое значение кода
        HTTPException: 404 - Код не найден в этом экзамене
        HTTPException: 409 - Код уже занят или у студента уже есть код
    """
    try:
        return await CodeService.claim_code(exam_id, current_user["id"], data.code_value, db)
    except PortalError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail) from e
    except SQLAlchemyError as e:
        logger.error(f"[ПРИВЯЗКА КОДА] Ошибка для экзамена ID {exam_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to claim code"
        ) from e


@router.get("/{exam_id}/reveal", response_model=List[RevealMapping])
async def get_reveal_mapping(
        current_user: AdminUser,
        exam_id: str = Path(...),
        db: AsyncSession = Depends(get_db),
):
    """
    Раскрытие: какой студент занял каждый код, и его оценка.
    """
    try:
        return await RevealService.get_reveal_mapping(exam_id, db)
    except PortalError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail) from e


@router.get("/{exam_id}/export-csv")
async def export_results_csv(
        current_user: AdminUser,
        exam_id: str = Path(...),
        db: AsyncSession = Depends(get_db),
):
    try:
        content, filename = await RevealService.export_results_csv(exam_id, db)
    except PortalError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail) from e

    logger.info(f"[ВЫГРУЗКА CSV] Результаты выгружены для экзамена ID {exam_id}")
    return Response(content=content, media_type="text/csv", headers=attachment_header(filename))
