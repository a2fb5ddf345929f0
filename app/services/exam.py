from datetime import datetime, timedelta, timezone
from typing import List, Dict, Any

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from app.api.v1.schemas.exam import CreateExam
from app.core.config import settings
from app.core.exceptions import ExamNotFound
from app.core.logger import logger
from app.models import AnonCode, ExamSession, MarkEntry
from app.utils.clock import utcnow


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ExamService:
    @staticmethod
    async def create_exam(exam_data: CreateExam, db: AsyncSession) -> ExamSession:
        """
        Создание новой экзаменационной сессии.

        Args:
            exam_data: Дисциплина, дата и необязательная длительность в минутах
            db: Асинхронная сессия SQLAlchemy

        Returns:
            ExamSession: Созданный экзамен
        """
        try:
            new_exam = ExamSession(
                course_name=exam_data.course_name,
                date=_as_utc(exam_data.date),
                duration=exam_data.duration or settings.DEFAULT_EXAM_DURATION,
                created_at=utcnow(),
            )

            db.add(new_exam)
            await db.commit()
            await db.refresh(new_exam)

            logger.info(f"[СОЗДАНИЕ ЭКЗАМЕНА] Создан экзамен ID {new_exam.id}, дисциплина: {new_exam.course_name}")
            return new_exam

        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"[СОЗДАНИЕ ЭКЗАМЕНА] Ошибка при создании экзамена: {str(e)}")
            raise

    @staticmethod
    async def get_exam(exam_id: str, db: AsyncSession) -> ExamSession:
        """
        Получение экзамена по ID.

        Raises:
            ExamNotFound: Экзамен не найден
        """
        result = await db.execute(select(ExamSession).where(ExamSession.id == exam_id))
        exam = result.scalar_one_or_none()

        if not exam:
            logger.warning(f"[ДАННЫЕ ЭКЗАМЕНА] Экзамен не найден: ID {exam_id}")
            raise ExamNotFound()

        return exam

    @staticmethod
    async def get_all_exams(db: AsyncSession) -> List[Dict[str, Any]]:
        """
        Список всех экзаменов, новые первыми, со счетчиками кодов.

        Returns:
            List[dict]: Поля экзамена и total_codes, claimed_codes, unclaimed_codes
        """
        stmt = (
            select(
                ExamSession,
                func.count(AnonCode.id).label("total_codes"),
                func.count(AnonCode.assigned_to).label("claimed_codes"),
            )
            .outerjoin(AnonCode, AnonCode.exam_id == ExamSession.id)
            .group_by(ExamSession.id)
            .order_by(ExamSession.date.desc())
        )
        result = await db.execute(stmt)

        exams = []
        for exam, total_codes, claimed_codes in result.all():
            exams.append({
                "id": exam.id,
                "course_name": exam.course_name,
                "date": exam.date,
                "duration": exam.duration,
                "created_at": exam.created_at,
                "total_codes": total_codes,
                "claimed_codes": claimed_codes,
                "unclaimed_codes": total_codes - claimed_codes,
            })

        logger.info(f"[ПОЛУЧЕНИЕ ЭКЗАМЕНОВ] Получено экзаменов: {len(exams)}")
        return exams

    @staticmethod
    def active_since() -> datetime:
        return utcnow() - timedelta(days=settings.ACTIVE_EXAM_WINDOW_DAYS)

    @staticmethod
    async def get_student_exams(student_id: str, db: AsyncSession) -> List[Dict[str, Any]]:
        """
        Недавние экзамены студента вместе с занятым им кодом.

        Возвращаются только экзамены из активного окна.

        Args:
            student_id: ID студента
            db: Асинхронная сессия SQLAlchemy

        Returns:
            List[dict]: Поля экзамена и claimed_code (AnonCode или None)
        """
        result = await db.execute(
            select(ExamSession)
            .where(ExamSession.date >= ExamService.active_since())
            .order_by(ExamSession.date.desc())
        )
        exams = result.scalars().all()
        if not exams:
            return []

        result = await db.execute(
            select(AnonCode).where(
                AnonCode.assigned_to == student_id,
                AnonCode.exam_id.in_([exam.id for exam in exams])
            )
        )
        claimed = {code.exam_id: code for code in result.scalars().all()}

        return [
            {
                "id": exam.id,
                "course_name": exam.course_name,
                "date": exam.date,
                "duration": exam.duration,
                "created_at": exam.created_at,
                "claimed_code": claimed.get(exam.id),
            }
            for exam in exams
        ]

    @staticmethod
    async def get_admin_stats(db: AsyncSession) -> Dict[str, int]:
        """
        Счетчики для панели администратора.

        Экзамен ожидает раскрытия, пока занятых кодов у него больше, чем оценок.
        """
        total_exams = await db.scalar(select(func.count()).select_from(ExamSession))
        active_exams = await db.scalar(
            select(func.count()).select_from(ExamSession).where(ExamSession.date >= ExamService.active_since())
        )
        total_codes = await db.scalar(select(func.count()).select_from(AnonCode))

        claimed = (
            select(AnonCode.exam_id, func.count().label("claimed"))
            .where(AnonCode.assigned_to.is_not(None))
            .group_by(AnonCode.exam_id)
            .subquery()
        )
        marked = (
            select(MarkEntry.exam_id, func.count().label("marked"))
            .group_by(MarkEntry.exam_id)
            .subquery()
        )
        pending_reveals = await db.scalar(
            select(func.count())
            .select_from(claimed)
            .outerjoin(marked, marked.c.exam_id == claimed.c.exam_id)
            .where(claimed.c.claimed > func.coalesce(marked.c.marked, 0))
        )

        return {
            "total_exams": total_exams or 0,
            "active_exams": active_exams or 0,
            "total_qr_codes": total_codes or 0,
            "pending_reveals": pending_reveals or 0,
        }
