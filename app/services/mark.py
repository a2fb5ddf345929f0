from typing import List, Dict, Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import CodeNotClaimed, CodeNotFound, MissingField, ScoreOutOfRange
from app.core.logger import logger
from app.models import AnonCode, ExamSession, MarkEntry
from app.services.exam import ExamService
from app.utils.clock import utcnow
from app.utils.roles import Role

MIN_SCORE = 0
MAX_SCORE = 100


class MarkService:
    @staticmethod
    def validate_score(score: Optional[float]) -> float:
        if score is None:
            raise MissingField("Score is required")
        # проверка диапазоном отсекает и NaN
        if not (MIN_SCORE <= score <= MAX_SCORE):
            logger.warning(f"[ВЫСТАВЛЕНИЕ ОЦЕНКИ] Оценка вне диапазона: {score}")
            raise ScoreOutOfRange()
        return score

    @staticmethod
    async def _get_mark_for_code(code_id: str, db: AsyncSession) -> Optional[MarkEntry]:
        result = await db.execute(select(MarkEntry).where(MarkEntry.code_id == code_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def _overwrite_score(entry: MarkEntry, score: float, db: AsyncSession) -> MarkEntry:
        entry.score = score
        entry.updated_at = utcnow()
        await db.commit()
        await db.refresh(entry)
        return entry

    @staticmethod
    async def submit_mark(
            exam_id: str,
            code_value: str,
            marker_id: str,
            score: float,
            db: AsyncSession
    ) -> MarkEntry:
        """
        Выставление оценки по анонимному коду.

        У кода не больше одной оценки: повторная отправка перезаписывает
        существующую запись, а не добавляет вторую.

        Args:
            exam_id: ID экзамена
            code_value: Код, напечатанный на работе
            marker_id: ID проверяющего
            score: Оценка в диапазоне [0, 100]
            db: Асинхронная сессия SQLAlchemy

        Returns:
            MarkEntry: Созданная или обновленная оценка

        Raises:
            ScoreOutOfRange: Оценка вне [0, 100]
            CodeNotFound: Код не найден в этом экзамене
            CodeNotClaimed: Код еще никем не занят
        """
        score = MarkService.validate_score(score)

        result = await db.execute(
            select(AnonCode).where(AnonCode.code_value == code_value, AnonCode.exam_id == exam_id)
        )
        code = result.scalar_one_or_none()
        if not code:
            logger.warning(f"[ВЫСТАВЛЕНИЕ ОЦЕНКИ] Неизвестный код для экзамена ID {exam_id}")
            raise CodeNotFound()

        code_id = code.id
        if code.assigned_to is None:
            logger.warning(f"[ВЫСТАВЛЕНИЕ ОЦЕНКИ] Код {code_id} не занят")
            raise CodeNotClaimed()

        existing = await MarkService._get_mark_for_code(code_id, db)
        if existing:
            entry = await MarkService._overwrite_score(existing, score, db)
            logger.info(f"[ВЫСТАВЛЕНИЕ ОЦЕНКИ] Оценка обновлена для кода {code_id}: {score}")
            return entry

        now = utcnow()
        entry = MarkEntry(
            exam_id=exam_id,
            code_id=code_id,
            score=score,
            marker_id=marker_id,
            created_at=now,
            updated_at=now,
        )
        db.add(entry)
        try:
            await db.commit()
        except IntegrityError:
            # параллельная отправка успела создать запись, обновляем ее
            await db.rollback()
            existing = await MarkService._get_mark_for_code(code_id, db)
            if existing is None:
                raise
            entry = await MarkService._overwrite_score(existing, score, db)
            logger.info(f"[ВЫСТАВЛЕНИЕ ОЦЕНКИ] Оценка обновлена после конфликта вставки для кода {code_id}: {score}")
            return entry

        await db.refresh(entry)
        logger.info(f"[ВЫСТАВЛЕНИЕ ОЦЕНКИ] Оценка выставлена для кода {code_id}: {score}")
        return entry

    @staticmethod
    async def get_exam_marks(exam_id: str, current_user: dict, db: AsyncSession) -> List[Dict[str, Any]]:
        """
        Оценки экзамена, новые первыми, со значением кода.

        Проверяющий видит только свои записи, администратор видит все.
        """
        await ExamService.get_exam(exam_id, db)

        stmt = (
            select(MarkEntry, AnonCode.code_value)
            .join(AnonCode, AnonCode.id == MarkEntry.code_id)
            .where(MarkEntry.exam_id == exam_id)
            .order_by(MarkEntry.created_at.desc())
        )
        if current_user["role"] == Role.MARKER:
            stmt = stmt.where(MarkEntry.marker_id == current_user["id"])

        result = await db.execute(stmt)
        return [
            {
                "id": mark.id,
                "exam_id": mark.exam_id,
                "code_id": mark.code_id,
                "code_value": code_value,
                "score": mark.score,
                "marker_id": mark.marker_id,
                "created_at": mark.created_at,
                "updated_at": mark.updated_at,
            }
            for mark, code_value in result.all()
        ]

    @staticmethod
    async def get_student_marks(student_id: str, db: AsyncSession) -> List[Dict[str, Any]]:
        result = await db.execute(
            select(MarkEntry.score, ExamSession.course_name, ExamSession.date, ExamSession.duration)
            .join(AnonCode, AnonCode.id == MarkEntry.code_id)
            .join(ExamSession, ExamSession.id == MarkEntry.exam_id)
            .where(AnonCode.assigned_to == student_id)
            .order_by(ExamSession.date.desc())
        )
        return [
            {
                "score": score,
                "exam": {"course_name": course_name, "date": date, "duration": duration},
            }
            for score, course_name, date, duration in result.all()
        ]
