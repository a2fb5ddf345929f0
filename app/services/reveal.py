from typing import List, Dict, Any, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logger import logger
from app.models import AnonCode, MarkEntry, User
from app.services.exam import ExamService
from app.utils.csv_export import generate_results_csv

UNKNOWN = "Unknown"


class RevealService:
    @staticmethod
    async def get_reveal_mapping(exam_id: str, db: AsyncSession) -> List[Dict[str, Any]]:
        """
        Сопоставление занятых кодов экзамена со студентами и оценками.

        Незанятые коды не раскрываются. Для занятого кода без оценки score
        равен None. Метод только читает данные и отражает состояние на момент
        запроса.

        Args:
            exam_id: ID экзамена
            db: Асинхронная сессия SQLAlchemy

        Returns:
            List[dict]: student_name, student_email, qr_code, score в порядке привязки кодов

        Raises:
            ExamNotFound: Экзамен не найден
        """
        await ExamService.get_exam(exam_id, db)

        result = await db.execute(
            select(User.name, User.email, AnonCode.code_value, MarkEntry.score)
            .select_from(AnonCode)
            .outerjoin(User, User.id == AnonCode.assigned_to)
            .outerjoin(MarkEntry, MarkEntry.code_id == AnonCode.id)
            .where(AnonCode.exam_id == exam_id, AnonCode.assigned_to.is_not(None))
            .order_by(AnonCode.assigned_at, AnonCode.code_value)
        )

        mappings = [
            {
                "student_name": name or UNKNOWN,
                "student_email": email or UNKNOWN,
                "qr_code": code_value,
                "score": score,
            }
            for name, email, code_value, score in result.all()
        ]

        logger.info(f"[РАСКРЫТИЕ] Раскрыто кодов: {len(mappings)}, экзамен ID {exam_id}")
        return mappings

    @staticmethod
    async def export_results_csv(exam_id: str, db: AsyncSession) -> Tuple[bytes, str]:
        """
        Выгрузка результатов экзамена в CSV.

        Returns:
            Tuple[bytes, str]: Содержимое CSV и имя файла
        """
        exam = await ExamService.get_exam(exam_id, db)
        mappings = await RevealService.get_reveal_mapping(exam_id, db)
        return generate_results_csv(mappings), f"{exam.course_name}-results.csv"
