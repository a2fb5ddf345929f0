from typing import List, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.exceptions import (
    AlreadyClaimed, AlreadyHasCode, CodeNotFound, InvalidCount, MissingField, NoCodesGenerated
)
from app.core.logger import logger
from app.models import AnonCode
from app.services.exam import ExamService
from app.utils.clock import utcnow
from app.utils.pdf import generate_qr_codes_pdf
from app.utils.qr import generate_code_value

MAX_INSERT_ATTEMPTS = 3


class CodeService:
    @staticmethod
    async def _fresh_code_values(count: int, db: AsyncSession) -> List[str]:
        """
        Генерация `count` различных значений кодов, которых еще нет в базе.

        Значения, уже присутствующие в базе, отбрасываются и генерируются заново,
        так что коллизия стоит одной замены, а не всей партии. Порядок генерации
        сохраняется.
        """
        values: List[str] = []
        seen = set()
        while len(values) < count:
            candidates: List[str] = []
            while len(values) + len(candidates) < count:
                value = generate_code_value()
                if value not in seen:
                    seen.add(value)
                    candidates.append(value)

            result = await db.execute(
                select(AnonCode.code_value).where(AnonCode.code_value.in_(candidates))
            )
            taken = set(result.scalars().all())
            if taken:
                logger.warning(f"[ГЕНЕРАЦИЯ КОДОВ] Коллизий значений: {len(taken)}, генерируем заново")
            values.extend(value for value in candidates if value not in taken)

        return values

    @staticmethod
    async def generate_codes(exam_id: str, count: int, db: AsyncSession) -> List[AnonCode]:
        """
        Генерация партии незанятых анонимных кодов для экзамена.

        Args:
            exam_id: ID экзамена
            count: Количество кодов, 1..MAX_CODES_PER_BATCH
            db: Асинхронная сессия SQLAlchemy

        Returns:
            List[AnonCode]: Созданные коды в порядке генерации

        Raises:
            InvalidCount: Количество вне допустимого диапазона
            ExamNotFound: Экзамен не найден
        """
        max_count = settings.MAX_CODES_PER_BATCH
        if count is None or count < 1 or count > max_count:
            logger.warning(f"[ГЕНЕРАЦИЯ КОДОВ] Недопустимое количество {count} для экзамена ID {exam_id}")
            raise InvalidCount(f"Invalid code count (1-{max_count})")

        await ExamService.get_exam(exam_id, db)

        for attempt in range(1, MAX_INSERT_ATTEMPTS + 1):
            values = await CodeService._fresh_code_values(count, db)
            now = utcnow()
            codes = [
                AnonCode(
                    code_value=value,
                    exam_id=exam_id,
                    position=position,
                    assigned_to=None,
                    assigned_at=None,
                    created_at=now,
                )
                for position, value in enumerate(values)
            ]
            db.add_all(codes)
            try:
                await db.commit()
            except IntegrityError:
                # параллельная партия заняла одно из значений между проверкой и вставкой
                await db.rollback()
                logger.warning(f"[ГЕНЕРАЦИЯ КОДОВ] Конфликт вставки для экзамена ID {exam_id}, попытка {attempt}")
                if attempt == MAX_INSERT_ATTEMPTS:
                    raise
                continue

            logger.info(f"[ГЕНЕРАЦИЯ КОДОВ] Создано {count} кодов для экзамена ID {exam_id}")
            return codes

    @staticmethod
    async def get_exam_codes(exam_id: str, db: AsyncSession) -> List[AnonCode]:
        await ExamService.get_exam(exam_id, db)
        result = await db.execute(
            select(AnonCode)
            .where(AnonCode.exam_id == exam_id)
            .order_by(AnonCode.created_at, AnonCode.position)
        )
        return list(result.scalars().all())

    @staticmethod
    async def _held_code_id(exam_id: str, student_id: str, db: AsyncSession) -> Optional[str]:
        result = await db.execute(
            select(AnonCode.id).where(AnonCode.exam_id == exam_id, AnonCode.assigned_to == student_id)
        )
        return result.scalars().first()

    @staticmethod
    async def claim_code(exam_id: str, student_id: str, code_value: str, db: AsyncSession) -> AnonCode:
        """
        Однократная привязка студента к анонимному коду.

        Привязка выполняется условным UPDATE, который срабатывает только пока код
        не занят, поэтому из нескольких одновременных заявок выигрывает ровно одна.

        Args:
            exam_id: ID экзамена
            student_id: ID студента
            code_value: Отсканированное значение кода
            db: Асинхронная сессия SQLAlchemy

        Returns:
            AnonCode: Занятый код

        Raises:
            MissingField: Пустое значение кода
            CodeNotFound: Код не найден в этом экзамене
            AlreadyClaimed: Код уже привязан к студенту
            AlreadyHasCode: У студента уже есть код этого экзамена
        """
        code_value = (code_value or "").strip()
        if not code_value:
            raise MissingField("QR code value is required")

        result = await db.execute(
            select(AnonCode).where(AnonCode.code_value == code_value, AnonCode.exam_id == exam_id)
        )
        code = result.scalar_one_or_none()
        if not code:
            logger.warning(f"[ПРИВЯЗКА КОДА] Неизвестный код для экзамена ID {exam_id}")
            raise CodeNotFound()

        code_id = code.id
        if code.assigned_to is not None:
            logger.warning(f"[ПРИВЯЗКА КОДА] Код {code_id} уже занят")
            raise AlreadyClaimed()

        if await CodeService._held_code_id(exam_id, student_id, db):
            logger.warning(f"[ПРИВЯЗКА КОДА] У студента {student_id} уже есть код для экзамена ID {exam_id}")
            raise AlreadyHasCode()

        try:
            result = await db.execute(
                update(AnonCode)
                .where(AnonCode.id == code_id, AnonCode.assigned_to.is_(None))
                .values(assigned_to=student_id, assigned_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            claimed = result.rowcount == 1
            if claimed:
                await db.commit()
            else:
                await db.rollback()
        except IntegrityError as e:
            # тот же студент параллельно занял другой код этого экзамена
            await db.rollback()
            logger.warning(f"[ПРИВЯЗКА КОДА] У студента {student_id} уже есть код для экзамена ID {exam_id}")
            raise AlreadyHasCode() from e

        if not claimed:
            logger.warning(f"[ПРИВЯЗКА КОДА] Код {code_id} уже занят")
            raise AlreadyClaimed()

        await db.refresh(code)
        logger.info(f"[ПРИВЯЗКА КОДА] Код {code_id} привязан, экзамен ID {exam_id}")
        return code

    @staticmethod
    async def build_codes_pdf(exam_id: str, db: AsyncSession) -> Tuple[bytes, str]:
        """
        Формирование листа с QR-кодами экзамена для печати.

        Returns:
            Tuple[bytes, str]: Содержимое PDF и имя файла

        Raises:
            ExamNotFound: Экзамен не найден
            NoCodesGenerated: Для экзамена еще нет кодов
        """
        exam = await ExamService.get_exam(exam_id, db)
        codes = await CodeService.get_exam_codes(exam_id, db)
        if not codes:
            raise NoCodesGenerated()

        values = [code.code_value for code in codes]
        pdf = await run_in_threadpool(generate_qr_codes_pdf, values, exam.course_name)
        return pdf, f"{exam.course_name}-qr-codes.pdf"
