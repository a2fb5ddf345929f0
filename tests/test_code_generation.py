import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import ExamNotFound, InvalidCount
from app.models import AnonCode
from app.services.code import CodeService
from app.utils.qr import generate_code_value

pytestmark = pytest.mark.anyio


@pytest.mark.parametrize("count", [1, 3, 500])
async def test_generate_codes_returns_distinct_unclaimed_codes(session_factory, make_exam, count):
    exam = await make_exam()
    async with session_factory() as db:
        codes = await CodeService.generate_codes(exam.id, count, db)

    assert len(codes) == count
    assert len({c.code_value for c in codes}) == count
    assert all(c.assigned_to is None and c.assigned_at is None for c in codes)
    assert all(c.exam_id == exam.id for c in codes)

    async with session_factory() as db:
        stored = await db.scalar(select(func.count()).select_from(AnonCode).where(AnonCode.exam_id == exam.id))
    assert stored == count


@pytest.mark.parametrize("count", [0, -5, 501])
async def test_generate_codes_rejects_out_of_range_count(session_factory, make_exam, count):
    exam = await make_exam()
    async with session_factory() as db:
        with pytest.raises(InvalidCount):
            await CodeService.generate_codes(exam.id, count, db)

    async with session_factory() as db:
        assert await db.scalar(select(func.count()).select_from(AnonCode)) == 0


async def test_generate_codes_unknown_exam(session_factory):
    async with session_factory() as db:
        with pytest.raises(ExamNotFound):
            await CodeService.generate_codes("missing-exam", 3, db)


async def test_second_batch_adds_codes_without_touching_existing(session_factory, make_exam):
    exam = await make_exam()
    async with session_factory() as db:
        first = await CodeService.generate_codes(exam.id, 4, db)
    async with session_factory() as db:
        second = await CodeService.generate_codes(exam.id, 2, db)

    assert not {c.code_value for c in first} & {c.code_value for c in second}
    async with session_factory() as db:
        codes = await CodeService.get_exam_codes(exam.id, db)
    assert len(codes) == 6


async def test_colliding_values_are_redrawn(session_factory, make_exam, monkeypatch):
    exam = await make_exam()
    async with session_factory() as db:
        existing = await CodeService.generate_codes(exam.id, 1, db)
    taken = existing[0].code_value

    draws = iter([taken, "a" * 32, "b" * 32])
    monkeypatch.setattr("app.services.code.generate_code_value", lambda: next(draws))

    async with session_factory() as db:
        codes = await CodeService.generate_codes(exam.id, 2, db)

    assert [c.code_value for c in codes] == ["a" * 32, "b" * 32]


async def test_codes_keep_draw_order(session_factory, make_exam, monkeypatch):
    exam = await make_exam()
    draws = iter(["c" * 32, "a" * 32, "b" * 32])
    monkeypatch.setattr("app.services.code.generate_code_value", lambda: next(draws))

    async with session_factory() as db:
        codes = await CodeService.generate_codes(exam.id, 3, db)
    assert [c.code_value for c in codes] == ["c" * 32, "a" * 32, "b" * 32]

    async with session_factory() as db:
        listed = await CodeService.get_exam_codes(exam.id, db)
    assert [c.code_value for c in listed] == ["c" * 32, "a" * 32, "b" * 32]


async def _count_codes(session_factory, exam_id):
    async with session_factory() as db:
        return await db.scalar(select(func.count()).select_from(AnonCode).where(AnonCode.exam_id == exam_id))


async def test_insert_conflict_retries_with_new_values(session_factory, make_exam, monkeypatch):
    exam = await make_exam()
    async with session_factory() as db:
        existing = await CodeService.generate_codes(exam.id, 1, db)
    taken = existing[0].code_value

    real_draw = CodeService._fresh_code_values
    calls = []

    async def draw_taken_once(count, db):
        calls.append(count)
        if len(calls) == 1:
            # value grabbed by another batch after the collision check
            return [taken]
        return await real_draw(count, db)

    monkeypatch.setattr(CodeService, "_fresh_code_values", staticmethod(draw_taken_once))

    async with session_factory() as db:
        codes = await CodeService.generate_codes(exam.id, 1, db)

    assert len(calls) == 2
    assert len(codes) == 1
    assert codes[0].code_value != taken
    assert await _count_codes(session_factory, exam.id) == 2


async def test_insert_conflict_gives_up_after_max_attempts(session_factory, make_exam, monkeypatch):
    exam = await make_exam()
    async with session_factory() as db:
        existing = await CodeService.generate_codes(exam.id, 1, db)
    taken = existing[0].code_value

    async def always_taken(count, db):
        return [taken]

    monkeypatch.setattr(CodeService, "_fresh_code_values", staticmethod(always_taken))

    async with session_factory() as db:
        with pytest.raises(IntegrityError):
            await CodeService.generate_codes(exam.id, 1, db)

    assert await _count_codes(session_factory, exam.id) == 1


def test_code_values_carry_128_bits():
    value = generate_code_value()
    assert len(value) == 32
    int(value, 16)
    assert value != generate_code_value()
