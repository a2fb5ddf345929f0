from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, constr

from app.api.v1.schemas.code import AnonCodeResponse


class CreateExam(BaseModel):
    course_name: constr(strip_whitespace=True, min_length=1)
    date: datetime
    duration: Optional[int] = None


class ExamResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    course_name: str
    date: datetime
    duration: int
    created_at: Optional[datetime] = None


class ExamWithStats(ExamResponse):
    total_codes: int
    claimed_codes: int
    unclaimed_codes: int


class StudentExamResponse(ExamResponse):
    claimed_code: Optional[AnonCodeResponse] = None


class AdminStats(BaseModel):
    total_exams: int
    active_exams: int
    total_qr_codes: int
    pending_reveals: int
