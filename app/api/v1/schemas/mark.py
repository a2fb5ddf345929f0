from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, constr


class SubmitMark(BaseModel):
    exam_id: constr(strip_whitespace=True, min_length=1)
    qr_code: constr(strip_whitespace=True, min_length=1)
    score: float


class MarkResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    exam_id: str
    code_id: str
    score: float
    marker_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ExamMarkResponse(MarkResponse):
    code_value: str


class MarkedExam(BaseModel):
    course_name: str
    date: datetime
    duration: int


class StudentMarkResponse(BaseModel):
    score: float
    exam: MarkedExam
