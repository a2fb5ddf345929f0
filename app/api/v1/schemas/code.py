from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class GenerateCodesRequest(BaseModel):
    count: int


class AnonCodeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    code_value: str
    exam_id: str
    assigned_to: Optional[str] = None
    assigned_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class GenerateCodesResponse(BaseModel):
    message: str
    count: int
    codes: List[AnonCodeResponse]


class ClaimCodeRequest(BaseModel):
    code_value: str


class RevealMapping(BaseModel):
    student_name: str
    student_email: str
    qr_code: str
    score: Optional[float] = None
