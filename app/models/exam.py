from datetime import datetime
from uuid import uuid4

from sqlalchemy import String, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.utils.clock import utcnow

class ExamSession(Base):
    __tablename__ = "exam_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    course_name: Mapped[str] = mapped_column(String, nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    duration: Mapped[int] = mapped_column(Integer, nullable=False, default=180)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    anon_codes: Mapped[list["AnonCode"]] = relationship(
        "AnonCode",
        back_populates="exam",
        cascade="all, delete-orphan",
        passive_deletes=True
    )
    mark_entries: Mapped[list["MarkEntry"]] = relationship(
        "MarkEntry",
        back_populates="exam",
        cascade="all, delete-orphan",
        passive_deletes=True
    )
