from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import String, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.utils.clock import utcnow

class AnonCode(Base):
    __tablename__ = "anon_codes"
    # NULL не участвует в уникальности: ограничение действует только на занятые коды
    __table_args__ = (
        UniqueConstraint("exam_id", "assigned_to", name="uq_anon_codes_exam_student"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    code_value: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    exam_id: Mapped[str] = mapped_column(String(36), ForeignKey("exam_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    assigned_to: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)
    assigned_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    exam: Mapped["ExamSession"] = relationship("ExamSession", back_populates="anon_codes", passive_deletes=True)
    student: Mapped[Optional["User"]] = relationship("User", back_populates="claimed_codes")
    mark_entry: Mapped[Optional["MarkEntry"]] = relationship(
        "MarkEntry",
        back_populates="code",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True
    )
