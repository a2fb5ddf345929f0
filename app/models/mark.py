from datetime import datetime
from uuid import uuid4

from sqlalchemy import String, Float, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.utils.clock import utcnow

class MarkEntry(Base):
    __tablename__ = "mark_entries"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    exam_id: Mapped[str] = mapped_column(String(36), ForeignKey("exam_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    code_id: Mapped[str] = mapped_column(String(36), ForeignKey("anon_codes.id", ondelete="CASCADE"), nullable=False, unique=True)
    score: Mapped[float] = mapped_column(Float, nullable=False)
    marker_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    exam: Mapped["ExamSession"] = relationship("ExamSession", back_populates="mark_entries", passive_deletes=True)
    code: Mapped["AnonCode"] = relationship("AnonCode", back_populates="mark_entry", passive_deletes=True)
    marker: Mapped["User"] = relationship("User", back_populates="marks_given")
