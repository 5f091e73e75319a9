import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import relationship

from app.db.session import Base


class AcademicSession(Base):
    """
    Teaching-practice session per institution.
    max_supervision_visits bounds visit numbers; max_posting_per_supervisor caps primary postings
    per supervisor (falls back to max_supervision_visits when unset).
    """

    __tablename__ = "academic_sessions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    institution_id = Column(Uuid, ForeignKey("institutions.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(50), nullable=False)  # e.g. "2025/2026"
    max_supervision_visits = Column(Integer, nullable=False, default=3)
    max_posting_per_supervisor = Column(Integer, nullable=True)
    is_current = Column(Boolean, nullable=False, default=False)
    status = Column(String(20), nullable=False, default="active")
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    institution = relationship("Institution", backref="academic_sessions")
