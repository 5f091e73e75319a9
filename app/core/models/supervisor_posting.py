"""
Supervisor posting: one supervisor assigned to one (school, group, visit) slot.
Postings are never hard-deleted; rollback sets status to cancelled.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Index, Integer, String, Uuid, text
from sqlalchemy.orm import relationship

from app.db.session import Base


POSTING_STATUS_ACTIVE = "active"
POSTING_STATUS_CANCELLED = "cancelled"


class SupervisorPosting(Base):
    __tablename__ = "supervisor_postings"
    __table_args__ = (
        # At most one active posting per slot. Concurrent executes for a session collide here.
        Index(
            "uq_active_posting_slot",
            "session_id",
            "school_id",
            "group_number",
            "visit_number",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
        Index("ix_posting_session_supervisor", "session_id", "supervisor_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    institution_id = Column(Uuid, ForeignKey("institutions.id", ondelete="CASCADE"), nullable=False, index=True)
    session_id = Column(Uuid, ForeignKey("academic_sessions.id", ondelete="CASCADE"), nullable=False)
    supervisor_id = Column(Uuid, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    school_id = Column(Uuid, ForeignKey("institution_schools.id", ondelete="RESTRICT"), nullable=False)
    route_id = Column(Uuid, ForeignKey("routes.id", ondelete="SET NULL"), nullable=True)
    group_number = Column(Integer, nullable=False)
    visit_number = Column(Integer, nullable=False)
    distance_km = Column(Float, nullable=False, default=0)
    rank_id = Column(Uuid, ForeignKey("ranks.id", ondelete="SET NULL"), nullable=True)
    # Dependent postings for merged secondary groups are not primary and do not count against the cap
    is_primary_posting = Column(Boolean, nullable=False, default=True)
    merged_with_posting_id = Column(
        Uuid, ForeignKey("supervisor_postings.id", ondelete="SET NULL"), nullable=True
    )
    posting_type = Column(String(20), nullable=False, default="manual")  # manual | auto
    posted_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    batch_id = Column(Uuid, ForeignKey("auto_posting_batches.id", ondelete="SET NULL"), nullable=True, index=True)
    status = Column(String(20), nullable=False, default=POSTING_STATUS_ACTIVE)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    supervisor = relationship("User", foreign_keys=[supervisor_id])
    school = relationship("InstitutionSchool", foreign_keys=[school_id])
