"""
Two small groups from different schools sharing one supervisor posting.
The secondary group gets a dependent posting whenever its primary group is posted.
"""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, Uuid

from app.db.session import Base


class MergedGroup(Base):
    __tablename__ = "merged_groups"
    __table_args__ = (
        # A secondary group can only be merged once per session
        UniqueConstraint("session_id", "secondary_school_id", "secondary_group_number", name="uq_merged_secondary"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    institution_id = Column(Uuid, ForeignKey("institutions.id", ondelete="CASCADE"), nullable=False, index=True)
    session_id = Column(Uuid, ForeignKey("academic_sessions.id", ondelete="CASCADE"), nullable=False)
    primary_school_id = Column(Uuid, ForeignKey("institution_schools.id", ondelete="CASCADE"), nullable=False)
    primary_group_number = Column(Integer, nullable=False)
    secondary_school_id = Column(Uuid, ForeignKey("institution_schools.id", ondelete="CASCADE"), nullable=False)
    secondary_group_number = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default="active")  # active | cancelled
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
