"""Audit record of one auto-posting execute. Kept after rollback; rolled_back_at marks it inactive."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, String, Uuid

from app.db.session import Base


BATCH_STATUS_COMPLETED = "completed"
BATCH_STATUS_ROLLED_BACK = "rolled_back"


class AutoPostingBatch(Base):
    __tablename__ = "auto_posting_batches"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    institution_id = Column(Uuid, ForeignKey("institutions.id", ondelete="CASCADE"), nullable=False, index=True)
    session_id = Column(Uuid, ForeignKey("academic_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    initiated_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    # {"visits_included": 2, "posting_type": "route_based", "priority_enabled": true, "faculty_id": null}
    criteria = Column(JSON, nullable=False, default=dict)
    # String UUIDs of every posting created by the batch, dependent postings included
    posting_ids = Column(JSON, nullable=False, default=list)
    total_postings_created = Column(Integer, nullable=False, default=0)
    total_supervisors_posted = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default=BATCH_STATUS_COMPLETED)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    rolled_back_at = Column(DateTime(timezone=True), nullable=True)
    rolled_back_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
