import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, Uuid

from app.db.session import Base


class Rank(Base):
    """Academic rank (CL, PL, SL, ...). Higher priority_weight is served first in priority mode."""

    __tablename__ = "ranks"
    __table_args__ = (
        UniqueConstraint("institution_id", "code", name="uq_rank_institution_code"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    institution_id = Column(Uuid, ForeignKey("institutions.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    code = Column(String(20), nullable=False)
    priority_weight = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
