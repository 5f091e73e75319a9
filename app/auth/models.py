import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint, JSON, Uuid
from sqlalchemy.orm import relationship

from app.db.session import Base


class User(Base):
    """User within an institution. Supervisors are users with role supervisor or field_monitor."""

    __tablename__ = "users"
    __table_args__ = (
        # Email must be unique per institution
        UniqueConstraint("institution_id", "email", name="uq_user_institution_email"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    institution_id = Column(Uuid, ForeignKey("institutions.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    # super_admin, head_of_tp, dean, supervisor, field_monitor, student, ...
    role = Column(String(50), nullable=False)
    status = Column(String(20), nullable=False, default="active")
    # Set by HR edits; drives priority ordering in auto-posting
    rank_id = Column(Uuid, ForeignKey("ranks.id", ondelete="SET NULL"), nullable=True)
    faculty_id = Column(Uuid, ForeignKey("faculties.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    institution = relationship("Institution", back_populates="users")
    rank = relationship("Rank", foreign_keys=[rank_id])
    faculty = relationship("Faculty", foreign_keys=[faculty_id])


class Role(Base):
    """Institution-scoped role with JSON permissions."""

    __tablename__ = "roles"
    __table_args__ = (
        # Role name must be unique within an institution
        UniqueConstraint("institution_id", "name", name="uq_role_institution_name"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    institution_id = Column(Uuid, ForeignKey("institutions.id"), nullable=False)
    name = Column(String(100), nullable=False)
    # Example shape:
    # {
    #   "posting": {"create": true, "read": true, "delete": false}
    # }
    permissions = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
