"""Schools posted to by an institution, their routes, and per-session student groups."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Float, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from app.db.session import Base


class Route(Base):
    __tablename__ = "routes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    institution_id = Column(Uuid, ForeignKey("institutions.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class InstitutionSchool(Base):
    """A school used by one institution. distance_km is precomputed from the institution."""

    __tablename__ = "institution_schools"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    institution_id = Column(Uuid, ForeignKey("institutions.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    route_id = Column(Uuid, ForeignKey("routes.id", ondelete="SET NULL"), nullable=True)
    lga = Column(String(100), nullable=True)
    ward = Column(String(100), nullable=True)
    distance_km = Column(Float, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="active")  # active | inactive
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    route = relationship("Route", foreign_keys=[route_id])


class SchoolGroup(Base):
    """Students of a school in one session, bucketed by group_number."""

    __tablename__ = "school_groups"
    __table_args__ = (
        UniqueConstraint("session_id", "school_id", "group_number", name="uq_school_group_session"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    institution_id = Column(Uuid, ForeignKey("institutions.id", ondelete="CASCADE"), nullable=False, index=True)
    session_id = Column(Uuid, ForeignKey("academic_sessions.id", ondelete="CASCADE"), nullable=False)
    school_id = Column(Uuid, ForeignKey("institution_schools.id", ondelete="CASCADE"), nullable=False)
    group_number = Column(Integer, nullable=False)
    student_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    school = relationship("InstitutionSchool", foreign_keys=[school_id])
