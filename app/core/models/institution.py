import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String, Uuid
from sqlalchemy.orm import relationship

from app.db.session import Base


class Institution(Base):
    """
    Institution (tenant) in the multi-tenant platform.

    - id: Internal primary key (UUID). Used for all FKs and for scoping every query.
    - code: Public human-readable identifier (e.g. FCE-OYO). Never used as a foreign key.
    """

    __tablename__ = "institutions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    code = Column(String(20), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False, default="active")
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    users = relationship("User", back_populates="institution", cascade="all, delete-orphan")
