from sqlalchemy import Column, String, Boolean, DateTime, Enum as SQLEnum, Text
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from siwes_portal.core.database import Base
from siwes_portal.core.types import GUID, generate_uuid


class UserRole(str, enum.Enum):
    """Portal roles. Fixed at account creation."""
    ADMIN = "Admin"
    STUDENT = "Student"
    SCHOOL_SUPERVISOR = "SchoolSupervisor"
    INDUSTRY_SUPERVISOR = "IndustrySupervisor"


class User(Base):
    """User model"""
    __tablename__ = "users"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(
        SQLEnum(UserRole, values_callable=lambda roles: [r.value for r in roles], name="user_role"),
        nullable=False,
        index=True,
    )
    image_url = Column(Text, nullable=True)

    # Industry supervisors created from a student's CSV upload
    company = Column(String(255), nullable=True)
    position = Column(String(255), nullable=True)

    must_change_password = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    student = relationship(
        "Student",
        back_populates="user",
        uselist=False,
        foreign_keys="Student.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<User {self.email} ({self.role.value if self.role else '-'})>"
