from sqlalchemy import Column, String, Text, ForeignKey
from sqlalchemy.orm import relationship

from siwes_portal.core.database import Base
from siwes_portal.core.types import GUID


class Student(Base):
    """
    One-to-one extension of a User whose role is Student.

    The primary key is the user's id. Both supervisor links stay NULL until an
    admin (or the student, for the industry side) assigns them.
    """
    __tablename__ = "students"

    id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    matric_number = Column(String(50), unique=True, nullable=False, index=True)
    department = Column(String(255), nullable=False, index=True)
    profile = Column(Text, nullable=True)

    industry_supervisor_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    school_supervisor_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    user = relationship("User", back_populates="student", foreign_keys=[id], lazy="selectin")
    industry_supervisor = relationship("User", foreign_keys=[industry_supervisor_id], lazy="selectin")
    school_supervisor = relationship("User", foreign_keys=[school_supervisor_id], lazy="selectin")

    attendance = relationship("Attendance", back_populates="student", cascade="all, delete-orphan", passive_deletes=True)
    logbook_entries = relationship(
        "LogbookEntry", back_populates="student", cascade="all, delete-orphan", passive_deletes=True
    )

    @property
    def name(self) -> str:
        return self.user.name if self.user else ""

    @property
    def email(self) -> str:
        return self.user.email if self.user else ""

    def __repr__(self):
        return f"<Student {self.matric_number}>"
