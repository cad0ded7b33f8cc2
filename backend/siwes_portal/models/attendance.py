from sqlalchemy import Column, Boolean, Date, DateTime, Text, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from datetime import datetime

from siwes_portal.core.database import Base
from siwes_portal.core.types import GUID, generate_uuid


class Attendance(Base):
    """A daily present/absent mark. At most one per student per calendar date."""
    __tablename__ = "attendance"
    __table_args__ = (
        UniqueConstraint("student_id", "date", name="uq_attendance_student_date"),
        Index("ix_attendance_supervisor_date", "supervisor_id", "date"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    student_id = Column(GUID, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    supervisor_id = Column(GUID, ForeignKey("users.id"), nullable=False)
    date = Column(Date, nullable=False)
    present = Column(Boolean, nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    student = relationship("Student", back_populates="attendance")
    supervisor = relationship("User", foreign_keys=[supervisor_id], lazy="selectin")

    def __repr__(self):
        return f"<Attendance {self.student_id} {self.date} {'P' if self.present else 'A'}>"
