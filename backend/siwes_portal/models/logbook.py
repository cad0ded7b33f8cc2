from sqlalchemy import (
    Column, Boolean, Date, DateTime, Text, ForeignKey, UniqueConstraint, Index,
    Enum as SQLEnum,
)
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from siwes_portal.core.database import Base
from siwes_portal.core.types import GUID, generate_uuid


class ReviewStatus(str, enum.Enum):
    """Outcome of an industry supervisor's review. NULL means pending."""
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class LogbookEntry(Base):
    """
    A student's record of one working day.

    Lifecycle: draft (submitted=False) -> submitted -> reviewed. Drafts are
    editable; submitted and reviewed entries are not.
    """
    __tablename__ = "logbook_entries"
    __table_args__ = (
        UniqueConstraint("student_id", "date", name="uq_logbook_student_date"),
        Index("ix_logbook_reviewer_status", "reviewed_by", "review_status"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    student_id = Column(GUID, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    description = Column(Text, nullable=False)
    image_url = Column(Text, nullable=True)
    submitted = Column(Boolean, default=False, nullable=False)
    submitted_at = Column(DateTime, nullable=True)

    review_status = Column(SQLEnum(ReviewStatus, name="review_status"), nullable=True)
    review_comments = Column(Text, nullable=True)
    reviewed_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    student = relationship("Student", back_populates="logbook_entries", lazy="selectin")
    reviewer = relationship("User", foreign_keys=[reviewed_by], lazy="selectin")

    @property
    def is_reviewed(self) -> bool:
        return self.review_status is not None

    @property
    def status(self) -> str:
        """draft / submitted / approved / rejected"""
        if self.review_status is not None:
            return self.review_status.value.lower()
        return "submitted" if self.submitted else "draft"

    def __repr__(self):
        return f"<LogbookEntry {self.student_id} {self.date} {self.status}>"
