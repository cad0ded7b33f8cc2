from pydantic import BaseModel, Field
from typing import Optional, List, Literal
from datetime import date, datetime
import datetime as dt

from siwes_portal.models.logbook import ReviewStatus


class LogbookEntryUpdate(BaseModel):
    date: Optional[dt.date] = None
    description: Optional[str] = Field(None, min_length=5)


class LogbookEntryResponse(BaseModel):
    id: str
    student_id: str
    date: date
    description: str
    image_url: Optional[str] = None
    submitted: bool
    submitted_at: Optional[datetime] = None
    status: str
    review_status: Optional[ReviewStatus] = None
    review_comments: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class LogbookEntryMessage(BaseModel):
    message: str
    entry: LogbookEntryResponse


class LogbookAnalytics(BaseModel):
    total_entries: int
    total_submitted: int
    total_pending: int
    total_approved: int
    total_rejected: int
    total_attendance: int
    attendance_percentage: float


class ReviewRequest(BaseModel):
    review_status: ReviewStatus
    comments: Optional[str] = Field(None, max_length=2000)


class ReviewQueueItem(LogbookEntryResponse):
    student_name: str
    matric_number: str
    department: str


class ReviewQueueResponse(BaseModel):
    entries: List[ReviewQueueItem]
    total: int
    limit: int
    offset: int


class ReviewStats(BaseModel):
    total_submitted: int
    pending_reviews: int
    approved: int
    rejected: int
    total_reviewed: int
    review_progress: float


ReviewFilter = Literal["APPROVED", "REJECTED"]
