"""
Industry supervisor review of submitted logbook entries.
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from siwes_portal.core.database import get_db
from siwes_portal.core.exceptions import (
    AuthorizationError,
    ConflictError,
    ResourceNotFoundError,
)
from siwes_portal.core.logging_config import logger
from siwes_portal.core.types import is_valid_uuid
from siwes_portal.models import LogbookEntry, ReviewStatus, Student, User
from siwes_portal.modules.auth.dependencies import get_current_industry_supervisor
from siwes_portal.schemas.logbook import (
    LogbookEntryMessage,
    ReviewFilter,
    ReviewQueueResponse,
    ReviewRequest,
    ReviewStats,
)
from siwes_portal.services.notification_service import notify_logbook_reviewed

router = APIRouter()


def supervised_entries(supervisor_id: str):
    """Submitted entries of the supervisor's assigned students"""
    return (
        select(LogbookEntry)
        .join(Student, Student.id == LogbookEntry.student_id)
        .where(
            Student.industry_supervisor_id == supervisor_id,
            LogbookEntry.submitted.is_(True),
        )
    )


def queue_item(entry: LogbookEntry) -> dict:
    item = {
        field: getattr(entry, field)
        for field in (
            "id", "student_id", "date", "description", "image_url", "submitted",
            "submitted_at", "status", "review_status", "review_comments",
            "reviewed_by", "reviewed_at", "created_at", "updated_at",
        )
    }
    item.update(
        student_name=entry.student.name,
        matric_number=entry.student.matric_number,
        department=entry.student.department,
    )
    return item


async def queue_page(db: AsyncSession, query, limit: int, offset: int) -> dict:
    total = await db.scalar(select(func.count()).select_from(query.order_by(None).subquery())) or 0
    result = await db.execute(query.offset(offset).limit(limit))
    return {
        "entries": [queue_item(entry) for entry in result.scalars().all()],
        "total": total,
        "limit": limit,
        "offset": offset,
    }


@router.post("/review/{entry_id}", response_model=LogbookEntryMessage)
async def review_entry(
    entry_id: str,
    body: ReviewRequest,
    db: AsyncSession = Depends(get_db),
    supervisor: User = Depends(get_current_industry_supervisor)
):
    """Approve or reject a submitted entry. Each entry is reviewed once."""
    entry = None
    if is_valid_uuid(entry_id):
        entry = await db.scalar(select(LogbookEntry).where(LogbookEntry.id == entry_id))
    if not entry:
        raise ResourceNotFoundError("Logbook entry not found")

    if entry.student.industry_supervisor_id != supervisor.id:
        raise AuthorizationError("Not authorized to review this entry")

    if not entry.submitted:
        raise ConflictError("Only submitted entries can be reviewed", code="ENTRY_NOT_SUBMITTED")

    if entry.is_reviewed:
        raise ConflictError("Entry has already been reviewed", code="ENTRY_REVIEWED")

    comments = body.comments.strip() if body.comments else None
    entry.review_status = body.review_status
    entry.review_comments = comments
    entry.reviewed_by = supervisor.id
    entry.reviewed_at = datetime.utcnow()

    await notify_logbook_reviewed(
        db, entry.student_id, entry.date,
        approved=body.review_status == ReviewStatus.APPROVED,
        comments=comments,
    )
    await db.commit()
    await db.refresh(entry)

    logger.log_audit_event(
        "review_logbook_entry", supervisor.id, "logbook_entry", entry.id,
        review_status=body.review_status.value,
    )
    return {"message": f"Entry {entry.status}", "entry": entry}


@router.get("/pending-reviews", response_model=ReviewQueueResponse)
async def pending_reviews(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    supervisor: User = Depends(get_current_industry_supervisor)
):
    """Submitted entries awaiting review, oldest submission first"""
    query = (
        supervised_entries(supervisor.id)
        .where(LogbookEntry.review_status.is_(None))
        .order_by(LogbookEntry.submitted_at.asc(), LogbookEntry.date.asc())
    )
    return await queue_page(db, query, limit, offset)


@router.get("/reviewed", response_model=ReviewQueueResponse)
async def reviewed_entries(
    status: Optional[ReviewFilter] = None,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    supervisor: User = Depends(get_current_industry_supervisor)
):
    """Entries already reviewed, most recent review first"""
    query = supervised_entries(supervisor.id).where(LogbookEntry.review_status.is_not(None))
    if status:
        query = query.where(LogbookEntry.review_status == ReviewStatus(status))
    query = query.order_by(LogbookEntry.reviewed_at.desc())
    return await queue_page(db, query, limit, offset)


@router.get("/review/stats", response_model=ReviewStats)
async def review_stats(
    db: AsyncSession = Depends(get_db),
    supervisor: User = Depends(get_current_industry_supervisor)
):
    rows = (await db.execute(
        select(LogbookEntry.review_status, func.count(LogbookEntry.id))
        .join(Student, Student.id == LogbookEntry.student_id)
        .where(
            Student.industry_supervisor_id == supervisor.id,
            LogbookEntry.submitted.is_(True),
        )
        .group_by(LogbookEntry.review_status)
    )).all()

    counts = {status: count for status, count in rows}
    approved = counts.get(ReviewStatus.APPROVED, 0)
    rejected = counts.get(ReviewStatus.REJECTED, 0)
    total_submitted = sum(counts.values())
    reviewed = approved + rejected

    return {
        "total_submitted": total_submitted,
        "pending_reviews": total_submitted - reviewed,
        "approved": approved,
        "rejected": rejected,
        "total_reviewed": reviewed,
        "review_progress": round(reviewed / total_submitted * 100, 2) if total_submitted else 0.0,
    }
