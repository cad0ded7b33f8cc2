"""
Student-scoped endpoints: profile and logbook.

Reads are open to the student, their supervisors and admins. Writes are open
to the student only.
"""
from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Path, UploadFile, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from siwes_portal.core.config import settings
from siwes_portal.core.database import get_db
from siwes_portal.core.exceptions import (
    AuthorizationError,
    ConflictError,
    DuplicateRecordError,
    ResourceNotFoundError,
)
from siwes_portal.core.logging_config import logger
from siwes_portal.core.types import is_valid_uuid
from siwes_portal.models import Attendance, LogbookEntry, ReviewStatus, Student, User
from siwes_portal.modules.auth.dependencies import (
    get_accessible_student,
    get_current_student,
    load_student,
)
from siwes_portal.schemas.assignment import StudentProfileResponse
from siwes_portal.schemas.logbook import (
    LogbookAnalytics,
    LogbookEntryMessage,
    LogbookEntryResponse,
    LogbookEntryUpdate,
)
from siwes_portal.services.file_storage import delete_stored_file, save_upload
from siwes_portal.services.notification_service import notify_logbook_submitted

router = APIRouter()

LOGBOOK_IMAGE_FOLDER = "logbook"
RECENT_ENTRIES = 5


async def get_own_student(
    student_id: str = Path(..., description="Student (user) ID"),
    current_user: User = Depends(get_current_student),
    db: AsyncSession = Depends(get_db)
) -> Student:
    """The calling student's own record; anyone else's id is 403"""
    if student_id != current_user.id:
        raise AuthorizationError("Access denied")
    return await load_student(db, student_id)


async def get_entry_or_404(db: AsyncSession, student_id: str, entry_id: str) -> LogbookEntry:
    if not is_valid_uuid(entry_id):
        raise ResourceNotFoundError("Logbook entry not found")
    result = await db.execute(
        select(LogbookEntry).where(
            LogbookEntry.id == entry_id,
            LogbookEntry.student_id == student_id,
        )
    )
    entry = result.scalar_one_or_none()
    if not entry:
        raise ResourceNotFoundError("Logbook entry not found")
    return entry


async def entry_exists_for_date(db: AsyncSession, student_id: str, entry_date: date,
                                exclude_id: Optional[str] = None) -> bool:
    query = select(LogbookEntry.id).where(
        LogbookEntry.student_id == student_id,
        LogbookEntry.date == entry_date,
    )
    if exclude_id:
        query = query.where(LogbookEntry.id != exclude_id)
    return (await db.scalar(query)) is not None


# ==================== Profile ====================

@router.get("/{student_id}/profile", response_model=StudentProfileResponse)
async def get_student_profile(student: Student = Depends(get_accessible_student)):
    """Student details with both supervisors"""
    return {
        "id": student.id,
        "name": student.user.name,
        "email": student.user.email,
        "image_url": student.user.image_url,
        "matric_number": student.matric_number,
        "department": student.department,
        "profile": student.profile,
        "industry_supervisor": student.industry_supervisor,
        "school_supervisor": student.school_supervisor,
    }


# ==================== Logbook ====================

@router.post(
    "/{student_id}/logbook",
    response_model=LogbookEntryMessage,
    status_code=status.HTTP_201_CREATED,
)
async def create_logbook_entry(
    entry_date: date = Form(..., alias="date"),
    description: str = Form(..., min_length=5),
    image: Optional[UploadFile] = File(None),
    student: Student = Depends(get_own_student),
    db: AsyncSession = Depends(get_db)
):
    """Create a draft entry for one date"""
    if not student.industry_supervisor_id:
        raise AuthorizationError(
            "You must have an industry supervisor assigned before creating logbook entries",
            code="INDUSTRY_SUPERVISOR_REQUIRED",
        )

    if await entry_exists_for_date(db, student.id, entry_date):
        raise DuplicateRecordError("Entry for this date already exists")

    stored_name = image_url = None
    if image is not None and image.filename:
        stored_name, image_url = await save_upload(
            image, LOGBOOK_IMAGE_FOLDER, settings.IMAGE_EXTENSIONS, prefix="entry-"
        )

    entry = LogbookEntry(
        student_id=student.id,
        date=entry_date,
        description=description.strip(),
        image_url=image_url,
        submitted=False,
    )
    db.add(entry)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        if stored_name:
            delete_stored_file(LOGBOOK_IMAGE_FOLDER, stored_name)
        raise DuplicateRecordError("Entry for this date already exists")
    await db.refresh(entry)

    logger.info(f"[Logbook] Draft created for {student.matric_number} on {entry_date}")
    return {"message": "Logbook entry created", "entry": entry}


@router.get("/{student_id}/logbook", response_model=List[LogbookEntryResponse])
async def list_logbook_entries(
    student: Student = Depends(get_accessible_student),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(
        select(LogbookEntry)
        .where(LogbookEntry.student_id == student.id)
        .order_by(LogbookEntry.date.asc())
    )
    return result.scalars().all()


@router.get("/{student_id}/logbook/recent", response_model=List[LogbookEntryResponse])
async def recent_logbook_entries(
    student: Student = Depends(get_accessible_student),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(
        select(LogbookEntry)
        .where(LogbookEntry.student_id == student.id)
        .order_by(LogbookEntry.date.desc())
        .limit(RECENT_ENTRIES)
    )
    return result.scalars().all()


@router.get("/{student_id}/logbook/analytics", response_model=LogbookAnalytics)
async def logbook_analytics(
    student: Student = Depends(get_accessible_student),
    db: AsyncSession = Depends(get_db)
):
    """Entry counts by state plus the student's attendance percentage"""
    rows = (await db.execute(
        select(LogbookEntry.submitted, LogbookEntry.review_status, func.count(LogbookEntry.id))
        .where(LogbookEntry.student_id == student.id)
        .group_by(LogbookEntry.submitted, LogbookEntry.review_status)
    )).all()

    total = submitted = approved = rejected = 0
    for is_submitted, review_status, count in rows:
        total += count
        if is_submitted:
            submitted += count
        if review_status == ReviewStatus.APPROVED:
            approved += count
        elif review_status == ReviewStatus.REJECTED:
            rejected += count

    attendance_total = await db.scalar(
        select(func.count(Attendance.id)).where(Attendance.student_id == student.id)
    ) or 0
    attendance_present = await db.scalar(
        select(func.count(Attendance.id)).where(
            Attendance.student_id == student.id, Attendance.present.is_(True)
        )
    ) or 0

    return {
        "total_entries": total,
        "total_submitted": submitted,
        "total_pending": total - submitted,
        "total_approved": approved,
        "total_rejected": rejected,
        "total_attendance": attendance_total,
        "attendance_percentage": round(attendance_present / attendance_total * 100, 2) if attendance_total else 0.0,
    }


@router.get("/{student_id}/logbook/with-reviews", response_model=List[LogbookEntryResponse])
async def logbook_with_reviews(
    student: Student = Depends(get_accessible_student),
    db: AsyncSession = Depends(get_db)
):
    """Submitted entries with their review outcome, newest first"""
    result = await db.execute(
        select(LogbookEntry)
        .where(LogbookEntry.student_id == student.id, LogbookEntry.submitted.is_(True))
        .order_by(LogbookEntry.date.desc())
    )
    return result.scalars().all()


@router.get("/{student_id}/logbook/{entry_id}", response_model=LogbookEntryResponse)
async def get_logbook_entry(
    entry_id: str,
    student: Student = Depends(get_accessible_student),
    db: AsyncSession = Depends(get_db)
):
    return await get_entry_or_404(db, student.id, entry_id)


@router.patch("/{student_id}/logbook/{entry_id}", response_model=LogbookEntryMessage)
async def update_logbook_entry(
    entry_id: str,
    body: LogbookEntryUpdate,
    student: Student = Depends(get_own_student),
    db: AsyncSession = Depends(get_db)
):
    """Edit a draft. Submitted entries and days with attendance are locked."""
    entry = await get_entry_or_404(db, student.id, entry_id)

    if entry.submitted:
        raise ConflictError("Cannot edit a submitted entry", code="ENTRY_SUBMITTED")

    attendance_marked = await db.scalar(
        select(Attendance.id).where(
            Attendance.student_id == student.id,
            Attendance.date == entry.date,
        )
    )
    if attendance_marked:
        raise ConflictError(
            "Cannot edit entry after attendance has been marked for this date",
            code="ATTENDANCE_MARKED",
        )

    if body.date is not None and body.date != entry.date:
        if await entry_exists_for_date(db, student.id, body.date, exclude_id=entry.id):
            raise DuplicateRecordError("Entry for this date already exists")
        entry.date = body.date

    if body.description is not None:
        entry.description = body.description.strip()

    await db.commit()
    await db.refresh(entry)
    return {"message": "Logbook entry updated", "entry": entry}


@router.patch("/{student_id}/logbook/{entry_id}/submit", response_model=LogbookEntryMessage)
async def submit_logbook_entry(
    entry_id: str,
    student: Student = Depends(get_own_student),
    db: AsyncSession = Depends(get_db)
):
    """Draft -> submitted. Only once."""
    entry = await get_entry_or_404(db, student.id, entry_id)

    if entry.submitted:
        raise ConflictError("Entry already submitted", code="ENTRY_SUBMITTED")

    entry.submitted = True
    entry.submitted_at = datetime.utcnow()
    await notify_logbook_submitted(db, student.id, entry.date)
    await db.commit()
    await db.refresh(entry)

    logger.info(f"[Logbook] Entry {entry.id} submitted by {student.matric_number}")
    return {"message": "Logbook entry submitted", "entry": entry}
