"""
Attendance marking and reporting.

Only a student's assigned industry supervisor may mark or correct their
attendance; there is at most one mark per student per date.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import extract, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from siwes_portal.core.database import get_db
from siwes_portal.core.exceptions import (
    AuthorizationError,
    DuplicateRecordError,
    ResourceNotFoundError,
)
from siwes_portal.core.logging_config import logger
from siwes_portal.core.types import is_valid_uuid
from siwes_portal.models import Attendance, Student, User
from siwes_portal.modules.auth.dependencies import (
    get_accessible_student,
    get_current_industry_supervisor,
)
from siwes_portal.schemas.attendance import (
    AttendanceCreate,
    AttendanceMarkResponse,
    AttendanceUpdate,
    AttendanceUpdateResponse,
    StudentAttendanceResponse,
    SupervisedStudentAttendance,
)
from siwes_portal.services.attendance_stats import compute_attendance_statistics
from siwes_portal.services.notification_service import notify_attendance_marked

router = APIRouter()

RECENT_WINDOW = 30
MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


async def student_records(db: AsyncSession, student_id: str) -> List[Attendance]:
    result = await db.execute(
        select(Attendance).where(Attendance.student_id == student_id).order_by(Attendance.date.desc())
    )
    return list(result.scalars().all())


@router.post("", response_model=AttendanceMarkResponse, status_code=status.HTTP_201_CREATED)
async def mark_attendance(
    body: AttendanceCreate,
    db: AsyncSession = Depends(get_db),
    supervisor: User = Depends(get_current_industry_supervisor)
):
    """Mark a student present/absent for one date"""
    student = None
    if is_valid_uuid(body.student_id):
        student = await db.scalar(
            select(Student).where(
                Student.id == body.student_id,
                Student.industry_supervisor_id == supervisor.id,
            )
        )
    if not student:
        raise AuthorizationError("Not authorized to mark attendance for this student")

    existing = await db.scalar(
        select(Attendance.id).where(
            Attendance.student_id == student.id,
            Attendance.date == body.date,
        )
    )
    if existing:
        raise DuplicateRecordError("Attendance already marked for this date")

    attendance = Attendance(
        student_id=student.id,
        supervisor_id=supervisor.id,
        date=body.date,
        present=body.present,
        notes=body.notes,
    )
    db.add(attendance)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise DuplicateRecordError("Attendance already marked for this date")

    await notify_attendance_marked(db, student.id, body.date, body.present)
    await db.commit()

    # Aggregates come from the student's full record list, filtered in memory
    records = await student_records(db, student.id)
    statistics = compute_attendance_statistics(records)

    logger.log_audit_event(
        "mark_attendance", supervisor.id, "student", student.id,
        date=body.date.isoformat(), present=body.present,
    )
    return {
        "message": "Attendance marked successfully",
        "attendance": attendance,
        "statistics": statistics,
    }


@router.get("/supervisor/students", response_model=List[SupervisedStudentAttendance])
async def supervised_students_attendance(
    db: AsyncSession = Depends(get_db),
    supervisor: User = Depends(get_current_industry_supervisor)
):
    """Each assigned student with stats over their last 30 marks"""
    result = await db.execute(
        select(Student).where(Student.industry_supervisor_id == supervisor.id)
    )
    students = sorted(result.scalars().all(), key=lambda s: s.name.lower())

    summary = []
    for student in students:
        records = (await student_records(db, student.id))[:RECENT_WINDOW]
        summary.append({
            "id": student.id,
            "name": student.name,
            "email": student.email,
            "matric_number": student.matric_number,
            "department": student.department,
            "statistics": compute_attendance_statistics(records),
            "last_attendance": records[0] if records else None,
        })
    return summary


@router.get("/{student_id}", response_model=StudentAttendanceResponse)
async def get_student_attendance(
    month: Optional[str] = Query(None, pattern=MONTH_PATTERN, description="YYYY-MM"),
    limit: int = Query(50, ge=1, le=100),
    student: Student = Depends(get_accessible_student),
    db: AsyncSession = Depends(get_db)
):
    """A student's marks, newest first, with statistics over the returned set"""
    query = select(Attendance).where(Attendance.student_id == student.id)
    if month:
        year, month_number = (int(part) for part in month.split("-"))
        query = query.where(
            extract("year", Attendance.date) == year,
            extract("month", Attendance.date) == month_number,
        )
    result = await db.execute(query.order_by(Attendance.date.desc()).limit(limit))
    records = list(result.scalars().all())

    return {
        "student_id": student.id,
        "student_name": student.name,
        "matric_number": student.matric_number,
        "attendance": records,
        "statistics": compute_attendance_statistics(records),
    }


@router.patch("/{attendance_id}", response_model=AttendanceUpdateResponse)
async def update_attendance(
    attendance_id: str,
    body: AttendanceUpdate,
    db: AsyncSession = Depends(get_db),
    supervisor: User = Depends(get_current_industry_supervisor)
):
    """Correct a mark. Only the supervisor who made it may change it."""
    attendance = None
    if is_valid_uuid(attendance_id):
        attendance = await db.scalar(select(Attendance).where(Attendance.id == attendance_id))
    if not attendance:
        raise ResourceNotFoundError("Attendance record not found")

    if attendance.supervisor_id != supervisor.id:
        raise AuthorizationError("Not authorized to update this attendance record")

    updates = body.model_dump(exclude_unset=True)
    for field, value in updates.items():
        setattr(attendance, field, value)

    await db.commit()
    await db.refresh(attendance)

    logger.log_audit_event("update_attendance", supervisor.id, "attendance", attendance.id,
                           fields=sorted(updates))
    return {"message": "Attendance updated successfully", "attendance": attendance}
