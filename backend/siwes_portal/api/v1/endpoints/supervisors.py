"""
Supervisor assignment, assignment analytics, and the supervisors' own views
of their students.
"""
from typing import Dict, List, Literal, Optional

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from siwes_portal.core.database import get_db
from siwes_portal.core.exceptions import AuthorizationError, ResourceNotFoundError
from siwes_portal.core.logging_config import logger
from siwes_portal.core.types import is_valid_uuid
from siwes_portal.models import (
    Attendance,
    LogbookEntry,
    ReviewStatus,
    Student,
    User,
    UserRole,
)
from siwes_portal.modules.auth.dependencies import (
    get_current_admin,
    get_current_industry_supervisor,
    get_current_school_supervisor,
    load_student,
    require_roles,
)
from siwes_portal.schemas.assignment import (
    AssignmentRequest,
    AssignmentResponse,
    RandomAssignmentRequest,
    RandomAssignmentResponse,
    StudentAssignmentView,
    StudentCountAnalysis,
    StudentProfileResponse,
    SupervisorDashboardStats,
)
from siwes_portal.services.assignment_balancer import balance_assignments
from siwes_portal.services.attendance_stats import compute_attendance_statistics
from siwes_portal.services.notification_service import notify_supervisor_assigned

router = APIRouter()

get_current_supervisor = require_roles(UserRole.INDUSTRY_SUPERVISOR, UserRole.SCHOOL_SUPERVISOR)

# Student column holding the link for each supervisor role
SUPERVISOR_COLUMNS = {
    UserRole.INDUSTRY_SUPERVISOR: Student.industry_supervisor_id,
    UserRole.SCHOOL_SUPERVISOR: Student.school_supervisor_id,
}


def assignment_view(student: Student) -> dict:
    return {
        "id": student.id,
        "name": student.name,
        "email": student.email,
        "matric_number": student.matric_number,
        "department": student.department,
        "industry_supervisor": student.industry_supervisor,
        "school_supervisor": student.school_supervisor,
    }


async def get_supervisor_or_404(db: AsyncSession, supervisor_id: str, role: UserRole) -> User:
    supervisor = None
    if is_valid_uuid(supervisor_id):
        supervisor = await db.scalar(
            select(User).where(User.id == supervisor_id, User.role == role)
        )
    if not supervisor:
        label = "Industry" if role == UserRole.INDUSTRY_SUPERVISOR else "School"
        raise ResourceNotFoundError(f"{label} supervisor not found")
    return supervisor


async def supervisor_loads(db: AsyncSession, role: UserRole) -> List[tuple]:
    """(supervisor, current student count) for every active supervisor of a role"""
    column = SUPERVISOR_COLUMNS[role]
    load = (
        select(column.label("supervisor_id"), func.count(Student.id).label("load"))
        .where(column.is_not(None))
        .group_by(column)
        .subquery()
    )
    result = await db.execute(
        select(User, func.coalesce(load.c.load, 0))
        .outerjoin(load, load.c.supervisor_id == User.id)
        .where(User.role == role, User.is_active.is_(True))
        .order_by(User.created_at.asc(), User.id.asc())
    )
    return [(supervisor, count) for supervisor, count in result.all()]


async def assign_students(db: AsyncSession, body: AssignmentRequest, role: UserRole, kind: str) -> dict:
    supervisor = await get_supervisor_or_404(db, body.supervisor_id, role)
    column_name = SUPERVISOR_COLUMNS[role].key

    wanted = list(dict.fromkeys(body.student_ids))
    valid_ids = [sid for sid in wanted if is_valid_uuid(sid)]
    students: Dict[str, Student] = {}
    if valid_ids:
        result = await db.execute(select(Student).where(Student.id.in_(valid_ids)))
        students = {s.id: s for s in result.scalars().all()}

    assigned, skipped = [], []
    for student_id in wanted:
        student = students.get(student_id)
        if student is None:
            skipped.append(student_id)
            continue
        setattr(student, column_name, supervisor.id)
        await notify_supervisor_assigned(db, student.id, supervisor.name, kind)
        assigned.append({"id": student.id, "name": student.name, "matric_number": student.matric_number})

    await db.commit()
    return {"supervisor": supervisor, "assigned": assigned, "skipped": skipped}


# ==================== Assignments (Admin) ====================

@router.post("/assignments/industry", response_model=AssignmentResponse)
async def assign_industry_supervisor(
    body: AssignmentRequest,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """Link students to an industry supervisor, replacing any previous link"""
    outcome = await assign_students(db, body, UserRole.INDUSTRY_SUPERVISOR, "industry")

    logger.log_audit_event(
        "assign_industry_supervisor", current_admin.id, "user", body.supervisor_id,
        assigned=len(outcome["assigned"]), skipped=len(outcome["skipped"]),
    )
    return {
        "message": f"Assigned {len(outcome['assigned'])} student(s) to {outcome['supervisor'].name}",
        "supervisor_id": outcome["supervisor"].id,
        "assigned_students": outcome["assigned"],
        "skipped_student_ids": outcome["skipped"],
    }


@router.post("/assignments/school", response_model=AssignmentResponse)
async def assign_school_supervisor(
    body: AssignmentRequest,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """Link students to a school supervisor, replacing any previous link"""
    outcome = await assign_students(db, body, UserRole.SCHOOL_SUPERVISOR, "school")

    logger.log_audit_event(
        "assign_school_supervisor", current_admin.id, "user", body.supervisor_id,
        assigned=len(outcome["assigned"]), skipped=len(outcome["skipped"]),
    )
    return {
        "message": f"Assigned {len(outcome['assigned'])} student(s) to {outcome['supervisor'].name}",
        "supervisor_id": outcome["supervisor"].id,
        "assigned_students": outcome["assigned"],
        "skipped_student_ids": outcome["skipped"],
    }


@router.post("/assignments/school/random", response_model=RandomAssignmentResponse)
async def random_assign_school_supervisors(
    body: Optional[RandomAssignmentRequest] = None,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """
    Spread students without a school supervisor across all school supervisors.

    Each student goes to whoever has the fewest students at that moment,
    counting existing assignments. Passing a seed makes the run repeatable.
    """
    body = body or RandomAssignmentRequest()

    loads = await supervisor_loads(db, UserRole.SCHOOL_SUPERVISOR)
    if not loads:
        raise ResourceNotFoundError("No school supervisors found")

    query = select(Student).where(Student.school_supervisor_id.is_(None))
    if body.department_filter and body.department_filter.strip():
        query = query.where(func.lower(Student.department) == body.department_filter.strip().lower())
    students = {s.id: s for s in (await db.execute(query)).scalars().all()}
    if not students:
        raise ResourceNotFoundError("No students found without school supervisors")

    supervisors = {supervisor.id: supervisor for supervisor, _ in loads}
    plan = balance_assignments(
        list(students),
        [(supervisor.id, count) for supervisor, count in loads],
        seed=body.seed,
    )

    for student_id, supervisor_id in plan.assignments.items():
        students[student_id].school_supervisor_id = supervisor_id
        await notify_supervisor_assigned(db, student_id, supervisors[supervisor_id].name, "school")

    await db.commit()

    logger.log_audit_event(
        "random_assign_school_supervisors", current_admin.id, "student",
        assigned=len(plan.assignments), supervisors=len(loads),
        department=body.department_filter, seed=body.seed,
    )
    return {
        "message": f"Assigned {len(plan.assignments)} student(s) across {len(loads)} school supervisor(s)",
        "assigned_count": len(plan.assignments),
        "assignment_summary": [
            {
                "supervisor_id": supervisor.id,
                "supervisor_name": supervisor.name,
                "assigned_student_count": plan.new_counts[supervisor.id],
                "total_student_count": plan.final_loads[supervisor.id],
            }
            for supervisor, _ in loads
        ],
    }


@router.get("/assignments", response_model=List[StudentAssignmentView])
async def list_assignments(
    department: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """Every student with their current supervisors"""
    query = select(Student).order_by(Student.matric_number.asc())
    if department and department.strip():
        query = query.where(Student.department.ilike(f"%{department.strip()}%"))
    result = await db.execute(query)
    return [assignment_view(student) for student in result.scalars().all()]


@router.get("/assignments/school/{supervisor_id}/students", response_model=List[StudentAssignmentView])
async def school_supervisor_students(
    supervisor_id: str,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    supervisor = await get_supervisor_or_404(db, supervisor_id, UserRole.SCHOOL_SUPERVISOR)
    result = await db.execute(
        select(Student)
        .where(Student.school_supervisor_id == supervisor.id)
        .order_by(Student.matric_number.asc())
    )
    return [assignment_view(student) for student in result.scalars().all()]


# ==================== Analytics (Admin) ====================

@router.get("/analysis/student-count", response_model=StudentCountAnalysis)
async def student_count_analysis(
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """Assignment coverage overall, per department and per supervisor"""
    students = (await db.execute(select(Student))).scalars().all()

    departments: Dict[str, dict] = {}
    with_industry = with_school = fully = 0
    for student in students:
        dept = departments.setdefault(student.department, {
            "department": student.department,
            "total": 0,
            "with_industry_supervisor": 0,
            "with_school_supervisor": 0,
        })
        dept["total"] += 1
        if student.industry_supervisor_id:
            with_industry += 1
            dept["with_industry_supervisor"] += 1
        if student.school_supervisor_id:
            with_school += 1
            dept["with_school_supervisor"] += 1
        if student.industry_supervisor_id and student.school_supervisor_id:
            fully += 1

    def load_rows(loads):
        return [
            {
                "supervisor_id": supervisor.id,
                "supervisor_name": supervisor.name,
                "assigned_student_count": count,
                "total_student_count": count,
            }
            for supervisor, count in loads
        ]

    return {
        "total_students": len(students),
        "with_industry_supervisor": with_industry,
        "with_school_supervisor": with_school,
        "fully_assigned": fully,
        "unassigned_industry": len(students) - with_industry,
        "unassigned_school": len(students) - with_school,
        "by_department": sorted(departments.values(), key=lambda d: d["department"]),
        "school_supervisor_loads": load_rows(await supervisor_loads(db, UserRole.SCHOOL_SUPERVISOR)),
        "industry_supervisor_loads": load_rows(await supervisor_loads(db, UserRole.INDUSTRY_SUPERVISOR)),
    }


@router.get("/unassigned-students", response_model=List[StudentAssignmentView])
async def unassigned_students(
    supervisor_type: Literal["school", "industry", "any"] = "school",
    department: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """Students missing a school supervisor, an industry supervisor, or either"""
    query = select(Student)
    if supervisor_type == "school":
        query = query.where(Student.school_supervisor_id.is_(None))
    elif supervisor_type == "industry":
        query = query.where(Student.industry_supervisor_id.is_(None))
    else:
        query = query.where(
            (Student.school_supervisor_id.is_(None)) | (Student.industry_supervisor_id.is_(None))
        )
    if department and department.strip():
        query = query.where(Student.department.ilike(f"%{department.strip()}%"))

    result = await db.execute(query.order_by(Student.department.asc(), Student.matric_number.asc()))
    return [assignment_view(student) for student in result.scalars().all()]


# ==================== Supervisor views ====================

async def supervised_students(db: AsyncSession, supervisor: User) -> List[Student]:
    column = SUPERVISOR_COLUMNS[supervisor.role]
    result = await db.execute(
        select(Student).where(column == supervisor.id).order_by(Student.matric_number.asc())
    )
    return list(result.scalars().all())


async def dashboard_stats(db: AsyncSession, supervisor: User) -> dict:
    students = await supervised_students(db, supervisor)
    student_ids = [s.id for s in students]

    counts = {"total": 0, "submitted": 0, ReviewStatus.APPROVED: 0, ReviewStatus.REJECTED: 0}
    records: List[Attendance] = []
    if student_ids:
        rows = (await db.execute(
            select(LogbookEntry.submitted, LogbookEntry.review_status, func.count(LogbookEntry.id))
            .where(LogbookEntry.student_id.in_(student_ids))
            .group_by(LogbookEntry.submitted, LogbookEntry.review_status)
        )).all()
        for submitted, review_status, count in rows:
            counts["total"] += count
            if submitted:
                counts["submitted"] += count
            if review_status is not None:
                counts[review_status] += count

        records = list((await db.execute(
            select(Attendance).where(Attendance.student_id.in_(student_ids))
        )).scalars().all())

    reviewed = counts[ReviewStatus.APPROVED] + counts[ReviewStatus.REJECTED]
    stats = {
        "total_students": len(students),
        "total_logbook_entries": counts["total"],
        "submitted_entries": counts["submitted"],
        "pending_reviews": counts["submitted"] - reviewed,
        "approved_entries": counts[ReviewStatus.APPROVED],
        "rejected_entries": counts[ReviewStatus.REJECTED],
        "attendance_rate": compute_attendance_statistics(records)["attendance_rate"],
    }
    if supervisor.role == UserRole.INDUSTRY_SUPERVISOR:
        stats["attendance_marked"] = await db.scalar(
            select(func.count(Attendance.id)).where(Attendance.supervisor_id == supervisor.id)
        ) or 0
    return stats


@router.get("/students/school", response_model=List[StudentAssignmentView])
async def my_school_students(
    db: AsyncSession = Depends(get_db),
    supervisor: User = Depends(get_current_school_supervisor)
):
    return [assignment_view(student) for student in await supervised_students(db, supervisor)]


@router.get("/students/industry", response_model=List[StudentAssignmentView])
async def my_industry_students(
    db: AsyncSession = Depends(get_db),
    supervisor: User = Depends(get_current_industry_supervisor)
):
    return [assignment_view(student) for student in await supervised_students(db, supervisor)]


@router.get("/dashboard/stats/school", response_model=SupervisorDashboardStats)
async def school_dashboard_stats(
    db: AsyncSession = Depends(get_db),
    supervisor: User = Depends(get_current_school_supervisor)
):
    return await dashboard_stats(db, supervisor)


@router.get("/dashboard/stats/industry", response_model=SupervisorDashboardStats)
async def industry_dashboard_stats(
    db: AsyncSession = Depends(get_db),
    supervisor: User = Depends(get_current_industry_supervisor)
):
    return await dashboard_stats(db, supervisor)


@router.get("/students/{student_id}", response_model=StudentProfileResponse)
async def supervised_student_detail(
    student_id: str,
    db: AsyncSession = Depends(get_db),
    supervisor: User = Depends(get_current_supervisor)
):
    """One of the caller's students, in full"""
    student = await load_student(db, student_id)
    if getattr(student, SUPERVISOR_COLUMNS[supervisor.role].key) != supervisor.id:
        raise AuthorizationError("Access denied")

    return {
        "id": student.id,
        "name": student.name,
        "email": student.email,
        "image_url": student.user.image_url,
        "matric_number": student.matric_number,
        "department": student.department,
        "profile": student.profile,
        "industry_supervisor": student.industry_supervisor,
        "school_supervisor": student.school_supervisor,
    }
