"""
Admin user management endpoints.
"""
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from siwes_portal.core.database import get_db
from siwes_portal.core.exceptions import (
    ConflictError,
    DuplicateRecordError,
    UserNotFoundError,
    ValidationFailedError,
)
from siwes_portal.core.logging_config import logger
from siwes_portal.core.security import get_password_hash
from siwes_portal.core.types import is_valid_uuid
from siwes_portal.models import (
    Attendance,
    LogbookEntry,
    Student,
    User,
    UserNotification,
    UserRole,
)
from siwes_portal.modules.auth.dependencies import get_current_admin
from siwes_portal.schemas.user import (
    BulkDeleteRequest,
    BulkDeleteResult,
    UserCreate,
    UserDetailResponse,
    UserListResponse,
    UserStatsResponse,
    UserUpdate,
)
from siwes_portal.utils.pagination import paginate

router = APIRouter()


async def get_user_or_404(db: AsyncSession, user_id: str) -> User:
    if not is_valid_uuid(user_id):
        raise UserNotFoundError()
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise UserNotFoundError()
    return user


async def find_delete_blockers(db: AsyncSession, user: User) -> List[str]:
    """Records that still point at this user and would be orphaned"""
    blockers: List[str] = []

    if user.role == UserRole.STUDENT:
        entries = await db.scalar(
            select(func.count(LogbookEntry.id)).where(LogbookEntry.student_id == user.id)
        )
        if entries:
            blockers.append("logbook entries")
        marks = await db.scalar(
            select(func.count(Attendance.id)).where(Attendance.student_id == user.id)
        )
        if marks:
            blockers.append("attendance records")

    if user.role == UserRole.INDUSTRY_SUPERVISOR:
        assigned = await db.scalar(
            select(func.count(Student.id)).where(Student.industry_supervisor_id == user.id)
        )
        if assigned:
            blockers.append(f"{assigned} assigned students (industry supervisor)")
        marked = await db.scalar(
            select(func.count(Attendance.id)).where(Attendance.supervisor_id == user.id)
        )
        if marked:
            blockers.append("marked attendance records")
        reviews = await db.scalar(
            select(func.count(LogbookEntry.id)).where(LogbookEntry.reviewed_by == user.id)
        )
        if reviews:
            blockers.append("logbook reviews")

    if user.role == UserRole.SCHOOL_SUPERVISOR:
        assigned = await db.scalar(
            select(func.count(Student.id)).where(Student.school_supervisor_id == user.id)
        )
        if assigned:
            blockers.append(f"{assigned} assigned students (school supervisor)")

    return blockers


async def remove_user(db: AsyncSession, user: User) -> None:
    await db.execute(delete(UserNotification).where(UserNotification.user_id == user.id))
    await db.delete(user)


@router.get("", response_model=UserListResponse)
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    role: Optional[List[UserRole]] = Query(None),
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
    department: Optional[str] = None,
    sort_by: Literal["name", "email", "created_at", "role"] = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """List users with filtering, sorting, and pagination"""
    query = select(User)

    if role:
        query = query.where(User.role.in_(role))

    if is_active is not None:
        query = query.where(User.is_active == is_active)

    if search and search.strip():
        term = f"%{search.strip()}%"
        query = query.where(or_(User.name.ilike(term), User.email.ilike(term)))

    if department and department.strip():
        query = query.join(Student, Student.id == User.id).where(
            Student.department.ilike(f"%{department.strip()}%")
        )

    sort_column = getattr(User, sort_by)
    query = query.order_by(sort_column.desc() if sort_order == "desc" else sort_column.asc())

    return await paginate(db, query, page=page, limit=limit)


@router.get("/stats", response_model=UserStatsResponse)
async def user_stats(
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """Totals per role and activity"""
    rows = (await db.execute(select(User.role, func.count(User.id)).group_by(User.role))).all()
    by_role = {r.value: 0 for r in UserRole}
    for role, count in rows:
        by_role[role.value] = count

    total = sum(by_role.values())
    active = await db.scalar(select(func.count(User.id)).where(User.is_active.is_(True))) or 0

    return {
        "total_users": total,
        "active_users": active,
        "inactive_users": total - active,
        "users_by_role": by_role,
    }


@router.post("/bulk-delete", response_model=BulkDeleteResult)
async def bulk_delete_users(
    body: BulkDeleteRequest,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """Delete several users; ones with dependencies are skipped, not failed"""
    deleted: List[str] = []
    skipped: List[dict] = []

    for user_id in dict.fromkeys(body.user_ids):
        if user_id == current_admin.id:
            skipped.append({"id": user_id, "reason": "Cannot delete your own account"})
            continue
        if not is_valid_uuid(user_id):
            skipped.append({"id": user_id, "reason": "User not found"})
            continue
        user = await db.scalar(select(User).where(User.id == user_id))
        if not user:
            skipped.append({"id": user_id, "reason": "User not found"})
            continue
        blockers = await find_delete_blockers(db, user)
        if blockers:
            skipped.append({"id": user_id, "reason": "User has dependencies and cannot be deleted",
                            "dependencies": blockers})
            continue
        await remove_user(db, user)
        deleted.append(user_id)

    await db.commit()
    logger.log_audit_event("bulk_delete_users", current_admin.id, "user",
                           deleted=len(deleted), skipped=len(skipped))

    return {
        "deleted": deleted,
        "skipped": skipped,
        "message": f"Deleted {len(deleted)} user(s), skipped {len(skipped)}",
    }


@router.get("/{user_id}", response_model=UserDetailResponse)
async def get_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    return await get_user_or_404(db, user_id)


@router.post("", response_model=UserDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserCreate,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """Create a user of any role; students also get their student record"""
    email = body.email.lower()
    if await db.scalar(select(User.id).where(User.email == email)):
        raise DuplicateRecordError("Email already registered")

    if body.role == UserRole.STUDENT:
        matric = body.matric_number.strip()
        if await db.scalar(select(Student.id).where(Student.matric_number == matric)):
            raise DuplicateRecordError("Matric number already registered")

    user = User(
        email=email,
        name=body.name.strip(),
        password_hash=get_password_hash(body.password),
        role=body.role,
        company=body.company,
        position=body.position,
        is_active=True,
    )
    db.add(user)
    await db.flush()

    if body.role == UserRole.STUDENT:
        db.add(Student(
            id=user.id,
            matric_number=body.matric_number.strip(),
            department=body.department.strip(),
            profile="",
        ))

    await db.commit()
    await db.refresh(user, ["student"])

    logger.log_audit_event("create_user", current_admin.id, "user", user.id, role=user.role.value)
    return user


@router.patch("/{user_id}", response_model=UserDetailResponse)
async def update_user(
    user_id: str,
    body: UserUpdate,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """Edit profile fields or (de)activate an account. Role is fixed."""
    user = await get_user_or_404(db, user_id)
    updates = body.model_dump(exclude_unset=True)

    if updates.get("is_active") is False and user.id == current_admin.id:
        raise ValidationFailedError("Cannot deactivate your own account")

    student_fields = {k: updates.pop(k) for k in ("department", "profile") if k in updates}
    if student_fields and not user.student:
        raise ValidationFailedError("department and profile only apply to students")

    for field, value in updates.items():
        setattr(user, field, value)
    for field, value in student_fields.items():
        setattr(user.student, field, value)

    await db.commit()
    await db.refresh(user, ["student"])

    logger.log_audit_event("update_user", current_admin.id, "user", user.id, fields=sorted(body.model_fields_set))
    return user


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """Delete a user that nothing else depends on"""
    user = await get_user_or_404(db, user_id)

    if user.id == current_admin.id:
        raise ValidationFailedError("Cannot delete your own account")

    blockers = await find_delete_blockers(db, user)
    if blockers:
        raise ConflictError(
            "Cannot delete user with existing dependencies",
            code="HAS_DEPENDENCIES",
            details={"dependencies": blockers},
        )

    await remove_user(db, user)
    await db.commit()

    logger.log_audit_event("delete_user", current_admin.id, "user", user_id)
    return {"message": "User deleted successfully"}
