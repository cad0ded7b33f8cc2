"""
Student self-service: register an industry supervisor from a one-row CSV.
"""
import io

from email_validator import EmailNotValidError
from fastapi import APIRouter, Depends, File, Request, UploadFile
from fastapi.responses import StreamingResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from siwes_portal.core.database import get_db
from siwes_portal.core.exceptions import ValidationFailedError
from siwes_portal.core.logging_config import logger
from siwes_portal.core.rate_limiter import UPLOAD_LIMIT, limiter
from siwes_portal.core.security import generate_temp_password, get_password_hash
from siwes_portal.models import User, UserRole
from siwes_portal.modules.auth.dependencies import get_current_student, load_student
from siwes_portal.schemas.assignment import (
    IndustrySupervisorStatus,
    IndustrySupervisorUploadResponse,
)
from siwes_portal.services.csv_import import (
    SUPERVISOR_COLUMNS,
    normalize_email,
    read_csv_rows,
    read_csv_upload,
    template_csv,
)
from siwes_portal.services.notification_service import notify_supervisor_assigned

router = APIRouter()


@router.post("/upload", response_model=IndustrySupervisorUploadResponse)
@limiter.limit(UPLOAD_LIMIT)
async def upload_industry_supervisor(
    request: Request,
    file: UploadFile = File(..., description="CSV with name,email,company,position"),
    current_user: User = Depends(get_current_student),
    db: AsyncSession = Depends(get_db)
):
    """
    Create (or reuse) an industry supervisor account and assign it to the caller.

    Only the first data row is used. A new account gets a generated password
    that must be changed at first login; the password is returned once here.
    """
    student = await load_student(db, current_user.id)
    if student.industry_supervisor_id:
        raise ValidationFailedError("You already have an industry supervisor assigned")

    rows = read_csv_rows(await read_csv_upload(file), SUPERVISOR_COLUMNS)
    if not rows:
        raise ValidationFailedError("CSV file contains no supervisor rows")
    row = rows[0]

    name = row.get("name", "")
    if len(name) < 2:
        raise ValidationFailedError("Supervisor name is required")
    try:
        email = normalize_email(row.get("email", ""))
    except EmailNotValidError:
        raise ValidationFailedError("Supervisor email is invalid")

    supervisor = await db.scalar(select(User).where(User.email == email))
    temporary_password = None
    created = False

    if supervisor is not None:
        if supervisor.role != UserRole.INDUSTRY_SUPERVISOR:
            raise ValidationFailedError("Email is already registered to a non-supervisor account")
        if not supervisor.is_active:
            raise ValidationFailedError("Supervisor account is inactive")
    else:
        temporary_password = generate_temp_password()
        supervisor = User(
            email=email,
            name=name,
            password_hash=get_password_hash(temporary_password),
            role=UserRole.INDUSTRY_SUPERVISOR,
            company=row.get("company") or None,
            position=row.get("position") or None,
            must_change_password=True,
            is_active=True,
        )
        db.add(supervisor)
        await db.flush()
        created = True

    student.industry_supervisor_id = supervisor.id
    await notify_supervisor_assigned(db, student.id, supervisor.name, "industry")
    await db.commit()

    logger.log_audit_event(
        "upload_industry_supervisor", current_user.id, "user", supervisor.id, supervisor_created=created,
    )
    return {
        "message": "Industry supervisor created and assigned" if created else "Industry supervisor assigned",
        "supervisor": supervisor,
        "created": created,
        "temporary_password": temporary_password,
    }


@router.get("/status", response_model=IndustrySupervisorStatus)
async def industry_supervisor_status(
    current_user: User = Depends(get_current_student),
    db: AsyncSession = Depends(get_db)
):
    student = await load_student(db, current_user.id)
    return {
        "has_industry_supervisor": student.industry_supervisor_id is not None,
        "supervisor": student.industry_supervisor,
    }


@router.get("/export-template")
async def export_template(current_user: User = Depends(get_current_student)):
    """Blank CSV with the expected header"""
    content = template_csv(SUPERVISOR_COLUMNS)
    return StreamingResponse(
        io.StringIO(content),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="industry-supervisor-template.csv"'}
    )
