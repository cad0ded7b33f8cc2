"""
Admin bulk account import from CSV.
"""
import io

from fastapi import APIRouter, Depends, File, Request, UploadFile
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from siwes_portal.core.database import get_db
from siwes_portal.core.logging_config import logger
from siwes_portal.core.rate_limiter import UPLOAD_LIMIT, limiter
from siwes_portal.models import User
from siwes_portal.modules.auth.dependencies import get_current_admin
from siwes_portal.schemas.csv_import import CSVImportResponse
from siwes_portal.services.csv_import import (
    USER_IMPORT_COLUMNS,
    USER_IMPORT_REQUIRED,
    import_users,
    read_csv_rows,
    read_csv_upload,
    template_csv,
)

router = APIRouter()


@router.post("/upload-csv", response_model=CSVImportResponse)
@limiter.limit(UPLOAD_LIMIT)
async def upload_users_csv(
    request: Request,
    file: UploadFile = File(..., description="CSV with email,name,role,department,matric_number"),
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """
    Create accounts in bulk.

    Rows are processed independently: a bad row is reported and the rest
    still go through. Temporary passwords for created accounts are returned
    in ``credentials`` and are not retrievable later.
    """
    rows = read_csv_rows(await read_csv_upload(file), USER_IMPORT_REQUIRED)
    outcome = await import_users(db, rows)
    await db.commit()

    results = outcome["results"]
    created = sum(r["status"] == "created" for r in results)
    skipped = sum(r["status"] == "skipped" for r in results)
    failed = sum(r["status"] == "failed" for r in results)

    logger.log_audit_event(
        "import_users_csv", current_admin.id, "user",
        file_name=file.filename, rows=len(rows), created_count=created, skipped_count=skipped, failed_count=failed,
    )
    return {
        "message": f"Processed {len(rows)} row(s): {created} created, {skipped} skipped, {failed} failed",
        "total_rows": len(rows),
        "created": created,
        "skipped": skipped,
        "failed": failed,
        "results": results,
        "credentials": outcome["credentials"],
    }


@router.get("/csv-template")
async def users_csv_template(current_admin: User = Depends(get_current_admin)):
    """Header row plus one example student row"""
    content = template_csv(
        USER_IMPORT_COLUMNS,
        example=["jane.doe@example.com", "Jane Doe", "Student", "Computer Science", "CSC/2021/001"],
    )
    return StreamingResponse(
        io.StringIO(content),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="users-template.csv"'}
    )
