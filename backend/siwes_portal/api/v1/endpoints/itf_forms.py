"""
ITF forms: documents admins upload for students to download.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from siwes_portal.core.config import settings
from siwes_portal.core.database import get_db
from siwes_portal.core.exceptions import ResourceNotFoundError
from siwes_portal.core.logging_config import logger
from siwes_portal.core.types import is_valid_uuid
from siwes_portal.models import ITFForm, User
from siwes_portal.modules.auth.dependencies import get_current_admin, get_current_user
from siwes_portal.schemas.itf_form import ITFFormResponse, ITFFormUploadResponse
from siwes_portal.services.file_storage import delete_stored_file, path_for, save_upload

router = APIRouter()

ITF_FORMS_FOLDER = "itf-forms"

MEDIA_TYPES = {
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}


async def get_form_or_404(db: AsyncSession, form_id: str) -> ITFForm:
    form = None
    if is_valid_uuid(form_id):
        form = await db.scalar(select(ITFForm).where(ITFForm.id == form_id))
    if not form:
        raise ResourceNotFoundError("Form not found")
    return form


@router.get("", response_model=List[ITFFormResponse])
async def list_forms(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    result = await db.execute(select(ITFForm).order_by(ITFForm.uploaded_at.desc()))
    return result.scalars().all()


@router.get("/{form_id}", response_model=ITFFormResponse)
async def get_form(
    form_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await get_form_or_404(db, form_id)


@router.get("/{form_id}/download")
async def download_form(
    form_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    form = await get_form_or_404(db, form_id)

    path = path_for(ITF_FORMS_FOLDER, form.stored_name)
    if not path.is_file():
        logger.warning(f"[ITFForms] File missing for form {form.id}: {form.stored_name}")
        raise ResourceNotFoundError("File not found on server")

    filename = form.file_name or form.stored_name
    extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    return FileResponse(
        path=str(path),
        filename=filename,
        media_type=MEDIA_TYPES.get(extension, "application/octet-stream"),
    )


@router.post("", response_model=ITFFormUploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_form(
    title: str = Form(..., min_length=2, max_length=255),
    description: Optional[str] = Form(None),
    file: UploadFile = File(..., description="PDF, DOC or DOCX, up to 5MB"),
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """Store the file and record it"""
    stored_name, url = await save_upload(
        file, ITF_FORMS_FOLDER, settings.FORM_EXTENSIONS, prefix="form-"
    )

    form = ITFForm(
        title=title.strip(),
        description=description.strip() if description else None,
        file_url=url,
        file_name=file.filename,
    )
    db.add(form)
    await db.commit()
    await db.refresh(form)

    logger.log_audit_event("upload_itf_form", current_admin.id, "itf_form", form.id, file_name=file.filename)
    return {"message": "Form uploaded successfully", "form": form}


@router.delete("/{form_id}")
async def delete_form(
    form_id: str,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """Remove the record and its file"""
    form = await get_form_or_404(db, form_id)
    stored_name = form.stored_name

    await db.delete(form)
    await db.commit()
    delete_stored_file(ITF_FORMS_FOLDER, stored_name)

    logger.log_audit_event("delete_itf_form", current_admin.id, "itf_form", form_id)
    return {"message": "Form deleted successfully"}
