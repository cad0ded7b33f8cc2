"""
Local disk storage for uploaded files.

Files land under settings.UPLOAD_DIR/<folder>/ with a time+random name and
are served back by the /uploads static mount.
"""
import secrets
import time
from pathlib import Path
from typing import Iterable, Optional, Tuple

from fastapi import UploadFile

from siwes_portal.core.config import settings
from siwes_portal.core.exceptions import InvalidFileError
from siwes_portal.core.logging_config import logger


def file_extension(filename: Optional[str]) -> str:
    if not filename or "." not in filename:
        return ""
    return filename.rsplit(".", 1)[-1].lower()


def generate_stored_name(original_name: str, prefix: str = "") -> str:
    """e.g. form-1718900000000-482913077.pdf"""
    ext = file_extension(original_name)
    stamp = int(time.time() * 1000)
    suffix = secrets.randbelow(10 ** 9)
    name = f"{prefix}{stamp}-{suffix}"
    return f"{name}.{ext}" if ext else name


def public_url(folder: str, stored_name: str) -> str:
    return f"/uploads/{folder}/{stored_name}"


def path_for(folder: str, stored_name: str) -> Path:
    """Resolve a stored file, refusing names that escape the upload folder"""
    base = (settings.UPLOAD_DIR / folder).resolve()
    candidate = (base / stored_name).resolve()
    if base not in candidate.parents:
        raise InvalidFileError("Invalid file name")
    return candidate


async def save_upload(
    upload: UploadFile,
    folder: str,
    allowed_extensions: Iterable[str],
    max_size: Optional[int] = None,
    prefix: str = "",
) -> Tuple[str, str]:
    """
    Validate and write an uploaded file.

    Returns:
        (stored_name, public_url)
    """
    max_size = max_size or settings.MAX_UPLOAD_SIZE
    allowed = {ext.lower() for ext in allowed_extensions}

    if not upload or not upload.filename:
        raise InvalidFileError("No file provided")

    ext = file_extension(upload.filename)
    if ext not in allowed:
        raise InvalidFileError(
            f"Invalid file type. Allowed types: {', '.join(sorted(allowed))}"
        )

    content = await upload.read()
    if not content:
        raise InvalidFileError("Uploaded file is empty")
    if len(content) > max_size:
        raise InvalidFileError(
            f"File too large. Maximum size is {max_size // 1024 // 1024}MB"
        )

    stored_name = generate_stored_name(upload.filename, prefix)
    target = path_for(folder, stored_name)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(content)

    logger.info(
        f"[Storage] Saved {upload.filename} as {folder}/{stored_name} ({len(content)} bytes)",
        extra={"event_type": "file_saved", "folder": folder, "size": len(content)}
    )
    return stored_name, public_url(folder, stored_name)


def delete_stored_file(folder: str, stored_name: str) -> bool:
    """Remove a stored file. Returns False when it was already gone."""
    target = path_for(folder, stored_name)
    if not target.exists():
        logger.warning(f"[Storage] File already missing: {folder}/{stored_name}")
        return False
    target.unlink()
    return True
