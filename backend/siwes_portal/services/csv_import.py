"""
CSV parsing and bulk account creation.

Uploaded CSVs are read with pandas as all-string frames; column headers are
normalised so ``matricNumber``, ``Matric Number`` and ``matric_number`` are
the same column.
"""
import csv
import io
import re
from typing import Dict, List, Sequence

import pandas as pd
from email_validator import EmailNotValidError, validate_email
from fastapi import UploadFile
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from siwes_portal.core.config import settings
from siwes_portal.core.exceptions import InvalidFileError, ValidationFailedError
from siwes_portal.core.logging_config import logger
from siwes_portal.core.security import generate_temp_password, get_password_hash
from siwes_portal.models.student import Student
from siwes_portal.models.user import User, UserRole

USER_IMPORT_COLUMNS = ["email", "name", "role", "department", "matric_number"]
USER_IMPORT_REQUIRED = ("email", "name", "role")
SUPERVISOR_COLUMNS = ["name", "email", "company", "position"]


def normalize_column(name: str) -> str:
    """'matricNumber' / 'Matric Number' -> 'matric_number'"""
    name = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "_", str(name).strip())
    return re.sub(r"[\s\-]+", "_", name).lower()


def read_csv_rows(content: bytes, required_columns: Sequence[str]) -> List[Dict[str, str]]:
    """
    Parse CSV bytes into a list of row dicts with stripped string values.

    Raises ValidationFailedError for unreadable files or missing columns.
    """
    if not content or not content.strip():
        raise ValidationFailedError("CSV file is empty")

    try:
        df = pd.read_csv(
            io.BytesIO(content),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            encoding="utf-8-sig",
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise ValidationFailedError(f"Failed to parse CSV: {e}")

    df.columns = [normalize_column(c) for c in df.columns]
    missing = [c for c in required_columns if c not in df.columns]
    if missing:
        raise ValidationFailedError(
            f"CSV is missing required columns: {', '.join(missing)}",
            details={"required_columns": list(required_columns)},
        )

    df = df.apply(lambda col: col.str.strip())
    return df.to_dict(orient="records")


def normalize_email(value: str) -> str:
    """Validate syntax only and lower-case the address"""
    return validate_email(value, check_deliverability=False).normalized.lower()


def template_csv(columns: Sequence[str], example: Sequence[str] = ()) -> str:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(columns)
    if example:
        writer.writerow(example)
    return output.getvalue()


async def read_csv_upload(upload: UploadFile) -> bytes:
    """Raw bytes of an uploaded .csv file, after extension and size checks"""
    if not upload or not upload.filename or not upload.filename.lower().endswith(".csv"):
        raise InvalidFileError("Only CSV files are supported")

    content = await upload.read()
    if not content:
        raise InvalidFileError("Empty file")
    if len(content) > settings.MAX_UPLOAD_SIZE:
        raise InvalidFileError(
            f"File too large. Maximum size is {settings.MAX_UPLOAD_SIZE // (1024 * 1024)}MB"
        )
    return content


async def import_users(db: AsyncSession, rows: List[Dict[str, str]]) -> Dict[str, list]:
    """
    Create one account per CSV row.

    Each row ends up ``created``, ``skipped`` (email or matric number already
    used) or ``failed`` (invalid data). Created accounts get a generated
    password and must change it at first login.

    Returns:
        dict with ``results`` and ``credentials`` lists
    """
    results: List[dict] = []
    credentials: List[dict] = []
    seen_emails = set()
    seen_matrics = set()

    for index, row in enumerate(rows, start=2):  # row 1 is the header
        raw_email = row.get("email", "")
        name = row.get("name", "")
        role_value = row.get("role", "")

        if not raw_email or not name or not role_value:
            results.append({"row": index, "email": raw_email or None, "status": "failed",
                            "reason": "Missing required fields"})
            continue

        try:
            email = normalize_email(raw_email)
        except EmailNotValidError:
            results.append({"row": index, "email": raw_email, "status": "failed", "reason": "Invalid email"})
            continue

        try:
            role = UserRole(role_value)
        except ValueError:
            results.append({"row": index, "email": email, "status": "failed", "reason": "Invalid role"})
            continue

        if len(name) < 2:
            results.append({"row": index, "email": email, "status": "failed", "reason": "Name is too short"})
            continue

        department = row.get("department", "")
        matric_number = row.get("matric_number", "")
        if role == UserRole.STUDENT and (not department or not matric_number):
            results.append({"row": index, "email": email, "status": "failed",
                            "reason": "Students require department and matric_number"})
            continue

        existing = await db.scalar(select(User.id).where(User.email == email))
        if existing or email in seen_emails:
            results.append({"row": index, "email": email, "status": "skipped", "reason": "Already exists"})
            continue

        if role == UserRole.STUDENT:
            taken = await db.scalar(select(Student.id).where(Student.matric_number == matric_number))
            if taken or matric_number in seen_matrics:
                results.append({"row": index, "email": email, "status": "skipped",
                                "reason": "Matric number already registered"})
                continue

        password = generate_temp_password()
        user = User(
            email=email,
            name=name,
            password_hash=get_password_hash(password),
            role=role,
            must_change_password=True,
            is_active=True,
        )
        db.add(user)
        await db.flush()

        if role == UserRole.STUDENT:
            db.add(Student(id=user.id, matric_number=matric_number, department=department, profile=""))
            seen_matrics.add(matric_number)

        seen_emails.add(email)
        credentials.append({"email": email, "name": name, "role": role.value, "temporary_password": password})
        results.append({"row": index, "email": email, "status": "created"})

    await db.flush()

    logger.info(
        f"[CSVImport] {len(credentials)} created, "
        f"{sum(r['status'] == 'skipped' for r in results)} skipped, "
        f"{sum(r['status'] == 'failed' for r in results)} failed",
        extra={"event_type": "csv_import", "rows": len(rows)}
    )
    return {"results": results, "credentials": credentials}
