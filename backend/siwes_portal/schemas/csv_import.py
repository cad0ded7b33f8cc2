from pydantic import BaseModel
from typing import Optional, List


class ImportedCredential(BaseModel):
    email: str
    name: str
    role: str
    temporary_password: str


class ImportRowResult(BaseModel):
    row: int
    email: Optional[str] = None
    status: str  # created / skipped / failed
    reason: Optional[str] = None


class CSVImportResponse(BaseModel):
    message: str
    total_rows: int
    created: int
    skipped: int
    failed: int
    results: List[ImportRowResult]
    credentials: List[ImportedCredential]
