from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class ITFFormResponse(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    file_url: str
    file_name: Optional[str] = None
    uploaded_at: datetime

    class Config:
        from_attributes = True


class ITFFormUploadResponse(BaseModel):
    message: str
    form: ITFFormResponse
