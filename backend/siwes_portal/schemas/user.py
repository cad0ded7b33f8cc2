from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import Optional, List, Dict
from datetime import datetime

from siwes_portal.models.user import UserRole
from siwes_portal.schemas.auth import UserResponse


class StudentInfo(BaseModel):
    id: str
    matric_number: str
    department: str
    profile: Optional[str] = None
    industry_supervisor_id: Optional[str] = None
    school_supervisor_id: Optional[str] = None

    class Config:
        from_attributes = True


class UserDetailResponse(UserResponse):
    company: Optional[str] = None
    position: Optional[str] = None
    updated_at: Optional[datetime] = None
    student: Optional[StudentInfo] = None


class UserCreate(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=2, max_length=255)
    password: str = Field(..., min_length=6)
    role: UserRole
    department: Optional[str] = None
    matric_number: Optional[str] = None
    company: Optional[str] = None
    position: Optional[str] = None

    @model_validator(mode='after')
    def validate_student_fields(self):
        """Students need a matric number and department for their student record"""
        if self.role == UserRole.STUDENT:
            missing = []
            if not self.matric_number or not self.matric_number.strip():
                missing.append('matric_number')
            if not self.department or not self.department.strip():
                missing.append('department')
            if missing:
                raise ValueError(f"Required fields for students: {', '.join(missing)}")
        return self


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    is_active: Optional[bool] = None
    image_url: Optional[str] = None
    company: Optional[str] = None
    position: Optional[str] = None
    department: Optional[str] = None
    profile: Optional[str] = None

    @field_validator("name", "is_active", "department")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class UserListResponse(BaseModel):
    items: List[UserDetailResponse]
    total: int
    page: int
    limit: int
    total_pages: int
    has_next: bool
    has_previous: bool


class UserStatsResponse(BaseModel):
    total_users: int
    active_users: int
    inactive_users: int
    users_by_role: Dict[str, int]


class BulkDeleteRequest(BaseModel):
    user_ids: List[str] = Field(..., min_length=1)


class BulkDeleteResult(BaseModel):
    deleted: List[str]
    skipped: List[Dict[str, object]]
    message: str
