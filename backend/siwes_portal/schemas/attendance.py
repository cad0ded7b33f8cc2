from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import date, datetime


class AttendanceCreate(BaseModel):
    student_id: str
    date: date
    present: bool
    notes: Optional[str] = Field(None, max_length=1000)


class AttendanceUpdate(BaseModel):
    present: Optional[bool] = None
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator("present")
    @classmethod
    def present_not_null(cls, v):
        if v is None:
            raise ValueError("present cannot be null")
        return v


class AttendanceResponse(BaseModel):
    id: str
    student_id: str
    supervisor_id: str
    date: date
    present: bool
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AttendanceStatistics(BaseModel):
    total_days: int
    present_days: int
    absent_days: int
    attendance_rate: float


class AttendanceMarkResponse(BaseModel):
    message: str
    attendance: AttendanceResponse
    statistics: AttendanceStatistics


class AttendanceUpdateResponse(BaseModel):
    message: str
    attendance: AttendanceResponse


class StudentAttendanceResponse(BaseModel):
    student_id: str
    student_name: str
    matric_number: str
    attendance: List[AttendanceResponse]
    statistics: AttendanceStatistics


class SupervisedStudentAttendance(BaseModel):
    id: str
    name: str
    email: str
    matric_number: str
    department: str
    statistics: AttendanceStatistics
    last_attendance: Optional[AttendanceResponse] = None
