from pydantic import BaseModel, Field
from typing import Optional, List


class AssignmentRequest(BaseModel):
    supervisor_id: str
    student_ids: List[str] = Field(..., min_length=1)


class RandomAssignmentRequest(BaseModel):
    department_filter: Optional[str] = None
    seed: Optional[int] = None


class AssignedStudent(BaseModel):
    id: str
    name: str
    matric_number: str


class AssignmentResponse(BaseModel):
    message: str
    supervisor_id: str
    assigned_students: List[AssignedStudent]
    skipped_student_ids: List[str] = []


class SupervisorLoad(BaseModel):
    supervisor_id: str
    supervisor_name: str
    assigned_student_count: int
    total_student_count: int


class RandomAssignmentResponse(BaseModel):
    message: str
    assigned_count: int
    assignment_summary: List[SupervisorLoad]


class SupervisorRef(BaseModel):
    id: str
    name: str
    email: str
    company: Optional[str] = None
    position: Optional[str] = None

    class Config:
        from_attributes = True


class StudentAssignmentView(BaseModel):
    id: str
    name: str
    email: str
    matric_number: str
    department: str
    industry_supervisor: Optional[SupervisorRef] = None
    school_supervisor: Optional[SupervisorRef] = None


class StudentCountAnalysis(BaseModel):
    total_students: int
    with_industry_supervisor: int
    with_school_supervisor: int
    fully_assigned: int
    unassigned_industry: int
    unassigned_school: int
    by_department: List[dict]
    school_supervisor_loads: List[SupervisorLoad]
    industry_supervisor_loads: List[SupervisorLoad]


class SupervisorDashboardStats(BaseModel):
    total_students: int
    total_logbook_entries: int
    submitted_entries: int
    pending_reviews: int
    approved_entries: int
    rejected_entries: int
    attendance_marked: Optional[int] = None
    attendance_rate: Optional[float] = None


class StudentProfileResponse(BaseModel):
    id: str
    name: str
    email: str
    image_url: Optional[str] = None
    matric_number: str
    department: str
    profile: Optional[str] = None
    industry_supervisor: Optional[SupervisorRef] = None
    school_supervisor: Optional[SupervisorRef] = None


class IndustrySupervisorStatus(BaseModel):
    has_industry_supervisor: bool
    supervisor: Optional[SupervisorRef] = None


class IndustrySupervisorUploadResponse(BaseModel):
    message: str
    supervisor: SupervisorRef
    created: bool
    temporary_password: Optional[str] = None
