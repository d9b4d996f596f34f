"""Pydantic request schemas used by the API.

Schemas keep API input shapes stable and provide validation for the
handlers; a missing or malformed required field becomes a 400 response.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class TrainingRecipientIn(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    location: Optional[str] = None
    contact_email: Optional[str] = None
    sub_organization_id: Optional[int] = None


class TrainingRecipientUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    contact_email: Optional[str] = None


class SubOrganizationIn(BaseModel):
    title: str = Field(min_length=1)
    organization_name: Optional[str] = None


class ProjectIn(BaseModel):
    """Payload for creating a project."""
    title: str = Field(min_length=1)
    summary: Optional[str] = None
    status: str = "pending"
    timezone: str = "UTC"
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    location: Optional[str] = None
    sub_organization_id: Optional[int] = None
    training_recipient_id: Optional[int] = None
    curriculum_ids: List[int] = []


class ProjectUpdate(BaseModel):
    title: Optional[str] = None
    summary: Optional[str] = None
    status: Optional[str] = None
    timezone: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    location: Optional[str] = None
    training_recipient_id: Optional[int] = None


class ParticipantIn(BaseModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    job_title: Optional[str] = None
    participant_status: str = "active"


class EnrollmentIn(BaseModel):
    """Enroll a participant, creating the participant record if needed."""
    participant: ParticipantIn


class CurriculumLinkIn(BaseModel):
    curriculum_id: int


class GroupIn(BaseModel):
    group_name: Optional[str] = None
    chip_color: Optional[str] = None
    participant_ids: List[int] = []


class GroupUpdate(BaseModel):
    group_name: Optional[str] = None
    chip_color: Optional[str] = None


class GroupMemberIn(BaseModel):
    participant_id: int


class EventIn(BaseModel):
    """Event times may be naive (interpreted in the project timezone) or aware."""
    title: str = Field(min_length=1)
    start: datetime
    end: datetime
    course_id: Optional[int] = None
    description: Optional[str] = None
    event_type: str = "course"
    all_day: bool = False
    color: Optional[str] = None
    room: Optional[str] = None


class EventUpdate(BaseModel):
    title: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    course_id: Optional[int] = None
    description: Optional[str] = None
    event_type: Optional[str] = None
    all_day: Optional[bool] = None
    color: Optional[str] = None
    room: Optional[str] = None


class AttendeesIn(BaseModel):
    participant_ids: List[int] = []
    group_ids: List[int] = []


class AttendanceUpdate(BaseModel):
    attendance_status: str


class MoveAttendeeIn(BaseModel):
    participant_id: int
    from_event_id: int
    to_event_id: int


class EventInstructorIn(BaseModel):
    instructor_id: int
    role: str = "main"


class InstructorIn(BaseModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    sub_organization_id: Optional[int] = None


class CourseIn(BaseModel):
    title: str = Field(min_length=1)
    summary: Optional[str] = None
    level: Optional[str] = None
    duration_minutes: Optional[int] = None
    sub_organization_id: Optional[int] = None


class CourseUpdate(BaseModel):
    title: Optional[str] = None
    summary: Optional[str] = None
    level: Optional[str] = None
    duration_minutes: Optional[int] = None


class ModuleIn(BaseModel):
    title: str = Field(min_length=1)
    summary: Optional[str] = None
    module_order: Optional[int] = None
    duration_minutes: Optional[int] = None


class ActivityIn(BaseModel):
    title: str = Field(min_length=1)
    activity_type: Optional[str] = None
    activity_order: Optional[int] = None
    duration_minutes: Optional[int] = None


class AssessmentIn(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    max_score: float = 100.0
    passing_score: float = 70.0
    is_active: bool = True
    allow_retakes: bool = True
    max_attempts: Optional[int] = None
    score_strategy: str = "latest"


class AssessmentUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    max_score: Optional[float] = None
    passing_score: Optional[float] = None
    is_active: Optional[bool] = None
    allow_retakes: Optional[bool] = None
    max_attempts: Optional[int] = None
    score_strategy: Optional[str] = None


class CurriculumIn(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    sub_organization_id: Optional[int] = None
    course_ids: List[int] = []


class CurriculumUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None


class CurriculumCourseIn(BaseModel):
    course_id: int


class SurveyIn(BaseModel):
    title: str = Field(min_length=1)
    provider: str
    provider_config: Dict[str, Any] = {}
    is_active: bool = True


class RecordScoreIn(BaseModel):
    """Score for one attempt; the attempt number is assigned by the server."""
    course_assessment_id: int
    participant_id: int
    score_earned: float
    score_maximum: float
    instructor_id: Optional[int] = None
    feedback: Optional[str] = None
    assessment_date: Optional[datetime] = None


class OverrideScoreIn(BaseModel):
    score_id: int
    passed: bool
    override_reason: Optional[str] = None


class ClearOverrideIn(BaseModel):
    score_id: int


class ToggleProjectAssessmentIn(BaseModel):
    project_id: int
    course_assessment_id: int
    is_active: bool


class ToggleCurriculumAssessmentIn(BaseModel):
    curriculum_id: int
    course_assessment_id: int
    is_active: bool
