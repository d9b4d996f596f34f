"""SQLModel data models.

This module defines the application's database tables using SQLModel.
Each class maps to a table; uniqueness rules live on the tables as
constraints so the database enforces them.
"""

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional
import uuid

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_cuid() -> str:
    """Return a short opaque public identifier."""
    return uuid.uuid4().hex[:24]


class Organization(SQLModel, table=True):
    """A customer organization, mirrored from the identity provider."""
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    workos_org_id: Optional[str] = Field(default=None, index=True, unique=True)
    created_at: datetime = Field(default_factory=_utcnow)


class SubOrganization(SQLModel, table=True):
    """A division of an organization that owns projects and catalog data."""
    id: Optional[int] = Field(default=None, primary_key=True)
    organization_id: int = Field(foreign_key='organization.id', index=True)
    title: str
    created_at: datetime = Field(default_factory=_utcnow)


class TrainingRecipient(SQLModel, table=True):
    """The client company whose staff receive the training."""
    id: Optional[int] = Field(default=None, primary_key=True)
    sub_organization_id: Optional[int] = Field(default=None, foreign_key='suborganization.id', index=True)
    name: str
    description: Optional[str] = None
    location: Optional[str] = None
    contact_email: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)


class Project(SQLModel, table=True):
    """A training engagement scoping participants, events and curriculums."""
    id: Optional[int] = Field(default=None, primary_key=True)
    cuid: str = Field(default_factory=new_cuid, index=True, unique=True)
    title: str
    summary: Optional[str] = None
    status: str = "pending"
    timezone: str = "UTC"
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    location: Optional[str] = None
    sub_organization_id: Optional[int] = Field(default=None, foreign_key='suborganization.id', index=True)
    training_recipient_id: Optional[int] = Field(default=None, foreign_key='trainingrecipient.id', index=True)
    created_by: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class Participant(SQLModel, table=True):
    """A person who can be enrolled into projects.

    `email` is stored lower-cased and trimmed and is unique system-wide.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    first_name: str
    last_name: str
    email: str = Field(index=True, unique=True)
    participant_status: str = "active"
    job_title: Optional[str] = None
    training_recipient_id: Optional[int] = Field(default=None, foreign_key='trainingrecipient.id', index=True)
    created_at: datetime = Field(default_factory=_utcnow)


class ProjectParticipant(SQLModel, table=True):
    """Enrollment of a `Participant` in a `Project`.

    Removal is soft: `status` becomes `removed` and the row is kept so a
    later enrollment reactivates it.
    """
    __table_args__ = (UniqueConstraint('project_id', 'participant_id'),)
    id: Optional[int] = Field(default=None, primary_key=True)
    project_id: int = Field(foreign_key='project.id', index=True)
    participant_id: int = Field(foreign_key='participant.id', index=True)
    status: str = "active"
    created_at: datetime = Field(default_factory=_utcnow)


class Instructor(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    first_name: str
    last_name: str
    email: str = Field(index=True, unique=True)
    sub_organization_id: Optional[int] = Field(default=None, foreign_key='suborganization.id')
    created_at: datetime = Field(default_factory=_utcnow)


class Course(SQLModel, table=True):
    """A catalog course made of ordered modules."""
    id: Optional[int] = Field(default=None, primary_key=True)
    cuid: str = Field(default_factory=new_cuid, index=True, unique=True)
    title: str
    summary: Optional[str] = None
    level: Optional[str] = None
    duration_minutes: Optional[int] = None
    version: int = 1
    sub_organization_id: Optional[int] = Field(default=None, foreign_key='suborganization.id', index=True)
    created_at: datetime = Field(default_factory=_utcnow)
    modules: List['Module'] = Relationship(back_populates='course')


class Module(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    course_id: int = Field(foreign_key='course.id', index=True)
    title: str
    summary: Optional[str] = None
    module_order: int = 0
    duration_minutes: Optional[int] = None
    course: Optional[Course] = Relationship(back_populates='modules')
    activities: List['Activity'] = Relationship(back_populates='module')


class Activity(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    module_id: int = Field(foreign_key='module.id', index=True)
    title: str
    activity_type: Optional[str] = None
    activity_order: int = 0
    duration_minutes: Optional[int] = None
    module: Optional[Module] = Relationship(back_populates='activities')


class Curriculum(SQLModel, table=True):
    """An ordered bundle of courses delivered through projects."""
    id: Optional[int] = Field(default=None, primary_key=True)
    cuid: str = Field(default_factory=new_cuid, index=True, unique=True)
    title: str
    description: Optional[str] = None
    sub_organization_id: Optional[int] = Field(default=None, foreign_key='suborganization.id', index=True)
    created_at: datetime = Field(default_factory=_utcnow)


class CurriculumCourse(SQLModel, table=True):
    __table_args__ = (UniqueConstraint('curriculum_id', 'course_id'),)
    id: Optional[int] = Field(default=None, primary_key=True)
    curriculum_id: int = Field(foreign_key='curriculum.id', index=True)
    course_id: int = Field(foreign_key='course.id', index=True)
    position: int = 0


class ProjectCurriculum(SQLModel, table=True):
    __table_args__ = (UniqueConstraint('project_id', 'curriculum_id'),)
    id: Optional[int] = Field(default=None, primary_key=True)
    project_id: int = Field(foreign_key='project.id', index=True)
    curriculum_id: int = Field(foreign_key='curriculum.id', index=True)
    created_at: datetime = Field(default_factory=_utcnow)


class CurriculumSurvey(SQLModel, table=True):
    """An external survey attached to a curriculum.

    `provider_config` holds provider-specific settings such as `form_url`.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    curriculum_id: int = Field(foreign_key='curriculum.id', index=True)
    title: str
    provider: str
    provider_config: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    is_active: bool = True
    created_at: datetime = Field(default_factory=_utcnow)


class ProjectGroup(SQLModel, table=True):
    """A cohort of enrollments inside a project (e.g. `Group 1`)."""
    __table_args__ = (UniqueConstraint('project_id', 'group_name'),)
    id: Optional[int] = Field(default=None, primary_key=True)
    project_id: int = Field(foreign_key='project.id', index=True)
    group_name: str
    chip_color: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)


class GroupParticipant(SQLModel, table=True):
    """Membership of an enrollment in a group; one group per enrollment."""
    id: Optional[int] = Field(default=None, primary_key=True)
    group_id: int = Field(foreign_key='projectgroup.id', index=True)
    participant_id: int = Field(foreign_key='projectparticipant.id', index=True, unique=True)


class Event(SQLModel, table=True):
    """A scheduled session within a project, usually delivering a course."""
    id: Optional[int] = Field(default=None, primary_key=True)
    project_id: int = Field(foreign_key='project.id', index=True)
    course_id: Optional[int] = Field(default=None, foreign_key='course.id', index=True)
    title: str
    description: Optional[str] = None
    event_type: str = "course"
    start: datetime
    end: datetime
    all_day: bool = False
    color: Optional[str] = None
    room: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)


class EventAttendee(SQLModel, table=True):
    """An enrollment scheduled into an event with its attendance status."""
    __table_args__ = (UniqueConstraint('event_id', 'enrollee_id'),)
    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: int = Field(foreign_key='event.id', index=True)
    enrollee_id: int = Field(foreign_key='projectparticipant.id', index=True)
    attendance_status: str = "scheduled"
    updated_at: datetime = Field(default_factory=_utcnow)


class EventGroup(SQLModel, table=True):
    __table_args__ = (UniqueConstraint('event_id', 'group_id'),)
    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: int = Field(foreign_key='event.id', index=True)
    group_id: int = Field(foreign_key='projectgroup.id', index=True)


class EventInstructor(SQLModel, table=True):
    __table_args__ = (UniqueConstraint('event_id', 'instructor_id'),)
    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: int = Field(foreign_key='event.id', index=True)
    instructor_id: int = Field(foreign_key='instructor.id', index=True)
    role: str = "main"


class CourseAssessment(SQLModel, table=True):
    """A scored assessment belonging to a course.

    `passing_score` is a percentage threshold; `score_strategy` selects
    which attempt counts as current (`latest`, `highest`, `average`,
    `first`).
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    course_id: int = Field(foreign_key='course.id', index=True)
    title: str
    description: Optional[str] = None
    max_score: float = 100.0
    passing_score: float = 70.0
    is_active: bool = True
    allow_retakes: bool = True
    max_attempts: Optional[int] = None
    score_strategy: str = "latest"
    created_at: datetime = Field(default_factory=_utcnow)


class ParticipantAssessmentScore(SQLModel, table=True):
    """One scored attempt of an enrollment against a `CourseAssessment`."""
    __table_args__ = (UniqueConstraint('course_assessment_id', 'participant_id', 'attempt_number'),)
    id: Optional[int] = Field(default=None, primary_key=True)
    course_assessment_id: int = Field(foreign_key='courseassessment.id', index=True)
    participant_id: int = Field(foreign_key='projectparticipant.id', index=True)
    instructor_id: Optional[int] = Field(default=None, foreign_key='instructor.id')
    attempt_number: int = 1
    score_earned: float
    score_maximum: float
    score_percentage: float
    passed: bool = False
    is_overridden: bool = False
    override_reason: Optional[str] = None
    overridden_by: Optional[str] = None
    overridden_at: Optional[datetime] = None
    feedback: Optional[str] = None
    assessment_date: datetime = Field(default_factory=_utcnow)
    is_current: bool = False
    created_by: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)


class ProjectAssessmentConfig(SQLModel, table=True):
    """Project-level activation override for an assessment."""
    __table_args__ = (UniqueConstraint('project_id', 'course_assessment_id'),)
    id: Optional[int] = Field(default=None, primary_key=True)
    project_id: int = Field(foreign_key='project.id', index=True)
    course_assessment_id: int = Field(foreign_key='courseassessment.id', index=True)
    is_active: bool
    created_by: Optional[str] = None
    updated_at: datetime = Field(default_factory=_utcnow)


class CurriculumAssessmentConfig(SQLModel, table=True):
    """Curriculum-level activation override for an assessment."""
    __table_args__ = (UniqueConstraint('curriculum_id', 'course_assessment_id'),)
    id: Optional[int] = Field(default=None, primary_key=True)
    curriculum_id: int = Field(foreign_key='curriculum.id', index=True)
    course_assessment_id: int = Field(foreign_key='courseassessment.id', index=True)
    is_active: bool
    created_by: Optional[str] = None
    updated_at: datetime = Field(default_factory=_utcnow)
