"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (projects,
enrollments, groups, events, courses, curriculums, assessments).
Repositories return SQLModel objects. Single-row writes commit
immediately; the `delete_cascade` helpers remove an aggregate and its
dependents inside one transaction.
"""

from datetime import datetime, timezone
from typing import Iterable, List, Optional

from sqlmodel import Session, col, select

from . import models


class _Repository:
    model = None

    def __init__(self, session: Session):
        self.session = session

    def get(self, obj_id: int):
        """Fetch a row by primary key or `None`."""
        return self.session.get(self.model, obj_id)

    def add(self, obj):
        """Persist a new or modified row and return the managed instance."""
        self.session.add(obj)
        self.session.commit()
        self.session.refresh(obj)
        return obj

    def delete(self, obj) -> None:
        self.session.delete(obj)
        self.session.commit()

    def _delete_where(self, model, *criteria) -> int:
        rows = self.session.exec(select(model).where(*criteria)).all()
        for row in rows:
            self.session.delete(row)
        self.session.flush()
        return len(rows)

    def _run_in_transaction(self, work):
        try:
            result = work()
            self.session.commit()
            return result
        except Exception:
            self.session.rollback()
            raise


class OrganizationRepository(_Repository):
    model = models.Organization

    def get_by_workos_id(self, workos_org_id: str) -> Optional[models.Organization]:
        stmt = select(models.Organization).where(models.Organization.workos_org_id == workos_org_id)
        return self.session.exec(stmt).first()

    def list_sub_organizations(self, organization_id: int) -> List[models.SubOrganization]:
        stmt = select(models.SubOrganization).where(models.SubOrganization.organization_id == organization_id)
        return self.session.exec(stmt).all()


class TrainingRecipientRepository(_Repository):
    model = models.TrainingRecipient

    def list(self, sub_organization_id: Optional[int] = None) -> List[models.TrainingRecipient]:
        stmt = select(models.TrainingRecipient).order_by(models.TrainingRecipient.name)
        if sub_organization_id is not None:
            stmt = stmt.where(models.TrainingRecipient.sub_organization_id == sub_organization_id)
        return self.session.exec(stmt).all()

    def participants(self, recipient_id: int) -> List[models.Participant]:
        stmt = select(models.Participant).where(models.Participant.training_recipient_id == recipient_id)
        return self.session.exec(stmt).all()

    def has_dependents(self, recipient_id: int) -> bool:
        project = self.session.exec(
            select(models.Project.id).where(models.Project.training_recipient_id == recipient_id)
        ).first()
        participant = self.session.exec(
            select(models.Participant.id).where(models.Participant.training_recipient_id == recipient_id)
        ).first()
        return project is not None or participant is not None


class ProjectRepository(_Repository):
    model = models.Project

    def list(self, sub_organization_id: Optional[int] = None) -> List[models.Project]:
        stmt = select(models.Project).order_by(col(models.Project.created_at).desc())
        if sub_organization_id is not None:
            stmt = stmt.where(models.Project.sub_organization_id == sub_organization_id)
        return self.session.exec(stmt).all()

    def curriculums(self, project_id: int) -> List[models.Curriculum]:
        stmt = (
            select(models.Curriculum)
            .join(models.ProjectCurriculum, models.ProjectCurriculum.curriculum_id == models.Curriculum.id)
            .where(models.ProjectCurriculum.project_id == project_id)
            .order_by(models.ProjectCurriculum.id)
        )
        return self.session.exec(stmt).all()

    def get_curriculum_link(self, project_id: int, curriculum_id: int) -> Optional[models.ProjectCurriculum]:
        stmt = select(models.ProjectCurriculum).where(
            models.ProjectCurriculum.project_id == project_id,
            models.ProjectCurriculum.curriculum_id == curriculum_id,
        )
        return self.session.exec(stmt).first()

    def delete_cascade(self, project: models.Project) -> dict:
        """Delete a project with its groups, events, enrollments and configs.

        Dependents are removed child-first and flushed stage by stage so
        foreign keys hold throughout; the whole operation is one commit.
        """
        def work():
            pid = project.id
            enrollment_ids = self.session.exec(
                select(models.ProjectParticipant.id).where(models.ProjectParticipant.project_id == pid)
            ).all()
            event_ids = self.session.exec(
                select(models.Event.id).where(models.Event.project_id == pid)
            ).all()
            group_ids = self.session.exec(
                select(models.ProjectGroup.id).where(models.ProjectGroup.project_id == pid)
            ).all()
            counts = {}
            counts['attendees'] = self._delete_where(
                models.EventAttendee, col(models.EventAttendee.event_id).in_(event_ids))
            # attendee rows of this project's enrollments booked on other events
            counts['attendees'] += self._delete_where(
                models.EventAttendee, col(models.EventAttendee.enrollee_id).in_(enrollment_ids))
            self._delete_where(models.EventGroup, col(models.EventGroup.event_id).in_(event_ids))
            self._delete_where(models.EventGroup, col(models.EventGroup.group_id).in_(group_ids))
            self._delete_where(models.EventInstructor, col(models.EventInstructor.event_id).in_(event_ids))
            counts['events'] = self._delete_where(models.Event, models.Event.project_id == pid)
            self._delete_where(models.GroupParticipant, col(models.GroupParticipant.group_id).in_(group_ids))
            self._delete_where(models.GroupParticipant,
                               col(models.GroupParticipant.participant_id).in_(enrollment_ids))
            counts['groups'] = self._delete_where(models.ProjectGroup, models.ProjectGroup.project_id == pid)
            counts['scores'] = self._delete_where(
                models.ParticipantAssessmentScore,
                col(models.ParticipantAssessmentScore.participant_id).in_(enrollment_ids))
            counts['participants'] = self._delete_where(
                models.ProjectParticipant, models.ProjectParticipant.project_id == pid)
            self._delete_where(models.ProjectCurriculum, models.ProjectCurriculum.project_id == pid)
            self._delete_where(models.ProjectAssessmentConfig, models.ProjectAssessmentConfig.project_id == pid)
            self.session.delete(project)
            return counts

        return self._run_in_transaction(work)


class ParticipantRepository(_Repository):
    model = models.Participant

    def get_by_email(self, email: str) -> Optional[models.Participant]:
        stmt = select(models.Participant).where(models.Participant.email == email)
        return self.session.exec(stmt).first()


class EnrollmentRepository(_Repository):
    model = models.ProjectParticipant

    def find(self, project_id: int, participant_id: int) -> Optional[models.ProjectParticipant]:
        stmt = select(models.ProjectParticipant).where(
            models.ProjectParticipant.project_id == project_id,
            models.ProjectParticipant.participant_id == participant_id,
        )
        return self.session.exec(stmt).first()

    def list_for_project(self, project_id: int, include_removed: bool = False):
        """Return `(enrollment, participant)` pairs for a project."""
        stmt = (
            select(models.ProjectParticipant, models.Participant)
            .join(models.Participant, models.Participant.id == models.ProjectParticipant.participant_id)
            .where(models.ProjectParticipant.project_id == project_id)
            .order_by(models.Participant.last_name, models.Participant.first_name)
        )
        if not include_removed:
            stmt = stmt.where(models.ProjectParticipant.status != 'removed')
        return self.session.exec(stmt).all()

    def active_ids(self, project_id: int) -> List[int]:
        stmt = select(models.ProjectParticipant.id).where(
            models.ProjectParticipant.project_id == project_id,
            models.ProjectParticipant.status != 'removed',
        )
        return self.session.exec(stmt).all()


class GroupRepository(_Repository):
    model = models.ProjectGroup

    def list_for_project(self, project_id: int) -> List[models.ProjectGroup]:
        stmt = select(models.ProjectGroup).where(models.ProjectGroup.project_id == project_id).order_by(models.ProjectGroup.id)
        return self.session.exec(stmt).all()

    def member_ids(self, group_id: int) -> List[int]:
        stmt = select(models.GroupParticipant.participant_id).where(models.GroupParticipant.group_id == group_id)
        return self.session.exec(stmt).all()

    def membership_for(self, participant_id: int) -> Optional[models.GroupParticipant]:
        stmt = select(models.GroupParticipant).where(models.GroupParticipant.participant_id == participant_id)
        return self.session.exec(stmt).first()

    def delete_cascade(self, group: models.ProjectGroup) -> None:
        def work():
            self._delete_where(models.GroupParticipant, models.GroupParticipant.group_id == group.id)
            self._delete_where(models.EventGroup, models.EventGroup.group_id == group.id)
            self.session.delete(group)

        self._run_in_transaction(work)


class EventRepository(_Repository):
    model = models.Event

    def list_for_project(self, project_id: int) -> List[models.Event]:
        stmt = select(models.Event).where(models.Event.project_id == project_id).order_by(models.Event.start)
        return self.session.exec(stmt).all()

    def attendees(self, event_ids: Iterable[int]) -> List[models.EventAttendee]:
        stmt = select(models.EventAttendee).where(col(models.EventAttendee.event_id).in_(list(event_ids)))
        return self.session.exec(stmt).all()

    def attendee(self, event_id: int, enrollee_id: int) -> Optional[models.EventAttendee]:
        stmt = select(models.EventAttendee).where(
            models.EventAttendee.event_id == event_id,
            models.EventAttendee.enrollee_id == enrollee_id,
        )
        return self.session.exec(stmt).first()

    def group_ids(self, event_id: int) -> List[int]:
        stmt = select(models.EventGroup.group_id).where(models.EventGroup.event_id == event_id)
        return self.session.exec(stmt).all()

    def instructor_link(self, event_id: int, instructor_id: int) -> Optional[models.EventInstructor]:
        stmt = select(models.EventInstructor).where(
            models.EventInstructor.event_id == event_id,
            models.EventInstructor.instructor_id == instructor_id,
        )
        return self.session.exec(stmt).first()

    def instructors(self, event_id: int) -> List[models.EventInstructor]:
        stmt = select(models.EventInstructor).where(models.EventInstructor.event_id == event_id)
        return self.session.exec(stmt).all()

    def delete_cascade(self, event: models.Event) -> None:
        def work():
            self._delete_where(models.EventAttendee, models.EventAttendee.event_id == event.id)
            self._delete_where(models.EventGroup, models.EventGroup.event_id == event.id)
            self._delete_where(models.EventInstructor, models.EventInstructor.event_id == event.id)
            self.session.delete(event)

        self._run_in_transaction(work)


class InstructorRepository(_Repository):
    model = models.Instructor

    def list(self) -> List[models.Instructor]:
        stmt = select(models.Instructor).order_by(models.Instructor.last_name, models.Instructor.first_name)
        return self.session.exec(stmt).all()

    def get_by_email(self, email: str) -> Optional[models.Instructor]:
        return self.session.exec(select(models.Instructor).where(models.Instructor.email == email)).first()


class CourseRepository(_Repository):
    model = models.Course

    def list(self, sub_organization_id: Optional[int] = None) -> List[models.Course]:
        stmt = select(models.Course).order_by(models.Course.title)
        if sub_organization_id is not None:
            stmt = stmt.where(models.Course.sub_organization_id == sub_organization_id)
        return self.session.exec(stmt).all()

    def modules(self, course_id: int) -> List[models.Module]:
        stmt = select(models.Module).where(models.Module.course_id == course_id).order_by(models.Module.module_order)
        return self.session.exec(stmt).all()

    def activities(self, module_id: int) -> List[models.Activity]:
        stmt = select(models.Activity).where(models.Activity.module_id == module_id).order_by(models.Activity.activity_order)
        return self.session.exec(stmt).all()

    def get_module(self, module_id: int) -> Optional[models.Module]:
        return self.session.get(models.Module, module_id)

    def is_scheduled(self, course_id: int) -> bool:
        stmt = select(models.Event.id).where(models.Event.course_id == course_id)
        return self.session.exec(stmt).first() is not None

    def delete_cascade(self, course: models.Course) -> None:
        def work():
            assessment_ids = self.session.exec(
                select(models.CourseAssessment.id).where(models.CourseAssessment.course_id == course.id)
            ).all()
            AssessmentRepository(self.session).delete_dependents(assessment_ids)
            self._delete_where(models.CourseAssessment, models.CourseAssessment.course_id == course.id)
            module_ids = self.session.exec(
                select(models.Module.id).where(models.Module.course_id == course.id)
            ).all()
            self._delete_where(models.Activity, col(models.Activity.module_id).in_(module_ids))
            self._delete_where(models.Module, models.Module.course_id == course.id)
            self._delete_where(models.CurriculumCourse, models.CurriculumCourse.course_id == course.id)
            self.session.delete(course)

        self._run_in_transaction(work)


class CurriculumRepository(_Repository):
    model = models.Curriculum

    def list(self, sub_organization_id: Optional[int] = None) -> List[models.Curriculum]:
        stmt = select(models.Curriculum).order_by(models.Curriculum.title)
        if sub_organization_id is not None:
            stmt = stmt.where(models.Curriculum.sub_organization_id == sub_organization_id)
        return self.session.exec(stmt).all()

    def courses(self, curriculum_id: int) -> List[models.Course]:
        stmt = (
            select(models.Course)
            .join(models.CurriculumCourse, models.CurriculumCourse.course_id == models.Course.id)
            .where(models.CurriculumCourse.curriculum_id == curriculum_id)
            .order_by(models.CurriculumCourse.position, models.CurriculumCourse.id)
        )
        return self.session.exec(stmt).all()

    def course_link(self, curriculum_id: int, course_id: int) -> Optional[models.CurriculumCourse]:
        stmt = select(models.CurriculumCourse).where(
            models.CurriculumCourse.curriculum_id == curriculum_id,
            models.CurriculumCourse.course_id == course_id,
        )
        return self.session.exec(stmt).first()

    def link_count(self, curriculum_id: int) -> int:
        stmt = select(models.CurriculumCourse.id).where(models.CurriculumCourse.curriculum_id == curriculum_id)
        return len(self.session.exec(stmt).all())

    def surveys(self, curriculum_id: int) -> List[models.CurriculumSurvey]:
        stmt = select(models.CurriculumSurvey).where(models.CurriculumSurvey.curriculum_id == curriculum_id)
        return self.session.exec(stmt).all()

    def delete_cascade(self, curriculum: models.Curriculum) -> None:
        def work():
            cid = curriculum.id
            self._delete_where(models.CurriculumCourse, models.CurriculumCourse.curriculum_id == cid)
            self._delete_where(models.ProjectCurriculum, models.ProjectCurriculum.curriculum_id == cid)
            self._delete_where(models.CurriculumSurvey, models.CurriculumSurvey.curriculum_id == cid)
            self._delete_where(models.CurriculumAssessmentConfig, models.CurriculumAssessmentConfig.curriculum_id == cid)
            self.session.delete(curriculum)

        self._run_in_transaction(work)


class AssessmentRepository(_Repository):
    model = models.CourseAssessment

    def list_for_course(self, course_id: int, active_only: bool = False) -> List[models.CourseAssessment]:
        stmt = select(models.CourseAssessment).where(models.CourseAssessment.course_id == course_id).order_by(models.CourseAssessment.id)
        if active_only:
            stmt = stmt.where(models.CourseAssessment.is_active == True)  # noqa: E712
        return self.session.exec(stmt).all()

    def get_score(self, score_id: int) -> Optional[models.ParticipantAssessmentScore]:
        return self.session.get(models.ParticipantAssessmentScore, score_id)

    def attempts(self, assessment_id: int, participant_id: int) -> List[models.ParticipantAssessmentScore]:
        """All attempts for one assessment/enrollment ordered by attempt number."""
        stmt = select(models.ParticipantAssessmentScore).where(
            models.ParticipantAssessmentScore.course_assessment_id == assessment_id,
            models.ParticipantAssessmentScore.participant_id == participant_id,
        ).order_by(models.ParticipantAssessmentScore.attempt_number)
        return self.session.exec(stmt).all()

    def scores_for_participants(self, participant_ids: Iterable[int]) -> List[models.ParticipantAssessmentScore]:
        stmt = select(models.ParticipantAssessmentScore).where(
            col(models.ParticipantAssessmentScore.participant_id).in_(list(participant_ids))
        ).order_by(col(models.ParticipantAssessmentScore.assessment_date).desc())
        return self.session.exec(stmt).all()

    def all_pairs(self):
        """Distinct `(assessment_id, participant_id)` pairs that have scores."""
        stmt = select(
            models.ParticipantAssessmentScore.course_assessment_id,
            models.ParticipantAssessmentScore.participant_id,
        ).distinct()
        return self.session.exec(stmt).all()

    def project_overrides(self, project_id: int) -> dict:
        stmt = select(models.ProjectAssessmentConfig).where(models.ProjectAssessmentConfig.project_id == project_id)
        return {c.course_assessment_id: c.is_active for c in self.session.exec(stmt).all()}

    def curriculum_overrides(self, curriculum_id: int) -> dict:
        stmt = select(models.CurriculumAssessmentConfig).where(
            models.CurriculumAssessmentConfig.curriculum_id == curriculum_id)
        return {c.course_assessment_id: c.is_active for c in self.session.exec(stmt).all()}

    def upsert_project_config(self, project_id: int, assessment_id: int, is_active: bool,
                              created_by: Optional[str]) -> models.ProjectAssessmentConfig:
        stmt = select(models.ProjectAssessmentConfig).where(
            models.ProjectAssessmentConfig.project_id == project_id,
            models.ProjectAssessmentConfig.course_assessment_id == assessment_id,
        )
        existing = self.session.exec(stmt).first()
        if existing:
            existing.is_active = is_active
            existing.updated_at = datetime.now(timezone.utc)
            return self.add(existing)
        return self.add(models.ProjectAssessmentConfig(
            project_id=project_id, course_assessment_id=assessment_id, is_active=is_active, created_by=created_by))

    def upsert_curriculum_config(self, curriculum_id: int, assessment_id: int, is_active: bool,
                                 created_by: Optional[str]) -> models.CurriculumAssessmentConfig:
        stmt = select(models.CurriculumAssessmentConfig).where(
            models.CurriculumAssessmentConfig.curriculum_id == curriculum_id,
            models.CurriculumAssessmentConfig.course_assessment_id == assessment_id,
        )
        existing = self.session.exec(stmt).first()
        if existing:
            existing.is_active = is_active
            existing.updated_at = datetime.now(timezone.utc)
            return self.add(existing)
        return self.add(models.CurriculumAssessmentConfig(
            curriculum_id=curriculum_id, course_assessment_id=assessment_id, is_active=is_active, created_by=created_by))

    def delete_dependents(self, assessment_ids: List[int]) -> None:
        """Remove scores and activation configs of the given assessments (no commit)."""
        self._delete_where(models.ParticipantAssessmentScore,
                           col(models.ParticipantAssessmentScore.course_assessment_id).in_(assessment_ids))
        self._delete_where(models.ProjectAssessmentConfig,
                           col(models.ProjectAssessmentConfig.course_assessment_id).in_(assessment_ids))
        self._delete_where(models.CurriculumAssessmentConfig,
                           col(models.CurriculumAssessmentConfig.course_assessment_id).in_(assessment_ids))

    def delete_cascade(self, assessment: models.CourseAssessment) -> None:
        def work():
            self.delete_dependents([assessment.id])
            self.session.delete(assessment)

        self._run_in_transaction(work)
