"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate repositories,
validation and domain helpers. Services are intentionally thin: they
validate, run domain logic (mostly `scoring` and `utils`) and persist
aggregates via repositories. They raise `errors.AppError` subclasses,
which the application maps onto HTTP responses.
"""

from datetime import datetime, timezone
import logging
from typing import Dict, List, Optional

from sqlmodel import Session

from . import models, repositories, scoring
from .errors import ConflictError, NotFoundError, ValidationError
from .utils import completion, dates, groups, surveys
from .utils.participants_csv import normalize_email, parse_roster

logger = logging.getLogger("edwind.services")

PROJECT_STATUSES = ('pending', 'ongoing', 'completed', 'cancelled', 'archived')


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _require(obj, what: str):
    if obj is None:
        raise NotFoundError(f'{what} not found')
    return obj


def _apply_updates(obj, changes: dict, fields) -> None:
    for name in fields:
        if name in changes:
            setattr(obj, name, changes[name])


class ProjectService:
    """Project lifecycle, curriculum links and the dashboard summary."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.ProjectRepository(session)
        self.enrollments = repositories.EnrollmentRepository(session)
        self.events = repositories.EventRepository(session)

    def get(self, project_id: int) -> models.Project:
        return _require(self.repo.get(project_id), 'Project')

    def _validate(self, data: dict) -> None:
        if 'title' in data and not (data['title'] or '').strip():
            raise ValidationError('Project title is required')
        if data.get('timezone') is not None and not dates.is_valid_timezone(data['timezone']):
            raise ValidationError(f"Unknown timezone: {data['timezone']}")
        if data.get('status') is not None and data['status'] not in PROJECT_STATUSES:
            raise ValidationError(f"Invalid project status: {data['status']}")
        start, end = data.get('start_date'), data.get('end_date')
        if start and end and end < start:
            raise ValidationError('End date cannot be before start date')
        if data.get('training_recipient_id') is not None:
            _require(self.session.get(models.TrainingRecipient, data['training_recipient_id']), 'Training recipient')
        if data.get('sub_organization_id') is not None:
            _require(self.session.get(models.SubOrganization, data['sub_organization_id']), 'Sub-organization')

    def create(self, data: dict, created_by: Optional[str] = None) -> models.Project:
        """Create a project and link any requested curriculums."""
        self._validate(data)
        curriculum_ids = data.pop('curriculum_ids', []) or []
        for cid in curriculum_ids:
            _require(self.session.get(models.Curriculum, cid), 'Curriculum')
        project = models.Project(**data, created_by=created_by)
        self.session.add(project)
        self.session.flush()
        for cid in dict.fromkeys(curriculum_ids):
            self.session.add(models.ProjectCurriculum(project_id=project.id, curriculum_id=cid))
        self.session.commit()
        self.session.refresh(project)
        logger.info("project created id=%s cuid=%s", project.id, project.cuid)
        return project

    def update(self, project_id: int, changes: dict) -> models.Project:
        project = self.get(project_id)
        merged = {'start_date': project.start_date, 'end_date': project.end_date, **changes}
        self._validate(merged)
        _apply_updates(project, changes, ('title', 'summary', 'status', 'timezone', 'start_date',
                                          'end_date', 'location', 'training_recipient_id'))
        project.updated_at = _utcnow()
        return self.repo.add(project)

    def delete(self, project_id: int) -> dict:
        project = self.get(project_id)
        counts = self.repo.delete_cascade(project)
        logger.info("project deleted id=%s removed=%s", project_id, counts)
        return counts

    def detail(self, project_id: int) -> dict:
        project = self.get(project_id)
        return {
            'project': project,
            'curriculums': self.repo.curriculums(project_id),
            'groups': GroupService(self.session).list_for_project(project_id),
            'participant_count': len(self.enrollments.active_ids(project_id)),
            'training_recipient': (self.session.get(models.TrainingRecipient, project.training_recipient_id)
                                   if project.training_recipient_id else None),
        }

    def link_curriculum(self, project_id: int, curriculum_id: int) -> models.ProjectCurriculum:
        self.get(project_id)
        _require(self.session.get(models.Curriculum, curriculum_id), 'Curriculum')
        if self.repo.get_curriculum_link(project_id, curriculum_id):
            raise ConflictError('Curriculum already assigned to this project')
        return self.repo.add(models.ProjectCurriculum(project_id=project_id, curriculum_id=curriculum_id))

    def unlink_curriculum(self, project_id: int, curriculum_id: int) -> None:
        link = _require(self.repo.get_curriculum_link(project_id, curriculum_id), 'Project curriculum')
        self.repo.delete(link)

    def dashboard(self, project_id: int) -> dict:
        """Counts and attendance rate for the project overview."""
        project = self.get(project_id)
        pairs = self.enrollments.list_for_project(project_id, include_removed=True)
        active_ids = [e.id for e, _ in pairs if e.status != 'removed']
        events = self.events.list_for_project(project_id)
        attendees = self.events.attendees([e.id for e in events])
        now = _utcnow()
        metrics = completion.attendance_metrics(
            len(events),
            active_ids,
            [{'enrollee_id': a.enrollee_id, 'attendance_status': a.attendance_status} for a in attendees],
        )
        return {
            'project_id': project.id,
            'title': project.title,
            'status': project.status,
            'date_range': dates.format_date_range(project.start_date, project.end_date),
            'participants': {'active': len(active_ids), 'removed': len(pairs) - len(active_ids)},
            'groups': len(repositories.GroupRepository(self.session).list_for_project(project_id)),
            'curriculums': len(self.repo.curriculums(project_id)),
            'sessions': {
                'total': len(events),
                'completed': sum(1 for e in events if dates.as_utc(e.end) <= now),
                'upcoming': sum(1 for e in events if dates.as_utc(e.start) > now),
            },
            'attendance': metrics,
        }


class EnrollmentService:
    """Enroll participants into projects and manage their enrollment status."""
    def __init__(self, session: Session):
        self.session = session
        self.projects = repositories.ProjectRepository(session)
        self.participants = repositories.ParticipantRepository(session)
        self.repo = repositories.EnrollmentRepository(session)

    def list(self, project_id: int, include_removed: bool = False) -> List[dict]:
        _require(self.projects.get(project_id), 'Project')
        group_repo = repositories.GroupRepository(self.session)
        out = []
        for enrollment, participant in self.repo.list_for_project(project_id, include_removed):
            membership = group_repo.membership_for(enrollment.id)
            out.append({
                'id': enrollment.id,
                'status': enrollment.status,
                'group_id': membership.group_id if membership else None,
                'participant': participant,
            })
        return out

    def enroll(self, project_id: int, person: dict) -> Dict:
        """Enroll a participant by email, creating or reactivating as needed.

        Returns `{'enrollment', 'participant', 'created_participant', 'reactivated'}`.
        """
        project = _require(self.projects.get(project_id), 'Project')
        email = normalize_email(person.get('email'))
        if not email:
            raise ValidationError('Participant email is required')
        participant = self.participants.get_by_email(email)
        created = False
        if participant:
            existing = self.repo.find(project_id, participant.id)
            if existing and existing.status != 'removed':
                raise ConflictError(
                    f'{participant.first_name} {participant.last_name} is already enrolled in this project.',
                    details={'participant_exists': True},
                )
        else:
            if not project.training_recipient_id:
                raise ValidationError('Cannot create participant: project must be linked to a training recipient')
            participant = models.Participant(
                first_name=(person.get('first_name') or '').strip(),
                last_name=(person.get('last_name') or '').strip(),
                email=email,
                job_title=person.get('job_title'),
                participant_status=person.get('participant_status') or 'active',
                training_recipient_id=project.training_recipient_id,
            )
            if not participant.first_name or not participant.last_name:
                raise ValidationError('Participant first and last name are required')
            self.session.add(participant)
            self.session.flush()
            created = True
        enrollment = self.repo.find(project_id, participant.id)
        reactivated = enrollment is not None
        if enrollment:
            enrollment.status = 'active'
        else:
            enrollment = models.ProjectParticipant(project_id=project_id, participant_id=participant.id)
        self.session.add(enrollment)
        self.session.commit()
        self.session.refresh(enrollment)
        return {'enrollment': enrollment, 'participant': participant,
                'created_participant': created, 'reactivated': reactivated}

    def remove(self, project_id: int, enrollment_id: int) -> models.ProjectParticipant:
        """Soft-remove an enrollment and drop its group membership."""
        enrollment = _require(self.repo.get(enrollment_id), 'Enrollment')
        if enrollment.project_id != project_id:
            raise NotFoundError('Enrollment not found')
        membership = repositories.GroupRepository(self.session).membership_for(enrollment.id)
        if membership:
            self.session.delete(membership)
        enrollment.status = 'removed'
        return self.repo.add(enrollment)

    def import_csv(self, project_id: int, file_bytes: bytes) -> dict:
        """Enroll every valid roster row; duplicates are skipped, not fatal."""
        _require(self.projects.get(project_id), 'Project')
        try:
            rows, errors = parse_roster(file_bytes)
        except UnicodeDecodeError:
            raise ValidationError('Roster must be UTF-8 encoded CSV')
        enrolled, skipped = 0, 0
        for row in rows:
            try:
                self.enroll(project_id, row)
                enrolled += 1
            except ConflictError:
                skipped += 1
            except ValidationError as e:
                self.session.rollback()
                errors.append({'row': None, 'error': e.message, 'item': row})
        return {'enrolled': enrolled, 'skipped': skipped, 'errors': errors}


class GroupService:
    """Project groups and their membership."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.GroupRepository(session)
        self.enrollments = repositories.EnrollmentRepository(session)

    def get(self, group_id: int) -> models.ProjectGroup:
        return _require(self.repo.get(group_id), 'Group')

    def list_for_project(self, project_id: int) -> List[dict]:
        return [{'group': g, 'participant_ids': self.repo.member_ids(g.id)}
                for g in self.repo.list_for_project(project_id)]

    def _enrollment_in_project(self, enrollment_id: int, project_id: int) -> models.ProjectParticipant:
        enrollment = self.enrollments.get(enrollment_id)
        if enrollment is None or enrollment.project_id != project_id or enrollment.status == 'removed':
            raise NotFoundError(f'Enrollment {enrollment_id} not found in project')
        return enrollment

    def create(self, project_id: int, group_name: Optional[str] = None, chip_color: Optional[str] = None,
               participant_ids: Optional[List[int]] = None) -> dict:
        """Create a group; without a name the next `Group N` is used."""
        _require(self.session.get(models.Project, project_id), 'Project')
        existing = self.repo.list_for_project(project_id)
        names = [g.group_name for g in existing]
        name = (group_name or '').strip() or groups.next_group_name(names)
        if name.lower() in {n.lower() for n in names}:
            raise ConflictError(f'A group named "{name}" already exists in this project')
        group = models.ProjectGroup(project_id=project_id, group_name=name,
                                    chip_color=chip_color or groups.chip_color_for(len(existing)))
        self.repo.add(group)
        for pid in participant_ids or []:
            self.add_member(group.id, pid)
        return {'group': group, 'participant_ids': self.repo.member_ids(group.id)}

    def update(self, group_id: int, changes: dict) -> models.ProjectGroup:
        group = self.get(group_id)
        new_name = (changes.get('group_name') or '').strip()
        if new_name and new_name != group.group_name:
            taken = {g.group_name.lower() for g in self.repo.list_for_project(group.project_id) if g.id != group.id}
            if new_name.lower() in taken:
                raise ConflictError(f'A group named "{new_name}" already exists in this project')
            group.group_name = new_name
        if changes.get('chip_color'):
            group.chip_color = changes['chip_color']
        return self.repo.add(group)

    def delete(self, group_id: int) -> None:
        self.repo.delete_cascade(self.get(group_id))

    def add_member(self, group_id: int, enrollment_id: int) -> models.GroupParticipant:
        """Put an enrollment in a group, moving it out of any previous group."""
        group = self.get(group_id)
        self._enrollment_in_project(enrollment_id, group.project_id)
        membership = self.repo.membership_for(enrollment_id)
        if membership:
            membership.group_id = group_id
        else:
            membership = models.GroupParticipant(group_id=group_id, participant_id=enrollment_id)
        self.session.add(membership)
        self.session.commit()
        self.session.refresh(membership)
        return membership

    def remove_member(self, group_id: int, enrollment_id: int) -> None:
        membership = self.repo.membership_for(enrollment_id)
        if membership is None or membership.group_id != group_id:
            raise NotFoundError('Participant is not in this group')
        self.session.delete(membership)
        self.session.commit()

    def progress(self, group_id: int) -> dict:
        """Per-course completion for the group's members."""
        group = self.get(group_id)
        member_ids = self.repo.member_ids(group_id)
        event_repo = repositories.EventRepository(self.session)
        events = event_repo.list_for_project(group.project_id)
        attendees = event_repo.attendees([e.id for e in events])
        by_event: Dict[int, list] = {}
        for a in attendees:
            by_event.setdefault(a.event_id, []).append(
                {'enrollee_id': a.enrollee_id, 'attendance_status': a.attendance_status})
        courses = []
        project_repo = repositories.ProjectRepository(self.session)
        curriculum_repo = repositories.CurriculumRepository(self.session)
        seen = set()
        for curriculum in project_repo.curriculums(group.project_id):
            for course in curriculum_repo.courses(curriculum.id):
                if course.id in seen:
                    continue
                seen.add(course.id)
                course_events = [
                    {'id': e.id, 'attendees': by_event.get(e.id, []), 'group_ids': event_repo.group_ids(e.id)}
                    for e in events if e.course_id == course.id
                ]
                group_events = completion.filter_group_events(course_events, member_ids, group_id)
                stats = completion.calculate_course_completion(group_events, member_ids)
                courses.append({'course_id': course.id, 'title': course.title,
                                'events': len(group_events), **stats})
        return {'group_id': group_id, 'group_name': group.group_name, 'courses': courses}


class EventService:
    """Project events, attendees, attendance and instructors."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.EventRepository(session)
        self.enrollments = repositories.EnrollmentRepository(session)
        self.groups = repositories.GroupRepository(session)

    def get(self, event_id: int) -> models.Event:
        return _require(self.repo.get(event_id), 'Event')

    def _to_utc(self, value: datetime, project: models.Project) -> datetime:
        return dates.local_to_utc(value, project.timezone)

    def _check_course(self, course_id: Optional[int]) -> None:
        if course_id is not None:
            _require(self.session.get(models.Course, course_id), 'Course')

    def list_for_project(self, project_id: int) -> List[dict]:
        _require(self.session.get(models.Project, project_id), 'Project')
        events = self.repo.list_for_project(project_id)
        attendees = self.repo.attendees([e.id for e in events])
        by_event: Dict[int, list] = {}
        for a in attendees:
            by_event.setdefault(a.event_id, []).append(a)
        return [{
            'event': e,
            'attendees': by_event.get(e.id, []),
            'group_ids': self.repo.group_ids(e.id),
            'instructors': self.repo.instructors(e.id),
        } for e in events]

    def create(self, project_id: int, data: dict) -> models.Event:
        project = _require(self.session.get(models.Project, project_id), 'Project')
        self._check_course(data.get('course_id'))
        start = self._to_utc(data.pop('start'), project)
        end = self._to_utc(data.pop('end'), project)
        if end <= start:
            raise ValidationError('Event end must be after its start')
        return self.repo.add(models.Event(project_id=project_id, start=start, end=end, **data))

    def update(self, event_id: int, changes: dict) -> models.Event:
        event = self.get(event_id)
        project = self.session.get(models.Project, event.project_id)
        self._check_course(changes.get('course_id'))
        start = self._to_utc(changes['start'], project) if changes.get('start') else dates.as_utc(event.start)
        end = self._to_utc(changes['end'], project) if changes.get('end') else dates.as_utc(event.end)
        if end <= start:
            raise ValidationError('Event end must be after its start')
        event.start, event.end = start, end
        _apply_updates(event, changes, ('title', 'course_id', 'description', 'event_type',
                                        'all_day', 'color', 'room'))
        return self.repo.add(event)

    def delete(self, event_id: int) -> None:
        self.repo.delete_cascade(self.get(event_id))

    def add_attendees(self, event_id: int, participant_ids: List[int], group_ids: List[int]) -> dict:
        """Schedule enrollments (directly or via groups) into an event.

        Groups are recorded on the event and expanded to their members.
        Enrollments already on the event are left untouched.
        """
        event = self.get(event_id)
        wanted = list(dict.fromkeys(participant_ids))
        for gid in dict.fromkeys(group_ids):
            group = self.groups.get(gid)
            if group is None or group.project_id != event.project_id:
                raise NotFoundError(f'Group {gid} not found in project')
            if gid not in self.repo.group_ids(event_id):
                self.session.add(models.EventGroup(event_id=event_id, group_id=gid))
            wanted.extend(m for m in self.groups.member_ids(gid) if m not in wanted)
        added, skipped = [], 0
        for pid in wanted:
            enrollment = self.enrollments.get(pid)
            if enrollment is None or enrollment.project_id != event.project_id or enrollment.status == 'removed':
                raise NotFoundError(f'Enrollment {pid} not found in project')
            if self.repo.attendee(event_id, pid):
                skipped += 1
                continue
            attendee = models.EventAttendee(event_id=event_id, enrollee_id=pid)
            self.session.add(attendee)
            added.append(attendee)
        self.session.commit()
        for a in added:
            self.session.refresh(a)
        return {'added': added, 'skipped': skipped}

    def update_attendance(self, event_id: int, enrollee_id: int, status: str) -> models.EventAttendee:
        if status not in completion.ATTENDANCE_STATUSES:
            raise ValidationError(f'Invalid attendance status: {status}')
        attendee = _require(self.repo.attendee(event_id, enrollee_id), 'Attendee')
        attendee.attendance_status = status
        attendee.updated_at = _utcnow()
        return self.repo.add(attendee)

    def remove_attendee(self, event_id: int, enrollee_id: int) -> None:
        attendee = _require(self.repo.attendee(event_id, enrollee_id), 'Attendee')
        self.repo.delete(attendee)

    def move_attendee(self, enrollee_id: int, from_event_id: int, to_event_id: int) -> models.EventAttendee:
        """Move an attendee to another event of the same project, resetting status."""
        source = self.get(from_event_id)
        target = self.get(to_event_id)
        if source.project_id != target.project_id:
            raise ValidationError('Events belong to different projects')
        attendee = _require(self.repo.attendee(from_event_id, enrollee_id), 'Attendee')
        if self.repo.attendee(to_event_id, enrollee_id):
            raise ConflictError('Participant is already scheduled for the target event')
        attendee.event_id = to_event_id
        attendee.attendance_status = 'scheduled'
        attendee.updated_at = _utcnow()
        return self.repo.add(attendee)

    def assign_instructor(self, event_id: int, instructor_id: int, role: str = 'main') -> models.EventInstructor:
        self.get(event_id)
        _require(self.session.get(models.Instructor, instructor_id), 'Instructor')
        if self.repo.instructor_link(event_id, instructor_id):
            raise ConflictError('Instructor already assigned to this event')
        return self.repo.add(models.EventInstructor(event_id=event_id, instructor_id=instructor_id, role=role))


class CourseService:
    """Course catalog: modules, activities, assessments and duplication."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.CourseRepository(session)
        self.assessments = repositories.AssessmentRepository(session)

    def get(self, course_id: int) -> models.Course:
        return _require(self.repo.get(course_id), 'Course')

    def create(self, data: dict) -> models.Course:
        return self.repo.add(models.Course(**data))

    def update(self, course_id: int, changes: dict) -> models.Course:
        course = self.get(course_id)
        if 'title' in changes and not (changes['title'] or '').strip():
            raise ValidationError('Course title is required')
        _apply_updates(course, changes, ('title', 'summary', 'level', 'duration_minutes'))
        return self.repo.add(course)

    def delete(self, course_id: int) -> None:
        course = self.get(course_id)
        if self.repo.is_scheduled(course_id):
            raise ConflictError('Course is scheduled in project events and cannot be deleted')
        self.repo.delete_cascade(course)

    def detail(self, course_id: int) -> dict:
        course = self.get(course_id)
        return {
            'course': course,
            'modules': [{'module': m, 'activities': self.repo.activities(m.id)} for m in self.repo.modules(course_id)],
            'assessments': self.assessments.list_for_course(course_id),
        }

    def add_module(self, course_id: int, data: dict) -> models.Module:
        self.get(course_id)
        if data.get('module_order') is None:
            data['module_order'] = len(self.repo.modules(course_id))
        return self.repo.add(models.Module(course_id=course_id, **data))

    def add_activity(self, module_id: int, data: dict) -> models.Activity:
        _require(self.repo.get_module(module_id), 'Module')
        if data.get('activity_order') is None:
            data['activity_order'] = len(self.repo.activities(module_id))
        return self.repo.add(models.Activity(module_id=module_id, **data))

    def duplicate(self, course_id: int) -> models.Course:
        """Deep-copy a course with its modules, activities and assessments."""
        source = self.get(course_id)
        copy = models.Course(title=f'{source.title} (Copy)', summary=source.summary, level=source.level,
                             duration_minutes=source.duration_minutes,
                             sub_organization_id=source.sub_organization_id, version=1)
        self.session.add(copy)
        self.session.flush()
        for module in self.repo.modules(course_id):
            new_module = models.Module(course_id=copy.id, title=module.title, summary=module.summary,
                                       module_order=module.module_order, duration_minutes=module.duration_minutes)
            self.session.add(new_module)
            self.session.flush()
            for activity in self.repo.activities(module.id):
                self.session.add(models.Activity(
                    module_id=new_module.id, title=activity.title, activity_type=activity.activity_type,
                    activity_order=activity.activity_order, duration_minutes=activity.duration_minutes))
        for a in self.assessments.list_for_course(course_id):
            self.session.add(models.CourseAssessment(
                course_id=copy.id, title=a.title, description=a.description, max_score=a.max_score,
                passing_score=a.passing_score, is_active=a.is_active, allow_retakes=a.allow_retakes,
                max_attempts=a.max_attempts, score_strategy=a.score_strategy))
        self.session.commit()
        self.session.refresh(copy)
        logger.info("course duplicated source=%s copy=%s", course_id, copy.id)
        return copy

    def _validate_assessment(self, data: dict) -> None:
        strategy = data.get('score_strategy')
        if strategy is not None and strategy not in scoring.STRATEGIES:
            raise ValidationError(f'Invalid score strategy: {strategy}')
        passing = data.get('passing_score')
        if passing is not None and not 0 <= passing <= 100:
            raise ValidationError('Passing score must be a percentage between 0 and 100')
        if data.get('max_score') is not None and data['max_score'] <= 0:
            raise ValidationError('Maximum score must be positive')
        if data.get('max_attempts') is not None and data['max_attempts'] < 1:
            raise ValidationError('Maximum attempts must be at least 1')

    def create_assessment(self, course_id: int, data: dict) -> models.CourseAssessment:
        self.get(course_id)
        self._validate_assessment(data)
        return self.assessments.add(models.CourseAssessment(course_id=course_id, **data))

    def update_assessment(self, assessment_id: int, changes: dict) -> models.CourseAssessment:
        """Update an assessment; a strategy change re-designates current attempts."""
        assessment = _require(self.assessments.get(assessment_id), 'Assessment')
        self._validate_assessment(changes)
        strategy_changed = 'score_strategy' in changes and changes['score_strategy'] != assessment.score_strategy
        _apply_updates(assessment, changes, ('title', 'description', 'max_score', 'passing_score', 'is_active',
                                             'allow_retakes', 'max_attempts', 'score_strategy'))
        self.assessments.add(assessment)
        if strategy_changed:
            ScoreCardService(self.session).recalculate(assessment_ids=[assessment.id])
        return assessment

    def delete_assessment(self, assessment_id: int) -> None:
        self.assessments.delete_cascade(_require(self.assessments.get(assessment_id), 'Assessment'))


class CurriculumService:
    """Curriculums, their course list and attached surveys."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.CurriculumRepository(session)

    def get(self, curriculum_id: int) -> models.Curriculum:
        return _require(self.repo.get(curriculum_id), 'Curriculum')

    def create(self, data: dict) -> models.Curriculum:
        course_ids = data.pop('course_ids', []) or []
        for cid in course_ids:
            _require(self.session.get(models.Course, cid), 'Course')
        curriculum = models.Curriculum(**data)
        self.session.add(curriculum)
        self.session.flush()
        for position, cid in enumerate(dict.fromkeys(course_ids)):
            self.session.add(models.CurriculumCourse(curriculum_id=curriculum.id, course_id=cid, position=position))
        self.session.commit()
        self.session.refresh(curriculum)
        return curriculum

    def update(self, curriculum_id: int, changes: dict) -> models.Curriculum:
        curriculum = self.get(curriculum_id)
        if 'title' in changes and not (changes['title'] or '').strip():
            raise ValidationError('Curriculum title is required')
        _apply_updates(curriculum, changes, ('title', 'description'))
        return self.repo.add(curriculum)

    def delete(self, curriculum_id: int) -> None:
        self.repo.delete_cascade(self.get(curriculum_id))

    def detail(self, curriculum_id: int) -> dict:
        return {
            'curriculum': self.get(curriculum_id),
            'courses': self.repo.courses(curriculum_id),
            'surveys': self.repo.surveys(curriculum_id),
        }

    def add_course(self, curriculum_id: int, course_id: int) -> models.CurriculumCourse:
        self.get(curriculum_id)
        _require(self.session.get(models.Course, course_id), 'Course')
        if self.repo.course_link(curriculum_id, course_id):
            raise ConflictError('Course already in this curriculum')
        return self.repo.add(models.CurriculumCourse(
            curriculum_id=curriculum_id, course_id=course_id, position=self.repo.link_count(curriculum_id)))

    def remove_course(self, curriculum_id: int, course_id: int) -> None:
        self.repo.delete(_require(self.repo.course_link(curriculum_id, course_id), 'Curriculum course'))

    def add_survey(self, curriculum_id: int, data: dict) -> models.CurriculumSurvey:
        self.get(curriculum_id)
        problems = surveys.validate_provider_config(data['provider'], data.get('provider_config') or {})
        if problems:
            raise ValidationError('Invalid survey provider configuration', details={'errors': problems})
        return self.repo.add(models.CurriculumSurvey(curriculum_id=curriculum_id, **data))


class ScoreCardService:
    """Record, resolve and override assessment scores; aggregate score cards."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.AssessmentRepository(session)
        self.enrollments = repositories.EnrollmentRepository(session)
        self.projects = repositories.ProjectRepository(session)
        self.curriculums = repositories.CurriculumRepository(session)

    def _assessment(self, assessment_id: int) -> models.CourseAssessment:
        return _require(self.repo.get(assessment_id), 'Assessment')

    def _enrollment(self, participant_id: int) -> models.ProjectParticipant:
        return _require(self.enrollments.get(participant_id), 'Participant')

    def project_assessment_catalog(self, project_id: int) -> List[dict]:
        """Assessments reachable through the project's curriculums.

        Each entry carries the visibility resolved from project-level,
        then curriculum-level overrides, then the assessment flag. An
        assessment reachable through several curriculums is listed once,
        resolved against the first curriculum that includes it.
        """
        project_overrides = self.repo.project_overrides(project_id)
        entries, seen = [], set()
        for curriculum in self.projects.curriculums(project_id):
            curriculum_overrides = self.repo.curriculum_overrides(curriculum.id)
            for course in self.curriculums.courses(curriculum.id):
                for assessment in self.repo.list_for_course(course.id):
                    if assessment.id in seen:
                        continue
                    seen.add(assessment.id)
                    is_active, source = scoring.resolve_visibility(
                        assessment.is_active,
                        project_overrides.get(assessment.id),
                        curriculum_overrides.get(assessment.id),
                    )
                    entries.append({
                        'assessment': assessment,
                        'course': course,
                        'curriculum_id': curriculum.id,
                        'is_active': is_active,
                        'override_source': source,
                        'has_project_override': source == 'project',
                    })
        return entries

    def _mark_current(self, attempts, assessment) -> None:
        scoring.mark_current(attempts, assessment.score_strategy)
        for attempt in attempts:
            self.session.add(attempt)

    def record_score(self, data: dict, created_by: Optional[str] = None) -> dict:
        """Store a new attempt and re-designate the current attempt."""
        percentage = scoring.calculate_percentage(data.get('score_earned'), data.get('score_maximum'))
        assessment = self._assessment(data['course_assessment_id'])
        enrollment = self._enrollment(data['participant_id'])
        if enrollment.status == 'removed':
            raise ValidationError('Participant has been removed from this project')
        if data.get('instructor_id') is not None:
            _require(self.session.get(models.Instructor, data['instructor_id']), 'Instructor')
        attempts = self.repo.attempts(assessment.id, enrollment.id)
        attempt_number = scoring.next_attempt_number(attempts, assessment)
        score = models.ParticipantAssessmentScore(
            course_assessment_id=assessment.id,
            participant_id=enrollment.id,
            instructor_id=data.get('instructor_id'),
            attempt_number=attempt_number,
            score_earned=float(data['score_earned']),
            score_maximum=float(data['score_maximum']),
            score_percentage=percentage,
            passed=scoring.auto_passed(percentage, assessment.passing_score),
            feedback=data.get('feedback'),
            assessment_date=dates.as_utc(data.get('assessment_date')) or _utcnow(),
            created_by=created_by,
        )
        self.session.add(score)
        all_attempts = list(attempts) + [score]
        self._mark_current(all_attempts, assessment)
        self.session.commit()
        for attempt in all_attempts:
            self.session.refresh(attempt)
        return {
            'success': True,
            'message': f'Score recorded successfully (Attempt {attempt_number})',
            'score': score,
            'attempt_number': attempt_number,
            'total_attempts': len(all_attempts),
            'all_attempts': all_attempts,
            'resolution': scoring.resolve_scores(all_attempts, assessment).to_dict(),
        }

    def attempt_history(self, assessment_id: int, participant_id: int) -> dict:
        assessment = self._assessment(assessment_id)
        self._enrollment(participant_id)
        attempts = self.repo.attempts(assessment_id, participant_id)
        return {
            'success': True,
            'assessment': assessment,
            'attempts': attempts,
            'resolution': scoring.resolve_scores(attempts, assessment).to_dict(),
        }

    def participant_scores(self, participant_id: int, course_id: Optional[int] = None,
                           current_only: bool = False) -> dict:
        """Every assessment available to the enrollment with its attempts."""
        enrollment = self._enrollment(participant_id)
        catalog = self.project_assessment_catalog(enrollment.project_id)
        if course_id is not None:
            catalog = [e for e in catalog if e['course'].id == course_id]
        # resolution always needs the full history; current_only narrows the listing
        history = self.repo.scores_for_participants([participant_id])
        if course_id is not None:
            allowed = {e['assessment'].id for e in catalog}
            history = [s for s in history if s.course_assessment_id in allowed]
        scores = [s for s in history if s.is_current] if current_only else history
        by_assessment: Dict[int, list] = {}
        for s in history:
            by_assessment.setdefault(s.course_assessment_id, []).append(s)
        grouped = []
        for entry in catalog:
            assessment = entry['assessment']
            all_attempts = sorted(by_assessment.get(assessment.id, []), key=lambda a: a.attempt_number)
            resolution = scoring.resolve_scores(all_attempts, assessment)
            attempts = [a for a in all_attempts if a.is_current] if current_only else all_attempts
            grouped.append({
                'assessment': assessment,
                'course': {'id': entry['course'].id, 'title': entry['course'].title, 'cuid': entry['course'].cuid},
                'is_active': entry['is_active'],
                'override_source': entry['override_source'],
                'has_project_override': entry['has_project_override'],
                'attempts': attempts,
                'current_score': next((a for a in attempts if a.is_current), None),
                'statistics': resolution.statistics.to_dict(),
                'effective_percentage': resolution.effective_percentage,
                'effective_passed': resolution.effective_passed,
                'remaining_attempts': resolution.remaining_attempts,
            })
        return {
            'success': True,
            'scores': scores,
            'grouped_by_assessment': grouped,
            'total_scores': len(scores),
            'total_assessments': len(catalog),
        }

    def override_score(self, score_id: int, passed: bool, reason: Optional[str],
                       overridden_by: Optional[str]) -> dict:
        score = _require(self.repo.get_score(score_id), 'Score')
        assessment = self._assessment(score.course_assessment_id)
        attempts = self.repo.attempts(score.course_assessment_id, score.participant_id)
        calculated = scoring.calculated_passed(score, attempts, assessment)
        scoring.apply_override(score, assessment.passing_score, passed, reason, overridden_by, _utcnow(),
                               calculated=calculated)
        self.session.add(score)
        self.session.commit()
        self.session.refresh(score)
        logger.info("score overridden id=%s passed=%s by=%s", score.id, score.passed, overridden_by)
        return {'success': True, 'message': 'Score override applied', 'score': score}

    def clear_override(self, score_id: int) -> dict:
        score = _require(self.repo.get_score(score_id), 'Score')
        assessment = self._assessment(score.course_assessment_id)
        scoring.clear_override(score, assessment.passing_score)
        self.session.add(score)
        self.session.commit()
        self.session.refresh(score)
        logger.info("score override cleared id=%s", score.id)
        return {'success': True, 'message': 'Score override cleared', 'score': score}

    def toggle_for_project(self, project_id: int, assessment_id: int, is_active: bool,
                           created_by: Optional[str] = None) -> models.ProjectAssessmentConfig:
        _require(self.projects.get(project_id), 'Project')
        self._assessment(assessment_id)
        return self.repo.upsert_project_config(project_id, assessment_id, is_active, created_by)

    def toggle_for_curriculum(self, curriculum_id: int, assessment_id: int, is_active: bool,
                              created_by: Optional[str] = None) -> models.CurriculumAssessmentConfig:
        _require(self.curriculums.get(curriculum_id), 'Curriculum')
        self._assessment(assessment_id)
        return self.repo.upsert_curriculum_config(curriculum_id, assessment_id, is_active, created_by)

    def project_assessments(self, project_id: int) -> dict:
        """Per-assessment completion, average and passing rate for a project."""
        _require(self.projects.get(project_id), 'Project')
        enrolled = self.enrollments.list_for_project(project_id)
        total = len(enrolled)
        catalog = self.project_assessment_catalog(project_id)
        if not catalog:
            return {'success': True, 'project_assessments': [], 'total_participants': total,
                    'total_assessments': 0}
        scores = self.repo.scores_for_participants([e.id for e, _ in enrolled])
        attempts_by_key: Dict[tuple, list] = {}
        for s in scores:
            attempts_by_key.setdefault((s.participant_id, s.course_assessment_id), []).append(s)
        rows = []
        for entry in catalog:
            assessment = entry['assessment']
            participant_rows, effective = [], []
            for enrollment, person in enrolled:
                attempts = attempts_by_key.get((enrollment.id, assessment.id), [])
                current = next((a for a in attempts if a.is_current), None)
                status, value, completed_on = 'Not Started', None, None
                if current is not None:
                    resolution = scoring.resolve_scores(attempts, assessment)
                    value = round(resolution.effective_percentage)
                    status = 'Passed' if resolution.effective_passed else 'Failed'
                    completed_on = dates.format_date(current.assessment_date)
                    effective.append(resolution)
                elif attempts:
                    status = 'In Progress'
                participant_rows.append({
                    'participant_id': enrollment.id,
                    'name': f'{person.first_name} {person.last_name}',
                    'email': person.email,
                    'score': value,
                    'status': status,
                    'attempts': max((a.attempt_number for a in attempts), default=0),
                    'completion_date': completed_on,
                })
            completed = len(effective)
            average = round(sum(r.effective_percentage for r in effective) / completed) if completed else 0
            passing = round(sum(1 for r in effective if r.effective_passed) / completed * 100) if completed else 0
            rows.append({
                'id': assessment.id,
                'assessment_name': assessment.title,
                'course': entry['course'].title,
                'course_id': entry['course'].id,
                'type': scoring.classify_assessment(assessment.title),
                'total_participants': total,
                'completed': completed,
                'average_score': average,
                'passing_rate': passing,
                'is_active': entry['is_active'],
                'override_source': entry['override_source'],
                'has_project_override': entry['has_project_override'],
                'participant_scores': participant_rows,
            })
        return {'success': True, 'project_assessments': rows, 'total_participants': total,
                'total_assessments': len(catalog)}

    def recalculate(self, assessment_ids: Optional[List[int]] = None) -> int:
        """Re-designate current attempts; returns the number of pairs processed."""
        processed = 0
        for assessment_id, participant_id in self.repo.all_pairs():
            if assessment_ids is not None and assessment_id not in assessment_ids:
                continue
            assessment = self.repo.get(assessment_id)
            self._mark_current(self.repo.attempts(assessment_id, participant_id), assessment)
            processed += 1
        self.session.commit()
        return processed
