"""FastAPI application entrypoint and HTTP controllers.

Controllers are intentionally thin: they accept requests, delegate to
services, and return JSON responses. Every `/api` endpoint requires a
signed-in session (see `auth.get_current_user`).

Endpoint groups:
- /api/auth: me, logout
- /api/training-recipients, /api/sub-organizations, /api/instructors
- /api/projects: CRUD, dashboard, curriculums, participants, groups, events
- /api/groups, /api/events: membership, attendees, attendance, instructors
- /api/courses, /api/modules, /api/assessments: catalog
- /api/curriculums: courses and surveys
- /api/score-cards: recordScore, getParticipantScores, getAttemptHistory,
  overrideScore, clearOverride, toggleAssessmentForProject,
  toggleAssessmentForCurriculum, getProjectAssessments
- GET /health
"""

import json
import logging
import time
from typing import Optional
import uuid

from fastapi import Depends, FastAPI, File, Request, Response, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from . import identity, models, repositories, schemas, services
from .auth import SESSION_COOKIES, AuthenticatedUser, get_current_user
from .config import settings
from .database import create_db_and_tables, get_session
from .errors import AppError, ConflictError, IdentityProviderError, NotFoundError, ValidationError
from .utils import surveys
from .utils.dates import TIMEZONE_OPTIONS

app = FastAPI(title="EDWIND Training Management API")
logger = logging.getLogger("edwind.api")
if not logging.getLogger().handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)

if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

create_db_and_tables()


def _log_line(event: str, payload: dict) -> str:
    return f"{event} {json.dumps(payload, ensure_ascii=True, default=str)}"


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    base = {
        "request_id": req_id,
        "path": request.url.path,
        "method": request.method,
        "client": request.client.host if request.client else "unknown",
    }
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception(_log_line("request_failed", {**base, "duration_ms": elapsed_ms}))
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    if request.url.path.startswith("/api"):
        logger.info(_log_line("request_done", {**base, "status_code": response.status_code,
                                               "duration_ms": elapsed_ms}))
    return response


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    body = ValidationError("Missing or invalid request fields").to_dict()
    body["errors"] = jsonable_encoder(exc.errors())
    return JSONResponse(status_code=400, content=body)


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.info("integrity error path=%s error=%s", request.url.path, exc.orig)
    return JSONResponse(status_code=409, content=ConflictError("Resource already exists").to_dict())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("unhandled error path=%s", request.url.path, exc_info=exc)
    message = "Internal server error" if settings.is_production else str(exc) or exc.__class__.__name__
    return JSONResponse(status_code=500, content={"success": False, "message": message, "code": "INTERNAL_ERROR"})


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}


# --- auth -----------------------------------------------------------------

@app.get('/api/auth/me')
def me(user: AuthenticatedUser = Depends(get_current_user), db: Session = Depends(get_session)):
    """Return the signed-in user and, when known, the local organization."""
    org = None
    if user.organization_id:
        org = repositories.OrganizationRepository(db).get_by_workos_id(user.organization_id)
    return {'user': user, 'display_name': user.display_name, 'organization': org}


@app.post('/api/auth/logout')
def logout(response: Response, return_to: Optional[str] = None,
           user: AuthenticatedUser = Depends(get_current_user)):
    """Clear the session cookies and return the provider logout URL."""
    for name in SESSION_COOKIES:
        response.delete_cookie(name)
    logout_url = None
    if user.session_id:
        logout_url = identity.client.get_logout_url(user.session_id, return_to)
    return {'success': True, 'logout_url': logout_url}


@app.get('/api/auth/organization')
def my_organization(user: AuthenticatedUser = Depends(get_current_user)):
    if not user.organization_id:
        raise NotFoundError('No organization selected for this session')
    try:
        return identity.client.get_organization(user.organization_id)
    except IdentityProviderError as exc:
        if exc.status_code == 404:
            raise NotFoundError('Organization not found')
        raise


# --- reference data ---------------------------------------------------------

@app.get('/api/timezones')
def list_timezones(user: AuthenticatedUser = Depends(get_current_user)):
    return [{'value': value, 'label': label} for value, label in TIMEZONE_OPTIONS]


@app.get('/api/survey-providers')
def list_survey_providers(user: AuthenticatedUser = Depends(get_current_user)):
    return [{'value': key, 'label': p['label'], 'fields': surveys.get_provider_config_fields(key)}
            for key, p in surveys.SURVEY_PROVIDERS.items()]


@app.post('/api/sub-organizations')
def create_sub_organization(payload: schemas.SubOrganizationIn, db: Session = Depends(get_session),
                            user: AuthenticatedUser = Depends(get_current_user)):
    """Create a sub-organization under the session's organization."""
    orgs = repositories.OrganizationRepository(db)
    org = orgs.get_by_workos_id(user.organization_id) if user.organization_id else None
    if org is None:
        org = orgs.add(models.Organization(name=payload.organization_name or 'Default',
                                           workos_org_id=user.organization_id))
    return orgs.add(models.SubOrganization(organization_id=org.id, title=payload.title))


@app.get('/api/sub-organizations')
def list_sub_organizations(db: Session = Depends(get_session), user: AuthenticatedUser = Depends(get_current_user)):
    orgs = repositories.OrganizationRepository(db)
    org = orgs.get_by_workos_id(user.organization_id) if user.organization_id else None
    return orgs.list_sub_organizations(org.id) if org else []


@app.get('/api/training-recipients')
def list_training_recipients(sub_organization_id: Optional[int] = None, db: Session = Depends(get_session),
                             user: AuthenticatedUser = Depends(get_current_user)):
    return repositories.TrainingRecipientRepository(db).list(sub_organization_id)


@app.post('/api/training-recipients')
def create_training_recipient(payload: schemas.TrainingRecipientIn, db: Session = Depends(get_session),
                              user: AuthenticatedUser = Depends(get_current_user)):
    return repositories.TrainingRecipientRepository(db).add(models.TrainingRecipient(**payload.model_dump()))


@app.get('/api/training-recipients/{recipient_id}')
def get_training_recipient(recipient_id: int, db: Session = Depends(get_session),
                           user: AuthenticatedUser = Depends(get_current_user)):
    repo = repositories.TrainingRecipientRepository(db)
    recipient = repo.get(recipient_id)
    if recipient is None:
        raise NotFoundError('Training recipient not found')
    return {'training_recipient': recipient, 'participants': repo.participants(recipient_id)}


@app.put('/api/training-recipients/{recipient_id}')
def update_training_recipient(recipient_id: int, payload: schemas.TrainingRecipientUpdate,
                              db: Session = Depends(get_session),
                              user: AuthenticatedUser = Depends(get_current_user)):
    repo = repositories.TrainingRecipientRepository(db)
    recipient = repo.get(recipient_id)
    if recipient is None:
        raise NotFoundError('Training recipient not found')
    for key, value in payload.model_dump(exclude_unset=True).items():
        setattr(recipient, key, value)
    return repo.add(recipient)


@app.delete('/api/training-recipients/{recipient_id}')
def delete_training_recipient(recipient_id: int, db: Session = Depends(get_session),
                              user: AuthenticatedUser = Depends(get_current_user)):
    repo = repositories.TrainingRecipientRepository(db)
    recipient = repo.get(recipient_id)
    if recipient is None:
        raise NotFoundError('Training recipient not found')
    if repo.has_dependents(recipient_id):
        raise ConflictError('Training recipient still has projects or participants')
    repo.delete(recipient)
    return {'success': True}


@app.get('/api/instructors')
def list_instructors(db: Session = Depends(get_session), user: AuthenticatedUser = Depends(get_current_user)):
    return repositories.InstructorRepository(db).list()


@app.post('/api/instructors')
def create_instructor(payload: schemas.InstructorIn, db: Session = Depends(get_session),
                      user: AuthenticatedUser = Depends(get_current_user)):
    repo = repositories.InstructorRepository(db)
    data = payload.model_dump()
    data['email'] = data['email'].strip().lower()
    if repo.get_by_email(data['email']):
        raise ConflictError('An instructor with this email already exists')
    return repo.add(models.Instructor(**data))


# --- projects ---------------------------------------------------------------

@app.get('/api/projects')
def list_projects(sub_organization_id: Optional[int] = None, db: Session = Depends(get_session),
                  user: AuthenticatedUser = Depends(get_current_user)):
    return repositories.ProjectRepository(db).list(sub_organization_id)


@app.post('/api/projects')
def create_project(payload: schemas.ProjectIn, db: Session = Depends(get_session),
                   user: AuthenticatedUser = Depends(get_current_user)):
    return services.ProjectService(db).create(payload.model_dump(), created_by=user.id)


@app.get('/api/projects/{project_id}')
def get_project(project_id: int, db: Session = Depends(get_session),
                user: AuthenticatedUser = Depends(get_current_user)):
    return services.ProjectService(db).detail(project_id)


@app.put('/api/projects/{project_id}')
def update_project(project_id: int, payload: schemas.ProjectUpdate, db: Session = Depends(get_session),
                   user: AuthenticatedUser = Depends(get_current_user)):
    return services.ProjectService(db).update(project_id, payload.model_dump(exclude_unset=True))


@app.delete('/api/projects/{project_id}')
def delete_project(project_id: int, db: Session = Depends(get_session),
                   user: AuthenticatedUser = Depends(get_current_user)):
    """Delete a project and everything scoped to it."""
    removed = services.ProjectService(db).delete(project_id)
    return {'success': True, 'removed': removed}


@app.get('/api/projects/{project_id}/dashboard')
def project_dashboard(project_id: int, db: Session = Depends(get_session),
                      user: AuthenticatedUser = Depends(get_current_user)):
    return services.ProjectService(db).dashboard(project_id)


@app.post('/api/projects/{project_id}/curriculums')
def link_project_curriculum(project_id: int, payload: schemas.CurriculumLinkIn, db: Session = Depends(get_session),
                            user: AuthenticatedUser = Depends(get_current_user)):
    return services.ProjectService(db).link_curriculum(project_id, payload.curriculum_id)


@app.delete('/api/projects/{project_id}/curriculums/{curriculum_id}')
def unlink_project_curriculum(project_id: int, curriculum_id: int, db: Session = Depends(get_session),
                              user: AuthenticatedUser = Depends(get_current_user)):
    services.ProjectService(db).unlink_curriculum(project_id, curriculum_id)
    return {'success': True}


@app.get('/api/projects/{project_id}/participants')
def list_project_participants(project_id: int, include_removed: bool = False, db: Session = Depends(get_session),
                              user: AuthenticatedUser = Depends(get_current_user)):
    return services.EnrollmentService(db).list(project_id, include_removed)


@app.post('/api/projects/{project_id}/participants')
def enroll_participant(project_id: int, payload: schemas.EnrollmentIn, db: Session = Depends(get_session),
                       user: AuthenticatedUser = Depends(get_current_user)):
    return services.EnrollmentService(db).enroll(project_id, payload.participant.model_dump())


@app.post('/api/projects/{project_id}/participants/import')
def import_participants(project_id: int, file: UploadFile = File(...), db: Session = Depends(get_session),
                        user: AuthenticatedUser = Depends(get_current_user)):
    """Enroll participants from an uploaded CSV roster."""
    if not file.filename:
        raise ValidationError('no file')
    content = file.file.read(settings.MAX_UPLOAD_BYTES + 1)
    if len(content) > settings.MAX_UPLOAD_BYTES:
        raise ValidationError('file too large')
    return services.EnrollmentService(db).import_csv(project_id, content)


@app.delete('/api/projects/{project_id}/participants/{enrollment_id}')
def remove_participant(project_id: int, enrollment_id: int, db: Session = Depends(get_session),
                       user: AuthenticatedUser = Depends(get_current_user)):
    enrollment = services.EnrollmentService(db).remove(project_id, enrollment_id)
    return {'success': True, 'enrollment': enrollment}


@app.get('/api/projects/{project_id}/groups')
def list_project_groups(project_id: int, db: Session = Depends(get_session),
                        user: AuthenticatedUser = Depends(get_current_user)):
    return services.GroupService(db).list_for_project(project_id)


@app.post('/api/projects/{project_id}/groups')
def create_group(project_id: int, payload: schemas.GroupIn, db: Session = Depends(get_session),
                 user: AuthenticatedUser = Depends(get_current_user)):
    return services.GroupService(db).create(project_id, payload.group_name, payload.chip_color,
                                            payload.participant_ids)


@app.get('/api/projects/{project_id}/events')
def list_project_events(project_id: int, db: Session = Depends(get_session),
                        user: AuthenticatedUser = Depends(get_current_user)):
    return services.EventService(db).list_for_project(project_id)


@app.post('/api/projects/{project_id}/events')
def create_event(project_id: int, payload: schemas.EventIn, db: Session = Depends(get_session),
                 user: AuthenticatedUser = Depends(get_current_user)):
    return services.EventService(db).create(project_id, payload.model_dump())


# --- groups -----------------------------------------------------------------

@app.put('/api/groups/{group_id}')
def update_group(group_id: int, payload: schemas.GroupUpdate, db: Session = Depends(get_session),
                 user: AuthenticatedUser = Depends(get_current_user)):
    return services.GroupService(db).update(group_id, payload.model_dump(exclude_unset=True))


@app.delete('/api/groups/{group_id}')
def delete_group(group_id: int, db: Session = Depends(get_session),
                 user: AuthenticatedUser = Depends(get_current_user)):
    services.GroupService(db).delete(group_id)
    return {'success': True}


@app.post('/api/groups/{group_id}/participants')
def add_group_member(group_id: int, payload: schemas.GroupMemberIn, db: Session = Depends(get_session),
                     user: AuthenticatedUser = Depends(get_current_user)):
    return services.GroupService(db).add_member(group_id, payload.participant_id)


@app.delete('/api/groups/{group_id}/participants/{enrollment_id}')
def remove_group_member(group_id: int, enrollment_id: int, db: Session = Depends(get_session),
                        user: AuthenticatedUser = Depends(get_current_user)):
    services.GroupService(db).remove_member(group_id, enrollment_id)
    return {'success': True}


@app.get('/api/groups/{group_id}/progress')
def group_progress(group_id: int, db: Session = Depends(get_session),
                   user: AuthenticatedUser = Depends(get_current_user)):
    return services.GroupService(db).progress(group_id)


# --- events -----------------------------------------------------------------

@app.put('/api/events/{event_id}')
def update_event(event_id: int, payload: schemas.EventUpdate, db: Session = Depends(get_session),
                 user: AuthenticatedUser = Depends(get_current_user)):
    return services.EventService(db).update(event_id, payload.model_dump(exclude_unset=True))


@app.delete('/api/events/{event_id}')
def delete_event(event_id: int, db: Session = Depends(get_session),
                 user: AuthenticatedUser = Depends(get_current_user)):
    services.EventService(db).delete(event_id)
    return {'success': True}


@app.post('/api/events/{event_id}/attendees')
def add_event_attendees(event_id: int, payload: schemas.AttendeesIn, db: Session = Depends(get_session),
                        user: AuthenticatedUser = Depends(get_current_user)):
    """Schedule enrollments and/or whole groups into an event."""
    if not payload.participant_ids and not payload.group_ids:
        raise ValidationError('participant_ids or group_ids required')
    return services.EventService(db).add_attendees(event_id, payload.participant_ids, payload.group_ids)


@app.put('/api/events/{event_id}/attendees/{enrollee_id}')
def update_attendance(event_id: int, enrollee_id: int, payload: schemas.AttendanceUpdate,
                      db: Session = Depends(get_session), user: AuthenticatedUser = Depends(get_current_user)):
    return services.EventService(db).update_attendance(event_id, enrollee_id, payload.attendance_status)


@app.delete('/api/events/{event_id}/attendees/{enrollee_id}')
def remove_event_attendee(event_id: int, enrollee_id: int, db: Session = Depends(get_session),
                          user: AuthenticatedUser = Depends(get_current_user)):
    services.EventService(db).remove_attendee(event_id, enrollee_id)
    return {'success': True}


@app.post('/api/events/move-attendee')
def move_event_attendee(payload: schemas.MoveAttendeeIn, db: Session = Depends(get_session),
                        user: AuthenticatedUser = Depends(get_current_user)):
    return services.EventService(db).move_attendee(payload.participant_id, payload.from_event_id,
                                                   payload.to_event_id)


@app.post('/api/events/{event_id}/instructors')
def assign_event_instructor(event_id: int, payload: schemas.EventInstructorIn, db: Session = Depends(get_session),
                            user: AuthenticatedUser = Depends(get_current_user)):
    return services.EventService(db).assign_instructor(event_id, payload.instructor_id, payload.role)


# --- courses ----------------------------------------------------------------

@app.get('/api/courses')
def list_courses(sub_organization_id: Optional[int] = None, db: Session = Depends(get_session),
                 user: AuthenticatedUser = Depends(get_current_user)):
    return repositories.CourseRepository(db).list(sub_organization_id)


@app.post('/api/courses')
def create_course(payload: schemas.CourseIn, db: Session = Depends(get_session),
                  user: AuthenticatedUser = Depends(get_current_user)):
    return services.CourseService(db).create(payload.model_dump())


@app.get('/api/courses/{course_id}')
def get_course(course_id: int, db: Session = Depends(get_session),
               user: AuthenticatedUser = Depends(get_current_user)):
    return services.CourseService(db).detail(course_id)


@app.put('/api/courses/{course_id}')
def update_course(course_id: int, payload: schemas.CourseUpdate, db: Session = Depends(get_session),
                  user: AuthenticatedUser = Depends(get_current_user)):
    return services.CourseService(db).update(course_id, payload.model_dump(exclude_unset=True))


@app.delete('/api/courses/{course_id}')
def delete_course(course_id: int, db: Session = Depends(get_session),
                  user: AuthenticatedUser = Depends(get_current_user)):
    services.CourseService(db).delete(course_id)
    return {'success': True}


@app.post('/api/courses/{course_id}/duplicate')
def duplicate_course(course_id: int, db: Session = Depends(get_session),
                     user: AuthenticatedUser = Depends(get_current_user)):
    return services.CourseService(db).duplicate(course_id)


@app.post('/api/courses/{course_id}/modules')
def add_course_module(course_id: int, payload: schemas.ModuleIn, db: Session = Depends(get_session),
                      user: AuthenticatedUser = Depends(get_current_user)):
    return services.CourseService(db).add_module(course_id, payload.model_dump())


@app.post('/api/modules/{module_id}/activities')
def add_module_activity(module_id: int, payload: schemas.ActivityIn, db: Session = Depends(get_session),
                        user: AuthenticatedUser = Depends(get_current_user)):
    return services.CourseService(db).add_activity(module_id, payload.model_dump())


@app.post('/api/courses/{course_id}/assessments')
def create_assessment(course_id: int, payload: schemas.AssessmentIn, db: Session = Depends(get_session),
                      user: AuthenticatedUser = Depends(get_current_user)):
    return services.CourseService(db).create_assessment(course_id, payload.model_dump())


@app.put('/api/assessments/{assessment_id}')
def update_assessment(assessment_id: int, payload: schemas.AssessmentUpdate, db: Session = Depends(get_session),
                      user: AuthenticatedUser = Depends(get_current_user)):
    return services.CourseService(db).update_assessment(assessment_id, payload.model_dump(exclude_unset=True))


@app.delete('/api/assessments/{assessment_id}')
def delete_assessment(assessment_id: int, db: Session = Depends(get_session),
                      user: AuthenticatedUser = Depends(get_current_user)):
    services.CourseService(db).delete_assessment(assessment_id)
    return {'success': True}


# --- curriculums ------------------------------------------------------------

@app.get('/api/curriculums')
def list_curriculums(sub_organization_id: Optional[int] = None, db: Session = Depends(get_session),
                     user: AuthenticatedUser = Depends(get_current_user)):
    return repositories.CurriculumRepository(db).list(sub_organization_id)


@app.post('/api/curriculums')
def create_curriculum(payload: schemas.CurriculumIn, db: Session = Depends(get_session),
                      user: AuthenticatedUser = Depends(get_current_user)):
    return services.CurriculumService(db).create(payload.model_dump())


@app.get('/api/curriculums/{curriculum_id}')
def get_curriculum(curriculum_id: int, db: Session = Depends(get_session),
                   user: AuthenticatedUser = Depends(get_current_user)):
    return services.CurriculumService(db).detail(curriculum_id)


@app.put('/api/curriculums/{curriculum_id}')
def update_curriculum(curriculum_id: int, payload: schemas.CurriculumUpdate, db: Session = Depends(get_session),
                      user: AuthenticatedUser = Depends(get_current_user)):
    return services.CurriculumService(db).update(curriculum_id, payload.model_dump(exclude_unset=True))


@app.delete('/api/curriculums/{curriculum_id}')
def delete_curriculum(curriculum_id: int, db: Session = Depends(get_session),
                      user: AuthenticatedUser = Depends(get_current_user)):
    services.CurriculumService(db).delete(curriculum_id)
    return {'success': True}


@app.post('/api/curriculums/{curriculum_id}/courses')
def add_curriculum_course(curriculum_id: int, payload: schemas.CurriculumCourseIn,
                          db: Session = Depends(get_session), user: AuthenticatedUser = Depends(get_current_user)):
    return services.CurriculumService(db).add_course(curriculum_id, payload.course_id)


@app.delete('/api/curriculums/{curriculum_id}/courses/{course_id}')
def remove_curriculum_course(curriculum_id: int, course_id: int, db: Session = Depends(get_session),
                             user: AuthenticatedUser = Depends(get_current_user)):
    services.CurriculumService(db).remove_course(curriculum_id, course_id)
    return {'success': True}


@app.get('/api/curriculums/{curriculum_id}/surveys')
def list_curriculum_surveys(curriculum_id: int, db: Session = Depends(get_session),
                            user: AuthenticatedUser = Depends(get_current_user)):
    services.CurriculumService(db).get(curriculum_id)
    return repositories.CurriculumRepository(db).surveys(curriculum_id)


@app.post('/api/curriculums/{curriculum_id}/surveys')
def add_curriculum_survey(curriculum_id: int, payload: schemas.SurveyIn, db: Session = Depends(get_session),
                          user: AuthenticatedUser = Depends(get_current_user)):
    return services.CurriculumService(db).add_survey(curriculum_id, payload.model_dump())


# --- score cards ------------------------------------------------------------

@app.post('/api/score-cards/recordScore')
def record_score(payload: schemas.RecordScoreIn, db: Session = Depends(get_session),
                 user: AuthenticatedUser = Depends(get_current_user)):
    """Record a new attempt; the attempt number is assigned here."""
    return services.ScoreCardService(db).record_score(payload.model_dump(), created_by=user.id)


@app.get('/api/score-cards/getParticipantScores')
def get_participant_scores(participantId: int, courseId: Optional[int] = None, currentOnly: bool = False,
                           db: Session = Depends(get_session), user: AuthenticatedUser = Depends(get_current_user)):
    return services.ScoreCardService(db).participant_scores(participantId, courseId, currentOnly)


@app.get('/api/score-cards/getAttemptHistory')
def get_attempt_history(assessmentId: int, participantId: int, db: Session = Depends(get_session),
                        user: AuthenticatedUser = Depends(get_current_user)):
    return services.ScoreCardService(db).attempt_history(assessmentId, participantId)


@app.post('/api/score-cards/overrideScore')
def override_score(payload: schemas.OverrideScoreIn, db: Session = Depends(get_session),
                   user: AuthenticatedUser = Depends(get_current_user)):
    """Manually set pass/fail on one attempt; a reason is required."""
    return services.ScoreCardService(db).override_score(payload.score_id, payload.passed,
                                                        payload.override_reason, user.display_name)


@app.post('/api/score-cards/clearOverride')
def clear_override(payload: schemas.ClearOverrideIn, db: Session = Depends(get_session),
                   user: AuthenticatedUser = Depends(get_current_user)):
    return services.ScoreCardService(db).clear_override(payload.score_id)


@app.post('/api/score-cards/toggleAssessmentForProject')
def toggle_assessment_for_project(payload: schemas.ToggleProjectAssessmentIn, db: Session = Depends(get_session),
                                  user: AuthenticatedUser = Depends(get_current_user)):
    config = services.ScoreCardService(db).toggle_for_project(
        payload.project_id, payload.course_assessment_id, payload.is_active, created_by=user.id)
    state = 'enabled' if config.is_active else 'disabled'
    return {'success': True, 'message': f'Assessment {state} for this project', 'config': config}


@app.post('/api/score-cards/toggleAssessmentForCurriculum')
def toggle_assessment_for_curriculum(payload: schemas.ToggleCurriculumAssessmentIn,
                                     db: Session = Depends(get_session),
                                     user: AuthenticatedUser = Depends(get_current_user)):
    config = services.ScoreCardService(db).toggle_for_curriculum(
        payload.curriculum_id, payload.course_assessment_id, payload.is_active, created_by=user.id)
    state = 'enabled' if config.is_active else 'disabled'
    return {'success': True, 'message': f'Assessment {state} for this curriculum', 'config': config}


@app.get('/api/score-cards/getProjectAssessments')
def get_project_assessments(projectId: int, db: Session = Depends(get_session),
                            user: AuthenticatedUser = Depends(get_current_user)):
    return services.ScoreCardService(db).project_assessments(projectId)
