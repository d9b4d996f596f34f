from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError

from edwind.main import app


@app.get('/api/_raise/integrity')
def _raise_integrity():
    raise IntegrityError('INSERT INTO participant ...', {}, Exception('UNIQUE constraint failed: participant.email'))


@app.get('/api/_raise/crash')
def _raise_crash():
    raise RuntimeError('boom')


def test_wrong_method_is_405(client):
    assert client.patch('/api/projects').status_code == 405


def test_invalid_body_is_400(client):
    r = client.post('/api/projects', json={'summary': 'no title'})
    assert r.status_code == 400
    body = r.json()
    assert body['success'] is False
    assert body['errors'][0]['loc'][-1] == 'title'


def test_missing_resource_is_404(client):
    r = client.get('/api/projects/12345')
    assert r.status_code == 404
    assert r.json() == {'success': False, 'message': 'Project not found', 'code': 'NOT_FOUND'}


def test_integrity_error_is_409(client):
    assert client.get('/api/_raise/integrity').status_code == 409


def test_duplicate_curriculum_course_is_409(client):
    course = client.post('/api/courses', json={'title': 'Safety'}).json()
    curriculum = client.post('/api/curriculums', json={'title': 'Onboarding', 'course_ids': [course['id']]}).json()
    r = client.post(f"/api/curriculums/{curriculum['id']}/courses", json={'course_id': course['id']})
    assert r.status_code == 409


def test_unhandled_error_passes_message_outside_production(client):
    crashing = TestClient(app, raise_server_exceptions=False)
    r = crashing.get('/api/_raise/crash')
    assert r.status_code == 500
    assert r.json()['message'] == 'boom'


def test_request_id_is_propagated(client):
    r = client.get('/health', headers={'X-Request-ID': 'abc123'})
    assert r.headers['X-Request-ID'] == 'abc123'
