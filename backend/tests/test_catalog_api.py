def _course_with_content(client):
    course = client.post('/api/courses', json={'title': 'Forklift Basics', 'level': 'Beginner'}).json()
    module = client.post(f"/api/courses/{course['id']}/modules", json={'title': 'Controls'}).json()
    client.post(f"/api/modules/{module['id']}/activities", json={'title': 'Walkthrough', 'activity_type': 'video'})
    client.post(f"/api/courses/{course['id']}/assessments",
                json={'title': 'Forklift Practical', 'score_strategy': 'highest', 'max_attempts': 3})
    return course


def test_course_detail_lists_modules_and_assessments(client):
    course = _course_with_content(client)
    detail = client.get(f"/api/courses/{course['id']}").json()
    assert detail['modules'][0]['module']['title'] == 'Controls'
    assert detail['modules'][0]['module']['module_order'] == 0
    assert detail['modules'][0]['activities'][0]['title'] == 'Walkthrough'
    assert detail['assessments'][0]['score_strategy'] == 'highest'


def test_duplicate_course_deep_copies(client):
    course = _course_with_content(client)
    copy = client.post(f"/api/courses/{course['id']}/duplicate").json()
    assert copy['title'] == 'Forklift Basics (Copy)'
    assert copy['version'] == 1
    assert copy['cuid'] != course['cuid']
    detail = client.get(f"/api/courses/{copy['id']}").json()
    assert [m['module']['title'] for m in detail['modules']] == ['Controls']
    assert detail['modules'][0]['activities'][0]['activity_type'] == 'video'
    assert detail['assessments'][0]['max_attempts'] == 3


def test_assessment_validation(client):
    course = client.post('/api/courses', json={'title': 'Safety'}).json()
    url = f"/api/courses/{course['id']}/assessments"
    assert client.post(url, json={'title': 'Quiz', 'score_strategy': 'median'}).status_code == 400
    assert client.post(url, json={'title': 'Quiz', 'passing_score': 120}).status_code == 400
    assert client.post(url, json={'title': 'Quiz', 'passing_score': 0}).status_code == 200


def test_scheduled_course_cannot_be_deleted(client):
    course = client.post('/api/courses', json={'title': 'Safety'}).json()
    project = client.post('/api/projects', json={'title': 'P'}).json()
    client.post(f"/api/projects/{project['id']}/events", json={
        'title': 'Day 1', 'course_id': course['id'], 'start': '2025-03-03T09:00:00', 'end': '2025-03-03T10:00:00',
    })
    assert client.delete(f"/api/courses/{course['id']}").status_code == 409


def test_curriculum_courses_and_surveys(client):
    a = client.post('/api/courses', json={'title': 'A'}).json()
    b = client.post('/api/courses', json={'title': 'B'}).json()
    curriculum = client.post('/api/curriculums', json={'title': 'Onboarding', 'course_ids': [a['id']]}).json()
    cid = curriculum['id']
    assert client.post(f'/api/curriculums/{cid}/courses', json={'course_id': b['id']}).status_code == 200
    assert [c['title'] for c in client.get(f'/api/curriculums/{cid}').json()['courses']] == ['A', 'B']

    bad = client.post(f'/api/curriculums/{cid}/surveys', json={
        'title': 'Feedback', 'provider': 'google_forms', 'provider_config': {'form_url': 'https://example.com/f'},
    })
    assert bad.status_code == 400
    assert bad.json()['errors']['form_url'] == 'URL does not look like a Google Forms link'

    ok = client.post(f'/api/curriculums/{cid}/surveys', json={
        'title': 'Feedback', 'provider': 'google_forms',
        'provider_config': {'form_url': 'https://forms.gle/abc123'},
    })
    assert ok.status_code == 200
    surveys = client.get(f'/api/curriculums/{cid}/surveys').json()
    assert surveys[0]['provider_config'] == {'form_url': 'https://forms.gle/abc123'}

    assert client.delete(f"/api/curriculums/{cid}/courses/{a['id']}").status_code == 200
    assert client.delete(f'/api/curriculums/{cid}').status_code == 200
    assert client.get(f'/api/curriculums/{cid}').status_code == 404


def test_training_recipient_with_projects_cannot_be_deleted(client):
    recipient = client.post('/api/training-recipients', json={'name': 'Acme'}).json()
    client.post('/api/projects', json={'title': 'P', 'training_recipient_id': recipient['id']})
    assert client.delete(f"/api/training-recipients/{recipient['id']}").status_code == 409


def test_instructor_assignment(client):
    instructor = client.post('/api/instructors', json={
        'first_name': 'Terry', 'last_name': 'Trainer', 'email': 'Terry@Example.com'}).json()
    assert instructor['email'] == 'terry@example.com'
    project = client.post('/api/projects', json={'title': 'P'}).json()
    event = client.post(f"/api/projects/{project['id']}/events", json={
        'title': 'S', 'start': '2025-03-03T09:00:00', 'end': '2025-03-03T10:00:00'}).json()
    url = f"/api/events/{event['id']}/instructors"
    assert client.post(url, json={'instructor_id': instructor['id']}).json()['role'] == 'main'
    assert client.post(url, json={'instructor_id': instructor['id']}).status_code == 409
    listed = client.get(f"/api/projects/{project['id']}/events").json()
    assert listed[0]['instructors'][0]['instructor_id'] == instructor['id']
