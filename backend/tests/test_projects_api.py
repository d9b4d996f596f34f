from datetime import datetime, timezone

from sqlmodel import select

from edwind import models
from edwind.utils import dates


def _enroll(client, project_id, first, last, email):
    r = client.post(f'/api/projects/{project_id}/participants',
                    json={'participant': {'first_name': first, 'last_name': last, 'email': email}})
    assert r.status_code == 200, r.text
    return r.json()


def test_create_project_validates_timezone_and_dates(client):
    r = client.post('/api/projects', json={'title': 'Bad tz', 'timezone': 'Mars/Olympus'})
    assert r.status_code == 400
    r = client.post('/api/projects', json={'title': 'Backwards', 'start_date': '2025-03-07', 'end_date': '2025-03-03'})
    assert r.status_code == 400
    r = client.post('/api/projects', json={'title': 'Good', 'timezone': 'Europe/London'})
    assert r.status_code == 200
    body = r.json()
    assert body['cuid']
    assert body['created_by'] == 'user_test'
    assert client.get(f"/api/projects/{body['id']}").json()['project']['title'] == 'Good'


def test_enrollment_lifecycle(client, seeded):
    pid = seeded.project.id
    first = _enroll(client, pid, 'Grace', 'Hopper', ' Grace@Example.COM ')
    assert first['created_participant'] is True
    assert first['participant']['email'] == 'grace@example.com'

    dup = client.post(f'/api/projects/{pid}/participants',
                      json={'participant': {'first_name': 'Grace', 'last_name': 'Hopper', 'email': 'grace@example.com'}})
    assert dup.status_code == 409
    assert dup.json()['participant_exists'] is True

    enrollment_id = first['enrollment']['id']
    r = client.delete(f'/api/projects/{pid}/participants/{enrollment_id}')
    assert r.json()['enrollment']['status'] == 'removed'
    assert len(client.get(f'/api/projects/{pid}/participants').json()) == 1

    again = _enroll(client, pid, 'Grace', 'Hopper', 'grace@example.com')
    assert again['reactivated'] is True
    assert again['enrollment']['id'] == enrollment_id


def test_enroll_new_person_requires_training_recipient(client):
    project = client.post('/api/projects', json={'title': 'No recipient'}).json()
    r = client.post(f"/api/projects/{project['id']}/participants",
                    json={'participant': {'first_name': 'A', 'last_name': 'B', 'email': 'ab@example.com'}})
    assert r.status_code == 400


def test_import_roster(client, seeded):
    roster = b'first_name,last_name,email\nGrace,Hopper,grace@example.com\nAda,Lovelace,ada@example.com\nBad,,x\n'
    r = client.post(f'/api/projects/{seeded.project.id}/participants/import',
                    files={'file': ('roster.csv', roster, 'text/csv')})
    assert r.status_code == 200
    body = r.json()
    assert body['enrolled'] == 1
    assert body['skipped'] == 1
    assert len(body['errors']) == 1


def test_groups_named_and_membership_moves(client, seeded):
    pid = seeded.project.id
    eid = seeded.enrollment.id
    g1 = client.post(f'/api/projects/{pid}/groups', json={'participant_ids': [eid]}).json()
    g2 = client.post(f'/api/projects/{pid}/groups', json={}).json()
    assert g1['group']['group_name'] == 'Group 1'
    assert g2['group']['group_name'] == 'Group 2'
    assert g1['participant_ids'] == [eid]

    r = client.post(f"/api/groups/{g2['group']['id']}/participants", json={'participant_id': eid})
    assert r.status_code == 200
    groups = {g['group']['group_name']: g['participant_ids'] for g in client.get(f'/api/projects/{pid}/groups').json()}
    assert groups == {'Group 1': [], 'Group 2': [eid]}

    dup = client.post(f'/api/projects/{pid}/groups', json={'group_name': 'group 2'})
    assert dup.status_code == 409


def test_events_attendance_and_dashboard(client, seeded):
    pid = seeded.project.id
    eid = seeded.enrollment.id
    group = client.post(f'/api/projects/{pid}/groups', json={'participant_ids': [eid]}).json()['group']
    event = client.post(f'/api/projects/{pid}/events', json={
        'title': 'Day 1', 'course_id': seeded.course.id,
        'start': '2025-03-03T09:00:00', 'end': '2025-03-03T12:00:00',
    }).json()
    r = client.post(f"/api/events/{event['id']}/attendees", json={'group_ids': [group['id']]})
    assert r.status_code == 200
    assert [a['attendance_status'] for a in r.json()['added']] == ['scheduled']

    bad = client.put(f"/api/events/{event['id']}/attendees/{eid}", json={'attendance_status': 'asleep'})
    assert bad.status_code == 400
    ok = client.put(f"/api/events/{event['id']}/attendees/{eid}", json={'attendance_status': 'late'})
    assert ok.json()['attendance_status'] == 'late'

    dashboard = client.get(f'/api/projects/{pid}/dashboard').json()
    assert dashboard['attendance']['attendance_percentage'] == 100
    assert dashboard['sessions']['total'] == 1

    progress = client.get(f"/api/groups/{group['id']}/progress").json()
    assert progress['courses'][0]['is_completed'] is True


def test_event_end_must_follow_start(client, seeded):
    r = client.post(f'/api/projects/{seeded.project.id}/events', json={
        'title': 'Backwards', 'start': '2025-03-03T12:00:00', 'end': '2025-03-03T09:00:00',
    })
    assert r.status_code == 400


def test_move_attendee_resets_status(client, seeded):
    pid = seeded.project.id
    eid = seeded.enrollment.id
    payload = {'title': 'S', 'start': '2025-03-03T09:00:00', 'end': '2025-03-03T10:00:00'}
    e1 = client.post(f'/api/projects/{pid}/events', json=payload).json()
    e2 = client.post(f'/api/projects/{pid}/events', json=payload).json()
    client.post(f"/api/events/{e1['id']}/attendees", json={'participant_ids': [eid]})
    client.put(f"/api/events/{e1['id']}/attendees/{eid}", json={'attendance_status': 'absent'})
    r = client.post('/api/events/move-attendee',
                    json={'participant_id': eid, 'from_event_id': e1['id'], 'to_event_id': e2['id']})
    assert r.status_code == 200
    assert r.json()['event_id'] == e2['id']
    assert r.json()['attendance_status'] == 'scheduled'


def test_delete_project_leaves_no_orphans(client, seeded, db):
    pid = seeded.project.id
    eid = seeded.enrollment.id
    group = client.post(f'/api/projects/{pid}/groups', json={'participant_ids': [eid]}).json()['group']
    event = client.post(f'/api/projects/{pid}/events', json={
        'title': 'Day 1', 'start': '2025-03-03T09:00:00', 'end': '2025-03-03T12:00:00',
    }).json()
    client.post(f"/api/events/{event['id']}/attendees", json={'group_ids': [group['id']]})
    client.post('/api/score-cards/recordScore', json={
        'course_assessment_id': seeded.assessment.id, 'participant_id': eid,
        'score_earned': 80, 'score_maximum': 100,
    })
    client.post('/api/score-cards/toggleAssessmentForProject', json={
        'project_id': pid, 'course_assessment_id': seeded.assessment.id, 'is_active': False,
    })

    r = client.delete(f'/api/projects/{pid}')
    assert r.status_code == 200
    assert r.json()['removed'] == {'attendees': 1, 'events': 1, 'groups': 1, 'scores': 1, 'participants': 1}

    for model in (models.Project, models.ProjectParticipant, models.ProjectGroup, models.GroupParticipant,
                  models.Event, models.EventAttendee, models.EventGroup, models.ParticipantAssessmentScore,
                  models.ProjectCurriculum, models.ProjectAssessmentConfig):
        assert db.exec(select(model)).all() == [], model.__name__
    # people and catalog data survive
    assert len(db.exec(select(models.Participant)).all()) == 1
    assert db.get(models.Curriculum, seeded.curriculum.id) is not None
    assert client.get(f'/api/projects/{pid}').status_code == 404


def test_event_times_stored_as_utc_and_read_back(client, seeded):
    pid = seeded.project.id
    client.put(f'/api/projects/{pid}', json={'timezone': 'America/New_York'})
    r = client.post(f'/api/projects/{pid}/events', json={
        'title': 'Kickoff', 'start': '2025-01-15T09:00:00', 'end': '2025-01-15T11:00:00',
    })
    assert r.status_code == 200, r.text
    event_id = r.json()['id']

    listed = client.get(f'/api/projects/{pid}/events').json()
    stored = listed[0]['event']
    assert dates.as_utc(stored['start']) == datetime(2025, 1, 15, 14, 0, tzinfo=timezone.utc)
    assert dates.as_utc(stored['end']) == datetime(2025, 1, 15, 16, 0, tzinfo=timezone.utc)

    renamed = client.put(f'/api/events/{event_id}', json={'title': 'Kickoff (moved room)'})
    assert renamed.status_code == 200, renamed.text
    assert dates.as_utc(renamed.json()['start']) == datetime(2025, 1, 15, 14, 0, tzinfo=timezone.utc)

    client.post(f'/api/projects/{pid}/events', json={
        'title': 'Later', 'start': '2999-01-01T09:00:00', 'end': '2999-01-01T10:00:00',
    })
    sessions = client.get(f'/api/projects/{pid}/dashboard').json()['sessions']
    assert sessions == {'total': 2, 'completed': 1, 'upcoming': 1}
