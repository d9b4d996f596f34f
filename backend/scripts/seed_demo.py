"""CLI script to load a small demo data set into the backend DB.

Creates a training recipient, a course with assessments, a curriculum, a
project with enrolled participants and a few recorded attempts.
Usage: python scripts/seed_demo.py [--reset]
"""
import sys
import argparse
import pathlib
from datetime import date, datetime, timedelta
# Ensure `backend/` is on sys.path so `edwind` imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session
from edwind.database import engine, create_db_and_tables, drop_db_and_tables
from edwind import models, services

PEOPLE = [
    ('Ada', 'Lovelace', 'ada@example.com'),
    ('Grace', 'Hopper', 'grace@example.com'),
    ('Alan', 'Turing', 'alan@example.com'),
]


def main(reset: bool = False):
    if reset:
        drop_db_and_tables()
    create_db_and_tables()
    with Session(engine, expire_on_commit=False) as session:
        recipient = models.TrainingRecipient(name='Acme Logistics', location='Melbourne')
        session.add(recipient)
        session.commit()

        courses = services.CourseService(session)
        course = courses.create({'title': 'Warehouse Safety', 'level': 'Beginner', 'duration_minutes': 240})
        module = courses.add_module(course.id, {'title': 'Hazards'})
        courses.add_activity(module.id, {'title': 'Spot the hazard', 'activity_type': 'exercise'})
        quiz = courses.create_assessment(course.id, {'title': 'Safety Quiz', 'passing_score': 70})
        practical = courses.create_assessment(course.id, {'title': 'Forklift Practical', 'score_strategy': 'highest',
                                                          'max_attempts': 3})

        curriculum = services.CurriculumService(session).create({'title': 'Onboarding', 'course_ids': [course.id]})
        start = date.today()
        project = services.ProjectService(session).create({
            'title': 'Acme Onboarding', 'timezone': 'Australia/Melbourne',
            'start_date': start, 'end_date': start + timedelta(days=4),
            'training_recipient_id': recipient.id, 'curriculum_ids': [curriculum.id],
        })

        enrollments = services.EnrollmentService(session)
        enrolled = [enrollments.enroll(project.id, {'first_name': f, 'last_name': l, 'email': e})['enrollment']
                    for f, l, e in PEOPLE]
        group = services.GroupService(session).create(project.id, participant_ids=[e.id for e in enrolled])['group']

        event_start = datetime.combine(start, datetime.min.time()).replace(hour=9)
        event = services.EventService(session).create(project.id, {
            'title': 'Warehouse Safety - Day 1', 'course_id': course.id,
            'start': event_start, 'end': event_start + timedelta(hours=4),
        })
        services.EventService(session).add_attendees(event.id, [], [group.id])

        scores = services.ScoreCardService(session)
        for enrollment, earned in zip(enrolled, (85, 60, 72)):
            scores.record_score({'course_assessment_id': quiz.id, 'participant_id': enrollment.id,
                                 'score_earned': earned, 'score_maximum': 100}, created_by='seed')
        scores.record_score({'course_assessment_id': practical.id, 'participant_id': enrolled[0].id,
                             'score_earned': 15, 'score_maximum': 20}, created_by='seed')
        print(f'Seeded project {project.id} ({project.cuid}) with {len(enrolled)} participants')


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('--reset', action='store_true', help='Drop all tables before seeding')
    args = parser.parse_args()
    main(reset=args.reset)
