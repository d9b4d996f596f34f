"""Attendance and course-completion calculations.

Present and late both count as attended. Inputs are plain structures so
the helpers can be used on query results or request payloads alike:
events are mappings with an `attendees` list of
`{'enrollee_id', 'attendance_status'}` entries.
"""

from typing import Dict, Iterable, List, Sequence

ATTENDANCE_STATUSES = ('scheduled', 'present', 'absent', 'late', 'not_needed')
ATTENDED_STATUSES = ('present', 'late')


def is_attendance_valid(status: str) -> bool:
    return status in ATTENDED_STATUSES


def _attended(event: Dict, participant_id: int) -> bool:
    return any(
        a['enrollee_id'] == participant_id and is_attendance_valid(a['attendance_status'])
        for a in event.get('attendees', [])
    )


def calculate_course_completion(events: Sequence[Dict], participant_ids: Sequence[int]) -> Dict:
    """A participant completes a course by attending every one of its events."""
    total = len(participant_ids)
    completed = 0
    if events and total:
        completed = sum(1 for pid in participant_ids if all(_attended(e, pid) for e in events))
    return {
        'is_completed': bool(events) and total > 0 and completed == total,
        'completed_participants': completed,
        'total_participants': total,
        'completion_percentage': round(completed / total * 100) if total else 0,
    }


def filter_group_events(events: Iterable[Dict], participant_ids: Sequence[int], group_id: int = None) -> List[Dict]:
    """Events assigned to the group directly or attended by any of its members."""
    ids = set(participant_ids)
    out = []
    for e in events:
        direct = group_id is not None and group_id in e.get('group_ids', ())
        if direct or any(a['enrollee_id'] in ids for a in e.get('attendees', [])):
            out.append(e)
    return out


def attendance_metrics(sessions: int, active_participant_ids: Iterable[int], attendees: Iterable[Dict]) -> Dict:
    """Attendance rate over `sessions x active participants` slots.

    Only attendees whose enrollment is still active are counted.
    """
    active = set(active_participant_ids)
    possible = sessions * len(active)
    actual = sum(
        1 for a in attendees
        if a['enrollee_id'] in active and is_attendance_valid(a['attendance_status'])
    )
    return {
        'total_sessions': sessions,
        'total_participants': len(active),
        'total_possible_attendees': possible,
        'actual_attendees': actual if possible else 0,
        'attendance_percentage': round(actual / possible * 100) if possible else 0,
    }
