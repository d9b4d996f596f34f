from datetime import date, datetime, timezone

from edwind.utils import completion, dates, groups, surveys
from edwind.utils.participants_csv import parse_roster


def test_next_group_name_uses_highest_number():
    assert groups.next_group_name([]) == 'Group 1'
    assert groups.next_group_name(['Group 1', 'Group 3', 'Morning cohort']) == 'Group 4'
    assert groups.chip_color_for(len(groups.CHIP_COLORS)) == groups.CHIP_COLORS[0]


def _event(*attendees, group_ids=()):
    return {
        'attendees': [{'enrollee_id': pid, 'attendance_status': status} for pid, status in attendees],
        'group_ids': list(group_ids),
    }


def test_course_completion_requires_every_event():
    events = [_event((1, 'present'), (2, 'late')), _event((1, 'late'), (2, 'absent'))]
    result = completion.calculate_course_completion(events, [1, 2])
    assert result == {
        'is_completed': False,
        'completed_participants': 1,
        'total_participants': 2,
        'completion_percentage': 50,
    }
    assert completion.calculate_course_completion([], [1])['is_completed'] is False


def test_filter_group_events():
    direct = _event(group_ids=[7])
    via_member = _event((3, 'scheduled'))
    other = _event((9, 'present'))
    assert completion.filter_group_events([direct, via_member, other], [3], group_id=7) == [direct, via_member]


def test_attendance_metrics_ignore_inactive_enrollments():
    attendees = [
        {'enrollee_id': 1, 'attendance_status': 'present'},
        {'enrollee_id': 2, 'attendance_status': 'late'},
        {'enrollee_id': 2, 'attendance_status': 'absent'},
        {'enrollee_id': 5, 'attendance_status': 'present'},
    ]
    metrics = completion.attendance_metrics(2, [1, 2], attendees)
    assert metrics['total_possible_attendees'] == 4
    assert metrics['actual_attendees'] == 2
    assert metrics['attendance_percentage'] == 50
    assert completion.attendance_metrics(0, [1], attendees)['attendance_percentage'] == 0


def test_survey_config_validation():
    ok = surveys.validate_provider_config('google_forms', {'form_url': 'https://docs.google.com/forms/d/abc'})
    assert ok == {}
    assert 'form_url' in surveys.validate_provider_config('google_forms', {})
    wrong_host = surveys.validate_provider_config('typeform', {'form_url': 'https://example.com/x'})
    assert wrong_host['form_url'] == 'URL does not look like a Typeform link'
    assert surveys.validate_provider_config('other', {'form_url': 'notaurl'})['form_url'] == 'Please enter a valid URL'
    assert 'provider' in surveys.validate_provider_config('nope', {})
    bad_key = surveys.validate_provider_config('other', {'form_url': 'https://x.io', 'answer_key': [1]})
    assert 'answer_key' in bad_key


def test_parse_roster_normalizes_headers_and_reports_rows():
    csv_bytes = (
        b'\xef\xbb\xbfFirst Name,Last Name,Email Address,Title\n'
        b'Ada,Lovelace, ADA@Example.com ,Engineer\n'
        b',,,\n'
        b'Grace,,grace@example.com,\n'
        b'Alan,Turing,not-an-email,\n'
    )
    rows, errors = parse_roster(csv_bytes)
    assert rows == [{
        'first_name': 'Ada',
        'last_name': 'Lovelace',
        'email': 'ada@example.com',
        'job_title': 'Engineer',
        'participant_status': 'active',
    }]
    assert [(e['row'], e['error']) for e in errors] == [
        (3, 'first_name and last_name are required'),
        (4, 'invalid email'),
    ]


def test_timezone_conversion_round_trip():
    assert dates.is_valid_timezone('Australia/Sydney')
    assert not dates.is_valid_timezone('Mars/Olympus')
    utc = dates.local_to_utc(datetime(2025, 1, 15, 9, 0), 'America/New_York')
    assert utc == datetime(2025, 1, 15, 14, 0, tzinfo=timezone.utc)
    assert dates.format_in_timezone('2025-01-15T14:00:00Z', 'America/New_York') == '2025-01-15 09:00'


def test_format_date_range():
    assert dates.format_date_range(date(2025, 3, 3), date(2025, 3, 7)) == 'Mar 3 - Mar 7, 2025'
    assert dates.format_date_range(date(2024, 12, 29), date(2025, 1, 2)) == 'Dec 29, 2024 - Jan 2, 2025'
    assert dates.format_date_range(date(2025, 3, 3), None) == 'Mar 3, 2025'
    assert dates.format_date_range(None, None) == ''


def test_as_utc_normalizes_naive_and_offset_values():
    expected = datetime(2025, 1, 15, 14, 0, tzinfo=timezone.utc)
    assert dates.as_utc(datetime(2025, 1, 15, 14, 0)) == expected
    assert dates.as_utc('2025-01-15T09:00:00-05:00') == expected
    assert dates.as_utc('2025-01-15T14:00:00Z').tzinfo == timezone.utc
    assert dates.as_utc(None) is None
