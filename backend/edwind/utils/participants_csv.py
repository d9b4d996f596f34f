"""Participant roster CSV parsing.

Rosters are CSV files with a header row. Recognised columns (case and
spacing insensitive): `first_name`/`firstname`, `last_name`/`lastname`,
`email`, optional `job_title`/`title` and `status`. Rows are returned as
normalized dictionaries; per-row problems are reported, not raised.
"""

import csv
import io
import re
from typing import Dict, List, Tuple

EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')

_ALIASES = {
    'firstname': 'first_name',
    'first': 'first_name',
    'lastname': 'last_name',
    'last': 'last_name',
    'surname': 'last_name',
    'emailaddress': 'email',
    'title': 'job_title',
    'jobtitle': 'job_title',
    'participantstatus': 'status',
}


def _normalize_header(name: str) -> str:
    key = re.sub(r'[\s_\-]+', '', (name or '').strip().lower())
    return _ALIASES.get(key, (name or '').strip().lower().replace(' ', '_'))


def normalize_email(value: str) -> str:
    return (value or '').strip().lower()


def parse_roster(b: bytes) -> Tuple[List[Dict], List[Dict]]:
    """Return `(rows, errors)` for roster bytes.

    Row numbers in errors are 1-based data rows (the header is row 0).
    """
    text = b.decode('utf-8-sig')
    reader = csv.DictReader(io.StringIO(text))
    if reader.fieldnames is None:
        return [], []
    reader.fieldnames = [_normalize_header(f) for f in reader.fieldnames]
    rows, errors = [], []
    for idx, raw in enumerate(reader, start=1):
        item = {
            'first_name': (raw.get('first_name') or '').strip(),
            'last_name': (raw.get('last_name') or '').strip(),
            'email': normalize_email(raw.get('email')),
            'job_title': (raw.get('job_title') or '').strip() or None,
            'participant_status': (raw.get('status') or '').strip().lower() or 'active',
        }
        if not any(item[k] for k in ('first_name', 'last_name', 'email')):
            continue
        if not item['first_name'] or not item['last_name']:
            errors.append({'row': idx, 'error': 'first_name and last_name are required', 'item': item})
            continue
        if not EMAIL_RE.match(item['email']):
            errors.append({'row': idx, 'error': 'invalid email', 'item': item})
            continue
        rows.append(item)
    return rows, errors
