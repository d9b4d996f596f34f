"""CLI script to re-designate the current attempt for every scored pair.

Run after changing score strategies in bulk or repairing data by hand.
Usage: python scripts/recalculate_current_scores.py [--assessment ID ...]
"""
import sys
import argparse
import pathlib
from typing import List, Optional
# Ensure `backend/` is on sys.path so `edwind` imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session
from edwind.database import engine, create_db_and_tables
from edwind import services


def main(assessment_ids: Optional[List[int]] = None):
    """Recalculate `is_current` flags and print how many pairs were processed."""
    create_db_and_tables()
    with Session(engine) as session:
        processed = services.ScoreCardService(session).recalculate(assessment_ids=assessment_ids)
    scope = f'assessments {assessment_ids}' if assessment_ids else 'all assessments'
    print(f'Recalculated {processed} participant/assessment pairs for {scope}')
    return processed


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('--assessment', type=int, action='append', dest='assessments',
                        help='Restrict to this assessment id (repeatable)')
    args = parser.parse_args()
    main(assessment_ids=args.assessments)
