"""Assessment score resolution.

Pure helpers that decide which of a participant's attempts counts as the
"current" score, derive attempt statistics and retake allowances, and
validate manual pass/fail overrides. Nothing here touches the database:
callers pass model instances (or any object exposing the same attribute
names) and persist whatever the helpers decide.

Attempt objects need `attempt_number`, `score_percentage` and `passed`;
`is_overridden` is read when present. Rule objects need `passing_score`,
`score_strategy`, `allow_retakes` and `max_attempts`.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Sequence

from .errors import ValidationError

STRATEGIES = ('latest', 'highest', 'average', 'first')


class ScoreStrategy(str, Enum):
    LATEST = 'latest'
    HIGHEST = 'highest'
    AVERAGE = 'average'
    FIRST = 'first'

    @classmethod
    def parse(cls, value: Optional[str]) -> 'ScoreStrategy':
        """Return the matching strategy, falling back to `latest`."""
        try:
            return cls((value or '').strip().lower())
        except ValueError:
            return cls.LATEST


@dataclass
class AttemptStatistics:
    total_attempts: int = 0
    best_score: float = 0.0
    worst_score: float = 0.0
    average_score: float = 0.0
    improvement: float = 0.0
    latest_attempt: Any = None

    def to_dict(self) -> dict:
        return {
            'total_attempts': self.total_attempts,
            'best_score': self.best_score,
            'worst_score': self.worst_score,
            'average_score': self.average_score,
            'improvement': self.improvement,
            'latest_attempt': self.latest_attempt,
        }


@dataclass
class ScoreResolution:
    """Outcome of resolving a participant's attempts for one assessment."""
    strategy: ScoreStrategy
    current: Any = None
    effective_percentage: Optional[float] = None
    effective_passed: Optional[bool] = None
    statistics: AttemptStatistics = field(default_factory=AttemptStatistics)
    remaining_attempts: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            'strategy': self.strategy.value,
            'current_score': self.current,
            'effective_percentage': self.effective_percentage,
            'effective_passed': self.effective_passed,
            'statistics': self.statistics.to_dict(),
            'remaining_attempts': self.remaining_attempts,
        }


def calculate_percentage(score_earned: float, score_maximum: float) -> float:
    """Return `earned / maximum` as a percentage rounded to two decimals."""
    if score_earned is None or score_maximum is None:
        raise ValidationError('Score earned and score maximum are required')
    earned = float(score_earned)
    maximum = float(score_maximum)
    if earned < 0 or maximum <= 0:
        raise ValidationError('Invalid score values')
    if earned > maximum:
        raise ValidationError('Score earned cannot exceed score maximum')
    return round(earned / maximum * 100, 2)


def auto_passed(score_percentage: float, passing_score: float) -> bool:
    """The pass/fail value the system would assign without an override."""
    return float(score_percentage) >= float(passing_score)


def _by_attempt(attempts: Sequence[Any]) -> List[Any]:
    return sorted(attempts, key=lambda a: a.attempt_number)


def select_current_attempt(attempts: Sequence[Any], strategy: Optional[str]) -> Any:
    """Return the single attempt that counts as current, or None if empty.

    `highest` keeps the earliest attempt among equal percentages; `average`
    designates the latest attempt while the mean is reported separately.
    """
    ordered = _by_attempt(attempts)
    if not ordered:
        return None
    chosen = ScoreStrategy.parse(strategy)
    if chosen is ScoreStrategy.FIRST:
        return ordered[0]
    if chosen is ScoreStrategy.HIGHEST:
        best = ordered[0]
        for attempt in ordered[1:]:
            if attempt.score_percentage > best.score_percentage:
                best = attempt
        return best
    return ordered[-1]


def mark_current(attempts: Sequence[Any], strategy: Optional[str]) -> Any:
    """Set `is_current` on exactly one attempt and clear it on the rest."""
    current = select_current_attempt(attempts, strategy)
    for attempt in attempts:
        attempt.is_current = attempt is current
    return current


def attempt_statistics(attempts: Sequence[Any]) -> AttemptStatistics:
    ordered = _by_attempt(attempts)
    if not ordered:
        return AttemptStatistics()
    percentages = [float(a.score_percentage) for a in ordered]
    improvement = 0.0
    if len(ordered) > 1:
        improvement = round(percentages[-1] - percentages[0], 2)
    return AttemptStatistics(
        total_attempts=len(ordered),
        best_score=max(percentages),
        worst_score=min(percentages),
        average_score=round(sum(percentages) / len(percentages), 2),
        improvement=improvement,
        latest_attempt=ordered[-1],
    )


def remaining_attempts(attempt_count: int, rules: Any) -> Optional[int]:
    """Attempts still available, or None when retakes are unlimited."""
    if not rules.allow_retakes:
        return max(0, 1 - attempt_count)
    if rules.max_attempts:
        return max(0, rules.max_attempts - attempt_count)
    return None


def next_attempt_number(attempts: Sequence[Any], rules: Any) -> int:
    """Return the number for a new attempt or raise if no retake is allowed."""
    if not attempts:
        return 1
    number = max(a.attempt_number for a in attempts) + 1
    if not rules.allow_retakes:
        raise ValidationError('Retakes are not allowed for this assessment')
    if rules.max_attempts and number > rules.max_attempts:
        raise ValidationError(
            f'Maximum attempts ({rules.max_attempts}) exceeded',
            details={'current_attempts': len(attempts)},
        )
    return number


def resolve_scores(attempts: Sequence[Any], rules: Any) -> ScoreResolution:
    """Resolve current attempt, effective result and statistics.

    Under `average` the effective percentage is the mean of all attempts
    and pass/fail follows that mean unless the current attempt was
    manually overridden.
    """
    strategy = ScoreStrategy.parse(rules.score_strategy)
    stats = attempt_statistics(attempts)
    resolution = ScoreResolution(
        strategy=strategy,
        statistics=stats,
        remaining_attempts=remaining_attempts(len(attempts), rules),
    )
    current = select_current_attempt(attempts, strategy.value)
    if current is None:
        return resolution
    resolution.current = current
    if strategy is ScoreStrategy.AVERAGE:
        resolution.effective_percentage = stats.average_score
        if getattr(current, 'is_overridden', False):
            resolution.effective_passed = bool(current.passed)
        else:
            resolution.effective_passed = auto_passed(stats.average_score, rules.passing_score)
    else:
        resolution.effective_percentage = float(current.score_percentage)
        resolution.effective_passed = bool(current.passed)
    return resolution


def calculated_passed(score: Any, attempts: Sequence[Any], rules: Any) -> bool:
    """Auto pass/fail an override on `score` is measured against.

    Under `average` the current attempt carries the result of the mean.
    """
    strategy = ScoreStrategy.parse(rules.score_strategy)
    if strategy is ScoreStrategy.AVERAGE and getattr(score, 'is_current', False) and attempts:
        return auto_passed(attempt_statistics(attempts).average_score, rules.passing_score)
    return auto_passed(score.score_percentage, rules.passing_score)


def validate_override(score: Any, passing_score: float, passed: Optional[bool], reason: Optional[str],
                      calculated: Optional[bool] = None) -> None:
    """Reject overrides that are missing a reason or change nothing.

    `calculated` is the auto result to compare against; it defaults to
    the score's own pass/fail (see `calculated_passed`).
    """
    if passed is None:
        raise ValidationError('Override pass/fail status is required')
    if not reason or not str(reason).strip():
        raise ValidationError('An override reason is required')
    if calculated is None:
        calculated = auto_passed(score.score_percentage, passing_score)
    if bool(passed) == calculated:
        raise ValidationError(
            'Override status matches the calculated result; nothing to override',
            details={'calculated_passed': bool(passed)},
        )


def apply_override(score: Any, passing_score: float, passed: Optional[bool], reason: Optional[str],
                   overridden_by: Optional[str], when: Any, calculated: Optional[bool] = None) -> Any:
    validate_override(score, passing_score, passed, reason, calculated)
    score.passed = bool(passed)
    score.is_overridden = True
    score.override_reason = str(reason).strip()
    score.overridden_by = overridden_by
    score.overridden_at = when
    return score


def clear_override(score: Any, passing_score: float) -> Any:
    """Restore the auto-calculated result on an overridden score."""
    if not score.is_overridden:
        raise ValidationError('Score is not overridden')
    score.passed = auto_passed(score.score_percentage, passing_score)
    score.is_overridden = False
    score.override_reason = None
    score.overridden_by = None
    score.overridden_at = None
    return score


def resolve_visibility(assessment_is_active: bool, project_override: Optional[bool] = None,
                       curriculum_override: Optional[bool] = None):
    """Return `(is_active, source)` for an assessment inside a project.

    A project-level override wins; a curriculum-level override applies only
    when no project override exists; otherwise the assessment's own flag.
    """
    if project_override is not None:
        return bool(project_override), 'project'
    if curriculum_override is not None:
        return bool(curriculum_override), 'curriculum'
    return bool(assessment_is_active), 'assessment'


def classify_assessment(title: str) -> str:
    lowered = (title or '').lower()
    if 'quiz' in lowered:
        return 'Quiz'
    if 'exam' in lowered:
        return 'Exam'
    if 'practical' in lowered:
        return 'Practical'
    return 'Assessment'
