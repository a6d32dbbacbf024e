"""
Weekly Aggregation

Buckets persisted posture scores into the trailing seven UTC calendar days.
The summary always has seven daily entries, oldest first; days without
scored samples have a `None` score.
"""

import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from numbers import Real
from typing import Any, Dict, Iterable, List, Optional

from ..utils.numeric import round_half_up

WINDOW_DAYS = 7


@dataclass(frozen=True)
class ScoreSample:
    """A persisted score as read back from storage. `score` may be missing."""
    uid: str
    score: Optional[Any]
    created_at: datetime


@dataclass(frozen=True)
class DailyScore:
    date: str
    score: Optional[int]
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {'date': self.date, 'score': self.score, 'count': self.count}


@dataclass(frozen=True)
class AnalyticsSummary:
    daily: List[DailyScore]
    week_average: Optional[int]
    total_samples: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'daily': [d.to_dict() for d in self.daily],
            'week_average': self.week_average,
            'total_samples': self.total_samples,
        }


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _is_score(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool) and math.isfinite(value)


def weekly_window_start(now: datetime) -> datetime:
    """Midnight UTC six days before `now`."""
    today = _as_utc(now).replace(hour=0, minute=0, second=0, microsecond=0)
    return today - timedelta(days=WINDOW_DAYS - 1)


def aggregate_weekly(samples: Iterable[ScoreSample], now: datetime) -> AnalyticsSummary:
    """Aggregate samples in [window start, now] into a seven-day summary."""
    now = _as_utc(now)
    start = weekly_window_start(now)

    sums: Dict[str, float] = defaultdict(float)
    counts: Dict[str, int] = defaultdict(int)
    total = 0
    for sample in samples:
        created_at = _as_utc(sample.created_at)
        if created_at < start or created_at > now:
            continue
        total += 1
        if not _is_score(sample.score):
            continue
        key = created_at.date().isoformat()
        sums[key] += float(sample.score)
        counts[key] += 1

    daily = []
    for offset in range(WINDOW_DAYS):
        key = (start + timedelta(days=offset)).date().isoformat()
        count = counts.get(key, 0)
        score = round_half_up(sums[key] / count) if count else None
        daily.append(DailyScore(date=key, score=score, count=count))

    scored = [d.score for d in daily if d.score is not None]
    week_average = round_half_up(sum(scored) / len(scored)) if scored else None

    return AnalyticsSummary(daily=daily, week_average=week_average, total_samples=total)
