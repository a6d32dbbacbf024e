from datetime import datetime, timedelta, timezone

from Posture_Engine.core.weekly_aggregator import ScoreSample, aggregate_weekly, weekly_window_start

NOW = datetime(2026, 10, 18, 15, 30, tzinfo=timezone.utc)


def sample(score, day, hour=12, uid="u1"):
    return ScoreSample(uid=uid, score=score, created_at=datetime(2026, 10, day, hour, tzinfo=timezone.utc))


def test_window_starts_six_days_back_at_midnight():
    assert weekly_window_start(NOW) == datetime(2026, 10, 12, tzinfo=timezone.utc)


def test_empty_input():
    summary = aggregate_weekly([], NOW)
    assert len(summary.daily) == 7
    assert all(d.score is None and d.count == 0 for d in summary.daily)
    assert summary.week_average is None
    assert summary.total_samples == 0
    assert [d.date for d in summary.daily] == [f"2026-10-{day}" for day in range(12, 19)]


def test_partial_week():
    summary = aggregate_weekly([sample(80, 13), sample(91, 13), sample(60, 18)], NOW)
    by_date = {d.date: d for d in summary.daily}
    assert by_date["2026-10-13"].score == 86  # 85.5 rounds up
    assert by_date["2026-10-13"].count == 2
    assert by_date["2026-10-18"].score == 60
    assert by_date["2026-10-12"].score is None
    assert summary.week_average == 73
    assert summary.total_samples == 3


def test_samples_outside_window_ignored():
    samples = [
        ScoreSample("u1", 10, datetime(2026, 10, 11, 23, 59, tzinfo=timezone.utc)),
        ScoreSample("u1", 50, datetime(2026, 10, 12, 0, 0, tzinfo=timezone.utc)),
        ScoreSample("u1", 99, NOW + timedelta(minutes=1)),
    ]
    summary = aggregate_weekly(samples, NOW)
    assert summary.total_samples == 1
    assert summary.daily[0].score == 50


def test_more_than_seven_days_of_history_still_seven_entries():
    samples = [sample(70, day) for day in range(1, 19)]
    summary = aggregate_weekly(samples, NOW)
    assert len(summary.daily) == 7
    assert all(d.count == 1 for d in summary.daily)
    assert summary.total_samples == 7


def test_unscored_samples_count_toward_total_only():
    samples = [sample(None, 14), sample("n/a", 14), sample(True, 15), sample(90, 15)]
    summary = aggregate_weekly(samples, NOW)
    by_date = {d.date: d for d in summary.daily}
    assert summary.total_samples == 4
    assert by_date["2026-10-14"].score is None
    assert by_date["2026-10-14"].count == 0
    assert by_date["2026-10-15"].count == 1
    assert summary.week_average == 90


def test_naive_timestamps_treated_as_utc():
    naive = ScoreSample("u1", 40, datetime(2026, 10, 16, 8))
    summary = aggregate_weekly([naive], NOW.replace(tzinfo=None))
    assert summary.total_samples == 1
    assert summary.daily[4].score == 40


def test_to_dict_shape():
    data = aggregate_weekly([sample(75, 17)], NOW).to_dict()
    assert set(data) == {'daily', 'week_average', 'total_samples'}
    assert data['daily'][5] == {'date': '2026-10-17', 'score': 75, 'count': 1}
