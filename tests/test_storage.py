import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from Posture_Engine.storage.analytics import AnalyticsClient, AnalyticsService
from Posture_Engine.storage.session_store import (
    InMemorySessionStore, JsonLinesSessionStore, SessionRecord,
)

NOW = datetime(2026, 10, 18, 15, 30, tzinfo=timezone.utc)


def record(uid="u1", score=80, days_ago=0, **kwargs):
    return SessionRecord(
        uid=uid,
        score=score,
        status=kwargs.pop('status', 'good'),
        metrics=kwargs.pop('metrics', {'spine_angle': 3.0}),
        created_at=NOW - timedelta(days=days_ago),
        **kwargs,
    )


@pytest.mark.parametrize("bad", [
    {'uid': ''},
    {'score': None},
    {'score': '80'},
    {'score': True},
    {'status': ''},
    {'metrics': {}},
])
def test_invalid_records_rejected(bad):
    store = InMemorySessionStore()
    with pytest.raises(ValueError):
        asyncio.run(store.write(record(**bad)))
    assert store.records == []


def test_jsonl_store_round_trip(tmp_path):
    store = JsonLinesSessionStore(tmp_path / "sessions.jsonl")

    async def scenario():
        await store.write(record(score=70, days_ago=1, session_id="s1", client_timestamp=123.0))
        await store.write(record(score=90, days_ago=0))
        await store.write(record(uid="other", score=10))
        return await store.samples("u1", NOW - timedelta(days=3))

    samples = asyncio.run(scenario())
    assert [s.score for s in samples] == [70, 90]
    assert samples[0].created_at == NOW - timedelta(days=1)


def test_jsonl_store_skips_corrupt_lines(tmp_path):
    path = tmp_path / "sessions.jsonl"
    store = JsonLinesSessionStore(path)
    asyncio.run(store.write(record(score=55)))
    with open(path, 'a') as f:
        f.write("{broken\n")
    samples = asyncio.run(store.samples("u1", NOW - timedelta(days=1)))
    assert [s.score for s in samples] == [55]


def test_missing_file_has_no_samples(tmp_path):
    store = JsonLinesSessionStore(tmp_path / "none.jsonl")
    assert asyncio.run(store.samples("u1", NOW)) == []


def test_analytics_service_summarises_window():
    store = InMemorySessionStore()
    store.records.extend([record(score=60, days_ago=0), record(score=80, days_ago=2),
                          record(score=10, days_ago=9)])
    service = AnalyticsService(store, now=lambda: NOW)
    summary = asyncio.run(service.weekly_summary("u1"))
    assert len(summary.daily) == 7
    assert summary.total_samples == 2
    assert summary.week_average == 70


def test_analytics_service_requires_uid():
    service = AnalyticsService(InMemorySessionStore(), now=lambda: NOW)
    with pytest.raises(ValueError):
        asyncio.run(service.weekly_summary(""))


class SlowService:
    async def weekly_summary(self, uid):
        await asyncio.sleep(1.0)


class BrokenService:
    async def weekly_summary(self, uid):
        raise ConnectionError("query failed")


def test_client_keeps_cached_summary_on_failure():
    store = InMemorySessionStore()
    store.records.append(record(score=75))
    client = AnalyticsClient(AnalyticsService(store, now=lambda: NOW), "u1")
    good = asyncio.run(client.refresh())
    assert good.week_average == 75

    client.service = BrokenService()
    assert asyncio.run(client.refresh()) is good
    assert client.last_error == "query failed"

    client.service = SlowService()
    client.timeout_s = 0.01
    assert asyncio.run(client.refresh()) is good
    assert client.last_error == "timeout"
    assert client.loading is False


def test_client_starts_with_seven_empty_days():
    client = AnalyticsClient(BrokenService(), "u1", now=lambda: NOW)
    assert [d.date for d in client.summary.daily] == [
        "2026-10-12", "2026-10-13", "2026-10-14", "2026-10-15",
        "2026-10-16", "2026-10-17", "2026-10-18",
    ]
    assert all(d.score is None and d.count == 0 for d in client.summary.daily)
    assert client.summary.week_average is None
    assert client.summary.total_samples == 0

    asyncio.run(client.refresh())
    assert len(client.summary.daily) == 7
