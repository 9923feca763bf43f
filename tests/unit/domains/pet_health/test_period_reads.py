"""Tests for period reads over cache, remote aggregate and local data."""

from __future__ import annotations

import asyncio

import pytest
import requests

from conftest import REMOTE_URL, BlockingSession, FakeResponse
from pawlog.core.remote.gateway import GET_ALL_PERIOD_DATA, RemoteGateway
from pawlog.domains.pet_health.engine import ReconciliationEngine


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _settled(gateway, coro):
    async def wrapper():
        result = await coro
        await gateway.drain()
        return result

    return _run(wrapper())


REMOTE_PERIOD = [
    {"date": "2025-11-14", "daily": {"weight": 4.1}, "toiletCount": {"urine": 2, "feces": 1}},
    {"date": "2025-11-15", "daily": {"weight": 4.2}, "toiletCount": {"urine": 3, "feces": 0}},
]


class TestLocalReconstruction:
    def test_one_entry_per_day_when_remote_unreachable(self, engine, gateway, fake_session):
        fake_session.set_response(GET_ALL_PERIOD_DATA, requests.ConnectionError("offline"))
        _settled(gateway, engine.save_daily_record("lucky", "2025-11-16", {"weight": 4.3}))
        _settled(gateway, engine.add_toilet_record("lucky", "2025-11-16", {"time": "08:00", "type": "urine"}))

        period = _run(engine.get_period_data("lucky", "2025-11-14", "2025-11-20"))

        assert [e["date"] for e in period] == [
            "2025-11-14", "2025-11-15", "2025-11-16", "2025-11-17",
            "2025-11-18", "2025-11-19", "2025-11-20",
        ]
        day = period[2]
        assert day["daily"]["weight"] == 4.3
        assert day["toiletCount"] == {"urine": 1, "feces": 0}
        assert period[0]["daily"] is None
        assert period[0]["toiletCount"] == {"urine": 0, "feces": 0}

    def test_entry_shape(self, offline_engine):
        _run(offline_engine.save_medicine_record("mi", "2025-11-20", "morning", {"medicines": ["rapros"]}))
        _run(offline_engine.save_medicine_record("mi", "2025-11-20", "night", {"medicines": ["rapros", "uroact"]}))
        _run(offline_engine.save_labtest_record("mi", "2025-11-20", {"creatinine": "2.8"}))
        _run(offline_engine.save_hospital_record(
            "mi", "2025-11-20T10:00", {"treatments": ["drip"], "dripAmount": 100},
        ))
        _run(offline_engine.save_hospital_record(
            "mi", "2025-11-20T17:00", {"treatments": ["drip"], "dripAmount": 50},
        ))

        (entry,) = offline_engine.get_period_data_local("mi", "2025-11-20", "2025-11-20")
        assert entry["medicine"] == {"rapros": True, "uroact": True}
        assert entry["labtest"]["creatinine"] == 2.8
        assert entry["drip"] == 150.0

    def test_other_subject_not_mixed_in(self, offline_engine):
        _run(offline_engine.save_daily_record("lucky", "2025-11-20", {"weight": 4.2}))
        (entry,) = offline_engine.get_period_data_local("mi", "2025-11-20", "2025-11-20")
        assert entry["daily"] is None

    def test_reversed_range_is_empty(self, offline_engine):
        assert _run(offline_engine.get_period_data("lucky", "2025-11-20", "2025-11-14")) == []

    def test_bad_date_raises(self, offline_engine):
        with pytest.raises(ValueError):
            _run(offline_engine.get_period_data("lucky", "yesterday", "2025-11-14"))


class TestRemoteAggregate:
    def test_remote_result_returned_and_cached(self, engine, fake_session):
        fake_session.set_response(GET_ALL_PERIOD_DATA, REMOTE_PERIOD)

        first = _run(engine.get_period_data("lucky", "2025-11-14", "2025-11-15"))
        second = _run(engine.get_period_data("lucky", "2025-11-14", "2025-11-15"))

        assert first == REMOTE_PERIOD
        assert second == REMOTE_PERIOD
        assert len(fake_session.gets) == 1
        assert fake_session.gets[0] == {
            "action": "getAllData", "cat": "lucky",
            "startDate": "2025-11-14", "endDate": "2025-11-15",
        }

    def test_cache_expires_after_ttl(self, engine, fake_session, clock):
        fake_session.set_response(GET_ALL_PERIOD_DATA, REMOTE_PERIOD)
        _run(engine.get_period_data("lucky", "2025-11-14", "2025-11-15"))

        clock.advance(299)
        _run(engine.get_period_data("lucky", "2025-11-14", "2025-11-15"))
        assert len(fake_session.gets) == 1

        clock.advance(1)
        _run(engine.get_period_data("lucky", "2025-11-14", "2025-11-15"))
        assert len(fake_session.gets) == 2

    def test_write_clears_cache(self, engine, gateway, fake_session, period_cache):
        fake_session.set_response(GET_ALL_PERIOD_DATA, REMOTE_PERIOD)
        _run(engine.get_period_data("lucky", "2025-11-14", "2025-11-15"))
        assert len(period_cache) == 1

        _settled(gateway, engine.save_labtest_record("mi", "2025-11-15", {"bun": 30}))
        assert len(period_cache) == 0

        updated = [dict(REMOTE_PERIOD[0], daily={"weight": 4.0})]
        fake_session.set_response(GET_ALL_PERIOD_DATA, updated)
        assert _run(engine.get_period_data("lucky", "2025-11-14", "2025-11-15")) == updated

    @pytest.mark.parametrize("response", [
        FakeResponse(text="<!DOCTYPE html>"),
        {"error": "Exception: Range not found"},
        {"date": "2025-11-14"},
        [],
    ])
    def test_unusable_remote_falls_back_to_local(self, engine, gateway, fake_session, response):
        _settled(gateway, engine.save_daily_record("lucky", "2025-11-15", {"weight": 4.4}))
        fake_session.set_response(GET_ALL_PERIOD_DATA, response)

        period = _run(engine.get_period_data("lucky", "2025-11-14", "2025-11-15"))
        assert len(period) == 2
        assert period[1]["daily"]["weight"] == 4.4

    def test_local_result_is_not_cached(self, offline_engine, period_cache):
        _run(offline_engine.get_period_data("lucky", "2025-11-14", "2025-11-15"))
        assert len(period_cache) == 0


class TestWriteDuringRemoteFetch:
    def test_result_fetched_before_a_write_is_not_cached(self, memory_store, period_cache):
        session = BlockingSession(GET_ALL_PERIOD_DATA, {GET_ALL_PERIOD_DATA: REMOTE_PERIOD})
        gateway = RemoteGateway(REMOTE_URL, session=session)
        engine = ReconciliationEngine(memory_store, gateway, period_cache)

        async def scenario():
            read = asyncio.ensure_future(engine.get_period_data("lucky", "2025-11-14", "2025-11-15"))
            await session.wait_until_held()
            await engine.save_daily_record("lucky", "2025-11-15", {"weight": 4.6})
            session.release()
            result = await read
            await gateway.drain()
            return result

        assert _run(scenario()) == REMOTE_PERIOD
        assert len(period_cache) == 0

        session.release()
        _run(engine.get_period_data("lucky", "2025-11-14", "2025-11-15"))
        assert len(session.gets) == 2
        assert len(period_cache) == 1
