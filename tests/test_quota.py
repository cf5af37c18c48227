"""
Quota Ledger Tests
==================

Reservation rules, period resets and persistence.
"""

import json
from datetime import datetime, timezone

import pytest

from frame_studio.errors import QuotaExceeded
from frame_studio.quota import (
    JsonFileQuotaStore,
    MemoryQuotaStore,
    MeteredAction,
    QuotaLedger,
    QuotaScope,
    SessionPeriod,
    build_ledger,
    daily_period_key,
)


class FakeClock:
    def __init__(self, key):
        self.key = key

    def __call__(self):
        return self.key


class TestReserve:
    def test_consumed_is_sum_of_successful_reservations(self, ledger):
        total = 0
        for amount in (3, 4, 5, 2, 1):
            try:
                ledger.reserve(amount)
                total += amount
            except QuotaExceeded:
                pass
            assert ledger.peek() == total
            assert ledger.peek() <= ledger.limit
        assert total == 10

    def test_rejected_reservation_does_not_mutate(self, ledger):
        ledger.reserve(8)
        with pytest.raises(QuotaExceeded) as excinfo:
            ledger.reserve(3)
        assert ledger.peek() == 8
        assert excinfo.value.remaining == 2
        assert excinfo.value.requested == 3

    def test_exact_fit(self, ledger):
        assert ledger.reserve(10) == 10
        assert ledger.remaining() == 0

    def test_amount_must_be_positive(self, ledger):
        with pytest.raises(ValueError):
            ledger.reserve(0)


class TestPeriods:
    def test_new_period_resets_and_persists(self, quota_store):
        clock = FakeClock("2026-10-17")
        ledger = QuotaLedger(quota_store, name="regeneration", limit=10, period=clock)
        ledger.reserve(7)

        clock.key = "2026-10-18"
        assert ledger.peek() == 0
        assert quota_store.load("regeneration") == {"period_key": "2026-10-18", "consumed": 0}
        assert ledger.remaining() == 10

    def test_explicit_period_key(self, ledger):
        ledger.reserve(4, "2026-01-01")
        assert ledger.peek("2026-01-01") == 4
        assert ledger.peek("2026-01-02") == 0

    def test_daily_key_uses_utc_date(self):
        late = datetime(2026, 10, 18, 23, 30, tzinfo=timezone.utc)
        assert daily_period_key(late) == "2026-10-18"

    def test_session_period_is_stable(self):
        session = SessionPeriod("abc")
        assert session() == session() == "session:abc"
        assert SessionPeriod()() != SessionPeriod()()

    def test_build_ledger_scopes(self, quota_store):
        session = SessionPeriod("s1")
        describe = build_ledger(
            MeteredAction.DESCRIPTION, limit=5, scope=QuotaScope.SESSION, store=quota_store, session=session
        )
        regen = build_ledger(MeteredAction.REGENERATION, limit=10, scope=QuotaScope.DAILY, store=quota_store)
        assert describe.current_period() == "session:s1"
        assert regen.current_period() == daily_period_key()
        describe.reserve(1)
        assert regen.peek() == 0


class TestJsonStore:
    def test_survives_restart(self, tmp_path):
        path = tmp_path / "quota.json"
        first = QuotaLedger(JsonFileQuotaStore(path), name="regeneration", limit=10, period=lambda: "d1")
        first.reserve(6)

        second = QuotaLedger(JsonFileQuotaStore(path), name="regeneration", limit=10, period=lambda: "d1")
        assert second.peek() == 6

    def test_ledgers_share_a_file(self, tmp_path):
        store = JsonFileQuotaStore(tmp_path / "quota.json")
        QuotaLedger(store, name="regeneration", limit=10, period=lambda: "d1").reserve(2)
        QuotaLedger(store, name="description", limit=5, period=lambda: "s1").reserve(1)
        data = json.loads((tmp_path / "quota.json").read_text())
        assert data == {
            "regeneration": {"period_key": "d1", "consumed": 2},
            "description": {"period_key": "s1", "consumed": 1},
        }

    def test_corrupt_file_reads_as_zero(self, tmp_path):
        path = tmp_path / "quota.json"
        path.write_text("{not json")
        ledger = QuotaLedger(JsonFileQuotaStore(path), name="regeneration", limit=10, period=lambda: "d1")
        assert ledger.peek() == 0
        ledger.reserve(1)
        assert ledger.peek() == 1

    def test_malformed_entry_reads_as_zero(self):
        store = MemoryQuotaStore()
        store.save("regeneration", {"period_key": "d1", "consumed": "lots"})
        ledger = QuotaLedger(store, name="regeneration", limit=10, period=lambda: "d1")
        assert ledger.peek() == 0
