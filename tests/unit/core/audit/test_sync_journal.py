"""Tests for SyncJournal."""

from __future__ import annotations

from pawlog.core.audit.journal import SyncEvent, SyncJournal


class TestSyncJournal:
    def test_record_returns_id(self, pawlog_db):
        journal = SyncJournal(pawlog_db)
        event_id = journal.record(SyncEvent(direction="push", action="saveDailyRecord", cat="lucky"))
        assert event_id

    def test_filters(self, pawlog_db):
        journal = SyncJournal(pawlog_db)
        journal.record(SyncEvent(direction="push", action="saveDailyRecord", status="success"))
        journal.record(SyncEvent(
            direction="push", action="addToiletRecord", status="failure", error_type="Timeout",
        ))
        journal.record(SyncEvent(direction="pull", action="getAllData", status="failure"))
        journal.record(SyncEvent(direction="pull", action="getDailyRecord", status="empty"))

        assert len(journal.get_events()) == 4
        assert len(journal.get_events(status="failure")) == 2
        assert journal.get_events(action="addToiletRecord")[0]["error_type"] == "Timeout"
        assert len(journal.get_events(limit=1)) == 1

    def test_count_failures_by_direction(self, pawlog_db):
        journal = SyncJournal(pawlog_db)
        journal.record(SyncEvent(direction="push", action="saveDailyRecord", status="failure"))
        journal.record(SyncEvent(direction="pull", action="getAllData", status="failure"))
        journal.record(SyncEvent(direction="pull", action="getAllData", status="failure"))

        assert journal.count_failures() == 3
        assert journal.count_failures(direction="push") == 1
        assert journal.count_failures(direction="pull") == 2

    def test_write_failure_returns_empty_id(self, pawlog_db):
        journal = SyncJournal(pawlog_db)
        pawlog_db.connection.execute("DROP TABLE sync_log")
        assert journal.record(SyncEvent(direction="push", action="saveDailyRecord")) == ""
