"""Reconciliation engine — keeps the local store and the remote sheet in step.

Writes are local-first: the record is merged over whatever is stored under
its key and written to the local store synchronously, then a fire-and-forget
mirror write is dispatched and the period cache is cleared. A write is
visible to the next local read before the mirror is even scheduled.

Reads prefer freshness where it matters and always degrade to local data:

* daily / single-date reads: local store, then the remote sheet (a remote
  hit is adopted into the local store);
* toilet lists: remote sheet first (entries come from several devices),
  local store when the remote yields nothing;
* period reads: period cache, then one remote aggregate fetch, then a
  local reconstruction day by day.

Every call takes the subject id explicitly. Nothing here raises for remote
failures; they are logged by the gateway and show up as absent data.
"""

from __future__ import annotations

import logging
from datetime import date as date_cls
from datetime import timedelta
from typing import Any, Mapping

from pawlog.core.cache.period_cache import PeriodCache
from pawlog.core.remote import RemoteStore
from pawlog.core.remote.gateway import (
    ADD_TOILET,
    GET_ALL_PERIOD_DATA,
    GET_DAILY,
    GET_TOILET_LIST,
    SAVE_DAILY,
    SAVE_HOSPITAL,
    SAVE_LABTEST,
    SAVE_MEDICINE,
)
from pawlog.core.storage.local_store import LocalStore
from pawlog.core.storage.models import (
    DAILY,
    HOSPITAL,
    LABTEST,
    MEDICINE,
    TOILET,
    DailyRecord,
    HospitalRecord,
    LabTestRecord,
    MedicineRecord,
    ToiletRecord,
    new_id,
    now_iso,
)
from pawlog.domains.pet_health.domain_logic.toilet_counts import (
    count_toilet_events,
    sort_by_time,
)

logger = logging.getLogger(__name__)


def daily_key(cat: str, day: str) -> str:
    return f"{cat}_{day}"


def medicine_key(cat: str, day: str, timing: str) -> str:
    return f"{daily_key(cat, day)}_{timing}"


def iter_dates(start: str, end: str) -> list[str]:
    """Every calendar date in [start, end] inclusive, as YYYY-MM-DD.

    Raises:
        ValueError: If either bound is not an ISO date.
    """
    first = date_cls.fromisoformat(start)
    last = date_cls.fromisoformat(end)
    days = (last - first).days
    return [(first + timedelta(days=i)).isoformat() for i in range(days + 1)]


class ReconciliationEngine:
    """Read-through / write-through protocols for every record collection.

    Usage::

        engine = ReconciliationEngine(store, gateway, PeriodCache())
        await engine.save_daily_record("lucky", "2025-11-20", {"weight": 4.2})
        record = await engine.get_daily_record("lucky", "2025-11-20")
        period = await engine.get_period_data("lucky", "2025-11-14", "2025-11-20")
    """

    def __init__(
        self,
        store: LocalStore,
        remote: RemoteStore,
        cache: PeriodCache,
    ) -> None:
        """Wire the engine.

        Args:
            store: Local store (authoritative for local reads).
            remote: Any :class:`~pawlog.core.remote.RemoteStore`; the
                HTTP gateway in production.
            cache: Period cache, cleared after every mutation.
        """
        self._store = store
        self._remote = remote
        self._cache = cache

    @property
    def store(self) -> LocalStore:
        return self._store

    def clear_cache(self) -> None:
        self._cache.clear()

    # ------------------------------------------------------------------
    # Daily records
    # ------------------------------------------------------------------

    async def save_daily_record(
        self, cat: str, day: str, fields: Mapping[str, Any]
    ) -> DailyRecord:
        """Merge ``fields`` into the day's record and mirror it.

        When the day has toilet entries, the urine/feces counts always come
        from them, whatever ``fields`` says.
        """
        key = daily_key(cat, day)
        record = self._load_daily(cat, day).merged(fields)
        record.cat, record.date = cat, day

        toilet_rows = self._store.get(TOILET, key) or []
        if toilet_rows:
            counts = count_toilet_events(toilet_rows)
            record.urine_count, record.feces_count = counts.urine, counts.feces

        record.updated_at = now_iso()
        self._put(DAILY, key, record.to_dict())
        logger.info("Saved daily record %s", key)

        self._remote.dispatch(SAVE_DAILY, record.to_dict())
        self._cache.clear()
        return record

    async def get_daily_record(self, cat: str, day: str) -> DailyRecord | None:
        """Local record if present, else the remote one (adopted locally)."""
        key = daily_key(cat, day)
        stored = self._store.get(DAILY, key)
        if stored is not None:
            return DailyRecord.from_dict(stored)

        data = await self._remote.fetch(GET_DAILY, {"cat": cat, "date": day})

        # A local save may have landed while the fetch was in flight.
        stored = self._store.get(DAILY, key)
        if stored is not None:
            logger.debug("Kept local daily record %s written during remote read", key)
            return DailyRecord.from_dict(stored)
        if not isinstance(data, dict):
            return None

        record = DailyRecord.from_dict({**data, "cat": cat, "date": day})
        self._put(DAILY, key, record.to_dict())
        logger.info("Adopted remote daily record %s", key)
        return record

    async def recompute_daily_counts(self, cat: str, day: str) -> DailyRecord:
        """Overwrite the day's urine/feces counts from its toilet entries.

        Idempotent. Creates the daily record if it does not exist yet. Runs
        after every toilet add and delete.
        """
        key = daily_key(cat, day)
        counts = count_toilet_events(self._store.get(TOILET, key) or [])

        record = self._load_daily(cat, day)
        record.urine_count = counts.urine
        record.feces_count = counts.feces
        record.updated_at = now_iso()
        self._put(DAILY, key, record.to_dict())
        logger.debug("Recomputed %s counts: urine=%d feces=%d", key, counts.urine, counts.feces)

        self._remote.dispatch(SAVE_DAILY, record.to_dict())
        self._cache.clear()
        return record

    # ------------------------------------------------------------------
    # Toilet records
    # ------------------------------------------------------------------

    async def add_toilet_record(
        self, cat: str, day: str, fields: Mapping[str, Any]
    ) -> ToiletRecord:
        """Append an entry, keep the day sorted by time, refresh the counts."""
        key = daily_key(cat, day)
        record = ToiletRecord.from_dict(fields)
        record.id = new_id()
        record.cat, record.date = cat, day
        record.amount = record.amount or "normal"
        record.created_at = now_iso()

        rows = self._store.get(TOILET, key) or []
        rows.append(record.to_dict())
        self._put(TOILET, key, sort_by_time(rows))
        logger.info("Added toilet record %s %s %s", key, record.time, record.type)

        await self.recompute_daily_counts(cat, day)
        self._remote.dispatch(ADD_TOILET, record.to_dict())
        self._cache.clear()
        return record

    async def delete_toilet_record(self, cat: str, day: str, record_id: str) -> bool:
        """Remove an entry by id. False if the day has no such entry."""
        key = daily_key(cat, day)
        rows = self._store.get(TOILET, key) or []
        remaining = [r for r in rows if r.get("id") != record_id]
        if len(remaining) == len(rows):
            logger.info("Toilet record %s not found under %s", record_id, key)
            return False

        self._put(TOILET, key, remaining)
        logger.info("Deleted toilet record %s from %s", record_id, key)
        await self.recompute_daily_counts(cat, day)
        self._cache.clear()
        return True

    async def get_toilet_records(self, cat: str, day: str) -> list[ToiletRecord]:
        """Remote list first; the local list when the remote yields nothing.

        Local adds and deletes that land while the fetch is in flight are
        kept: rows added meanwhile survive adoption, rows deleted meanwhile
        are not brought back. Adoption that changes the list re-derives the
        day's counts.
        """
        key = daily_key(cat, day)
        before = {r.get("id") for r in self._store.get(TOILET, key) or []}
        rows = await self._remote.fetch(
            GET_TOILET_LIST, {"cat": cat, "date": day}, expect_list=True
        )
        if rows:
            current = self._store.get(TOILET, key) or []
            current_ids = {r.get("id") for r in current}
            deleted = before - current_ids
            adopted = [
                self._adopt_toilet_row(cat, day, row)
                for row in rows
                if isinstance(row, dict) and not (row.get("id") and row.get("id") in deleted)
            ]
            if adopted:
                remote_ids = {r["id"] for r in adopted}
                added = [r for r in current if r.get("id") not in before and r.get("id") not in remote_ids]
                merged = sort_by_time(adopted + added)
                if merged != current:
                    self._put(TOILET, key, merged)
                    logger.debug("Adopted %d remote toilet records for %s", len(adopted), key)
                    await self.recompute_daily_counts(cat, day)

        return [ToiletRecord.from_dict(r) for r in sort_by_time(self._store.get(TOILET, key) or [])]

    def get_local_toilet_records(self, cat: str, day: str) -> list[ToiletRecord]:
        rows = self._store.get(TOILET, daily_key(cat, day)) or []
        return [ToiletRecord.from_dict(r) for r in rows]

    @staticmethod
    def _adopt_toilet_row(cat: str, day: str, row: Mapping[str, Any]) -> dict[str, Any]:
        record = ToiletRecord.from_dict(row)
        record.cat, record.date = cat, day
        record.id = record.id or new_id()
        record.amount = record.amount or "normal"
        return record.to_dict()

    # ------------------------------------------------------------------
    # Medicine records
    # ------------------------------------------------------------------

    async def save_medicine_record(
        self, cat: str, day: str, timing: str, fields: Mapping[str, Any]
    ) -> MedicineRecord:
        key = medicine_key(cat, day, timing)
        stored = self._store.get(MEDICINE, key)
        base = MedicineRecord.from_dict(stored) if stored else MedicineRecord()
        record = base.merged(fields)
        record.cat, record.date, record.timing = cat, day, timing
        record.updated_at = now_iso()
        self._put(MEDICINE, key, record.to_dict())
        logger.info("Saved medicine record %s (%d medicines)", key, len(record.medicines))

        self._remote.dispatch(SAVE_MEDICINE, record.to_dict())
        self._cache.clear()
        return record

    def get_medicine_records(self, cat: str, day: str) -> list[MedicineRecord]:
        """All dosing windows recorded for the day (local only)."""
        prefix = daily_key(cat, day) + "_"
        return [
            MedicineRecord.from_dict(value)
            for key, value in self._store.items(MEDICINE)
            if key.startswith(prefix)
        ]

    # ------------------------------------------------------------------
    # Hospital records
    # ------------------------------------------------------------------

    async def save_hospital_record(
        self,
        cat: str,
        visit_datetime: str,
        fields: Mapping[str, Any],
        *,
        record_id: str | None = None,
    ) -> HospitalRecord:
        """Store a clinic visit.

        A new id is generated unless ``record_id`` names an existing visit,
        in which case that visit is overwritten with the merged fields.
        """
        stored = self._store.get(HOSPITAL, record_id) if record_id else None
        if stored is not None:
            record = HospitalRecord.from_dict(stored).merged(fields)
        else:
            record = HospitalRecord.from_dict(fields)
            record.id = new_id()
            record.created_at = now_iso()
        record.cat, record.datetime = cat, visit_datetime

        self._put(HOSPITAL, record.id, record.to_dict())
        logger.info("Saved hospital record %s for %s at %s", record.id, cat, visit_datetime)

        self._remote.dispatch(SAVE_HOSPITAL, record.to_dict())
        self._cache.clear()
        return record

    def list_hospital_records(self, cat: str) -> list[HospitalRecord]:
        records = [
            HospitalRecord.from_dict(value)
            for value in self._store.values(HOSPITAL)
            if value.get("cat") == cat
        ]
        return sorted(records, key=lambda r: r.datetime)

    # ------------------------------------------------------------------
    # Lab tests
    # ------------------------------------------------------------------

    async def save_labtest_record(
        self, cat: str, day: str, fields: Mapping[str, Any]
    ) -> LabTestRecord:
        key = daily_key(cat, day)
        stored = self._store.get(LABTEST, key)
        base = LabTestRecord.from_dict(stored) if stored else LabTestRecord()
        record = base.merged(fields)
        record.cat, record.date = cat, day
        record.updated_at = now_iso()
        self._put(LABTEST, key, record.to_dict())
        logger.info("Saved lab test record %s", key)

        self._remote.dispatch(SAVE_LABTEST, record.to_dict())
        self._cache.clear()
        return record

    def get_labtest_record(self, cat: str, day: str) -> LabTestRecord | None:
        """Local lab results; legacy text in numeric fields loads as absent."""
        stored = self._store.get(LABTEST, daily_key(cat, day))
        return LabTestRecord.from_dict(stored) if stored is not None else None

    # ------------------------------------------------------------------
    # Period reads
    # ------------------------------------------------------------------

    async def get_period_data(self, cat: str, start: str, end: str) -> list[dict[str, Any]]:
        """Per-day data for charts: cache, then remote aggregate, then local."""
        cached = self._cache.get(cat, start, end)
        if cached is not None:
            return cached

        generation = self._cache.generation
        data = await self._remote.fetch(
            GET_ALL_PERIOD_DATA,
            {"cat": cat, "startDate": start, "endDate": end},
            expect_list=True,
        )
        if data is not None:
            if self._cache.put(cat, start, end, data, generation=generation):
                logger.debug("Cached remote period %s %s..%s (%d rows)", cat, start, end, len(data))
            return data

        logger.debug("Rebuilding period %s %s..%s from local data", cat, start, end)
        return self.get_period_data_local(cat, start, end)

    def get_period_data_local(self, cat: str, start: str, end: str) -> list[dict[str, Any]]:
        """One entry per calendar date in [start, end], built from local data.

        Raises:
            ValueError: If ``start`` or ``end`` is not an ISO date.
        """
        drip_by_date: dict[str, float] = {}
        for visit in self.list_hospital_records(cat):
            if visit.drip_amount:
                drip_by_date[visit.date] = drip_by_date.get(visit.date, 0.0) + visit.drip_amount

        result: list[dict[str, Any]] = []
        for day in iter_dates(start, end):
            key = daily_key(cat, day)
            daily = self._store.get(DAILY, key)
            labtest = self.get_labtest_record(cat, day)
            medicine: dict[str, bool] = {}
            for record in self.get_medicine_records(cat, day):
                for med in record.medicines:
                    medicine[med] = True

            result.append({
                "date": day,
                "daily": DailyRecord.from_dict(daily).to_dict() if daily is not None else None,
                "toiletCount": count_toilet_events(self._store.get(TOILET, key) or []).to_dict(),
                "medicine": medicine,
                "labtest": labtest.to_dict() if labtest is not None else None,
                "drip": drip_by_date.get(day),
            })
        return result

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _load_daily(self, cat: str, day: str) -> DailyRecord:
        stored = self._store.get(DAILY, daily_key(cat, day))
        if stored is None:
            return DailyRecord(cat=cat, date=day)
        return DailyRecord.from_dict(stored)

    def _put(self, collection: str, key: str, value: Any) -> None:
        if not self._store.put(collection, key, value):
            logger.warning(
                "Local persistence failed for %s/%s; keeping it in memory only",
                collection,
                key,
            )
