"""
Record sink: completed rounds, newest first, capped.

Stored as one JSON array of RecordEntry objects under a single key of the
key-value store. Storage problems never reach the caller:
- reads fall back to an empty list
- writes and clears are dropped (logged)
"""

import logging
import os
from typing import List, Optional

from pydantic import TypeAdapter
from sqlalchemy.exc import SQLAlchemyError

from .engine import format_elapsed
from .schemas import RecordEntry, RecordOut, RecordsSummaryOut

logger = logging.getLogger(__name__)

RECORDS_KEY = "digit_bingo_records_v1"
RECORDS_CAP = int(os.getenv("RECORDS_CAP", "100"))

STORAGE_ERRORS = (SQLAlchemyError, ValueError, OSError)

_records_adapter = TypeAdapter(List[RecordEntry])


class RecordBook:
    def __init__(self, kv, cap: int = RECORDS_CAP) -> None:
        self.kv = kv
        self.cap = cap

    def _load(self) -> List[RecordEntry]:
        raw = self.kv.get_item(RECORDS_KEY) or "[]"
        return _records_adapter.validate_json(raw)

    def add_record(self, entry: RecordEntry) -> None:
        try:
            records = self._load()
            records.insert(0, entry)
            trimmed = records[: self.cap]
            self.kv.set_item(
                RECORDS_KEY,
                _records_adapter.dump_json(trimmed, by_alias=True).decode("utf-8"),
            )
        except STORAGE_ERRORS:
            logger.warning("Could not save record %s", entry.id, exc_info=True)

    def get_records(self) -> List[RecordEntry]:
        try:
            return self._load()
        except STORAGE_ERRORS:
            logger.warning("Could not read records; showing none", exc_info=True)
            return []

    def clear_records(self) -> None:
        try:
            self.kv.remove_item(RECORDS_KEY)
        except STORAGE_ERRORS:
            logger.warning("Could not clear records", exc_info=True)


def to_record_out(entry: RecordEntry) -> RecordOut:
    return RecordOut(
        id=entry.id,
        mode=entry.mode,
        tries=entry.tries,
        time_sec=entry.time_sec,
        time=format_elapsed(entry.time_sec),
        created_at=entry.created_at,
    )


def summarize(records: List[RecordEntry]) -> RecordsSummaryOut:
    best_tries: Optional[int] = None
    fastest: Optional[int] = None
    solo = 0
    for entry in records:
        if entry.mode == "solo":
            solo += 1
        if best_tries is None or entry.tries < best_tries:
            best_tries = entry.tries
        if fastest is None or entry.time_sec < fastest:
            fastest = entry.time_sec
    return RecordsSummaryOut(
        total=len(records),
        solo=solo,
        duel=len(records) - solo,
        best_tries=best_tries,
        fastest_time_sec=fastest,
    )
