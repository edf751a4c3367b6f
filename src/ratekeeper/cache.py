"""In-memory rate cache with freshness policy and a persisted mirror."""

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from decimal import Decimal

from pydantic import ValidationError

from .config import ConverterSettings
from .models import RateRecord
from .store import PersistentStore

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RateCache:
    """
    Owns the pair-key -> RateRecord mapping.

    The store copy is read once, at construction, and rewritten in full on
    every write. Store failures are logged and never reach callers: the
    cache keeps working in memory.
    """

    def __init__(
        self,
        settings: ConverterSettings,
        store: PersistentStore | None = None,
        clock: Clock | None = None,
    ):
        self.settings = settings
        self._store = store
        self._clock = clock or utc_now
        self._records: dict[str, RateRecord] = {}
        self._load()

    def _load(self) -> None:
        """Populate the cache from the store, skipping anything unusable."""
        if not self.settings.persistence_enabled or self._store is None:
            return

        name = self.settings.store_key_name
        try:
            data = self._store.load(name)
        except Exception as e:
            logger.warning("Could not read cached rates from %r: %s", name, e)
            return
        if not isinstance(data, dict):
            return

        for key, raw in data.items():
            try:
                self._records[key] = RateRecord.model_validate(raw)
            except ValidationError as e:
                logger.warning("Skipping corrupt cached rate %r: %s", key, e)

    def _save(self) -> None:
        if not self.settings.persistence_enabled or self._store is None:
            return

        name = self.settings.store_key_name
        mapping = {key: record.model_dump(mode="json") for key, record in self._records.items()}
        try:
            self._store.save(name, mapping)
        except Exception as e:
            logger.warning("Caching rates to %r failed: %s", name, e)

    def now(self) -> datetime:
        return self._clock()

    def read(self, key: str) -> RateRecord | None:
        """Get the record for a key, fresh or not."""
        return self._records.get(key)

    def is_present(self, key: str) -> bool:
        return key in self._records

    def is_fresh(self, key: str) -> bool:
        """True if a record exists and its age is within the validity period (inclusive)."""
        record = self._records.get(key)
        if record is None:
            return False
        return self.now() - record.timestamp <= self.settings.validity_period

    def write(self, key: str, value: Decimal) -> RateRecord:
        """Store a new record stamped with the current time and mirror the cache."""
        record = RateRecord(value=value, timestamp=self.now())
        self._records[key] = record
        self._save()
        return record

    def records(self) -> dict[str, RateRecord]:
        """Snapshot of all cached records."""
        return dict(self._records)

    def clear(self) -> None:
        """Drop every record."""
        self._records.clear()
        self._save()
