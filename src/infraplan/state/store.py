"""State Store: last-applied records by instance address."""

import json
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional
from pydantic import ValidationError
from ..utils.errors import StateCorruption
from ..utils.logging import get_logger
from .models import STATE_FORMAT_VERSION, StateRecord, StateSnapshot

logger = get_logger("state.store")


class StateStore(ABC):
    """
    Narrow get/put/delete contract used by the planner and the apply executor.

    Implementations must be safe to call from executor worker threads and
    must not return from put/delete before the write is durable.
    """

    @abstractmethod
    def get(self, address: str) -> Optional[StateRecord]:
        """Return the record for an address, or None."""
        pass

    @abstractmethod
    def put(self, record: StateRecord) -> None:
        """Insert or replace a record."""
        pass

    @abstractmethod
    def delete(self, address: str) -> None:
        """Remove a record. Deleting a missing address is a no-op."""
        pass

    @abstractmethod
    def snapshot(self) -> StateSnapshot:
        """Return a deep copy of the current state."""
        pass

    def list(self) -> List[StateRecord]:
        """All records in apply order."""
        return list(self.snapshot().records.values())


class InMemoryStateStore(StateStore):
    """Process-local store, used by tests and dry runs."""

    def __init__(self, records: Optional[List[StateRecord]] = None):
        self._lock = threading.RLock()
        self._snapshot = StateSnapshot()
        for record in records or []:
            self._snapshot.records[record.address] = record.model_copy(deep=True)

    def get(self, address: str) -> Optional[StateRecord]:
        with self._lock:
            record = self._snapshot.records.get(address)
            return record.model_copy(deep=True) if record else None

    def put(self, record: StateRecord) -> None:
        with self._lock:
            self._snapshot.records[record.address] = record.model_copy(deep=True)
            self._snapshot.serial += 1

    def delete(self, address: str) -> None:
        with self._lock:
            if self._snapshot.records.pop(address, None) is not None:
                self._snapshot.serial += 1

    def snapshot(self) -> StateSnapshot:
        with self._lock:
            return self._snapshot.model_copy(deep=True)


class FileStateStore(InMemoryStateStore):
    """
    JSON file store. Every write rewrites the file through a temp file,
    fsyncs it and renames it into place, so a crash leaves either the old or
    the new state on disk.
    """

    def __init__(self, path: str):
        super().__init__()
        self.path = Path(path)
        if self.path.exists():
            self._snapshot = self._load()
            logger.info(f"Loaded state from {self.path} ({len(self._snapshot)} records, serial {self._snapshot.serial})")
        else:
            logger.debug(f"No state file at {self.path}, starting empty")

    def _load(self) -> StateSnapshot:
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise StateCorruption(f"State file {self.path} is not valid JSON: {e}")
        except OSError as e:
            raise StateCorruption(f"Cannot read state file {self.path}: {e}")

        if not isinstance(data, dict):
            raise StateCorruption(f"State file {self.path} must contain a JSON object")

        version = data.get("version")
        if version != STATE_FORMAT_VERSION:
            raise StateCorruption(
                f"State file {self.path} has unsupported format version {version!r} "
                f"(expected {STATE_FORMAT_VERSION})"
            )

        try:
            snapshot = StateSnapshot(**data)
        except ValidationError as e:
            raise StateCorruption(f"State file {self.path} is malformed: {e}")

        for address, record in snapshot.records.items():
            if record.address != address:
                raise StateCorruption(
                    f"State file {self.path}: record keyed '{address}' claims address '{record.address}'"
                )
        return snapshot

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(self._snapshot.model_dump(), indent=2, default=str)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        logger.debug(f"Wrote state to {self.path} (serial {self._snapshot.serial})")

    def put(self, record: StateRecord) -> None:
        with self._lock:
            super().put(record)
            self._flush()

    def delete(self, address: str) -> None:
        with self._lock:
            if address in self._snapshot.records:
                super().delete(address)
                self._flush()
