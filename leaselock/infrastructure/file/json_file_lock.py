"""
JSON-file lease backend. Every lease of one namespace lives in one file:

    {"<path>": {"lockId": "...", "acquiredAt": "<ISO-8601>", "expiresAt": "<ISO-8601>", "metadata": {}}}

Each operation reloads the whole mapping inside a section guarded by this manager's
asyncio.Lock and rewrites the whole file only when it mutated.

Limitation: the file offers no compare-and-swap, so exclusion holds only between tasks that
share one JsonFileLockManager in one process. Separate processes (or separate managers)
pointed at the same file can race. Use it for single-process deployments and tests; use a
conditional-store backend for anything distributed.
"""

import asyncio
import contextlib
import json
import os
import tempfile
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any, AsyncIterator, Dict, Optional, Union

from pydantic import ValidationError

from leaselock.application.exceptions import LockStoreCorruptedError
from leaselock.application.lock_manager import BaseLockManager, Clock, Sleeper
from leaselock.domain.expiry import is_expired
from leaselock.domain.models.lock import LockDefaults, LockRecord
from leaselock.domain.schemas.lock import FileLockEntry
from leaselock.observability import metrics as m
from leaselock.observability.metrics import MetricsCollector


def _read_text(path: Path) -> Optional[str]:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None


def _write_text_atomic(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path: Optional[str] = None
    try:
        tmp_fd, tmp_path = tempfile.mkstemp(
            dir=str(path.parent),
            prefix=f".{path.name}.",
            suffix=".tmp",
        )
        with os.fdopen(tmp_fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        Path(tmp_path).replace(path)
    finally:
        if tmp_path is not None:
            with contextlib.suppress(OSError):
                Path(tmp_path).unlink(missing_ok=True)


@dataclass
class _LockTable:
    """Snapshot of the file for one operation. Mutations mark it dirty so it gets written back."""

    entries: Dict[str, LockRecord]
    dirty: bool = field(default=False)

    def get(self, path: str) -> Optional[LockRecord]:
        return self.entries.get(path)

    def put(self, path: str, record: LockRecord) -> None:
        self.entries[path] = record
        self.dirty = True

    def remove(self, path: str) -> bool:
        if path not in self.entries:
            return False
        del self.entries[path]
        self.dirty = True
        return True


class JsonFileLockManager(BaseLockManager):
    """File-backed LockManager. Single-process only; see module docstring."""

    backend_name = "file"

    def __init__(
        self,
        file_path: Union[str, Path],
        defaults: Optional[LockDefaults] = None,
        metrics: Optional[MetricsCollector] = None,
        clock: Optional[Clock] = None,
        sleep: Optional[Sleeper] = None,
    ) -> None:
        super().__init__(defaults=defaults, metrics=metrics, clock=clock, sleep=sleep)
        self._file_path = Path(file_path).resolve()
        self._guard = asyncio.Lock()

    @property
    def file_path(self) -> Path:
        return self._file_path

    async def initialize(self) -> None:
        """Read the lock file, creating an empty one (and its directories) if absent."""
        async with self._guard:
            await self._load()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def _load(self) -> Dict[str, LockRecord]:
        raw = await asyncio.to_thread(_read_text, self._file_path)
        if raw is None:
            await self._save({})
            return {}
        return self._parse(raw)

    def _parse(self, raw: str) -> Dict[str, LockRecord]:
        try:
            data: Any = json.loads(raw)
        except json.JSONDecodeError as e:
            raise LockStoreCorruptedError(
                f"Lock file {self._file_path} is not valid JSON: {e}"
            ) from e
        if not isinstance(data, dict):
            raise LockStoreCorruptedError(
                f"Lock file {self._file_path} must contain a JSON object"
            )
        entries: Dict[str, LockRecord] = {}
        for path, value in data.items():
            try:
                entries[path] = FileLockEntry.model_validate(value).to_record()
            except ValidationError as e:
                raise LockStoreCorruptedError(
                    f"Lock file {self._file_path} has a malformed entry for '{path}'"
                ) from e
        return entries

    async def _save(self, entries: Dict[str, LockRecord]) -> None:
        payload = {
            path: FileLockEntry.from_record(record).to_json_dict()
            for path, record in entries.items()
        }
        text = json.dumps(payload, indent=2, default=str)
        await asyncio.to_thread(_write_text_atomic, self._file_path, text)

    @asynccontextmanager
    async def _table(self) -> AsyncIterator[_LockTable]:
        """Hold the guard for one read-modify-write; write back only if mutated and no error escaped."""
        async with self._guard:
            table = _LockTable(entries=await self._load())
            yield table
            if table.dirty:
                await self._save(table.entries)

    def _live(self, table: _LockTable, path: str) -> Optional[LockRecord]:
        """Return the live lease at path, dropping an expired one from the table."""
        record = table.get(path)
        if record is None:
            return None
        if is_expired(record, self._now()):
            table.remove(path)
            self._record_metric(m.LOCK_EXPIRED_RECLAIMED)
            self._logger.info(
                "lock_expired_reclaimed",
                extra={"path": path, "lock_id": record.lock_id},
            )
            return None
        return record

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    async def _try_create(self, path: str, record: LockRecord) -> bool:
        async with self._table() as table:
            if self._live(table, path) is not None:
                return False
            table.put(path, record)
            return True

    async def release_lock(self, path: str, lock_id: Optional[str] = None) -> bool:
        async with self._table() as table:
            current = self._live(table, path)
            if current is None:
                return True
            if lock_id and current.lock_id != lock_id:
                self._record_metric(m.LOCK_RELEASE_REJECTED)
                self._logger.warning(
                    "lock_release_rejected",
                    extra={"path": path, "lock_id": lock_id},
                )
                return False
            table.remove(path)
        self._record_metric(m.LOCK_RELEASE)
        self._logger.info("lock_released", extra={"path": path, "lock_id": current.lock_id})
        return True

    async def force_release_lock(self, path: str) -> bool:
        async with self._table() as table:
            removed = table.remove(path)
        self._record_metric(m.LOCK_FORCE_RELEASE)
        self._logger.warning("lock_force_released", extra={"path": path, "removed": removed})
        return True

    async def _extend(self, path: str, lock_id: str, duration_ms: int) -> bool:
        async with self._table() as table:
            current = self._live(table, path)
            if current is None or current.lock_id != lock_id:
                self._record_metric(m.LOCK_EXTEND_FAILURE)
                return False
            extended = current.extended_by(timedelta(milliseconds=duration_ms))
            table.put(path, extended)
        self._record_metric(m.LOCK_EXTEND_SUCCESS)
        self._logger.info(
            "lock_extended",
            extra={"path": path, "lock_id": lock_id, "expires_at": extended.expires_at.isoformat()},
        )
        return True

    async def get_lock_info(self, path: str) -> Optional[LockRecord]:
        async with self._table() as table:
            return self._live(table, path)
