"""
DynamoDB lease backend. One item per resource path:

    {<hash_key>: path, lockId: str, acquiredAt: int, expiresAt: int, metadata: map}

Timestamps are unix seconds (acquiredAt floored, expiresAt rounded up) so conditions compare
them natively and expiresAt can double as the table's TTL attribute. Mutual exclusion comes
from conditional writes; only ConditionalCheckFailedException is read as contention.

Metadata is stored as a native map. Numbers in it come back as int when written without a
fractional part and as float otherwise. DynamoDB trims trailing zeros server side, so a
whole-valued float such as 1.0 reads back as 1 from a real table.
"""

import math
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from botocore.exceptions import ClientError
from pydantic import ValidationError

from leaselock.application.exceptions import LockStoreCorruptedError
from leaselock.application.lock_manager import BaseLockManager, Clock, Sleeper
from leaselock.domain.expiry import is_expired
from leaselock.domain.models.lock import LockDefaults, LockRecord, ResolvedLockOptions
from leaselock.domain.schemas.lock import StoreLockItem
from leaselock.infrastructure.dynamodb.client import DynamoDBClient, is_conditional_check_failed
from leaselock.observability import metrics as m
from leaselock.observability.metrics import MetricsCollector

DEFAULT_HASH_KEY = "path_key"


class DynamoDBLockManager(BaseLockManager):
    """Conditional-store LockManager. Safe across processes sharing one table."""

    backend_name = "dynamodb"

    def __init__(
        self,
        client: DynamoDBClient,
        hash_key: str = DEFAULT_HASH_KEY,
        defaults: Optional[LockDefaults] = None,
        metrics: Optional[MetricsCollector] = None,
        clock: Optional[Clock] = None,
        sleep: Optional[Sleeper] = None,
    ) -> None:
        super().__init__(defaults=defaults, metrics=metrics, clock=clock, sleep=sleep)
        self._client = client
        self._hash_key = hash_key

    @property
    def hash_key(self) -> str:
        return self._hash_key

    @property
    def table_name(self) -> str:
        return self._client.table_name

    def _key(self, path: str) -> Dict[str, Any]:
        return {self._hash_key: path}

    def _names(self, *aliases: str) -> Dict[str, str]:
        names = {"#pk": self._hash_key, "#lid": "lockId", "#exp": "expiresAt"}
        return {a: names[a] for a in aliases}

    def _now_seconds(self) -> int:
        return math.floor(self._now().timestamp())

    def _new_record(self, opts: ResolvedLockOptions) -> LockRecord:
        # Round to what the table stores so the returned expiry matches get_lock_info.
        return StoreLockItem.from_record(super()._new_record(opts)).to_record()

    def _parse(self, path: str, item: Dict[str, Any]) -> LockRecord:
        try:
            return StoreLockItem.model_validate(item).to_record()
        except ValidationError as e:
            raise LockStoreCorruptedError(
                f"Lock item for '{path}' in table {self.table_name} is malformed"
            ) from e

    async def _try_create(self, path: str, record: LockRecord) -> bool:
        item = {self._hash_key: path, **StoreLockItem.from_record(record).to_attributes()}
        try:
            await self._client.put_item(
                item,
                condition_expression="attribute_not_exists(#pk) OR #exp <= :now",
                names=self._names("#pk", "#exp"),
                values={":now": self._now_seconds()},
            )
        except ClientError as e:
            if is_conditional_check_failed(e):
                self._logger.debug("lock_create_conflict", extra={"path": path})
                return False
            raise
        return True

    async def release_lock(self, path: str, lock_id: Optional[str] = None) -> bool:
        if not lock_id:
            await self._client.delete_item(self._key(path))
            self._record_metric(m.LOCK_RELEASE)
            self._logger.info("lock_released", extra={"path": path})
            return True
        try:
            await self._client.delete_item(
                self._key(path),
                condition_expression="attribute_not_exists(#pk) OR #lid = :lid OR #exp <= :now",
                names=self._names("#pk", "#lid", "#exp"),
                values={":lid": lock_id, ":now": self._now_seconds()},
            )
        except ClientError as e:
            if is_conditional_check_failed(e):
                self._record_metric(m.LOCK_RELEASE_REJECTED)
                self._logger.warning(
                    "lock_release_rejected",
                    extra={"path": path, "lock_id": lock_id},
                )
                return False
            raise
        self._record_metric(m.LOCK_RELEASE)
        self._logger.info("lock_released", extra={"path": path, "lock_id": lock_id})
        return True

    async def force_release_lock(self, path: str) -> bool:
        await self._client.delete_item(self._key(path))
        self._record_metric(m.LOCK_FORCE_RELEASE)
        self._logger.warning("lock_force_released", extra={"path": path})
        return True

    async def _extend(self, path: str, lock_id: str, duration_ms: int) -> bool:
        current = await self.get_lock_info(path)
        if current is None or current.lock_id != lock_id:
            self._record_metric(m.LOCK_EXTEND_FAILURE)
            return False
        previous = StoreLockItem.from_record(current).expires_at
        extended = previous + math.ceil(duration_ms / 1000)
        try:
            await self._client.update_item(
                self._key(path),
                update_expression="SET #exp = :new",
                condition_expression="#lid = :lid AND #exp = :prev AND #exp > :now",
                names=self._names("#lid", "#exp"),
                values={
                    ":new": extended,
                    ":lid": lock_id,
                    ":prev": previous,
                    ":now": self._now_seconds(),
                },
            )
        except ClientError as e:
            if is_conditional_check_failed(e):
                self._record_metric(m.LOCK_EXTEND_FAILURE)
                self._logger.info("lock_extend_conflict", extra={"path": path, "lock_id": lock_id})
                return False
            raise
        self._record_metric(m.LOCK_EXTEND_SUCCESS)
        self._logger.info(
            "lock_extended",
            extra={
                "path": path,
                "lock_id": lock_id,
                "expires_at": datetime.fromtimestamp(extended, tz=timezone.utc).isoformat(),
            },
        )
        return True

    async def get_lock_info(self, path: str) -> Optional[LockRecord]:
        item = await self._client.get_item(self._key(path))
        if item is None:
            return None
        record = self._parse(path, item)
        if not is_expired(record, self._now()):
            return record
        await self._reclaim(path, record)
        return None

    async def _reclaim(self, path: str, expired: LockRecord) -> None:
        """
        Delete an expired lease, but only the one we observed: if a concurrent acquirer
        already replaced it, the condition fails and the new lease is left alone.
        """
        try:
            await self._client.delete_item(
                self._key(path),
                condition_expression="#lid = :lid",
                names=self._names("#lid"),
                values={":lid": expired.lock_id},
            )
        except ClientError as e:
            if is_conditional_check_failed(e):
                return
            raise
        self._record_metric(m.LOCK_EXPIRED_RECLAIMED)
        self._logger.info(
            "lock_expired_reclaimed",
            extra={"path": path, "lock_id": expired.lock_id},
        )
