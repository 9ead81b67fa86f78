"""
In-memory stand-ins for lease backends: a controllable clock, a boto3-shaped DynamoDB client
that evaluates the condition expressions the lock manager sends, and a Redis lease backend
mirroring the Lua scripts.
"""

import json
import re
import threading
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from boto3.dynamodb.types import TypeDeserializer, TypeSerializer
from botocore.exceptions import ClientError

START = datetime(2026, 3, 1, 12, 0, 0, 123000, tzinfo=timezone.utc)


class FrozenClock:
    """Manual clock. sleep() advances it instead of waiting."""

    def __init__(self, start: datetime = START) -> None:
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> datetime:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += timedelta(milliseconds=ms)

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += timedelta(seconds=seconds)


# ---------------------------------------------------------------------------
# DynamoDB
# ---------------------------------------------------------------------------

_NOT_EXISTS = re.compile(r"^attribute_not_exists\((#\w+)\)$")
_COMPARE = re.compile(r"^(#\w+)\s*(<=|>=|=|<|>)\s*(:\w+)$")
_SET = re.compile(r"^SET\s+(#\w+)\s*=\s*(:\w+)$")


def _term(term: str, item: Optional[Dict[str, Any]], names: Dict[str, str], values: Dict[str, Any]) -> bool:
    match = _NOT_EXISTS.match(term)
    if match:
        return item is None or names[match.group(1)] not in item
    match = _COMPARE.match(term)
    if not match:
        raise ValueError(f"unsupported condition term: {term}")
    attr, op, placeholder = match.groups()
    if item is None or names[attr] not in item:
        return False
    left, right = item[names[attr]], values[placeholder]
    return {
        "=": left == right,
        "<=": left <= right,
        ">=": left >= right,
        "<": left < right,
        ">": left > right,
    }[op]


def evaluate_condition(expression: str, item, names, values) -> bool:
    """AND binds tighter than OR; no parentheses, matching what the lock manager emits."""
    return any(
        all(_term(t.strip(), item, names, values) for t in clause.split(" AND "))
        for clause in expression.split(" OR ")
    )


def conditional_check_failed(operation: str) -> ClientError:
    return ClientError(
        {"Error": {"Code": "ConditionalCheckFailedException", "Message": "The conditional request failed"}},
        operation,
    )


class FakeDynamoDBClient:
    """Subset of the boto3 low-level client: put/get/delete/update with ConditionExpression."""

    def __init__(self, hash_key: str = "path_key") -> None:
        self.hash_key = hash_key
        self.items: Dict[str, Dict[str, Any]] = {}
        self.calls: List[str] = []
        self.fail_with: Optional[Exception] = None
        self._lock = threading.Lock()
        self._serializer = TypeSerializer()
        self._deserializer = TypeDeserializer()

    def _decode(self, attrs: Dict[str, Any]) -> Dict[str, Any]:
        return {k: self._deserializer.deserialize(v) for k, v in attrs.items()}

    def _key_of(self, params: Dict[str, Any]) -> Any:
        return self._decode(params["Key"])[self.hash_key]

    def _check(self, operation: str, params: Dict[str, Any], current: Optional[Dict[str, Any]]) -> None:
        self.calls.append(operation)
        if self.fail_with is not None:
            raise self.fail_with
        expression = params.get("ConditionExpression")
        if expression is None:
            return
        names = params.get("ExpressionAttributeNames", {})
        values = self._decode(params.get("ExpressionAttributeValues", {}))
        if not evaluate_condition(expression, current, names, values):
            raise conditional_check_failed(operation)

    def put_item(self, **params: Any) -> Dict[str, Any]:
        with self._lock:
            item = self._decode(params["Item"])
            key = item[self.hash_key]
            self._check("PutItem", params, self.items.get(key))
            self.items[key] = item
            return {}

    def get_item(self, **params: Any) -> Dict[str, Any]:
        with self._lock:
            self._check("GetItem", params, None)
            item = self.items.get(self._key_of(params))
            if item is None:
                return {}
            return {"Item": {k: self._serializer.serialize(v) for k, v in item.items()}}

    def delete_item(self, **params: Any) -> Dict[str, Any]:
        with self._lock:
            key = self._key_of(params)
            self._check("DeleteItem", params, self.items.get(key))
            self.items.pop(key, None)
            return {}

    def update_item(self, **params: Any) -> Dict[str, Any]:
        with self._lock:
            key = self._key_of(params)
            current = self.items.get(key)
            self._check("UpdateItem", params, current)
            match = _SET.match(params["UpdateExpression"])
            if not match:
                raise ValueError(f"unsupported update: {params['UpdateExpression']}")
            values = self._decode(params["ExpressionAttributeValues"])
            attr = params["ExpressionAttributeNames"][match.group(1)]
            updated = dict(current or {self.hash_key: key})
            updated[attr] = values[match.group(2)]
            self.items[key] = updated
            return {}

    def put_raw(self, path: str, **attributes: Any) -> None:
        """Seed an item directly, bypassing conditions (numbers as Decimal, like boto3)."""
        item = {self.hash_key: path}
        for name, value in attributes.items():
            item[name] = Decimal(value) if isinstance(value, int) else value
        self.items[path] = item


# ---------------------------------------------------------------------------
# Redis
# ---------------------------------------------------------------------------

class FakeRedisLeaseBackend:
    """In-memory RedisLeaseBackend. Key TTLs follow the shared clock."""

    def __init__(self, clock: Callable[[], datetime]) -> None:
        self._clock = clock
        self._store: Dict[str, tuple[str, int]] = {}

    def _now_ms(self) -> int:
        return round(self._clock().timestamp() * 1000)

    def _purge(self, key: str) -> None:
        entry = self._store.get(key)
        if entry is not None and entry[1] <= self._now_ms():
            del self._store[key]

    def put_raw(self, key: str, value: str, ttl_ms: int = 60_000) -> None:
        self._store[key] = (value, self._now_ms() + ttl_ms)

    async def set_nx_px(self, key: str, value: str, ttl_ms: int) -> bool:
        self._purge(key)
        if key in self._store:
            return False
        self._store[key] = (value, self._now_ms() + max(1, ttl_ms))
        return True

    async def get(self, key: str) -> str | None:
        self._purge(key)
        entry = self._store.get(key)
        return entry[0] if entry else None

    async def delete_key(self, key: str) -> None:
        self._store.pop(key, None)

    async def delete_if_lock_id(self, key: str, lock_id: str, now_ms: int | None = None) -> bool:
        self._purge(key)
        entry = self._store.get(key)
        if entry is None:
            return True
        lease = json.loads(entry[0])
        if lease["lockId"] == lock_id or (now_ms is not None and lease["expiresAt"] <= now_ms):
            del self._store[key]
            return True
        return False

    async def replace_if_unchanged(
        self,
        key: str,
        lock_id: str,
        expected_expires_at_ms: int,
        now_ms: int,
        value: str,
        ttl_ms: int,
    ) -> bool:
        self._purge(key)
        entry = self._store.get(key)
        if entry is None:
            return False
        lease = json.loads(entry[0])
        if lease["lockId"] != lock_id:
            return False
        if lease["expiresAt"] != expected_expires_at_ms or lease["expiresAt"] <= now_ms:
            return False
        self._store[key] = (value, self._now_ms() + max(1, ttl_ms))
        return True
