# leaselock/infrastructure/cache/redis_client.py

from typing import Optional

import redis.asyncio as redis

from leaselock.config.settings import settings

# Lease values are JSON: {"lockId": ..., "acquiredAt": ms, "expiresAt": ms, "metadata": {...}}.

# KEYS[1]=key ARGV[1]=lockId ARGV[2]=now_ms or "" (empty: do not treat expired leases as releasable)
_DELETE_IF_LOCK_ID = """
local raw = redis.call('get', KEYS[1])
if not raw then return 1 end
local lease = cjson.decode(raw)
if lease['lockId'] == ARGV[1] then
  redis.call('del', KEYS[1])
  return 1
end
if ARGV[2] ~= '' and tonumber(lease['expiresAt']) <= tonumber(ARGV[2]) then
  redis.call('del', KEYS[1])
  return 1
end
return 0
"""

# KEYS[1]=key ARGV[1]=lockId ARGV[2]=expected expiresAt ms ARGV[3]=now_ms ARGV[4]=new value ARGV[5]=ttl ms
_REPLACE_IF_UNCHANGED = """
local raw = redis.call('get', KEYS[1])
if not raw then return 0 end
local lease = cjson.decode(raw)
if lease['lockId'] ~= ARGV[1] then return 0 end
local expires_at = tonumber(lease['expiresAt'])
if expires_at ~= tonumber(ARGV[2]) or expires_at <= tonumber(ARGV[3]) then return 0 end
redis.call('set', KEYS[1], ARGV[4], 'PX', ARGV[5])
return 1
"""


class RedisClient:
    def __init__(self, url: Optional[str] = None, client: Optional[redis.Redis] = None):
        self.client = client or redis.from_url(
            url or settings.redis_url,
            decode_responses=True,
        )

    async def set_nx_px(self, key: str, value: str, ttl_ms: int) -> bool:
        """Set key to value only if not exists, with TTL in milliseconds. Returns True if key was set."""
        return bool(await self.client.set(key, value, nx=True, px=max(1, ttl_ms)))

    async def get(self, key: str) -> str | None:
        """Get value for key. Returns None if key does not exist."""
        return await self.client.get(key)

    async def delete_key(self, key: str) -> None:
        """Delete a key."""
        await self.client.delete(key)

    async def delete_if_lock_id(self, key: str, lock_id: str, now_ms: int | None = None) -> bool:
        """
        Atomically delete the lease if its lockId matches (or, when now_ms is given, if it has
        expired). Missing key counts as deleted. Returns False only on a live mismatch.
        """
        result = await self.client.eval(
            _DELETE_IF_LOCK_ID, 1, key, lock_id, "" if now_ms is None else str(now_ms)
        )
        return bool(result)

    async def replace_if_unchanged(
        self,
        key: str,
        lock_id: str,
        expected_expires_at_ms: int,
        now_ms: int,
        value: str,
        ttl_ms: int,
    ) -> bool:
        """Compare-and-set: overwrite the lease only if lockId and expiresAt are what the caller read."""
        result = await self.client.eval(
            _REPLACE_IF_UNCHANGED,
            1,
            key,
            lock_id,
            str(expected_expires_at_ms),
            str(now_ms),
            value,
            str(max(1, ttl_ms)),
        )
        return bool(result)

    async def close(self) -> None:
        await self.client.aclose()
