"""
Redis-based OTP attempt counter.

Counts wrong OTP submissions per ride inside a sliding TTL window.  When
the count reaches ``max_attempts`` the ride is locked for OTP entry until
the key expires.  A correct submission clears the counter.

Implementation uses a Lua script so INCR and the first EXPIRE happen
atomically; two drivers' phones racing on the same ride cannot leave a
counter without a TTL.
"""

from __future__ import annotations

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from schoolride.domain.errors import DependencyError

_INCR_WITH_TTL = """
local current = redis.call("incr", KEYS[1])
if current == 1 then
    redis.call("expire", KEYS[1], ARGV[1])
end
return current
"""


class OtpAttemptCounter:
    def __init__(
        self,
        client: aioredis.Redis,
        max_attempts: int,
        window_seconds: int = 900,
    ):
        self.redis = client
        self.max_attempts = max_attempts
        self.window = window_seconds

    @staticmethod
    def key(ride_id: int) -> str:
        return f"otp_attempts:{ride_id}"

    async def is_locked(self, ride_id: int) -> bool:
        try:
            value = await self.redis.get(self.key(ride_id))
        except RedisError as exc:
            raise DependencyError("OTP attempt store unavailable") from exc
        return value is not None and int(value) >= self.max_attempts

    async def register_failure(self, ride_id: int) -> int:
        """Record one wrong submission; returns the running count."""
        try:
            count = await self.redis.eval(
                _INCR_WITH_TTL, 1, self.key(ride_id), self.window
            )
        except RedisError as exc:
            raise DependencyError("OTP attempt store unavailable") from exc
        return int(count)

    async def reset(self, ride_id: int) -> None:
        try:
            await self.redis.delete(self.key(ride_id))
        except RedisError as exc:
            raise DependencyError("OTP attempt store unavailable") from exc

    def remaining(self, count: int) -> int:
        return max(0, self.max_attempts - count)
