"""Per-student throttle on starting and submitting quiz attempts.

Start and submit are the only quiz routes that write.  A start inserts an
attempt row and a submit grades a whole quiz inside one transaction, so a
client stuck in a retry loop (or a script hammering "start" to test the
attempt limit) costs far more than a read.  Each student gets a token bucket
in Redis, shared by both routes:

- ``RATE_LIMIT_ATTEMPT_BURST`` tokens when the bucket is full
- refilled at ``RATE_LIMIT_ATTEMPT_RPM / 60`` tokens per second
- a request with no token left gets 429 before any database work happens

The limiter is advisory.  When Redis is unreachable requests go through, since
the attempt limit and the single grading are enforced by the database anyway.
Setting ``RATE_LIMIT_ATTEMPT_RPM`` to 0 turns it off.
"""

import logging
import math
import time

import redis
from fastapi import Depends, HTTPException, status

from lms.api.deps import get_current_user
from lms.config import settings
from lms.db.models import User

logger = logging.getLogger(__name__)

_pool: redis.ConnectionPool | None = None

# Refill, then take one token, atomically.
# KEYS[1] = bucket key
# ARGV = burst, tokens per second, now (float seconds), key TTL (seconds)
# Returns 1 when a token was taken, 0 when the bucket is empty.
_TAKE_TOKEN = """
local key    = KEYS[1]
local burst  = tonumber(ARGV[1])
local rate   = tonumber(ARGV[2])
local now    = tonumber(ARGV[3])
local ttl    = tonumber(ARGV[4])

local state  = redis.call('HMGET', key, 'tokens', 'ts')
local tokens = tonumber(state[1]) or burst
local ts     = tonumber(state[2]) or now

tokens = math.min(burst, tokens + math.max(0, now - ts) * rate)

local taken = 0
if tokens >= 1 then
    tokens = tokens - 1
    taken = 1
end

redis.call('HSET', key, 'tokens', tokens, 'ts', now)
redis.call('EXPIRE', key, ttl)
return taken
"""


def _get_redis() -> redis.Redis:
    global _pool
    if _pool is None:
        _pool = redis.ConnectionPool.from_url(
            settings.redis_url,
            decode_responses=True,
            max_connections=10,
        )
    return redis.Redis(connection_pool=_pool)


def _bucket_key(user: User) -> str:
    return f"rl:attempts:u:{user.id}"


def _refill_seconds(burst: int, rate: float) -> int:
    """Time for an empty bucket to fill up again; an idle key can expire after it."""
    return max(1, math.ceil(burst / rate))


def _check(bucket_key: str) -> bool:
    """Take a token from ``bucket_key``; False when the student must wait."""
    rpm = settings.RATE_LIMIT_ATTEMPT_RPM
    burst = settings.RATE_LIMIT_ATTEMPT_BURST
    if rpm <= 0:
        return True

    rate = rpm / 60.0
    try:
        taken = _get_redis().eval(
            _TAKE_TOKEN, 1, bucket_key, burst, rate, time.time(), _refill_seconds(burst, rate)
        )
    except redis.RedisError as e:
        logger.warning("Attempt throttle skipped, Redis unavailable: %s", e)
        return True
    return bool(taken)


def require_attempt_rate_limit(current_user: User = Depends(get_current_user)) -> None:
    """Dependency for the start and submit routes; 429 when the bucket is empty."""
    key = _bucket_key(current_user)
    if not _check(key):
        logger.info("Throttled attempt request from user %s", current_user.id)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many attempt requests, please wait a moment.",
            headers={"Retry-After": str(math.ceil(60 / settings.RATE_LIMIT_ATTEMPT_RPM))},
        )
