import json
import secrets

import redis.asyncio as redis

from marketplace.config import settings
from marketplace.models import Actor

SESSION_KEY_PREFIX = "session:"
IDEMPOTENCY_KEY_PREFIX = "idempotency:order:"

_redis: redis.Redis | None = None


async def get_redis() -> redis.Redis:
    global _redis
    if _redis is None:
        _redis = redis.from_url(settings.redis_url, decode_responses=True)
    return _redis


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None


async def issue_token(actor: Actor, ttl_seconds: int | None = None, r: redis.Redis | None = None) -> str:
    """
    Bind a fresh opaque bearer token to the actor. Credential checks happen upstream;
    this only records who the token speaks for.
    """
    r = r or await get_redis()
    token = secrets.token_urlsafe(32)
    await r.set(
        SESSION_KEY_PREFIX + token,
        actor.model_dump_json(),
        ex=ttl_seconds or settings.session_ttl_seconds,
    )
    return token


async def resolve_token(token: str, r: redis.Redis | None = None) -> Actor | None:
    r = r or await get_redis()
    raw = await r.get(SESSION_KEY_PREFIX + token)
    if raw is None:
        return None
    return Actor.model_validate(json.loads(raw))


async def claim_idempotency_key(
    customer_id: str,
    key: str,
    order_id: str,
    ttl_seconds: int | None = None,
) -> str | None:
    """
    Returns None if this key is new: it now points at order_id and the caller should place the order.
    Returns the earlier order id if the key was already seen (duplicate request).
    Uses SET NX: set if not exists. If we set it, we're first; if not, duplicate.
    """
    r = await get_redis()
    redis_key = f"{IDEMPOTENCY_KEY_PREFIX}{customer_id}:{key}"
    was_set = await r.set(redis_key, order_id, nx=True, ex=ttl_seconds or settings.idempotency_ttl_seconds)
    if was_set:
        return None
    return await r.get(redis_key)


async def release_idempotency_key(customer_id: str, key: str) -> None:
    """Forget a claimed key whose order could not be placed, so the client may retry."""
    r = await get_redis()
    await r.delete(f"{IDEMPOTENCY_KEY_PREFIX}{customer_id}:{key}")
