"""
Token Revocation System using Redis.

Logout puts the presented JWT on a Redis blacklist until the token would
have expired anyway. Redis holds nothing else, so the connection lives
here too. An unreachable Redis never locks users out: revocation checks
fail open and logout reports the token as not revoked.
"""

import logging
import redis.asyncio as redis
from tracker_backend.app.core.config import settings

logger = logging.getLogger(__name__)

redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
    socket_timeout=settings.redis_socket_timeout,
)


async def get_redis():
    """Blacklist store, looked up at call time so tests can swap the client."""
    return redis_client


def blacklist_key(token: str) -> str:
    return f"{settings.token_blacklist_prefix}{token}"


async def ping_redis() -> bool:
    """True when the blacklist store answers."""
    try:
        return await redis_client.ping()
    except Exception as e:
        logger.warning("Token blacklist unreachable: %s", e)
        return False


async def revoke_token(token: str, user_id: int) -> bool:
    """
    Revoke a specific JWT token by adding it to the blacklist.

    Args:
        token: The JWT token string to revoke
        user_id: User ID who owns the token

    Returns:
        True if successfully revoked, False otherwise
    """
    try:
        store = await get_redis()
        ttl_seconds = settings.access_token_expire_minutes * 60
        await store.setex(blacklist_key(token), ttl_seconds, str(user_id))
        return True
    except Exception as e:
        logger.error("Error revoking token for user %s: %s", user_id, e)
        return False


async def is_token_revoked(token: str) -> bool:
    """
    Check if a token has been revoked.

    Returns:
        True if token is revoked, False otherwise (including when Redis is down)
    """
    try:
        store = await get_redis()
        return await store.exists(blacklist_key(token)) > 0
    except Exception as e:
        logger.error("Error checking token revocation: %s", e)
        return False
