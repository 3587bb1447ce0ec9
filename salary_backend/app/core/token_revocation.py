"""
Token Revocation System using Redis.

Implements token blacklisting to immediately invalidate JWT tokens
when users log out or are deactivated.

Checks fail open: if Redis is unreachable a token is treated as valid
and the failure is logged. The database is_active check in
get_current_user still applies.
"""

import logging
from redis.exceptions import RedisError
from salary_backend.app.core.redis_client import get_client
from salary_backend.app.core.config import settings

logger = logging.getLogger(__name__)

# Redis key prefix for blacklisted tokens
TOKEN_BLACKLIST_PREFIX = "blacklist:token:"
USER_TOKENS_PREFIX = "user:tokens:"


def _ttl_seconds() -> int:
    # Tokens expire on their own after this, so the flag can too
    return settings.access_token_expire_minutes * 60


async def revoke_token(token: str, user_id: int) -> bool:
    """
    Revoke a specific JWT token by adding it to the blacklist.

    Returns:
        True if successfully revoked, False otherwise
    """
    try:
        await get_client().setex(f"{TOKEN_BLACKLIST_PREFIX}{token}", _ttl_seconds(), str(user_id))
        return True
    except (RedisError, OSError) as exc:
        logger.error("Could not revoke token of user %s: %s", user_id, exc)
        return False


async def is_token_revoked(token: str) -> bool:
    try:
        return await get_client().exists(f"{TOKEN_BLACKLIST_PREFIX}{token}") > 0
    except (RedisError, OSError) as exc:
        logger.warning("Token revocation check unavailable, allowing request: %s", exc)
        return False


async def revoke_all_user_tokens(user_id: int) -> bool:
    """
    Revoke every active token of a user.

    Called when a user is deactivated so open sessions end immediately.
    """
    try:
        await get_client().setex(f"{USER_TOKENS_PREFIX}{user_id}:revoked", _ttl_seconds(), "1")
        return True
    except (RedisError, OSError) as exc:
        logger.error("Could not revoke tokens of user %s: %s", user_id, exc)
        return False


async def are_user_tokens_revoked(user_id: int) -> bool:
    try:
        return await get_client().exists(f"{USER_TOKENS_PREFIX}{user_id}:revoked") > 0
    except (RedisError, OSError) as exc:
        logger.warning("User revocation check unavailable for %s, allowing request: %s", user_id, exc)
        return False


async def clear_user_token_revocation(user_id: int) -> bool:
    """Clear the revoke-all flag when a user is reactivated."""
    try:
        await get_client().delete(f"{USER_TOKENS_PREFIX}{user_id}:revoked")
        return True
    except (RedisError, OSError) as exc:
        logger.error("Could not clear token revocation for user %s: %s", user_id, exc)
        return False
