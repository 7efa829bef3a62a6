"""
Rate limiting implementation using Redis.

Fixed window: count requests per identifier in a time window. When Redis
is unreachable the check fails open.
"""

import logging
from dataclasses import dataclass

from fastapi import HTTPException, Request, status

from tenantgate.config import settings
from tenantgate.core.cache import cache_manager

logger = logging.getLogger(__name__)


@dataclass
class RateLimitConfig:
    """Configuration for a rate limit rule."""

    requests: int     # Max requests
    window: int       # Time window in seconds
    key_prefix: str   # Key prefix for namespacing


# Predefined rate limit tiers
RATE_LIMITS = {
    "default": RateLimitConfig(requests=60, window=60, key_prefix="rl"),
    "auth": RateLimitConfig(requests=5, window=60, key_prefix="rl_auth"),
    "redeem": RateLimitConfig(requests=10, window=60, key_prefix="rl_redeem"),
    "waitlist": RateLimitConfig(requests=5, window=300, key_prefix="rl_waitlist"),
}


async def check_rate_limit(
    identifier: str,
    limit_type: str = "default",
) -> dict:
    """
    Check if identifier has exceeded rate limit.

    Args:
        identifier: Unique identifier (principal id or client ip)
        limit_type: Rate limit tier to apply

    Returns:
        Dict with rate limit info

    Raises:
        HTTPException: 429 if rate limit exceeded
    """
    config = RATE_LIMITS.get(limit_type, RATE_LIMITS["default"])
    unlimited = {"limit": config.requests, "remaining": config.requests, "reset": 0}

    if not settings.rate_limit_enabled or not cache_manager.is_ready:
        return unlimited

    key = f"{identifier}:{limit_type}"

    try:
        current_count = await cache_manager.increment(
            namespace=config.key_prefix,
            key=key,
            ttl=config.window,
        )
        ttl = await cache_manager.get_ttl(config.key_prefix, key)

        if current_count > config.requests:
            logger.warning(
                f"Rate limit exceeded: {identifier} ({limit_type}) "
                f"{current_count}/{config.requests}"
            )
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail={
                    "error": "Rate limit exceeded",
                    "limit": config.requests,
                    "window": config.window,
                    "retry_after": ttl,
                },
                headers={
                    "X-RateLimit-Limit": str(config.requests),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(ttl),
                    "Retry-After": str(ttl),
                },
            )

        return {
            "limit": config.requests,
            "remaining": max(0, config.requests - current_count),
            "reset": ttl,
            "current": current_count,
        }

    except HTTPException:
        raise
    except Exception as e:
        # Redis down: fail open
        logger.error(f"Rate limit check error: {e}")
        return unlimited


def rate_limit(limit_type: str = "default", by: str = "principal"):
    """
    Rate limiting dependency factory.

    Args:
        limit_type: Rate limit tier (default, auth, redeem, waitlist)
        by: How to identify the requester (principal, ip)

    Usage:
        @router.post("/redeem")
        async def redeem(
            _: Annotated[dict, Depends(rate_limit("redeem"))],
        ):
            ...
    """
    async def dependency(request: Request) -> dict:
        client_host = request.client.host if request.client else "unknown"
        if by == "principal":
            principal_id = getattr(request.state, "principal_id", None)
            identifier = str(principal_id) if principal_id else client_host
        else:
            identifier = client_host

        return await check_rate_limit(identifier, limit_type)

    return dependency
