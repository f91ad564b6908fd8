import logging

import redis

from catalog.config import config

logger = logging.getLogger("catalog")

# Redis is optional, without it logout only drops the token client side
redis_client = None
if config.REDIS_HOST:
    try:
        redis_client = redis.Redis(
            host=config.REDIS_HOST,
            port=config.REDIS_PORT,
            password=config.REDIS_PASSWORD,
            decode_responses=True,
            socket_connect_timeout=2,
        )
        # Test the connection
        redis_client.ping()
    except (redis.ConnectionError, redis.AuthenticationError, redis.TimeoutError):
        logger.warning("Redis not available. Token blacklisting will be disabled.")
        redis_client = None


def add_to_blacklist(token: str, expires_in: int) -> None:
    if redis_client:
        redis_client.setex(f"blacklist_token:{token}", expires_in, "1")


def is_blacklisted(token: str) -> bool:
    if redis_client:
        return redis_client.exists(f"blacklist_token:{token}") == 1
    return False
