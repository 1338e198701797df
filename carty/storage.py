"""
Cart stores.

A store persists the cart between sessions. Cart calls it only when it is
configured and ``enabled()`` at call time:

    enabled() -> bool
    load()    -> list of raw item attributes (or an awaitable of it)
    add(item, cart), remove(item, cart), clear() -> awaitable
"""

import json
from typing import Any, Awaitable, Iterable, Mapping, Optional, Protocol, Union, runtime_checkable

from upstash_redis.asyncio import Redis as AsyncRedis

from carty.config import CART_TTL, UPSTASH_REDIS_REST_TOKEN, UPSTASH_REDIS_REST_URL
from carty.errors import ERROR_STORE_UNAVAILABLE, StoreError
from carty.logging import get_logger, sanitize_id_for_logging

logger = get_logger(__name__)


@runtime_checkable
class Store(Protocol):
    """Persistence backend of a cart."""

    def enabled(self) -> bool: ...

    def load(self) -> Union[list[Mapping[str, Any]], Awaitable[list[Mapping[str, Any]]]]: ...

    async def add(self, item: Any, cart: Any) -> None: ...

    async def remove(self, item: Any, cart: Any) -> None: ...

    async def clear(self) -> None: ...


def _snapshot(cart: Iterable[Any]) -> list[dict]:
    return [item.to_dict(mode="json") for item in cart]


class MemoryStore:
    """In-process store keeping JSON snapshots of the cart."""

    def __init__(self, items: Optional[list[Mapping[str, Any]]] = None, enabled: bool = True):
        self.items: list[dict] = [dict(item) for item in items or []]
        self.is_enabled = enabled

    def enabled(self) -> bool:
        return self.is_enabled

    def load(self) -> list[dict]:
        return [dict(item) for item in self.items]

    async def add(self, item: Any, cart: Any) -> None:
        self.items = _snapshot(cart)

    async def remove(self, item: Any, cart: Any) -> None:
        self.items = _snapshot(cart)

    async def clear(self) -> None:
        self.items = []


# Redis key prefixes
class RedisKeys:
    """Redis key prefixes for cart data."""

    CART = "cart:"  # cart:{cart_id}

    @staticmethod
    def cart_key(cart_id: Union[str, int]) -> str:
        return f"{RedisKeys.CART}{cart_id}"


# Singleton instance
_redis_client: Optional[AsyncRedis] = None


def get_redis() -> AsyncRedis:
    """
    Get async Upstash Redis client (singleton).

    Uses standard Upstash env var names:
    - UPSTASH_REDIS_REST_URL
    - UPSTASH_REDIS_REST_TOKEN
    """
    global _redis_client

    if _redis_client is None:
        if not UPSTASH_REDIS_REST_URL or not UPSTASH_REDIS_REST_TOKEN:
            raise ValueError("UPSTASH_REDIS_REST_URL and UPSTASH_REDIS_REST_TOKEN must be set")
        _redis_client = AsyncRedis(url=UPSTASH_REDIS_REST_URL, token=UPSTASH_REDIS_REST_TOKEN)

    return _redis_client


class RedisStore:
    """
    Cart store backed by Upstash Redis.

    The whole cart is kept as one JSON list under ``cart:{cart_id}``:
    - every add/remove rewrites the snapshot and refreshes the TTL
    - clear deletes the key
    - corrupted payloads are dropped and read as an empty cart
    """

    def __init__(self, cart_id: Union[str, int], redis: Optional[AsyncRedis] = None, ttl: int = CART_TTL):
        self.cart_id = cart_id
        self.ttl = ttl
        self._redis = redis  # Lazy initialization

    @property
    def key(self) -> str:
        return RedisKeys.cart_key(self.cart_id)

    @property
    def redis(self) -> AsyncRedis:
        """Get Redis client (lazy initialization)."""
        if self._redis is None:
            try:
                self._redis = get_redis()
            except ValueError as e:
                raise StoreError("connect", f"{ERROR_STORE_UNAVAILABLE}: {e}") from e
        return self._redis

    def enabled(self) -> bool:
        return self._redis is not None or bool(UPSTASH_REDIS_REST_URL and UPSTASH_REDIS_REST_TOKEN)

    async def load(self) -> list[dict]:
        """Read the stored cart."""
        try:
            data = await self.redis.get(self.key)
        except StoreError:
            raise
        except Exception as e:
            logger.error(f"Failed to load cart {sanitize_id_for_logging(self.cart_id)} from Redis: {e}")
            raise StoreError("load", f"{ERROR_STORE_UNAVAILABLE}: {e}") from e

        if not data:
            return []

        try:
            items = json.loads(data)
            if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
                raise TypeError(f"expected a list of objects, got {type(items).__name__}")
            return items
        except (json.JSONDecodeError, TypeError) as e:
            # Corrupted data - clear it and start empty
            logger.warning(f"Corrupted cart data for cart {sanitize_id_for_logging(self.cart_id)}: {e}")
            await self.redis.delete(self.key)
            return []

    async def add(self, item: Any, cart: Any) -> None:
        await self._save(cart, "add")

    async def remove(self, item: Any, cart: Any) -> None:
        await self._save(cart, "remove")

    async def clear(self) -> None:
        try:
            await self.redis.delete(self.key)
        except StoreError:
            raise
        except Exception as e:
            logger.error(f"Failed to clear cart {sanitize_id_for_logging(self.cart_id)} in Redis: {e}")
            raise StoreError("clear", f"{ERROR_STORE_UNAVAILABLE}: {e}") from e

    async def _save(self, cart: Any, operation: str) -> None:
        try:
            await self.redis.set(self.key, json.dumps(_snapshot(cart)), ex=self.ttl)
        except StoreError:
            raise
        except Exception as e:
            logger.error(f"Failed to save cart {sanitize_id_for_logging(self.cart_id)} to Redis: {e}")
            raise StoreError(operation, f"{ERROR_STORE_UNAVAILABLE}: {e}") from e
