# Overview: Best-effort Redis cache for full-table list views.

"""
List cache contract:

- Only whole list responses are cached (brands, products, products by brand
  name, customers), never single entities and never stock figures used for
  decisions.
- get() returns None on a miss, when Redis is not configured or unreachable,
  and when the stored payload cannot be decoded. Callers cannot tell these
  apart and must not need to.
- set() and invalidate_by_prefix() swallow Redis failures after logging them.
- Any write to a table invalidates every key under that table's prefix.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import redis

logger = logging.getLogger(__name__)

DEFAULT_TTL_LIST = 120
SCAN_BATCH = 100


class CacheKeys:
    """Key layout: <prefix>:brand, <prefix>:product[:<brand name>], <prefix>:customer."""

    def __init__(self, prefix: str = "mm"):
        self.prefix = prefix

    @property
    def brand_prefix(self) -> str:
        return f"{self.prefix}:brand"

    @property
    def product_prefix(self) -> str:
        return f"{self.prefix}:product"

    @property
    def customer_prefix(self) -> str:
        return f"{self.prefix}:customer"

    def brand(self) -> str:
        return self.brand_prefix

    def product(self, brand_name: str | None = None) -> str:
        brand_name = (brand_name or "").strip().lower()
        if brand_name:
            return f"{self.product_prefix}:{brand_name}"
        return self.product_prefix

    def customer(self) -> str:
        return self.customer_prefix

    def all_prefixes(self) -> list[str]:
        return [self.brand_prefix, self.product_prefix, self.customer_prefix]


class ListCache:
    """Cache-aside helper around an optional redis client (None = disabled)."""

    def __init__(self, client: "redis.Redis | None" = None, *, default_ttl: int = DEFAULT_TTL_LIST):
        self.client = client
        self.default_ttl = default_ttl

    @classmethod
    def from_url(cls, url: str | None, *, default_ttl: int = DEFAULT_TTL_LIST) -> "ListCache":
        if not url:
            return cls(None, default_ttl=default_ttl)
        # Connection is lazy; an unreachable server only shows up as misses
        client = redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=1,
            socket_timeout=1,
        )
        return cls(client, default_ttl=default_ttl)

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def get(self, key: str) -> Any | None:
        if self.client is None:
            return None
        try:
            raw = self.client.get(key)
        except redis.RedisError as exc:
            logger.warning("List cache read failed for %s: %s", key, exc)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as exc:
            logger.warning("Discarding undecodable cache entry %s: %s", key, exc)
            return None

    def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        if self.client is None:
            return
        ttl = self.default_ttl if ttl_seconds is None else ttl_seconds
        try:
            payload = json.dumps(value, default=str)
        except (TypeError, ValueError) as exc:
            logger.warning("List cache value for %s is not serializable: %s", key, exc)
            return
        try:
            if ttl > 0:
                self.client.setex(key, ttl, payload)
            else:
                self.client.set(key, payload)
        except redis.RedisError as exc:
            logger.warning("List cache write failed for %s: %s", key, exc)

    def invalidate_by_prefix(self, prefix: str) -> int:
        """Delete every key starting with `prefix`. Returns how many were deleted."""
        if self.client is None:
            return 0
        deleted = 0
        try:
            batch = []
            for key in self.client.scan_iter(match=f"{prefix}*", count=SCAN_BATCH):
                batch.append(key)
                if len(batch) >= SCAN_BATCH:
                    deleted += self.client.delete(*batch)
                    batch = []
            if batch:
                deleted += self.client.delete(*batch)
        except redis.RedisError as exc:
            logger.warning("List cache invalidation failed for %s*: %s", prefix, exc)
        return deleted

    def ping(self) -> bool:
        if self.client is None:
            return False
        try:
            return bool(self.client.ping())
        except redis.RedisError:
            return False
