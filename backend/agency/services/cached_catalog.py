# Overview: Cache-aside list views and invalidating writes over the catalog store.

from __future__ import annotations

from sqlalchemy.orm import Session

from . import catalog
from .list_cache import CacheKeys, ListCache


class CachedCatalog:
    """
    Same operations as services.catalog, plus the list cache.

    Reads go cache first and fill the cache on a miss. Every successful write
    invalidates the affected prefixes after the store has committed.
    """

    def __init__(self, session: Session, cache: ListCache, keys: CacheKeys | None = None, *, ttl: int | None = None):
        self.session = session
        self.cache = cache
        self.keys = keys or CacheKeys()
        self.ttl = ttl

    def _read_through(self, key: str, load):
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        value = load()
        self.cache.set(key, value, self.ttl)
        return value

    # brands

    def list_brands(self) -> list[dict]:
        return self._read_through(self.keys.brand(), lambda: catalog.list_brands(self.session))

    def create_brand(self, payload: dict) -> dict:
        brand = catalog.create_brand(self.session, payload)
        self.cache.invalidate_by_prefix(self.keys.brand_prefix)
        return brand

    def update_brand(self, brand_id: str, payload: dict) -> dict | None:
        brand = catalog.update_brand(self.session, brand_id, payload)
        if brand is not None:
            # product rows carry brand_name
            self.cache.invalidate_by_prefix(self.keys.brand_prefix)
            self.cache.invalidate_by_prefix(self.keys.product_prefix)
        return brand

    def delete_brand(self, brand_id: str) -> bool:
        deleted = catalog.delete_brand(self.session, brand_id)
        if deleted:
            self.cache.invalidate_by_prefix(self.keys.brand_prefix)
            self.cache.invalidate_by_prefix(self.keys.product_prefix)
        return deleted

    # products

    def list_products(self, brand_name: str | None = None) -> list[dict]:
        return self._read_through(
            self.keys.product(brand_name),
            lambda: catalog.list_products(self.session, brand_name),
        )

    def create_product(self, payload: dict) -> dict:
        product = catalog.create_product(self.session, payload)
        self.cache.invalidate_by_prefix(self.keys.product_prefix)
        return product

    def update_product(self, product_id: str, payload: dict) -> dict | None:
        product = catalog.update_product(self.session, product_id, payload)
        if product is not None:
            self.cache.invalidate_by_prefix(self.keys.product_prefix)
        return product

    def delete_product(self, product_id: str) -> bool:
        deleted = catalog.delete_product(self.session, product_id)
        if deleted:
            self.cache.invalidate_by_prefix(self.keys.product_prefix)
        return deleted

    # customers

    def list_customers(self) -> list[dict]:
        return self._read_through(self.keys.customer(), lambda: catalog.list_customers(self.session))

    def create_customer(self, payload: dict) -> dict:
        customer = catalog.create_customer(self.session, payload)
        self.cache.invalidate_by_prefix(self.keys.customer_prefix)
        return customer

    def update_customer(self, customer_id: str, payload: dict) -> dict | None:
        customer = catalog.update_customer(self.session, customer_id, payload)
        if customer is not None:
            self.cache.invalidate_by_prefix(self.keys.customer_prefix)
        return customer

    def delete_customer(self, customer_id: str) -> bool:
        deleted = catalog.delete_customer(self.session, customer_id)
        if deleted:
            self.cache.invalidate_by_prefix(self.keys.customer_prefix)
        return deleted
