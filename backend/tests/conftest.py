"""
Pytest fixtures for the agency backend tests.

Provides the application on an in-memory SQLite database, a table-wiping
session per test, an authenticated test client, an in-memory Redis double
for the list cache, and small factories for catalog rows.
"""

import fnmatch
from decimal import Decimal

import pytest
import redis
from sqlalchemy import select

from agency import create_app
from agency.extensions import db
from agency.models import Brand, Customer, Product
from agency.services.list_cache import CacheKeys, ListCache


TEST_CONFIG = {
    'TESTING': True,
    'SECRET_KEY': 'test',
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'REDIS_URL': None,
    'ORDER_COMMIT_ATTEMPTS': 3,
}


class FakeRedis:
    """Just enough of redis.Redis for ListCache: strings, TTLs, SCAN, DEL."""

    def __init__(self):
        self.store = {}
        self.ttls = {}

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value):
        self.store[key] = value
        self.ttls.pop(key, None)
        return True

    def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl
        return True

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if key in self.store:
                del self.store[key]
                self.ttls.pop(key, None)
                removed += 1
        return removed

    def scan_iter(self, match=None, count=None):
        for key in list(self.store):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key

    def ping(self):
        return True


class BrokenRedis:
    """Every call fails the way an unreachable server does."""

    def _fail(self, *args, **kwargs):
        raise redis.ConnectionError("Connection refused")

    get = set = setex = delete = ping = _fail

    def scan_iter(self, *args, **kwargs):
        raise redis.ConnectionError("Connection refused")


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    return app.test_client()


@pytest.fixture(scope='function')
def auth_client(client):
    """Test client carrying a logged-in session cookie."""
    with client.session_transaction() as sess:
        sess['user_id'] = 'user-1'
    return client


@pytest.fixture(scope='function')
def db_session(app):
    """Empty every table before the test; hand out the scoped session."""
    with app.app_context():
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        db.session.rollback()


@pytest.fixture(scope='function')
def fake_redis():
    return FakeRedis()


@pytest.fixture(scope='function')
def cache_keys():
    return CacheKeys('mm')


@pytest.fixture(scope='function')
def list_cache(fake_redis):
    return ListCache(fake_redis, default_ttl=120)


@pytest.fixture(scope='function')
def app_cache(app, monkeypatch, list_cache):
    """Swap the app's disabled cache for one backed by FakeRedis."""
    monkeypatch.setitem(app.extensions, 'list_cache', list_cache)
    return list_cache


@pytest.fixture(scope='function')
def make_brand(db_session):
    def _make(name='Acme'):
        brand = Brand(name=name)
        db_session.add(brand)
        db_session.commit()
        return brand
    return _make


@pytest.fixture(scope='function')
def make_product(db_session, make_brand):
    def _make(name='Widget', price='10.00', stock=10, brand=None):
        brand = brand or make_brand(f'Brand for {name}')
        product = Product(brand_id=brand.id, name=name, price=Decimal(price), stock_count=stock)
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def make_customer(db_session):
    def _make(name='Jane Shop'):
        customer = Customer(name=name, phone='555-0100')
        db_session.add(customer)
        db_session.commit()
        return customer
    return _make


@pytest.fixture(scope='function')
def stock_of(db_session):
    """Read stock_count straight from the database, bypassing the identity map."""
    def _read(product_id):
        return db_session.scalar(select(Product.stock_count).where(Product.id == product_id))
    return _read
