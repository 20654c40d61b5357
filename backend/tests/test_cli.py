import pytest

from agency.models import Brand


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


def test_init_db(runner, db_session):
    result = runner.invoke(args=['system', 'init-db'])
    assert result.exit_code == 0
    assert 'Database tables created.' in result.output


def test_reset_db_requires_confirmation(runner, make_brand, db_session):
    make_brand('Keep Me')

    result = runner.invoke(args=['system', 'reset-db'])

    assert result.exit_code != 0
    assert db_session.query(Brand).count() == 1


def test_reset_db(runner, make_brand, db_session):
    make_brand('Gone Soon')

    result = runner.invoke(args=['system', 'reset-db', '--yes'])

    assert result.exit_code == 0
    assert db_session.query(Brand).count() == 0


def test_stock_show(runner, make_product):
    product = make_product(name='Soap', stock=7)

    result = runner.invoke(args=['stock', 'show', product.id])

    assert result.exit_code == 0
    assert f'{product.id}\tSoap\tstock_count=7' in result.output


def test_stock_show_unknown(runner, db_session):
    result = runner.invoke(args=['stock', 'show', 'missing'])
    assert result.exit_code == 1
    assert 'Product not found' in result.output


def test_cache_invalidate_when_disabled(runner, db_session):
    result = runner.invoke(args=['cache', 'invalidate'])
    assert result.exit_code == 0
    assert 'Cache is disabled' in result.output


def test_cache_invalidate(runner, app_cache, fake_redis):
    app_cache.set('mm:product', [])
    app_cache.set('mm:product:acme', [])
    app_cache.set('mm:customer', [])

    result = runner.invoke(args=['cache', 'invalidate', 'product'])

    assert result.exit_code == 0
    assert 'Invalidated 2 cached list(s).' in result.output
    assert list(fake_redis.store) == ['mm:customer']
