from agency.models import OrderLine
from sqlalchemy import func, select


def _order_lines(session):
    return session.scalar(select(func.count()).select_from(OrderLine))


class TestAuthGate:
    def test_order_routes_require_session(self, client, db_session):
        assert client.get('/api/orders').status_code == 401
        assert client.post('/api/orders', json={}).status_code == 401
        assert client.post('/api/orders/check-stock', json={'items': []}).status_code == 401
        assert client.delete('/api/orders/abc').status_code == 401

    def test_health_is_public(self, client, db_session):
        response = client.get('/api/health')
        assert response.status_code == 200
        body = response.get_json()
        assert body['status'] == 'healthy'
        assert body['checks']['database']['status'] == 'healthy'
        assert body['checks']['cache'] == {'status': 'disabled'}


class TestCreateOrder:
    def test_create_order(self, auth_client, make_product, make_customer, stock_of):
        customer_id = make_customer().id
        product_id = make_product(price='19.99', stock=10).id

        response = auth_client.post('/api/orders', json={
            'customer_id': customer_id,
            'items': [{'product_id': product_id, 'quantity': 3}],
        })

        assert response.status_code == 201
        body = response.get_json()
        assert body['order_id']
        assert body['lines'][0]['unit_price'] == '19.99'
        assert body['lines'][0]['total_amount'] == '59.97'
        assert stock_of(product_id) == 7

    def test_invalid_json(self, auth_client, db_session):
        response = auth_client.post('/api/orders', data='not json', content_type='application/json')
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Invalid JSON'

    def test_missing_items(self, auth_client, make_customer):
        response = auth_client.post('/api/orders', json={'customer_id': make_customer().id, 'items': []})
        assert response.status_code == 400
        assert 'items array' in response.get_json()['error']

    def test_insufficient_stock(self, auth_client, db_session, make_product, make_customer, stock_of):
        customer_id = make_customer().id
        product_id = make_product(stock=4).id

        response = auth_client.post('/api/orders', json={
            'customer_id': customer_id,
            'items': [{'product_id': product_id, 'quantity': 5}],
        })

        assert response.status_code == 400
        body = response.get_json()
        assert body['error'] == 'Insufficient stock'
        assert body['retry'] is False
        assert body['insufficient'] == [{'product_id': product_id, 'requested': 5, 'available': 4}]
        assert stock_of(product_id) == 4
        assert _order_lines(db_session) == 0

    def test_unknown_product(self, auth_client, make_customer):
        response = auth_client.post('/api/orders', json={
            'customer_id': make_customer().id,
            'items': [{'product_id': 'nope', 'quantity': 1}],
        })
        assert response.status_code == 404
        assert response.get_json()['product_ids'] == ['nope']

    def test_unknown_customer(self, auth_client, make_product):
        response = auth_client.post('/api/orders', json={
            'customer_id': 'ghost',
            'items': [{'product_id': make_product().id, 'quantity': 1}],
        })
        assert response.status_code == 404

    def test_create_invalidates_cached_product_lists(self, auth_client, app_cache, fake_redis, make_product, make_customer):
        customer_id = make_customer().id
        product_id = make_product(stock=5).id
        assert auth_client.get('/api/products').status_code == 200
        assert 'mm:product' in fake_redis.store

        auth_client.post('/api/orders', json={
            'customer_id': customer_id,
            'items': [{'product_id': product_id, 'quantity': 2}],
        })

        assert 'mm:product' not in fake_redis.store
        products = auth_client.get('/api/products').get_json()
        assert products[0]['stock_count'] == 3


class TestCheckStock:
    def test_empty_items_are_ok(self, auth_client, db_session):
        response = auth_client.post('/api/orders/check-stock', json={'items': []})
        assert response.status_code == 200
        assert response.get_json() == {'ok': True, 'insufficient': []}

    def test_reports_shortage(self, auth_client, make_product):
        product_id = make_product(stock=1).id
        response = auth_client.post('/api/orders/check-stock', json={
            'items': [{'product_id': product_id, 'quantity': 2}],
        })
        assert response.status_code == 200
        assert response.get_json() == {
            'ok': False,
            'insufficient': [{'product_id': product_id, 'requested': 2, 'available': 1}],
        }


class TestOrderLifecycle:
    def test_get_cancel_and_cancel_again(self, auth_client, make_product, make_customer, stock_of):
        customer_id = make_customer().id
        product_id = make_product(stock=5).id
        created = auth_client.post('/api/orders', json={
            'customer_id': customer_id,
            'items': [{'product_id': product_id, 'quantity': 5}],
        }).get_json()
        order_id = created['order_id']

        fetched = auth_client.get(f'/api/orders/{order_id}')
        assert fetched.status_code == 200
        assert fetched.get_json()['customer_id'] == customer_id

        cancelled = auth_client.delete(f'/api/orders/{order_id}')
        assert cancelled.status_code == 200
        assert cancelled.get_json() == {'cancelled': True, 'order_id': order_id}
        assert stock_of(product_id) == 5

        again = auth_client.delete(f'/api/orders/{order_id}')
        assert again.status_code == 404
        assert auth_client.get(f'/api/orders/{order_id}').status_code == 404

    def test_list_grouped_by_customer(self, auth_client, make_product, make_customer):
        alpha = make_customer('Alpha Mart').id
        beta = make_customer('Beta Goods').id
        product_id = make_product(price='1.25', stock=50).id
        for customer_id, quantity in ((beta, 2), (alpha, 4), (alpha, 1)):
            auth_client.post('/api/orders', json={
                'customer_id': customer_id,
                'items': [{'product_id': product_id, 'quantity': quantity}],
            })

        groups = auth_client.get('/api/orders').get_json()

        assert [g['customer_name'] for g in groups] == ['Alpha Mart', 'Beta Goods']
        assert groups[0]['total_amount'] == '6.25'
        assert len(groups[0]['orders']) == 2
        assert groups[1]['orders'][0]['lines'][0]['product_name'] == 'Widget'
