"""
End-to-end tests for the stock HTTP API: envelopes, status codes and tenant isolation
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from main.models import User
from main.test_utils import TestDataFactory, AuthenticatedAPIClient
from stock.models import Product, InventoryMovement


class StockAPITestCase(TestCase):

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.store = TestDataFactory.create_store(self.company, name='Main')
        self.branch = TestDataFactory.create_store(self.company, name='Branch')
        self.owner = TestDataFactory.create_user(company=self.company)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.owner)

    def assertError(self, response, status_code, code):
        self.assertEqual(response.status_code, status_code, response.content)
        body = response.json()
        self.assertFalse(body['success'])
        self.assertEqual(body['error']['code'], code)
        self.assertIn('message', body['error'])


class AuthenticationTests(StockAPITestCase):

    def test_requires_bearer_token(self):
        self.client.logout()
        response = self.client.get('/api/stock/products/')
        self.assertError(response, status.HTTP_401_UNAUTHORIZED, 'unauthorized')

    def test_malformed_json(self):
        response = self.client.generic(
            'POST', '/api/stock/adjust/', '{not json', content_type='application/json'
        )
        self.assertError(response, status.HTTP_400_BAD_REQUEST, 'validation_error')


class ProductAPITests(StockAPITestCase):

    def test_create_product_with_opening_stock(self):
        response = self.client.post('/api/stock/products/', {
            'store_id': self.store.id,
            'name': 'Sparkling water',
            'sku': 'SPK-500',
            'default_price': '2.50',
            'stock_quantity': 24,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.content)
        product = response.json()['product']
        self.assertEqual(product['stock_quantity'], '24')

        movement = InventoryMovement.objects.get(product_id=product['id'])
        self.assertEqual(movement.notes, 'Opening stock')
        self.assertEqual(movement.movement_type, InventoryMovement.MovementType.IN)

    def test_duplicate_sku_in_store(self):
        TestDataFactory.create_product(self.store, sku='DUP-1')
        response = self.client.post('/api/stock/products/', {
            'store_id': self.store.id, 'name': 'Again', 'sku': 'DUP-1', 'default_price': 1,
        }, format='json')
        self.assertError(response, status.HTTP_409_CONFLICT, 'sku_exists')

    def test_missing_fields(self):
        response = self.client.post('/api/stock/products/', {'name': 'Nameless'}, format='json')
        self.assertError(response, status.HTTP_400_BAD_REQUEST, 'missing_required_fields')
        self.assertIn('store_id', response.json()['error']['details']['missing'])

    def test_update_cannot_touch_stock(self):
        product = TestDataFactory.create_product(self.store, stock=3)
        response = self.client.put(
            f'/api/stock/products/{product.id}/', {'stock_quantity': 100}, format='json'
        )
        self.assertError(response, status.HTTP_400_BAD_REQUEST, 'validation_error')

        response = self.client.put(
            f'/api/stock/products/{product.id}/', {'name': 'Renamed', 'default_price': '3.10'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()['product']['name'], 'Renamed')
        self.assertEqual(response.json()['product']['stock_quantity'], '3')

    def test_update_rejects_malformed_fields(self):
        product = TestDataFactory.create_product(self.store, price=Decimal('4.00'))
        url = f'/api/stock/products/{product.id}/'

        for body in ({'default_price': None}, {'default_price': 'cheap'}, {'default_price': -1}, {'name': None}):
            response = self.client.put(url, body, format='json')
            self.assertError(response, status.HTTP_400_BAD_REQUEST, 'validation_error')

        product.refresh_from_db()
        self.assertEqual(product.default_price, Decimal('4.00'))

        response = self.client.put(url, {'wholesale_price': None}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.content)

    def test_body_keys_do_not_override_route(self):
        product = TestDataFactory.create_product(self.store)
        other = TestDataFactory.create_product(self.store)

        response = self.client.put(
            f'/api/stock/products/{product.id}/',
            {'product_id': other.id, 'scope': 'x', 'name': 'Routed'},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.content)
        self.assertEqual(response.json()['product']['id'], product.id)
        self.assertNotEqual(Product.objects.get(id=other.id).name, 'Routed')

    def test_ingredient_update_validates_and_guards_recipes(self):
        flour = TestDataFactory.create_ingredient(self.store, name='Flour', unit='kg', stock=100)
        bread = TestDataFactory.create_product(self.store, name='Bread', is_composite=True)
        TestDataFactory.create_recipe(bread, [(flour, '0.5')])
        url = f'/api/stock/ingredients/{flour.id}/'

        response = self.client.put(url, {'unit_cost': None}, format='json')
        self.assertError(response, status.HTTP_400_BAD_REQUEST, 'validation_error')

        response = self.client.put(url, {'ingredient_id': 999, 'is_active': False}, format='json')
        self.assertError(response, status.HTTP_409_CONFLICT, 'invalid_state')
        flour.refresh_from_db()
        self.assertTrue(flour.is_active)

    def test_other_company_product_is_not_found(self):
        foreign = TestDataFactory.create_product(TestDataFactory.create_store(), stock=5)
        response = self.client.get(f'/api/stock/products/{foreign.id}/')
        self.assertError(response, status.HTTP_404_NOT_FOUND, 'not_found')

        response = self.client.post('/api/stock/adjust/', {
            'product_id': foreign.id, 'adjustment_type': 'decrease', 'quantity': 1,
        }, format='json')
        self.assertError(response, status.HTTP_404_NOT_FOUND, 'not_found')
        foreign.refresh_from_db()
        self.assertEqual(foreign.stock_quantity, Decimal('5'))

    def test_list_is_paginated_and_scoped(self):
        for _ in range(3):
            TestDataFactory.create_product(self.store)
        TestDataFactory.create_product(TestDataFactory.create_store())

        response = self.client.get('/api/stock/products/', {'per_page': 2})
        body = response.json()
        self.assertEqual(len(body['products']), 2)
        self.assertEqual(body['pagination']['total_items'], 3)
        self.assertTrue(body['pagination']['has_next'])

    def test_delete_deactivates(self):
        product = TestDataFactory.create_product(self.store)
        response = self.client.delete(f'/api/stock/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Product.objects.get(id=product.id).is_active)


class StockOperationsAPITests(StockAPITestCase):

    def test_adjust_and_movement_listing(self):
        product = TestDataFactory.create_product(self.store, stock=10)
        response = self.client.post('/api/stock/adjust/', {
            'product_id': product.id, 'adjustment_type': 'decrease', 'quantity': 4, 'reason': 'Damaged',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.content)
        self.assertEqual(response.json()['new_stock'], '6')

        response = self.client.get('/api/stock/movements/', {'product_id': product.id})
        movements = response.json()['movements']
        self.assertEqual(len(movements), 2)
        self.assertEqual(movements[0]['notes'], 'decrease by 4 - Damaged')

    def test_zero_quantity_is_rejected(self):
        product = TestDataFactory.create_product(self.store, stock=10)
        response = self.client.post('/api/stock/adjust/', {
            'product_id': product.id, 'adjustment_type': 'increase', 'quantity': 0,
        }, format='json')
        self.assertError(response, status.HTTP_400_BAD_REQUEST, 'invalid_quantity')

    def test_low_stock_alerts(self):
        TestDataFactory.create_product(self.store, name='Empty')
        TestDataFactory.create_product(self.store, name='Low', stock=2)
        TestDataFactory.create_product(self.store, name='Fine', stock=50)
        TestDataFactory.create_ingredient(self.store, name='Sugar', stock=1)

        body = self.client.get('/api/stock/alerts/').json()
        by_name = {a['name']: a for a in body['alerts']}
        self.assertEqual(by_name['Empty']['alert_type'], 'out_of_stock')
        self.assertEqual(by_name['Low']['severity'], 'warning')
        self.assertEqual(by_name['Sugar']['kind'], 'ingredient')
        self.assertNotIn('Fine', by_name)

    def test_ingredient_stock_endpoint(self):
        ingredient = TestDataFactory.create_ingredient(self.store, stock=5)
        response = self.client.post(f'/api/stock/ingredients/{ingredient.id}/stock/', {
            'movement_type': 'out', 'quantity': 9,
        }, format='json')
        self.assertError(response, status.HTTP_400_BAD_REQUEST, 'insufficient_stock')

        response = self.client.get('/api/stock/ingredients/movements/', {'ingredient_id': ingredient.id})
        self.assertEqual(len(response.json()['movements']), 1)


class TransferAPITests(StockAPITestCase):

    def test_full_transfer_over_http(self):
        product = TestDataFactory.create_product(self.store, sku='MUG-1', stock=8)
        response = self.client.post('/api/stock/transfers/', {
            'from_store_id': self.store.id,
            'to_store_id': self.branch.id,
            'product_id': product.id,
            'quantity': 5,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.content)
        transfer_id = response.json()['transfer']['id']

        response = self.client.post(f'/api/stock/transfers/{transfer_id}/complete/')
        self.assertError(response, status.HTTP_409_CONFLICT, 'invalid_state')

        response = self.client.post(f'/api/stock/transfers/{transfer_id}/approve/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.post(f'/api/stock/transfers/{transfer_id}/complete/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        body = response.json()
        self.assertTrue(body['is_new_product'])
        self.assertEqual(body['details']['destination_stock'], '5')

        response = self.client.get(f'/api/stock/transfers/{transfer_id}/')
        self.assertEqual(response.json()['transfer']['status'], 'completed')

    def test_unknown_action(self):
        product = TestDataFactory.create_product(self.store, stock=8)
        response = self.client.post('/api/stock/transfers/', {
            'from_store_id': self.store.id, 'to_store_id': self.branch.id,
            'product_id': product.id, 'quantity': 1,
        }, format='json')
        transfer_id = response.json()['transfer']['id']
        response = self.client.post(f'/api/stock/transfers/{transfer_id}/teleport/')
        self.assertError(response, status.HTTP_400_BAD_REQUEST, 'validation_error')

    def test_cashier_gets_forbidden(self):
        product = TestDataFactory.create_product(self.store, stock=8)
        transfer_id = self.client.post('/api/stock/transfers/', {
            'from_store_id': self.store.id, 'to_store_id': self.branch.id,
            'product_id': product.id, 'quantity': 1,
        }, format='json').json()['transfer']['id']

        cashier = TestDataFactory.create_user(
            company=self.company, role=User.RoleChoices.CASHIER, store=self.store
        )
        cashier_client = AuthenticatedAPIClient()
        cashier_client.authenticate_user(cashier)
        response = cashier_client.post(f'/api/stock/transfers/{transfer_id}/approve/')
        self.assertError(response, status.HTTP_403_FORBIDDEN, 'permission_denied')


class ManufacturingAPITests(StockAPITestCase):

    def setUp(self):
        super().setUp()
        self.dough = TestDataFactory.create_ingredient(self.store, name='Dough', unit='g', stock=300)
        self.pizza = TestDataFactory.create_product(self.store, name='Pizza', is_composite=True)
        TestDataFactory.create_recipe(self.pizza, [(self.dough, '250')])

    def test_check_then_manufacture(self):
        response = self.client.get(f'/api/stock/manufacturing/{self.pizza.id}/check/', {'quantity': 2})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.json()['can_manufacture'])
        self.assertEqual(response.json()['max_quantity'], 1)

        response = self.client.post(
            f'/api/stock/manufacturing/{self.pizza.id}/manufacture/', {'quantity': 2}, format='json'
        )
        self.assertError(response, status.HTTP_400_BAD_REQUEST, 'insufficient_ingredients')
        self.assertEqual(response.json()['error']['details']['shortages'][0]['shortage'], '200')

        response = self.client.post(
            f'/api/stock/manufacturing/{self.pizza.id}/manufacture/', {'quantity': 1}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.content)

        history = self.client.get('/api/stock/manufacturing/history/').json()['history']
        self.assertEqual(len(history), 1)

    def test_recipe_endpoints(self):
        response = self.client.get(f'/api/stock/recipes/{self.pizza.id}/')
        self.assertEqual(len(response.json()['recipe']), 1)

        response = self.client.get(f'/api/stock/recipes/{self.pizza.id}/availability/', {'quantity': 1})
        self.assertTrue(response.json()['can_make'])


class SaleAPITests(StockAPITestCase):

    def test_sale_round_trip(self):
        product = TestDataFactory.create_product(self.store, stock=5, price=Decimal('2.00'))
        response = self.client.post('/api/stock/sales/', {
            'store_id': self.store.id,
            'items': [{'product_id': product.id, 'quantity': 2}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.content)
        receipt = response.json()['sale']['receipt_number']

        response = self.client.get(f'/api/stock/sales/receipt/{receipt}/')
        self.assertEqual(response.json()['sale']['total_amount'], '4')

        response = self.client.get(f'/api/stock/products/{product.id}/availability/', {'quantity': 4})
        self.assertFalse(response.json()['available'])
