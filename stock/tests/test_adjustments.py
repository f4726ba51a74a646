"""
Tests for manual stock adjustments on products and ingredients
"""
from decimal import Decimal

from django.test import TestCase, override_settings

from main.test_utils import TestDataFactory
from stock.models import InventoryMovement, IngredientMovement
from stock.services import (
    StockAdjustmentService, StockLedgerService, EntityKind,
    InsufficientStockError, ValidationError, NotFoundError,
)


class ProductAdjustmentTests(TestCase):

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.store = TestDataFactory.create_store(self.company)
        self.user = TestDataFactory.create_user(company=self.company)
        self.scope = TestDataFactory.scope_for(self.user)
        self.product = TestDataFactory.create_product(self.store, stock=5)

    def adjust(self, adjustment_type, quantity, reason=''):
        return StockAdjustmentService.adjust_product(
            self.scope, actor_id=self.user.id, product_id=self.product.id,
            adjustment_type=adjustment_type, quantity=quantity, reason=reason,
        )

    def test_increase(self):
        result = self.adjust('increase', '7', 'delivery')
        self.assertEqual(result['new_stock'], '12')
        movement = InventoryMovement.objects.filter(product=self.product).first()
        self.assertEqual(movement.movement_type, InventoryMovement.MovementType.ADJUSTMENT)
        self.assertEqual(movement.reference_type, InventoryMovement.ReferenceType.MANUAL_ADJUSTMENT)
        self.assertEqual(movement.created_by_id, self.user.id)
        self.assertEqual(movement.notes, 'increase by 7 - delivery')

    def test_decrease_clamps_when_enabled(self):
        result = self.adjust('decrease', 8)
        self.assertEqual(result['new_stock'], '0')
        self.assertEqual(result['movement']['quantity'], '5')
        self.assertTrue(StockLedgerService.reconcile(EntityKind.PRODUCT, self.product.id)['consistent'])

    @override_settings(STOCK_CLAMP_MANUAL_DECREASE=False)
    def test_decrease_rejected_when_clamp_disabled(self):
        with self.assertRaises(InsufficientStockError):
            self.adjust('decrease', 8)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, Decimal('5'))

    def test_clamped_decrease_of_empty_stock_still_recorded(self):
        self.adjust('decrease', 5)
        result = self.adjust('decrease', 2)
        self.assertEqual(result['new_stock'], '0')
        self.assertEqual(result['movement']['quantity'], '0')

    def test_invalid_inputs(self):
        with self.assertRaises(ValidationError):
            self.adjust('set', 1)
        with self.assertRaises(ValidationError) as ctx:
            self.adjust('increase', 0)
        self.assertEqual(ctx.exception.code, 'INVALID_QUANTITY')
        with self.assertRaises(ValidationError):
            self.adjust('increase', -3)
        with self.assertRaises(ValidationError):
            self.adjust('increase', 'lots')

    def test_composite_product_cannot_be_increased(self):
        composite = TestDataFactory.create_product(self.store, is_composite=True)
        with self.assertRaises(ValidationError) as ctx:
            StockAdjustmentService.adjust_product(
                self.scope, actor_id=self.user.id, product_id=composite.id,
                adjustment_type='increase', quantity=1,
            )
        self.assertEqual(ctx.exception.code, 'COMPOSITE_PRODUCT')

    def test_product_of_another_company_is_not_found(self):
        foreign = TestDataFactory.create_product(TestDataFactory.create_store(), stock=5)
        with self.assertRaises(NotFoundError):
            StockAdjustmentService.adjust_product(
                self.scope, actor_id=self.user.id, product_id=foreign.id,
                adjustment_type='decrease', quantity=1,
            )
        foreign.refresh_from_db()
        self.assertEqual(foreign.stock_quantity, Decimal('5'))


class IngredientStockUpdateTests(TestCase):

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.store = TestDataFactory.create_store(self.company)
        self.user = TestDataFactory.create_user(company=self.company)
        self.scope = TestDataFactory.scope_for(self.user)
        self.ingredient = TestDataFactory.create_ingredient(self.store, stock=100, unit_cost=Decimal('0.20'))

    def update(self, movement_type, quantity, **kwargs):
        return StockAdjustmentService.update_ingredient_stock(
            self.scope, actor_id=self.user.id, ingredient_id=self.ingredient.id,
            movement_type=movement_type, quantity=quantity, **kwargs
        )

    def test_stock_in_with_cost(self):
        result = self.update('in', 50, unit_cost='0.25', notes='Supplier delivery')
        self.assertEqual(result['new_stock'], '150')
        movement = IngredientMovement.objects.filter(ingredient=self.ingredient).first()
        self.assertEqual(movement.unit_cost, Decimal('0.25'))
        self.assertEqual(movement.notes, 'Supplier delivery')

    def test_stock_out(self):
        result = self.update('out', 40)
        self.assertEqual(result['new_stock'], '60')
        self.assertEqual(result['movement']['unit_cost'], '0.2')

    def test_stock_out_beyond_available(self):
        with self.assertRaises(InsufficientStockError):
            self.update('out', 101)

    def test_signed_adjustment(self):
        self.assertEqual(self.update('adjustment', '-12.5')['new_stock'], '87.5')
        self.assertEqual(self.update('adjustment', '2.5')['new_stock'], '90')
        self.assertTrue(StockLedgerService.reconcile(EntityKind.INGREDIENT, self.ingredient.id)['consistent'])

    def test_usage_cannot_be_posted_manually(self):
        with self.assertRaises(ValidationError):
            self.update('usage', 1)
