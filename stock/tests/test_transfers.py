"""
Tests for inter-store transfers: approval workflow, stock conservation and
destination product resolution
"""
from decimal import Decimal
from unittest import mock

from django.test import TestCase

from main.models import User
from main.test_utils import TestDataFactory
from stock.models import Product, InventoryMovement, InventoryTransfer
from stock.services import (
    InventoryTransferService, StockAdjustmentService, StockLedgerService, EntityKind,
    ValidationError, NotFoundError, InvalidStateError, PermissionDeniedError,
    InsufficientStockError,
)


class TransferTestMixin:

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.main_store = TestDataFactory.create_store(self.company, name='Main')
        self.branch = TestDataFactory.create_store(self.company, name='Branch')
        self.owner = TestDataFactory.create_user(company=self.company)
        self.scope = TestDataFactory.scope_for(self.owner)
        self.category = TestDataFactory.create_category(self.company)
        self.product = TestDataFactory.create_product(self.main_store, name='Cola', sku='COLA-330', stock=50)
        self.product.category = self.category
        self.product.save(update_fields=['category'])

    def request(self, quantity, **kwargs):
        data = {
            'from_store_id': self.main_store.id,
            'to_store_id': self.branch.id,
            'product_id': self.product.id,
            'quantity': quantity,
        }
        data.update(kwargs)
        return InventoryTransferService.create(self.scope, data, actor_id=self.owner.id)['transfer']

    def approve(self, transfer_id):
        return InventoryTransferService.approve(self.scope, actor_id=self.owner.id, transfer_id=transfer_id)

    def complete(self, transfer_id):
        return InventoryTransferService.complete(self.scope, actor_id=self.owner.id, transfer_id=transfer_id)


class TransferLifecycleTests(TransferTestMixin, TestCase):

    def test_request_does_not_touch_stock(self):
        transfer = self.request(20, reason='Restock branch')
        self.assertEqual(transfer['status'], 'pending')
        self.assertTrue(transfer['transfer_number'].startswith('TRF-'))
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, Decimal('50'))

    def test_complete_clones_missing_product(self):
        transfer = self.request(20)
        self.approve(transfer['id'])
        result = self.complete(transfer['id'])

        self.assertTrue(result['is_new_product'])
        self.assertEqual(result['details'], {'source_stock': '30', 'destination_stock': '20'})

        clone = Product.objects.get(store=self.branch, sku='COLA-330')
        self.assertEqual(clone.id, result['destination_product_id'])
        self.assertEqual(clone.name, 'Cola')
        self.assertEqual(clone.category_id, self.category.id)
        self.assertEqual(clone.default_price, self.product.default_price)
        self.assertEqual(clone.stock_quantity, Decimal('20'))

        incoming = InventoryMovement.objects.get(product=clone)
        self.assertEqual(incoming.reference_type, InventoryMovement.ReferenceType.TRANSFER_IN)
        self.assertEqual(incoming.reference_id, transfer['id'])
        self.assertIn('(New product)', incoming.notes)

        outgoing = InventoryMovement.objects.filter(
            product=self.product, reference_type=InventoryMovement.ReferenceType.TRANSFER_OUT
        ).get()
        self.assertEqual(outgoing.quantity, Decimal('20'))
        self.assertEqual(outgoing.notes, f"Transfer to Branch - {transfer['transfer_number']}")

        stored = InventoryTransfer.objects.get(id=transfer['id'])
        self.assertEqual(stored.status, InventoryTransfer.Status.COMPLETED)
        self.assertEqual(stored.received_by_id, self.owner.id)
        self.assertIsNotNone(stored.received_at)

    def test_complete_reuses_product_with_same_sku(self):
        existing = TestDataFactory.create_product(self.branch, name='Cola (branch)', sku='COLA-330', stock=4)
        transfer = self.request(10)
        self.approve(transfer['id'])
        result = self.complete(transfer['id'])

        self.assertFalse(result['is_new_product'])
        self.assertEqual(result['destination_product_id'], existing.id)
        existing.refresh_from_db()
        self.assertEqual(existing.stock_quantity, Decimal('14'))
        self.assertEqual(Product.objects.filter(store=self.branch, sku='COLA-330').count(), 1)

    def test_total_stock_is_conserved(self):
        TestDataFactory.create_product(self.branch, sku='COLA-330', stock=6)
        transfer = self.request('12.5')
        self.approve(transfer['id'])
        self.complete(transfer['id'])

        total = sum(Product.objects.filter(sku='COLA-330').values_list('stock_quantity', flat=True))
        self.assertEqual(total, Decimal('56'))
        for product in Product.objects.filter(sku='COLA-330'):
            self.assertTrue(StockLedgerService.reconcile(EntityKind.PRODUCT, product.id)['consistent'])

    def test_stock_shortfall_at_completion(self):
        transfer = self.request(40)
        self.approve(transfer['id'])
        StockAdjustmentService.adjust_product(
            self.scope, actor_id=self.owner.id, product_id=self.product.id,
            adjustment_type='decrease', quantity=20, reason='Breakage',
        )

        with self.assertRaises(InsufficientStockError):
            self.complete(transfer['id'])

        self.assertEqual(InventoryTransfer.objects.get(id=transfer['id']).status, InventoryTransfer.Status.APPROVED)
        self.assertFalse(Product.objects.filter(store=self.branch).exists())
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, Decimal('30'))

    def test_completed_transfer_is_terminal(self):
        transfer = self.request(5)
        self.approve(transfer['id'])
        self.complete(transfer['id'])

        with self.assertRaises(InvalidStateError):
            self.complete(transfer['id'])
        with self.assertRaises(InvalidStateError):
            InventoryTransferService.reject(self.scope, actor_id=self.owner.id, transfer_id=transfer['id'])
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, Decimal('45'))

    def test_pending_transfer_cannot_be_completed(self):
        transfer = self.request(5)
        with self.assertRaises(InvalidStateError):
            self.complete(transfer['id'])

    def test_reject_only_from_pending(self):
        pending = self.request(5)
        approved = self.request(5)
        self.approve(approved['id'])

        result = InventoryTransferService.reject(
            self.scope, actor_id=self.owner.id, transfer_id=pending['id'], reason='Not needed'
        )
        self.assertEqual(result['transfer']['status'], 'rejected')
        self.assertEqual(result['transfer']['rejection_reason'], 'Not needed')

        with self.assertRaises(InvalidStateError):
            InventoryTransferService.reject(
                self.scope, actor_id=self.owner.id, transfer_id=approved['id'], reason='Too late'
            )
        self.assertEqual(InventoryTransfer.objects.get(id=approved['id']).status, InventoryTransfer.Status.APPROVED)

        with self.assertRaises(InvalidStateError):
            self.approve(pending['id'])
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, Decimal('50'))

    def test_complete_reactivates_deactivated_destination(self):
        existing = TestDataFactory.create_product(self.branch, sku='COLA-330', stock=2)
        existing.is_active = False
        existing.save(update_fields=['is_active'])

        transfer = self.request(8)
        self.approve(transfer['id'])
        result = self.complete(transfer['id'])

        self.assertFalse(result['is_new_product'])
        existing.refresh_from_db()
        self.assertTrue(existing.is_active)
        self.assertEqual(existing.stock_quantity, Decimal('10'))

    def test_failure_while_crediting_destination_rolls_back(self):
        TestDataFactory.create_product(self.branch, sku='COLA-330', stock=6)
        transfer = self.request(20)
        self.approve(transfer['id'])
        movements_before = InventoryMovement.objects.count()

        apply_delta = StockLedgerService.apply_delta
        calls = []

        def failing_apply_delta(*args, **kwargs):
            calls.append(args)
            if len(calls) == 2:
                raise RuntimeError('database went away')
            return apply_delta(*args, **kwargs)

        with mock.patch.object(StockLedgerService, 'apply_delta', side_effect=failing_apply_delta):
            with self.assertRaises(RuntimeError):
                self.complete(transfer['id'])

        self.assertEqual(len(calls), 2)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, Decimal('50'))
        self.assertEqual(Product.objects.get(store=self.branch).stock_quantity, Decimal('6'))
        self.assertEqual(InventoryMovement.objects.count(), movements_before)
        stored = InventoryTransfer.objects.get(id=transfer['id'])
        self.assertEqual(stored.status, InventoryTransfer.Status.APPROVED)
        self.assertIsNone(stored.destination_product_id)


class TransferValidationTests(TransferTestMixin, TestCase):

    def test_same_store(self):
        with self.assertRaises(ValidationError) as ctx:
            self.request(5, to_store_id=self.main_store.id)
        self.assertEqual(ctx.exception.code, 'SAME_STORE_ERROR')

    def test_request_more_than_available(self):
        with self.assertRaises(InsufficientStockError):
            self.request(51)
        self.assertFalse(InventoryTransfer.objects.exists())

    def test_product_must_be_in_source_store(self):
        branch_product = TestDataFactory.create_product(self.branch, stock=5)
        with self.assertRaises(NotFoundError):
            self.request(1, product_id=branch_product.id)

    def test_destination_outside_company(self):
        foreign_store = TestDataFactory.create_store()
        with self.assertRaises(NotFoundError):
            self.request(1, to_store_id=foreign_store.id)

    def test_missing_fields(self):
        with self.assertRaises(ValidationError) as ctx:
            InventoryTransferService.create(
                self.scope, {'from_store_id': self.main_store.id}, actor_id=self.owner.id
            )
        self.assertEqual(ctx.exception.code, 'MISSING_REQUIRED_FIELDS')

    def test_cashier_cannot_approve(self):
        transfer = self.request(5)
        cashier = TestDataFactory.create_user(
            company=self.company, role=User.RoleChoices.CASHIER, store=self.main_store
        )
        with self.assertRaises(PermissionDeniedError):
            InventoryTransferService.approve(
                TestDataFactory.scope_for(cashier), actor_id=cashier.id, transfer_id=transfer['id']
            )

    def test_other_company_cannot_see_transfer(self):
        transfer = self.request(5)
        outsider = TestDataFactory.create_user()
        with self.assertRaises(NotFoundError):
            InventoryTransferService.get(TestDataFactory.scope_for(outsider), transfer['id'])

    def test_list_filters_by_status(self):
        self.request(1)
        second = self.request(2)
        self.approve(second['id'])

        result = InventoryTransferService.list(self.scope, status='approved')
        self.assertEqual([t['id'] for t in result['transfers']], [second['id']])
        with self.assertRaises(ValidationError):
            InventoryTransferService.list(self.scope, status='lost')
