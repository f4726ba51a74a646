"""
Test utilities and factories for creating test data
"""
import random
import string
from decimal import Decimal

from rest_framework.test import APIClient

from main.models import Company, Store, User
from main.services.auth_service import AuthService
from main.services.scope_service import ScopeService
from stock.models import Category, Product, Ingredient, ProductRecipe, InventoryMovement, IngredientMovement
from stock.services.ledger_service import StockLedgerService, EntityKind


class TestDataFactory:
    """Factory class for creating test data"""

    DEFAULT_PASSWORD = 'testpass123'

    @staticmethod
    def random_string(length=10):
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_company(name=None):
        if not name:
            name = f'Company_{TestDataFactory.random_string(6)}'
        return Company.objects.create(name=name, email=f'{name.lower()}@test.com')

    @staticmethod
    def create_store(company=None, name=None, code=None):
        if company is None:
            company = TestDataFactory.create_company()
        if not name:
            name = f'Store_{TestDataFactory.random_string(6)}'
        if not code:
            code = f'ST_{TestDataFactory.random_string(4).upper()}'
        return Store.objects.create(
            company=company,
            name=name,
            code=code,
            address=f'Test Address {name}',
            phone='1234567890'
        )

    @staticmethod
    def create_user(company=None, role=User.RoleChoices.OWNER, store=None, email=None,
                    password=DEFAULT_PASSWORD, status=User.UserStatus.ACTIVE):
        if company is None:
            company = TestDataFactory.create_company()
        if not email:
            email = f'user_{TestDataFactory.random_string(6).lower()}@test.com'
        user = User(
            company=company,
            store=store,
            first_name='Test',
            last_name=role.title(),
            email=email,
            role=role,
            status=status,
        )
        user.set_password(password)
        user.save()
        return user

    @staticmethod
    def scope_for(user):
        return ScopeService.for_user(user)

    @staticmethod
    def create_category(company, name=None):
        if not name:
            name = f'Category_{TestDataFactory.random_string(6)}'
        return Category.objects.create(company=company, name=name)

    @staticmethod
    def create_product(store, name=None, sku=None, stock=None, price=Decimal('10.00'),
                       is_composite=False, min_stock_level=Decimal('5')):
        """Creates a product; opening stock goes through the ledger like the API does."""
        if not name:
            name = f'Product_{TestDataFactory.random_string(6)}'
        if not sku:
            sku = f'SKU_{TestDataFactory.random_string(8)}'
        product = Product.objects.create(
            store=store,
            name=name,
            sku=sku,
            default_price=price,
            stock_quantity=None if is_composite else Decimal('0'),
            min_stock_level=None if is_composite else min_stock_level,
            is_composite=is_composite,
        )
        if stock and not is_composite:
            StockLedgerService.apply_delta(
                EntityKind.PRODUCT, product.id, store.id, Decimal(stock),
                movement_type=InventoryMovement.MovementType.IN,
                reference_type=InventoryMovement.ReferenceType.MANUAL_ADJUSTMENT,
                notes='Opening stock',
            )
            product.refresh_from_db()
        return product

    @staticmethod
    def create_ingredient(store, name=None, unit='g', stock=None, unit_cost=Decimal('0.50'),
                          min_stock_level=Decimal('10')):
        if not name:
            name = f'Ingredient_{TestDataFactory.random_string(6)}'
        ingredient = Ingredient.objects.create(
            store=store,
            name=name,
            sku=f'ING_{TestDataFactory.random_string(8)}',
            unit=unit,
            unit_cost=unit_cost,
            stock_quantity=Decimal('0'),
            min_stock_level=min_stock_level,
        )
        if stock:
            StockLedgerService.apply_delta(
                EntityKind.INGREDIENT, ingredient.id, store.id, Decimal(stock),
                movement_type=IngredientMovement.MovementType.IN,
                reference_type=IngredientMovement.ReferenceType.MANUAL_ADJUSTMENT,
                notes='Opening stock',
            )
            ingredient.refresh_from_db()
        return ingredient

    @staticmethod
    def create_recipe(product, lines):
        """``lines`` is a list of ``(ingredient, quantity_needed)`` pairs."""
        for ingredient, quantity_needed in lines:
            ProductRecipe.objects.create(
                product=product,
                ingredient=ingredient,
                quantity_needed=Decimal(quantity_needed),
                unit=ingredient.unit,
            )
        product.is_composite = True
        product.stock_quantity = None
        product.min_stock_level = None
        product.save(update_fields=['is_composite', 'stock_quantity', 'min_stock_level', 'updated_at'])
        return product


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        result = AuthService.login(user.email, TestDataFactory.DEFAULT_PASSWORD)
        assert result['success'], result['message']
        self.token = result['token']
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {self.token}')
        return self

    def logout(self):
        self.credentials()
