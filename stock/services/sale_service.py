import logging
from decimal import Decimal
from typing import Dict, Any

from django.db import transaction

from stock.models import Product, Sale, SaleItem, InventoryMovement, IngredientMovement
from stock.services.base_service import (
    BaseService, success_response, paginate_queryset,
    ValidationError, NotFoundError, InsufficientIngredientsError,
    parse_quantity, parse_id, to_decimal, round_decimal, generate_reference,
    get_date_range, decimal_str,
)
from stock.services.catalog_service import ProductService
from stock.services.ledger_service import StockLedgerService, EntityKind
from stock.services.recipe_service import RecipeAvailabilityService

logger = logging.getLogger(__name__)


class SaleService(BaseService):
    model = Sale

    @classmethod
    def serialize(cls, sale: Sale) -> Dict[str, Any]:
        return {
            "id": sale.id,
            "uuid": str(sale.uuid),
            "receipt_number": sale.receipt_number,
            "store_id": sale.store_id,
            "cashier_id": sale.cashier_id,
            "customer_name": sale.customer_name,
            "subtotal": decimal_str(sale.subtotal),
            "discount_amount": decimal_str(sale.discount_amount),
            "total_amount": decimal_str(sale.total_amount),
            "payment_method": sale.payment_method,
            "status": sale.status,
            "notes": sale.notes,
            "created_at": sale.created_at.isoformat(),
            "items": [
                {
                    "product_id": item.product_id,
                    "product_name": item.product_name,
                    "quantity": decimal_str(item.quantity),
                    "unit_price": decimal_str(item.unit_price),
                    "subtotal": decimal_str(item.subtotal),
                }
                for item in sale.items.all()
            ],
        }

    @classmethod
    def product_availability(cls, scope, product_id, quantity=1) -> Dict[str, Any]:
        product = ProductService.get_or_404(scope, product_id)
        quantity = parse_quantity(quantity)

        if product.is_composite:
            availability = RecipeAvailabilityService.check(product, quantity)
            return success_response({
                **availability,
                "is_composite": True,
                "available": availability["can_manufacture"],
            })

        if not product.is_stock_tracked:
            return success_response({
                "product_id": product.id,
                "product_name": product.name,
                "is_composite": False,
                "available": True,
                "stock_quantity": None,
                "requested_quantity": decimal_str(quantity),
            })

        return success_response({
            "product_id": product.id,
            "product_name": product.name,
            "is_composite": False,
            "available": product.stock_quantity >= quantity,
            "stock_quantity": decimal_str(product.stock_quantity),
            "requested_quantity": decimal_str(quantity),
        })

    @classmethod
    @transaction.atomic
    def create(cls, scope, actor_id: int = None, store_id=None, items=None,
               payment_method: str = Sale.PaymentMethod.CASH, discount_amount=None,
               customer_name: str = "", notes: str = "") -> Dict[str, Any]:
        store_id = cls.require_store(scope, store_id)
        if not items or not isinstance(items, list):
            raise ValidationError("A sale needs at least one item", "items")
        if payment_method not in Sale.PaymentMethod.values:
            raise ValidationError(
                f"Invalid payment_method. Valid: {Sale.PaymentMethod.values}", "payment_method"
            )

        lines = []
        for index, row in enumerate(items):
            if not isinstance(row, dict):
                raise ValidationError(f"items[{index}] must be an object", "items")
            product_id = parse_id(row.get("product_id"), f"items[{index}].product_id")
            quantity = parse_quantity(row.get("quantity"), f"items[{index}].quantity")
            try:
                product = Product.objects.get(id=product_id, store_id=store_id, is_active=True)
            except Product.DoesNotExist:
                raise NotFoundError("Product", product_id)

            unit_price = to_decimal(row.get("unit_price"), product.default_price)
            if unit_price < 0:
                raise ValidationError(f"items[{index}].unit_price cannot be negative", "unit_price")
            lines.append((product, quantity, unit_price, round_decimal(unit_price * quantity, 2)))

        subtotal = sum((line[3] for line in lines), Decimal("0"))
        discount = round_decimal(to_decimal(discount_amount), 2)
        if discount < 0 or discount > subtotal:
            raise ValidationError("discount_amount must be between 0 and the subtotal", "discount_amount")

        sale = Sale.objects.create(
            receipt_number=cls._next_receipt(),
            store_id=store_id,
            cashier_id=actor_id,
            customer_name=customer_name or "",
            subtotal=subtotal,
            discount_amount=discount,
            total_amount=subtotal - discount,
            payment_method=payment_method,
            notes=notes or "",
        )
        SaleItem.objects.bulk_create([
            SaleItem(
                sale=sale,
                product=product,
                product_name=product.name,
                quantity=quantity,
                unit_price=unit_price,
                subtotal=line_total,
            )
            for product, quantity, unit_price, line_total in lines
        ])

        for product, quantity, _, _ in lines:
            cls._fulfil(sale, product, quantity, actor_id)

        logger.info(
            f"Sale {sale.receipt_number} recorded in store {store_id}: "
            f"{len(lines)} item(s), total {sale.total_amount}"
        )
        return success_response({"sale": cls.serialize(sale)}, "Sale completed successfully")

    @classmethod
    def _fulfil(cls, sale: Sale, product: Product, quantity: Decimal, actor_id: int = None) -> None:
        note = f"Sale {sale.receipt_number}"

        if product.is_composite:
            # Composite products are sold out of their ingredients.
            availability = RecipeAvailabilityService.check(product, quantity)
            if not availability["can_manufacture"]:
                raise InsufficientIngredientsError(
                    product.name, RecipeAvailabilityService.shortages(availability)
                )
            for line in product.recipe_lines.select_related("ingredient").order_by("id"):
                StockLedgerService.apply_delta(
                    EntityKind.INGREDIENT, line.ingredient_id, line.ingredient.store_id,
                    -(line.quantity_needed * quantity),
                    movement_type=IngredientMovement.MovementType.USAGE,
                    reference_type=IngredientMovement.ReferenceType.SALE,
                    reference_id=sale.id,
                    actor_id=actor_id,
                    notes=f"{note} - {product.name}",
                )
            return

        if not product.is_stock_tracked:
            return

        StockLedgerService.apply_delta(
            EntityKind.PRODUCT, product.id, product.store_id, -quantity,
            movement_type=InventoryMovement.MovementType.OUT,
            reference_type=InventoryMovement.ReferenceType.SALE,
            reference_id=sale.id,
            actor_id=actor_id,
            notes=note,
        )

    @classmethod
    def get_by_receipt(cls, scope, receipt_number: str) -> Dict[str, Any]:
        try:
            sale = cls.scoped(scope).prefetch_related("items").get(receipt_number=receipt_number)
        except Sale.DoesNotExist:
            raise NotFoundError("Sale", receipt_number)
        return success_response({"sale": cls.serialize(sale)})

    @classmethod
    def list(cls, scope, page: int = 1, per_page: int = None, store_id=None,
             period: str = None) -> Dict[str, Any]:
        queryset = cls.scoped(scope).prefetch_related("items")

        if store_id:
            queryset = queryset.filter(store_id=cls.require_store(scope, store_id))
        if period:
            start, end = get_date_range(period)
            queryset = queryset.filter(created_at__date__gte=start, created_at__date__lte=end)

        items, pagination = paginate_queryset(queryset.order_by("-created_at", "-id"), page, per_page)
        return success_response({
            "sales": [cls.serialize(s) for s in items],
            "pagination": pagination,
        })

    @classmethod
    def _next_receipt(cls) -> str:
        number = generate_reference("RCP", 9)
        while Sale.objects.filter(receipt_number=number).exists():
            number = generate_reference("RCP", 9)
        return number
