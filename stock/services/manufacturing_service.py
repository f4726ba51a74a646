import logging
from datetime import date
from typing import Dict, Any

from django.conf import settings
from django.db import transaction
from django.utils.dateparse import parse_date

from stock.models import ProductManufacturing, InventoryMovement, IngredientMovement
from stock.services.base_service import (
    BaseService, success_response, ValidationError, InsufficientIngredientsError,
    parse_quantity, parse_id, generate_number, decimal_str,
)
from stock.services.catalog_service import ProductService
from stock.services.ledger_service import StockLedgerService, EntityKind
from stock.services.recipe_service import RecipeAvailabilityService

logger = logging.getLogger(__name__)


class ManufacturingService(BaseService):
    model = ProductManufacturing
    resource_name = "Manufacturing record"

    @classmethod
    def serialize(cls, record: ProductManufacturing) -> Dict[str, Any]:
        return {
            "id": record.id,
            "uuid": str(record.uuid),
            "product_id": record.product_id,
            "product_name": record.product.name,
            "store_id": record.store_id,
            "quantity_produced": decimal_str(record.quantity_produced),
            "batch_number": record.batch_number,
            "expiry_date": record.expiry_date.isoformat() if record.expiry_date else None,
            "notes": record.notes,
            "status": record.status,
            "created_by": record.created_by_id,
            "created_at": record.created_at.isoformat(),
        }

    @classmethod
    def check_availability(cls, scope, product_id, quantity=1) -> Dict[str, Any]:
        product = ProductService.get_or_404(scope, product_id)
        quantity = parse_quantity(quantity)
        return success_response(RecipeAvailabilityService.check(product, quantity))

    @classmethod
    @transaction.atomic
    def manufacture(cls, scope, actor_id: int = None, product_id=None, quantity=None,
                    batch_number: str = None, expiry_date=None, notes: str = "") -> Dict[str, Any]:
        quantity = parse_quantity(quantity)
        product = ProductService.get_or_404(scope, product_id, ProductService.scoped(scope).select_for_update())
        expiry = cls._parse_expiry(expiry_date)

        availability = RecipeAvailabilityService.check(product, quantity)
        if not availability["can_manufacture"]:
            shortages = RecipeAvailabilityService.shortages(availability)
            logger.warning(
                f"Manufacturing {quantity} x product {product.id} refused: "
                f"{len(shortages)} ingredient(s) short"
            )
            raise InsufficientIngredientsError(product.name, shortages)

        batch_number = (batch_number or "").strip() or generate_number(
            "MFG", ProductManufacturing, "batch_number"
        )
        record = ProductManufacturing.objects.create(
            product=product,
            store_id=product.store_id,
            quantity_produced=quantity,
            batch_number=batch_number,
            expiry_date=expiry,
            notes=notes or "",
            status=ProductManufacturing.Status.COMPLETED,
            created_by_id=actor_id,
        )

        # Ingredients first, then the finished product.
        ingredients_used = []
        for line in product.recipe_lines.select_related("ingredient").order_by("id"):
            used = line.quantity_needed * quantity
            entry = StockLedgerService.apply_delta(
                EntityKind.INGREDIENT, line.ingredient_id, line.ingredient.store_id, -used,
                movement_type=IngredientMovement.MovementType.USAGE,
                reference_type=IngredientMovement.ReferenceType.MANUFACTURING,
                reference_id=record.id,
                actor_id=actor_id,
                notes=f"Used for manufacturing {decimal_str(quantity)} x {product.name} (Batch: {batch_number})",
            )
            ingredients_used.append({
                "ingredient_id": line.ingredient_id,
                "ingredient_name": line.ingredient.name,
                "quantity_used": decimal_str(used),
                "unit": line.unit,
                "previous_stock": decimal_str(entry.previous_stock),
                "new_stock": decimal_str(entry.new_stock),
            })

        produced = StockLedgerService.apply_delta(
            EntityKind.PRODUCT, product.id, product.store_id, quantity,
            movement_type=InventoryMovement.MovementType.IN,
            reference_type=InventoryMovement.ReferenceType.MANUFACTURING,
            reference_id=record.id,
            actor_id=actor_id,
            notes=f"Manufactured {decimal_str(quantity)} units (Batch: {batch_number})",
        )

        logger.info(
            f"Manufactured {quantity} x product {product.id} batch {batch_number}: "
            f"stock {produced.previous_stock} -> {produced.new_stock}"
        )
        return success_response({
            "manufacturing": cls.serialize(record),
            "product": {
                "id": product.id,
                "name": product.name,
                "previous_stock": decimal_str(produced.previous_stock),
                "new_stock": decimal_str(produced.new_stock),
            },
            "ingredients_used": ingredients_used,
        }, f"Successfully manufactured {decimal_str(quantity)} units of {product.name}")

    @classmethod
    def history(cls, scope, product_id=None, store_id=None, limit: int = None) -> Dict[str, Any]:
        queryset = cls.scoped(scope).select_related("product")

        if product_id:
            queryset = queryset.filter(product_id=parse_id(product_id, "product_id"))
        if store_id:
            queryset = queryset.filter(store_id=cls.require_store(scope, store_id))

        if limit is None:
            limit = getattr(settings, "MANUFACTURING_HISTORY_LIMIT", 50)
        records = queryset.order_by("-created_at", "-id")[:max(1, min(limit, 500))]

        return success_response({"history": [cls.serialize(r) for r in records]})

    @classmethod
    def _parse_expiry(cls, value):
        if value in (None, ""):
            return None
        if isinstance(value, date):
            return value
        try:
            parsed = parse_date(str(value))
        except ValueError:
            parsed = None
        if parsed is None:
            raise ValidationError("expiry_date must be YYYY-MM-DD", "expiry_date")
        return parsed
