import logging
from typing import Dict, Any

from django.conf import settings
from django.db import transaction

from stock.models import InventoryMovement, IngredientMovement
from stock.services.base_service import (
    success_response, ValidationError, parse_quantity, parse_id, to_decimal, decimal_str,
)
from stock.services.catalog_service import ProductService, IngredientService
from stock.services.ledger_service import StockLedgerService, EntityKind
from stock.services.movement_service import MovementService

logger = logging.getLogger(__name__)


class StockAdjustmentService:
    """Operator corrections on product and ingredient stock."""

    ADJUSTMENT_TYPES = ("increase", "decrease")
    INGREDIENT_MOVEMENT_TYPES = ("in", "out", "adjustment")

    @classmethod
    def clamp_manual_decrease(cls) -> bool:
        return getattr(settings, "STOCK_CLAMP_MANUAL_DECREASE", True)

    @classmethod
    @transaction.atomic
    def adjust_product(cls, scope, actor_id: int = None, product_id=None,
                       adjustment_type: str = None, quantity=None, reason: str = "") -> Dict[str, Any]:
        product_id = parse_id(product_id, "product_id")
        if not adjustment_type:
            raise ValidationError("adjustment_type is required", "adjustment_type")
        if adjustment_type not in cls.ADJUSTMENT_TYPES:
            raise ValidationError(
                f"Invalid adjustment_type. Valid: {list(cls.ADJUSTMENT_TYPES)}", "adjustment_type"
            )
        quantity = parse_quantity(quantity)

        product = ProductService.get_or_404(scope, product_id)
        if product.is_composite and adjustment_type == "increase":
            raise ValidationError(
                "Composite product stock can only be increased by manufacturing",
                "product_id",
                code="COMPOSITE_PRODUCT",
            )

        delta = quantity if adjustment_type == "increase" else -quantity
        entry = StockLedgerService.apply_delta(
            EntityKind.PRODUCT, product.id, product.store_id, delta,
            movement_type=InventoryMovement.MovementType.ADJUSTMENT,
            reference_type=InventoryMovement.ReferenceType.MANUAL_ADJUSTMENT,
            actor_id=actor_id,
            notes=f"{adjustment_type} by {decimal_str(quantity)} - {reason or 'Manual adjustment'}",
            clamp_at_zero=adjustment_type == "decrease" and cls.clamp_manual_decrease(),
        )

        logger.info(
            f"Manual {adjustment_type} on product {product.id}: requested {quantity}, "
            f"applied {entry.applied_delta}"
        )
        return success_response({
            "movement": MovementService.serialize_product_movement(entry.movement),
            "new_stock": decimal_str(entry.new_stock),
        }, "Stock adjustment created successfully")

    @classmethod
    @transaction.atomic
    def update_ingredient_stock(cls, scope, actor_id: int = None, ingredient_id=None,
                                movement_type: str = None, quantity=None,
                                unit_cost=None, notes: str = "") -> Dict[str, Any]:
        ingredient_id = parse_id(ingredient_id, "ingredient_id")
        if movement_type not in cls.INGREDIENT_MOVEMENT_TYPES:
            raise ValidationError(
                f"Invalid movement_type. Valid: {list(cls.INGREDIENT_MOVEMENT_TYPES)}", "movement_type"
            )

        # "adjustment" carries its own sign, "in"/"out" take a positive amount
        quantity = parse_quantity(quantity, allow_negative=movement_type == "adjustment")
        delta = -quantity if movement_type == "out" else quantity

        ingredient = IngredientService.get_or_404(scope, ingredient_id)
        entry = StockLedgerService.apply_delta(
            EntityKind.INGREDIENT, ingredient.id, ingredient.store_id, delta,
            movement_type=movement_type,
            reference_type=IngredientMovement.ReferenceType.MANUAL_ADJUSTMENT,
            actor_id=actor_id,
            notes=notes or f"Stock {movement_type}",
            unit_cost=to_decimal(unit_cost, ingredient.unit_cost),
        )

        return success_response({
            "ingredient": IngredientService.serialize(entry.entity),
            "movement": MovementService.serialize_ingredient_movement(entry.movement),
            "new_stock": decimal_str(entry.new_stock),
        }, "Ingredient stock updated successfully")
