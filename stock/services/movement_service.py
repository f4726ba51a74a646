from typing import Dict, Any

from django.conf import settings

from stock.models import InventoryMovement, IngredientMovement
from stock.services.base_service import (
    BaseService, success_response, paginate_queryset, ValidationError, parse_id, decimal_str,
)


class MovementService(BaseService):
    model = InventoryMovement

    @classmethod
    def _serialize_common(cls, movement) -> Dict[str, Any]:
        return {
            "id": movement.id,
            "store_id": movement.store_id,
            "movement_type": movement.movement_type,
            "quantity": decimal_str(movement.quantity),
            "previous_stock": decimal_str(movement.previous_stock),
            "new_stock": decimal_str(movement.new_stock),
            "reference_type": movement.reference_type,
            "reference_id": movement.reference_id,
            "notes": movement.notes,
            "created_by": movement.created_by_id,
            "created_at": movement.created_at.isoformat(),
        }

    @classmethod
    def serialize_product_movement(cls, movement: InventoryMovement) -> Dict[str, Any]:
        data = cls._serialize_common(movement)
        data.update({
            "product_id": movement.product_id,
            "product_name": movement.product.name,
            "sku": movement.product.sku,
        })
        return data

    @classmethod
    def serialize_ingredient_movement(cls, movement: IngredientMovement) -> Dict[str, Any]:
        data = cls._serialize_common(movement)
        data.update({
            "ingredient_id": movement.ingredient_id,
            "ingredient_name": movement.ingredient.name,
            "unit": movement.ingredient.unit,
            "unit_cost": decimal_str(movement.unit_cost),
        })
        return data

    @classmethod
    def list_product_movements(cls, scope, page: int = 1, per_page: int = None, store_id=None,
                               product_id=None, movement_type: str = None,
                               reference_type: str = None) -> Dict[str, Any]:
        queryset = cls.scoped(scope).select_related("product")

        if store_id:
            queryset = queryset.filter(store_id=cls.require_store(scope, store_id))
        if product_id:
            queryset = queryset.filter(product_id=parse_id(product_id, "product_id"))
        if movement_type:
            if movement_type not in InventoryMovement.MovementType.values:
                raise ValidationError(f"Invalid movement_type: {movement_type}", "movement_type")
            queryset = queryset.filter(movement_type=movement_type)
        if reference_type:
            if reference_type not in InventoryMovement.ReferenceType.values:
                raise ValidationError(f"Invalid reference_type: {reference_type}", "reference_type")
            queryset = queryset.filter(reference_type=reference_type)

        items, pagination = paginate_queryset(queryset.order_by("-created_at", "-id"), page, per_page)
        return success_response({
            "movements": [cls.serialize_product_movement(m) for m in items],
            "pagination": pagination,
        })

    @classmethod
    def list_ingredient_movements(cls, scope, page: int = 1, per_page: int = None,
                                  store_id=None, ingredient_id=None) -> Dict[str, Any]:
        queryset = IngredientMovement.objects.filter(
            store_id__in=scope.store_ids
        ).select_related("ingredient")

        if store_id:
            queryset = queryset.filter(store_id=cls.require_store(scope, store_id))
        if ingredient_id:
            queryset = queryset.filter(ingredient_id=parse_id(ingredient_id, "ingredient_id"))

        if per_page is None:
            per_page = getattr(settings, "INGREDIENT_MOVEMENT_LIMIT", 100)

        items, pagination = paginate_queryset(queryset.order_by("-created_at", "-id"), page, per_page)
        return success_response({
            "movements": [cls.serialize_ingredient_movement(m) for m in items],
            "pagination": pagination,
        })
