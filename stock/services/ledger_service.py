import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

from django.db import transaction
from django.db.models import F, Q, Sum
from django.utils import timezone

from stock.models import Product, Ingredient, InventoryMovement, IngredientMovement
from .base_service import (
    ValidationError, NotFoundError, ConflictError, InsufficientStockError, decimal_str,
)

logger = logging.getLogger(__name__)


class EntityKind:
    PRODUCT = "product"
    INGREDIENT = "ingredient"

    # kind -> (stock model, movement model, movement FK name)
    MODELS = {
        PRODUCT: (Product, InventoryMovement, "product"),
        INGREDIENT: (Ingredient, IngredientMovement, "ingredient"),
    }


@dataclass(frozen=True)
class LedgerEntry:
    entity: Any
    movement: Any
    previous_stock: Decimal
    new_stock: Decimal
    applied_delta: Decimal


class StockLedgerService:
    """
    The only code path that writes ``stock_quantity``.

    Each call locks the row, computes the new head, swaps it in only if the
    stored value is still the one that was read, and appends exactly one
    movement row describing the change.
    """

    @classmethod
    @transaction.atomic
    def apply_delta(
        cls,
        entity_kind: str,
        entity_id: int,
        store_id: int,
        delta: Decimal,
        movement_type: str,
        reference_type: str,
        reference_id: Optional[int] = None,
        actor_id: Optional[int] = None,
        notes: str = "",
        clamp_at_zero: bool = False,
        unit_cost: Optional[Decimal] = None,
    ) -> LedgerEntry:
        model, movement_model, fk_name = cls._resolve(entity_kind)

        delta = Decimal(delta)
        if delta == 0:
            raise ValidationError("Stock change must be non-zero", "quantity", code="INVALID_QUANTITY")
        if movement_type not in movement_model.MovementType.values:
            raise ValidationError(f"Invalid movement type for {entity_kind}: {movement_type}", "movement_type")
        if reference_type not in movement_model.ReferenceType.values:
            raise ValidationError(f"Invalid reference type: {reference_type}", "reference_type")

        try:
            entity = model.objects.select_for_update().get(pk=entity_id, store_id=store_id)
        except model.DoesNotExist:
            raise NotFoundError(model.__name__, entity_id)

        stored = entity.stock_quantity
        previous = stored if stored is not None else Decimal("0")
        new_stock = previous + delta

        if new_stock < 0:
            if not clamp_at_zero:
                logger.warning(
                    f"Rejected {entity_kind} {entity.pk} change {delta}: only {previous} in stock"
                )
                raise InsufficientStockError(entity.name, -delta, previous)
            new_stock = Decimal("0")

        applied = new_stock - previous

        current = Q(stock_quantity__isnull=True) if stored is None else Q(stock_quantity=stored)
        swapped = model.objects.filter(Q(pk=entity.pk) & current).update(
            stock_quantity=new_stock, updated_at=timezone.now()
        )
        if swapped != 1:
            raise ConflictError(
                f"{model.__name__} {entity.pk} stock changed during the operation, please retry",
                "stock_quantity",
                code="CONCURRENT_UPDATE",
            )
        entity.stock_quantity = new_stock

        movement_fields = {
            fk_name: entity,
            "store_id": store_id,
            "movement_type": movement_type,
            "quantity": abs(applied),
            "previous_stock": previous,
            "new_stock": new_stock,
            "reference_type": reference_type,
            "reference_id": reference_id,
            "notes": notes or "",
            "created_by_id": actor_id,
        }
        if unit_cost is not None and movement_model is IngredientMovement:
            movement_fields["unit_cost"] = unit_cost

        movement = movement_model.objects.create(**movement_fields)

        logger.info(
            f"{entity_kind} {entity.pk} @store {store_id}: {previous} -> {new_stock} "
            f"({movement_type}/{reference_type} ref={reference_id} by={actor_id})"
        )
        return LedgerEntry(entity, movement, previous, new_stock, applied)

    @classmethod
    def reconcile(cls, entity_kind: str, entity_id: int) -> Dict[str, Any]:
        """Compares the materialized stock with the movement history."""
        model, movement_model, fk_name = cls._resolve(entity_kind)
        try:
            entity = model.objects.get(pk=entity_id)
        except model.DoesNotExist:
            raise NotFoundError(model.__name__, entity_id)

        movements = movement_model.objects.filter(**{fk_name: entity})
        head = movements.order_by("-id").first()
        net = movements.aggregate(
            net=Sum(F("new_stock") - F("previous_stock"))
        )["net"] or Decimal("0")

        stock = entity.stock_quantity if entity.stock_quantity is not None else Decimal("0")
        head_stock = head.new_stock if head else Decimal("0")

        return {
            "entity_kind": entity_kind,
            "entity_id": entity.pk,
            "stock_quantity": decimal_str(stock),
            "ledger_head": decimal_str(head_stock),
            "ledger_net": decimal_str(net),
            "movement_count": movements.count(),
            "consistent": stock == head_stock == net,
        }

    @classmethod
    def _resolve(cls, entity_kind: str):
        try:
            return EntityKind.MODELS[entity_kind]
        except KeyError:
            raise ValidationError(f"Unknown stock entity: {entity_kind}", "entity_kind")
