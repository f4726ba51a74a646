import logging
from decimal import Decimal
from typing import Dict, Any, List

from django.db import transaction

from stock.models import Product, Ingredient, ProductRecipe
from stock.services.base_service import (
    success_response, ValidationError, NotFoundError,
    parse_quantity, parse_id, round_decimal, decimal_str,
)
from stock.services.catalog_service import ProductService

logger = logging.getLogger(__name__)


class RecipeAvailabilityService:
    """
    Read-only projection of how much of a composite product the current
    ingredient stock can make. Used as-is by the POS, recipe and
    manufacturing surfaces.
    """

    @classmethod
    def check(cls, product: Product, quantity: Decimal) -> Dict[str, Any]:
        if not product.is_composite:
            raise ValidationError(
                f"{product.name} is not a composite product", "product_id", code="NOT_COMPOSITE"
            )

        lines = list(product.recipe_lines.select_related("ingredient").order_by("id"))
        if not lines:
            raise ValidationError(
                f"No recipe defined for {product.name}", "product_id", code="NO_RECIPE"
            )

        ingredients = []
        max_quantity = None
        for line in lines:
            per_unit = line.quantity_needed
            available = line.ingredient.stock_quantity
            needed = per_unit * quantity
            producible = int(available // per_unit) if available > 0 else 0
            max_quantity = producible if max_quantity is None else min(max_quantity, producible)

            ingredients.append({
                "ingredient_id": line.ingredient_id,
                "ingredient_name": line.ingredient.name,
                "quantity_needed": decimal_str(per_unit),
                "needed": decimal_str(needed),
                "available": decimal_str(available),
                "sufficient": available >= needed,
                "shortage": decimal_str(max(Decimal("0"), needed - available)),
                "unit": line.unit,
            })

        return {
            "product_id": product.id,
            "product_name": product.name,
            "requested_quantity": decimal_str(quantity),
            "can_manufacture": all(i["sufficient"] for i in ingredients),
            "max_quantity": max_quantity,
            "ingredients": ingredients,
        }

    @classmethod
    def shortages(cls, availability: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [
            {
                "ingredient_id": i["ingredient_id"],
                "ingredient_name": i["ingredient_name"],
                "needed": i["needed"],
                "available": i["available"],
                "shortage": i["shortage"],
                "unit": i["unit"],
            }
            for i in availability["ingredients"]
            if not i["sufficient"]
        ]


class RecipeService:

    @classmethod
    def serialize_line(cls, line: ProductRecipe) -> Dict[str, Any]:
        ingredient = line.ingredient
        return {
            "id": line.id,
            "ingredient_id": ingredient.id,
            "ingredient_name": ingredient.name,
            "ingredient_unit": ingredient.unit,
            "unit_cost": decimal_str(ingredient.unit_cost),
            "stock_quantity": decimal_str(ingredient.stock_quantity),
            "quantity_needed": decimal_str(line.quantity_needed),
            "unit": line.unit,
            "notes": line.notes,
            "line_cost": decimal_str(round_decimal(ingredient.unit_cost * line.quantity_needed)),
        }

    @classmethod
    def total_cost(cls, lines) -> Decimal:
        total = sum(
            (line.ingredient.unit_cost * line.quantity_needed for line in lines),
            Decimal("0"),
        )
        return round_decimal(total)

    @classmethod
    def get(cls, scope, product_id) -> Dict[str, Any]:
        product = ProductService.get_or_404(scope, product_id)
        lines = list(product.recipe_lines.select_related("ingredient").order_by("id"))
        return success_response({
            "product_id": product.id,
            "product_name": product.name,
            "is_composite": product.is_composite,
            "recipe": [cls.serialize_line(line) for line in lines],
            "total_cost": decimal_str(cls.total_cost(lines)),
        })

    @classmethod
    @transaction.atomic
    def save(cls, scope, product_id, ingredients=None) -> Dict[str, Any]:
        product = ProductService.get_or_404(scope, product_id, ProductService.scoped(scope).select_for_update())

        if ingredients is None:
            ingredients = []
        if not isinstance(ingredients, list):
            raise ValidationError("ingredients must be a list", "ingredients")

        new_lines = []
        seen = set()
        for index, row in enumerate(ingredients):
            if not isinstance(row, dict):
                raise ValidationError(f"ingredients[{index}] must be an object", "ingredients")
            ingredient_id = parse_id(row.get("ingredient_id"), f"ingredients[{index}].ingredient_id")
            quantity_needed = parse_quantity(row.get("quantity_needed"), f"ingredients[{index}].quantity_needed")
            unit = row.get("unit")
            if not unit:
                raise ValidationError(f"ingredients[{index}].unit is required", f"ingredients[{index}].unit")
            if ingredient_id in seen:
                raise ValidationError(
                    f"Ingredient {ingredient_id} is listed more than once", "ingredients"
                )
            seen.add(ingredient_id)

            try:
                ingredient = Ingredient.objects.get(
                    id=ingredient_id, store_id=product.store_id, is_active=True
                )
            except Ingredient.DoesNotExist:
                raise NotFoundError("Ingredient", ingredient_id)

            new_lines.append(ProductRecipe(
                product=product,
                ingredient=ingredient,
                quantity_needed=quantity_needed,
                unit=unit,
                notes=row.get("notes") or "",
            ))

        product.recipe_lines.all().delete()
        ProductRecipe.objects.bulk_create(new_lines)

        product.is_composite = bool(new_lines)
        product.recipe_cost = cls.total_cost(new_lines) if new_lines else Decimal("0")
        product.save(update_fields=["is_composite", "recipe_cost", "updated_at"])

        logger.info(
            f"Recipe for product {product.id} saved with {len(new_lines)} lines "
            f"(cost {product.recipe_cost})"
        )
        result = cls.get(scope, product.id)
        result["message"] = "Recipe saved successfully"
        return result

    @classmethod
    def check_availability(cls, scope, product_id, quantity=1) -> Dict[str, Any]:
        product = ProductService.get_or_404(scope, product_id)
        quantity = parse_quantity(quantity)

        if not product.is_composite:
            return success_response({
                "product_id": product.id,
                "product_name": product.name,
                "is_composite": False,
                "can_make": True,
                "message": "Product is not composite",
            })

        availability = RecipeAvailabilityService.check(product, quantity)
        return success_response({
            **availability,
            "is_composite": True,
            "can_make": availability["can_manufacture"],
        })
