import logging
import time
from typing import Dict, Any, Optional

from django.db import transaction
from django.db.models import Q, F
from django.utils import timezone

from stock.models import Category, Product, Ingredient, InventoryMovement, IngredientMovement
from stock.services.base_service import (
    BaseService, success_response, paginate_queryset,
    ValidationError, NotFoundError, ConflictError, InvalidStateError,
    to_decimal, parse_amount, require_fields, decimal_str,
)
from stock.services.ledger_service import StockLedgerService, EntityKind

logger = logging.getLogger(__name__)


def _generated_sku(name: str, prefix: str = "") -> str:
    stamp = str(int(time.time() * 1000))[-6:]
    return f"{prefix}{name.strip()[:3].upper()}{stamp}"


class CategoryService:

    @classmethod
    def serialize(cls, category: Category) -> Dict[str, Any]:
        return {
            "id": category.id,
            "name": category.name,
            "description": category.description,
            "color": category.color,
            "is_active": category.is_active,
        }

    @classmethod
    def list(cls, scope) -> Dict[str, Any]:
        categories = Category.objects.filter(company_id=scope.company_id, is_active=True)
        return success_response({"categories": [cls.serialize(c) for c in categories]})

    @classmethod
    def create(cls, scope, name: str = None, description: str = "", color: str = "") -> Dict[str, Any]:
        if not name or not name.strip():
            raise ValidationError("Category name is required", "name")
        if Category.objects.filter(company_id=scope.company_id, name__iexact=name.strip()).exists():
            raise ConflictError(f"Category '{name}' already exists", "name")

        category = Category.objects.create(
            company_id=scope.company_id,
            name=name.strip(),
            description=(description or "").strip(),
            color=color or "",
        )
        return success_response({"category": cls.serialize(category)}, "Category created")

    @classmethod
    def get_in_company(cls, scope, category_id) -> Optional[Category]:
        if category_id in (None, ""):
            return None
        try:
            return Category.objects.get(id=int(category_id), company_id=scope.company_id)
        except (Category.DoesNotExist, TypeError, ValueError):
            raise NotFoundError("Category", category_id)


class ProductService(BaseService):
    model = Product

    UPDATABLE_FIELDS = (
        "name", "description", "barcode", "default_price", "manila_price",
        "delivery_price", "wholesale_price", "unit", "weight", "dimensions",
        "image_url", "images", "tags", "is_featured", "min_stock_level",
        "max_stock_level", "is_active",
    )
    DECIMAL_FIELDS = (
        "default_price", "manila_price", "delivery_price", "wholesale_price",
        "weight", "min_stock_level", "max_stock_level",
    )

    @classmethod
    def serialize(cls, product: Product) -> Dict[str, Any]:
        return {
            "id": product.id,
            "uuid": str(product.uuid),
            "store_id": product.store_id,
            "category_id": product.category_id,
            "name": product.name,
            "description": product.description,
            "sku": product.sku,
            "barcode": product.barcode,
            "default_price": decimal_str(product.default_price),
            "manila_price": decimal_str(product.manila_price),
            "delivery_price": decimal_str(product.delivery_price),
            "wholesale_price": decimal_str(product.wholesale_price),
            "unit": product.unit,
            "weight": decimal_str(product.weight),
            "dimensions": product.dimensions,
            "image_url": product.image_url,
            "images": product.images,
            "tags": product.tags,
            "is_featured": product.is_featured,
            "stock_quantity": decimal_str(product.stock_quantity),
            "min_stock_level": decimal_str(product.min_stock_level),
            "max_stock_level": decimal_str(product.max_stock_level),
            "is_composite": product.is_composite,
            "recipe_cost": decimal_str(product.recipe_cost),
            "is_active": product.is_active,
            "created_at": product.created_at.isoformat(),
            "updated_at": product.updated_at.isoformat(),
        }

    @classmethod
    def serialize_brief(cls, product: Product) -> Dict[str, Any]:
        return {
            "id": product.id,
            "name": product.name,
            "sku": product.sku,
            "store_id": product.store_id,
        }

    @classmethod
    def list(cls, scope, page: int = 1, per_page: int = None, store_id=None,
             category_id=None, search: str = None, active_only: bool = True,
             composite: Optional[bool] = None) -> Dict[str, Any]:
        queryset = cls.scoped(scope).select_related("category")

        if store_id:
            queryset = queryset.filter(store_id=cls.require_store(scope, store_id))
        if active_only:
            queryset = queryset.filter(is_active=True)
        if category_id:
            queryset = queryset.filter(category_id=category_id)
        if composite is not None:
            queryset = queryset.filter(is_composite=composite)
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) |
                Q(sku__icontains=search) |
                Q(barcode=search)
            )

        items, pagination = paginate_queryset(queryset.order_by("name"), page, per_page)
        return success_response({
            "products": [cls.serialize(p) for p in items],
            "pagination": pagination,
        })

    @classmethod
    def get(cls, scope, product_id) -> Dict[str, Any]:
        product = cls.get_or_404(scope, product_id)
        return success_response({"product": cls.serialize(product)})

    @classmethod
    @transaction.atomic
    def create(cls, scope, data: Dict[str, Any], actor_id: int = None) -> Dict[str, Any]:
        require_fields(data, "name", "store_id", "default_price")
        store_id = cls.require_store(scope, data["store_id"])
        name = data["name"].strip()
        category = CategoryService.get_in_company(scope, data.get("category_id"))

        sku = (data.get("sku") or "").strip() or _generated_sku(name)
        if Product.objects.filter(store_id=store_id, sku=sku).exists():
            raise ConflictError(f"SKU already exists: {sku}", "sku", code="SKU_EXISTS")

        is_composite = bool(data.get("is_composite", False))
        opening_stock = to_decimal(data.get("stock_quantity"))
        if opening_stock < 0:
            raise ValidationError("stock_quantity cannot be negative", "stock_quantity")

        product = Product.objects.create(
            store_id=store_id,
            category=category,
            name=name,
            description=(data.get("description") or "").strip(),
            sku=sku,
            barcode=data.get("barcode") or "",
            default_price=parse_amount(data["default_price"], "default_price"),
            manila_price=to_decimal(data.get("manila_price"), None),
            delivery_price=to_decimal(data.get("delivery_price"), None),
            wholesale_price=to_decimal(data.get("wholesale_price"), None),
            unit=data.get("unit") or "pcs",
            weight=to_decimal(data.get("weight"), None),
            dimensions=data.get("dimensions") or "",
            image_url=data.get("image_url") or "",
            images=data.get("images") or [],
            tags=data.get("tags") or [],
            is_featured=bool(data.get("is_featured", False)),
            # Composite products derive availability from their recipe.
            stock_quantity=None if is_composite else 0,
            min_stock_level=None if is_composite else to_decimal(data.get("min_stock_level"), 5),
            max_stock_level=None if is_composite else to_decimal(data.get("max_stock_level"), 100),
            is_composite=is_composite,
            created_by_id=actor_id,
        )

        if opening_stock > 0 and not is_composite:
            entry = StockLedgerService.apply_delta(
                EntityKind.PRODUCT, product.id, store_id, opening_stock,
                movement_type=InventoryMovement.MovementType.IN,
                reference_type=InventoryMovement.ReferenceType.MANUAL_ADJUSTMENT,
                actor_id=actor_id,
                notes="Opening stock",
            )
            product = entry.entity

        logger.info(f"Product {product.id} ({product.sku}) created in store {store_id}")
        return success_response({"product": cls.serialize(product)}, "Product created successfully")

    @classmethod
    @transaction.atomic
    def update(cls, scope, product_id, data: Dict[str, Any]) -> Dict[str, Any]:
        product = cls.get_or_404(scope, product_id, cls.scoped(scope).select_for_update())
        changed = []

        if "stock_quantity" in data:
            raise ValidationError(
                "Stock cannot be edited directly; use a stock adjustment", "stock_quantity"
            )

        if "sku" in data and data["sku"] != product.sku:
            sku = (data["sku"] or "").strip()
            if not sku:
                raise ValidationError("SKU cannot be empty", "sku")
            if Product.objects.filter(store_id=product.store_id, sku=sku).exclude(id=product.id).exists():
                raise ConflictError(f"SKU already exists: {sku}", "sku", code="SKU_EXISTS")
            product.sku = sku
            changed.append("sku")

        if "category_id" in data:
            product.category = CategoryService.get_in_company(scope, data["category_id"])
            changed.append("category")

        for field in cls.UPDATABLE_FIELDS:
            if field not in data:
                continue
            nullable = Product._meta.get_field(field).null
            value = data[field]
            if field in cls.DECIMAL_FIELDS:
                value = parse_amount(value, field, nullable=nullable)
            elif value is None and not nullable:
                raise ValidationError(f"{field} cannot be null", field)
            setattr(product, field, value)
            changed.append(field)

        if not product.name:
            raise ValidationError("Product name is required", "name")

        # stock_quantity is never part of update_fields
        product.save(update_fields=changed + ["updated_at"])
        return success_response({"product": cls.serialize(product)}, "Product updated")

    @classmethod
    def deactivate(cls, scope, product_id) -> Dict[str, Any]:
        product = cls.get_or_404(scope, product_id)
        product.is_active = False
        product.save(update_fields=["is_active", "updated_at"])
        logger.info(f"Product {product.id} deactivated")
        return success_response({"product": cls.serialize(product)}, "Product deactivated")

    @classmethod
    def low_stock_alerts(cls, scope, store_id=None) -> Dict[str, Any]:
        products = cls.scoped(scope).filter(
            is_active=True, is_composite=False, stock_quantity__isnull=False
        ).select_related("category")
        ingredients = IngredientService.scoped(scope).filter(is_active=True)

        if store_id:
            store_id = cls.require_store(scope, store_id)
            products = products.filter(store_id=store_id)
            ingredients = ingredients.filter(store_id=store_id)

        alerts = []
        for product in products.filter(stock_quantity=0):
            alerts.append({
                **cls.serialize_brief(product),
                "kind": "product",
                "stock_quantity": decimal_str(product.stock_quantity),
                "min_stock_level": decimal_str(product.min_stock_level),
                "alert_type": "out_of_stock",
                "severity": "critical",
                "message": "Product is out of stock",
            })

        low = products.filter(
            stock_quantity__gt=0,
            min_stock_level__isnull=False,
            stock_quantity__lte=F("min_stock_level"),
        )
        for product in low:
            alerts.append({
                **cls.serialize_brief(product),
                "kind": "product",
                "stock_quantity": decimal_str(product.stock_quantity),
                "min_stock_level": decimal_str(product.min_stock_level),
                "alert_type": "low_stock",
                "severity": "warning",
                "message": f"Only {decimal_str(product.stock_quantity)} units left "
                           f"(Min: {decimal_str(product.min_stock_level)})",
            })

        for ingredient in ingredients.filter(stock_quantity__lte=F("min_stock_level")):
            out = ingredient.stock_quantity <= 0
            alerts.append({
                "id": ingredient.id,
                "name": ingredient.name,
                "sku": ingredient.sku,
                "store_id": ingredient.store_id,
                "kind": "ingredient",
                "stock_quantity": decimal_str(ingredient.stock_quantity),
                "min_stock_level": decimal_str(ingredient.min_stock_level),
                "alert_type": "out_of_stock" if out else "low_stock",
                "severity": "critical" if out else "warning",
                "message": f"{decimal_str(ingredient.stock_quantity)} {ingredient.unit} left",
            })

        return success_response({
            "alerts": alerts,
            "count": len(alerts),
            "timestamp": timezone.now().isoformat(),
        })


class IngredientService(BaseService):
    model = Ingredient

    UPDATABLE_FIELDS = ("name", "description", "unit", "unit_cost", "min_stock_level", "supplier")

    @classmethod
    def serialize(cls, ingredient: Ingredient) -> Dict[str, Any]:
        return {
            "id": ingredient.id,
            "uuid": str(ingredient.uuid),
            "store_id": ingredient.store_id,
            "name": ingredient.name,
            "description": ingredient.description,
            "sku": ingredient.sku,
            "unit": ingredient.unit,
            "unit_cost": decimal_str(ingredient.unit_cost),
            "stock_quantity": decimal_str(ingredient.stock_quantity),
            "min_stock_level": decimal_str(ingredient.min_stock_level),
            "supplier": ingredient.supplier,
            "is_active": ingredient.is_active,
            "created_at": ingredient.created_at.isoformat(),
            "updated_at": ingredient.updated_at.isoformat(),
        }

    @classmethod
    def list(cls, scope, page: int = 1, per_page: int = None, store_id=None,
             search: str = None, active_only: bool = True) -> Dict[str, Any]:
        queryset = cls.scoped(scope)
        if store_id:
            queryset = queryset.filter(store_id=cls.require_store(scope, store_id))
        if active_only:
            queryset = queryset.filter(is_active=True)
        if search:
            queryset = queryset.filter(Q(name__icontains=search) | Q(sku__icontains=search))

        items, pagination = paginate_queryset(queryset.order_by("name"), page, per_page)
        return success_response({
            "ingredients": [cls.serialize(i) for i in items],
            "pagination": pagination,
        })

    @classmethod
    def get(cls, scope, ingredient_id) -> Dict[str, Any]:
        ingredient = cls.get_or_404(scope, ingredient_id)
        return success_response({"ingredient": cls.serialize(ingredient)})

    @classmethod
    @transaction.atomic
    def create(cls, scope, data: Dict[str, Any], actor_id: int = None) -> Dict[str, Any]:
        require_fields(data, "name", "unit", "unit_cost", "store_id")
        store_id = cls.require_store(scope, data["store_id"])
        name = data["name"].strip()

        sku = (data.get("sku") or "").strip() or _generated_sku(name, prefix="ING")
        if Ingredient.objects.filter(store_id=store_id, sku=sku).exists():
            raise ConflictError(f"SKU already exists: {sku}", "sku", code="SKU_EXISTS")

        unit_cost = parse_amount(data["unit_cost"], "unit_cost")
        opening_stock = to_decimal(data.get("stock_quantity"))
        if opening_stock < 0:
            raise ValidationError("stock_quantity cannot be negative", "stock_quantity")

        ingredient = Ingredient.objects.create(
            store_id=store_id,
            name=name,
            description=(data.get("description") or "").strip(),
            sku=sku,
            unit=data["unit"],
            unit_cost=unit_cost,
            stock_quantity=0,
            min_stock_level=to_decimal(data.get("min_stock_level"), 10),
            supplier=(data.get("supplier") or "").strip(),
            created_by_id=actor_id,
        )

        if opening_stock > 0:
            entry = StockLedgerService.apply_delta(
                EntityKind.INGREDIENT, ingredient.id, store_id, opening_stock,
                movement_type=IngredientMovement.MovementType.IN,
                reference_type=IngredientMovement.ReferenceType.MANUAL_ADJUSTMENT,
                actor_id=actor_id,
                notes="Opening stock",
                unit_cost=unit_cost,
            )
            ingredient = entry.entity

        logger.info(f"Ingredient {ingredient.id} ({ingredient.sku}) created in store {store_id}")
        return success_response({"ingredient": cls.serialize(ingredient)}, "Ingredient created successfully")

    @classmethod
    @transaction.atomic
    def update(cls, scope, ingredient_id, data: Dict[str, Any]) -> Dict[str, Any]:
        ingredient = cls.get_or_404(scope, ingredient_id, cls.scoped(scope).select_for_update())
        changed = []

        if "stock_quantity" in data:
            raise ValidationError(
                "Stock cannot be edited directly; use an ingredient stock update", "stock_quantity"
            )

        if "sku" in data and data["sku"] != ingredient.sku:
            sku = (data["sku"] or "").strip()
            if not sku:
                raise ValidationError("SKU cannot be empty", "sku")
            if Ingredient.objects.filter(store_id=ingredient.store_id, sku=sku).exclude(id=ingredient.id).exists():
                raise ConflictError(f"SKU already exists: {sku}", "sku", code="SKU_EXISTS")
            ingredient.sku = sku
            changed.append("sku")

        for field in cls.UPDATABLE_FIELDS:
            if field not in data:
                continue
            value = data[field]
            if field in ("unit_cost", "min_stock_level"):
                value = parse_amount(value, field)
            elif value is None:
                raise ValidationError(f"{field} cannot be null", field)
            setattr(ingredient, field, value)
            changed.append(field)

        if "is_active" in data:
            is_active = bool(data["is_active"])
            if not is_active and ingredient.is_active:
                cls._ensure_unused(ingredient)
            ingredient.is_active = is_active
            changed.append("is_active")

        if not ingredient.name:
            raise ValidationError("Ingredient name is required", "name")

        ingredient.save(update_fields=changed + ["updated_at"])
        return success_response({"ingredient": cls.serialize(ingredient)}, "Ingredient updated")

    @classmethod
    def _ensure_unused(cls, ingredient: Ingredient):
        if ingredient.recipe_lines.exists():
            raise InvalidStateError(
                "Cannot delete ingredient that is used in product recipes", "in_use"
            )

    @classmethod
    def deactivate(cls, scope, ingredient_id) -> Dict[str, Any]:
        ingredient = cls.get_or_404(scope, ingredient_id)
        cls._ensure_unused(ingredient)
        ingredient.is_active = False
        ingredient.save(update_fields=["is_active", "updated_at"])
        logger.info(f"Ingredient {ingredient.id} deactivated")
        return success_response({"ingredient": cls.serialize(ingredient)}, "Ingredient deactivated")
