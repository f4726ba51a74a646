"""
Stock Services - inventory business logic

Usage:
    from stock.services import StockLedgerService, EntityKind

    # Every stock change goes through the ledger
    StockLedgerService.apply_delta(EntityKind.PRODUCT, product.id, store.id, -2, "out", "sale", ...)

    # Workflows built on top of it
    InventoryTransferService.complete(scope, actor_id=user.id, transfer_id=1)
    ManufacturingService.manufacture(scope, actor_id=user.id, product_id=5, quantity=10)
"""

# Base utilities
from stock.services.base_service import (
    ServiceError,
    ValidationError,
    NotFoundError,
    InvalidStateError,
    PermissionDeniedError,
    ConflictError,
    InsufficientStockError,
    InsufficientIngredientsError,
    success_response,
    paginate_queryset,
    to_decimal,
    round_decimal,
    generate_number,
    generate_reference,
    get_date_range,
    BaseService,
)

# Ledger
from .ledger_service import StockLedgerService, EntityKind, LedgerEntry

# Catalog
from .catalog_service import CategoryService, ProductService, IngredientService

# Stock operations
from .movement_service import MovementService
from .adjustment_service import StockAdjustmentService

# Workflows
from .transfer_service import InventoryTransferService
from .recipe_service import RecipeService, RecipeAvailabilityService
from .manufacturing_service import ManufacturingService
from .sale_service import SaleService


__all__ = [
    # Base
    "ServiceError",
    "ValidationError",
    "NotFoundError",
    "InvalidStateError",
    "PermissionDeniedError",
    "ConflictError",
    "InsufficientStockError",
    "InsufficientIngredientsError",
    "success_response",
    "paginate_queryset",
    "to_decimal",
    "round_decimal",
    "generate_number",
    "generate_reference",
    "get_date_range",
    "BaseService",

    # Ledger
    "StockLedgerService",
    "EntityKind",
    "LedgerEntry",

    # Catalog
    "CategoryService",
    "ProductService",
    "IngredientService",

    # Stock operations
    "MovementService",
    "StockAdjustmentService",

    # Workflows
    "InventoryTransferService",
    "RecipeService",
    "RecipeAvailabilityService",
    "ManufacturingService",
    "SaleService",
]
