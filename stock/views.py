import json
import logging

from django.http import JsonResponse
from django.views import View
from django.views.decorators.csrf import csrf_exempt
from django.utils.decorators import method_decorator

from main.helpers.response import APIResponse
from main.helpers.require_login import authenticate_request
from stock.services import (
    ServiceError, ValidationError, NotFoundError, InvalidStateError, PermissionDeniedError,
    ConflictError, InsufficientStockError, InsufficientIngredientsError,
    CategoryService, ProductService, IngredientService,
    MovementService, StockAdjustmentService,
    InventoryTransferService, RecipeService, ManufacturingService, SaleService,
)

logger = logging.getLogger(__name__)


ERROR_STATUS = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (PermissionDeniedError, 403),
    (InvalidStateError, 409),
    (ConflictError, 409),
    (InsufficientStockError, 400),
    (InsufficientIngredientsError, 400),
)


def handle_service_error(e: Exception):
    for error_class, status in ERROR_STATUS:
        if isinstance(e, error_class):
            return APIResponse.error(e.message, e.code.lower(), status, e.details)
    if isinstance(e, ServiceError):
        return APIResponse.error(e.message, e.code.lower(), 400, e.details)

    logger.exception(f"Unhandled error: {e}")
    return APIResponse.error("Internal server error", "server_error", 500)


def int_param(request, name, default):
    try:
        return int(request.GET.get(name, default))
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer", name)


class BaseStockView(View):
    @method_decorator(csrf_exempt)
    def dispatch(self, request, *args, **kwargs):
        if authenticate_request(request) is None:
            return APIResponse.unauthorized()
        return super().dispatch(request, *args, **kwargs)

    def get_json_body(self, request):
        if not request.body:
            return {}
        try:
            data = json.loads(request.body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise ValidationError("Request body must be valid JSON", "body")
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object", "body")
        return data

    def get_user_id(self, request):
        return request.kitapos_user.id

    def get_scope(self, request):
        return request.caller_scope

    def get_page(self, request):
        per_page = request.GET.get("per_page")
        return (
            int_param(request, "page", 1),
            int_param(request, "per_page", 20) if per_page else None,
        )

    def success(self, data: dict, status: int = 200):
        return JsonResponse({"success": True, **data}, status=status)


# ==================== CATEGORIES ====================

class CategoryListView(BaseStockView):
    """GET/POST /api/stock/categories/"""

    def get(self, request):
        try:
            return self.success(CategoryService.list(self.get_scope(request)))
        except Exception as e:
            return handle_service_error(e)

    def post(self, request):
        try:
            data = self.get_json_body(request)
            result = CategoryService.create(
                self.get_scope(request),
                name=data.get("name"),
                description=data.get("description", ""),
                color=data.get("color", ""),
            )
            return self.success(result, 201)
        except Exception as e:
            return handle_service_error(e)


# ==================== PRODUCTS ====================

class ProductListView(BaseStockView):
    """GET/POST /api/stock/products/"""

    def get(self, request):
        try:
            page, per_page = self.get_page(request)
            composite = request.GET.get("composite")
            result = ProductService.list(
                self.get_scope(request),
                page=page,
                per_page=per_page,
                store_id=request.GET.get("store_id"),
                category_id=request.GET.get("category_id"),
                search=request.GET.get("search"),
                active_only=request.GET.get("include_inactive", "false").lower() != "true",
                composite=None if composite is None else composite.lower() == "true",
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)

    def post(self, request):
        try:
            data = self.get_json_body(request)
            result = ProductService.create(
                self.get_scope(request), data, actor_id=self.get_user_id(request)
            )
            return self.success(result, 201)
        except Exception as e:
            return handle_service_error(e)


class ProductDetailView(BaseStockView):
    """GET/PUT/DELETE /api/stock/products/<id>/"""

    def get(self, request, product_id):
        try:
            return self.success(ProductService.get(self.get_scope(request), product_id))
        except Exception as e:
            return handle_service_error(e)

    def put(self, request, product_id):
        try:
            data = self.get_json_body(request)
            result = ProductService.update(self.get_scope(request), product_id, data)
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)

    def delete(self, request, product_id):
        try:
            return self.success(ProductService.deactivate(self.get_scope(request), product_id))
        except Exception as e:
            return handle_service_error(e)


class ProductAvailabilityView(BaseStockView):
    """GET /api/stock/products/<id>/availability/?quantity="""

    def get(self, request, product_id):
        try:
            result = SaleService.product_availability(
                self.get_scope(request), product_id, request.GET.get("quantity", 1)
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


# ==================== INGREDIENTS ====================

class IngredientListView(BaseStockView):
    """GET/POST /api/stock/ingredients/"""

    def get(self, request):
        try:
            page, per_page = self.get_page(request)
            result = IngredientService.list(
                self.get_scope(request),
                page=page,
                per_page=per_page,
                store_id=request.GET.get("store_id"),
                search=request.GET.get("search"),
                active_only=request.GET.get("include_inactive", "false").lower() != "true",
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)

    def post(self, request):
        try:
            data = self.get_json_body(request)
            result = IngredientService.create(
                self.get_scope(request), data, actor_id=self.get_user_id(request)
            )
            return self.success(result, 201)
        except Exception as e:
            return handle_service_error(e)


class IngredientDetailView(BaseStockView):
    """GET/PUT/DELETE /api/stock/ingredients/<id>/"""

    def get(self, request, ingredient_id):
        try:
            return self.success(IngredientService.get(self.get_scope(request), ingredient_id))
        except Exception as e:
            return handle_service_error(e)

    def put(self, request, ingredient_id):
        try:
            data = self.get_json_body(request)
            result = IngredientService.update(self.get_scope(request), ingredient_id, data)
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)

    def delete(self, request, ingredient_id):
        try:
            return self.success(IngredientService.deactivate(self.get_scope(request), ingredient_id))
        except Exception as e:
            return handle_service_error(e)


class IngredientStockView(BaseStockView):
    """POST /api/stock/ingredients/<id>/stock/"""

    def post(self, request, ingredient_id):
        try:
            data = self.get_json_body(request)
            result = StockAdjustmentService.update_ingredient_stock(
                self.get_scope(request),
                actor_id=self.get_user_id(request),
                ingredient_id=ingredient_id,
                movement_type=data.get("movement_type"),
                quantity=data.get("quantity"),
                unit_cost=data.get("unit_cost"),
                notes=data.get("notes", ""),
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


class IngredientMovementListView(BaseStockView):
    """GET /api/stock/ingredients/movements/"""

    def get(self, request):
        try:
            page, per_page = self.get_page(request)
            result = MovementService.list_ingredient_movements(
                self.get_scope(request),
                page=page,
                per_page=per_page,
                store_id=request.GET.get("store_id"),
                ingredient_id=request.GET.get("ingredient_id"),
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


# ==================== MOVEMENTS & ADJUSTMENTS ====================

class MovementListView(BaseStockView):
    """GET /api/stock/movements/"""

    def get(self, request):
        try:
            page, per_page = self.get_page(request)
            result = MovementService.list_product_movements(
                self.get_scope(request),
                page=page,
                per_page=per_page,
                store_id=request.GET.get("store_id"),
                product_id=request.GET.get("product_id"),
                movement_type=request.GET.get("movement_type"),
                reference_type=request.GET.get("reference_type"),
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


class StockAdjustView(BaseStockView):
    """POST /api/stock/adjust/"""

    def post(self, request):
        try:
            data = self.get_json_body(request)
            result = StockAdjustmentService.adjust_product(
                self.get_scope(request),
                actor_id=self.get_user_id(request),
                product_id=data.get("product_id"),
                adjustment_type=data.get("adjustment_type"),
                quantity=data.get("quantity"),
                reason=data.get("reason", ""),
            )
            return self.success(result, 201)
        except Exception as e:
            return handle_service_error(e)


class LowStockAlertView(BaseStockView):
    """GET /api/stock/alerts/"""

    def get(self, request):
        try:
            result = ProductService.low_stock_alerts(
                self.get_scope(request), store_id=request.GET.get("store_id")
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


# ==================== TRANSFERS ====================

class TransferListView(BaseStockView):
    """GET/POST /api/stock/transfers/"""

    def get(self, request):
        try:
            page, per_page = self.get_page(request)
            result = InventoryTransferService.list(
                self.get_scope(request),
                page=page,
                per_page=per_page,
                status=request.GET.get("status"),
                store_id=request.GET.get("store_id"),
                product_id=request.GET.get("product_id"),
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)

    def post(self, request):
        try:
            data = self.get_json_body(request)
            result = InventoryTransferService.create(
                self.get_scope(request), data, actor_id=self.get_user_id(request)
            )
            return self.success(result, 201)
        except Exception as e:
            return handle_service_error(e)


class TransferDetailView(BaseStockView):
    """GET /api/stock/transfers/<id>/"""

    def get(self, request, transfer_id):
        try:
            return self.success(InventoryTransferService.get(self.get_scope(request), transfer_id))
        except Exception as e:
            return handle_service_error(e)


class TransferActionView(BaseStockView):
    """POST /api/stock/transfers/<id>/<action>/"""

    def post(self, request, transfer_id, action):
        try:
            scope = self.get_scope(request)
            user_id = self.get_user_id(request)

            if action == "approve":
                result = InventoryTransferService.approve(scope, actor_id=user_id, transfer_id=transfer_id)
            elif action == "reject":
                data = self.get_json_body(request)
                result = InventoryTransferService.reject(
                    scope,
                    actor_id=user_id,
                    transfer_id=transfer_id,
                    reason=data.get("rejection_reason") or data.get("reason", ""),
                )
            elif action == "complete":
                result = InventoryTransferService.complete(scope, actor_id=user_id, transfer_id=transfer_id)
            else:
                raise ValidationError(f"Unknown action: {action}", "action")

            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


# ==================== RECIPES ====================

class RecipeView(BaseStockView):
    """GET/POST /api/stock/recipes/<product_id>/"""

    def get(self, request, product_id):
        try:
            return self.success(RecipeService.get(self.get_scope(request), product_id))
        except Exception as e:
            return handle_service_error(e)

    def post(self, request, product_id):
        try:
            data = self.get_json_body(request)
            result = RecipeService.save(
                self.get_scope(request), product_id, ingredients=data.get("ingredients")
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


class RecipeAvailabilityView(BaseStockView):
    """GET /api/stock/recipes/<product_id>/availability/?quantity="""

    def get(self, request, product_id):
        try:
            result = RecipeService.check_availability(
                self.get_scope(request), product_id, request.GET.get("quantity", 1)
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


# ==================== MANUFACTURING ====================

class ManufacturingHistoryView(BaseStockView):
    """GET /api/stock/manufacturing/history/"""

    def get(self, request):
        try:
            result = ManufacturingService.history(
                self.get_scope(request),
                product_id=request.GET.get("product_id"),
                store_id=request.GET.get("store_id"),
                limit=int_param(request, "limit", 50),
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


class ManufacturingCheckView(BaseStockView):
    """GET /api/stock/manufacturing/<product_id>/check/?quantity="""

    def get(self, request, product_id):
        try:
            result = ManufacturingService.check_availability(
                self.get_scope(request), product_id, request.GET.get("quantity", 1)
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)


class ManufactureView(BaseStockView):
    """POST /api/stock/manufacturing/<product_id>/manufacture/"""

    def post(self, request, product_id):
        try:
            data = self.get_json_body(request)
            result = ManufacturingService.manufacture(
                self.get_scope(request),
                actor_id=self.get_user_id(request),
                product_id=product_id,
                quantity=data.get("quantity"),
                batch_number=data.get("batch_number"),
                expiry_date=data.get("expiry_date"),
                notes=data.get("notes", ""),
            )
            return self.success(result, 201)
        except Exception as e:
            return handle_service_error(e)


# ==================== SALES ====================

class SaleListView(BaseStockView):
    """GET/POST /api/stock/sales/"""

    def get(self, request):
        try:
            page, per_page = self.get_page(request)
            result = SaleService.list(
                self.get_scope(request),
                page=page,
                per_page=per_page,
                store_id=request.GET.get("store_id"),
                period=request.GET.get("period"),
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)

    def post(self, request):
        try:
            data = self.get_json_body(request)
            result = SaleService.create(
                self.get_scope(request),
                actor_id=self.get_user_id(request),
                store_id=data.get("store_id"),
                items=data.get("items"),
                payment_method=data.get("payment_method", "cash"),
                discount_amount=data.get("discount_amount"),
                customer_name=data.get("customer_name", ""),
                notes=data.get("notes", ""),
            )
            return self.success(result, 201)
        except Exception as e:
            return handle_service_error(e)


class SaleReceiptView(BaseStockView):
    """GET /api/stock/sales/receipt/<receipt_number>/"""

    def get(self, request, receipt_number):
        try:
            return self.success(SaleService.get_by_receipt(self.get_scope(request), receipt_number))
        except Exception as e:
            return handle_service_error(e)
