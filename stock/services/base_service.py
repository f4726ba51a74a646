from typing import Dict, Any, Optional, List, Tuple
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from datetime import date, timedelta
import string
import time

from django.conf import settings
from django.db.models import Model
from django.utils import timezone
from django.utils.crypto import get_random_string


class ServiceError(Exception):
    def __init__(self, message: str, code: str = "ERROR", details: Dict = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)


class ValidationError(ServiceError):
    def __init__(self, message: str, field: str = None, details: Dict = None, code: str = "VALIDATION_ERROR"):
        super().__init__(message, code, details)
        self.field = field


class NotFoundError(ServiceError):
    """Raised for missing rows and for rows outside the caller's stores alike."""

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            f"{resource} not found: {identifier}",
            "NOT_FOUND",
            {"resource": resource, "identifier": str(identifier)}
        )


class InvalidStateError(ServiceError):
    def __init__(self, message: str, state: str = None):
        super().__init__(message, "INVALID_STATE", {"state": state} if state else None)
        self.state = state


class PermissionDeniedError(ServiceError):
    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(message, "PERMISSION_DENIED")


class ConflictError(ServiceError):
    def __init__(self, message: str, field: str = None, code: str = "CONFLICT"):
        super().__init__(message, code, {"field": field} if field else None)
        self.field = field


class InsufficientStockError(ServiceError):
    def __init__(self, item_name: str, required: Decimal, available: Decimal):
        super().__init__(
            f"Insufficient stock for {item_name}: required {required}, available {available}",
            "INSUFFICIENT_STOCK",
            {"item": item_name, "required": str(required), "available": str(available)}
        )
        self.required = required
        self.available = available


class InsufficientIngredientsError(ServiceError):
    def __init__(self, product_name: str, shortages: List[Dict]):
        names = ", ".join(s["ingredient_name"] for s in shortages)
        super().__init__(
            f"Insufficient ingredients to make {product_name}: {names}",
            "INSUFFICIENT_INGREDIENTS",
            {"product": product_name, "shortages": shortages}
        )
        self.shortages = shortages


def success_response(data: Any = None, message: str = "Success") -> Dict:
    response = {"success": True, "message": message}
    if data is not None:
        if isinstance(data, dict):
            response.update(data)
        else:
            response["data"] = data
    return response


def paginate_queryset(queryset, page: int = 1, per_page: int = None) -> Tuple[List, Dict]:
    if per_page is None:
        per_page = getattr(settings, "STOCK_DEFAULT_PAGE_SIZE", 20)
    page = max(1, page)
    per_page = min(max(1, per_page), 100)

    total = queryset.count()
    total_pages = (total + per_page - 1) // per_page

    offset = (page - 1) * per_page
    items = list(queryset[offset:offset + per_page])

    return items, {
        "page": page,
        "per_page": per_page,
        "total_items": total,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_prev": page > 1
    }


def to_decimal(value: Any, default: Decimal = Decimal("0")) -> Decimal:
    if value is None or value == "":
        return default
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return default


def parse_quantity(value: Any, field: str = "quantity", allow_negative: bool = False) -> Decimal:
    """Strict counterpart of ``to_decimal`` for request input."""
    if value is None or value == "":
        raise ValidationError(f"{field} is required", field)
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", field)
    try:
        quantity = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"{field} must be a number", field)
    if not quantity.is_finite():
        raise ValidationError(f"{field} must be a number", field)
    if quantity == 0 or (quantity < 0 and not allow_negative):
        raise ValidationError(f"{field} must be greater than zero", field, code="INVALID_QUANTITY")
    return quantity


def parse_amount(value: Any, field: str, nullable: bool = False) -> Optional[Decimal]:
    """Non-negative decimal for prices, costs and stock levels."""
    if value is None or value == "":
        if nullable:
            return None
        raise ValidationError(f"{field} cannot be empty", field)
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", field)
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"{field} must be a number", field)
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number", field)
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative", field)
    return amount


def parse_id(value: Any, field: str) -> int:
    if value is None or value == "":
        raise ValidationError(f"{field} is required", field)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer", field)


def require_fields(data: Dict, *fields: str) -> None:
    missing = [f for f in fields if data.get(f) in (None, "")]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            missing[0],
            {"missing": missing},
            code="MISSING_REQUIRED_FIELDS",
        )


def round_decimal(value: Decimal, places: int = 4) -> Decimal:
    if value is None:
        return Decimal("0")
    quantize_str = "0." + "0" * places
    return value.quantize(Decimal(quantize_str), rounding=ROUND_HALF_UP)


def decimal_str(value: Optional[Decimal]) -> Optional[str]:
    if value is None:
        return None
    value = Decimal(value)
    if value == value.to_integral_value():
        return str(value.quantize(Decimal(1)))
    return str(value.normalize())


def generate_number(prefix: str, model_class: Model, field: str) -> str:
    today = timezone.now()
    date_part = today.strftime("%Y%m%d")
    filter_kwargs = {f"{field}__startswith": f"{prefix}-{date_part}"}
    last = model_class.objects.filter(**filter_kwargs).order_by(f"-{field}").first()

    seq = 1
    if last:
        try:
            seq = int(getattr(last, field).split("-")[-1]) + 1
        except ValueError:
            seq = 1

    return f"{prefix}-{date_part}-{seq:04d}"


def generate_reference(prefix: str, random_length: int = 4, timestamp_digits: int = None) -> str:
    """``PREFIX-<epoch millis>-<random>`` style numbers for transfers and receipts."""
    stamp = str(int(time.time() * 1000))
    if timestamp_digits:
        stamp = stamp[-timestamp_digits:]
    suffix = get_random_string(random_length, allowed_chars=string.ascii_uppercase + string.digits)
    return f"{prefix}-{stamp}-{suffix}"


def get_date_range(period: str) -> Tuple[date, date]:
    today = timezone.localdate()

    if period == "today":
        return today, today
    elif period == "yesterday":
        return today - timedelta(days=1), today - timedelta(days=1)
    elif period == "this_week":
        start = today - timedelta(days=today.weekday())
        return start, today
    elif period == "this_month":
        return today.replace(day=1), today
    elif period.startswith("last_") and period.endswith("_days"):
        try:
            days = int(period.replace("last_", "").replace("_days", ""))
        except ValueError:
            raise ValidationError(f"Unknown period: {period}", "period")
        return today - timedelta(days=days), today

    raise ValidationError(f"Unknown period: {period}", "period")


class BaseService:
    """Lookups that always go through the caller's store set."""

    model = None
    resource_name = None
    store_field = "store_id"

    @classmethod
    def scoped(cls, scope):
        return cls.model.objects.filter(**{f"{cls.store_field}__in": scope.store_ids})

    @classmethod
    def get_or_404(cls, scope, id: Any, queryset=None) -> Model:
        qs = queryset if queryset is not None else cls.scoped(scope)
        try:
            return qs.get(id=int(id))
        except (cls.model.DoesNotExist, TypeError, ValueError):
            raise NotFoundError(cls.resource_name or cls.model.__name__, id)

    @classmethod
    def require_store(cls, scope, store_id: Any) -> int:
        store_id = parse_id(store_id, "store_id")
        if not scope.has_store(store_id):
            raise NotFoundError("Store", store_id)
        return store_id
