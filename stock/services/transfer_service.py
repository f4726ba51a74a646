import logging
from decimal import Decimal
from typing import Dict, Any

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from main.models import Store
from main.services.scope_service import ScopeService
from stock.models import Product, InventoryTransfer, InventoryMovement
from stock.services.base_service import (
    BaseService, success_response, paginate_queryset,
    ValidationError, NotFoundError, InvalidStateError, PermissionDeniedError,
    InsufficientStockError, parse_quantity, parse_id, require_fields,
    generate_reference, decimal_str,
)
from stock.services.catalog_service import ProductService
from stock.services.ledger_service import StockLedgerService, EntityKind

logger = logging.getLogger(__name__)


class InventoryTransferService(BaseService):
    """
    Moves a product's stock between two stores of the same company.

    pending -> approved -> completed
    pending -> rejected, approved -> rejected

    Nothing is reserved while a transfer is pending or approved; source
    stock is re-checked at every step and finally enforced by the ledger.
    """

    model = InventoryTransfer
    resource_name = "Transfer"

    @classmethod
    def scoped(cls, scope):
        return InventoryTransfer.objects.filter(
            Q(from_store_id__in=scope.store_ids) | Q(to_store_id__in=scope.store_ids)
        ).select_related("from_store", "to_store", "product")

    @classmethod
    def serialize(cls, transfer: InventoryTransfer) -> Dict[str, Any]:
        return {
            "id": transfer.id,
            "uuid": str(transfer.uuid),
            "transfer_number": transfer.transfer_number,
            "status": transfer.status,
            "from_store": {"id": transfer.from_store_id, "name": transfer.from_store.name},
            "to_store": {"id": transfer.to_store_id, "name": transfer.to_store.name},
            "product": ProductService.serialize_brief(transfer.product),
            "destination_product_id": transfer.destination_product_id,
            "quantity": decimal_str(transfer.quantity),
            "reason": transfer.reason,
            "notes": transfer.notes,
            "rejection_reason": transfer.rejection_reason,
            "requested_by": transfer.requested_by_id,
            "approved_by": transfer.approved_by_id,
            "rejected_by": transfer.rejected_by_id,
            "received_by": transfer.received_by_id,
            "requested_at": transfer.created_at.isoformat(),
            "approved_at": transfer.approved_at.isoformat() if transfer.approved_at else None,
            "rejected_at": transfer.rejected_at.isoformat() if transfer.rejected_at else None,
            "received_at": transfer.received_at.isoformat() if transfer.received_at else None,
        }

    @classmethod
    def list(cls, scope, page: int = 1, per_page: int = None, status: str = None,
             store_id=None, product_id=None) -> Dict[str, Any]:
        queryset = cls.scoped(scope)

        if status:
            if status not in InventoryTransfer.Status.values:
                raise ValidationError(f"Invalid status: {status}", "status")
            queryset = queryset.filter(status=status)
        if store_id:
            store_id = cls.require_store(scope, store_id)
            queryset = queryset.filter(Q(from_store_id=store_id) | Q(to_store_id=store_id))
        if product_id:
            queryset = queryset.filter(product_id=parse_id(product_id, "product_id"))

        items, pagination = paginate_queryset(queryset.order_by("-created_at", "-id"), page, per_page)
        return success_response({
            "transfers": [cls.serialize(t) for t in items],
            "pagination": pagination,
        })

    @classmethod
    def get(cls, scope, transfer_id) -> Dict[str, Any]:
        transfer = cls.get_or_404(scope, transfer_id)
        return success_response({"transfer": cls.serialize(transfer)})

    @classmethod
    @transaction.atomic
    def create(cls, scope, data: Dict[str, Any], actor_id: int = None) -> Dict[str, Any]:
        require_fields(data, "from_store_id", "to_store_id", "product_id", "quantity")
        from_store_id = cls.require_store(scope, data["from_store_id"])
        to_store_id = cls.require_store(scope, data["to_store_id"])

        if from_store_id == to_store_id:
            raise ValidationError(
                "Cannot transfer to the same store", "to_store_id", code="SAME_STORE_ERROR"
            )

        quantity = parse_quantity(data["quantity"])
        product_id = parse_id(data["product_id"], "product_id")
        try:
            product = Product.objects.get(id=product_id, store_id=from_store_id, is_active=True)
        except Product.DoesNotExist:
            raise NotFoundError("Product", product_id)

        cls._ensure_available(product, quantity)

        transfer = InventoryTransfer.objects.create(
            transfer_number=cls._next_number(),
            from_store_id=from_store_id,
            to_store_id=to_store_id,
            product=product,
            quantity=quantity,
            reason=data.get("reason") or "",
            notes=data.get("notes") or "",
            requested_by_id=actor_id,
        )

        logger.info(
            f"Transfer {transfer.transfer_number} requested: {quantity} x product {product.id} "
            f"store {from_store_id} -> {to_store_id}"
        )
        transfer = cls.scoped(scope).get(id=transfer.id)
        return success_response({"transfer": cls.serialize(transfer)}, "Transfer request created successfully")

    @classmethod
    @transaction.atomic
    def approve(cls, scope, actor_id: int = None, transfer_id=None) -> Dict[str, Any]:
        cls._require_manager(scope)
        transfer = cls._lock(scope, transfer_id)

        if transfer.status != InventoryTransfer.Status.PENDING:
            raise InvalidStateError(f"Cannot approve {transfer.status} transfer", transfer.status)

        cls._ensure_available(Product.objects.get(id=transfer.product_id), transfer.quantity)

        transfer.status = InventoryTransfer.Status.APPROVED
        transfer.approved_by_id = actor_id
        transfer.approved_at = timezone.now()
        transfer.save(update_fields=["status", "approved_by", "approved_at", "updated_at"])

        logger.info(f"Transfer {transfer.transfer_number} approved by {actor_id}")
        return success_response({"transfer": cls.serialize(transfer)}, "Transfer approved successfully")

    @classmethod
    @transaction.atomic
    def reject(cls, scope, actor_id: int = None, transfer_id=None, reason: str = "") -> Dict[str, Any]:
        cls._require_manager(scope)
        transfer = cls._lock(scope, transfer_id)

        if transfer.status != InventoryTransfer.Status.PENDING:
            raise InvalidStateError(f"Cannot reject {transfer.status} transfer", transfer.status)

        transfer.status = InventoryTransfer.Status.REJECTED
        transfer.rejection_reason = reason or ""
        transfer.rejected_by_id = actor_id
        transfer.rejected_at = timezone.now()
        transfer.save(update_fields=["status", "rejection_reason", "rejected_by", "rejected_at", "updated_at"])

        logger.info(f"Transfer {transfer.transfer_number} rejected by {actor_id}: {reason}")
        return success_response({"transfer": cls.serialize(transfer)}, "Transfer rejected")

    @classmethod
    @transaction.atomic
    def complete(cls, scope, actor_id: int = None, transfer_id=None) -> Dict[str, Any]:
        transfer = cls._lock(scope, transfer_id)

        if transfer.status != InventoryTransfer.Status.APPROVED:
            raise InvalidStateError(f"Cannot complete {transfer.status} transfer", transfer.status)

        source = Product.objects.select_for_update().get(id=transfer.product_id)
        cls._ensure_available(source, transfer.quantity)

        from_store = Store.objects.get(id=transfer.from_store_id)
        to_store = Store.objects.get(id=transfer.to_store_id)

        outgoing = StockLedgerService.apply_delta(
            EntityKind.PRODUCT, source.id, from_store.id, -transfer.quantity,
            movement_type=InventoryMovement.MovementType.TRANSFER,
            reference_type=InventoryMovement.ReferenceType.TRANSFER_OUT,
            reference_id=transfer.id,
            actor_id=actor_id,
            notes=f"Transfer to {to_store.name} - {transfer.transfer_number}",
        )

        destination = (
            Product.objects.select_for_update()
            .filter(store_id=to_store.id, sku=source.sku)
            .first()
        )
        is_new_product = destination is None
        if is_new_product:
            destination = cls._clone_product(source, to_store.id, actor_id)
        elif not destination.is_active:
            # Stock arriving for a deactivated product brings it back into listings.
            destination.is_active = True
            destination.save(update_fields=["is_active", "updated_at"])
            logger.info(f"Product {destination.id} reactivated by transfer {transfer.transfer_number}")

        note = f"Transfer from {from_store.name} - {transfer.transfer_number}"
        incoming = StockLedgerService.apply_delta(
            EntityKind.PRODUCT, destination.id, to_store.id, transfer.quantity,
            movement_type=InventoryMovement.MovementType.TRANSFER,
            reference_type=InventoryMovement.ReferenceType.TRANSFER_IN,
            reference_id=transfer.id,
            actor_id=actor_id,
            notes=f"{note} (New product)" if is_new_product else note,
        )

        transfer.status = InventoryTransfer.Status.COMPLETED
        transfer.received_by_id = actor_id
        transfer.received_at = timezone.now()
        transfer.destination_product = destination
        transfer.save(update_fields=["status", "received_by", "received_at", "destination_product", "updated_at"])

        logger.info(
            f"Transfer {transfer.transfer_number} completed: source {source.id} -> "
            f"{outgoing.new_stock}, destination {destination.id} -> {incoming.new_stock}"
            f"{' (new product)' if is_new_product else ''}"
        )
        return success_response({
            "transfer": cls.serialize(transfer),
            "transfer_number": transfer.transfer_number,
            "destination_product_id": destination.id,
            "is_new_product": is_new_product,
            "details": {
                "source_stock": decimal_str(outgoing.new_stock),
                "destination_stock": decimal_str(incoming.new_stock),
            },
        }, "Transfer completed successfully")

    @classmethod
    def _clone_product(cls, source: Product, store_id: int, actor_id: int = None) -> Product:
        fields = {name: getattr(source, name) for name in Product.CATALOG_FIELDS}
        product = Product.objects.create(
            store_id=store_id,
            stock_quantity=0,
            is_active=True,
            created_by_id=actor_id,
            **fields,
        )
        logger.info(f"Cloned product {source.id} into store {store_id} as {product.id}")
        return product

    @classmethod
    def _ensure_available(cls, product: Product, quantity: Decimal) -> None:
        available = product.stock_quantity if product.stock_quantity is not None else Decimal("0")
        if available < quantity:
            logger.warning(
                f"Transfer blocked for product {product.id}: requested {quantity}, available {available}"
            )
            raise InsufficientStockError(product.name, quantity, available)

    @classmethod
    def _lock(cls, scope, transfer_id) -> InventoryTransfer:
        return cls.get_or_404(scope, transfer_id, cls.scoped(scope).select_for_update())

    @classmethod
    def _require_manager(cls, scope) -> None:
        if not ScopeService.can_manage(scope):
            raise PermissionDeniedError("Only owners and managers can approve or reject transfers")

    @classmethod
    def _next_number(cls) -> str:
        number = generate_reference("TRF", 4, timestamp_digits=8)
        while InventoryTransfer.objects.filter(transfer_number=number).exists():
            number = generate_reference("TRF", 4, timestamp_digits=8)
        return number
