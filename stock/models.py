import uuid as uuid_lib

from django.db import models


class Category(models.Model):
    uuid = models.UUIDField(default=uuid_lib.uuid4, unique=True, editable=False)
    company = models.ForeignKey(
        "main.Company", on_delete=models.CASCADE, related_name="categories"
    )
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True, default="")
    color = models.CharField(max_length=7, blank=True, default="")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "categories"

    def __str__(self):
        return self.name


class Product(models.Model):
    uuid = models.UUIDField(default=uuid_lib.uuid4, unique=True, editable=False)
    store = models.ForeignKey(
        "main.Store", on_delete=models.PROTECT, related_name="products"
    )
    category = models.ForeignKey(
        Category,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="products",
    )
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    sku = models.CharField(max_length=64)
    barcode = models.CharField(max_length=64, blank=True, default="")

    default_price = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    manila_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    delivery_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    wholesale_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    unit = models.CharField(max_length=20, default="pcs")
    weight = models.DecimalField(max_digits=10, decimal_places=3, null=True, blank=True)
    dimensions = models.CharField(max_length=100, blank=True, default="")
    image_url = models.CharField(max_length=500, blank=True, default="")
    images = models.JSONField(default=list, blank=True)
    tags = models.JSONField(default=list, blank=True)
    is_featured = models.BooleanField(default=False)

    # Null means the product is not stock tracked (composite products).
    stock_quantity = models.DecimalField(max_digits=15, decimal_places=3, null=True, blank=True)
    min_stock_level = models.DecimalField(max_digits=15, decimal_places=3, null=True, blank=True)
    max_stock_level = models.DecimalField(max_digits=15, decimal_places=3, null=True, blank=True)

    is_composite = models.BooleanField(default=False)
    recipe_cost = models.DecimalField(max_digits=12, decimal_places=4, default=0)

    is_active = models.BooleanField(default=True)
    created_by = models.ForeignKey(
        "main.User", on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    # Copied to the destination store when a transfer creates a new product.
    CATALOG_FIELDS = (
        "name", "description", "sku", "barcode", "category_id",
        "default_price", "manila_price", "delivery_price", "wholesale_price",
        "min_stock_level", "max_stock_level", "unit", "weight", "dimensions",
        "image_url", "images", "is_featured", "tags",
    )

    class Meta:
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(fields=["store", "sku"], name="product_store_sku_uniq"),
        ]
        indexes = [
            models.Index(fields=["store", "is_active"], name="product_store_active_idx"),
        ]

    def __str__(self):
        return f"{self.name} ({self.sku})"

    @property
    def is_stock_tracked(self):
        return self.stock_quantity is not None


class Ingredient(models.Model):
    uuid = models.UUIDField(default=uuid_lib.uuid4, unique=True, editable=False)
    store = models.ForeignKey(
        "main.Store", on_delete=models.PROTECT, related_name="ingredients"
    )
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    sku = models.CharField(max_length=64)
    unit = models.CharField(max_length=20)
    unit_cost = models.DecimalField(max_digits=12, decimal_places=4, default=0)
    stock_quantity = models.DecimalField(max_digits=15, decimal_places=3, default=0)
    min_stock_level = models.DecimalField(max_digits=15, decimal_places=3, default=10)
    supplier = models.CharField(max_length=150, blank=True, default="")
    is_active = models.BooleanField(default=True)
    created_by = models.ForeignKey(
        "main.User", on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(fields=["store", "sku"], name="ingredient_store_sku_uniq"),
        ]

    def __str__(self):
        return f"{self.name} ({self.unit})"


class ProductRecipe(models.Model):
    product = models.ForeignKey(
        Product, on_delete=models.CASCADE, related_name="recipe_lines"
    )
    ingredient = models.ForeignKey(
        Ingredient, on_delete=models.PROTECT, related_name="recipe_lines"
    )
    # Amount of ingredient consumed per unit of product.
    quantity_needed = models.DecimalField(max_digits=15, decimal_places=4)
    unit = models.CharField(max_length=20)
    notes = models.CharField(max_length=255, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(fields=["product", "ingredient"], name="recipe_product_ingredient_uniq"),
        ]

    def __str__(self):
        return f"{self.product.name}: {self.quantity_needed} {self.unit} {self.ingredient.name}"


class MovementBase(models.Model):
    """Append-only ledger row shared by product and ingredient movements."""

    class ReferenceType(models.TextChoices):
        SALE = "sale", "Sale"
        MANUAL_ADJUSTMENT = "manual_adjustment", "Manual Adjustment"
        TRANSFER_IN = "transfer_in", "Transfer In"
        TRANSFER_OUT = "transfer_out", "Transfer Out"
        MANUFACTURING = "manufacturing", "Manufacturing"

    quantity = models.DecimalField(max_digits=15, decimal_places=3)
    previous_stock = models.DecimalField(max_digits=15, decimal_places=3)
    new_stock = models.DecimalField(max_digits=15, decimal_places=3)
    reference_type = models.CharField(max_length=30, choices=ReferenceType.choices, db_index=True)
    reference_id = models.PositiveBigIntegerField(null=True, blank=True)
    notes = models.TextField(blank=True, default="")
    created_by = models.ForeignKey(
        "main.User", on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        abstract = True
        ordering = ["-created_at", "-id"]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Movements are append-only and cannot be modified")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Movements are append-only and cannot be deleted")


class InventoryMovement(MovementBase):
    class MovementType(models.TextChoices):
        IN = "in", "In"
        OUT = "out", "Out"
        ADJUSTMENT = "adjustment", "Adjustment"
        TRANSFER = "transfer", "Transfer"

    product = models.ForeignKey(
        Product, on_delete=models.PROTECT, related_name="movements"
    )
    store = models.ForeignKey(
        "main.Store", on_delete=models.PROTECT, related_name="inventory_movements"
    )
    movement_type = models.CharField(max_length=20, choices=MovementType.choices, db_index=True)

    class Meta(MovementBase.Meta):
        indexes = [
            models.Index(fields=["store", "created_at"], name="invmov_store_created_idx"),
            models.Index(fields=["product", "created_at"], name="invmov_product_created_idx"),
        ]

    def __str__(self):
        return f"{self.movement_type} {self.quantity} of {self.product_id}"


class IngredientMovement(MovementBase):
    class MovementType(models.TextChoices):
        IN = "in", "In"
        OUT = "out", "Out"
        ADJUSTMENT = "adjustment", "Adjustment"
        TRANSFER = "transfer", "Transfer"
        USAGE = "usage", "Usage"

    ingredient = models.ForeignKey(
        Ingredient, on_delete=models.PROTECT, related_name="movements"
    )
    store = models.ForeignKey(
        "main.Store", on_delete=models.PROTECT, related_name="ingredient_movements"
    )
    movement_type = models.CharField(max_length=20, choices=MovementType.choices, db_index=True)
    unit_cost = models.DecimalField(max_digits=12, decimal_places=4, null=True, blank=True)

    class Meta(MovementBase.Meta):
        indexes = [
            models.Index(fields=["store", "created_at"], name="ingmov_store_created_idx"),
            models.Index(fields=["ingredient", "created_at"], name="ingmov_ingredient_created_idx"),
        ]

    def __str__(self):
        return f"{self.movement_type} {self.quantity} of {self.ingredient_id}"


class InventoryTransfer(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        APPROVED = "approved", "Approved"
        COMPLETED = "completed", "Completed"
        REJECTED = "rejected", "Rejected"

    uuid = models.UUIDField(default=uuid_lib.uuid4, unique=True, editable=False)
    transfer_number = models.CharField(max_length=50, unique=True)
    from_store = models.ForeignKey(
        "main.Store", on_delete=models.PROTECT, related_name="transfers_out"
    )
    to_store = models.ForeignKey(
        "main.Store", on_delete=models.PROTECT, related_name="transfers_in"
    )
    product = models.ForeignKey(
        Product, on_delete=models.PROTECT, related_name="transfers"
    )
    destination_product = models.ForeignKey(
        Product, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    quantity = models.DecimalField(max_digits=15, decimal_places=3)
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.PENDING, db_index=True
    )
    reason = models.TextField(blank=True, default="")
    notes = models.TextField(blank=True, default="")
    rejection_reason = models.TextField(blank=True, default="")

    requested_by = models.ForeignKey(
        "main.User",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="requested_transfers",
    )
    approved_by = models.ForeignKey(
        "main.User",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="approved_transfers",
    )
    rejected_by = models.ForeignKey(
        "main.User",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="rejected_transfers",
    )
    received_by = models.ForeignKey(
        "main.User",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="received_transfers",
    )

    approved_at = models.DateTimeField(null=True, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)
    received_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return self.transfer_number

    @property
    def is_terminal(self):
        return self.status in (self.Status.COMPLETED, self.Status.REJECTED)


class ProductManufacturing(models.Model):
    class Status(models.TextChoices):
        COMPLETED = "completed", "Completed"

    uuid = models.UUIDField(default=uuid_lib.uuid4, unique=True, editable=False)
    product = models.ForeignKey(
        Product, on_delete=models.PROTECT, related_name="manufacturing_runs"
    )
    store = models.ForeignKey(
        "main.Store", on_delete=models.PROTECT, related_name="manufacturing_runs"
    )
    quantity_produced = models.DecimalField(max_digits=15, decimal_places=3)
    batch_number = models.CharField(max_length=50)
    expiry_date = models.DateField(null=True, blank=True)
    notes = models.TextField(blank=True, default="")
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.COMPLETED
    )
    created_by = models.ForeignKey(
        "main.User", on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        verbose_name = "manufacturing run"

    def __str__(self):
        return f"{self.batch_number}: {self.quantity_produced} x {self.product_id}"


class Sale(models.Model):
    class PaymentMethod(models.TextChoices):
        CASH = "cash", "Cash"
        CARD = "card", "Card"
        E_WALLET = "e_wallet", "E-Wallet"

    class Status(models.TextChoices):
        COMPLETED = "completed", "Completed"

    uuid = models.UUIDField(default=uuid_lib.uuid4, unique=True, editable=False)
    receipt_number = models.CharField(max_length=50, unique=True)
    store = models.ForeignKey(
        "main.Store", on_delete=models.PROTECT, related_name="sales"
    )
    cashier = models.ForeignKey(
        "main.User", on_delete=models.SET_NULL, null=True, blank=True, related_name="sales"
    )
    customer_name = models.CharField(max_length=150, blank=True, default="")
    subtotal = models.DecimalField(max_digits=12, decimal_places=2)
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    payment_method = models.CharField(
        max_length=20, choices=PaymentMethod.choices, default=PaymentMethod.CASH
    )
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.COMPLETED
    )
    notes = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return self.receipt_number


class SaleItem(models.Model):
    sale = models.ForeignKey(Sale, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey(
        Product, on_delete=models.PROTECT, related_name="sale_items"
    )
    product_name = models.CharField(max_length=200)
    quantity = models.DecimalField(max_digits=15, decimal_places=3)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        ordering = ["id"]

    def __str__(self):
        return f"{self.quantity} x {self.product_name}"
