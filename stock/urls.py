from django.urls import path
from . import views

app_name = "stock"

urlpatterns = [
    path("categories/", views.CategoryListView.as_view(), name="category-list"),

    path("products/", views.ProductListView.as_view(), name="product-list"),
    path("products/<int:product_id>/", views.ProductDetailView.as_view(), name="product-detail"),
    path("products/<int:product_id>/availability/", views.ProductAvailabilityView.as_view(), name="product-availability"),

    path("ingredients/", views.IngredientListView.as_view(), name="ingredient-list"),
    path("ingredients/movements/", views.IngredientMovementListView.as_view(), name="ingredient-movements"),
    path("ingredients/<int:ingredient_id>/", views.IngredientDetailView.as_view(), name="ingredient-detail"),
    path("ingredients/<int:ingredient_id>/stock/", views.IngredientStockView.as_view(), name="ingredient-stock"),

    path("movements/", views.MovementListView.as_view(), name="movement-list"),
    path("adjust/", views.StockAdjustView.as_view(), name="adjust"),
    path("alerts/", views.LowStockAlertView.as_view(), name="alerts"),

    path("transfers/", views.TransferListView.as_view(), name="transfer-list"),
    path("transfers/<int:transfer_id>/", views.TransferDetailView.as_view(), name="transfer-detail"),
    path("transfers/<int:transfer_id>/<str:action>/", views.TransferActionView.as_view(), name="transfer-action"),

    path("recipes/<int:product_id>/", views.RecipeView.as_view(), name="recipe"),
    path("recipes/<int:product_id>/availability/", views.RecipeAvailabilityView.as_view(), name="recipe-availability"),

    path("manufacturing/history/", views.ManufacturingHistoryView.as_view(), name="manufacturing-history"),
    path("manufacturing/<int:product_id>/check/", views.ManufacturingCheckView.as_view(), name="manufacturing-check"),
    path("manufacturing/<int:product_id>/manufacture/", views.ManufactureView.as_view(), name="manufacture"),

    path("sales/", views.SaleListView.as_view(), name="sale-list"),
    path("sales/receipt/<str:receipt_number>/", views.SaleReceiptView.as_view(), name="sale-receipt"),
]
