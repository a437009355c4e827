from django.contrib import admin

from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("name", "seller", "price", "discounted_price", "stock", "is_active")
    list_filter = ("is_active", "category")
    search_fields = ("name", "seller__email")
