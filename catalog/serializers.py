from rest_framework import serializers

from .models import Product


class ProductSerializer(serializers.ModelSerializer):
    seller_email = serializers.EmailField(source="seller.email", read_only=True)
    effective_price = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = Product
        fields = [
            "id",
            "seller",
            "seller_email",
            "name",
            "description",
            "category",
            "image_url",
            "price",
            "discounted_price",
            "effective_price",
            "stock",
            "created_at",
        ]
        read_only_fields = ("id", "seller", "created_at")
