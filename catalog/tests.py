import uuid
from decimal import Decimal

from django.test import TestCase
from rest_framework.test import APIClient

from account.models import User
from catalog.models import Product


class ProductModelTests(TestCase):
    def setUp(self):
        self.seller = User.objects.create_user(
            email="seller@bazar.com",
            password="Pass123!",
            role=User.Role.SELLER,
        )

    def test_effective_price_prefers_positive_discount(self):
        product = Product.objects.create(
            seller=self.seller,
            name="Jute Bag",
            price=Decimal("100.00"),
            discounted_price=Decimal("80.00"),
        )
        self.assertEqual(product.effective_price(), Decimal("80.00"))

    def test_effective_price_ignores_zero_discount(self):
        product = Product.objects.create(
            seller=self.seller,
            name="Clay Pot",
            price=Decimal("50.00"),
            discounted_price=Decimal("0.00"),
        )
        self.assertEqual(product.effective_price(), Decimal("50.00"))


class ProductApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.seller = User.objects.create_user(
            email="seller@bazar.com",
            password="Pass123!",
            role=User.Role.SELLER,
        )
        self.product = Product.objects.create(
            seller=self.seller,
            name="Nakshi Kantha",
            category="Textile",
            price=Decimal("120.00"),
        )
        Product.objects.create(
            seller=self.seller,
            name="Hidden Item",
            price=Decimal("10.00"),
            is_active=False,
        )

    def test_list_products_is_public_and_hides_inactive(self):
        resp = self.client.get("/catalog/products/")
        self.assertEqual(resp.status_code, 200, resp.data)
        names = [row["name"] for row in resp.data]
        self.assertEqual(names, ["Nakshi Kantha"])

    def test_list_products_filters_by_category(self):
        resp = self.client.get("/catalog/products/", {"category": "pottery"})
        self.assertEqual(resp.status_code, 200, resp.data)
        self.assertEqual(resp.data, [])

    def test_product_detail(self):
        resp = self.client.get(f"/catalog/products/{self.product.id}/")
        self.assertEqual(resp.status_code, 200, resp.data)
        self.assertEqual(resp.data["effective_price"], "120.00")
        self.assertEqual(resp.data["seller_email"], "seller@bazar.com")

    def test_unknown_product_returns_404(self):
        resp = self.client.get(f"/catalog/products/{uuid.uuid4()}/")
        self.assertEqual(resp.status_code, 404)
