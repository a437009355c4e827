from decimal import Decimal

from rest_framework import status
from rest_framework.test import APITestCase
from django.test import TestCase

from account.models import User
from catalog.models import Product
from notifications.models import Notification

from .models import Order, OrderItem
from .services import OrderService


class OrderServiceTests(TestCase):
    def setUp(self):
        self.seller = User.objects.create_user(
            email="seller_order_tests@example.com",
            password="pass1234",
            role=User.Role.SELLER,
        )
        self.buyer = User.objects.create_user(
            email="buyer_order_tests@example.com",
            password="pass1234",
        )
        self.product = Product.objects.create(
            seller=self.seller,
            name="Order Test Product",
            price=Decimal("100.00"),
            discounted_price=Decimal("80.00"),
            stock=5,
        )

    def test_create_order_snapshots_prices_and_decrements_stock(self):
        order = OrderService.create_order(
            user=self.buyer,
            items=[{"product": self.product, "quantity": 2}],
            delivery_address="123 Main St",
        )

        self.assertEqual(order.total_amount, Decimal("160.00"))
        item = order.items.get()
        self.assertEqual(item.vendor, self.seller)
        self.assertEqual(item.price, Decimal("100.00"))
        self.assertEqual(item.discounted_price, Decimal("80.00"))
        self.assertEqual(item.line_total(), Decimal("160.00"))
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 3)

    def test_create_order_rejects_insufficient_stock(self):
        with self.assertRaisesMessage(ValueError, "Insufficient stock"):
            OrderService.create_order(
                user=self.buyer,
                items=[{"product": self.product, "quantity": 6}],
                delivery_address="123 Main St",
            )
        self.assertFalse(Order.objects.exists())

    def test_update_status_stamps_shipped_at_once(self):
        order = OrderService.create_order(
            user=self.buyer,
            items=[{"product": self.product, "quantity": 1}],
            delivery_address="123 Main St",
        )

        OrderService.update_status(order, Order.Status.SHIPPED)
        shipped_at = order.shipped_at
        self.assertIsNotNone(shipped_at)

        OrderService.update_status(order, Order.Status.DELIVERED)
        order.refresh_from_db()
        self.assertEqual(order.status, Order.Status.DELIVERED)
        self.assertEqual(order.shipped_at, shipped_at)

        types = set(Notification.objects.filter(user=self.buyer).values_list("type", flat=True))
        self.assertEqual(types, {Notification.Type.ORDER_SHIPPED, Notification.Type.ORDER_DELIVERED})

    def test_update_status_rejects_unknown_status(self):
        order = OrderService.create_order(
            user=self.buyer,
            items=[{"product": self.product, "quantity": 1}],
            delivery_address="123 Main St",
        )
        with self.assertRaises(ValueError):
            OrderService.update_status(order, "lost")

    def test_line_total_uses_full_price_without_discount(self):
        item = OrderItem(price=Decimal("50.00"), discounted_price=None, quantity=3)
        self.assertEqual(item.line_total(), Decimal("150.00"))


class OrderViewsTests(APITestCase):
    def setUp(self):
        self.seller = User.objects.create_user(
            email="seller_order_views@example.com",
            password="pass1234",
            role=User.Role.SELLER,
        )
        self.other_seller = User.objects.create_user(
            email="other_seller_order_views@example.com",
            password="pass1234",
            role=User.Role.SELLER,
        )
        self.buyer = User.objects.create_user(
            email="buyer_order_views@example.com",
            password="pass1234",
        )
        self.product = Product.objects.create(
            seller=self.seller,
            name="Order View Product",
            price=Decimal("120.00"),
            stock=20,
        )
        self.client.force_authenticate(user=self.buyer)

    def test_create_order_generates_unique_order_numbers(self):
        payload = {
            "items": [{"product_id": str(self.product.id), "quantity": 1}],
            "delivery_address": "123 Main St",
        }

        first = self.client.post("/order/create/", payload, format="json")
        second = self.client.post("/order/create/", payload, format="json")

        self.assertEqual(first.status_code, status.HTTP_201_CREATED, first.data)
        self.assertEqual(second.status_code, status.HTTP_201_CREATED, second.data)
        numbers = list(Order.objects.values_list("order_number", flat=True))
        self.assertEqual(len(numbers), 2)
        self.assertEqual(len(numbers), len(set(numbers)))

    def test_create_order_with_unknown_product(self):
        payload = {
            "items": [{"product_id": "2f1c6d1e-3c4b-4a77-9a55-5d7f8b0c1234", "quantity": 1}],
            "delivery_address": "123 Main St",
        }
        resp = self.client.post("/order/create/", payload, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_orders_returns_only_own(self):
        OrderService.create_order(
            user=self.buyer,
            items=[{"product": self.product, "quantity": 1}],
            delivery_address="123 Main St",
        )
        OrderService.create_order(
            user=self.other_seller,
            items=[{"product": self.product, "quantity": 1}],
            delivery_address="456 Side St",
        )

        resp = self.client.get("/order/orders/")

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(len(resp.data["orders"]), 1)
        self.assertEqual(resp.data["orders"][0]["items"][0]["line_total"], "120.00")

    def test_only_seller_of_order_updates_status(self):
        order = OrderService.create_order(
            user=self.buyer,
            items=[{"product": self.product, "quantity": 1}],
            delivery_address="123 Main St",
        )
        url = f"/order/orders/{order.id}/status/"

        self.client.force_authenticate(user=self.other_seller)
        denied = self.client.patch(url, {"status": "shipped"}, format="json")
        self.assertEqual(denied.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.seller)
        resp = self.client.patch(url, {"status": "shipped"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.data)
        self.assertEqual(resp.data["status"], "shipped")
        self.assertIsNotNone(resp.data["shipped_at"])

    def test_shared_order_status_is_staff_only(self):
        other_product = Product.objects.create(
            seller=self.other_seller,
            name="Other Seller Product",
            price=Decimal("30.00"),
            stock=5,
        )
        order = OrderService.create_order(
            user=self.buyer,
            items=[
                {"product": self.product, "quantity": 1},
                {"product": other_product, "quantity": 1},
            ],
            delivery_address="123 Main St",
        )
        url = f"/order/orders/{order.id}/status/"

        self.client.force_authenticate(user=self.seller)
        denied = self.client.patch(url, {"status": "delivered"}, format="json")
        self.assertEqual(denied.status_code, status.HTTP_403_FORBIDDEN)
        order.refresh_from_db()
        self.assertEqual(order.status, Order.Status.PENDING)
        self.assertIsNone(order.shipped_at)

        staff = User.objects.create_user(
            email="staff_order_views@example.com",
            password="pass1234",
            is_staff=True,
        )
        self.client.force_authenticate(user=staff)
        resp = self.client.patch(url, {"status": "delivered"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.data)
        self.assertIsNotNone(resp.data["shipped_at"])
