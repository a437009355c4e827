from django.db import transaction
from django.utils import timezone
import uuid
import logging
from catalog.models import Product
from .models import Order, OrderItem
from notifications.services import NotificationService, NotificationTemplates

logger = logging.getLogger(__name__)


class OrderService:

    @staticmethod
    def _generate_order_number():
        while True:
            candidate = f"ORD-{uuid.uuid4().hex[:12].upper()}"
            if not Order.objects.filter(order_number=candidate).exists():
                return candidate

    @staticmethod
    @transaction.atomic
    def create_order(user, items, delivery_address, payment_method=""):
        """
        items: list of dicts like:
        [{"product": Product obj, "quantity": 2}]
        """
        if not items:
            raise ValueError("Order must contain at least one item")

        quantities = {}
        for item in items:
            requested_qty = int(item["quantity"])
            if requested_qty <= 0:
                raise ValueError("Quantity must be greater than zero")
            key = str(item["product"].id)
            quantities[key] = quantities.get(key, 0) + requested_qty

        locked_products = {
            str(product.id): product
            for product in Product.objects.select_for_update().filter(id__in=quantities.keys(), is_active=True)
        }
        for product_id, requested_qty in quantities.items():
            product = locked_products.get(product_id)
            if not product:
                raise ValueError("Product is not available")
            if requested_qty > product.stock:
                raise ValueError(f"Insufficient stock for {product.name}")

        for product_id, requested_qty in quantities.items():
            product = locked_products[product_id]
            product.stock -= requested_qty
            product.save(update_fields=["stock", "updated_at"])

        total = sum(
            locked_products[str(item["product"].id)].effective_price() * int(item["quantity"])
            for item in items
        )
        order = Order.objects.create(
            order_number=OrderService._generate_order_number(),
            user=user,
            total_amount=total,
            status=Order.Status.PENDING,
            payment_method=payment_method,
            delivery_address=delivery_address,
        )

        for item in items:
            product = locked_products[str(item["product"].id)]
            OrderItem.objects.create(
                order=order,
                product=product,
                vendor=product.seller,
                product_name=product.name,
                price=product.price,
                discounted_price=product.discounted_price,
                quantity=int(item["quantity"]),
            )
        return order

    @staticmethod
    @transaction.atomic
    def update_status(order: Order, new_status: str) -> Order:
        if new_status not in Order.Status.values:
            raise ValueError(f"Unknown order status '{new_status}'")
        if order.status == new_status:
            return order

        update_fields = ["status", "updated_at"]
        order.status = new_status
        # Payout windows are keyed on the shipped date
        if new_status in {Order.Status.SHIPPED, Order.Status.DELIVERED} and order.shipped_at is None:
            order.shipped_at = timezone.now()
            update_fields.append("shipped_at")
        order.save(update_fields=update_fields)

        template = {
            Order.Status.SHIPPED: NotificationTemplates.order_shipped,
            Order.Status.DELIVERED: NotificationTemplates.order_delivered,
        }.get(new_status)
        if template:
            # Non-blocking notification: status changes must not fail on push errors.
            try:
                title, message, payload = template(order)
                NotificationService.notify(
                    user=order.user,
                    notification_type=payload["type"],
                    title=title,
                    message=message,
                    payload=payload,
                )
            except Exception:
                logger.exception("Failed to send %s notification for order=%s", new_status, order.id)
        return order
