from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status, permissions

from catalog.models import Product
from .models import Order
from .serializers import OrderCreateSerializer, OrderSerializer, OrderStatusSerializer
from .services import OrderService


class CreateOrderView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = OrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        products = {
            product.id: product
            for product in Product.objects.filter(id__in=[line["product_id"] for line in data["items"]])
        }
        try:
            items = [
                {"product": products[line["product_id"]], "quantity": line["quantity"]}
                for line in data["items"]
            ]
        except KeyError:
            return Response({"detail": "Invalid product"}, status=status.HTTP_400_BAD_REQUEST)

        try:
            order = OrderService.create_order(
                user=request.user,
                items=items,
                delivery_address=data["delivery_address"],
                payment_method=data["payment_method"],
            )
        except ValueError as e:
            return Response({"detail": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)


class ListOrdersView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        orders = (
            Order.objects.filter(user=request.user)
            .prefetch_related("items")
            .order_by("-created_at")
        )
        return Response({"orders": OrderSerializer(orders, many=True).data})


class OrderStatusUpdateView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def patch(self, request, pk):
        order = Order.objects.filter(pk=pk).first()
        if not order:
            return Response({"detail": "Order not found"}, status=status.HTTP_404_NOT_FOUND)
        if not request.user.is_staff:
            items = order.items.all()
            # shipped_at drives payouts for every seller on the order
            if not items.filter(vendor=request.user).exists() or items.exclude(vendor=request.user).exists():
                return Response(
                    {"detail": "Only staff or the sole seller of this order can update its status"},
                    status=status.HTTP_403_FORBIDDEN,
                )

        serializer = OrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            order = OrderService.update_status(order, serializer.validated_data["status"])
        except ValueError as e:
            return Response({"detail": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(
            {
                "order_id": str(order.id),
                "status": order.status,
                "shipped_at": order.shipped_at.isoformat() if order.shipped_at else None,
            },
            status=status.HTTP_200_OK,
        )
