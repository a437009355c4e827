from django.urls import path
from .views import *
urlpatterns = [
    path('create/', CreateOrderView.as_view(), name='order-create'),
    path('orders/', ListOrdersView.as_view(), name='user-orders'),
    path('orders/<uuid:pk>/status/', OrderStatusUpdateView.as_view(), name='order-status-update'),
]
