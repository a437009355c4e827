from django.contrib import admin
from django.urls import path, include



urlpatterns = [
    path("admin/", admin.site.urls),
    path('auth/', include('account.urls')),
    path('catalog/', include('catalog.urls')),
    path('order/', include('order.urls')),
    path('payouts/', include('payout.urls')),
    path('api/notifications/', include('notifications.urls')),
]
