from django.urls import path
from rest_framework_simplejwt.views import TokenBlacklistView, TokenObtainPairView, TokenRefreshView
from .views import *

urlpatterns = [
    path("register/", RegisterUserView.as_view(), name="register"),
    path("login/", TokenObtainPairView.as_view(), name="login"),
    path("refresh/", TokenRefreshView.as_view(), name="refresh"),
    path("logout/", TokenBlacklistView.as_view(), name="logout"),
    path("user/", SaveUserView.as_view(), name="save-user"),
    path("users/<uuid:pk>/", UserDetailView.as_view(), name="user-detail"),
    path("me/payout-profile/", VendorPayoutProfileView.as_view(), name="payout-profile"),
]
