from rest_framework import permissions, status
from rest_framework.exceptions import PermissionDenied
from rest_framework.generics import CreateAPIView, RetrieveUpdateAPIView
from rest_framework.response import Response
from rest_framework.views import APIView
from django.contrib.auth import get_user_model

from .serializers import SaveUserSerializer, UserSerializer, VendorPayoutProfileSerializer

User = get_user_model()

class RegisterUserView(CreateAPIView):
    queryset = User.objects.all()
    permission_classes = [permissions.AllowAny]
    serializer_class = UserSerializer


class UserDetailView(RetrieveUpdateAPIView):
    permission_classes = [permissions.IsAuthenticated]
    queryset = User.objects.all()
    serializer_class = UserSerializer

    def get_object(self):
        user = super().get_object()
        if user.pk != self.request.user.pk and not self.request.user.is_staff:
            raise PermissionDenied("You can only access your own profile")
        return user


class SaveUserView(APIView):
    """
    Upsert called by the storefront on every sign-in.

    A new email creates the user. For an existing user only a seller request
    (status=REQUESTED) is written; any other payload returns the stored user.
    """
    permission_classes = [permissions.AllowAny]

    def put(self, request):
        serializer = SaveUserSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        existing = User.objects.filter(email__iexact=data["email"]).first()
        if existing:
            if data.get("status") == User.Status.REQUESTED:
                existing.status = User.Status.REQUESTED
                existing.save(update_fields=["status", "updated_at"])
            return Response(UserSerializer(existing).data, status=status.HTTP_200_OK)

        user = User.objects.create_user(**data)
        return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)


class VendorPayoutProfileView(RetrieveUpdateAPIView):
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = VendorPayoutProfileSerializer

    def get_object(self):
        if not self.request.user.is_vendor:
            raise PermissionDenied("Only sellers have a payout profile")
        return self.request.user
