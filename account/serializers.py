from rest_framework.serializers import ModelSerializer
from django.contrib.auth import get_user_model
from rest_framework import serializers
User = get_user_model()

class UserSerializer(ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'first_name', 'last_name', 'email', 'phone_number', 'photo_url', 'role', 'status', 'created_at', 'updated_at', 'password']
        extra_kwargs = {
            'password': {'write_only': True},}
        read_only_fields = ('id', 'role', 'created_at', 'updated_at')

    def create(self, validated_data):
        password = validated_data.pop('password', None)
        return User.objects.create_user(password=password, **validated_data)

    def update(self, instance, validated_data):
        password = validated_data.pop('password', None)
        user = super().update(instance, validated_data)
        if password:
            user.set_password(password)
            user.save(update_fields=["password", "updated_at"])
        return user


class SaveUserSerializer(serializers.Serializer):
    """Payload of the login-time upsert sent by the storefront."""
    email = serializers.EmailField()
    first_name = serializers.CharField(required=False, allow_blank=True, max_length=30)
    last_name = serializers.CharField(required=False, allow_blank=True, max_length=30)
    photo_url = serializers.URLField(required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=User.Status.choices, required=False)


class VendorPayoutProfileSerializer(ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'email', 'payout_account_id', 'bank_name', 'bank_account_name', 'bank_account_number']
        read_only_fields = ('id', 'email', 'payout_account_id')
