from rest_framework import serializers

from .models import DeviceToken, Notification


class DeviceTokenSerializer(serializers.ModelSerializer):
    class Meta:
        model = DeviceToken
        fields = ["id", "token", "device_type", "is_active"]
        read_only_fields = ("id", "is_active")
        extra_kwargs = {"token": {"validators": []}}

    def validate_token(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("token is required")
        return value

    def create(self, validated_data):
        # A token moves to whichever user registered it last
        device_token, _ = DeviceToken.objects.update_or_create(
            token=validated_data["token"],
            defaults={
                "user": validated_data["user"],
                "device_type": validated_data["device_type"],
                "is_active": True,
            },
        )
        return device_token


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = ["id", "type", "title", "message", "payload", "is_read", "created_at"]
