import json
import logging
from typing import Any, Dict, Optional

from django.conf import settings
from django.db import transaction

from .models import DeviceToken, Notification

logger = logging.getLogger(__name__)


class NotificationService:
    _firebase_ready = False

    @classmethod
    def _init_firebase(cls) -> bool:
        if cls._firebase_ready:
            return True

        service_account_json = getattr(settings, "FCM_SERVICE_ACCOUNT_JSON", "")
        service_account_path = getattr(settings, "FCM_SERVICE_ACCOUNT_FILE", "")
        if not service_account_json and not service_account_path:
            logger.debug("FCM credentials are not configured. Push sending is disabled.")
            return False

        try:
            import firebase_admin
            from firebase_admin import credentials

            if not firebase_admin._apps:
                source = json.loads(service_account_json) if service_account_json else service_account_path
                project_id = getattr(settings, "FCM_PROJECT_ID", "")
                firebase_admin.initialize_app(
                    credentials.Certificate(source),
                    {"projectId": project_id} if project_id else None,
                )
            cls._firebase_ready = True
            return True
        except Exception:
            logger.exception("Failed to initialize Firebase app")
            return False

    @classmethod
    @transaction.atomic
    def notify(
        cls,
        *,
        user,
        notification_type: str,
        title: str,
        message: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Notification:
        payload = payload or {}
        notification = Notification.objects.create(
            user=user,
            type=notification_type,
            title=title,
            message=message,
            payload=payload,
        )
        try:
            cls._send_push_to_user(user=user, title=title, message=message, payload=payload)
        except Exception:
            logger.exception("Push send failed for user=%s type=%s", user.id, notification_type)
        return notification

    @classmethod
    def _send_push_to_user(cls, *, user, title: str, message: str, payload: Dict[str, Any]) -> None:
        tokens = list(DeviceToken.objects.filter(user=user, is_active=True).values_list("token", flat=True))
        if not tokens or not cls._init_firebase():
            return

        from firebase_admin import messaging
        from firebase_admin.exceptions import FirebaseError

        for token in tokens:
            try:
                messaging.send(
                    messaging.Message(
                        notification=messaging.Notification(title=title, body=message),
                        data={k: str(v) for k, v in payload.items()},
                        token=token,
                    )
                )
            except FirebaseError as exc:
                error_code = getattr(exc, "code", "") or str(exc)
                if "registration-token-not-registered" in error_code or "invalid-argument" in error_code:
                    DeviceToken.objects.filter(token=token).update(is_active=False)
                logger.warning("FCM send failed token=%s code=%s", token[:12], error_code)


class NotificationTemplates:
    @staticmethod
    def order_shipped(order):
        return (
            "Order Shipped",
            f"Your order #{order.order_number} is on the way.",
            {
                "type": Notification.Type.ORDER_SHIPPED.value,
                "entity_id": str(order.id),
                "entity_type": "order",
            },
        )

    @staticmethod
    def order_delivered(order):
        return (
            "Order Delivered",
            f"Your order #{order.order_number} has been delivered.",
            {
                "type": Notification.Type.ORDER_DELIVERED.value,
                "entity_id": str(order.id),
                "entity_type": "order",
            },
        )

    @staticmethod
    def payout_generated(payout):
        return (
            "Payout Scheduled",
            f"Your earnings of {payout.amount} for {payout.note} are scheduled for "
            f"{payout.scheduled_for:%d %B %Y}.",
            {
                "type": Notification.Type.PAYOUT_GENERATED.value,
                "entity_id": str(payout.id),
                "entity_type": "payout",
                "amount": str(payout.amount),
            },
        )

    @staticmethod
    def payout_paid(transfer):
        return (
            "Payout Sent",
            f"{transfer.net_amount} {transfer.currency.upper()} has been transferred to your account "
            f"after a {transfer.fee_amount} platform fee.",
            {
                "type": Notification.Type.PAYOUT_PAID.value,
                "entity_id": str(transfer.id),
                "entity_type": "payout_transfer",
                "net_amount": str(transfer.net_amount),
            },
        )
