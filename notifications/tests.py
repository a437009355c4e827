from unittest.mock import patch

from django.test import TestCase
from rest_framework.test import APIClient

from account.models import User
from .models import DeviceToken, Notification
from .services import NotificationService


class NotificationServiceTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(email="seller@bazar.com", password="Pass123!")

    def test_notify_persists_without_push_credentials(self):
        DeviceToken.objects.create(user=self.user, token="token-x", device_type="web")

        notification = NotificationService.notify(
            user=self.user,
            notification_type=Notification.Type.PAYOUT_PAID,
            title="Payout Sent",
            message="Money is on the way",
            payload={"amount": "980.00"},
        )

        self.assertEqual(Notification.objects.filter(user=self.user).count(), 1)
        self.assertEqual(notification.payload["amount"], "980.00")

    @patch("notifications.services.NotificationService._send_push_to_user")
    def test_push_failure_does_not_break_notify(self, mock_push):
        mock_push.side_effect = RuntimeError("fcm down")

        NotificationService.notify(
            user=self.user,
            notification_type=Notification.Type.ORDER_SHIPPED,
            title="Order Shipped",
            message="On the way",
        )

        self.assertEqual(Notification.objects.filter(user=self.user).count(), 1)


class NotificationsApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(email="user@bazar.com", password="Pass123!")
        self.other = User.objects.create_user(email="other@bazar.com", password="Pass123!")
        self.client.force_authenticate(self.user)

    def test_device_token_upsert_and_reassign(self):
        resp1 = self.client.post(
            "/api/notifications/device-token/",
            {"token": "token-123", "device_type": "web"},
            format="json",
        )
        self.assertEqual(resp1.status_code, 200, resp1.data)
        token_row = DeviceToken.objects.get(token="token-123")
        self.assertEqual(token_row.user_id, self.user.id)

        self.client.force_authenticate(self.other)
        resp2 = self.client.post(
            "/api/notifications/device-token/",
            {"token": "token-123", "device_type": "android"},
            format="json",
        )
        self.assertEqual(resp2.status_code, 200, resp2.data)
        token_row.refresh_from_db()
        self.assertEqual(token_row.user_id, self.other.id)
        self.assertEqual(token_row.device_type, "android")

    def test_device_token_deactivate(self):
        DeviceToken.objects.create(user=self.user, token="token-a", device_type="web", is_active=True)
        resp = self.client.delete(
            "/api/notifications/device-token/",
            {"token": "token-a"},
            format="json",
        )
        self.assertEqual(resp.status_code, 200, resp.data)
        self.assertEqual(resp.data["deactivated"], 1)
        self.assertFalse(DeviceToken.objects.get(token="token-a").is_active)

    def test_read_endpoints_only_touch_own_notifications(self):
        mine = Notification.objects.create(
            user=self.user,
            type=Notification.Type.PAYOUT_GENERATED,
            title="Payout Scheduled",
            message="Scheduled",
        )
        Notification.objects.create(
            user=self.user,
            type=Notification.Type.ORDER_SHIPPED,
            title="Order Shipped",
            message="On the way",
        )
        theirs = Notification.objects.create(
            user=self.other,
            type=Notification.Type.ORDER_SHIPPED,
            title="Order Shipped",
            message="On the way",
        )

        list_resp = self.client.get("/api/notifications/")
        self.assertEqual(list_resp.status_code, 200, list_resp.data)
        self.assertEqual(list_resp.data["count"], 2)

        read_one = self.client.patch(f"/api/notifications/{mine.id}/read/", {}, format="json")
        self.assertEqual(read_one.status_code, 200, read_one.data)
        mine.refresh_from_db()
        self.assertTrue(mine.is_read)

        unread = self.client.get("/api/notifications/", {"unread": "true"})
        self.assertEqual(unread.data["count"], 1)

        foreign = self.client.patch(f"/api/notifications/{theirs.id}/read/", {}, format="json")
        self.assertEqual(foreign.status_code, 404)

        read_all = self.client.post("/api/notifications/mark-all-read/", {}, format="json")
        self.assertEqual(read_all.status_code, 200, read_all.data)
        self.assertEqual(read_all.data["updated"], 1)
