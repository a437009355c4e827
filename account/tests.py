from django.test import TestCase
from rest_framework.test import APIClient

from account.models import User


class UserModelTests(TestCase):
    def test_create_user_hashes_password(self):
        user = User.objects.create_user(
            email="user@example.com",
            password="Pass123!",
        )

        self.assertNotEqual(user.password, "Pass123!")
        self.assertTrue(user.check_password("Pass123!"))

    def test_create_user_requires_email(self):
        with self.assertRaisesMessage(ValueError, "Users must have an email"):
            User.objects.create_user(email="", password="Pass123!")

    def test_create_user_without_password_is_unusable(self):
        user = User.objects.create_user(email="social@example.com")
        self.assertFalse(user.has_usable_password())

    def test_bank_details_empty_without_account_number(self):
        vendor = User.objects.create_user(
            email="seller@example.com",
            password="Pass123!",
            role=User.Role.SELLER,
            bank_name="Sonali Bank",
        )
        self.assertEqual(vendor.bank_details, "")
        self.assertTrue(vendor.is_vendor)

    def test_bank_details_joins_provided_parts(self):
        vendor = User.objects.create_user(
            email="seller2@example.com",
            password="Pass123!",
            role=User.Role.SELLER,
            bank_name="Sonali Bank",
            bank_account_number="0011223344",
        )
        self.assertEqual(vendor.bank_details, "Sonali Bank / 0011223344")


class SaveUserViewTests(TestCase):
    def setUp(self):
        self.client = APIClient()

    def test_first_sign_in_creates_user(self):
        resp = self.client.put(
            "/auth/user/",
            {"email": "new@example.com", "first_name": "Rina"},
            format="json",
        )
        self.assertEqual(resp.status_code, 201, resp.data)
        user = User.objects.get(email="new@example.com")
        self.assertEqual(user.role, User.Role.CUSTOMER)
        self.assertEqual(user.status, User.Status.VERIFIED)

    def test_existing_user_seller_request_updates_status_only(self):
        user = User.objects.create_user(email="buyer@example.com", first_name="Old")
        resp = self.client.put(
            "/auth/user/",
            {"email": "buyer@example.com", "first_name": "New", "status": "REQUESTED"},
            format="json",
        )
        self.assertEqual(resp.status_code, 200, resp.data)
        user.refresh_from_db()
        self.assertEqual(user.status, User.Status.REQUESTED)
        self.assertEqual(user.first_name, "Old")

    def test_existing_user_sign_in_returns_stored_user(self):
        User.objects.create_user(email="back@example.com", first_name="Stored")
        resp = self.client.put(
            "/auth/user/",
            {"email": "back@example.com", "first_name": "Changed"},
            format="json",
        )
        self.assertEqual(resp.status_code, 200, resp.data)
        self.assertEqual(resp.data["first_name"], "Stored")
        self.assertEqual(User.objects.filter(email="back@example.com").count(), 1)


class UserDetailViewTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(email="me@example.com", password="Pass123!")
        self.other = User.objects.create_user(email="other@example.com", password="Pass123!")

    def test_user_cannot_read_someone_else(self):
        self.client.force_authenticate(self.user)
        resp = self.client.get(f"/auth/users/{self.other.id}/")
        self.assertEqual(resp.status_code, 403)

    def test_user_reads_own_profile(self):
        self.client.force_authenticate(self.user)
        resp = self.client.get(f"/auth/users/{self.user.id}/")
        self.assertEqual(resp.status_code, 200, resp.data)
        self.assertEqual(resp.data["email"], "me@example.com")
        self.assertNotIn("password", resp.data)

    def test_vendor_updates_bank_details(self):
        vendor = User.objects.create_user(email="v@example.com", password="Pass123!", role=User.Role.SELLER)
        self.client.force_authenticate(vendor)
        resp = self.client.patch(
            "/auth/me/payout-profile/",
            {"bank_name": "City Bank", "bank_account_number": "998877"},
            format="json",
        )
        self.assertEqual(resp.status_code, 200, resp.data)
        vendor.refresh_from_db()
        self.assertEqual(vendor.bank_details, "City Bank / 998877")

    def test_customer_has_no_payout_profile(self):
        self.client.force_authenticate(self.user)
        resp = self.client.get("/auth/me/payout-profile/")
        self.assertEqual(resp.status_code, 403)


class LogoutViewTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        User.objects.create_user(email="leaving@example.com", password="Pass123!")

    def test_logged_out_refresh_token_cannot_be_reused(self):
        login = self.client.post(
            "/auth/login/",
            {"email": "leaving@example.com", "password": "Pass123!"},
            format="json",
        )
        self.assertEqual(login.status_code, 200, login.data)
        refresh = login.data["refresh"]

        logout = self.client.post("/auth/logout/", {"refresh": refresh}, format="json")
        self.assertEqual(logout.status_code, 200, logout.data)

        resp = self.client.post("/auth/refresh/", {"refresh": refresh}, format="json")
        self.assertEqual(resp.status_code, 401)

    def test_logout_requires_refresh_token(self):
        resp = self.client.post("/auth/logout/", {}, format="json")
        self.assertEqual(resp.status_code, 400)
