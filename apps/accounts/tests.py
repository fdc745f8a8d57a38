from io import StringIO
from unittest.mock import patch
from urllib.parse import urlparse, parse_qs

from django.core import mail
from django.core.management import call_command
from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework.test import APIClient
from rest_framework import status

from apps.accounts.models import User, Profile, Role
from apps.accounts.services import AccountService
from apps.accounts.tasks import send_welcome_email_task


class ProvisionCustomerTests(TestCase):

    def test_new_email_creates_passwordless_user_with_profile(self):
        with self.captureOnCommitCallbacks() as callbacks:
            user, created = AccountService.provision_customer(
                email="Ada@Example.com", name="Ada Obi", phone="+2348012345678"
            )

        self.assertTrue(created)
        self.assertEqual(user.email, "ada@example.com")
        self.assertTrue(user.is_active)
        self.assertFalse(user.has_usable_password())

        profile = Profile.objects.get(user=user)
        self.assertEqual(profile.role, Role.CUSTOMER)
        self.assertEqual(profile.name, "Ada Obi")
        self.assertEqual(profile.phone, "+2348012345678")

        # Welcome email waits for the commit
        self.assertEqual(len(callbacks), 1)

    def test_existing_email_is_matched_case_insensitively(self):
        existing = User.objects.create_user(email="ada@example.com")

        with self.captureOnCommitCallbacks() as callbacks:
            user, created = AccountService.provision_customer(email="ADA@EXAMPLE.COM", name="Ada")

        self.assertFalse(created)
        self.assertEqual(user, existing)
        self.assertEqual(User.objects.count(), 1)
        self.assertEqual(Profile.objects.count(), 0)
        self.assertEqual(callbacks, [])

    @patch("apps.accounts.services.send_welcome_email_task")
    def test_welcome_task_is_queued_with_user_id(self, mock_task):
        with self.captureOnCommitCallbacks(execute=True):
            user, _ = AccountService.provision_customer(email="new@example.com", name="New")

        mock_task.delay.assert_called_once_with(str(user.id))


@override_settings(SITE_URL="https://shop.example.com")
class WelcomeEmailTests(TestCase):

    def test_email_contains_password_set_link(self):
        user = User.objects.create_user(email="ada@example.com", full_name="Ada")

        result = send_welcome_email_task(str(user.id))

        self.assertEqual(result, "Sent")
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ["ada@example.com"])
        self.assertIn("https://shop.example.com/auth/callback?uid=", mail.outbox[0].body)
        self.assertIn("next=/account", mail.outbox[0].body)

    def test_missing_user_is_skipped(self):
        result = send_welcome_email_task("6f1c3b52-6a9e-4c57-9d1b-9a2f27c0d111")
        self.assertEqual(result, "Skipped (User Missing)")
        self.assertEqual(len(mail.outbox), 0)


class SetPasswordAPITests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(email="ada@example.com", full_name="Ada")
        query = parse_qs(urlparse(AccountService.build_password_set_link(self.user)).query)
        self.uid = query["uid"][0]
        self.token = query["token"][0]

    def test_valid_link_sets_password_and_allows_login(self):
        res = self.client.post(
            reverse("password-set"),
            {"uid": self.uid, "token": self.token, "password": "Kola-nut-2024"},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK)

        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password("Kola-nut-2024"))

        res = self.client.post(
            reverse("token-obtain"),
            {"email": "ada@example.com", "password": "Kola-nut-2024"},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertIn("access", res.data)

    def test_link_cannot_be_reused(self):
        payload = {"uid": self.uid, "token": self.token, "password": "Kola-nut-2024"}
        self.client.post(reverse("password-set"), payload, format="json")

        res = self.client.post(reverse("password-set"), payload, format="json")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)

    def test_bad_token_is_rejected(self):
        res = self.client.post(
            reverse("password-set"),
            {"uid": self.uid, "token": "bogus-token", "password": "Kola-nut-2024"},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["error"], "Invalid or expired link.")

    def test_weak_password_is_rejected(self):
        res = self.client.post(
            reverse("password-set"),
            {"uid": self.uid, "token": self.token, "password": "password"},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("password", res.data["details"])


class MeAPITests(TestCase):

    def test_returns_user_with_profile(self):
        user = User.objects.create_user(email="ada@example.com", full_name="Ada")
        Profile.objects.create(user=user, email=user.email, name="Ada", role=Role.SHOP_REP)

        client = APIClient()
        client.force_authenticate(user=user)
        res = client.get(reverse("user-me"))

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["email"], "ada@example.com")
        self.assertEqual(res.data["profile"]["role"], "shop_rep")
        self.assertTrue(user.profile.is_store_staff)

    def test_anonymous_is_rejected(self):
        res = APIClient().get(reverse("user-me"))
        self.assertEqual(res.status_code, status.HTTP_401_UNAUTHORIZED)


class CreateAdminCommandTests(TestCase):

    @override_settings(DEBUG=True)
    @patch.dict("os.environ", {"ADMIN_EMAIL": "Chief@Example.com", "ADMIN_PASSWORD": "Admin-pass-991"})
    def test_creates_chief_admin(self):
        call_command("create_admin", stdout=StringIO(), stderr=StringIO())

        user = User.objects.get(email="chief@example.com")
        self.assertTrue(user.is_superuser)
        self.assertEqual(user.profile.role, Role.CHIEF_ADMIN)
