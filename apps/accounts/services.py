import logging
from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.contrib.auth.tokens import default_token_generator
from django.db import transaction
from django.utils.encoding import force_bytes, force_str
from django.utils.http import urlsafe_base64_encode, urlsafe_base64_decode
from django.contrib.auth.password_validation import validate_password
from rest_framework.exceptions import ValidationError

from .models import User, Profile, Role
from .tasks import send_welcome_email_task

logger = logging.getLogger(__name__)


class AccountService:

    @staticmethod
    def find_by_email(email: str):
        try:
            return User.objects.get_by_email(email)
        except User.DoesNotExist:
            return None

    @staticmethod
    @transaction.atomic
    def provision_customer(email: str, name: str, phone: str = ""):
        """
        Checkout-time account provisioning. Returns (user, created).

        A new account is active, has no usable password and gets a customer
        profile in the same transaction. The welcome email (password-set link)
        is queued once the transaction commits.
        """
        existing = AccountService.find_by_email(email)
        if existing is not None:
            return existing, False

        user = User.objects.create_user(
            email=email,
            full_name=name,
            phone=phone or "",
        )
        Profile.objects.create(
            user=user,
            email=user.email,
            name=name,
            phone=phone or None,
            role=Role.CUSTOMER,
        )
        logger.info(f"Provisioned customer account {user.id}")

        user_id = str(user.id)
        transaction.on_commit(lambda: send_welcome_email_task.delay(user_id))
        return user, True

    @staticmethod
    def build_password_set_link(user) -> str:
        uid = urlsafe_base64_encode(force_bytes(user.pk))
        token = default_token_generator.make_token(user)
        base = settings.SITE_URL.rstrip("/")
        return f"{base}/auth/callback?uid={uid}&token={token}&next=/account"

    @staticmethod
    def set_password_from_token(uid: str, token: str, password: str) -> User:
        try:
            user = User.objects.get(pk=force_str(urlsafe_base64_decode(uid)))
        except (User.DoesNotExist, ValueError, TypeError, OverflowError):
            raise ValidationError({"uid": "Invalid or expired link."})

        if not default_token_generator.check_token(user, token):
            raise ValidationError({"token": "Invalid or expired link."})

        try:
            validate_password(password, user=user)
        except DjangoValidationError as e:
            raise ValidationError({"password": list(e.messages)})

        user.set_password(password)
        user.save(update_fields=["password"])
        logger.info(f"Password set for user {user.id}")
        return user
