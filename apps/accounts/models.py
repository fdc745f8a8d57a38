import uuid
from django.db import models
from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.conf import settings
from django.utils import timezone
from .managers import UserManager


class Role(models.TextChoices):
    CHIEF_ADMIN = "chief_admin", "Chief Admin"
    SHOP_REP = "shop_rep", "Shop Representative"
    DEVELOPER = "developer", "Developer"
    CUSTOMER = "customer", "Customer"


STAFF_ROLES = (Role.CHIEF_ADMIN, Role.SHOP_REP, Role.DEVELOPER)


class User(AbstractBaseUser, PermissionsMixin):
    """
    Authentication account. Email is the primary identifier.
    Accounts provisioned at checkout have no usable password until the
    customer follows the welcome email link.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True, db_index=True)
    full_name = models.CharField(max_length=255, blank=True)
    phone = models.CharField(max_length=20, blank=True)

    is_staff = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    date_joined = models.DateTimeField(default=timezone.now)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    EMAIL_FIELD = 'email'
    REQUIRED_FIELDS = []

    class Meta:
        verbose_name = 'User'
        verbose_name_plural = 'Users'

    def __str__(self):
        return self.email

    @property
    def role(self):
        profile = getattr(self, "profile", None)
        return profile.role if profile else None


class Profile(models.Model):
    """
    Application-level user record, distinct from the authentication account.
    Shares its primary key with the User it belongs to.
    """
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name="profile",
    )
    email = models.EmailField()
    name = models.CharField(max_length=255)
    phone = models.CharField(max_length=20, blank=True, null=True)
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.CUSTOMER, db_index=True)
    permissions = models.JSONField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.email} ({self.role})"

    @property
    def is_store_staff(self):
        return self.role in STAFF_ROLES
