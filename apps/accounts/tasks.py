from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail
import logging

logger = logging.getLogger(__name__)


@shared_task
def send_welcome_email_task(user_id: str):
    """
    Welcome mail for accounts created at checkout. Carries the link the
    customer uses to choose a password and reach their order history.
    """
    from .models import User
    from .services import AccountService

    try:
        user = User.objects.get(pk=user_id)
    except User.DoesNotExist:
        logger.warning(f"Welcome email skipped: user {user_id} no longer exists.")
        return "Skipped (User Missing)"

    link = AccountService.build_password_set_link(user)
    greeting = user.full_name or "there"
    body = (
        f"Hi {greeting},\n\n"
        f"Thank you for shopping with {settings.PROJECT_NAME}. We created an account "
        f"for you so you can follow your orders.\n\n"
        f"Set your password here: {link}\n\n"
        f"If you did not place an order, you can ignore this email."
    )

    send_mail(
        subject=f"Welcome to {settings.PROJECT_NAME}: set your password",
        message=body,
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[user.email],
    )
    logger.info(f"Welcome email sent to user {user.id}")
    return "Sent"
