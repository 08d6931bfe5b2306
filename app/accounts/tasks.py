"""
Celery tasks for accounts.

This module defines async tasks for:
- Sending registration verification emails
- Removing expired pending registrations
- Removing expired outstanding/blacklisted tokens

Related files:
    - services.py: AccountService.register queues send_registration_email
    - config/celery.py: beat schedule for the cleanup tasks

Usage:
    from accounts.tasks import send_registration_email
    send_registration_email.delay(pending_user_id=str(pending.id))
"""

import logging

from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail
from django.utils import timezone

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_kwargs={"max_retries": 3},
)
def send_registration_email(self, pending_user_id: str) -> bool:
    """
    Send the verification link for a pending registration.

    Args:
        pending_user_id: ID of the PendingUser to send the link to

    Returns:
        True if the email was sent, False if the registration is gone
    """
    from accounts.models import PendingUser

    try:
        pending = PendingUser.objects.get(id=pending_user_id)
    except PendingUser.DoesNotExist:
        logger.warning(f"Pending registration {pending_user_id} not found for verification email")
        return False

    verification_url = f"{settings.FRONTEND_URL}/register/verify?token={pending.token}"

    send_mail(
        subject="Confirm your registration",
        message=(
            "Welcome!\n\n"
            f"Follow this link to finish your registration:\n{verification_url}\n\n"
            f"The link expires on {pending.expires_at:%Y-%m-%d %H:%M} UTC."
        ),
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[pending.email],
    )

    logger.info(f"Registration email sent to {pending.email}")
    return True


@shared_task
def cleanup_expired_pending_users() -> int:
    """
    Remove pending registrations whose verification link expired.

    Scheduled daily via celery-beat (see config/celery.py).

    Returns:
        Number of pending registrations deleted
    """
    from accounts.models import PendingUser

    deleted, _ = PendingUser.objects.filter(expires_at__lt=timezone.now()).delete()

    logger.info(f"Cleaned up {deleted} expired pending registrations")
    return deleted


@shared_task
def flush_expired_tokens() -> int:
    """
    Remove outstanding tokens past their expiry, with their blacklist rows.

    Expired tokens are rejected on signature/expiry alone, so their
    revocation records are no longer needed. Scheduled daily.

    Returns:
        Number of outstanding tokens deleted
    """
    from rest_framework_simplejwt.token_blacklist.models import (
        BlacklistedToken,
        OutstandingToken,
    )

    expired = OutstandingToken.objects.filter(expires_at__lt=timezone.now())
    BlacklistedToken.objects.filter(token__in=expired).delete()
    deleted, _ = expired.delete()

    logger.info(f"Flushed {deleted} expired tokens")
    return deleted
