"""Accounts Service - password reset notifications.

A notifier receives the user and the plain reset token right after the
token is minted.  With ``MAIL_WEBHOOK_URL`` set the message is POSTed to
that mail relay; otherwise the reset link is only logged.
"""

import logging
from typing import Optional, Protocol
from urllib.parse import urlencode

import httpx

from accounts.config import MAIL_TIMEOUT, MAIL_WEBHOOK_URL, RESET_PASSWORD_URL
from accounts.database import DBUser
from accounts.exceptions import NotificationError

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    async def send(self, user: DBUser, reset_token: str) -> None:
        ...


def build_reset_link(token: str, email: str, base_url: str = RESET_PASSWORD_URL) -> str:
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}{urlencode({'token': token, 'email': email})}"


def reset_message(user: DBUser, reset_token: str) -> dict:
    return {
        "to": user.email,
        "subject": "Reset Password Notification",
        "text": (
            f"Hello {user.name},\n\n"
            "You are receiving this email because we received a password reset "
            "request for your account.\n\n"
            f"Reset your password: {build_reset_link(reset_token, user.email)}\n\n"
            "If you did not request a password reset, no further action is required."
        ),
    }


class LogNotifier:
    async def send(self, user: DBUser, reset_token: str) -> None:
        logger.info("Password reset link for user %s: %s", user.id, build_reset_link(reset_token, user.email))


class WebhookNotifier:
    def __init__(self, url: str, timeout: float = MAIL_TIMEOUT, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = url
        self.timeout = timeout
        self.transport = transport

    async def send(self, user: DBUser, reset_token: str) -> None:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.post(self.url, json=reset_message(user, reset_token))
                resp.raise_for_status()
        except httpx.HTTPError as e:
            raise NotificationError(f"Mail relay rejected reset email: {e}") from e
        logger.info("Password reset email queued for user %s", user.id)


def default_notifier() -> Notifier:
    if MAIL_WEBHOOK_URL:
        return WebhookNotifier(MAIL_WEBHOOK_URL)
    return LogNotifier()
