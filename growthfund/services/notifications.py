"""
Notification dispatcher — delivers one-time codes by email.

Delivery goes through a Resend-compatible HTTP API using httpx with a bounded
timeout. Delivery is best-effort: failures are logged and reported as False,
never raised, because the code is already stored and the user can ask for a
resend. When no API key is configured, delivery is disabled and only logged.

The code value itself is never written to the logs.
"""

import logging

import httpx

from growthfund.config import settings
from growthfund.models.one_time_code import CodePurpose

logger = logging.getLogger(__name__)


PURPOSE_LABELS: dict[CodePurpose, str] = {
    CodePurpose.REGISTRATION: "Registration",
    CodePurpose.LOGIN: "Login",
    CodePurpose.DEPOSIT: "Deposit Confirmation",
    CodePurpose.WITHDRAWAL: "Withdrawal Confirmation",
    CodePurpose.PASSWORD_RESET: "Password Reset",
}


def build_message(
    code: str,
    purpose: CodePurpose,
    ttl_seconds: int,
    user_name: str | None = None,
) -> tuple[str, str]:
    """Return (subject, plain-text body) for a code email."""
    label = PURPOSE_LABELS[purpose]
    greeting = f"Hi {user_name}" if user_name else "Hello"
    minutes = ttl_seconds // 60
    subject = f"{label} - Your OTP Code"
    body = (
        f"{greeting},\n\n"
        f"Your verification code for {label.lower()} is: {code}\n\n"
        f"This code will expire in {minutes} minutes.\n"
        "If you didn't request this code, please ignore this email.\n"
        "Never share this code with anyone."
    )
    return subject, body


class EmailDispatcher:
    """Sends code emails through the configured HTTP email API."""

    def __init__(
        self,
        api_key: str | None,
        api_url: str,
        sender: str,
        timeout_seconds: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.sender = sender
        self.timeout_seconds = timeout_seconds
        # Tests inject httpx.MockTransport here
        self._transport = transport

    async def send_code(
        self,
        email: str,
        code: str,
        purpose: CodePurpose,
        user_name: str | None = None,
    ) -> bool:
        """Deliver a code. Returns True on success, False on any failure."""
        if not self.api_key:
            logger.warning(
                "Email delivery disabled (no API key); %s code for %s not sent",
                purpose.value,
                email,
            )
            return False

        subject, body = build_message(code, purpose, settings.OTP_TTL_SECONDS, user_name)
        payload = {
            "from": self.sender,
            "to": [email],
            "subject": subject,
            "text": body,
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    self.api_url,
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Email API rejected %s code for %s: HTTP %s",
                purpose.value,
                email,
                exc.response.status_code,
            )
            return False
        except httpx.HTTPError as exc:
            logger.error(
                "Email delivery of %s code to %s failed: %s",
                purpose.value,
                email,
                exc.__class__.__name__,
            )
            return False

        logger.info("Sent %s code to %s", purpose.value, email)
        return True


_dispatcher = EmailDispatcher(
    api_key=settings.RESEND_API_KEY,
    api_url=settings.RESEND_API_URL,
    sender=settings.EMAIL_FROM,
    timeout_seconds=settings.EMAIL_TIMEOUT_SECONDS,
)


def get_dispatcher() -> EmailDispatcher:
    """FastAPI dependency returning the process-wide dispatcher."""
    return _dispatcher
