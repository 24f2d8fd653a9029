"""
Email transport used to deliver one-time codes.

In development (no SMTP configured) the code is logged to the console
instead of being mailed, so the whole flow can be exercised locally.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional
import aiosmtplib
from eventauth.common.circuit_breaker import CircuitBreaker, CircuitOpenError
from eventauth.common.logging_setup import get_logger
from eventauth.config.settings import Settings

logger = get_logger("eventauth.notifications")

OTP_SUBJECT = "Your one-time sign-in code"


@dataclass(frozen=True)
class DeliveryResult:
    success: bool
    error: Optional[str] = None


class EmailTransport(ABC):
    # False for transports that only log the code
    sends_mail = True

    @abstractmethod
    async def send_otp(self, to_email: str, code: str, expires_in_seconds: int) -> DeliveryResult:
        ...


def _build_html_body(code: str, expires_in_seconds: int) -> str:
    minutes = max(1, expires_in_seconds // 60)
    return f"""
    <html>
    <body style="font-family:sans-serif;color:#333;max-width:600px;margin:0 auto">
      <h2>Your one-time code</h2>
      <div style="background:#f5f5f5;padding:20px;text-align:center;margin:20px 0;border-radius:5px">
        <strong style="font-size:24px;letter-spacing:5px">{code}</strong>
      </div>
      <p style="color:#666;font-size:14px">This code expires in {minutes} minutes.</p>
      <p style="color:#666;font-size:14px">If you didn't request this code, you can ignore this email.</p>
    </body>
    </html>
    """


class ConsoleEmailTransport(EmailTransport):
    """Dev transport: logs the code instead of sending it."""

    sends_mail = False

    async def send_otp(self, to_email: str, code: str, expires_in_seconds: int) -> DeliveryResult:
        logger.info("[DEV] OTP for %s: otp=%s (valid %ss, email not sent)", to_email, code, expires_in_seconds)
        return DeliveryResult(success=True)


class DisabledEmailTransport(EmailTransport):
    """No SMTP credentials outside dev/test: every delivery fails."""

    async def send_otp(self, to_email: str, code: str, expires_in_seconds: int) -> DeliveryResult:
        logger.error("email.not_configured", extra={"email": to_email})
        return DeliveryResult(success=False, error="Email service not configured")


class SmtpEmailTransport(EmailTransport):

    def __init__(self, *, host: str, port: int, username: str, password: str, from_email: str,
                 use_tls: bool = True, timeout: float = 10.0, breaker: Optional[CircuitBreaker] = None):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_email = from_email
        self.use_tls = use_tls
        self.timeout = timeout
        self.breaker = breaker or CircuitBreaker(name="smtp", failure_threshold=3, recovery_timeout=30)

    def _build_message(self, to_email: str, code: str, expires_in_seconds: int) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = OTP_SUBJECT
        msg["From"] = self.from_email
        msg["To"] = to_email

        plain = (f"Your one-time code is {code}.\n"
                 f"It expires in {max(1, expires_in_seconds // 60)} minutes.")
        msg.attach(MIMEText(plain, "plain"))
        msg.attach(MIMEText(_build_html_body(code, expires_in_seconds), "html"))
        return msg

    async def send_otp(self, to_email: str, code: str, expires_in_seconds: int) -> DeliveryResult:
        try:
            await self.breaker.before_call()
        except CircuitOpenError:
            logger.warning("email.circuit_open", extra={"email": to_email})
            return DeliveryResult(success=False, error="Email service temporarily unavailable")

        msg = self._build_message(to_email, code, expires_in_seconds)
        try:
            await aiosmtplib.send(
                msg,
                hostname=self.host,
                port=self.port,
                username=self.username,
                password=self.password,
                start_tls=self.use_tls,
                timeout=self.timeout,
            )
        except (aiosmtplib.SMTPException, OSError, asyncio.TimeoutError) as e:
            await self.breaker.record_failure()
            logger.error("email.send_failed", extra={"email": to_email, "error": str(e)})
            return DeliveryResult(success=False, error="Failed to send email")

        await self.breaker.record_success()
        logger.info("email.sent", extra={"email": to_email})
        return DeliveryResult(success=True)


def build_email_transport(settings: Settings, allow_console: bool) -> EmailTransport:
    if settings.smtp_enabled():
        return SmtpEmailTransport(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            username=settings.SMTP_USERNAME,
            password=settings.SMTP_PASSWORD,
            from_email=settings.SMTP_FROM_EMAIL,
            use_tls=settings.SMTP_USE_TLS,
            timeout=settings.EMAIL_TIMEOUT_SECONDS,
        )
    if allow_console:
        return ConsoleEmailTransport()
    return DisabledEmailTransport()
