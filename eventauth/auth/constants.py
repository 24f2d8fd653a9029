from eventauth.common.logging_setup import get_logger

logger = get_logger("eventauth.auth")

OTP_KEY_PREFIX = "otp"
FAILED_ATTEMPTS_KEY_PREFIX = "failed_attempts"
SUSPENSION_KEY_PREFIX = "suspension"

ACCESS_COOKIE_NAME = "access_token"

INVALID_CODE_MESSAGE = "Invalid or expired OTP code"
SUSPENDED_MESSAGE = "Too many failed attempts. Access for this email is suspended until it is cleared."
