from eventauth.common.logging_setup import get_logger

logger = get_logger("eventauth.pin")

PIN_LENGTH = 6
PIN_SESSION_KEY_PREFIX = "pin:session"
PIN_EPOCH_KEY_PREFIX = "pin:epoch"

PIN_SESSION_HEADER = "X-PIN-Session-Id"
PIN_SESSION_COOKIE = "pinSessionId"

SESSION_INVALID_MESSAGE = "PIN verification expired or invalid"
