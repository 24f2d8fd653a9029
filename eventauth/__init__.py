from eventauth.common.logging_setup import get_logger

logger = get_logger("eventauth.app")
