from fastapi import Request
from eventauth.rate_limiting.constants import UNKNOWN_ORIGIN


def client_origin(request: Request, trust_proxy_headers: bool = False) -> str:
    """
    Network address of the caller, used as the origin rate limiting axis.
    X-Forwarded-For is only honoured when trust_proxy_headers is set.
    """
    if trust_proxy_headers:
        xff = request.headers.get("X-Forwarded-For")
        if xff:
            first = xff.split(",")[0].strip()
            if first:
                return first
    client_host = request.client.host if request.client else None
    return client_host or UNKNOWN_ORIGIN


def client_user_agent(request: Request) -> str:
    return request.headers.get("user-agent", "")[:512]
