from flask import has_request_context, request


def client_ip() -> str:
    """
    Network origin of the request.

    Only the socket peer is used. Behind a proxy, ProxyFix (see
    TRUSTED_PROXY_COUNT) rewrites remote_addr from X-Forwarded-For before
    this runs, so a client cannot pick its own origin.
    """
    if not has_request_context():
        return "unknown"
    return request.remote_addr or "unknown"


def user_agent() -> str:
    if not has_request_context():
        return ""
    return (request.headers.get("User-Agent") or "")[:255]
