from starlette.requests import Request
from core.config import settings


def get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded and forwarded.strip():
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "127.0.0.1"


def is_allowed_ip(request: Request) -> bool:
    # Only enforced in production; sandbox callbacks come from anywhere
    if settings.ENV != "production":
        return True
    return get_client_ip(request) in settings.VNPAY_IP_WHITELIST
