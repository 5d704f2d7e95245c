"""
VNPAY request signing and verification.

The gateway signs the form-encoded (space as '+') query string built from the
vnp_* parameters sorted by key, using HMAC-SHA512 with the merchant's hash
secret. Any deviation in this canonical form makes every callback look forged,
so signing and verification share the same builder.
"""

import hashlib
import hmac
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from urllib.parse import quote_plus

from utils.logger import get_logger

logger = get_logger(__name__)

PARAM_PREFIX = "vnp_"
HASH_FIELD = "vnp_SecureHash"
HASH_TYPE_FIELD = "vnp_SecureHashType"

# The gateway reads and writes dates in GMT+7
VNPAY_TZ = timezone(timedelta(hours=7))
DATE_FORMAT = "%Y%m%d%H%M%S"


def format_vnpay_date(moment: datetime | None = None) -> str:
    """yyyyMMddHHmmss in gateway local time."""
    if moment is None:
        moment = datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(VNPAY_TZ).strftime(DATE_FORMAT)


def to_minor_units(amount) -> int | None:
    """
    Convert a decimal amount to the gateway's integer amount (amount * 100).

    Returns None for anything that is not a positive finite number.
    """
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError, TypeError):
        return None
    if not value.is_finite() or value <= 0:
        return None
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


# Characters the gateway's RFC1738 form encoder leaves as-is, besides [A-Za-z0-9-._~]
RFC1738_SAFE = "()"


def _encode(value: str) -> str:
    return quote_plus(value, safe=RFC1738_SAFE)


def canonical_query(params: dict, keep_empty: bool = False) -> str:
    """
    Build the string that gets signed.

    Only vnp_* parameters take part, the hash fields never do. Outgoing
    requests drop empty values; an incoming callback is signed over every
    vnp_* field it carries, so verification passes `keep_empty=True`.
    """
    signed = {}
    for key, value in params.items():
        if not key.startswith(PARAM_PREFIX) or key in (HASH_FIELD, HASH_TYPE_FIELD):
            continue
        if value is None or value == "":
            if not keep_empty:
                continue
            value = ""
        signed[key] = str(value)

    return "&".join(
        f"{_encode(key)}={_encode(signed[key])}"
        for key in sorted(signed)
    )


def sign(data: str, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), data.encode("utf-8"), hashlib.sha512).hexdigest()


def build_payment_url(base_url: str, params: dict, secret: str) -> str:
    query = canonical_query(params)
    return f"{base_url}?{query}&{HASH_FIELD}={sign(query, secret)}"


def verify_signature(params: dict, secret: str) -> bool:
    """
    Check the vnp_SecureHash of a callback or return redirect.

    Every failure is the same False to the caller; the reason is logged here.
    """
    received = params.get(HASH_FIELD)
    if not received:
        logger.warning(
            "VNPAY signature missing",
            extra={"txn_ref": params.get("vnp_TxnRef")}
        )
        return False

    expected = sign(canonical_query(params, keep_empty=True), secret)
    if not hmac.compare_digest(expected, str(received)):
        logger.warning(
            "VNPAY signature mismatch",
            extra={
                "txn_ref": params.get("vnp_TxnRef"),
                "response_code": params.get("vnp_ResponseCode"),
            }
        )
        return False

    return True
