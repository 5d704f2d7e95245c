from integrations.vnpay.codes import SUCCESS_RESPONSE_CODES, SUCCESS_TRANSACTION_STATUSES
from integrations.vnpay.signing import PARAM_PREFIX, HASH_FIELD, HASH_TYPE_FIELD


def gateway_payload(params: dict) -> dict:
    """vnp_* fields of a callback, kept on the payment for audit (hash excluded)."""
    return {
        key: str(value)
        for key, value in params.items()
        if key.startswith(PARAM_PREFIX) and key not in (HASH_FIELD, HASH_TYPE_FIELD)
    }


def is_success(params: dict) -> bool:
    response_code = str(params.get("vnp_ResponseCode") or "")
    transaction_status = str(params.get("vnp_TransactionStatus") or "")
    return (
        response_code in SUCCESS_RESPONSE_CODES
        and transaction_status in SUCCESS_TRANSACTION_STATUSES
    )


def parse_txn_ref(params: dict) -> int | None:
    raw = str(params.get("vnp_TxnRef") or "").strip()
    if not raw.isdigit():
        return None
    return int(raw)


def parse_amount(params: dict) -> int | None:
    raw = str(params.get("vnp_Amount") or "").strip()
    if not raw.isdigit():
        return None
    return int(raw)
