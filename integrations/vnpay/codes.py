import enum


class IpnResponse(str, enum.Enum):
    """RspCode values we answer the gateway's server callback with."""
    CONFIRMED = "00"
    ORDER_NOT_FOUND = "01"
    ALREADY_CONFIRMED = "02"
    INVALID_AMOUNT = "04"
    INVALID_SIGNATURE = "97"
    UNKNOWN_ERROR = "99"


IPN_MESSAGES = {
    IpnResponse.CONFIRMED: "Confirm Success",
    IpnResponse.ORDER_NOT_FOUND: "Order not found",
    IpnResponse.ALREADY_CONFIRMED: "Order already confirmed",
    IpnResponse.INVALID_AMOUNT: "Invalid amount",
    IpnResponse.INVALID_SIGNATURE: "Invalid signature",
    IpnResponse.UNKNOWN_ERROR: "Unknown error",
}


class TransactionStatus(str, enum.Enum):
    SUCCESS = "00"
    PENDING = "01"
    ERROR = "02"
    REVERSED = "04"
    REFUND_PROCESSING = "05"
    REFUND_SENT = "06"
    FRAUD_SUSPECT = "07"
    REFUND_REJECTED = "09"


SUCCESS_RESPONSE_CODES = frozenset({"00"})
SUCCESS_TRANSACTION_STATUSES = frozenset({TransactionStatus.SUCCESS.value})


def ipn_response(code: IpnResponse, message: str | None = None) -> dict:
    return {"RspCode": code.value, "Message": message or IPN_MESSAGES[code]}
