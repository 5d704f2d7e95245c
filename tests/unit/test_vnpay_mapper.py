from integrations.vnpay import IpnResponse, ipn_response
from integrations.vnpay.mapper import gateway_payload, is_success, parse_amount, parse_txn_ref


def test_success_requires_both_codes():
    assert is_success({"vnp_ResponseCode": "00", "vnp_TransactionStatus": "00"}) is True
    assert is_success({"vnp_ResponseCode": "24", "vnp_TransactionStatus": "02"}) is False
    assert is_success({"vnp_ResponseCode": "00", "vnp_TransactionStatus": "01"}) is False
    assert is_success({"vnp_ResponseCode": "00"}) is False


def test_parse_txn_ref():
    assert parse_txn_ref({"vnp_TxnRef": "42"}) == 42
    assert parse_txn_ref({"vnp_TxnRef": " 42 "}) == 42
    assert parse_txn_ref({"vnp_TxnRef": "42abc"}) is None
    assert parse_txn_ref({"vnp_TxnRef": "-1"}) is None
    assert parse_txn_ref({}) is None


def test_parse_amount():
    assert parse_amount({"vnp_Amount": "2500000"}) == 2500000
    assert parse_amount({"vnp_Amount": "25.00"}) is None
    assert parse_amount({}) is None


def test_gateway_payload_drops_hash_and_foreign_keys():
    payload = gateway_payload({
        "vnp_TxnRef": "42",
        "vnp_Amount": 2500000,
        "vnp_SecureHash": "abc",
        "vnp_SecureHashType": "HmacSHA512",
        "other": "x",
    })

    assert payload == {"vnp_TxnRef": "42", "vnp_Amount": "2500000"}


def test_ipn_response_shape():
    assert ipn_response(IpnResponse.CONFIRMED) == {"RspCode": "00", "Message": "Confirm Success"}
    assert ipn_response(IpnResponse.INVALID_AMOUNT)["RspCode"] == "04"
    assert ipn_response(IpnResponse.CONFIRMED, "Payment failed")["Message"] == "Payment failed"
