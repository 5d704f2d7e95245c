"""
VNPAY gateway integration: signing, callback codes, and payload mapping.
"""

from integrations.vnpay.codes import IpnResponse, ipn_response
from integrations.vnpay.signing import (build_payment_url, canonical_query, format_vnpay_date,
                                        sign, to_minor_units, verify_signature)
from integrations.vnpay.network import get_client_ip, is_allowed_ip

__all__ = [
    "IpnResponse", "ipn_response", "build_payment_url", "canonical_query",
    "format_vnpay_date", "sign", "to_minor_units", "verify_signature",
    "get_client_ip", "is_allowed_ip",
]
