from urllib.parse import urlencode
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette import status
from core.config import settings
from utils.deps import db_dependency, context_dependency
from schemas.vnpay_schemas import CreatePaymentUrlRequest, PaymentUrlResponse, IpnResult
from services.vnpay_service import VnpayService
from integrations.vnpay import IpnResponse, ipn_response, verify_signature, get_client_ip, is_allowed_ip
from middleware.rate_limiter import limiter
from utils.logger import get_logger

# Setup logger
logger = get_logger(__name__)


router = APIRouter(
    prefix="/vnpay",
    tags=["vnpay"]
)


@router.post("/create", status_code=status.HTTP_200_OK, response_model=PaymentUrlResponse)
@limiter.limit("10/minute")
async def create_payment_url(request: Request, body: CreatePaymentUrlRequest,
                             ctx: context_dependency, db: db_dependency):
    """
    Create a signed VNPAY redirect URL for a PENDING order.
    """
    return VnpayService.create_payment_url(
        db, ctx, body.order_id,
        client_ip=get_client_ip(request),
        bank_code=body.bank_code,
        locale=body.locale
    )


@router.get("/ipn", response_model=IpnResult)
async def ipn(request: Request, db: db_dependency):
    """
    Server-to-server callback from VNPAY (public, no auth).

    Always answers with {"RspCode", "Message"}; the gateway parses it.
    """
    if not is_allowed_ip(request):
        logger.warning(
            "IPN rejected - address not allow-listed",
            extra={"client_ip": get_client_ip(request)}
        )
        return JSONResponse(status_code=status.HTTP_403_FORBIDDEN,
                            content=ipn_response(IpnResponse.UNKNOWN_ERROR, "Forbidden"))

    params = dict(request.query_params)
    try:
        if not verify_signature(params, settings.VNPAY_HASH_SECRET):
            return ipn_response(IpnResponse.INVALID_SIGNATURE)

        return VnpayService.handle_ipn(db, params)

    except Exception as e:
        logger.error(
            f"IPN handler failed: {str(e)}",
            extra={"error_type": type(e).__name__},
            exc_info=True
        )
        return ipn_response(IpnResponse.UNKNOWN_ERROR)


@router.get("/return")
async def return_url(request: Request):
    """
    Browser redirect after payment. Verifies the signature for display only;
    order and payment state change only through the IPN.
    """
    params = dict(request.query_params)
    if not verify_signature(params, settings.VNPAY_HASH_SECRET):
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST,
                            content={"detail": "Invalid signature"})

    result = VnpayService.build_return_result(params)
    query = urlencode({
        "success": "1" if result["success"] else "0",
        "code": result["code"],
        "payment_id": result["payment_id"],
    })
    return RedirectResponse(
        url=f"{settings.FRONTEND_PUBLIC_URL.rstrip('/')}/checkout?{query}",
        status_code=status.HTTP_302_FOUND
    )
