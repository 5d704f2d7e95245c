from fastapi import APIRouter, Request, Query
from starlette import status
from utils.deps import db_dependency, context_dependency, admin_dependency
from schemas.payment_schemas import (PaymentResponse, PaymentPage, PaymentListMeta, RetryPaymentRequest,
                                     CompletionResponse, CancelPaymentsResponse)
from services.payment_service import PaymentService
from models.enums import PaymentMethod, PaymentStatus
from middleware.rate_limiter import limiter
from utils.logger import get_logger

# Setup logger
logger = get_logger(__name__)


router = APIRouter(
    prefix="/payments",
    tags=["payments"]
)


@router.get("/", status_code=status.HTTP_200_OK, response_model=PaymentPage)
async def list_payments(ctx: context_dependency, db: db_dependency,
                        order_id: int | None = None,
                        payment_status: PaymentStatus | None = Query(default=None, alias="status"),
                        payment_method: PaymentMethod | None = None,
                        limit: int = Query(default=20, ge=1, le=100),
                        offset: int = Query(default=0, ge=0)):
    payments, total = PaymentService.list_payments(
        db, ctx, order_id=order_id, status=payment_status,
        payment_method=payment_method, limit=limit, offset=offset
    )
    return PaymentPage(
        data=[PaymentResponse.model_validate(p) for p in payments],
        meta=PaymentListMeta(total=total, limit=limit, offset=offset)
    )


@router.get("/{payment_id}", status_code=status.HTTP_200_OK, response_model=PaymentResponse)
async def get_payment(payment_id: int, ctx: context_dependency, db: db_dependency):
    return PaymentService.get_payment(db, ctx, payment_id)


@router.post("/orders/{order_id}/complete", status_code=status.HTTP_200_OK, response_model=CompletionResponse)
@limiter.limit("30/minute")
async def complete_cod_payment(request: Request, order_id: int, ctx: admin_dependency, db: db_dependency):
    """
    Confirm a cash-on-delivery payment (admin only).

    Completing an already completed order is a no-op reported as ALREADY_COMPLETED.
    """
    result = PaymentService.complete_cod_payment(db, ctx, order_id)
    return CompletionResponse(order_id=order_id, result=result)


@router.post("/orders/{order_id}/cancel", status_code=status.HTTP_200_OK, response_model=CancelPaymentsResponse)
@limiter.limit("10/minute")
async def cancel_payments(request: Request, order_id: int, ctx: context_dependency, db: db_dependency):
    cancelled = PaymentService.cancel_payments(db, ctx, order_id)
    return CancelPaymentsResponse(order_id=order_id, cancelled=cancelled)


@router.post("/orders/{order_id}/retry", status_code=status.HTTP_201_CREATED, response_model=PaymentResponse)
@limiter.limit("10/minute")
async def retry_payment(request: Request, order_id: int, body: RetryPaymentRequest,
                        ctx: context_dependency, db: db_dependency):
    return PaymentService.retry_payment(db, ctx, order_id, body.payment_method)
