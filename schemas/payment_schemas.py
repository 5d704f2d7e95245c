from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, ConfigDict
from models.enums import CompletionResult, PaymentMethod, PaymentStatus


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_id: int
    payment_method: PaymentMethod
    amount: Decimal
    status: PaymentStatus
    payment_date: datetime | None = None
    payment_ref: str | None = None
    gateway: str | None = None
    expires_at: datetime | None = None


class PaymentListMeta(BaseModel):
    total: int
    limit: int
    offset: int


class PaymentPage(BaseModel):
    data: list[PaymentResponse]
    meta: PaymentListMeta


class RetryPaymentRequest(BaseModel):
    payment_method: PaymentMethod = PaymentMethod.COD


class CompletionResponse(BaseModel):
    order_id: int
    result: CompletionResult


class CancelPaymentsResponse(BaseModel):
    order_id: int
    cancelled: int
