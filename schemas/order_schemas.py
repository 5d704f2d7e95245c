from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator
from models.enums import OrderStatus, PaymentMethod
from schemas.payment_schemas import PaymentResponse


# ---- creation commands: one variant per mode ----

class CartCheckout(BaseModel):
    mode: Literal["cart"] = "cart"
    cart_id: int
    address_id: int
    cart_item_ids: list[int]
    payment_method: PaymentMethod = PaymentMethod.COD

    @field_validator('cart_item_ids')
    @classmethod
    def validate_selection(cls, value):
        """
        The subset to check out must be explicit; an empty list never
        means "the whole cart".
        """
        if not value:
            raise ValueError('Select at least one cart item to check out')
        # de-duplicate, keep order
        return list(dict.fromkeys(value))


class InstantPurchase(BaseModel):
    mode: Literal["instant"] = "instant"
    address_id: int
    product_id: int
    quantity: int = Field(default=1, ge=1)
    payment_method: PaymentMethod = PaymentMethod.COD


class ManualOrderItem(BaseModel):
    product_id: int
    quantity: int = Field(default=1, ge=1)
    price: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)


class ManualOrder(BaseModel):
    mode: Literal["manual"] = "manual"
    user_id: int
    address_id: int
    items: list[ManualOrderItem]
    payment_method: PaymentMethod = PaymentMethod.COD

    @field_validator('items')
    @classmethod
    def validate_items(cls, value):
        if not value:
            raise ValueError('Items required')
        product_ids = [item.product_id for item in value]
        if len(product_ids) != len(set(product_ids)):
            raise ValueError('Each product may appear only once')
        return value


OrderCommand = Annotated[Union[CartCheckout, InstantPurchase, ManualOrder], Field(discriminator="mode")]


class UpdateOrderRequest(BaseModel):
    address_id: int | None = None
    status: OrderStatus | None = None


class CancelOrderRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=255)


# ---- responses ----

class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    quantity: int
    price: Decimal


class OrderResponse(BaseModel):
    """Order aggregate: the order, its lines, and its latest payment."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    address_id: int
    total_amount: Decimal
    status: OrderStatus
    placed_at: datetime | None = None
    paid_at: datetime | None = None
    cancel_reason: str | None = None
    items: list[OrderItemResponse] = []
    payment: PaymentResponse | None = None

    @classmethod
    def from_order(cls, order) -> "OrderResponse":
        items = [item for item in order.items if item.deleted_at is None]
        payments = [p for p in order.payments if p.deleted_at is None]
        latest = max(payments, key=lambda p: p.id) if payments else None
        return cls(
            id=order.id,
            user_id=order.user_id,
            address_id=order.address_id,
            total_amount=order.total_amount,
            status=order.status,
            placed_at=order.placed_at,
            paid_at=order.paid_at,
            cancel_reason=order.cancel_reason,
            items=[OrderItemResponse.model_validate(item) for item in items],
            payment=PaymentResponse.model_validate(latest) if latest else None,
        )


class PageMeta(BaseModel):
    total: int
    limit: int
    offset: int


class OrderPage(BaseModel):
    data: list[OrderResponse]
    meta: PageMeta
