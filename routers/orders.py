from fastapi import APIRouter, Request, Query
from starlette import status
from utils.deps import db_dependency, context_dependency, admin_dependency
from schemas.order_schemas import (CartCheckout, InstantPurchase, ManualOrder, UpdateOrderRequest,
                                   CancelOrderRequest, OrderResponse, OrderPage, PageMeta)
from services.order_service import OrderService
from models.enums import OrderStatus
from middleware.rate_limiter import limiter
from utils.logger import get_logger

# Setup logger
logger = get_logger(__name__)


router = APIRouter(
    prefix="/orders",
    tags=["orders"]
)


@router.post("/from-cart", status_code=status.HTTP_201_CREATED, response_model=OrderResponse)
@limiter.limit("10/minute")
async def create_from_cart(request: Request, body: CartCheckout, ctx: context_dependency, db: db_dependency):
    """
    Check out the selected items of a cart.
    """
    order = OrderService.create_order(db, ctx, body)
    return OrderResponse.from_order(order)


@router.post("/buy-now", status_code=status.HTTP_201_CREATED, response_model=OrderResponse)
@limiter.limit("10/minute")
async def buy_now(request: Request, body: InstantPurchase, ctx: context_dependency, db: db_dependency):
    order = OrderService.create_order(db, ctx, body)
    return OrderResponse.from_order(order)


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=OrderResponse)
@limiter.limit("30/minute")
async def create_manual(request: Request, body: ManualOrder, ctx: admin_dependency, db: db_dependency):
    """
    Back-office order entry for another customer (admin only).
    """
    order = OrderService.create_order(db, ctx, body)
    return OrderResponse.from_order(order)


@router.get("/", status_code=status.HTTP_200_OK, response_model=OrderPage)
async def list_orders(ctx: context_dependency, db: db_dependency,
                      order_status: OrderStatus | None = Query(default=None, alias="status"),
                      limit: int = Query(default=20, ge=1, le=100),
                      offset: int = Query(default=0, ge=0)):
    orders, total = OrderService.list_orders(db, ctx, status=order_status, limit=limit, offset=offset)
    return OrderPage(
        data=[OrderResponse.from_order(order) for order in orders],
        meta=PageMeta(total=total, limit=limit, offset=offset)
    )


@router.get("/{order_id}", status_code=status.HTTP_200_OK, response_model=OrderResponse)
async def get_order(order_id: int, ctx: context_dependency, db: db_dependency):
    order = OrderService.get_order(db, ctx, order_id)
    return OrderResponse.from_order(order)


@router.patch("/{order_id}/cancel", status_code=status.HTTP_200_OK, response_model=OrderResponse)
@limiter.limit("10/minute")
async def cancel_order(request: Request, order_id: int, ctx: context_dependency, db: db_dependency,
                       body: CancelOrderRequest | None = None):
    reason = body.reason if body else None
    order = OrderService.cancel_order(db, ctx, order_id, reason=reason)
    return OrderResponse.from_order(order)


@router.patch("/{order_id}", status_code=status.HTTP_200_OK, response_model=OrderResponse)
async def update_order(order_id: int, body: UpdateOrderRequest, ctx: admin_dependency, db: db_dependency):
    order = OrderService.update_order(db, ctx, order_id, body)
    return OrderResponse.from_order(order)


@router.delete("/{order_id}", status_code=status.HTTP_200_OK)
async def delete_order(order_id: int, ctx: admin_dependency, db: db_dependency):
    OrderService.delete_order(db, ctx, order_id)
    return {"message": "Order soft deleted", "order_id": order_id}
