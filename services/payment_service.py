from datetime import datetime, timezone
from sqlalchemy.orm import Session
from core.context import RequestContext
from core.exceptions import ForbiddenError, NotFoundError, StateConflictError, InsufficientStockError
from core.unit_of_work import UnitOfWork
from models.orders import Order
from models.order_items import OrderItem
from models.payments import Payment
from models.products import Product
from models.enums import (CompletionResult, CompletionSource, OrderStatus,
                          PaymentMethod, PaymentStatus)
from services.inventory_service import InventoryService
from services.ownership import OwnershipResolver
from utils.logger import get_logger

logger = get_logger(__name__)


class PaymentService:
    """
    Payment state machine: PENDING -> COMPLETED | INACTIVE, both terminal.

    complete_order_payment is the only code path that deducts stock.
    """

    @staticmethod
    def complete_order_payment(uow: UnitOfWork, order_id: int, via: CompletionSource,
                               gateway: PaymentMethod | None = None,
                               payment_id: int | None = None) -> CompletionResult:
        """
        Mark an order's pending payment and the order itself COMPLETED,
        deducting stock for every line in the same transaction.

        Flow (order, payment and product rows locked FOR UPDATE):
        1. Order already COMPLETED -> ALREADY_COMPLETED, nothing written
        2. Lock the most recent PENDING payment (or `payment_id`)
        3. Completion source must match the payment method
        4. Verify stock for all lines before touching any
        5. Deduct stock
        6. Payment COMPLETED
        7. Order COMPLETED

        The caller owns the unit of work; any exception rolls all of it back.
        """
        db = uow.session

        order = db.query(Order).filter(
            Order.id == order_id,
            Order.deleted_at.is_(None)
        ).populate_existing().with_for_update().one_or_none()

        if not order:
            raise NotFoundError("Order not found")

        if order.status == OrderStatus.COMPLETED:
            logger.info(
                "Order already completed, skipping",
                extra={"order_id": order_id, "via": via.value}
            )
            return CompletionResult.ALREADY_COMPLETED

        if order.status != OrderStatus.PENDING:
            raise StateConflictError("Only PENDING orders can be completed")

        query = db.query(Payment).filter(
            Payment.order_id == order_id,
            Payment.status == PaymentStatus.PENDING,
            Payment.deleted_at.is_(None)
        )
        if payment_id is not None:
            query = query.filter(Payment.id == payment_id)
        payment = query.order_by(Payment.id.desc()).populate_existing().with_for_update().first()

        if not payment:
            raise StateConflictError("No pending payment found for this order")

        PaymentService._check_source(payment, via, gateway)

        items = db.query(OrderItem).filter(
            OrderItem.order_id == order_id,
            OrderItem.deleted_at.is_(None)
        ).all()

        # Quantity per product; locks are taken in ascending product id
        needed = {}
        for item in sorted(items, key=lambda it: it.product_id):
            needed[item.product_id] = needed.get(item.product_id, 0) + max(1, int(item.quantity))

        products = {
            product.id: product
            for product in db.query(Product).filter(
                Product.id.in_(list(needed.keys()))
            ).order_by(Product.id).populate_existing().with_for_update().all()
        }

        for product_id, qty in needed.items():
            product = products.get(product_id)
            if product is None or product.deleted_at is not None or product.stock < qty:
                available = product.stock if product is not None else 0
                logger.warning(
                    "Payment completion aborted - insufficient stock",
                    extra={"order_id": order_id, "product_id": product_id,
                           "requested": qty, "available": available}
                )
                raise InsufficientStockError(product_id, requested=qty, available=available)

        for product_id, qty in needed.items():
            InventoryService.reserve(uow, product_id, qty)

        now = datetime.now(timezone.utc)

        payment.status = PaymentStatus.COMPLETED
        payment.payment_date = now
        if via == CompletionSource.GATEWAY and gateway is not None:
            payment.gateway = gateway.value

        order.status = OrderStatus.COMPLETED
        order.paid_at = now
        uow.flush()

        logger.info(
            "Payment completed",
            extra={
                "order_id": order_id,
                "payment_id": payment.id,
                "payment_method": payment.payment_method.value,
                "via": via.value
            }
        )
        return CompletionResult.COMPLETED


    @staticmethod
    def _check_source(payment: Payment, via: CompletionSource, gateway: PaymentMethod | None):
        """
        COD is operator-asserted, gateway payments need a signed callback.
        Neither path may complete the other's payment.
        """
        if via == CompletionSource.COD and payment.payment_method.is_gateway:
            raise StateConflictError(
                f"{payment.payment_method.value} payments can only be completed by the gateway"
            )

        if via == CompletionSource.GATEWAY:
            if not payment.payment_method.is_gateway:
                raise StateConflictError("COD payments cannot be completed by a gateway")
            if gateway is not None and payment.payment_method != gateway:
                raise StateConflictError(
                    f"Pending payment is {payment.payment_method.value}, not {gateway.value}"
                )


    @staticmethod
    def complete_cod_payment(db: Session, ctx: RequestContext, order_id: int) -> CompletionResult:
        """Operator confirms cash was collected (admin only)."""
        if not ctx.is_admin:
            raise ForbiddenError("Admin privileges required.")

        with UnitOfWork(db) as uow:
            result = PaymentService.complete_order_payment(uow, order_id, CompletionSource.COD)

        logger.info(
            "COD payment confirmed by operator",
            extra={"order_id": order_id, "operator_id": ctx.user_id, "result": result.value}
        )
        return result


    @staticmethod
    def cancel_pending_payments(uow: UnitOfWork, order_id: int) -> int:
        """Retire every PENDING payment of an order. The order status is left alone."""
        cancelled = uow.session.query(Payment).filter(
            Payment.order_id == order_id,
            Payment.status == PaymentStatus.PENDING,
            Payment.deleted_at.is_(None)
        ).update(
            {Payment.status: PaymentStatus.INACTIVE},
            synchronize_session="fetch"
        )

        if cancelled:
            logger.info(
                "Pending payments cancelled",
                extra={"order_id": order_id, "count": cancelled}
            )
        return cancelled


    @staticmethod
    def cancel_payments(db: Session, ctx: RequestContext, order_id: int) -> int:
        OwnershipResolver(db).ensure_order_access(ctx, order_id)

        with UnitOfWork(db) as uow:
            return PaymentService.cancel_pending_payments(uow, order_id)


    @staticmethod
    def retry_payment(db: Session, ctx: RequestContext, order_id: int,
                      payment_method: PaymentMethod) -> Payment:
        """
        Start a new payment attempt for a PENDING order.

        The previous pending attempt is retired first so only one is ever open.
        """
        OwnershipResolver(db).ensure_order_access(ctx, order_id)

        with UnitOfWork(db) as uow:
            order = uow.session.query(Order).filter(
                Order.id == order_id,
                Order.deleted_at.is_(None)
            ).populate_existing().with_for_update().one()

            if order.status != OrderStatus.PENDING:
                raise StateConflictError("Only PENDING orders can be paid")

            PaymentService.cancel_pending_payments(uow, order_id)

            payment = Payment(
                order_id=order_id,
                payment_method=payment_method,
                amount=order.total_amount,
                status=PaymentStatus.PENDING
            )
            uow.session.add(payment)
            uow.flush()

        logger.info(
            "Payment retried",
            extra={"order_id": order_id, "payment_id": payment.id,
                   "payment_method": payment_method.value}
        )
        db.refresh(payment)
        return payment


    @staticmethod
    def get_payment(db: Session, ctx: RequestContext, payment_id: int) -> Payment:
        OwnershipResolver(db).ensure_payment_access(ctx, payment_id)
        return db.query(Payment).filter(Payment.id == payment_id).one()


    @staticmethod
    def list_payments(db: Session, ctx: RequestContext, order_id: int | None = None,
                      status: PaymentStatus | None = None,
                      payment_method: PaymentMethod | None = None,
                      limit: int = 20, offset: int = 0):
        query = db.query(Payment).join(Order, Order.id == Payment.order_id).filter(
            Payment.deleted_at.is_(None),
            Order.deleted_at.is_(None)
        )

        if not ctx.is_admin:
            query = query.filter(Order.user_id == ctx.user_id)
        if order_id is not None:
            query = query.filter(Payment.order_id == order_id)
        if status:
            query = query.filter(Payment.status == status)
        if payment_method:
            query = query.filter(Payment.payment_method == payment_method)

        total = query.count()
        payments = query.order_by(Payment.id.desc()).limit(limit).offset(offset).all()
        return payments, total
