from datetime import datetime, timezone
from decimal import Decimal
from sqlalchemy.orm import Session
from core.context import RequestContext
from core.exceptions import (ValidationError, ForbiddenError, NotFoundError,
                             StateConflictError, InsufficientStockError)
from core.unit_of_work import UnitOfWork
from models.carts import Cart
from models.cart_items import CartItem
from models.orders import Order
from models.order_items import OrderItem
from models.payments import Payment
from models.enums import CartStatus, OrderStatus, PaymentMethod, PaymentStatus
from schemas.order_schemas import (CartCheckout, InstantPurchase, ManualOrder, OrderCommand,
                                   UpdateOrderRequest)
from services.ownership import OwnershipResolver
from services.payment_service import PaymentService
from services.validators import ensure_address_owned, ensure_product_available, ensure_user_active
from utils.logger import get_logger

logger = get_logger(__name__)


class OrderService:

    @staticmethod
    def create_order(db: Session, ctx: RequestContext, command: OrderCommand) -> Order:
        """
        Create one order, its lines and one PENDING payment, atomically.

        Dispatches on the command variant:
        - CartCheckout: selected items of an ACTIVE cart
        - InstantPurchase: one product for the caller ("buy now")
        - ManualOrder: back-office entry for another user (admin only)

        Stock is only read here, never written; it is deducted when the
        payment completes.
        """
        with UnitOfWork(db) as uow:
            if isinstance(command, CartCheckout):
                order = OrderService._create_from_cart(uow, ctx, command)
            elif isinstance(command, InstantPurchase):
                order = OrderService._create_instant(uow, ctx, command)
            elif isinstance(command, ManualOrder):
                order = OrderService._create_manual(uow, ctx, command)
            else:
                raise ValidationError("Invalid order creation mode")

        logger.info(
            "Order created",
            extra={
                "order_id": order.id,
                "user_id": order.user_id,
                "mode": command.mode,
                "total_amount": str(order.total_amount),
                "created_by": ctx.user_id
            }
        )
        db.refresh(order)
        return order


    @staticmethod
    def _create_from_cart(uow: UnitOfWork, ctx: RequestContext, command: CartCheckout) -> Order:
        db = uow.session

        cart = db.query(Cart).filter(
            Cart.id == command.cart_id,
            Cart.deleted_at.is_(None)
        ).populate_existing().with_for_update().one_or_none()

        if not cart:
            raise NotFoundError("Cart not found")

        if cart.user_id is None or (not ctx.is_admin and cart.user_id != ctx.user_id):
            raise ForbiddenError("Cart does not belong to you")

        if cart.status != CartStatus.ACTIVE:
            raise StateConflictError("Cart is not ACTIVE")

        ensure_address_owned(db, command.address_id, cart.user_id)

        if not command.cart_item_ids:
            raise ValidationError("Select at least one cart item to check out")

        selected = db.query(CartItem).filter(
            CartItem.cart_id == cart.id,
            CartItem.id.in_(command.cart_item_ids)
        ).order_by(CartItem.id).all()

        found_ids = {item.id for item in selected}
        missing = [item_id for item_id in command.cart_item_ids if item_id not in found_ids]
        if missing:
            raise ValidationError(f"Cart items not found in this cart: {missing}")

        lines = []
        for item in selected:
            product = ensure_product_available(db, item.product_id)
            qty = max(1, int(item.quantity))
            OrderService._check_availability(product, qty)
            lines.append((product.id, qty, product.price))

        order = OrderService._insert_order(
            uow, ctx, cart.user_id, command.address_id, lines, command.payment_method
        )

        # Only the checked-out items leave the cart
        for item in selected:
            db.delete(item)
        db.flush()

        remaining = db.query(CartItem).filter(CartItem.cart_id == cart.id).count()
        if remaining == 0:
            cart.status = CartStatus.CHECKED_OUT
            db.flush()

        return order


    @staticmethod
    def _create_instant(uow: UnitOfWork, ctx: RequestContext, command: InstantPurchase) -> Order:
        db = uow.session

        ensure_address_owned(db, command.address_id, ctx.user_id)
        product = ensure_product_available(db, command.product_id)

        qty = max(1, int(command.quantity))
        OrderService._check_availability(product, qty)

        return OrderService._insert_order(
            uow, ctx, ctx.user_id, command.address_id,
            [(product.id, qty, product.price)], command.payment_method
        )


    @staticmethod
    def _create_manual(uow: UnitOfWork, ctx: RequestContext, command: ManualOrder) -> Order:
        db = uow.session

        if not ctx.is_admin:
            raise ForbiddenError("Admin privileges required.")

        ensure_user_active(db, command.user_id)
        ensure_address_owned(db, command.address_id, command.user_id)

        if not command.items:
            raise ValidationError("Items required")

        lines = []
        seen = set()
        for item in command.items:
            if item.product_id in seen:
                raise ValidationError(f"Product {item.product_id} listed more than once")
            seen.add(item.product_id)

            product = ensure_product_available(db, item.product_id)
            qty = max(1, int(item.quantity))
            OrderService._check_availability(product, qty)

            price = product.price if item.price is None else item.price
            if price < 0:
                raise ValidationError("Price must be >= 0")
            lines.append((product.id, qty, price))

        return OrderService._insert_order(
            uow, ctx, command.user_id, command.address_id, lines, command.payment_method
        )


    @staticmethod
    def _check_availability(product, qty: int):
        # Read-only check; nothing is reserved until payment completes
        if qty > (product.stock or 0):
            raise InsufficientStockError(product.id, requested=qty, available=product.stock or 0)


    @staticmethod
    def _insert_order(uow: UnitOfWork, ctx: RequestContext, user_id: int, address_id: int,
                      lines: list, payment_method: PaymentMethod) -> Order:
        """
        Insert the order, its snapshot lines and its PENDING payment.

        `lines` holds (product_id, quantity, unit_price) tuples; the total is
        computed once from exactly these lines.
        """
        db = uow.session

        total = sum((Decimal(str(price)) * qty for _, qty, price in lines), Decimal("0.00"))
        if total <= 0:
            raise ValidationError("Order total must be greater than zero")

        order = Order(
            user_id=user_id,
            address_id=address_id,
            total_amount=total,
            status=OrderStatus.PENDING,
            placed_at=datetime.now(timezone.utc),
            created_by=ctx.user_id
        )
        db.add(order)
        db.flush()

        for product_id, qty, price in lines:
            db.add(OrderItem(
                order_id=order.id,
                product_id=product_id,
                quantity=qty,
                price=Decimal(str(price))
            ))

        db.add(Payment(
            order_id=order.id,
            payment_method=payment_method,
            amount=total,
            status=PaymentStatus.PENDING
        ))
        uow.flush()

        return order


    @staticmethod
    def get_order(db: Session, ctx: RequestContext, order_id: int) -> Order:
        OwnershipResolver(db).ensure_order_access(ctx, order_id)
        return db.query(Order).filter(Order.id == order_id).one()


    @staticmethod
    def list_orders(db: Session, ctx: RequestContext, status: OrderStatus | None = None,
                    limit: int = 20, offset: int = 0):
        query = db.query(Order).filter(Order.deleted_at.is_(None))

        # Customers only ever see their own orders
        if not ctx.is_admin:
            query = query.filter(Order.user_id == ctx.user_id)
        if status:
            query = query.filter(Order.status == status)

        total = query.count()
        orders = query.order_by(Order.id.desc()).limit(limit).offset(offset).all()
        return orders, total


    @staticmethod
    def update_order(db: Session, ctx: RequestContext, order_id: int, body: UpdateOrderRequest) -> Order:
        """
        Admin update of a PENDING order's address or status.

        COMPLETED is only reachable through payment completion; INACTIVE goes
        through cancellation so pending payments are retired with it.
        """
        if not ctx.is_admin:
            raise ForbiddenError("Admin privileges required.")

        if body.status == OrderStatus.COMPLETED:
            raise StateConflictError("Orders are completed by completing their payment")

        if body.status == OrderStatus.INACTIVE:
            return OrderService.cancel_order(db, ctx, order_id, reason=None)

        with UnitOfWork(db) as uow:
            order = OrderService._lock_order(uow, order_id)

            if order.status != OrderStatus.PENDING:
                raise StateConflictError("Cannot update a completed or cancelled order")

            if body.address_id is not None and body.address_id != order.address_id:
                ensure_address_owned(db, body.address_id, order.user_id)
                order.address_id = body.address_id
                order.updated_by = ctx.user_id

        logger.info(
            "Order updated",
            extra={"order_id": order_id, "updated_by": ctx.user_id}
        )
        db.refresh(order)
        return order


    @staticmethod
    def cancel_order(db: Session, ctx: RequestContext, order_id: int, reason: str | None = None) -> Order:
        """
        Cancel a PENDING order and retire its pending payments.

        COMPLETED and INACTIVE orders are terminal.
        """
        OwnershipResolver(db).ensure_order_access(ctx, order_id)

        with UnitOfWork(db) as uow:
            order = OrderService._lock_order(uow, order_id)

            if order.status != OrderStatus.PENDING:
                raise StateConflictError("Only PENDING orders can be cancelled")

            order.status = OrderStatus.INACTIVE
            order.cancel_reason = reason
            order.updated_by = ctx.user_id

            cancelled = PaymentService.cancel_pending_payments(uow, order_id)
            if cancelled == 0:
                logger.warning(
                    "Cancelled order had no pending payment",
                    extra={"order_id": order_id}
                )

        logger.info(
            "Order cancelled",
            extra={"order_id": order_id, "cancelled_by": ctx.user_id, "reason": reason}
        )
        db.refresh(order)
        return order


    @staticmethod
    def delete_order(db: Session, ctx: RequestContext, order_id: int) -> None:
        """
        Soft delete an order, its lines and its payments (admin only).

        A PENDING order is cancelled first; a COMPLETED order keeps its status.
        """
        if not ctx.is_admin:
            raise ForbiddenError("Admin privileges required.")

        with UnitOfWork(db) as uow:
            order = OrderService._lock_order(uow, order_id)
            now = datetime.now(timezone.utc)

            if order.status == OrderStatus.PENDING:
                order.status = OrderStatus.INACTIVE
                PaymentService.cancel_pending_payments(uow, order_id)

            order.deleted_at = now
            order.updated_by = ctx.user_id
            for item in order.items:
                if item.deleted_at is None:
                    item.deleted_at = now
            for payment in order.payments:
                if payment.deleted_at is None:
                    payment.deleted_at = now

        logger.info(
            "Order soft deleted",
            extra={"order_id": order_id, "deleted_by": ctx.user_id}
        )


    @staticmethod
    def _lock_order(uow: UnitOfWork, order_id: int) -> Order:
        order = uow.session.query(Order).filter(
            Order.id == order_id,
            Order.deleted_at.is_(None)
        ).populate_existing().with_for_update().one_or_none()
        if not order:
            raise NotFoundError("Order not found")
        return order
