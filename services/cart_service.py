from datetime import datetime, timezone
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from core.context import RequestContext
from core.exceptions import InsufficientStockError, StateConflictError, ValidationError
from core.unit_of_work import UnitOfWork
from models.carts import Cart
from models.cart_items import CartItem
from models.products import Product
from models.enums import CartStatus, ProductStatus
from utils.logger import get_logger

logger = get_logger(__name__)


class CartService:

    @staticmethod
    def _active_user_cart(db: Session, user_id: int, lock: bool = False) -> Cart | None:
        query = db.query(Cart).filter(
            Cart.user_id == user_id,
            Cart.status == CartStatus.ACTIVE,
            Cart.deleted_at.is_(None)
        )
        if lock:
            query = query.populate_existing().with_for_update()
        return query.first()


    @staticmethod
    def _create_cart(db: Session, **fields) -> Cart:
        """
        Insert a new ACTIVE cart.

        The partial unique index allows one ACTIVE cart per user/guest token;
        losing that race to a concurrent request surfaces as a conflict.
        """
        cart = Cart(status=CartStatus.ACTIVE, **fields)
        db.add(cart)
        try:
            db.flush()
        except IntegrityError:
            raise StateConflictError("An active cart was created concurrently, please retry")
        return cart


    @staticmethod
    def get_my_cart(db: Session, ctx: RequestContext) -> Cart:
        """Active cart of the caller, created lazily."""
        cart = CartService._active_user_cart(db, ctx.user_id)
        if cart:
            return cart

        with UnitOfWork(db):
            cart = CartService._create_cart(db, user_id=ctx.user_id)

        db.refresh(cart)
        return cart


    @staticmethod
    def get_or_create_guest_cart(db: Session, guest_token: str) -> tuple[Cart, bool]:
        token = (guest_token or "").strip()
        if not token:
            raise ValidationError("guest_token is required")

        cart = db.query(Cart).filter(
            Cart.guest_token == token,
            Cart.status == CartStatus.ACTIVE,
            Cart.deleted_at.is_(None)
        ).first()
        if cart:
            return cart, False

        with UnitOfWork(db):
            cart = CartService._create_cart(db, guest_token=token)

        db.refresh(cart)
        return cart, True


    @staticmethod
    def merge_guest_cart(db: Session, ctx: RequestContext, guest_token: str) -> Cart:
        """
        Move a guest cart's items into the caller's ACTIVE cart after login.

        Flow (one unit of work):
        1. Lock the ACTIVE guest cart; none -> nothing to merge
        2. Get or create the user's ACTIVE cart
        3. Add each item whose product is still ACTIVE; the merged quantity
           may not exceed current stock
        4. Delete the guest items and retire the guest cart

        Running it twice is harmless: the second call finds no ACTIVE guest cart.
        """
        token = (guest_token or "").strip()
        if not token:
            raise ValidationError("guest_token is required")

        merged = 0
        with UnitOfWork(db) as uow:
            guest_cart = db.query(Cart).filter(
                Cart.guest_token == token,
                Cart.status == CartStatus.ACTIVE,
                Cart.deleted_at.is_(None)
            ).populate_existing().with_for_update().first()

            if guest_cart is None:
                logger.debug(
                    "No guest cart to merge",
                    extra={"user_id": ctx.user_id}
                )
            else:
                user_cart = CartService._active_user_cart(db, ctx.user_id, lock=True)
                if user_cart is None:
                    user_cart = CartService._create_cart(db, user_id=ctx.user_id)

                guest_items = db.query(CartItem).filter(
                    CartItem.cart_id == guest_cart.id
                ).order_by(CartItem.product_id).all()

                for item in guest_items:
                    product = db.query(Product).filter(
                        Product.id == item.product_id,
                        Product.deleted_at.is_(None),
                        Product.status == ProductStatus.ACTIVE
                    ).populate_existing().with_for_update().one_or_none()

                    if product is None:
                        logger.info(
                            "Skipping unavailable product during cart merge",
                            extra={"product_id": item.product_id, "user_id": ctx.user_id}
                        )
                        continue

                    qty = max(1, int(item.quantity))
                    existing = db.query(CartItem).filter(
                        CartItem.cart_id == user_cart.id,
                        CartItem.product_id == item.product_id
                    ).first()

                    total_qty = qty + (existing.quantity if existing else 0)
                    if total_qty > product.stock:
                        raise InsufficientStockError(product.id, requested=total_qty, available=product.stock)

                    if existing:
                        existing.quantity = total_qty
                    else:
                        db.add(CartItem(cart_id=user_cart.id, product_id=item.product_id, quantity=qty))
                    merged += 1

                for item in guest_items:
                    db.delete(item)

                guest_cart.status = CartStatus.INACTIVE
                guest_cart.deleted_at = datetime.now(timezone.utc)
                uow.flush()

        if merged:
            logger.info(
                "Guest cart merged",
                extra={"user_id": ctx.user_id, "items": merged}
            )

        return CartService.get_my_cart(db, ctx)
