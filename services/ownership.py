from sqlalchemy.orm import Session
from core.context import RequestContext
from core.exceptions import NotFoundError
from models.carts import Cart
from models.orders import Order
from models.payments import Payment


class OwnershipResolver:
    """
    Answers "who owns this?" for the entities the engine protects.

    Lookups return None when the entity does not exist (or is soft-deleted).
    """

    def __init__(self, db: Session):
        self.db = db

    def order_owner(self, order_id: int) -> int | None:
        row = self.db.query(Order.user_id).filter(
            Order.id == order_id,
            Order.deleted_at.is_(None)
        ).one_or_none()
        return row[0] if row else None

    def payment_owner(self, payment_id: int) -> int | None:
        row = self.db.query(Order.user_id).join(Payment, Payment.order_id == Order.id).filter(
            Payment.id == payment_id,
            Payment.deleted_at.is_(None),
            Order.deleted_at.is_(None)
        ).one_or_none()
        return row[0] if row else None

    def cart_owner(self, cart_id: int) -> int | None:
        row = self.db.query(Cart.user_id).filter(
            Cart.id == cart_id,
            Cart.deleted_at.is_(None)
        ).one_or_none()
        return row[0] if row else None

    @staticmethod
    def ensure_visible(ctx: RequestContext, owner_id: int | None, entity: str):
        """
        Reject access to a missing entity or to one owned by someone else.

        Both cases look identical to the caller so foreign ids can't be probed.
        """
        if owner_id is None or (not ctx.is_admin and owner_id != ctx.user_id):
            raise NotFoundError(f"{entity} not found")

    def ensure_order_access(self, ctx: RequestContext, order_id: int):
        self.ensure_visible(ctx, self.order_owner(order_id), "Order")

    def ensure_payment_access(self, ctx: RequestContext, payment_id: int):
        self.ensure_visible(ctx, self.payment_owner(payment_id), "Payment")
