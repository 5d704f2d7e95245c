from core.database import Base
from sqlalchemy import (Column, Integer, String, ForeignKey, Enum, Index, text)
from sqlalchemy.orm import relationship
from .enums import CartStatus
from .mixins import CreatedAtMixin, UpdatedAtMixin, SoftDeleteMixin

_ACTIVE_CART = text("status = 'ACTIVE' AND deleted_at IS NULL")

class Cart(Base, CreatedAtMixin, UpdatedAtMixin, SoftDeleteMixin):
    __tablename__ = "carts"
    __table_args__ = (
        # One ACTIVE cart per user and per guest token
        Index("ux_carts_user_active", "user_id", unique=True,
              postgresql_where=_ACTIVE_CART, sqlite_where=_ACTIVE_CART),
        Index("ux_carts_guest_active", "guest_token", unique=True,
              postgresql_where=_ACTIVE_CART, sqlite_where=_ACTIVE_CART),
    )

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #fk
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    #relationships
    user = relationship("User", back_populates="carts")
    items = relationship("CartItem", back_populates="cart", order_by="CartItem.id")

    guest_token = Column(String(255), nullable=True)
    status = Column(Enum(CartStatus, name="cart_status"), nullable=False, default=CartStatus.ACTIVE)
