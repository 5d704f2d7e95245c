from core.database import Base
from sqlalchemy.orm import relationship
from sqlalchemy import (Column, Integer, String, ForeignKey, Numeric, Enum, DateTime, CheckConstraint)
from .enums import OrderStatus
from .mixins import CreatedAtMixin, UpdatedAtMixin, SoftDeleteMixin

class Order(Base, CreatedAtMixin, UpdatedAtMixin, SoftDeleteMixin):
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="ck_orders_total_nonneg"),
    )

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #fk
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    address_id = Column(Integer, ForeignKey("addresses.id"), nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    updated_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    #relationships
    user = relationship("User", back_populates="orders", foreign_keys=[user_id])
    address = relationship("Address")
    items = relationship("OrderItem", back_populates="order", order_by="OrderItem.id")
    payments = relationship("Payment", back_populates="order", order_by="Payment.id")

    # Snapshot taken at creation, never recomputed from live prices
    total_amount = Column(Numeric(10, 2), nullable=False)
    status = Column(Enum(OrderStatus, name="order_status"), nullable=False, default=OrderStatus.PENDING, index=True)
    cancel_reason = Column(String(255), nullable=True)

    placed_at = Column(DateTime(timezone=True))
    paid_at = Column(DateTime(timezone=True))
