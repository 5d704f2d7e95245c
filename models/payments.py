from core.database import Base
from sqlalchemy import (Column, Integer, String, ForeignKey, Numeric, Enum, DateTime, JSON, CheckConstraint)
from sqlalchemy.orm import relationship
from .enums import PaymentMethod, PaymentStatus
from .mixins import CreatedAtMixin, UpdatedAtMixin, SoftDeleteMixin

class Payment(Base, CreatedAtMixin, UpdatedAtMixin, SoftDeleteMixin):
    """
    One payment attempt for an order.

    At most one attempt per order is PENDING at a time. COMPLETED and INACTIVE
    are terminal; retired attempts are kept as history.
    """
    __tablename__ = "payments"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payments_amount_pos"),
    )

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #fk
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)

    #relationships
    order = relationship("Order", back_populates="payments")

    payment_method = Column(Enum(PaymentMethod, name="payment_method"), nullable=False, default=PaymentMethod.COD)
    amount = Column(Numeric(10, 2), nullable=False)
    status = Column(Enum(PaymentStatus, name="payment_status"), nullable=False, default=PaymentStatus.PENDING)
    payment_date = Column(DateTime(timezone=True))
    payment_ref = Column(String(100))

    # Gateway audit trail
    gateway = Column(String(20))
    gateway_response_code = Column(String(10))
    gateway_payload = Column(JSON)
    expires_at = Column(DateTime(timezone=True))
