from core.database import Base
from sqlalchemy import (Column, Integer, ForeignKey, Numeric, CheckConstraint, UniqueConstraint)
from sqlalchemy.orm import relationship
from .mixins import CreatedAtMixin, SoftDeleteMixin

class OrderItem(Base, CreatedAtMixin, SoftDeleteMixin):
    __tablename__ = "order_items"
    __table_args__ = (
        CheckConstraint("quantity > 0 AND price >= 0", name="ck_order_items_qty_price"),
        UniqueConstraint("order_id", "product_id", name="ux_order_items_unique"),
    )

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #fk
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)

    #relationships
    order = relationship("Order", back_populates="items")
    product = relationship("Product", back_populates="order_items")

    # Immutable snapshot of the catalog price when the order was placed
    price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
