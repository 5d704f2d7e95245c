from core.database import Base
from sqlalchemy import (Column, Integer, String, Numeric, Enum, CheckConstraint)
from sqlalchemy.orm import relationship
from .enums import ProductStatus
from .mixins import CreatedAtMixin, UpdatedAtMixin, SoftDeleteMixin

class Product(Base, CreatedAtMixin, UpdatedAtMixin, SoftDeleteMixin):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("price >= 0 AND stock >= 0", name="ck_products_nonneg"),
    )

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #relationships
    order_items = relationship("OrderItem", back_populates="product")
    cart_items = relationship("CartItem", back_populates="product")

    name = Column(String(255), nullable=False)
    description = Column(String)
    price = Column(Numeric(10, 2), nullable=False)
    # Written only by InventoryService.reserve during payment completion
    stock = Column(Integer, nullable=False, default=0)
    status = Column(Enum(ProductStatus, name="product_status"), nullable=False, default=ProductStatus.ACTIVE)
