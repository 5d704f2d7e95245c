from core.database import Base
from sqlalchemy import (Column, Integer, String, Enum)
from sqlalchemy.orm import relationship
from .enums import UserRole, UserStatus
from .mixins import CreatedAtMixin, UpdatedAtMixin, SoftDeleteMixin

class User(Base, CreatedAtMixin, UpdatedAtMixin, SoftDeleteMixin):
    __tablename__ = "users"

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #relationships
    addresses = relationship("Address", back_populates="user")
    orders = relationship("Order", back_populates="user", foreign_keys="Order.user_id")
    carts = relationship("Cart", back_populates="user")

    email = Column(String(150), unique=True, nullable=False)
    full_name = Column(String(150), nullable=False)
    phone = Column(String(20))
    role = Column(Enum(UserRole, name="user_role"), nullable=False, default=UserRole.CUSTOMER)
    status = Column(Enum(UserStatus, name="user_status"), nullable=False, default=UserStatus.ACTIVE)
