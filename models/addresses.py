from core.database import Base
from sqlalchemy import (Column, Integer, String, ForeignKey, Boolean)
from sqlalchemy.orm import relationship
from .mixins import CreatedAtMixin, UpdatedAtMixin, SoftDeleteMixin

class Address(Base, CreatedAtMixin, UpdatedAtMixin, SoftDeleteMixin):
    __tablename__ = "addresses"

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #fk
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    #relationships
    user = relationship("User", back_populates="addresses")

    full_name = Column(String(150), nullable=False)
    phone = Column(String(20), nullable=False)
    address_line = Column(String, nullable=False)
    postal_code = Column(String(20))
    is_default = Column(Boolean, default=False)
