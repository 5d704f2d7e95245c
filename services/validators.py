"""
Precondition checks against reference data the order engine does not own.

A "no" here is a rejected request (ValidationError), never a system fault.
"""

from sqlalchemy.orm import Session
from core.exceptions import ValidationError
from models.users import User
from models.addresses import Address
from models.products import Product
from models.enums import UserStatus, ProductStatus


def ensure_user_active(db: Session, user_id: int) -> User:
    user = db.query(User).filter(
        User.id == user_id,
        User.deleted_at.is_(None),
        User.status == UserStatus.ACTIVE
    ).one_or_none()
    if not user:
        raise ValidationError("User does not exist or is inactive")
    return user


def ensure_address_owned(db: Session, address_id: int, user_id: int) -> Address:
    address = db.query(Address).filter(
        Address.id == address_id,
        Address.user_id == user_id,
        Address.deleted_at.is_(None)
    ).one_or_none()
    if not address:
        raise ValidationError("Invalid address or does not belong to user")
    return address


def ensure_product_available(db: Session, product_id: int) -> Product:
    product = db.query(Product).filter(
        Product.id == product_id,
        Product.deleted_at.is_(None),
        Product.status == ProductStatus.ACTIVE
    ).one_or_none()
    if not product:
        raise ValidationError(f"Product {product_id} not available")
    return product
