import enum


class UserRole(str, enum.Enum):
    GUEST = "GUEST"
    CUSTOMER = "CUSTOMER"
    ADMIN = "ADMIN"


class UserStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class ProductStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class CartStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    CHECKED_OUT = "CHECKED_OUT"
    INACTIVE = "INACTIVE"


class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    INACTIVE = "INACTIVE"


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    INACTIVE = "INACTIVE"


class PaymentMethod(str, enum.Enum):
    COD = "COD"
    CREDIT_CARD = "CREDIT_CARD"
    VNPAY = "VNPAY"
    MOMO = "MOMO"

    @property
    def is_gateway(self) -> bool:
        return self is not PaymentMethod.COD


class CompletionSource(str, enum.Enum):
    """Who is asserting that money arrived."""
    COD = "COD"          # operator-asserted cash on delivery
    GATEWAY = "GATEWAY"  # signed gateway callback


class CompletionResult(str, enum.Enum):
    COMPLETED = "COMPLETED"
    ALREADY_COMPLETED = "ALREADY_COMPLETED"
