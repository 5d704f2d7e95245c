from pydantic import BaseModel, ConfigDict, field_validator
from models.enums import CartStatus


class GuestTokenRequest(BaseModel):
    guest_token: str

    @field_validator('guest_token')
    @classmethod
    def validate_token(cls, value):
        if not value or not value.strip():
            raise ValueError('guest_token cannot be empty')
        return value.strip()


class CartItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    quantity: int


class CartResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int | None = None
    status: CartStatus
    items: list[CartItemResponse] = []
