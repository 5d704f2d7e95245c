from pydantic import BaseModel, Field, field_validator


class CreatePaymentUrlRequest(BaseModel):
    order_id: int
    bank_code: str | None = Field(default=None, max_length=20)
    locale: str = "vn"

    @field_validator('locale')
    @classmethod
    def validate_locale(cls, value):
        value = (value or "vn").strip().lower()
        if value not in ("vn", "en"):
            raise ValueError('locale must be "vn" or "en"')
        return value

    @field_validator('bank_code')
    @classmethod
    def validate_bank_code(cls, value):
        if value is None:
            return value
        value = value.strip()
        return value or None


class PaymentUrlResponse(BaseModel):
    order_id: int
    payment_id: int
    payment_url: str
    expires_at: str


class IpnResult(BaseModel):
    RspCode: str
    Message: str
