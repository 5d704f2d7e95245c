from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "development"

    DATABASE_URL: str
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    CORS_ORIGINS: list[str] = ["http://localhost:5173"]
    FRONTEND_PUBLIC_URL: str = "http://localhost:5173"

    # VNPAY gateway
    VNPAY_TMN_CODE: str
    VNPAY_HASH_SECRET: str
    VNPAY_PAYMENT_URL: str = "https://sandbox.vnpayment.vn/paymentv2/vpcpay.html"
    VNPAY_RETURN_URL: str
    VNPAY_IP_WHITELIST: list[str] = ["113.160.92.202", "113.160.92.203"]
    VNPAY_EXPIRE_MINUTES: int = 15


settings = Settings()
