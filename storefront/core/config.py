import os
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # 数据库配置
    POSTGRES_USER: str = os.getenv("POSTGRES_USER", "postgres")
    POSTGRES_PASSWORD: str = os.getenv("POSTGRES_PASSWORD", "123456")
    POSTGRES_HOST: str = os.getenv("POSTGRES_HOST", "localhost")
    POSTGRES_PORT: int = int(os.getenv("POSTGRES_PORT", "5432"))
    POSTGRES_DB: str = os.getenv("POSTGRES_DB", "srrfarms")
    DATABASE_URL: Optional[str] = None

    # Redis 配置
    REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", "6379"))
    REDIS_DB: int = int(os.getenv("REDIS_DB", "0"))
    # Redlock 多实例，逗号分隔；为空时使用 REDIS_HOST
    REDIS_HOSTS: Optional[str] = os.getenv("REDIS_HOSTS")

    # 鉴权
    JWT_SECRET: str = "change-me"
    JWT_ALGORITHM: str = "HS256"

    # 订单计价
    SHIPPING_FEE: int = 50
    TAX_RATE: float = 0.05

    # 购物车锁（毫秒）与库存缓存（秒）
    CART_LOCK_TTL_MS: int = 10000
    STOCK_CACHE_TTL: int = 300

    # UPI 支付凭证
    UPLOAD_DIR: str = "uploads/payment-screenshots"
    MAX_SCREENSHOT_BYTES: int = 5 * 1024 * 1024
    UPI_ID: str = "srrfarms@upi"
    UPI_MERCHANT_NAME: str = "SRR Farms"
    UPI_QR_CODE_URL: str = "/static/upi-qr.png"

    ALLOWED_ORIGINS: str = "*"

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg://"
            f"{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/"
            f"{self.POSTGRES_DB}"
        )

    @property
    def allowed_origins(self) -> list:
        if not self.ALLOWED_ORIGINS or self.ALLOWED_ORIGINS.strip() == "*":
            return ["*"]
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]


settings = Settings()
