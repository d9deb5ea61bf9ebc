from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from decimal import Decimal
from pydantic import field_validator

class Settings(BaseSettings):
    # Database settings
    POSTGRES_USER: str = 'billing_user'
    POSTGRES_PASSWORD: str = 'billing_pass'
    POSTGRES_DB: str = 'paint_billing'
    POSTGRES_HOST: str = 'postgres'
    POSTGRES_PORT: int = 5432
    DATABASE_URL: Optional[str] = None  # Override completo (sqlite para dev/tests)

    # Redis settings (Celery broker/backend)
    REDIS_HOST: str = 'redis'
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: Optional[str] = None

    # Invoice storage: "local" o "minio"
    INVOICE_STORAGE: str = 'local'
    INVOICES_DIR: str = 'public/invoices'
    INVOICES_URL_PREFIX: str = '/invoices'
    INVOICE_RECONCILE_LIMIT: int = 500

    # MinIO settings
    MINIO_HOST: str = 'minio'
    MINIO_PORT: int = 9000
    MINIO_ACCESS_KEY: str = 'minioadmin'
    MINIO_SECRET_KEY: str = 'minioadmin'
    MINIO_BUCKET_NAME: str = 'invoices'
    MINIO_USE_SSL: bool = False
    MINIO_URL_EXPIRE_HOURS: int = 24

    # Billing
    DEFAULT_GST_PERC: Decimal = Decimal('18')
    SHOP_NAME: str = 'Paint Shop Billing'
    CURRENCY_SYMBOL: str = 'Rs.'
    PRODUCT_LOCK_TIMEOUT: float = 30.0  # segundos

    # API
    API_PREFIX: str = '/api'

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def redis_url(self) -> str:
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    @property
    def minio_endpoint(self) -> str:
        return f"{self.MINIO_HOST}:{self.MINIO_PORT}"

    model_config = SettingsConfigDict(
        extra="allow",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @field_validator("DEBUG", "MINIO_USE_SSL", mode="before")
    @classmethod
    def parse_bool(cls, v):
        if isinstance(v, str):
            return v.lower().strip('"').strip("'") in ("true", "1", "yes", "on")
        return bool(v)

    @field_validator("INVOICE_STORAGE", mode="before")
    @classmethod
    def parse_storage(cls, v):
        value = str(v).lower().strip('"').strip("'")
        if value not in ("local", "minio"):
            raise ValueError("INVOICE_STORAGE debe ser 'local' o 'minio'")
        return value

settings = Settings()
