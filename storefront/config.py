from typing import List, Optional
from urllib.parse import quote_plus

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    postgres_user: str = "postgres"
    postgres_password: str = ""
    postgres_db: str = "storefront"
    postgres_host: str = "localhost"
    postgres_port: str = "5432"

    # Full SQLAlchemy URL, wins over the postgres_* parts when set
    DATABASE_URL: Optional[str] = None

    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 12
    AUTH_COOKIE_NAME: str = "authToken"
    OTP_EXPIRE_MINUTES: int = 10
    RESET_TOKEN_EXPIRE_MINUTES: int = 5
    EMAIL_CHANGE_EXPIRE_MINUTES: int = 10

    RAZORPAY_KEY_ID: str = ""
    RAZORPAY_KEY_SECRET: str = ""
    RAZORPAY_WEBHOOK_SECRET: str = ""
    CURRENCY: str = "THB"
    APP_URL: str = "http://localhost:3000"

    BREVO_API_KEY: str = ""
    MAIL_FROM: str = "no-reply@tdouble.shop"
    STORE_NAME: str = "T-Double"
    ADMIN_EMAILS: List[str] = []

    RETURN_WINDOW_DAYS: int = 3
    SPECIAL_CANCEL_WINDOW_DAYS: int = 3
    SPECIAL_ORDER_MIN_QUANTITY: int = 10
    MAX_RETURN_IMAGES: int = 5
    UPLOAD_DIR: str = "uploads"

    ENV: str = "local"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    @property
    def database_url(self):
        if self.DATABASE_URL:
            return self.DATABASE_URL
        encoded_password = quote_plus(self.postgres_password)
        return (
            f"postgresql+psycopg2://{self.postgres_user}:"
            f"{encoded_password}@{self.postgres_host}:"
            f"{self.postgres_port}/{self.postgres_db}"
        )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "allow"


settings = Settings()
