from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "Stockdesk"
    DATABASE_URL: str = "sqlite:///./stockdesk.db"

    # JWT session tokens
    SECRET_KEY: str = "change-me"
    ACCESS_TOKEN_EXPIRE_HOURS: int = 72

    # Login throttling
    MAX_LOGIN_ATTEMPTS: int = 3
    LOCKOUT_MINUTES: int = 15

    # Idle timeout enforced by the client; published through /api/v1/config
    SESSION_TIMEOUT_MINUTES: int = 5

    LOW_STOCK_THRESHOLD: int = 10

    # Seeded on first start when the users table is empty
    DEFAULT_ADMIN_USERNAME: str = "admin"
    DEFAULT_ADMIN_PASSWORD: str = "admin123"
    DEFAULT_ADMIN_EMAIL: str = "admin@example.com"

    LOG_LEVEL: str = "INFO"

    model_config = {"env_file": ".env"}


settings = Settings()
