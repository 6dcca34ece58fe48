from typing import List
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Database
    DATABASE_USER: str = "postgres"
    DATABASE_PASSWORD: str = "postgres"
    DATABASE_HOST: str = "localhost"
    DATABASE_PORT: int = 5432
    DATABASE_NAME: str = "agency"

    # JWT tokens
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7 # 7 days

    # Public site, used to build referral and magic links
    SITE_URL: str = "http://localhost:3000"
    CORS_ORIGINS_STR: str = Field(default="http://localhost:3000", alias="CORS_ORIGINS")

    # Referral program
    DEFAULT_REFERRAL_COMMISSION_RATE: float = 0.1

    # Quotes and magic links
    QUOTE_LIFETIME_DAYS: int = 7
    MAGIC_LOGIN_LIFETIME_DAYS: int = 3
    CUSTOM_PROJECT_SERVICE_SLUG: str = "custom-project"

    # Cloudinary uploads
    CLOUDINARY_CLOUD_NAME: str | None = None
    CLOUDINARY_API_KEY: str | None = None
    CLOUDINARY_API_SECRET: str | None = None
    CLOUDINARY_UPLOAD_PRESET_PROOFS: str | None = None
    CLOUDINARY_UPLOAD_PRESET_PROJECTS: str | None = None
    CLOUDINARY_PROOFS_FOLDER: str = "agency/proofs"
    CLOUDINARY_PROJECTS_FOLDER: str = "agency/projects"

    # Admin notifications (Telegram)
    TELEGRAM_BOT_TOKEN: str | None = None
    ADMIN_CHAT_ID: int | None = None

    # Rate limiting
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    RATE_LIMIT_ENABLED: bool = True

    @property
    def CORS_ORIGINS(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS_STR.split(',') if origin.strip()]

    @property
    def REDIS_URL(self) -> str:
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}"

    @property
    def DATABASE_URL(self) -> str:
        return f"postgresql+psycopg2://{self.DATABASE_USER}:{self.DATABASE_PASSWORD}@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"

    model_config = SettingsConfigDict(env_file=".env", populate_by_name=True)

settings = Settings()
