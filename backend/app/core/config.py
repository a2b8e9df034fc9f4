from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    APP_NAME: str = "Retina IVI Tracker"
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"

    # Session token (signed JWT stored in an HTTP-only cookie)
    SECRET_KEY: str = "change-me-in-production-use-strong-random-key"
    ALGORITHM: str = "HS256"
    SESSION_COOKIE_NAME: str = "auth"
    SESSION_EXPIRE_DAYS: int = 7

    # Shared unit password; login is refused while unset
    SECRET_PASSWORD: Optional[str] = None

    DATABASE_URL: str = "sqlite:///./retina.db"
    DB_ISOLATION_LEVEL: str = "SERIALIZABLE"

    LOG_LEVEL: str = "INFO"
    SEED_DEMO_DATA: bool = True

    # Spreadsheet import
    CANCELLED_STATUS: str = "CANCELADO"
    DEFAULT_TREATMENT_TYPE: str = "INJEÇÃO INTRAVÍTREA DE AVASTIN"

    # PDF rendering
    REPORT_FONT: str = "Times-Roman"
    REPORT_FONT_SIZE: int = 10

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    class Config:
        env_file = ".env"


settings = Settings()
