import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class Settings:
    # API settings
    api_host: str = os.getenv("API_HOST", "127.0.0.1")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    # Key handed to the seeded API user; requests present it in X-API-Key
    api_key: str = os.getenv("API_KEY", "super-secret-key")

    # Database settings
    database_file: str = os.getenv("LIBRARY_DB_FILE", "library.db")
    database_timeout: float = float(os.getenv("DATABASE_TIMEOUT", "5"))

    # Paging and suggestions
    default_page_size: int = int(os.getenv("DEFAULT_PAGE_SIZE", "10"))
    suggestion_min_prefix: int = int(os.getenv("SUGGESTION_MIN_PREFIX", "4"))

    # Lending
    # False checks capacity and inserts the loan as two separate statements;
    # True runs both inside one BEGIN IMMEDIATE transaction.
    atomic_borrow: bool = _env_flag("ATOMIC_BORROW", "False")

    # Startup
    seed_on_startup: bool = _env_flag("SEED_ON_STARTUP", "True")

    # Application settings
    app_name: str = os.getenv("APP_NAME", "Library Lending API")
    app_version: str = os.getenv("APP_VERSION", "2.1.0")
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    debug: bool = _env_flag("DEBUG", "False")


settings = Settings()
