from __future__ import annotations

import os
from dataclasses import dataclass, field
from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from appdirs import user_data_dir, user_log_dir
from dotenv import load_dotenv

APP_NAME = "travel_backoffice"


@dataclass
class Settings:
    database_url: str = ""
    log_dir: str = field(default_factory=lambda: user_log_dir(APP_NAME))
    log_level: str = "INFO"
    detailed_logging: bool = False
    default_commission_rate: Decimal = Decimal("10")
    import_batch_size: int = 50
    export_dir: str = field(default_factory=lambda: user_data_dir(APP_NAME))
    bootstrap_admin_email: str | None = None


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes", "on"}


@lru_cache()
def get_settings() -> Settings:
    dotenv_path = Path(__file__).resolve().parent / ".env"
    load_dotenv(dotenv_path)

    batch_size = int(os.getenv("IMPORT_BATCH_SIZE", "50") or 50)
    return Settings(
        database_url=os.getenv("DATABASE_URL", ""),
        log_dir=os.getenv("LOG_DIR") or user_log_dir(APP_NAME),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        detailed_logging=_env_flag("DETAILED_LOGGING"),
        default_commission_rate=Decimal(os.getenv("DEFAULT_COMMISSION_RATE", "10")),
        import_batch_size=max(batch_size, 1),
        export_dir=os.getenv("EXPORT_DIR") or user_data_dir(APP_NAME),
        bootstrap_admin_email=os.getenv("BOOTSTRAP_ADMIN_EMAIL") or None,
    )
