"""Резервное копирование базы данных в Excel.

Перед запуском требуется переменная окружения ``DATABASE_URL``.
"""

import logging
from datetime import datetime
from pathlib import Path

import pandas as pd

from config import get_settings
from database.init import init_from_env
from database.models import (
    AuditLog,
    Booking,
    Client,
    LocationTag,
    Profile,
    ServiceType,
    Tag,
    Trip,
    Vendor,
)
from utils.logging_config import setup_logging

logger = logging.getLogger(__name__)

BACKUP_MODELS = {
    "clients": Client,
    "vendors": Vendor,
    "bookings": Booking,
    "trips": Trip,
    "service_types": ServiceType,
    "tags": Tag,
    "location_tags": LocationTag,
    "profiles": Profile,
    "audit_logs": AuditLog,
}


def peewee_to_df(model):
    return pd.DataFrame([m.__data__ for m in model.select()])


def backup_to_excel(path: Path) -> Path:
    """Все таблицы на отдельных листах одного ``.xlsx``."""
    sheets = {name: peewee_to_df(model) for name, model in BACKUP_MODELS.items()}

    path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for name, df in sheets.items():
            df.to_excel(writer, index=False, sheet_name=name)
    logger.info("✅ Excel-файл сохранён: %s", path)
    return path


def main() -> None:
    settings = get_settings()
    setup_logging(settings)
    init_from_env(settings.database_url or None)
    stamp = datetime.now().strftime("%Y-%m-%d_%H-%M")
    backup_to_excel(Path(settings.export_dir) / "backups" / f"backup_{stamp}.xlsx")


if __name__ == "__main__":
    main()
