#!/usr/bin/env python3
"""Создание недостающих таблиц back-office в существующей базе."""

import logging

from config import get_settings
from database.db import db
from database.init import ALL_MODELS, create_tables, database_from_url
from utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def missing_tables(database) -> list[str]:
    existing = set(database.get_tables())
    return [m._meta.table_name for m in ALL_MODELS if m._meta.table_name not in existing]


def main() -> None:
    settings = get_settings()
    setup_logging(settings)
    if not settings.database_url:
        raise RuntimeError("DATABASE_URL is not set")

    database = database_from_url(settings.database_url)
    db.initialize(database)
    database.connect(reuse_if_open=True)
    try:
        missing = missing_tables(database)
        if not missing:
            logger.info("Схема актуальна, создавать нечего")
            return
        with database.atomic():
            create_tables(database)
        logger.info("🛠 Созданы таблицы: %s", ", ".join(missing))
    finally:
        database.close()


if __name__ == "__main__":
    main()
