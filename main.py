import logging

import uvicorn

from config import Settings, get_settings
from database.init import init_from_env
from services.profile_service import ensure_bootstrap_admin
from utils.logging_config import setup_logging

__all__ = ["main"]


def main(settings: Settings | None = None, host: str = "127.0.0.1", port: int = 8000) -> int:
    """Запускает веб-приложение back-office."""

    settings = settings or get_settings()
    if not settings.database_url:
        raise RuntimeError("DATABASE_URL не задан в .env")

    init_from_env(settings.database_url)
    setup_logging(settings)
    logger = logging.getLogger(__name__)

    # ───── Проверка и подготовка окружения ─────
    if ensure_bootstrap_admin(settings) is None:
        logger.warning("BOOTSTRAP_ADMIN_EMAIL не задан, администратор не создан")

    # ───── HTTP ─────
    uvicorn.run("app.main:app", host=host, port=port, log_config=None)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
