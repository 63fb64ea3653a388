from datetime import date, datetime, tzinfo

TIME_FORMAT = "%Y-%m-%d %H:%M"
DATE_FORMAT = "%Y-%m-%d"


def now_str(tz: tzinfo | None = None) -> str:
    """Return current timestamp as string in the common format."""
    return datetime.now(tz).strftime(TIME_FORMAT)


def today_str() -> str:
    """Date stamp used in export file names."""
    return date.today().strftime(DATE_FORMAT)


def parse_date(value) -> date | None:
    """Accept ``date``/``datetime`` objects or ISO ``YYYY-MM-DD`` strings."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip()[:10])
