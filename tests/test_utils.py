"""Утилитарные тесты. Добавляйте новые тесты утилит сюда."""

import logging
from datetime import date, datetime
from decimal import Decimal

import pytest

from config import Settings
from utils.logging_config import PeeweeFilter, setup_logging
from utils.money import format_usd, round_money, to_decimal
from utils.time_utils import parse_date


def _record(msg: str, sql: str | None = None) -> logging.LogRecord:
    record = logging.LogRecord("peewee", logging.DEBUG, "", 0, msg, None, None)
    if sql is not None:
        record.sql = sql
    return record


def test_filter_excludes_select_queries():
    filt = PeeweeFilter()

    assert not filt.filter(_record("SELECT * FROM booking"))
    assert not filt.filter(_record("ignored", sql="SELECT * FROM booking"))
    assert not filt.filter(_record("   SELECT * FROM booking"))
    assert not filt.filter(_record("ignored", sql="   SELECT * FROM booking"))


def test_filter_keeps_other_queries():
    filt = PeeweeFilter()

    for query in ["INSERT INTO vendor VALUES (1)", "UPDATE booking SET cost=1"]:
        assert filt.filter(_record(query))
        assert filt.filter(_record(f"   {query}"))
        assert filt.filter(_record("ignored", sql=query))


def test_setup_logging_restores_select_queries(tmp_path):
    settings_off = Settings(log_dir=str(tmp_path), log_level="INFO", detailed_logging=False)
    setup_logging(settings_off)

    peewee_logger = logging.getLogger("peewee")
    assert any(isinstance(filt, PeeweeFilter) for filt in peewee_logger.filters)
    assert (tmp_path / "backoffice.log").exists()

    class CollectHandler(logging.Handler):
        def __init__(self) -> None:
            super().__init__(level=logging.DEBUG)
            self.messages: list[str] = []

        def emit(self, record: logging.LogRecord) -> None:  # pragma: no cover - trivial
            self.messages.append(record.getMessage())

    collect_handler = CollectHandler()
    peewee_logger.addHandler(collect_handler)
    peewee_logger.setLevel(logging.DEBUG)

    try:
        peewee_logger.debug("SELECT 1")
        assert "SELECT 1" not in collect_handler.messages

        settings_on = Settings(log_dir=str(tmp_path), log_level="INFO", detailed_logging=True)
        setup_logging(settings_on)

        assert not any(isinstance(filt, PeeweeFilter) for filt in peewee_logger.filters)

        collect_handler.messages.clear()
        peewee_logger.debug("SELECT 1")
        assert "SELECT 1" in collect_handler.messages
    finally:
        peewee_logger.removeHandler(collect_handler)


def test_money_helpers():
    assert to_decimal(0.1) == Decimal("0.1")
    assert to_decimal(None) == 0
    assert round_money("2.005") == Decimal("2.01")
    assert format_usd(1234567.891) == "$1,234,567.89"
    with pytest.raises(ValueError):
        to_decimal("ten")


def test_parse_date():
    assert parse_date("2024-06-15") == date(2024, 6, 15)
    assert parse_date("2024-06-15T10:00:00") == date(2024, 6, 15)
    assert parse_date(datetime(2024, 6, 15, 9, 30)) == date(2024, 6, 15)
    assert parse_date("") is None
    with pytest.raises(ValueError):
        parse_date("15.06.2024")
