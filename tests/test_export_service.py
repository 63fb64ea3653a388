import codecs
import io
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

import pandas as pd
import pytest

from services.export_service import (
    EXPORT_COLUMNS,
    export_file_name,
    export_rows_to_csv,
    render_export,
)
from services.validators import NotFoundError


@dataclass
class TripRow:
    id: int
    name: str
    status: str = "Planned"
    start_date: date = date(2024, 6, 1)
    end_date: date = date(2024, 6, 10)
    is_high_priority: bool = False
    client_names: list = field(default_factory=list)


def test_csv_uses_semicolons_and_joins_lists():
    stream = io.StringIO()
    count = export_rows_to_csv(stream, [TripRow(1, "Paris", client_names=["Jane Doe", "Bob Stone"])], EXPORT_COLUMNS["trips"])
    lines = stream.getvalue().splitlines()
    assert count == 1
    assert lines[0] == "ID;Name;Clients;Status;Start Date;End Date;High Priority"
    assert lines[1] == "1;Paris;Jane Doe, Bob Stone;Planned;2024-06-01;2024-06-10;False"


def test_render_csv_has_bom_and_dated_name():
    name, content, media_type = render_export("trips", [TripRow(1, "Paris")], "csv")
    assert name == export_file_name("trips", "csv")
    assert name.startswith("trips_") and name.endswith(".csv")
    assert content.startswith(codecs.BOM_UTF8)
    assert media_type.startswith("text/csv")


def test_render_excel_round_trips_through_pandas():
    rows = [TripRow(1, "Paris"), TripRow(2, "Rome", is_high_priority=True)]
    name, content, _ = render_export("trips", rows, "xlsx")
    assert name.endswith(".xlsx")
    df = pd.read_excel(io.BytesIO(content), engine="openpyxl")
    assert list(df["Name"]) == ["Paris", "Rome"]
    assert list(df.columns) == [header for _, header in EXPORT_COLUMNS["trips"]]


def test_decimal_cells_are_plain(make_booking):
    from services.bookings import list_booking_rows

    make_booking(cost=Decimal("250.50"), commission_rate=Decimal("7.25"))
    _, content, _ = render_export("bookings", list_booking_rows(), "csv")
    text = content.decode("utf-8-sig")
    assert ";250.5;7.25;18.16125;" in text


def test_unknown_export_kind_or_format():
    with pytest.raises(NotFoundError):
        render_export("planets", [], "csv")
    with pytest.raises(ValueError):
        render_export("trips", [], "pdf")
