import csv
import datetime
import io
import logging
from decimal import Decimal

import pandas as pd

from services.validators import NotFoundError
from utils.time_utils import DATE_FORMAT, today_str

logger = logging.getLogger(__name__)

MEDIA_TYPES = {
    "csv": "text/csv; charset=utf-8",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}

# (attribute, header) per exported list
EXPORT_COLUMNS: dict[str, list[tuple[str, str]]] = {
    "bookings": [
        ("id", "ID"),
        ("client_names", "Clients"),
        ("vendor_name", "Vendor"),
        ("service_type_name", "Service Type"),
        ("trip_name", "Trip"),
        ("agent_name", "Agent"),
        ("start_date", "Start Date"),
        ("end_date", "End Date"),
        ("location", "Location"),
        ("cost", "Cost"),
        ("commission_rate", "Commission Rate (%)"),
        ("commission_amount", "Commission"),
        ("booking_status", "Booking Status"),
        ("commission_status", "Commission Status"),
    ],
    "vendors": [
        ("id", "ID"),
        ("name", "Name"),
        ("contact_person", "Contact Person"),
        ("email", "Email"),
        ("phone", "Phone"),
        ("service_area", "Service Area"),
        ("service_type_names", "Service Types"),
        ("tag_names", "Tags"),
        ("price_range", "Price Range"),
        ("commission_rate", "Commission Rate (%)"),
        ("rating", "Rating"),
    ],
    "clients": [
        ("id", "ID"),
        ("first_name", "First Name"),
        ("last_name", "Last Name"),
        ("notes", "Notes"),
        ("date_created", "Created"),
    ],
    "trips": [
        ("id", "ID"),
        ("name", "Name"),
        ("client_names", "Clients"),
        ("status", "Status"),
        ("start_date", "Start Date"),
        ("end_date", "End Date"),
        ("is_high_priority", "High Priority"),
    ],
}


def _cell(value):
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.strftime(DATE_FORMAT)
    if isinstance(value, Decimal):
        return format(value.normalize(), "f")
    return value


def _values(obj, columns):
    return [_cell(getattr(obj, attr, None)) for attr, _ in columns]


def export_file_name(name: str, ext: str) -> str:
    """``bookings_2024-06-15.xlsx``"""
    return f"{name}_{today_str()}.{ext}"


def export_rows_to_csv(stream, rows, columns) -> int:
    """Write rows as ``;``-separated CSV into a text stream."""
    writer = csv.writer(stream, delimiter=";")
    writer.writerow([header for _, header in columns])
    for row in rows:
        writer.writerow(_values(row, columns))
    return len(rows)


def rows_to_dataframe(rows, columns) -> pd.DataFrame:
    return pd.DataFrame(
        [_values(row, columns) for row in rows],
        columns=[header for _, header in columns],
    )


def export_rows_to_excel(target, rows, columns, sheet_name: str = "Sheet1") -> int:
    """Write rows into an ``.xlsx`` file path or binary stream."""
    df = rows_to_dataframe(rows, columns)
    with pd.ExcelWriter(target, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name=sheet_name[:31])
    return len(rows)


def render_export(kind: str, rows, fmt: str = "csv") -> tuple[str, bytes, str]:
    """Return ``(file_name, content, media_type)`` for a list export."""
    if kind not in EXPORT_COLUMNS:
        raise NotFoundError(f"Unknown export: {kind}")
    if fmt not in MEDIA_TYPES:
        raise ValueError(f"Unsupported export format: {fmt}")
    columns = EXPORT_COLUMNS[kind]
    rows = list(rows)
    if fmt == "csv":
        text = io.StringIO()
        export_rows_to_csv(text, rows, columns)
        content = text.getvalue().encode("utf-8-sig")
    else:
        binary = io.BytesIO()
        export_rows_to_excel(binary, rows, columns, sheet_name=kind)
        content = binary.getvalue()
    logger.info("📤 Export %s.%s: %d rows", kind, fmt, len(rows))
    return export_file_name(kind, fmt), content, MEDIA_TYPES[fmt]
