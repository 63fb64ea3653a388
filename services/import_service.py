"""Импорт справочников, клиентов и поставщиков из CSV/XLSX.

Файл сначала сверяется с :class:`CsvImportSpec`: заголовок без обязательной
колонки отклоняет весь файл, строки с пустыми обязательными значениями
попадают в ошибки по каждому полю и пропускаются. Корректные строки
вставляются пачками; пачка, нарушившая уникальность, откатывается и
повторяется построчно, чтобы в отчёт попали только проблемные строки.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable

from openpyxl import load_workbook
from peewee import IntegrityError

from config import get_settings
from database.db import db
from database.models import Client, LocationTag, ServiceType, Tag, UserRole, Vendor
from services.access import UserSession, require_role
from services.audit_log_service import add_audit_log
from services.reference_service import find_ids_by_names
from services.validators import FieldValidationError, NotFoundError, normalize_person_name
from services.vendors.vendor_service import (
    clean_vendor_data,
    set_vendor_service_types,
    set_vendor_tags,
)

logger = logging.getLogger(__name__)


class MissingColumnsError(ValueError):
    """В заголовке нет обязательных колонок."""

    def __init__(self, missing: list[str]):
        super().__init__(f"Missing required columns: {', '.join(missing)}")
        self.missing = missing


@dataclass(frozen=True)
class CsvImportSpec:
    name: str
    required: tuple[str, ...]
    optional: tuple[str, ...] = ()


@dataclass(frozen=True)
class RowError:
    row: int
    field: str
    message: str


@dataclass
class ParsedRow:
    row: int
    data: dict[str, str | None]


@dataclass
class ParsedCsv:
    valid: list[ParsedRow] = field(default_factory=list)
    errors: list[RowError] = field(default_factory=list)

    @property
    def valid_data(self) -> list[dict]:
        return [r.data for r in self.valid]


@dataclass
class ImportResult:
    success: int = 0
    errors: list[RowError] = field(default_factory=list)


LOCATION_TAGS = CsvImportSpec(
    "location_tags", ("continent", "country"), ("state_province", "city")
)
TAGS = CsvImportSpec("tags", ("name",))
SERVICE_TYPES = CsvImportSpec("service_types", ("name",))
CLIENTS = CsvImportSpec("clients", ("first_name", "last_name"), ("notes",))
VENDORS = CsvImportSpec(
    "vendors",
    (
        "name",
        "contact_person",
        "email",
        "phone",
        "address",
        "service_area",
        "price_range",
        "commission_rate",
    ),
    ("service_types", "tags", "notes"),
)


# ───────────────────────────── чтение ─────────────────────────────


def _decode(content: bytes | str) -> str:
    if isinstance(content, bytes):
        return content.decode("utf-8-sig")
    return content.lstrip("\ufeff")


def read_csv_records(content: bytes | str) -> tuple[list[str], list[dict]]:
    """Заголовок и строки файла с разделителем ``,`` или ``;``."""
    text = _decode(content)
    first_line = text.split("\n", 1)[0]
    delimiter = ";" if first_line.count(";") > first_line.count(",") else ","
    reader = csv.DictReader(io.StringIO(text), delimiter=delimiter)
    headers = [h.strip() for h in (reader.fieldnames or [])]
    records = [
        {(k or "").strip(): v for k, v in row.items()} for row in reader
    ]
    return headers, records


def _cell_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def read_xlsx_records(content: bytes) -> tuple[list[str], list[dict]]:
    """Заголовок и строки первого листа книги Excel."""
    wb = load_workbook(filename=io.BytesIO(content), read_only=True, data_only=True)
    try:
        rows = wb.active.iter_rows(values_only=True)
        first = next(rows, None)
        if first is None:
            return [], []
        headers = [str(h).strip() if h is not None else "" for h in first]
        records = []
        for values in rows:
            if all(v is None for v in values):
                continue
            records.append({h: _cell_text(v) for h, v in zip(headers, values)})
        return headers, records
    finally:
        wb.close()


def parse_records(
    headers: Iterable[str], records: Iterable[dict], spec: CsvImportSpec
) -> ParsedCsv:
    """Проверка строк по ``spec``.

    Номера строк начинаются с 1 и учитывают заголовок, поэтому первая
    строка данных имеет номер 2.
    """
    header_set = {h.strip() for h in headers}
    missing = [col for col in spec.required if col not in header_set]
    if missing:
        raise MissingColumnsError(missing)

    parsed = ParsedCsv()
    for index, record in enumerate(records):
        row_no = index + 2
        data: dict[str, str | None] = {}
        row_errors = []
        for col in spec.required:
            value = str(record.get(col) or "").strip()
            if not value:
                row_errors.append(RowError(row_no, col, f"{col} is required"))
            data[col] = value
        for col in spec.optional:
            data[col] = str(record.get(col) or "").strip() or None
        if row_errors:
            parsed.errors.extend(row_errors)
        else:
            parsed.valid.append(ParsedRow(row_no, data))
    return parsed


def parse_csv(content: bytes | str, spec: CsvImportSpec) -> ParsedCsv:
    headers, records = read_csv_records(content)
    return parse_records(headers, records, spec)


def parse_file(filename: str, content: bytes, spec: CsvImportSpec) -> ParsedCsv:
    if filename.lower().endswith(".xlsx"):
        headers, records = read_xlsx_records(content)
    else:
        headers, records = read_csv_records(content)
    return parse_records(headers, records, spec)


# ───────────────────────────── запись ─────────────────────────────


def _chunks(rows: list, size: int):
    for start in range(0, len(rows), size):
        yield rows[start : start + size]


def insert_in_batches(
    rows: list[ParsedRow],
    insert_one: Callable[[dict], object],
    *,
    insert_many: Callable[[list[dict]], object] | None = None,
    batch_size: int | None = None,
) -> ImportResult:
    """Вставка ``rows`` пачками; при конфликте пачка повторяется построчно."""
    size = batch_size or get_settings().import_batch_size
    result = ImportResult()
    for batch in _chunks(rows, size):
        try:
            with db.atomic():
                if insert_many is not None:
                    insert_many([r.data for r in batch])
                else:
                    for r in batch:
                        insert_one(r.data)
            result.success += len(batch)
            continue
        except IntegrityError as exc:
            logger.warning("Batch of %d rows rejected (%s), retrying row by row", len(batch), exc)

        for r in batch:
            try:
                with db.atomic():
                    insert_one(r.data)
                result.success += 1
            except IntegrityError as exc:
                result.errors.append(RowError(r.row, "", f"Duplicate or conflicting record: {exc}"))
    return result


def _finish(
    session: UserSession | None, spec: CsvImportSpec, parsed: ParsedCsv, result: ImportResult
) -> ImportResult:
    result.errors = sorted(parsed.errors + result.errors, key=lambda e: e.row)
    logger.info(
        "📥 Import %s: %d imported, %d errors", spec.name, result.success, len(result.errors)
    )
    add_audit_log(
        session,
        "import",
        spec.name,
        details={"success": result.success, "errors": len(result.errors)},
    )
    return result


def import_location_tags(session: UserSession | None, parsed: ParsedCsv) -> ImportResult:
    require_role(session, UserRole.ADMIN)
    result = insert_in_batches(
        parsed.valid,
        lambda d: LocationTag.create(**d),
        insert_many=lambda ds: LocationTag.insert_many(ds).execute(),
    )
    return _finish(session, LOCATION_TAGS, parsed, result)


def import_tags(session: UserSession | None, parsed: ParsedCsv) -> ImportResult:
    require_role(session, UserRole.ADMIN)
    result = insert_in_batches(
        parsed.valid,
        lambda d: Tag.create(**d),
        insert_many=lambda ds: Tag.insert_many(ds).execute(),
    )
    return _finish(session, TAGS, parsed, result)


def import_service_types(session: UserSession | None, parsed: ParsedCsv) -> ImportResult:
    require_role(session, UserRole.ADMIN)
    result = insert_in_batches(
        parsed.valid,
        lambda d: ServiceType.create(**d),
        insert_many=lambda ds: ServiceType.insert_many(ds).execute(),
    )
    return _finish(session, SERVICE_TYPES, parsed, result)


def import_clients(session: UserSession | None, parsed: ParsedCsv) -> ImportResult:
    require_role(session, UserRole.AGENT)
    for r in parsed.valid:
        r.data["first_name"] = normalize_person_name(r.data["first_name"])
        r.data["last_name"] = normalize_person_name(r.data["last_name"])
    result = insert_in_batches(
        parsed.valid,
        lambda d: Client.create(**d),
        insert_many=lambda ds: Client.insert_many(ds).execute(),
    )
    return _finish(session, CLIENTS, parsed, result)


def _split_names(value: str | None) -> list[str]:
    return [p.strip() for p in (value or "").split(",") if p.strip()]


def _prepare_vendor_row(row: ParsedRow, errors: list[RowError]) -> dict | None:
    data = dict(row.data)
    service_type_ids, unknown_types = find_ids_by_names(
        ServiceType, _split_names(data.pop("service_types"))
    )
    tag_ids, unknown_tags = find_ids_by_names(Tag, _split_names(data.pop("tags")))
    ok = True
    if unknown_types:
        errors.append(
            RowError(row.row, "service_types", f"Unknown service types: {', '.join(unknown_types)}")
        )
        ok = False
    if unknown_tags:
        errors.append(RowError(row.row, "tags", f"Unknown tags: {', '.join(unknown_tags)}"))
        ok = False
    try:
        clean = clean_vendor_data(data, partial=False)
    except FieldValidationError as exc:
        errors.append(RowError(row.row, exc.field, exc.message))
        return None
    if not ok:
        return None
    clean["service_type_ids"] = service_type_ids
    clean["tag_ids"] = tag_ids
    return clean


def _create_vendor(data: dict) -> Vendor:
    fields = dict(data)
    service_type_ids = fields.pop("service_type_ids")
    tag_ids = fields.pop("tag_ids")
    vendor = Vendor.create(**fields)
    set_vendor_service_types(vendor, service_type_ids)
    set_vendor_tags(vendor, tag_ids)
    return vendor


def import_vendors(session: UserSession | None, parsed: ParsedCsv) -> ImportResult:
    """Поставщики; типы услуг и теги задаются именами через запятую."""
    require_role(session, UserRole.ADMIN)
    errors: list[RowError] = []
    prepared = []
    for row in parsed.valid:
        data = _prepare_vendor_row(row, errors)
        if data is not None:
            prepared.append(ParsedRow(row.row, data))
    parsed.errors.extend(errors)
    result = insert_in_batches(prepared, _create_vendor)
    return _finish(session, VENDORS, parsed, result)


IMPORTERS: dict[str, tuple[CsvImportSpec, Callable[[UserSession | None, ParsedCsv], ImportResult]]] = {
    "location-tags": (LOCATION_TAGS, import_location_tags),
    "tags": (TAGS, import_tags),
    "service-types": (SERVICE_TYPES, import_service_types),
    "clients": (CLIENTS, import_clients),
    "vendors": (VENDORS, import_vendors),
}


def import_file(
    session: UserSession | None, kind: str, filename: str, content: bytes
) -> ImportResult:
    """Разобрать загруженный файл и импортировать строки ``kind``."""
    if kind not in IMPORTERS:
        raise NotFoundError(f"Unknown import type: {kind}")
    spec, importer = IMPORTERS[kind]
    parsed = parse_file(filename, content, spec)
    return importer(session, parsed)
