# Overview: Service-layer operations for bulk import; encapsulates business logic and database work.

"""
Bulk import of item details (best-effort, row by row)

Each row commits on its own. A failing row is recorded as an ImportRowError
and the batch continues; the result reports successCount / errorCount /
errors[]. Row numbers are spreadsheet line numbers (header is line 1).

Per row:
1. Category by exact name, created if missing
2. Size by exact name (optional), created if missing, then the
   category/size association (idempotent)
3. condition / location / receivedDate / approxPrice / isActive parsed
4. ItemDetail inserted with a fresh QR value

Columns written by the export that the import does not use (itemId,
categoryId) are ignored so an export file can be re-imported.
"""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from datetime import date, datetime
from zipfile import BadZipFile

from flask import current_app

from ..extensions import db
from ..models import Location, CONDITIONS, CONDITION_NEW
from ..errors import ImportRowError, ValidationError, ConflictError, IntegrationError, NotFoundError
from rainbow_room.time_utils import parse_iso_date, utcnow
from .concurrency import run_in_transaction
from .category_service import (
    create_category_inner,
    get_category_by_name,
    get_or_create_size_inner,
    add_size_to_category_inner,
)
from .detail_service import create_detail_inner
from .export_service import FORMULA_PREFIXES


TRUTHY_TOKENS = {"yes", "true", "1"}
NO_SIZE_TOKENS = {"", "none"}
XLSX_EXTENSIONS = {"xlsx", "xlsm", "xltx", "xltm"}


@dataclass
class ImportResult:
    success_count: int = 0
    error_count: int = 0
    errors: list[str] = field(default_factory=list)
    created_ids: list[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "successCount": self.success_count,
            "errorCount": self.error_count,
            "errors": list(self.errors),
        }


@dataclass(frozen=True)
class ParsedRow:
    category_name: str
    size_name: str | None
    condition: str
    location_id: int
    received_date: date
    donor_info: str | None
    approx_price: float | None
    is_active: bool


def read_rows(filename: str, data: bytes) -> list[dict]:
    """Decode an uploaded CSV or Excel file into a list of header-keyed dicts."""
    ext = (filename or "").rsplit(".", 1)[-1].lower()

    if ext == "csv":
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError:
            raise ValidationError("CSV file must be UTF-8 encoded")
        reader = csv.DictReader(io.StringIO(text))
        rows = [row for row in reader if any((v or "").strip() for v in row.values() if isinstance(v, str))]
    elif ext in XLSX_EXTENSIONS:
        from openpyxl import load_workbook
        from openpyxl.utils.exceptions import InvalidFileException
        try:
            wb = load_workbook(io.BytesIO(data), data_only=True, read_only=True)
            sheet = wb.worksheets[0]
            values = list(sheet.values)
            wb.close()
        except (BadZipFile, InvalidFileException, KeyError, OSError):
            raise ValidationError("Could not read the Excel file")
        if not values:
            rows = []
        else:
            headers = [str(h).strip() if h is not None else "" for h in values[0]]
            rows = [
                {headers[i]: row[i] for i in range(min(len(headers), len(row)))}
                for row in values[1:]
                if any(cell not in (None, "") for cell in row)
            ]
    else:
        raise ValidationError("Unsupported file format (expected .csv or .xlsx)")

    if not rows:
        raise ValidationError("The file contains no data rows")
    return [{(k or "").strip(): v for k, v in row.items()} for row in rows]


def _text(raw: dict, key: str) -> str:
    value = raw.get(key)
    if value is None:
        return ""
    text = str(value).strip()
    # Undo the quote the CSV/TXT export puts in front of formula-like cells
    if text.startswith("'") and text[1:].startswith(FORMULA_PREFIXES):
        text = text[1:]
    return text


def _parse_received_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        parsed = parse_iso_date(None if value is None else str(value))
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValueError("Received date must be in YYYY-MM-DD format")
    return parsed


def _parse_price(value) -> float | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValueError("approxPrice must be a number")
    try:
        price = float(value)
    except (TypeError, ValueError):
        raise ValueError("approxPrice must be a number")
    if price < 0:
        raise ValueError("approxPrice must be >= 0")
    return price


def _parse_active(value) -> bool:
    if value is None:
        return True
    if isinstance(value, bool):
        return value
    token = str(value).strip().lower()
    if not token:
        return True
    return token in TRUTHY_TOKENS


def parse_row(row_number: int, raw: dict, locations: dict[str, int]) -> ParsedRow:
    """Validate one raw row; raises ImportRowError naming the row."""
    try:
        category_name = _text(raw, "categoryName")
        if not category_name:
            raise ValueError("Category name is required")

        size_name = _text(raw, "sizeName")
        if size_name.lower() in NO_SIZE_TOKENS:
            size_name = None

        condition = _text(raw, "condition") or CONDITION_NEW
        if condition not in CONDITIONS:
            raise ValueError(f"Invalid condition '{condition}' (expected one of: {', '.join(CONDITIONS)})")

        location_name = _text(raw, "location")
        if not location_name:
            raise ValueError("Location is required")
        if location_name not in locations:
            raise ValueError(f"Unknown location '{location_name}'")

        return ParsedRow(
            category_name=category_name,
            size_name=size_name,
            condition=condition,
            location_id=locations[location_name],
            received_date=_parse_received_date(raw.get("receivedDate")),
            donor_info=_text(raw, "donorInfo") or None,
            approx_price=_parse_price(raw.get("approxPrice")),
            is_active=_parse_active(raw.get("isActive")),
        )
    except ValueError as e:
        raise ImportRowError(row_number, str(e))


def _write_row(parsed: ParsedRow) -> int:
    category = get_category_by_name(parsed.category_name)
    if category is None:
        category = create_category_inner(name=parsed.category_name)

    size_id = None
    if parsed.size_name:
        size = get_or_create_size_inner(parsed.size_name)
        add_size_to_category_inner(category.id, size.id)
        size_id = size.id

    detail = create_detail_inner(
        category_id=category.id,
        size_id=size_id,
        location_id=parsed.location_id,
        condition=parsed.condition,
        received_date=parsed.received_date,
        donor_info=parsed.donor_info,
        approx_price=parsed.approx_price,
    )
    if not parsed.is_active:
        detail.is_active = False
        detail.deactivated_at = utcnow()
        db.session.flush()
    return detail.id


def import_item_details(rows: list[dict]) -> ImportResult:
    if not isinstance(rows, list):
        raise ValidationError("rows must be a list")

    locations = {loc.name: loc.id for loc in db.session.query(Location).all()}
    result = ImportResult()

    for index, raw in enumerate(rows):
        row_number = index + 2
        try:
            if not isinstance(raw, dict):
                raise ImportRowError(row_number, "Row must be an object")
            parsed = parse_row(row_number, raw, locations)
            detail_id = run_in_transaction(lambda: _write_row(parsed))
        except ImportRowError as e:
            _record_failure(result, e)
            continue
        except (ConflictError, IntegrationError, NotFoundError, ValidationError) as e:
            _record_failure(result, ImportRowError(row_number, str(e)))
            continue

        result.success_count += 1
        result.created_ids.append(detail_id)

    current_app.logger.info(
        "import.completed rows=%s success=%s errors=%s", len(rows), result.success_count, result.error_count
    )
    return result


def _record_failure(result: ImportResult, error: ImportRowError) -> None:
    result.error_count += 1
    result.errors.append(str(error))
    current_app.logger.warning("import.row_rejected row=%s reason=%s", error.row_number, error.detail)
