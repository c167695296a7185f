# Overview: Service-layer operations for bulk export; builds CSV, XLSX and TXT files from one dataset.

from __future__ import annotations

import csv
import io

from flask import current_app

from ..extensions import db
from ..models import Category, ItemDetail
from ..errors import ValidationError
from rainbow_room.time_utils import utcnow, to_iso_date


EXPORT_FORMATS = ("csv", "xlsx", "txt")

DETAIL_COLUMNS = (
    "itemId",
    "categoryId",
    "categoryName",
    "sizeName",
    "condition",
    "location",
    "receivedDate",
    "donorInfo",
    "approxPrice",
    "isActive",
)

CATEGORY_COLUMNS = ("id", "name", "description", "lowStockThreshold", "qrCodeValue")

# Spreadsheet apps evaluate text cells starting with these as formulas
FORMULA_PREFIXES = ("=", "+", "-", "@")

MIMETYPES = {
    "csv": "text/csv",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "txt": "text/plain",
}


def build_dataset() -> dict:
    """
    All categories plus every item detail (active and inactive), with
    category / size / location names joined in.
    """
    categories = db.session.query(Category).order_by(Category.name.asc()).all()
    details = (
        db.session.query(ItemDetail)
        .order_by(ItemDetail.category_id.asc(), ItemDetail.received_date.desc(), ItemDetail.id.asc())
        .all()
    )

    detail_rows = [
        {
            "itemId": d.id,
            "categoryId": d.category_id,
            "categoryName": d.category.name if d.category else "",
            "sizeName": d.size.name if d.size else "None",
            "condition": d.condition,
            "location": d.location.name if d.location else "",
            "receivedDate": to_iso_date(d.received_date),
            "donorInfo": d.donor_info or "",
            "approxPrice": d.approx_price if d.approx_price is not None else "",
            "isActive": "Yes" if d.is_active else "No",
        }
        for d in details
    ]
    category_rows = [
        {
            "id": c.id,
            "name": c.name,
            "description": c.description or "",
            "lowStockThreshold": c.low_stock_threshold,
            "qrCodeValue": c.qr_code_value or "",
        }
        for c in categories
    ]
    return {"details": detail_rows, "categories": category_rows}


def _safe_cell(value):
    if isinstance(value, str) and value.startswith(FORMULA_PREFIXES):
        return "'" + value
    return value


def _delimited(rows: list[dict], columns, delimiter: str) -> bytes:
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=list(columns), delimiter=delimiter, lineterminator="\n")
    writer.writeheader()
    writer.writerows({k: _safe_cell(v) for k, v in row.items()} for row in rows)
    return buf.getvalue().encode("utf-8")


def _xlsx(dataset: dict) -> bytes:
    from openpyxl import Workbook

    wb = Workbook()
    inventory = wb.active
    inventory.title = "Inventory"
    inventory.append(list(DETAIL_COLUMNS))
    for row in dataset["details"]:
        inventory.append([row[c] for c in DETAIL_COLUMNS])

    categories = wb.create_sheet("Categories")
    categories.append(list(CATEGORY_COLUMNS))
    for row in dataset["categories"]:
        categories.append([row[c] for c in CATEGORY_COLUMNS])

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def export_inventory(fmt: str) -> tuple[bytes, str, str]:
    """Returns (content, mimetype, download filename)."""
    fmt = (fmt or "").strip().lower()
    if fmt not in EXPORT_FORMATS:
        raise ValidationError(f"format must be one of: {', '.join(EXPORT_FORMATS)}")

    dataset = build_dataset()
    if fmt == "csv":
        content = _delimited(dataset["details"], DETAIL_COLUMNS, ",")
    elif fmt == "txt":
        content = _delimited(dataset["details"], DETAIL_COLUMNS, "\t")
    else:
        content = _xlsx(dataset)

    prefix = current_app.config.get("EXPORT_FILENAME_PREFIX", "inventory-export")
    stamp = utcnow().strftime("%Y-%m-%dT%H-%M-%S")
    filename = f"{prefix}-{stamp}.{fmt}"
    current_app.logger.info("export.generated format=%s rows=%s", fmt, len(dataset["details"]))
    return content, MIMETYPES[fmt], filename
