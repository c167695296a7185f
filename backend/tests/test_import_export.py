"""
Bulk import (best-effort per row) and export round-trip tests.
"""

import csv
import io

import pytest
from openpyxl import Workbook, load_workbook

from rainbow_room.extensions import db
from rainbow_room.errors import ValidationError
from rainbow_room.models import ItemDetail, Category, Size, CategorySize
from rainbow_room.services import import_service, export_service


HEADER = "categoryName,sizeName,condition,location,receivedDate,donorInfo,approxPrice,isActive\n"


def _csv(*lines):
    return (HEADER + "".join(line + "\n" for line in lines)).encode("utf-8")


def test_partial_success_counts_and_row_numbers(locations):
    data = _csv(
        "Shirts,S,New,McKinney,2026-01-05,Church drive,4.50,Yes",
        "Shirts,M,Gently Used,Plano,2026-01-05,,,",
        "Shirts,S,New,McKinney,01/05/2026,,,Yes",
        "Shoes,None,Heavily Used,McKinney,2026-01-06,,,No",
        "Shoes,7,Torn,McKinney,2026-01-06,,,Yes",
        "Jackets,,New,Plano,2026-01-07,,12,true",
        "Jackets,L,New,Plano,2026-01-07,,,1",
    )
    rows = import_service.read_rows("batch.csv", data)
    result = import_service.import_item_details(rows)

    assert result.success_count == 5
    assert result.error_count == 2
    assert result.errors[0].startswith("[Row 4]")
    assert "YYYY-MM-DD" in result.errors[0]
    assert result.errors[1].startswith("[Row 6]")
    assert "Invalid condition" in result.errors[1]
    assert db.session.query(ItemDetail).count() == 5
    assert result.to_dict() == {"successCount": 5, "errorCount": 2, "errors": result.errors}


def test_categories_sizes_and_associations_are_created_once(locations):
    data = _csv(
        "Shirts,S,New,McKinney,2026-01-05,,,",
        "Shirts,S,New,Plano,2026-01-05,,,",
    )
    import_service.import_item_details(import_service.read_rows("a.csv", data))

    assert db.session.query(Category).filter_by(name="Shirts").count() == 1
    assert db.session.query(Size).filter_by(name="S").count() == 1
    assert db.session.query(CategorySize).count() == 1


def test_inactive_flag_and_defaults(locations):
    data = _csv("Shoes,None,,McKinney,2026-01-06,,,No")
    result = import_service.import_item_details(import_service.read_rows("a.csv", data))
    detail = db.session.query(ItemDetail).filter_by(id=result.created_ids[0]).one()

    assert detail.is_active is False
    assert detail.deactivated_at is not None
    assert detail.condition == "New"
    assert detail.size_id is None
    assert detail.qr_code_value.startswith("item-")


def test_unknown_location_fails_only_that_row(locations):
    data = _csv(
        "Shirts,S,New,Dallas,2026-01-05,,,",
        "Shirts,S,New,Plano,2026-01-05,,,",
    )
    result = import_service.import_item_details(import_service.read_rows("a.csv", data))
    assert (result.success_count, result.error_count) == (1, 1)
    assert "Unknown location 'Dallas'" in result.errors[0]


def test_xlsx_upload_reads_first_sheet(locations):
    wb = Workbook()
    ws = wb.active
    ws.append(["categoryName", "sizeName", "condition", "location", "receivedDate"])
    ws.append(["Hats", "One Size", "New", "Plano", "2026-02-01"])
    buf = io.BytesIO()
    wb.save(buf)

    rows = import_service.read_rows("upload.xlsx", buf.getvalue())
    result = import_service.import_item_details(rows)
    assert result.success_count == 1


def test_unsupported_or_empty_files_are_rejected():
    with pytest.raises(ValidationError):
        import_service.read_rows("notes.pdf", b"%PDF")
    with pytest.raises(ValidationError):
        import_service.read_rows("empty.csv", HEADER.encode("utf-8"))


def test_corrupt_excel_file_is_rejected():
    with pytest.raises(ValidationError, match="Could not read the Excel file"):
        import_service.read_rows("bad.xlsx", b"not a zip at all")


def test_csv_export_can_be_reimported(locations):
    import_service.import_item_details(import_service.read_rows("a.csv", _csv(
        "Shirts,S,New,McKinney,2026-01-05,Drive,3.0,Yes",
        "Shoes,None,Gently Used,Plano,2026-01-06,,,No",
    )))

    content, mimetype, filename = export_service.export_inventory("csv")
    assert mimetype == "text/csv"
    assert filename.startswith("inventory-export-") and filename.endswith(".csv")

    exported = list(csv.DictReader(io.StringIO(content.decode("utf-8"))))
    assert len(exported) == 2
    assert {r["isActive"] for r in exported} == {"Yes", "No"}

    result = import_service.import_item_details(import_service.read_rows("export.csv", content))
    assert result.error_count == 0
    assert db.session.query(ItemDetail).count() == 4


def test_formula_like_cells_are_quoted_in_delimited_exports(locations):
    import_service.import_item_details(import_service.read_rows("a.csv", _csv(
        "Shirts,S,New,McKinney,2026-01-05,=HYPERLINK(1),,",
        "@Hats,,New,Plano,2026-01-05,-Church,,",
    )))

    content, _, _ = export_service.export_inventory("csv")
    exported = {r["categoryName"]: r for r in csv.DictReader(io.StringIO(content.decode("utf-8")))}
    assert exported["Shirts"]["donorInfo"] == "'=HYPERLINK(1)"
    assert exported["'@Hats"]["donorInfo"] == "'-Church"

    txt, _, _ = export_service.export_inventory("txt")
    assert "'=HYPERLINK(1)" in txt.decode("utf-8")

    import_service.import_item_details(import_service.read_rows("export.csv", content))
    donors = [d.donor_info for d in db.session.query(ItemDetail).order_by(ItemDetail.id)]
    assert donors[2:] == ["=HYPERLINK(1)", "-Church"]
    assert db.session.query(Category).filter_by(name="@Hats").count() == 1


def test_xlsx_export_has_inventory_and_category_sheets(locations):
    import_service.import_item_details(import_service.read_rows("a.csv", _csv(
        "Shirts,S,New,McKinney,2026-01-05,,,",
    )))
    content, _, _ = export_service.export_inventory("xlsx")

    wb = load_workbook(io.BytesIO(content))
    assert wb.sheetnames == ["Inventory", "Categories"]
    assert wb["Inventory"].max_row == 2
    assert wb["Categories"]["B2"].value == "Shirts"


def test_txt_export_is_tab_separated(locations):
    content, mimetype, _ = export_service.export_inventory("txt")
    assert mimetype == "text/plain"
    assert content.decode("utf-8").splitlines()[0].split("\t")[0] == "itemId"


def test_unknown_export_format():
    with pytest.raises(ValidationError):
        export_service.export_inventory("pdf")
