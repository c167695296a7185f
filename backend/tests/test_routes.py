"""
HTTP surface tests.

Verifies:
- Status codes for success, validation (400), not found (404) and conflicts (409)
- Stock routes write exactly one log entry per change
- Checkout commits are all-or-nothing over HTTP
- Import/export, scan lookup and reconciliation endpoints
"""

import io

import pytest

from rainbow_room.services import inventory_service


# =============================================================================
# SYSTEM
# =============================================================================


class TestSystem:
    def test_health(self, client, locations):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["status"] == "healthy"
        assert body["checks"]["database"]["details"]["locations"] == 2

    def test_cors_for_known_origin_only(self, client, locations):
        resp = client.get("/api/locations", headers={"Origin": "http://localhost:5173"})
        assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"

        resp = client.get("/api/locations", headers={"Origin": "http://evil.example"})
        assert "Access-Control-Allow-Origin" not in resp.headers


# =============================================================================
# ITEMS AND STOCK
# =============================================================================


class TestItemsAndStock:
    def test_create_item_creates_rows_per_location(self, client, locations):
        resp = client.post("/api/items", json={"name": "Onesies", "has_sizes": True, "sizes": ["NB", "0-3M"]})
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["item"]["code"].startswith("RR-")
        assert len(body["sizes"]) == 4
        assert {s["current_quantity"] for s in body["sizes"]} == {0}

    def test_create_item_rejects_unknown_field(self, client, locations):
        resp = client.post("/api/items", json={"name": "Hats", "price": 3})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Field not allowed: price"

    def test_unknown_item_is_404(self, client, locations):
        assert client.get("/api/items/9999").status_code == 404

    def test_add_then_adjust(self, client, pants_4t):
        resp = client.post(f"/api/items/sizes/{pants_4t.id}/add", json={"quantity": 5, "volunteer_name": "Lee"})
        assert resp.status_code == 201
        assert resp.get_json()["size"]["current_quantity"] == 15
        assert resp.get_json()["transaction"]["type"] == "ADDITION"

        resp = client.post(f"/api/items/sizes/{pants_4t.id}/adjust", json={"quantity_delta": -20})
        assert resp.status_code == 409
        body = resp.get_json()
        assert body["available"] == 15
        assert body["requested"] == 20

    def test_add_rejects_non_positive(self, client, pants_4t):
        resp = client.post(f"/api/items/sizes/{pants_4t.id}/add", json={"quantity": 0})
        assert resp.status_code == 400

    def test_set_quantity_noop_has_no_transaction(self, client, pants_4t):
        resp = client.put(f"/api/items/sizes/{pants_4t.id}/quantity", json={"quantity": 10})
        assert resp.status_code == 200
        assert resp.get_json()["transaction"] is None

        resp = client.put(f"/api/items/sizes/{pants_4t.id}/quantity", json={"quantity": 4})
        assert resp.get_json()["transaction"]["quantity_delta"] == -6

    def test_transfer(self, client, pants_4t, plano):
        resp = client.post(
            f"/api/items/sizes/{pants_4t.id}/transfer",
            json={"to_location_id": plano.id, "quantity": 4},
        )
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["source"]["current_quantity"] == 6
        assert body["destination"]["current_quantity"] == 4
        assert body["transfer_out"]["transfer_group"] == body["transfer_in"]["transfer_group"]

    def test_transaction_history_filters(self, client, pants_4t):
        inventory_service.adjust_quantity(pants_4t.id, -1, admin_name="Kim")
        resp = client.get(f"/api/items/{pants_4t.item_id}/transactions?type=MANUAL_ADJUSTMENT")
        assert resp.status_code == 200
        rows = resp.get_json()["transactions"]
        assert [r["quantity_delta"] for r in rows] == [-1]

        resp = client.get(f"/api/items/{pants_4t.item_id}/transactions?type=REFUND")
        assert resp.status_code == 400


# =============================================================================
# CHECKOUTS
# =============================================================================


class TestCheckouts:
    def _payload(self, case_file, location, row, quantity):
        return dict(
            case_file,
            location_id=location.id,
            items=[{"item_id": row.item_id, "size_id": row.id, "quantity": quantity}],
        )

    def test_commit(self, client, pants_4t, mckinney, case_file):
        resp = client.post("/api/checkouts", json=self._payload(case_file, mckinney, pants_4t, 3))
        assert resp.status_code == 201
        checkout = resp.get_json()["checkout"]
        assert checkout["total_items"] == 3
        assert checkout["items"][0]["quantity"] == 3
        assert inventory_service.get_size_row(pants_4t.id).current_quantity == 7

        resp = client.get(f"/api/checkouts/{checkout['id']}")
        assert resp.status_code == 200

    def test_insufficient_stock_is_409(self, client, pants_4t, mckinney, case_file):
        resp = client.post("/api/checkouts", json=self._payload(case_file, mckinney, pants_4t, 11))
        assert resp.status_code == 409
        assert resp.get_json()["size_row_id"] == pants_4t.id
        assert inventory_service.get_size_row(pants_4t.id).current_quantity == 10

    def test_form_error_is_400(self, client, pants_4t, mckinney, case_file):
        case_file["number_of_children"] = 9
        resp = client.post("/api/checkouts", json=self._payload(case_file, mckinney, pants_4t, 1))
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Number of children must be between 1 and 5"


# =============================================================================
# IMPORT / EXPORT / LOOKUP / LEDGER
# =============================================================================


class TestBulkAndLookup:
    def test_import_json_rows(self, client, locations):
        rows = [
            {"categoryName": "Shirts", "sizeName": "S", "condition": "New", "location": "Plano", "receivedDate": "2026-01-05"},
            {"categoryName": "Shirts", "sizeName": "S", "condition": "New", "location": "Plano", "receivedDate": "Jan 5"},
        ]
        resp = client.post("/api/import", json={"rows": rows})
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["successCount"] == 1
        assert body["errorCount"] == 1
        assert body["errors"][0].startswith("[Row 3]")

    def test_import_without_rows_is_400(self, client, locations):
        assert client.post("/api/import", json={}).status_code == 400

    def test_import_corrupt_excel_is_400(self, client, locations):
        resp = client.post(
            "/api/import",
            data={"file": (io.BytesIO(b"not a zip at all"), "bad.xlsx")},
            content_type="multipart/form-data",
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Could not read the Excel file"

    def test_export_download(self, client, locations):
        resp = client.get("/api/export?format=csv")
        assert resp.status_code == 200
        assert resp.mimetype == "text/csv"
        assert "attachment" in resp.headers["Content-Disposition"]

        assert client.get("/api/export?format=doc").status_code == 400

    def test_lookup(self, client, boys_pants):
        resp = client.get(f"/api/lookup/{boys_pants.code}")
        assert resp.status_code == 200
        assert resp.get_json()["entity_type"] == "item"
        assert resp.get_json()["data"]["id"] == boys_pants.id

        assert client.get("/api/lookup/item-nope").status_code == 404

    def test_reconcile_clean_ledger(self, client, pants_4t):
        resp = client.get("/api/ledger/reconcile")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["mismatch_count"] == 0
        assert body["checked"] == 4


# =============================================================================
# REPORTS AND VOLUNTEERS
# =============================================================================


class TestReportsAndVolunteers:
    @pytest.mark.parametrize(
        "path",
        [
            "/api/reports/current-inventory",
            "/api/reports/low-stock",
            "/api/reports/category-low-stock",
            "/api/reports/checkouts",
            "/api/reports/popular-items",
            "/api/reports/volunteer-hours",
            "/api/reports/daily-volunteers",
            "/api/reports/item-master",
            "/api/reports/monthly-summary",
        ],
    )
    def test_reports_answer(self, client, pants_4t, path):
        assert client.get(path).status_code == 200

    def test_bad_report_dates_are_400(self, client, locations):
        resp = client.get("/api/reports/checkouts?start=2026-02-01&end=2026-01-01")
        assert resp.status_code == 400

    def test_clock_in_and_out(self, client, mckinney):
        resp = client.post("/api/volunteers/sessions/start", json={"location_id": mckinney.id, "volunteer_name": "Ana"})
        assert resp.status_code == 201
        session = resp.get_json()["session"]
        assert session["is_active"] is True

        resp = client.get("/api/volunteers/sessions/active")
        assert [s["id"] for s in resp.get_json()["sessions"]] == [session["id"]]

        resp = client.post(f"/api/volunteers/sessions/{session['id']}/end", json={"end_time": "23:59"})
        assert resp.status_code == 200
        assert resp.get_json()["session"]["is_active"] is False
