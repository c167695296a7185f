# Overview: Flask API routes for items and stock rows; parses input and returns JSON responses.

# backend/rainbow_room/routes/items.py
"""
Item master and Stock Ledger routes.

Stock mutations address a stock row by its id (ItemSize.id):
- PUT  /sizes/<row>/quantity   absolute set (logged as MANUAL_ADJUSTMENT of new - old)
- POST /sizes/<row>/adjust     relative correction
- POST /sizes/<row>/add        donation intake (ADDITION)
- POST /sizes/<row>/transfer   move quantity to another location

Time semantics:
- occurred_at accepts ISO-8601 with Z/offsets; stored UTC-naive.
"""

from flask import Blueprint, request, jsonify, current_app

from ..errors import ValidationError, http_status_for, error_body
from ..models import TRANSACTION_TYPES
from ..validation import RequestSchema, require_positive
from rainbow_room.time_utils import parse_iso_datetime
from ..services import item_service, inventory_service


items_bp = Blueprint("items", __name__, url_prefix="/api/items")

SET_QUANTITY_SCHEMA = RequestSchema(
    required={"quantity": "int"},
    optional={"actor_name": "str", "reason": "str", "occurred_at": "str"},
)

ADJUST_SCHEMA = RequestSchema(
    required={"quantity_delta": "int"},
    optional={"admin_name": "str", "reason": "str", "occurred_at": "str"},
)

ADD_STOCK_SCHEMA = RequestSchema(
    required={"quantity": "int"},
    optional={"volunteer_name": "str", "source": "str", "notes": "str", "occurred_at": "str"},
)

TRANSFER_SCHEMA = RequestSchema(
    required={"to_location_id": "int", "quantity": "int"},
    optional={"actor_name": "str", "notes": "str", "occurred_at": "str"},
)


def _failure(e: Exception, action: str):
    if isinstance(e, ValueError):
        return jsonify(error_body(e)), http_status_for(e)
    current_app.logger.exception("Failed to %s", action)
    return jsonify({"error": "Internal server error"}), 500


@items_bp.get("")
def list_items_route():
    """Items with total_quantity; ?location_id= restricts totals to one location, ?q= filters by name."""
    location_id = request.args.get("location_id", type=int)
    search = request.args.get("q")
    items = item_service.list_items(location_id=location_id, search=search)
    return jsonify({"items": items}), 200


@items_bp.post("")
def create_item_route():
    """
    Request body:
    {
        "name": str,
        "has_sizes": bool (optional),
        "sizes": [str] (required when has_sizes),
        "description", "storage_location", "min_stock_level", "unit_type" (optional)
    }
    """
    payload = dict(request.get_json(silent=True) or {})
    sizes = payload.pop("sizes", None)
    try:
        item = item_service.create_item(payload, sizes=sizes)
        rows = item_service.list_item_sizes(item.id)
        return jsonify({"item": item.to_dict(), "sizes": [r.to_dict() for r in rows]}), 201
    except Exception as e:
        return _failure(e, "create item")


@items_bp.get("/<int:item_id>")
def get_item_route(item_id: int):
    location_id = request.args.get("location_id", type=int)
    try:
        item = item_service.get_item(item_id)
        data = item.to_dict()
        data["total_quantity"] = item_service.get_total_quantity(item_id, location_id)
        return jsonify({"item": data}), 200
    except ValueError as e:
        return jsonify(error_body(e)), http_status_for(e)


@items_bp.put("/<int:item_id>")
def update_item_route(item_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        item = item_service.update_item(item_id, payload)
        return jsonify({"item": item.to_dict()}), 200
    except Exception as e:
        return _failure(e, "update item")


@items_bp.get("/code/<code>")
def get_item_by_code_route(code: str):
    try:
        item = item_service.get_item_by_code(code)
        return jsonify({"item": item.to_dict()}), 200
    except ValueError as e:
        return jsonify(error_body(e)), http_status_for(e)


@items_bp.get("/<int:item_id>/sizes")
def list_item_sizes_route(item_id: int):
    location_id = request.args.get("location_id", type=int)
    try:
        rows = item_service.list_item_sizes(item_id, location_id=location_id)
        return jsonify({"sizes": [r.to_dict() for r in rows]}), 200
    except ValueError as e:
        return jsonify(error_body(e)), http_status_for(e)


@items_bp.put("/sizes/<int:size_row_id>/quantity")
def set_quantity_route(size_row_id: int):
    try:
        data = SET_QUANTITY_SCHEMA.validate(request.get_json(silent=True))
        row, entry = inventory_service.set_quantity(
            size_row_id,
            data["quantity"],
            actor_name=data.get("actor_name"),
            reason=data.get("reason"),
            occurred_at=data.get("occurred_at"),
        )
        return jsonify({
            "size": row.to_dict(),
            "transaction": entry.to_dict() if entry is not None else None,
        }), 200
    except Exception as e:
        return _failure(e, "set quantity")


@items_bp.post("/sizes/<int:size_row_id>/adjust")
def adjust_quantity_route(size_row_id: int):
    try:
        data = ADJUST_SCHEMA.validate(request.get_json(silent=True))
        row, entry = inventory_service.adjust_quantity(
            size_row_id,
            data["quantity_delta"],
            admin_name=data.get("admin_name"),
            reason=data.get("reason"),
            occurred_at=data.get("occurred_at"),
        )
        return jsonify({"size": row.to_dict(), "transaction": entry.to_dict()}), 201
    except Exception as e:
        return _failure(e, "adjust quantity")


@items_bp.post("/sizes/<int:size_row_id>/add")
def add_stock_route(size_row_id: int):
    try:
        data = ADD_STOCK_SCHEMA.validate(request.get_json(silent=True))
        require_positive("quantity", data["quantity"])
        row, entry = inventory_service.add_stock(
            size_row_id,
            data["quantity"],
            volunteer_name=data.get("volunteer_name"),
            source=data.get("source"),
            notes=data.get("notes"),
            occurred_at=data.get("occurred_at"),
        )
        return jsonify({"size": row.to_dict(), "transaction": entry.to_dict()}), 201
    except Exception as e:
        return _failure(e, "add stock")


@items_bp.post("/sizes/<int:size_row_id>/transfer")
def transfer_stock_route(size_row_id: int):
    try:
        data = TRANSFER_SCHEMA.validate(request.get_json(silent=True))
        require_positive("quantity", data["quantity"])
        result = inventory_service.transfer_stock(
            size_row_id,
            data["to_location_id"],
            data["quantity"],
            actor_name=data.get("actor_name"),
            notes=data.get("notes"),
            occurred_at=data.get("occurred_at"),
        )
        return jsonify({
            "source": result["source"].to_dict(),
            "destination": result["destination"].to_dict(),
            "transfer_out": result["transfer_out"].to_dict(),
            "transfer_in": result["transfer_in"].to_dict(),
            "transfer_group": result["transfer_group"],
        }), 201
    except Exception as e:
        return _failure(e, "transfer stock")


@items_bp.get("/<int:item_id>/transactions")
def list_item_transactions_route(item_id: int):
    """
    Query params: size_id, location_id, type, start, end (ISO-8601), limit, offset.
    start is inclusive, end exclusive.
    """
    try:
        item_service.get_item(item_id)
        tx_type = request.args.get("type")
        if tx_type is not None and tx_type not in TRANSACTION_TYPES:
            raise ValidationError(f"type must be one of: {', '.join(TRANSACTION_TYPES)}")
        try:
            start = parse_iso_datetime(request.args.get("start"))
            end = parse_iso_datetime(request.args.get("end"))
        except ValueError:
            raise ValidationError("start/end must be ISO-8601 datetimes")

        limit = min(request.args.get("limit", 200, type=int), 1000)
        entries = inventory_service.list_transactions(
            item_id=item_id,
            size_row_id=request.args.get("size_id", type=int),
            location_id=request.args.get("location_id", type=int),
            tx_type=tx_type,
            start=start,
            end=end,
            limit=limit,
            offset=request.args.get("offset", 0, type=int),
        )
        return jsonify({"transactions": [t.to_dict() for t in entries]}), 200
    except Exception as e:
        return _failure(e, "list transactions")
