# Overview: Flask API routes for checkouts; parses input and returns JSON responses.

# backend/rainbow_room/routes/checkouts.py
"""
Checkout routes.

POST body: the case-file fields plus
{
    "location_id": int,
    "items": [{"item_id": int, "size_id": int (stock row id, optional for unsized items), "quantity": int}]
}

Answers 201 with the committed checkout, 400 on a form error, 404 on an
unknown item/location, 409 when any line lacks stock. On any failure nothing
was written.
"""

from flask import Blueprint, request, jsonify, current_app

from ..errors import ValidationError, http_status_for, error_body
from rainbow_room.time_utils import parse_iso_date
from ..services import checkout_service


checkouts_bp = Blueprint("checkouts", __name__, url_prefix="/api/checkouts")


@checkouts_bp.post("")
def create_checkout_route():
    payload = request.get_json(silent=True)
    try:
        checkout = checkout_service.create_checkout_from_payload(payload)
        return jsonify({"checkout": checkout.to_dict(include_lines=True)}), 201
    except ValueError as e:
        return jsonify(error_body(e)), http_status_for(e)
    except Exception:
        current_app.logger.exception("Failed to commit checkout")
        return jsonify({"error": "Internal server error"}), 500


@checkouts_bp.get("")
def list_checkouts_route():
    try:
        try:
            start = parse_iso_date(request.args.get("start"))
            end = parse_iso_date(request.args.get("end"))
        except ValueError:
            raise ValidationError("start/end must be YYYY-MM-DD")
        checkouts = checkout_service.list_checkouts(
            location_id=request.args.get("location_id", type=int),
            start=start,
            end=end,
            limit=min(request.args.get("limit", 50, type=int), 500),
            offset=request.args.get("offset", 0, type=int),
        )
        return jsonify({"checkouts": [c.to_dict() for c in checkouts]}), 200
    except ValueError as e:
        return jsonify(error_body(e)), http_status_for(e)


@checkouts_bp.get("/<int:checkout_id>")
def get_checkout_route(checkout_id: int):
    try:
        checkout = checkout_service.get_checkout(checkout_id)
        return jsonify({"checkout": checkout.to_dict(include_lines=True)}), 200
    except ValueError as e:
        return jsonify(error_body(e)), http_status_for(e)
