# Overview: Flask API routes for item details; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..errors import http_status_for, error_body
from ..services import detail_service


details_bp = Blueprint("details", __name__, url_prefix="/api/details")


@details_bp.get("")
def list_details_route():
    """Filters: category_id, location_id, active=true|false, limit, offset."""
    active = request.args.get("active")
    is_active = None if active is None else active.lower() == "true"
    details = detail_service.list_details(
        category_id=request.args.get("category_id", type=int),
        location_id=request.args.get("location_id", type=int),
        is_active=is_active,
        limit=min(request.args.get("limit", 500, type=int), 1000),
        offset=request.args.get("offset", 0, type=int),
    )
    return jsonify({"details": [d.to_dict() for d in details]}), 200


@details_bp.post("")
def create_detail_route():
    payload = request.get_json(silent=True) or {}
    try:
        detail = detail_service.create_detail(payload)
        return jsonify({"detail": detail.to_dict()}), 201
    except ValueError as e:
        return jsonify(error_body(e)), http_status_for(e)
    except Exception:
        current_app.logger.exception("Failed to create item detail")
        return jsonify({"error": "Internal server error"}), 500


@details_bp.get("/<int:detail_id>")
def get_detail_route(detail_id: int):
    try:
        detail = detail_service.get_detail(detail_id)
        return jsonify({"detail": detail.to_dict()}), 200
    except ValueError as e:
        return jsonify(error_body(e)), http_status_for(e)


@details_bp.put("/<int:detail_id>")
def update_detail_route(detail_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        detail = detail_service.update_detail(detail_id, payload)
        return jsonify({"detail": detail.to_dict()}), 200
    except ValueError as e:
        return jsonify(error_body(e)), http_status_for(e)
    except Exception:
        current_app.logger.exception("Failed to update item detail")
        return jsonify({"error": "Internal server error"}), 500


@details_bp.post("/<int:detail_id>/deactivate")
def deactivate_detail_route(detail_id: int):
    try:
        detail = detail_service.deactivate_detail(detail_id)
        return jsonify({"detail": detail.to_dict()}), 200
    except ValueError as e:
        return jsonify(error_body(e)), http_status_for(e)
    except Exception:
        current_app.logger.exception("Failed to deactivate item detail")
        return jsonify({"error": "Internal server error"}), 500
