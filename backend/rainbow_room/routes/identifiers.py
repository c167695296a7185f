# Overview: Flask API routes for scanned-code lookup; parses input and returns JSON responses.

from flask import Blueprint, jsonify, current_app

from ..errors import DuplicateKeyError, http_status_for, error_body
from ..services import identifier_service


identifiers_bp = Blueprint("identifiers", __name__, url_prefix="/api/lookup")


@identifiers_bp.get("/<path:value>")
def lookup_code_route(value: str):
    """
    Resolve a QR value to the entity it labels.

    Returns {"entity_type": "item|category|item_detail", "data": {...}}.
    """
    try:
        entity_type, entity = identifier_service.lookup_by_code(value)
        return jsonify({"entity_type": entity_type, "data": entity.to_dict()}), 200
    except DuplicateKeyError as e:
        return jsonify({"error": str(e), "ambiguous": True}), 409
    except ValueError as e:
        return jsonify(error_body(e)), http_status_for(e)
    except Exception:
        current_app.logger.exception("Failed to lookup code")
        return jsonify({"error": "Internal server error"}), 500
