# Overview: Flask API routes for location operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..models import Location
from ..errors import http_status_for, error_body
from ..validation import ModelValidationPolicy, validate_payload
from ..services import location_service


locations_bp = Blueprint("locations", __name__, url_prefix="/api/locations")

LOCATION_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "address", "city", "state"},
    required_on_create={"name"},
)

LOCATION_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "address", "city", "state", "is_active"},
)


@locations_bp.get("")
def list_locations_route():
    """Active locations only unless ?include_inactive=true."""
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    locations = location_service.list_locations(include_inactive=include_inactive)
    return jsonify({"locations": [loc.to_dict() for loc in locations]}), 200


@locations_bp.post("")
def create_location_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Location, payload=payload, policy=LOCATION_CREATE_POLICY, partial=False)
        location = location_service.create_location(**patch)
        return jsonify({"location": location.to_dict()}), 201
    except ValueError as e:
        return jsonify(error_body(e)), http_status_for(e)
    except Exception:
        current_app.logger.exception("Failed to create location")
        return jsonify({"error": "Internal server error"}), 500


@locations_bp.get("/<int:location_id>")
def get_location_route(location_id: int):
    try:
        location = location_service.get_location(location_id)
        return jsonify({"location": location.to_dict()}), 200
    except ValueError as e:
        return jsonify(error_body(e)), http_status_for(e)


@locations_bp.put("/<int:location_id>")
def update_location_route(location_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Location, payload=payload, policy=LOCATION_UPDATE_POLICY, partial=True)
        location = location_service.update_location(location_id, patch)
        return jsonify({"location": location.to_dict()}), 200
    except ValueError as e:
        return jsonify(error_body(e)), http_status_for(e)
    except Exception:
        current_app.logger.exception("Failed to update location")
        return jsonify({"error": "Internal server error"}), 500


@locations_bp.post("/<int:location_id>/toggle")
def toggle_location_route(location_id: int):
    try:
        location = location_service.toggle_location(location_id)
        return jsonify({"location": location.to_dict()}), 200
    except ValueError as e:
        return jsonify(error_body(e)), http_status_for(e)
    except Exception:
        current_app.logger.exception("Failed to toggle location")
        return jsonify({"error": "Internal server error"}), 500
