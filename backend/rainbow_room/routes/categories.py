# Overview: Flask API routes for categories and sizes; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..errors import http_status_for, error_body
from ..services import category_service


categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")
sizes_bp = Blueprint("sizes", __name__, url_prefix="/api/sizes")


def _failure(e: Exception, action: str):
    if isinstance(e, ValueError):
        return jsonify(error_body(e)), http_status_for(e)
    current_app.logger.exception("Failed to %s", action)
    return jsonify({"error": "Internal server error"}), 500


@categories_bp.get("")
def list_categories_route():
    """Categories by name, each with total_quantity (active item details)."""
    return jsonify({"categories": category_service.list_categories(with_totals=True)}), 200


@categories_bp.post("")
def create_category_route():
    payload = request.get_json(silent=True) or {}
    try:
        category = category_service.create_category(payload)
        return jsonify({"category": category.to_dict(total_quantity=0)}), 201
    except Exception as e:
        return _failure(e, "create category")


@categories_bp.get("/<int:category_id>")
def get_category_route(category_id: int):
    try:
        category = category_service.get_category(category_id)
        total = category_service.category_total(category_id)
        return jsonify({"category": category.to_dict(total_quantity=total)}), 200
    except ValueError as e:
        return jsonify(error_body(e)), http_status_for(e)


@categories_bp.put("/<int:category_id>")
def update_category_route(category_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        category = category_service.update_category(category_id, payload)
        return jsonify({"category": category.to_dict()}), 200
    except Exception as e:
        return _failure(e, "update category")


@categories_bp.delete("/<int:category_id>")
def delete_category_route(category_id: int):
    try:
        category_service.delete_category(category_id)
        return jsonify({"deleted": True}), 200
    except Exception as e:
        return _failure(e, "delete category")


@categories_bp.get("/<int:category_id>/sizes")
def list_category_sizes_route(category_id: int):
    try:
        sizes = category_service.list_sizes_for_category(category_id)
        return jsonify({"sizes": [s.to_dict() for s in sizes]}), 200
    except ValueError as e:
        return jsonify(error_body(e)), http_status_for(e)


@categories_bp.post("/<int:category_id>/sizes/<int:size_id>")
def add_category_size_route(category_id: int, size_id: int):
    """Idempotent: re-adding an existing pair answers 200 with created=false."""
    try:
        created = category_service.add_size_to_category(category_id, size_id)
        return jsonify({"created": created}), 201 if created else 200
    except Exception as e:
        return _failure(e, "add size to category")


@categories_bp.delete("/<int:category_id>/sizes/<int:size_id>")
def remove_category_size_route(category_id: int, size_id: int):
    try:
        category_service.remove_size_from_category(category_id, size_id)
        return jsonify({"deleted": True}), 200
    except Exception as e:
        return _failure(e, "remove size from category")


@sizes_bp.get("")
def list_sizes_route():
    return jsonify({"sizes": [s.to_dict() for s in category_service.list_sizes()]}), 200


@sizes_bp.post("")
def create_size_route():
    payload = request.get_json(silent=True) or {}
    try:
        size = category_service.create_size(payload.get("name"))
        return jsonify({"size": size.to_dict()}), 201
    except Exception as e:
        return _failure(e, "create size")
