# Overview: Flask API routes for ledger inspection; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify

from ..errors import http_status_for, error_body
from ..services import inventory_service


ledger_bp = Blueprint("ledger", __name__, url_prefix="/api/ledger")


@ledger_bp.get("/reconcile")
def reconcile_route():
    """
    Compare each stock row's current_quantity with the sum of its log deltas.

    ?size_id= checks a single row. mismatch_count is 0 on a healthy ledger.
    """
    try:
        report = inventory_service.reconcile(request.args.get("size_id", type=int))
        return jsonify(report), 200
    except ValueError as e:
        return jsonify(error_body(e)), http_status_for(e)
