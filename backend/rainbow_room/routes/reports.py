# Overview: Flask API routes for read-only reports; parses query parameters and returns JSON.

from flask import Blueprint, jsonify, request, current_app

from ..errors import http_status_for, error_body
from ..services import reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _run(report, **kwargs):
    try:
        return jsonify(report(**kwargs)), 200
    except ValueError as exc:
        return jsonify(error_body(exc)), http_status_for(exc)
    except Exception:
        current_app.logger.exception("Failed to build report %s", report.__name__)
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/current-inventory")
def current_inventory_report():
    return _run(reporting_service.current_inventory, location_id=request.args.get("location_id", type=int))


@reports_bp.get("/low-stock")
def low_stock_report():
    return _run(reporting_service.low_stock, location_id=request.args.get("location_id", type=int))


@reports_bp.get("/category-low-stock")
def category_low_stock_report():
    return _run(reporting_service.category_low_stock)


@reports_bp.get("/checkouts")
def checkout_report():
    return _run(
        reporting_service.checkout_report,
        start=request.args.get("start"),
        end=request.args.get("end"),
        location_id=request.args.get("location_id", type=int),
    )


@reports_bp.get("/popular-items")
def popular_items_report():
    return _run(
        reporting_service.popular_items,
        start=request.args.get("start"),
        end=request.args.get("end"),
        location_id=request.args.get("location_id", type=int),
        limit=request.args.get("limit", reporting_service.DEFAULT_POPULAR_LIMIT, type=int),
    )


@reports_bp.get("/transaction-history/<int:item_id>")
def transaction_history_report(item_id: int):
    return _run(
        reporting_service.transaction_history,
        item_id=item_id,
        start=request.args.get("start"),
        end=request.args.get("end"),
        location_id=request.args.get("location_id", type=int),
    )


@reports_bp.get("/monthly-movements")
def monthly_movements_report():
    return _run(
        reporting_service.monthly_movements,
        year=request.args.get("year"),
        month=request.args.get("month"),
        location_id=request.args.get("location_id", type=int),
    )


@reports_bp.get("/volunteer-hours")
def volunteer_hours_report():
    return _run(
        reporting_service.volunteer_hours,
        start=request.args.get("start"),
        end=request.args.get("end"),
        location_id=request.args.get("location_id", type=int),
    )


@reports_bp.get("/daily-volunteers")
def daily_volunteers_report():
    return _run(
        reporting_service.daily_volunteers,
        start=request.args.get("start"),
        end=request.args.get("end"),
        location_id=request.args.get("location_id", type=int),
    )


@reports_bp.get("/item-master")
def item_master_report():
    return _run(reporting_service.item_master)


@reports_bp.get("/monthly-summary")
def monthly_summary_report():
    return _run(
        reporting_service.monthly_summary,
        year=request.args.get("year", type=int),
        month=request.args.get("month", type=int),
    )
