# Overview: Flask API routes for volunteer sessions; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..errors import ValidationError, http_status_for, error_body
from ..validation import RequestSchema
from rainbow_room.time_utils import parse_iso_date
from ..services import volunteer_service


volunteers_bp = Blueprint("volunteers", __name__, url_prefix="/api/volunteers")

START_SESSION_SCHEMA = RequestSchema(
    required={"location_id": "int", "volunteer_name": "str"},
    optional={"tasks_performed": "str"},
)

END_SESSION_SCHEMA = RequestSchema(
    required={},
    optional={"end_time": "str", "notes": "str"},
)


def _failure(e: Exception, action: str):
    if isinstance(e, ValueError):
        return jsonify(error_body(e)), http_status_for(e)
    current_app.logger.exception("Failed to %s", action)
    return jsonify({"error": "Internal server error"}), 500


def _date_range():
    try:
        return parse_iso_date(request.args.get("start")), parse_iso_date(request.args.get("end"))
    except ValueError:
        raise ValidationError("start/end must be YYYY-MM-DD")


@volunteers_bp.get("/sessions")
def list_sessions_route():
    """Filters: location_id, name (substring), start/end (session date, inclusive), limit."""
    try:
        start, end = _date_range()
        sessions = volunteer_service.list_sessions(
            location_id=request.args.get("location_id", type=int),
            volunteer_name=request.args.get("name"),
            start=start,
            end=end,
            limit=request.args.get("limit", type=int),
        )
        return jsonify({"sessions": [s.to_dict() for s in sessions]}), 200
    except ValueError as e:
        return jsonify(error_body(e)), http_status_for(e)


@volunteers_bp.post("/sessions")
def create_session_route():
    payload = request.get_json(silent=True) or {}
    try:
        session = volunteer_service.create_session(payload)
        return jsonify({"session": session.to_dict()}), 201
    except Exception as e:
        return _failure(e, "create volunteer session")


@volunteers_bp.post("/sessions/start")
def start_session_route():
    """Clock-in: today's session starting now, open until /end."""
    try:
        data = START_SESSION_SCHEMA.validate(request.get_json(silent=True))
        session = volunteer_service.start_session(
            location_id=data["location_id"],
            volunteer_name=data["volunteer_name"],
            tasks_performed=data.get("tasks_performed"),
        )
        return jsonify({"session": session.to_dict()}), 201
    except Exception as e:
        return _failure(e, "start volunteer session")


@volunteers_bp.get("/sessions/active")
def list_active_sessions_route():
    sessions = volunteer_service.list_active_sessions(location_id=request.args.get("location_id", type=int))
    return jsonify({"sessions": [s.to_dict() for s in sessions]}), 200


@volunteers_bp.get("/sessions/stats")
def session_stats_route():
    try:
        start, end = _date_range()
        stats = volunteer_service.volunteer_stats(
            location_id=request.args.get("location_id", type=int),
            start=start,
            end=end,
        )
        return jsonify(stats), 200
    except ValueError as e:
        return jsonify(error_body(e)), http_status_for(e)


@volunteers_bp.get("/sessions/<int:session_id>")
def get_session_route(session_id: int):
    try:
        session = volunteer_service.get_session(session_id)
        return jsonify({"session": session.to_dict()}), 200
    except ValueError as e:
        return jsonify(error_body(e)), http_status_for(e)


@volunteers_bp.put("/sessions/<int:session_id>")
def update_session_route(session_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        session = volunteer_service.update_session(session_id, payload)
        return jsonify({"session": session.to_dict()}), 200
    except Exception as e:
        return _failure(e, "update volunteer session")


@volunteers_bp.post("/sessions/<int:session_id>/end")
def end_session_route(session_id: int):
    try:
        data = END_SESSION_SCHEMA.validate(request.get_json(silent=True))
        session = volunteer_service.end_session(
            session_id,
            end_time=data.get("end_time"),
            notes=data.get("notes"),
        )
        return jsonify({"session": session.to_dict()}), 200
    except Exception as e:
        return _failure(e, "end volunteer session")


@volunteers_bp.delete("/sessions/<int:session_id>")
def delete_session_route(session_id: int):
    try:
        volunteer_service.delete_session(session_id)
        return jsonify({"deleted": True}), 200
    except Exception as e:
        return _failure(e, "delete volunteer session")
