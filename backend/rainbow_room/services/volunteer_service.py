# Overview: Service-layer operations for volunteer sessions; encapsulates business logic and database work.

from __future__ import annotations

from datetime import date

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import VolunteerSession, Location
from ..errors import ValidationError, NotFoundError
from rainbow_room.time_utils import utcnow, parse_iso_date, parse_clock_time, hours_between, to_iso_date
from .concurrency import lock_for_update, run_in_transaction


SESSION_FIELDS = {
    "location_id",
    "volunteer_name",
    "session_date",
    "start_time",
    "end_time",
    "hours_worked",
    "tasks_performed",
    "notes",
}

RECENT_VOLUNTEER_LIMIT = 10


def _clean(payload: dict, *, partial: bool) -> dict:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    for key in payload.keys():
        if key not in SESSION_FIELDS:
            raise ValidationError(f"Field not allowed: {key}")

    patch: dict = {}
    try:
        if "location_id" in payload or not partial:
            location_id = payload.get("location_id")
            if isinstance(location_id, bool) or not isinstance(location_id, int):
                raise ValidationError("location_id must be an integer")
            patch["location_id"] = location_id

        if "volunteer_name" in payload or not partial:
            name = str(payload.get("volunteer_name") or "").strip()
            if not name:
                raise ValidationError("Volunteer name is required")
            patch["volunteer_name"] = name

        if "session_date" in payload:
            patch["session_date"] = parse_iso_date(payload.get("session_date"))
        if "start_time" in payload or not partial:
            start = parse_clock_time(payload.get("start_time"))
            if start is None:
                raise ValidationError("Start time is required")
            patch["start_time"] = start
        if "end_time" in payload:
            patch["end_time"] = parse_clock_time(payload.get("end_time"))
    except ValueError as e:
        if isinstance(e, ValidationError):
            raise
        raise ValidationError(str(e))

    if "hours_worked" in payload and payload["hours_worked"] is not None:
        hours = payload["hours_worked"]
        if isinstance(hours, bool):
            raise ValidationError("hours_worked must be a number")
        try:
            hours = float(hours)
        except (TypeError, ValueError):
            raise ValidationError("hours_worked must be a number")
        if hours < 0 or hours > 24:
            raise ValidationError("hours_worked must be between 0 and 24")
        patch["hours_worked"] = round(hours, 2)
    elif "hours_worked" in payload:
        patch["hours_worked"] = None

    for key in ("tasks_performed", "notes"):
        if key in payload:
            value = payload.get(key)
            patch[key] = (str(value).strip() or None) if value is not None else None

    return patch


def _require_location(location_id: int) -> Location:
    location = db.session.query(Location).filter_by(id=location_id).first()
    if location is None:
        raise NotFoundError("Location not found")
    return location


def _recompute_hours(session: VolunteerSession, explicit: bool) -> None:
    # Explicit hours win; otherwise derive from start/end
    if explicit:
        return
    if session.start_time is not None and session.end_time is not None:
        session.hours_worked = hours_between(session.start_time, session.end_time)
    else:
        session.hours_worked = None


def create_session(payload: dict) -> VolunteerSession:
    patch = _clean(payload, partial=False)

    def _op():
        _require_location(patch["location_id"])
        session = VolunteerSession(
            location_id=patch["location_id"],
            volunteer_name=patch["volunteer_name"],
            session_date=patch.get("session_date") or utcnow().date(),
            start_time=patch["start_time"],
            end_time=patch.get("end_time"),
            hours_worked=patch.get("hours_worked"),
            tasks_performed=patch.get("tasks_performed"),
            notes=patch.get("notes"),
        )
        _recompute_hours(session, explicit=patch.get("hours_worked") is not None)
        db.session.add(session)
        db.session.flush()
        return session

    session = run_in_transaction(_op)
    current_app.logger.info("volunteer.session_created id=%s name=%s", session.id, session.volunteer_name)
    return session


def start_session(*, location_id: int, volunteer_name: str, tasks_performed: str | None = None) -> VolunteerSession:
    """Clock-in: a session for today starting now with no end time."""
    now = utcnow()
    return create_session({
        "location_id": location_id,
        "volunteer_name": volunteer_name,
        "session_date": now.date().isoformat(),
        "start_time": now.strftime("%H:%M"),
        "tasks_performed": tasks_performed,
    })


def get_session(session_id: int) -> VolunteerSession:
    session = db.session.query(VolunteerSession).filter_by(id=session_id).first()
    if session is None:
        raise NotFoundError("Volunteer session not found")
    return session


def update_session(session_id: int, payload: dict) -> VolunteerSession:
    patch = _clean(payload, partial=True)

    def _op():
        session = lock_for_update(db.session.query(VolunteerSession).filter_by(id=session_id)).first()
        if session is None:
            raise NotFoundError("Volunteer session not found")
        if "location_id" in patch:
            _require_location(patch["location_id"])
        if "session_date" in patch and patch["session_date"] is None:
            raise ValidationError("session_date cannot be null")
        for key, value in patch.items():
            setattr(session, key, value)
        if "start_time" in patch or "end_time" in patch:
            _recompute_hours(session, explicit=patch.get("hours_worked") is not None)
        db.session.flush()
        return session

    return run_in_transaction(_op)


def end_session(session_id: int, *, end_time: str | None = None, notes: str | None = None) -> VolunteerSession:
    """Clock-out. end_time defaults to now; hours are derived from start/end."""
    try:
        end = parse_clock_time(end_time) if end_time else utcnow().time().replace(second=0, microsecond=0)
    except ValueError as e:
        raise ValidationError(str(e))

    def _op():
        session = lock_for_update(db.session.query(VolunteerSession).filter_by(id=session_id)).first()
        if session is None:
            raise NotFoundError("Volunteer session not found")
        if not session.is_active:
            raise ValidationError("Volunteer session has already ended")
        session.end_time = end
        session.hours_worked = hours_between(session.start_time, end)
        if notes:
            session.notes = notes
        db.session.flush()
        return session

    session = run_in_transaction(_op)
    current_app.logger.info("volunteer.session_ended id=%s hours=%s", session.id, session.hours_worked)
    return session


def delete_session(session_id: int) -> None:
    def _op():
        session = db.session.query(VolunteerSession).filter_by(id=session_id).first()
        if session is None:
            raise NotFoundError("Volunteer session not found")
        db.session.delete(session)

    run_in_transaction(_op)


def _filtered(q, *, location_id=None, start: date | None = None, end: date | None = None):
    if location_id is not None:
        q = q.filter(VolunteerSession.location_id == location_id)
    if start is not None:
        q = q.filter(VolunteerSession.session_date >= start)
    if end is not None:
        q = q.filter(VolunteerSession.session_date <= end)
    return q


def list_sessions(
    *,
    location_id: int | None = None,
    volunteer_name: str | None = None,
    start: date | None = None,
    end: date | None = None,
    limit: int | None = None,
) -> list[VolunteerSession]:
    q = _filtered(db.session.query(VolunteerSession), location_id=location_id, start=start, end=end)
    if volunteer_name:
        q = q.filter(func.lower(VolunteerSession.volunteer_name).like(f"%{volunteer_name.strip().lower()}%"))
    q = q.order_by(VolunteerSession.session_date.desc(), VolunteerSession.start_time.desc(), VolunteerSession.id.desc())
    if limit:
        q = q.limit(limit)
    return q.all()


def list_active_sessions(*, location_id: int | None = None) -> list[VolunteerSession]:
    q = db.session.query(VolunteerSession).filter(VolunteerSession.end_time.is_(None))
    if location_id is not None:
        q = q.filter(VolunteerSession.location_id == location_id)
    return q.order_by(VolunteerSession.session_date.desc(), VolunteerSession.start_time.asc()).all()


def volunteer_stats(*, location_id: int | None = None, start: date | None = None, end: date | None = None) -> dict:
    overall = _filtered(
        db.session.query(
            func.count(VolunteerSession.id),
            func.coalesce(func.sum(VolunteerSession.hours_worked), 0),
            func.count(func.distinct(VolunteerSession.volunteer_name)),
            func.coalesce(func.avg(VolunteerSession.hours_worked), 0),
        ),
        location_id=location_id, start=start, end=end,
    ).one()
    total_sessions, total_hours, unique_volunteers, average = overall

    by_location = _filtered(
        db.session.query(
            VolunteerSession.location_id,
            Location.name,
            func.count(VolunteerSession.id).label("session_count"),
            func.coalesce(func.sum(VolunteerSession.hours_worked), 0).label("total_hours"),
        ).outerjoin(Location, Location.id == VolunteerSession.location_id),
        location_id=location_id, start=start, end=end,
    ).group_by(VolunteerSession.location_id, Location.name).order_by(func.count(VolunteerSession.id).desc()).all()

    recent = _filtered(
        db.session.query(
            VolunteerSession.volunteer_name,
            func.max(VolunteerSession.session_date).label("last_session"),
            func.count(VolunteerSession.id).label("total_sessions"),
            func.coalesce(func.sum(VolunteerSession.hours_worked), 0).label("total_hours"),
        ),
        location_id=location_id, start=start, end=end,
    ).group_by(VolunteerSession.volunteer_name).order_by(
        func.max(VolunteerSession.session_date).desc()
    ).limit(RECENT_VOLUNTEER_LIMIT).all()

    return {
        "total_sessions": int(total_sessions or 0),
        "total_hours": round(float(total_hours or 0), 2),
        "unique_volunteers": int(unique_volunteers or 0),
        "average_session_length": round(float(average or 0), 2),
        "sessions_by_location": [
            {
                "location_id": loc_id,
                "location_name": name,
                "session_count": int(count),
                "total_hours": round(float(hours or 0), 2),
            }
            for loc_id, name, count, hours in by_location
        ],
        "recent_volunteers": [
            {
                "volunteer_name": name,
                "last_session": last if isinstance(last, str) else to_iso_date(last),
                "total_sessions": int(count),
                "total_hours": round(float(hours or 0), 2),
            }
            for name, last, count, hours in recent
        ],
    }
