from __future__ import annotations

from ..extensions import db
from rainbow_room.time_utils import to_utc_z, to_iso_date, format_clock_time


class VolunteerSession(db.Model):
    """
    Volunteer shift at a location.

    ACTIVE: end_time is NULL (volunteer still signed in).
    hours_worked is computed from start/end (midnight wraparound allowed)
    unless supplied explicitly.
    """
    __tablename__ = "volunteer_sessions"
    __table_args__ = (
        db.Index("ix_volunteer_sessions_location_date", "location_id", "session_date"),
        db.Index("ix_volunteer_sessions_name", "volunteer_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)
    volunteer_name = db.Column(db.String(255), nullable=False)
    session_date = db.Column(db.Date, nullable=False)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=True)
    hours_worked = db.Column(db.Float, nullable=True)
    tasks_performed = db.Column(db.Text, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    location = db.relationship("Location")

    @property
    def is_active(self) -> bool:
        return self.end_time is None

    def __repr__(self) -> str:
        return f"<VolunteerSession id={self.id} name={self.volunteer_name!r} date={self.session_date}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "location_id": self.location_id,
            "location_name": self.location.name if self.location else None,
            "volunteer_name": self.volunteer_name,
            "session_date": to_iso_date(self.session_date),
            "start_time": format_clock_time(self.start_time),
            "end_time": format_clock_time(self.end_time),
            "hours_worked": self.hours_worked,
            "tasks_performed": self.tasks_performed,
            "notes": self.notes,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
