import pytest

from rainbow_room.errors import ValidationError, NotFoundError
from rainbow_room.services import volunteer_service


def _session(location, **overrides):
    payload = {
        "location_id": location.id,
        "volunteer_name": "Ana",
        "session_date": "2026-05-02",
        "start_time": "09:00",
    }
    payload.update(overrides)
    return volunteer_service.create_session(payload)


def test_hours_derived_from_start_and_end(mckinney):
    session = _session(mckinney, end_time="11:45")
    assert session.hours_worked == 2.75
    assert session.is_active is False


def test_session_crossing_midnight(mckinney):
    session = _session(mckinney, start_time="22:00", end_time="01:30")
    assert session.hours_worked == 3.5


def test_explicit_hours_win(mckinney):
    session = _session(mckinney, end_time="17:00", hours_worked=4)
    assert session.hours_worked == 4.0


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"volunteer_name": "  "}, "Volunteer name is required"),
        ({"start_time": None}, "Start time is required"),
        ({"location_id": "1"}, "location_id must be an integer"),
        ({"hours_worked": 30}, "between 0 and 24"),
        ({"badge": "x"}, "Field not allowed: badge"),
    ],
)
def test_create_rejects_bad_payloads(mckinney, overrides, message):
    with pytest.raises(ValidationError, match=message):
        _session(mckinney, **overrides)


def test_unknown_location(locations):
    with pytest.raises(NotFoundError):
        volunteer_service.create_session({
            "location_id": 99999, "volunteer_name": "Ana", "start_time": "09:00",
        })


def test_clock_in_and_out(plano):
    session = volunteer_service.start_session(location_id=plano.id, volunteer_name="Ben")
    assert session.is_active
    assert [s.id for s in volunteer_service.list_active_sessions(location_id=plano.id)] == [session.id]

    ended = volunteer_service.end_session(session.id, end_time="23:59", notes="Sorted shoes")
    assert not ended.is_active
    assert ended.notes == "Sorted shoes"
    assert ended.hours_worked is not None
    assert volunteer_service.list_active_sessions() == []

    with pytest.raises(ValidationError, match="already ended"):
        volunteer_service.end_session(session.id, end_time="23:59")


def test_update_recomputes_hours(mckinney):
    session = _session(mckinney, end_time="10:00")
    updated = volunteer_service.update_session(session.id, {"end_time": "12:00"})
    assert updated.hours_worked == 3.0


def test_delete_session(mckinney):
    session = _session(mckinney)
    volunteer_service.delete_session(session.id)
    with pytest.raises(NotFoundError):
        volunteer_service.get_session(session.id)


def test_list_filters_by_name(mckinney):
    _session(mckinney, volunteer_name="Ana Ruiz")
    _session(mckinney, volunteer_name="Ben Ortiz")
    names = [s.volunteer_name for s in volunteer_service.list_sessions(volunteer_name="ana")]
    assert names == ["Ana Ruiz"]


def test_stats(mckinney, plano):
    _session(mckinney, end_time="12:00")
    _session(plano, volunteer_name="Ben", end_time="10:00")
    _session(plano, volunteer_name="Ben", session_date="2026-05-03")

    stats = volunteer_service.volunteer_stats()
    assert stats["total_sessions"] == 3
    assert stats["total_hours"] == 4.0
    assert stats["unique_volunteers"] == 2
    # AVG skips the open session
    assert stats["average_session_length"] == 2.0
    assert stats["sessions_by_location"][0]["location_name"] == "Plano"
    assert stats["recent_volunteers"][0]["volunteer_name"] == "Ben"
    assert stats["recent_volunteers"][0]["last_session"] == "2026-05-03"
