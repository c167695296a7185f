# Overview: Service-layer operations for locations; encapsulates business logic and database work.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Location
from ..errors import ValidationError, NotFoundError, DuplicateKeyError
from .concurrency import lock_for_update, run_in_transaction


def list_locations(*, include_inactive: bool = False) -> list[Location]:
    q = db.session.query(Location)
    if not include_inactive:
        q = q.filter(Location.is_active.is_(True))
    return q.order_by(Location.name.asc()).all()


def get_location(location_id: int) -> Location:
    location = db.session.query(Location).filter_by(id=location_id).first()
    if location is None:
        raise NotFoundError("Location not found")
    return location


def get_location_by_name(name: str) -> Location | None:
    return db.session.query(Location).filter_by(name=name).first()


def require_active_location(location_id: int) -> Location:
    location = get_location(location_id)
    if not location.is_active:
        raise ValidationError(f"Location {location.name} is inactive")
    return location


def create_location(
    *,
    name: str,
    address: str | None = None,
    city: str | None = None,
    state: str | None = None,
) -> Location:
    def _op():
        clean = (name or "").strip()
        if not clean:
            raise ValidationError("Location name is required")
        if get_location_by_name(clean):
            raise DuplicateKeyError(f"Location {clean} already exists")

        location = Location(name=clean, address=address, city=city, state=state, is_active=True)
        db.session.add(location)
        db.session.flush()
        return location

    location = run_in_transaction(_op)
    current_app.logger.info("location.created id=%s name=%s", location.id, location.name)
    return location


def update_location(location_id: int, patch: dict) -> Location:
    def _op():
        location = lock_for_update(db.session.query(Location).filter_by(id=location_id)).first()
        if location is None:
            raise NotFoundError("Location not found")

        if "name" in patch:
            clean = (patch["name"] or "").strip()
            if not clean:
                raise ValidationError("Location name is required")
            other = get_location_by_name(clean)
            if other is not None and other.id != location.id:
                raise DuplicateKeyError(f"Location {clean} already exists")
            location.name = clean

        for key in ("address", "city", "state", "is_active"):
            if key in patch:
                setattr(location, key, patch[key])

        db.session.flush()
        return location

    return run_in_transaction(_op)


def toggle_location(location_id: int) -> Location:
    """Flip is_active. Stock rows and history at the location are untouched."""
    def _op():
        location = lock_for_update(db.session.query(Location).filter_by(id=location_id)).first()
        if location is None:
            raise NotFoundError("Location not found")
        location.is_active = not location.is_active
        db.session.flush()
        return location

    location = run_in_transaction(_op)
    current_app.logger.info("location.toggled id=%s active=%s", location.id, location.is_active)
    return location


def seed_default_locations() -> list[Location]:
    """Create any configured default location that does not exist yet (idempotent)."""
    def _op():
        created = []
        for site in current_app.config.get("DEFAULT_LOCATIONS", ()):
            if get_location_by_name(site["name"]):
                continue
            location = Location(
                name=site["name"],
                address=site.get("address"),
                city=site.get("city"),
                state=site.get("state"),
                is_active=True,
            )
            db.session.add(location)
            created.append(location)
        db.session.flush()
        return created

    return run_in_transaction(_op)
