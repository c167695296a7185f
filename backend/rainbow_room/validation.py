from __future__ import annotations
from datetime import date, datetime
from rainbow_room.time_utils import parse_iso_datetime, parse_iso_date, parse_checkout_date

import json
import re
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Boolean, Date, Float, Integer, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError


DEPARTMENTS = (
    "CPS/DFPS",
    "CACCC FA/CE",
    "Family Compass",
    "Law Enforcement",
)

ALLEGATIONS = (
    "Abandonment",
    "Human Trafficking",
    "Neglectful Supervision",
    "RAPR",
    "Emotional Abuse",
    "Labor Trafficking",
    "Physical Abuse",
    "Sex Trafficking",
    "Exploitation",
    "Medical Neglect",
    "Physical Neglect",
    "Sexual Abuse",
    "Other",
)

MIN_CHILDREN = 1
MAX_CHILDREN = 5

ZIP_CODE_RE = re.compile(r"^[0-9]{5}(-[0-9]{4})?$")


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_int(key: str, value: Any) -> int:
    # bool is a subclass of int
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        # Reject scientific notation (e.g., "1e15")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return _coerce_int(col.key, value)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes"}
        return bool(value)

    if isinstance(coltype, Float):
        if isinstance(value, bool):
            raise ValidationError(f"{col.key} must be a number")
        try:
            return float(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{col.key} must be a number")

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    if isinstance(coltype, Date):
        if isinstance(value, date):
            return value
        try:
            d = parse_iso_date(str(value))
        except ValueError:
            raise ValidationError(f"{col.key} must be in YYYY-MM-DD format")
        if d is None:
            raise ValidationError(f"{col.key} must be in YYYY-MM-DD format")
        return d

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


@dataclass(frozen=True)
class RequestSchema:
    """
    Field-level schema for payloads that do not map onto a single model
    (stock mutations, checkout submissions).

    Field kinds: "int", "str", "list", "datetime".
    """
    required: dict[str, str]
    optional: dict[str, str] = field(default_factory=dict)

    def validate(self, payload: Any) -> dict:
        if payload is None:
            payload = {}
        if not isinstance(payload, dict):
            raise ValidationError("Invalid JSON payload")

        allowed = set(self.required) | set(self.optional)
        for k in payload.keys():
            if k not in allowed:
                raise ValidationError(f"Field not allowed: {k}")

        missing = sorted(k for k in self.required if payload.get(k) is None)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        cleaned: dict = {}
        for k, kind in {**self.required, **self.optional}.items():
            if k not in payload:
                continue
            raw = payload[k]
            if raw is None:
                cleaned[k] = None
                continue
            cleaned[k] = _coerce_kind(k, kind, raw)
        return cleaned


def _coerce_kind(key: str, kind: str, raw: Any):
    if kind == "int":
        return _coerce_int(key, raw)
    if kind == "str":
        value = str(raw).strip()
        return value or None
    if kind == "list":
        if not isinstance(raw, list):
            raise ValidationError(f"{key} must be a list")
        return raw
    if kind == "datetime":
        try:
            dt = parse_iso_datetime(str(raw))
        except ValueError:
            raise ValidationError(f"{key} must be an ISO-8601 datetime")
        return dt
    return raw


def require_positive(key: str, value: int) -> int:
    if value is None or value <= 0:
        raise ValidationError(f"{key} must be > 0")
    return value


@dataclass(frozen=True)
class CheckoutForm:
    worker_first_name: str
    worker_last_name: str
    department: str
    case_number: str
    allegations: tuple[str, ...]
    parent_guardian_first_name: str
    parent_guardian_last_name: str
    zip_code: str
    number_of_children: int
    checkout_date: date
    alleged_perpetrator_first_name: str | None = None
    alleged_perpetrator_last_name: str | None = None

    @property
    def allegations_json(self) -> str:
        return json.dumps(list(self.allegations))

    def to_dict(self) -> dict:
        return {
            "worker_first_name": self.worker_first_name,
            "worker_last_name": self.worker_last_name,
            "department": self.department,
            "case_number": self.case_number,
            "allegations": list(self.allegations),
            "parent_guardian_first_name": self.parent_guardian_first_name,
            "parent_guardian_last_name": self.parent_guardian_last_name,
            "zip_code": self.zip_code,
            "alleged_perpetrator_first_name": self.alleged_perpetrator_first_name,
            "alleged_perpetrator_last_name": self.alleged_perpetrator_last_name,
            "number_of_children": self.number_of_children,
            "checkout_date": self.checkout_date.isoformat(),
        }


def _text(data: dict, key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    return str(value).strip()


def _parse_allegations(raw: Any) -> list:
    if raw is None or raw == "":
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            raise ValidationError("Allegations must be a list")
    if not isinstance(raw, (list, tuple)):
        raise ValidationError("Allegations must be a list")
    return [str(a).strip() for a in raw if str(a).strip()]


def _parse_children(raw: Any) -> int:
    message = f"Number of children must be between {MIN_CHILDREN} and {MAX_CHILDREN}"
    if raw is None or isinstance(raw, bool):
        raise ValidationError(message)
    try:
        count = _coerce_int("number_of_children", raw)
    except ValidationError:
        raise ValidationError(message)
    if count < MIN_CHILDREN or count > MAX_CHILDREN:
        raise ValidationError(message)
    return count


def validate_checkout_form(data: dict) -> CheckoutForm:
    """
    Validate the case-file portion of a checkout.

    Pure: no database access. Rules run in form order and the first failure
    is raised as ValidationError; errors are never aggregated.
    """
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")

    worker_first = _text(data, "worker_first_name")
    if not worker_first:
        raise ValidationError("Worker first name is required")
    worker_last = _text(data, "worker_last_name")
    if not worker_last:
        raise ValidationError("Worker last name is required")

    department = _text(data, "department")
    if not department:
        raise ValidationError("Department is required")
    if department not in DEPARTMENTS:
        raise ValidationError(f"Department must be one of: {', '.join(DEPARTMENTS)}")

    case_number = _text(data, "case_number")
    if not case_number:
        raise ValidationError("Case number is required")

    allegations = _parse_allegations(data.get("allegations"))
    if not allegations:
        raise ValidationError("At least one allegation must be selected")
    for allegation in allegations:
        if allegation not in ALLEGATIONS:
            raise ValidationError(f"Unknown allegation: {allegation}")

    parent_first = _text(data, "parent_guardian_first_name")
    if not parent_first:
        raise ValidationError("Parent/Guardian first name is required")
    parent_last = _text(data, "parent_guardian_last_name")
    if not parent_last:
        raise ValidationError("Parent/Guardian last name is required")

    zip_code = _text(data, "zip_code")
    if not zip_code:
        raise ValidationError("ZIP code is required")
    if not ZIP_CODE_RE.match(zip_code):
        raise ValidationError("Invalid ZIP code format")

    children = _parse_children(data.get("number_of_children"))

    try:
        checkout_date = parse_checkout_date(data.get("checkout_date"))
    except ValueError as e:
        raise ValidationError(str(e))

    return CheckoutForm(
        worker_first_name=worker_first,
        worker_last_name=worker_last,
        department=department,
        case_number=case_number,
        # de-duplicated, selection order kept
        allegations=tuple(dict.fromkeys(allegations)),
        parent_guardian_first_name=parent_first,
        parent_guardian_last_name=parent_last,
        zip_code=zip_code,
        number_of_children=children,
        checkout_date=checkout_date,
        alleged_perpetrator_first_name=_text(data, "alleged_perpetrator_first_name") or None,
        alleged_perpetrator_last_name=_text(data, "alleged_perpetrator_last_name") or None,
    )
