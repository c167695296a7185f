"""
Case-file validation rules, checked in form order.
"""

import json
from datetime import date

import pytest

from rainbow_room.errors import ValidationError
from rainbow_room.validation import validate_checkout_form, RequestSchema


def _valid():
    return {
        "worker_first_name": "Dana",
        "worker_last_name": "Reyes",
        "department": "Law Enforcement",
        "case_number": "LE-77",
        "allegations": ["Other"],
        "parent_guardian_first_name": "Jordan",
        "parent_guardian_last_name": "Lee",
        "zip_code": "75070",
        "number_of_children": 1,
    }


@pytest.mark.parametrize(
    "field, value, message",
    [
        ("worker_first_name", "  ", "Worker first name is required"),
        ("worker_last_name", None, "Worker last name is required"),
        ("department", "", "Department is required"),
        ("department", "Fire Department", "Department must be one of"),
        ("case_number", "", "Case number is required"),
        ("allegations", [], "At least one allegation must be selected"),
        ("allegations", ["Shoplifting"], "Unknown allegation: Shoplifting"),
        ("parent_guardian_first_name", "", "Parent/Guardian first name is required"),
        ("parent_guardian_last_name", "", "Parent/Guardian last name is required"),
        ("zip_code", "", "ZIP code is required"),
        ("zip_code", "1234", "Invalid ZIP code format"),
        ("zip_code", "75070-12", "Invalid ZIP code format"),
        ("zip_code", "٧٥٠٧٠", "Invalid ZIP code format"),
        ("number_of_children", 0, "Number of children must be between 1 and 5"),
        ("number_of_children", 6, "Number of children must be between 1 and 5"),
        ("number_of_children", "two", "Number of children must be between 1 and 5"),
    ],
)
def test_each_rule_reports_its_message(field, value, message):
    data = _valid()
    data[field] = value
    with pytest.raises(ValidationError, match=message):
        validate_checkout_form(data)


def test_first_failing_rule_wins():
    data = _valid()
    data["worker_last_name"] = ""
    data["zip_code"] = "bad"
    with pytest.raises(ValidationError, match="Worker last name is required"):
        validate_checkout_form(data)


def test_valid_form_is_normalized():
    data = _valid()
    data["worker_first_name"] = "  Dana "
    data["zip_code"] = "75070-1234"
    data["number_of_children"] = "5"
    data["checkout_date"] = "03/14/2026"

    form = validate_checkout_form(data)
    assert form.worker_first_name == "Dana"
    assert form.zip_code == "75070-1234"
    assert form.number_of_children == 5
    assert form.checkout_date == date(2026, 3, 14)
    assert form.alleged_perpetrator_first_name is None


def test_allegations_accept_json_string_and_deduplicate():
    data = _valid()
    data["allegations"] = json.dumps(["RAPR", "Other", "RAPR"])

    form = validate_checkout_form(data)
    assert form.allegations == ("RAPR", "Other")
    assert json.loads(form.allegations_json) == ["RAPR", "Other"]


def test_request_schema_rejects_unknown_and_missing_fields():
    schema = RequestSchema(required={"quantity": "int"}, optional={"notes": "str"})
    with pytest.raises(ValidationError, match="Field not allowed: extra"):
        schema.validate({"quantity": 1, "extra": True})
    with pytest.raises(ValidationError, match="Missing required fields: quantity"):
        schema.validate({"notes": "x"})
    with pytest.raises(ValidationError):
        schema.validate({"quantity": "1.5"})
    assert schema.validate({"quantity": "3", "notes": " hi "}) == {"quantity": 3, "notes": "hi"}
