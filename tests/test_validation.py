import pytest

from crm_api.errors import ValidationFailed
from crm_api.validation import (
    RECORD_CREATE_RULES,
    RECORD_UPDATE_RULES,
    USER_CREATE_RULES,
    USER_UPDATE_RULES,
    ensure_valid,
    validate,
)


def messages(rules, data):
    return [error.message for error in validate(rules, data)]


def test_valid_user_payload_has_no_errors():
    data = {
        "name": "A",
        "email": "a@x.com",
        "password": "12345678",
        "passwordConfirm": "12345678",
    }
    assert validate(USER_CREATE_RULES, data) == []


def test_every_violated_rule_is_reported():
    errors = validate(USER_CREATE_RULES, {"email": "nope", "password": "123", "role": "ROOT"})
    assert [(error.field, error.message) for error in errors] == [
        ("name", "Name is required"),
        ("email", "Invalid email"),
        ("password", "Password must have at least 8 characters"),
        ("passwordConfirm", "Password confirmation is required"),
        ("passwordConfirm", "Password confirmation does not match"),
        ("role", "Invalid role"),
    ]


def test_password_confirmation_must_match():
    data = {
        "name": "A",
        "email": "a@x.com",
        "password": "12345678",
        "passwordConfirm": "87654321",
    }
    assert messages(USER_CREATE_RULES, data) == ["Password confirmation does not match"]


def test_partial_user_update_only_checks_supplied_fields():
    assert validate(USER_UPDATE_RULES, {"name": "New name"}) == []
    assert messages(USER_UPDATE_RULES, {"name": ""}) == ["Name cannot be empty"]


def test_update_rules_do_not_cover_role_or_status():
    assert "role" not in USER_UPDATE_RULES
    assert "status" not in USER_UPDATE_RULES


def test_new_password_requires_confirmation_on_update():
    assert messages(USER_UPDATE_RULES, {"password": "newpassword", "oldPassword": "12345678"}) == [
        "Password confirmation is required",
        "Password confirmation does not match",
    ]


def test_record_status_must_be_known():
    assert messages(RECORD_CREATE_RULES, {"name": "C", "email": "c@x.com", "status": "DELETED"}) == [
        "Invalid status"
    ]
    assert validate(RECORD_CREATE_RULES, {"name": "C", "email": "c@x.com", "status": "ARCHIVED"}) == []


def test_record_update_rejects_nulls():
    assert messages(RECORD_UPDATE_RULES, {"email": None}) == ["Email cannot be empty"]


def test_ensure_valid_raises_with_all_details():
    with pytest.raises(ValidationFailed) as exc_info:
        ensure_valid(RECORD_CREATE_RULES, {})
    assert exc_info.value.details == ["Name is required", "Email is required"]
    assert exc_info.value.status_code == 400
