"""Declarative field rules for request payloads.

Every entity has a rule table mapping a field name to the rules that
apply to it. :func:`validate` evaluates the whole table and reports every
violated rule instead of stopping at the first one.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Mapping, NamedTuple, TypeVar

from email_validator import EmailNotValidError, validate_email

from .errors import ValidationFailed
from .models import RECORD_STATUSES, USER_ROLES, USER_STATUSES

T = TypeVar("T")

MISSING: Any = object()


@dataclass(frozen=True)
class FieldError:
    """A single violated rule."""

    field: str
    message: str


@dataclass
class Result(Generic[T]):
    """Either a value or the list of errors that prevented building it."""

    value: T | None = None
    errors: list[FieldError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def messages(self) -> list[str]:
        return [error.message for error in self.errors]


Check = Callable[[Any, Mapping[str, Any]], bool]


class Rule(NamedTuple):
    check: Check
    message: str


def required(value, data) -> bool:
    if value is MISSING or value is None:
        return False
    return not (isinstance(value, str) and not value.strip())


def not_blank(value, data) -> bool:
    """Present fields must carry a non-empty value."""
    if value is MISSING:
        return True
    return required(value, data)


def is_email(value, data) -> bool:
    if value is MISSING or value is None:
        return True
    if not isinstance(value, str):
        return False
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def min_length(n: int) -> Check:
    def check(value, data) -> bool:
        if value is MISSING or value is None:
            return True
        return isinstance(value, str) and len(value) >= n

    return check


def max_length(n: int) -> Check:
    def check(value, data) -> bool:
        if value is MISSING or value is None:
            return True
        return isinstance(value, str) and len(value) <= n

    return check


def one_of(*choices: str) -> Check:
    def check(value, data) -> bool:
        if value is MISSING or value is None:
            return True
        return value in choices

    return check


def same_as(other: str) -> Check:
    """The field must equal ``other`` whenever ``other`` is supplied."""

    def check(value, data) -> bool:
        if data.get(other) in (None, ""):
            return True
        return value == data.get(other)

    return check


def required_with(other: str) -> Check:
    def check(value, data) -> bool:
        if data.get(other) in (None, ""):
            return True
        return required(value, data)

    return check


RuleTable = Mapping[str, list[Rule]]


def validate(rules: RuleTable, data: Mapping[str, Any]) -> list[FieldError]:
    """Evaluate every rule of ``rules`` against ``data``.

    Args:
        rules (RuleTable): Field name to rules.
        data (Mapping): Payload, usually ``model_dump(exclude_unset=True)``.

    Returns:
        list[FieldError]: One record per violated rule, in table order.
    """
    errors: list[FieldError] = []
    for name, field_rules in rules.items():
        value = data.get(name, MISSING)
        for rule in field_rules:
            if not rule.check(value, data):
                errors.append(FieldError(name, rule.message))
    return errors


_password_rules = [
    Rule(min_length(8), "Password must have at least 8 characters"),
    Rule(max_length(50), "Password must have at most 50 characters"),
]

USER_CREATE_RULES: RuleTable = {
    "name": [Rule(required, "Name is required")],
    "email": [
        Rule(required, "Email is required"),
        Rule(is_email, "Invalid email"),
    ],
    "password": [Rule(required, "Password is required"), *_password_rules],
    "passwordConfirm": [
        Rule(required, "Password confirmation is required"),
        Rule(same_as("password"), "Password confirmation does not match"),
    ],
    "status": [Rule(one_of(*USER_STATUSES), "Invalid status")],
    "role": [Rule(one_of(*USER_ROLES), "Invalid role")],
}

USER_UPDATE_RULES: RuleTable = {
    "name": [Rule(not_blank, "Name cannot be empty")],
    "email": [Rule(not_blank, "Email cannot be empty"), Rule(is_email, "Invalid email")],
    "oldPassword": [Rule(min_length(8), "Old password must have at least 8 characters")],
    "password": [Rule(not_blank, "Password cannot be empty"), *_password_rules],
    "passwordConfirm": [
        Rule(required_with("password"), "Password confirmation is required"),
        Rule(same_as("password"), "Password confirmation does not match"),
    ],
}

RECORD_CREATE_RULES: RuleTable = {
    "name": [Rule(required, "Name is required")],
    "email": [
        Rule(required, "Email is required"),
        Rule(is_email, "Invalid email"),
    ],
    "status": [Rule(one_of(*RECORD_STATUSES), "Invalid status")],
}

RECORD_UPDATE_RULES: RuleTable = {
    "name": [Rule(not_blank, "Name cannot be empty")],
    "email": [Rule(not_blank, "Email cannot be empty"), Rule(is_email, "Invalid email")],
    "status": [
        Rule(not_blank, "Status cannot be empty"),
        Rule(one_of(*RECORD_STATUSES), "Invalid status"),
    ],
}

LOGIN_RULES: RuleTable = {
    "email": [Rule(required, "Email is required")],
    "password": [Rule(required, "Password is required")],
}


def ensure_valid(rules: RuleTable, data: Mapping[str, Any]) -> None:
    """Raise ``ValidationFailed`` carrying every violated rule of ``rules``."""
    errors = validate(rules, data)
    if errors:
        raise ValidationFailed([error.message for error in errors])
