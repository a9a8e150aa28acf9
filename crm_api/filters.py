"""Query parameter parsing for list endpoints.

:func:`build_list_filter` turns the raw query string of ``GET /users``,
``GET /customers`` and ``GET /customers/{id}/contacts`` into a
:class:`ListFilter`. It performs no I/O; the repositories translate the
result into SQL.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import Mapping

from .core import get_settings
from .errors import InvalidDateFilter, InvalidId, ValidationFailed
from .models import RECORD_STATUSES, USER_STATUSES
from .validation import FieldError, Result

DATE_PARAMS = ("createdAfter", "createdBefore", "updatedAfter", "updatedBefore")

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")
_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")
# largest value a signed 64-bit LIMIT/OFFSET accepts
MAX_INT = 2**63 - 1


@dataclass(frozen=True)
class ResourceFields:
    """Per-resource allow-lists used while parsing."""

    statuses: tuple[str, ...]
    sortable: tuple[str, ...] = ("id", "name", "email", "status", "created_at", "updated_at")
    aliases: Mapping[str, str] = field(
        default_factory=lambda: {"createdAt": "created_at", "updatedAt": "updated_at"}
    )


USER_FIELDS = ResourceFields(
    statuses=USER_STATUSES,
    sortable=("id", "name", "email", "status", "role", "created_at", "updated_at"),
)
CUSTOMER_FIELDS = ResourceFields(statuses=RECORD_STATUSES)
CONTACT_FIELDS = ResourceFields(statuses=RECORD_STATUSES)


@dataclass(frozen=True)
class DateRange:
    """Inclusive bounds; either side may be open."""

    start: datetime | None = None
    end: datetime | None = None

    def __bool__(self) -> bool:
        return self.start is not None or self.end is not None


@dataclass(frozen=True)
class SortKey:
    field: str
    descending: bool = False

    @property
    def direction(self) -> str:
        return "DESC" if self.descending else "ASC"


@dataclass(frozen=True)
class ListFilter:
    """Structured, store-agnostic form of a list request."""

    name: str | None = None
    email: str | None = None
    statuses: tuple[str, ...] = ()
    created: DateRange = DateRange()
    updated: DateRange = DateRange()
    sort: tuple[SortKey, ...] = ()
    page: int = 1
    limit: int = 25

    @property
    def offset(self) -> int:
        return min((self.page - 1) * self.limit, MAX_INT)


def parse_int(value: str | None, default: int) -> int:
    """Read a leading integer the way ``parseInt`` does.

    ``"3"`` and ``"3abc"`` give 3; anything without leading digits, and
    any value below 1, gives ``default``. Values above :data:`MAX_INT` are
    clamped to it.
    """
    if value is None:
        return default
    match = _LEADING_INT.match(value)
    if not match:
        return default
    digits = match.group(1)
    # int() rejects strings past the interpreter digit limit
    if len(digits.lstrip("+-0")) > 19:
        return default if digits.startswith("-") else MAX_INT
    number = int(digits)
    if number < 1:
        return default
    return min(number, MAX_INT)


def parse_date(value: str, upper: bool = False) -> datetime | None:
    """Parse an ISO-8601 date or datetime into naive UTC.

    A date without a time covers the whole day, so as an upper bound it
    becomes the last microsecond of that day. Returns ``None`` when the
    value is not a valid calendar date.
    """
    value = value.strip()
    try:
        if _DATE_ONLY.match(value):
            day = date.fromisoformat(value)
            return datetime.combine(day, time.max if upper else time.min)
        if value.endswith(("Z", "z")):
            value = value[:-1] + "+00:00"
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _text(params: Mapping[str, str], key: str) -> str | None:
    value = params.get(key)
    if value is None or not value.strip():
        return None
    return value.strip()


def _date_range(
    params: Mapping[str, str], after: str, before: str, errors: list[FieldError]
) -> DateRange:
    bounds = []
    for key, upper in ((after, False), (before, True)):
        raw = _text(params, key)
        if raw is None:
            bounds.append(None)
            continue
        parsed = parse_date(raw, upper=upper)
        if parsed is None:
            errors.append(FieldError(key, f"Invalid date in {key}"))
        bounds.append(parsed)
    return DateRange(*bounds)


def _statuses(
    raw: str | None, resource: ResourceFields, errors: list[FieldError]
) -> tuple[str, ...]:
    if raw is None:
        return ()
    tokens = tuple(token.strip().upper() for token in raw.split(",") if token.strip())
    for token in tokens:
        if token not in resource.statuses:
            errors.append(
                FieldError(
                    "status",
                    f"Invalid status '{token}', expected one of {', '.join(resource.statuses)}",
                )
            )
    return tokens


def _sort_keys(
    raw: str | None, resource: ResourceFields, errors: list[FieldError]
) -> tuple[SortKey, ...]:
    if raw is None:
        return ()
    keys = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        name, _, direction = part.partition(":")
        name = resource.aliases.get(name.strip(), name.strip())
        direction = direction.strip().upper() or "ASC"
        if name not in resource.sortable:
            errors.append(FieldError("sort", f"Cannot sort by '{name}'"))
            continue
        if direction not in ("ASC", "DESC"):
            errors.append(FieldError("sort", f"Invalid sort direction '{direction}'"))
            continue
        keys.append(SortKey(name, descending=direction == "DESC"))
    return tuple(keys)


def build_list_filter(
    params: Mapping[str, str], resource: ResourceFields
) -> Result[ListFilter]:
    """Parse list query parameters.

    Args:
        params (Mapping[str, str]): Raw query string values.
        resource (ResourceFields): Allow-lists of the listed resource.

    Returns:
        Result[ListFilter]: The filter, or every field error found. Date
        errors carry the exact parameter name as ``field``.
    """
    errors: list[FieldError] = []

    created = _date_range(params, "createdAfter", "createdBefore", errors)
    updated = _date_range(params, "updatedAfter", "updatedBefore", errors)
    statuses = _statuses(_text(params, "status"), resource, errors)
    sort = _sort_keys(_text(params, "sort"), resource, errors)

    if errors:
        return Result(errors=errors)

    return Result(
        ListFilter(
            name=_text(params, "name"),
            email=_text(params, "email"),
            statuses=statuses,
            created=created,
            updated=updated,
            sort=sort,
            page=parse_int(params.get("page"), 1),
            limit=parse_int(params.get("limit"), get_settings().DEFAULT_PAGE_LIMIT),
        )
    )


def require_list_filter(
    params: Mapping[str, str], resource: ResourceFields
) -> ListFilter:
    """Like :func:`build_list_filter` but raising on the first bad input.

    Raises:
        InvalidDateFilter: Naming the first unparsable date parameter.
        ValidationFailed: Listing every status and sort error.
    """
    result = build_list_filter(params, resource)
    if result.ok:
        return result.value
    for error in result.errors:
        if error.field in DATE_PARAMS:
            raise InvalidDateFilter(error.field)
    raise ValidationFailed(result.messages, message="Invalid query parameters")


def parse_path_id(value: str) -> int:
    """Convert a path segment to an integer id, raising ``InvalidId``."""
    value = value.strip()
    if not (value.isascii() and value.isdigit()):
        raise InvalidId()
    return int(value)
