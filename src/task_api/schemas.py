from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from .errors import TaskValidationError
from .models import TaskPriority, TaskStatus

TITLE_MAX_LENGTH = 100

_ENUM_FIELDS = {"status": TaskStatus, "priority": TaskPriority}

# Location prefixes FastAPI adds in front of the offending field name.
_LOC_SOURCES = {"body", "query", "path", "header", "cookie"}


def _as_utc(value: datetime) -> datetime:
    # Values without an offset are taken to be UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_due_date(value: Any) -> datetime:
    """
    Normalize dueDate input into a timezone-aware UTC datetime.
    - Strings are parsed as ISO8601 datetimes; a bare date becomes midnight.
    - A date (not datetime) is promoted to midnight.
    - Integers and floats are epoch milliseconds.
    - Datetimes without an offset are taken to be UTC.
    An explicit null is rejected; leave the key out instead.
    """
    if value is None:
        raise ValueError("dueDate must not be null")

    if isinstance(value, datetime):
        return _as_utc(value)

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise ValueError("dueDate timestamp out of range") from e

    if isinstance(value, str):
        s = value.strip()
        if s.endswith("Z"):
            # fromisoformat() only understands the 'Z' suffix from Python 3.11 on
            s = s[:-1] + "+00:00"
        try:
            return _as_utc(datetime.fromisoformat(s))
        except ValueError:
            try:
                d = date.fromisoformat(s)
                return datetime(d.year, d.month, d.day, tzinfo=timezone.utc)
            except ValueError as e:
                raise ValueError("Invalid dueDate format") from e

    raise ValueError("Invalid type for dueDate; expected date, datetime, epoch milliseconds, or ISO8601 string.")


def _enum_choices(enum_cls: type) -> str:
    return ", ".join(member.value for member in enum_cls)


# PUBLIC_INTERFACE
def error_message(error: Mapping[str, Any]) -> tuple[str, str]:
    """
    Turn one pydantic error entry into a (field, message) pair.

    Messages quote the field name the client used (camelCase body keys,
    query parameter names), e.g. '"title" is required'.
    """
    loc = [str(p) for p in error.get("loc", ()) if not isinstance(p, int)]
    if len(loc) > 1 and loc[0] in _LOC_SOURCES:
        loc = loc[1:]
    field = ".".join(loc) or "value"
    kind = error.get("type", "")
    ctx = error.get("ctx") or {}

    if kind == "json_invalid":
        return "body", "Invalid JSON body"
    if kind == "missing":
        return field, f'"{field}" is required'
    if kind in ("model_type", "model_attributes_type", "dict_type"):
        return field, f'"{field}" must be of type object'
    if kind == "extra_forbidden":
        return field, f'"{field}" is not allowed'
    if kind == "string_type":
        return field, f'"{field}" must be a string'
    if kind == "string_too_short":
        return field, f'"{field}" is not allowed to be empty'
    if kind == "string_too_long":
        return field, f'"{field}" length must be less than or equal to {ctx.get("max_length")} characters long'
    if field in _ENUM_FIELDS:
        return field, f'"{field}" must be one of [{_enum_choices(_ENUM_FIELDS[field])}]'
    if field == "dueDate":
        return field, f'"{field}" must be a valid date'
    if kind in ("int_parsing", "int_type", "int_from_float"):
        return field, f'"{field}" must be an integer'
    if kind == "greater_than_equal":
        return field, f'"{field}" must be greater than or equal to {ctx.get("ge")}'
    return field, f'"{field}" {error.get("msg", "is invalid")}'


# PUBLIC_INTERFACE
def first_validation_error(errors: Sequence[Mapping[str, Any]]) -> TaskValidationError:
    """Build a TaskValidationError from the first entry of a pydantic error list."""
    if not errors:
        return TaskValidationError("value", '"value" is invalid')
    field, message = error_message(errors[0])
    return TaskValidationError(field, message)


# PUBLIC_INTERFACE
class TaskIn(BaseModel):
    """
    Schema for an incoming task payload (create and full update).

    Unknown keys are rejected. status defaults to TODO and description to an
    empty string; priority and dueDate have no default.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        extra="forbid",
        json_schema_extra={
            "example": {
                "title": "Buy milk",
                "description": "Two litres, semi-skimmed",
                "status": "TODO",
                "priority": "MEDIUM",
                "dueDate": "2025-02-01",
            }
        },
    )

    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH, description="Short title for the task")
    description: str = Field(default="", description="Optional detailed description")
    status: TaskStatus = Field(default=TaskStatus.TODO, description="Workflow status")
    priority: Optional[TaskPriority] = Field(default=None, description="Optional priority")
    due_date: Optional[datetime] = Field(
        default=None,
        description=(
            "Due date/time. Accepts ISO8601 date or datetime, or epoch milliseconds; "
            "dates are set to 00:00 and values without an offset are UTC"
        ),
    )

    # Before-validators only run for keys the client sent, so absent keys keep
    # their None default while an explicit null is rejected.
    @field_validator("priority", mode="before")
    @classmethod
    def reject_null_priority(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("priority must not be null")
        return v

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Any) -> datetime:
        return _parse_due_date(v)

    def to_document(self, partial: bool = False) -> Dict[str, Any]:
        """
        Return the store-level fields of this payload.

        With partial=True only the fields the client supplied are returned, plus
        status, which always carries its (possibly defaulted) value.
        """
        data = self.model_dump(exclude_unset=partial)
        if partial:
            data["status"] = self.status
        return {k: v.value if isinstance(v, Enum) else v for k, v in data.items()}


# PUBLIC_INTERFACE
def validate_task_payload(payload: Any) -> TaskIn:
    """
    Validate an untyped task payload.

    Stops at the first invalid field and raises TaskValidationError carrying
    that field's message. Returns the payload with defaults applied.
    """
    if not isinstance(payload, Mapping):
        raise TaskValidationError("value", '"value" must be of type object')
    try:
        return TaskIn.model_validate(dict(payload))
    except ValidationError as exc:
        raise first_validation_error(exc.errors()) from exc


# PUBLIC_INTERFACE
class TaskOut(BaseModel):
    """
    Schema returned by the API for a task.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": "65b2f0c1e4b0a1a2b3c4d5e6",
                "title": "Buy milk",
                "description": "",
                "status": "TODO",
                "priority": "MEDIUM",
                "dueDate": "2025-02-01T00:00:00Z",
                "createdAt": "2025-01-25T10:15:30.123456Z",
                "updatedAt": "2025-01-26T09:00:00.000001Z",
            }
        },
    )

    id: str = Field(..., description="Unique identifier of the task")
    title: str = Field(..., description="Short title for the task")
    description: str = Field(default="", description="Detailed description")
    status: TaskStatus = Field(..., description="Workflow status")
    priority: Optional[TaskPriority] = Field(default=None, description="Priority, if set")
    due_date: Optional[datetime] = Field(default=None, description="Due date/time as an ISO8601 datetime")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")


# PUBLIC_INTERFACE
class TaskPage(BaseModel):
    """
    Envelope for paginated list responses.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_tasks: int = Field(..., description="Total number of tasks matching the filters")
    total_pages: int = Field(..., description="Number of pages at the requested page size")
    current_page: int = Field(..., description="The page returned")
    tasks: List[TaskOut] = Field(..., description="Tasks on this page")


class ErrorOut(BaseModel):
    """Body of every error response."""

    error: str = Field(..., description="Human-readable error message")
