"""Student roster entry with embedded attendance marks, payments and notes."""
import datetime as dt
import re
from enum import Enum
from typing import Any, Literal, Optional

from beanie import Document, Indexed
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

Weekday = Literal["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

DATE_KEY_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
MONTH_KEY_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


class Package(str, Enum):
    ONE_DAY = "1-day"
    TWO_DAY = "2-day"
    ADULT = "Adult"


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire and in Firestore."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Payment(CamelModel):
    id: str
    month: str  # YYYY-MM the payment covers
    amount: float  # sign is checked on write; older documents may hold negatives
    date_received: dt.datetime


class Note(CamelModel):
    id: str
    date: dt.date  # day the note is about, not when it was written
    text: str


def _dedupe_days(days: list[str]) -> list[str]:
    seen = []
    for day in days:
        if day not in seen:
            seen.append(day)
    return seen


def _required_text(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be empty")
    return value


class StudentProfile(CamelModel):
    """Scalar and enrollment fields, editable through the profile form."""

    name: str
    parent_name: str = ""
    contact: str
    package: Package = Package.ONE_DAY
    enrolled_days: list[Weekday] = Field(default_factory=list)
    waiver_signed: bool = False
    is_active: bool = True

    @field_validator("enrolled_days")
    @classmethod
    def dedupe_enrolled_days(cls, value: list[str]) -> list[str]:
        return _dedupe_days(value)


class Student(StudentProfile):
    """A student as reflected from the document store."""

    id: str
    attendance: dict[str, AttendanceStatus] = Field(default_factory=dict)
    payments: list[Payment] = Field(default_factory=list)
    notes: list[Note] = Field(default_factory=list)

    @field_validator("attendance")
    @classmethod
    def check_date_keys(cls, value: dict[str, AttendanceStatus]) -> dict[str, AttendanceStatus]:
        for key in value:
            if not re.match(DATE_KEY_PATTERN, key):
                raise ValueError(f"attendance key {key!r} is not YYYY-MM-DD")
            dt.date.fromisoformat(key)
        return value


class StudentCreate(StudentProfile):
    """Add-student form. Notes, payments and attendance are never taken from input."""

    @field_validator("name", "contact")
    @classmethod
    def require_text(cls, value: str) -> str:
        return _required_text(value)


class StudentUpdate(CamelModel):
    """All fields optional for PATCH; notes, payments and attendance have their own handlers."""

    name: Optional[str] = None
    parent_name: Optional[str] = None
    contact: Optional[str] = None
    package: Optional[Package] = None
    enrolled_days: Optional[list[Weekday]] = None
    waiver_signed: Optional[bool] = None
    is_active: Optional[bool] = None

    @field_validator("name", "contact")
    @classmethod
    def require_text(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else _required_text(value)

    @field_validator("enrolled_days")
    @classmethod
    def dedupe_enrolled_days(cls, value: Optional[list[str]]) -> Optional[list[str]]:
        return None if value is None else _dedupe_days(value)


class StudentDocument(Document):
    """MongoDB layout: one document per student, scoped by deployment and coach."""

    app_id: Indexed(str)
    coach_id: Indexed(str)

    name: str
    parent_name: str = ""
    contact: str
    package: Package = Package.ONE_DAY
    enrolled_days: list[str] = Field(default_factory=list)
    waiver_signed: bool = False
    is_active: bool = True
    attendance: dict[str, AttendanceStatus] = Field(default_factory=dict)
    payments: list[Payment] = Field(default_factory=list)
    notes: list[Note] = Field(default_factory=list)

    class Settings:
        name = "students"

    def to_student(self) -> Student:
        data = self.model_dump(include=STUDENT_FIELDS)
        return Student.model_validate({"id": str(self.id), **data})


STUDENT_FIELDS = {name for name in Student.model_fields if name != "id"}
PROFILE_FIELDS = set(StudentProfile.model_fields)

_field_adapters = {name: TypeAdapter(Student.model_fields[name].annotation) for name in STUDENT_FIELDS}


def dump_fields(fields: dict[str, Any], by_alias: bool = False) -> dict[str, Any]:
    """Encode a partial set of Student fields into JSON-safe storage values."""
    out = {}
    for name, value in fields.items():
        if name not in _field_adapters:
            raise KeyError(f"Unknown student field: {name}")
        key = Student.model_fields[name].alias if by_alias else name
        out[key or name] = _field_adapters[name].dump_python(value, mode="json", by_alias=by_alias)
    return out
