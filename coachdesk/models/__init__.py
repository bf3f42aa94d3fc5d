"""Beanie document models and Pydantic schemas."""
from coachdesk.models.student import (
    WEEKDAYS,
    AttendanceStatus,
    Note,
    Package,
    Payment,
    Student,
    StudentCreate,
    StudentDocument,
    StudentProfile,
    StudentUpdate,
    dump_fields,
)

__all__ = [
    "WEEKDAYS",
    "AttendanceStatus",
    "Note",
    "Package",
    "Payment",
    "Student",
    "StudentCreate",
    "StudentDocument",
    "StudentProfile",
    "StudentUpdate",
    "dump_fields",
]
