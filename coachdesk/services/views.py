"""Derived views over the student snapshot.

Everything here is pure: inputs are the repository's current list and the
filters picked on screen, outputs are new lists. Stored values are never
mutated and repository order is preserved unless a sort is asked for.
"""
import datetime as dt
from enum import Enum
from typing import Iterable, Sequence

from coachdesk.models.student import WEEKDAYS, AttendanceStatus, CamelModel, Note, Payment, Student


class StatusFilter(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ALL = "all"


class DueStudent(CamelModel):
    """A student still waiting for an attendance mark on the selected day."""

    student: Student
    has_paid_current_month: bool


class MonthOption(CamelModel):
    value: str  # YYYY-MM
    label: str  # e.g. "March 2024"


class AttendanceEntry(CamelModel):
    date: str
    status: AttendanceStatus


def weekday_name(day: dt.date) -> str:
    return WEEKDAYS[day.weekday()]


def date_key(day: dt.date) -> str:
    return day.isoformat()


def month_key(day: dt.date) -> str:
    return day.strftime("%Y-%m")


def _matches(term: str, *fields: str | None) -> bool:
    term = term.lower()
    return any(f is not None and term in f.lower() for f in fields)


def has_paid_for_month(student: Student, month: str) -> bool:
    return any(p.month == month for p in student.payments)


def attendance_due(students: Iterable[Student], day: dt.date, search: str = "") -> list[DueStudent]:
    """Active students enrolled on ``day``'s weekday who have no mark for ``day`` yet.

    The payment flag rides along for display and never filters anyone out.
    """
    weekday = weekday_name(day)
    key = date_key(day)
    month = month_key(day)
    return [
        DueStudent(student=s, has_paid_current_month=has_paid_for_month(s, month))
        for s in students
        if s.is_active and weekday in s.enrolled_days and key not in s.attendance and _matches(search, s.name)
    ]


def roster(
    students: Iterable[Student],
    status: StatusFilter = StatusFilter.ACTIVE,
    search: str = "",
) -> list[Student]:
    """Students filtered by active flag, then by student or parent name."""
    status = StatusFilter(status)
    out = []
    for s in students:
        if status == StatusFilter.ACTIVE and not s.is_active:
            continue
        if status == StatusFilter.INACTIVE and s.is_active:
            continue
        if not _matches(search, s.name, s.parent_name):
            continue
        out.append(s)
    return out


def shift_month(day: dt.date, months: int) -> dt.date:
    """First day of the month ``months`` away from ``day``'s month."""
    index = day.year * 12 + day.month - 1 + months
    return dt.date(index // 12, index % 12 + 1, 1)


def payment_month_options(today: dt.date, count: int = 12) -> list[MonthOption]:
    """Months offered by the payment form, newest first.

    Anchored two months ahead of ``today`` and stepped back one month before
    each option, so the list runs from next month back to ten months ago.
    """
    anchor = shift_month(today, 2)
    options = []
    for i in range(1, count + 1):
        month = shift_month(anchor, -i)
        options.append(MonthOption(value=month_key(month), label=month.strftime("%B %Y")))
    return options


def sorted_payments(payments: Sequence[Payment]) -> list[Payment]:
    return sorted(payments, key=lambda p: p.date_received, reverse=True)


def sorted_notes(notes: Sequence[Note]) -> list[Note]:
    return sorted(notes, key=lambda n: n.date, reverse=True)


def sorted_attendance(attendance: dict[str, AttendanceStatus]) -> list[AttendanceEntry]:
    return [
        AttendanceEntry(date=day, status=status)
        for day, status in sorted(attendance.items(), key=lambda item: item[0], reverse=True)
    ]
