"""Write handlers: recompute one whole field from the snapshot, then patch it.

Each handler reads the repository's current copy of the student, builds the
complete new value for a single field (attendance map, notes list, payments
list or profile fields) and overwrites that field in the store. There is no
version check, so a concurrent write to the same field from another session
can be lost.
"""
import datetime as dt
import logging
import math
import re
import uuid
from typing import Any, Optional

from coachdesk.errors import NoteNotFound, PaymentNotFound, StoreError, ValidationError
from coachdesk.models.student import (
    MONTH_KEY_PATTERN,
    AttendanceStatus,
    Note,
    Payment,
    StudentUpdate,
)
from coachdesk.services.repository import StudentRepository

logger = logging.getLogger(__name__)


def new_id() -> str:
    return str(uuid.uuid4())


def with_attendance(
    attendance: dict[str, AttendanceStatus], day: dt.date, status: AttendanceStatus | str
) -> dict[str, AttendanceStatus]:
    try:
        status = AttendanceStatus(status)
    except ValueError:
        raise ValidationError(f"Unknown attendance status: {status}")
    return {**attendance, day.isoformat(): status}


def without_attendance(attendance: dict[str, AttendanceStatus], day: dt.date) -> dict[str, AttendanceStatus]:
    key = day.isoformat()
    return {k: v for k, v in attendance.items() if k != key}


def with_note_added(notes: list[Note], day: dt.date, text: str) -> list[Note]:
    text = (text or "").strip()
    if not text:
        raise ValidationError("Note text must not be empty.")
    return [Note(id=new_id(), date=day, text=text), *notes]


def with_note_updated(notes: list[Note], note: Note) -> list[Note]:
    text = note.text.strip()
    if not text:
        raise ValidationError("Note text must not be empty.")
    if not any(n.id == note.id for n in notes):
        raise NoteNotFound(note.id)
    updated = note.model_copy(update={"text": text})
    return [updated if n.id == note.id else n for n in notes]


def without_note(notes: list[Note], note_id: str) -> list[Note]:
    if not any(n.id == note_id for n in notes):
        raise NoteNotFound(note_id)
    return [n for n in notes if n.id != note_id]


def parse_amount(amount: Any) -> float:
    """Accept numbers and numeric strings; reject anything negative, NaN or infinite."""
    if isinstance(amount, bool) or amount is None:
        raise ValidationError("Payment amount must be a number.")
    if isinstance(amount, str):
        amount = amount.strip()
    try:
        value = float(amount)
    except (TypeError, ValueError):
        raise ValidationError("Payment amount must be a number.")
    if not math.isfinite(value) or value < 0:
        raise ValidationError("Payment amount must be a non-negative number.")
    return value


def with_payment_added(
    payments: list[Payment], month: Optional[str], amount: Any, received_at: Optional[dt.datetime] = None
) -> list[Payment]:
    if not month or not re.match(MONTH_KEY_PATTERN, month):
        raise ValidationError("Choose the month this payment covers.")
    payment = Payment(
        id=new_id(),
        month=month,
        amount=parse_amount(amount),
        date_received=received_at or dt.datetime.now(dt.timezone.utc),
    )
    return [payment, *payments]


def without_payment(payments: list[Payment], payment_id: str) -> list[Payment]:
    if not any(p.id == payment_id for p in payments):
        raise PaymentNotFound(payment_id)
    return [p for p in payments if p.id != payment_id]


class StudentMutations:
    """Mutation handlers bound to one coach's repository."""

    def __init__(self, repository: StudentRepository):
        self.repository = repository

    async def _patch(self, student_id: str, fields: dict[str, Any]) -> None:
        try:
            await self.repository.patch(student_id, fields)
        except StoreError as e:
            logger.error(f"Error updating student {student_id} ({', '.join(fields)}): {e}")
            raise

    async def set_attendance(self, student_id: str, day: dt.date, status: AttendanceStatus | str) -> None:
        student = self.repository.get(student_id)
        await self._patch(student_id, {"attendance": with_attendance(student.attendance, day, status)})

    async def clear_attendance(self, student_id: str, day: dt.date) -> None:
        student = self.repository.get(student_id)
        await self._patch(student_id, {"attendance": without_attendance(student.attendance, day)})

    async def add_note(self, student_id: str, day: dt.date, text: str) -> None:
        student = self.repository.get(student_id)
        await self._patch(student_id, {"notes": with_note_added(student.notes, day, text)})

    async def update_note(self, student_id: str, note: Note) -> None:
        student = self.repository.get(student_id)
        await self._patch(student_id, {"notes": with_note_updated(student.notes, note)})

    async def delete_note(self, student_id: str, note_id: str) -> None:
        student = self.repository.get(student_id)
        await self._patch(student_id, {"notes": without_note(student.notes, note_id)})

    async def add_payment(self, student_id: str, month: Optional[str], amount: Any) -> None:
        student = self.repository.get(student_id)
        await self._patch(student_id, {"payments": with_payment_added(student.payments, month, amount)})

    async def delete_payment(self, student_id: str, payment_id: str) -> None:
        student = self.repository.get(student_id)
        await self._patch(student_id, {"payments": without_payment(student.payments, payment_id)})

    async def update_profile(self, student_id: str, data: StudentUpdate) -> None:
        self.repository.get(student_id)
        fields = data.model_dump(exclude_unset=True)
        fields = {k: v for k, v in fields.items() if v is not None}
        if not fields:
            return
        await self._patch(student_id, fields)

    async def delete_student(self, student_id: str) -> None:
        """Remove the student; whoever holds a selection of it must clear it."""
        self.repository.get(student_id)
        try:
            await self.repository.delete(student_id)
        except StoreError as e:
            logger.error(f"Error deleting student {student_id}: {e}")
            raise
