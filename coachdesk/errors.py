"""Error taxonomy shared by the store, the handlers and the API layer."""


class CoachDeskError(Exception):
    """Base class; ``str(exc)`` is the message shown to the coach."""


class AuthError(CoachDeskError):
    """Identity service unreachable, or the credentials were rejected."""


class StoreError(CoachDeskError):
    """A subscription or a mutation against the document store failed."""


class ValidationError(CoachDeskError):
    """Local input rejected before any remote call was made."""


class StudentNotFound(CoachDeskError):
    def __init__(self, student_id: str):
        super().__init__(f"Student {student_id} not found")
        self.student_id = student_id


class NoteNotFound(CoachDeskError):
    def __init__(self, note_id: str):
        super().__init__(f"Note {note_id} not found")
        self.note_id = note_id


class PaymentNotFound(CoachDeskError):
    def __init__(self, payment_id: str):
        super().__init__(f"Payment {payment_id} not found")
        self.payment_id = payment_id
