"""Per-connection dashboard state: which screen is showing and with what filters."""
import datetime as dt
from enum import Enum
from typing import Optional

from coachdesk.models.student import Student
from coachdesk.services import views


class View(str, Enum):
    CALENDAR = "calendar"
    MANAGE = "manage"
    DETAIL = "detail"
    ADD_FORM = "add_form"


class DashboardSession:
    """UI state for one coach session.

    ``nav`` is the screen picked in the sidebar (calendar or manage). A
    selected student or the add form is shown on top of it until dismissed.
    """

    def __init__(self, today: Optional[dt.date] = None):
        today = today or dt.date.today()
        self.nav = View.CALENDAR
        self.selected_student_id: Optional[str] = None
        self.is_adding = False
        self.selected_date = today
        self.attendance_search = ""
        self.roster_search = ""
        self.status_filter = views.StatusFilter.ACTIVE
        self.month_options: list[views.MonthOption] = []
        self._today = today

    def current_view(self, students: list[Student]) -> View:
        if self.is_adding:
            return View.ADD_FORM
        if self.selected_student(students) is not None:
            return View.DETAIL
        return self.nav

    def selected_student(self, students: list[Student]) -> Optional[Student]:
        if not self.selected_student_id:
            return None
        return next((s for s in students if s.id == self.selected_student_id), None)

    # Navigation

    def show(self, nav: View) -> None:
        if nav not in (View.CALENDAR, View.MANAGE):
            raise ValueError(f"Not a navigation view: {nav}")
        self.nav = nav
        self.selected_student_id = None
        self.is_adding = False

    def select(self, student_id: str) -> None:
        self.selected_student_id = student_id
        # Options are fixed for as long as the detail screen stays open
        self.month_options = views.payment_month_options(self._today)

    def back(self) -> None:
        self.selected_student_id = None

    def start_add(self) -> None:
        self.is_adding = True

    def finish_add(self) -> None:
        self.is_adding = False

    def student_deleted(self, student_id: str) -> None:
        if self.selected_student_id == student_id:
            self.selected_student_id = None

    # Filters

    def set_date(self, day: dt.date) -> None:
        self.selected_date = day

    def search_attendance(self, term: str) -> None:
        self.attendance_search = term or ""

    def search_roster(self, term: str) -> None:
        self.roster_search = term or ""

    def set_status_filter(self, status: views.StatusFilter | str) -> None:
        self.status_filter = views.StatusFilter(status)

    # Rendering

    def render(self, students: list[Student]) -> dict:
        """Payload for the screen currently showing."""
        view = self.current_view(students)
        payload = {"type": "view", "view": view.value, "nav": self.nav.value}
        if view == View.ADD_FORM:
            return payload
        if view == View.DETAIL:
            payload["detail"] = student_detail(self.selected_student(students), self.month_options)
            return payload
        if view == View.CALENDAR:
            active = [s for s in students if s.is_active]
            due = views.attendance_due(active, self.selected_date, self.attendance_search)
            payload.update(
                date=self.selected_date.isoformat(),
                weekday=views.weekday_name(self.selected_date),
                search=self.attendance_search,
                due=[d.model_dump(mode="json", by_alias=True) for d in due],
            )
            return payload
        listed = views.roster(students, self.status_filter, self.roster_search)
        payload.update(
            status=self.status_filter.value,
            search=self.roster_search,
            students=[s.model_dump(mode="json", by_alias=True) for s in listed],
        )
        return payload


def student_detail(student: Student, month_options: list[views.MonthOption]) -> dict:
    """Profile plus display-sorted histories; the stored lists are left untouched."""
    return {
        "student": student.model_dump(mode="json", by_alias=True),
        "payments": [p.model_dump(mode="json", by_alias=True) for p in views.sorted_payments(student.payments)],
        "notes": [n.model_dump(mode="json", by_alias=True) for n in views.sorted_notes(student.notes)],
        "attendance": [a.model_dump(mode="json", by_alias=True) for a in views.sorted_attendance(student.attendance)],
        "monthOptions": [o.model_dump(mode="json", by_alias=True) for o in month_options],
    }
