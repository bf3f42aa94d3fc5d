import datetime as dt

from coachdesk.models.student import Note, Payment
from coachdesk.services import views

MONDAY = dt.date(2024, 3, 4)


def test_weekday_and_keys():
    assert views.weekday_name(MONDAY) == "Monday"
    assert views.weekday_name(dt.date(2024, 3, 10)) == "Sunday"
    assert views.date_key(MONDAY) == "2024-03-04"
    assert views.month_key(MONDAY) == "2024-03"


def test_enrolled_unmarked_student_is_due(make_student):
    alice = make_student(name="Alice", enrolled_days=["Monday"])
    due = views.attendance_due([alice], MONDAY)
    assert [d.student.id for d in due] == [alice.id]


def test_marking_removes_student_from_due_list(make_student):
    alice = make_student(name="Alice", enrolled_days=["Monday"], attendance={"2024-03-04": "present"})
    assert views.attendance_due([alice], MONDAY) == []
    # A mark on another day does not matter
    assert len(views.attendance_due([alice], MONDAY + dt.timedelta(days=7))) == 1


def test_not_enrolled_excluded_regardless_of_payment_or_waiver(make_student):
    bob = make_student(
        name="Bob",
        enrolled_days=["Tuesday"],
        waiver_signed=True,
        payments=[Payment(id="p1", month="2024-03", amount=50, date_received=dt.datetime(2024, 3, 1))],
    )
    assert views.attendance_due([bob], MONDAY) == []


def test_inactive_students_never_due(make_student):
    carl = make_student(name="Carl", enrolled_days=["Monday"], is_active=False)
    assert views.attendance_due([carl], MONDAY) == []


def test_due_search_is_case_insensitive_on_name_only(make_student):
    alice = make_student(name="Alice Smith", parent_name="Zed", enrolled_days=["Monday"])
    bob = make_student(name="Bob", enrolled_days=["Monday"])
    assert [d.student.name for d in views.attendance_due([alice, bob], MONDAY, "SMI")] == ["Alice Smith"]
    assert views.attendance_due([alice, bob], MONDAY, "zed") == []
    assert len(views.attendance_due([alice, bob], MONDAY, "")) == 2


def test_due_keeps_repository_order(make_student):
    students = [make_student(name=n, enrolled_days=["Monday"]) for n in ("Zoe", "Adam", "Mia")]
    assert [d.student.name for d in views.attendance_due(students, MONDAY)] == ["Zoe", "Adam", "Mia"]


def test_payment_flag_does_not_affect_inclusion(make_student):
    paid = make_student(
        name="Paid",
        enrolled_days=["Monday"],
        payments=[Payment(id="p1", month="2024-03", amount=50, date_received=dt.datetime(2024, 3, 1))],
    )
    unpaid = make_student(
        name="Unpaid",
        enrolled_days=["Monday"],
        payments=[Payment(id="p2", month="2024-02", amount=50, date_received=dt.datetime(2024, 2, 1))],
    )
    due = views.attendance_due([paid, unpaid], MONDAY)
    assert [(d.student.name, d.has_paid_current_month) for d in due] == [("Paid", True), ("Unpaid", False)]


def test_has_paid_for_month(make_student):
    student = make_student(
        payments=[
            Payment(id="a", month="2024-03", amount=20, date_received=dt.datetime(2024, 3, 1)),
            Payment(id="b", month="2024-03", amount=30, date_received=dt.datetime(2024, 3, 2)),
        ]
    )
    assert views.has_paid_for_month(student, "2024-03")
    assert not views.has_paid_for_month(student, "2024-04")


def test_roster_status_filter(make_student):
    active = make_student(name="Active")
    inactive = make_student(name="Gone", is_active=False)
    everyone = [active, inactive]
    assert views.roster(everyone, views.StatusFilter.ACTIVE) == [active]
    assert views.roster(everyone, views.StatusFilter.INACTIVE) == [inactive]
    assert views.roster(everyone, views.StatusFilter.ALL) == everyone
    assert views.roster(everyone, "all") == everyone


def test_roster_search_matches_student_or_parent(make_student):
    kid = make_student(name="Tim", parent_name="Sarah Jones")
    other = make_student(name="Jonas")
    no_parent = make_student(name="Lee", parent_name="")
    everyone = [kid, other, no_parent]
    assert views.roster(everyone, "all", "JON") == [kid, other]
    assert views.roster(everyone, "all", "sarah") == [kid]
    assert views.roster(everyone, "all", "") == everyone


def test_payment_month_options_window():
    options = views.payment_month_options(dt.date(2024, 3, 15))
    assert len(options) == 12
    assert options[0].value == "2024-04"
    assert options[0].label == "April 2024"
    assert options[-1].value == "2023-05"
    values = [o.value for o in options]
    assert values == sorted(values, reverse=True)
    assert len(set(values)) == 12


def test_payment_month_options_cross_year_end():
    options = views.payment_month_options(dt.date(2024, 12, 31))
    assert options[0].value == "2025-01"
    assert options[1].value == "2024-12"
    assert options[-1].value == "2024-02"


def test_shift_month():
    assert views.shift_month(dt.date(2024, 1, 31), -1) == dt.date(2023, 12, 1)
    assert views.shift_month(dt.date(2024, 11, 30), 2) == dt.date(2025, 1, 1)


def test_display_sorts_leave_stored_values_untouched(make_student):
    payments = [
        Payment(id="old", month="2024-01", amount=10, date_received=dt.datetime(2024, 1, 5)),
        Payment(id="new", month="2024-02", amount=10, date_received=dt.datetime(2024, 2, 5)),
    ]
    notes = [
        Note(id="n1", date=dt.date(2024, 1, 1), text="first"),
        Note(id="n2", date=dt.date(2024, 3, 1), text="latest"),
    ]
    attendance = {"2024-01-01": "present", "2024-03-01": "absent", "2024-02-01": "present"}
    student = make_student(payments=payments, notes=notes, attendance=attendance)

    assert [p.id for p in views.sorted_payments(student.payments)] == ["new", "old"]
    assert [n.id for n in views.sorted_notes(student.notes)] == ["n2", "n1"]
    assert [a.date for a in views.sorted_attendance(student.attendance)] == [
        "2024-03-01",
        "2024-02-01",
        "2024-01-01",
    ]
    assert [p.id for p in student.payments] == ["old", "new"]
    assert [n.id for n in student.notes] == ["n1", "n2"]
    assert list(student.attendance) == ["2024-01-01", "2024-03-01", "2024-02-01"]
