"""Student roster, profile CRUD, notes and payments."""
import datetime as dt
import io
from typing import Any

import pandas as pd
from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from coachdesk.api.deps import Mutations, Repository
from coachdesk.models.student import AttendanceStatus, Note, StudentCreate, StudentUpdate
from coachdesk.services import views
from coachdesk.services.session import student_detail

router = APIRouter()


class NoteBody(BaseModel):
    date: dt.date
    text: str


class PaymentCreateBody(BaseModel):
    month: str | None = None
    amount: Any = None  # parsed by the payment handler


@router.get("/")
async def list_students(
    repository: Repository,
    status: views.StatusFilter = views.StatusFilter.ACTIVE,
    q: str = Query("", description="Search by student or parent name"),
):
    students = views.roster(repository.students, status, q)
    return [s.model_dump(mode="json", by_alias=True) for s in students]


@router.post("/", status_code=201)
async def create_student(data: StudentCreate, repository: Repository):
    student_id = await repository.create(data)
    return {"id": student_id}


@router.get("/export")
async def export_roster(
    repository: Repository,
    status: views.StatusFilter = views.StatusFilter.ALL,
    format: str = Query("csv", enum=["csv", "excel"]),
):
    """Download the roster with attendance counts and latest payment month."""
    rows = []
    for s in views.roster(repository.students, status):
        marks = list(s.attendance.values())
        rows.append(
            {
                "Name": s.name,
                "Parent": s.parent_name,
                "Contact": s.contact,
                "Package": s.package.value,
                "Enrolled Days": ", ".join(s.enrolled_days),
                "Waiver Signed": "Yes" if s.waiver_signed else "No",
                "Active": "Yes" if s.is_active else "No",
                "Present": marks.count(AttendanceStatus.PRESENT),
                "Absent": marks.count(AttendanceStatus.ABSENT),
                "Last Paid Month": max((p.month for p in s.payments), default=""),
            }
        )

    if not rows:
        raise HTTPException(status_code=404, detail="No students found for the given criteria")

    df = pd.DataFrame(rows)

    if format == "csv":
        stream = io.StringIO()
        df.to_csv(stream, index=False)
        return StreamingResponse(
            iter([stream.getvalue()]),
            media_type="text/csv",
            headers={"Content-Disposition": f"attachment; filename=students_{status.value}.csv"},
        )
    else:
        output = io.BytesIO()
        with pd.ExcelWriter(output, engine="openpyxl") as writer:
            df.to_excel(writer, index=False, sheet_name="Students")
        output.seek(0)
        return StreamingResponse(
            output,
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            headers={"Content-Disposition": f"attachment; filename=students_{status.value}.xlsx"},
        )


@router.get("/payment-months")
async def payment_months():
    """Months offered by the payment form."""
    return [o.model_dump(by_alias=True) for o in views.payment_month_options(dt.date.today())]


@router.get("/{student_id}")
async def get_student(student_id: str, repository: Repository):
    student = repository.get(student_id)
    return student_detail(student, views.payment_month_options(dt.date.today()))


@router.patch("/{student_id}")
async def update_student(student_id: str, data: StudentUpdate, mutations: Mutations):
    await mutations.update_profile(student_id, data)
    return {"updated": True}


@router.delete("/{student_id}", status_code=204)
async def delete_student(student_id: str, mutations: Mutations):
    await mutations.delete_student(student_id)


# Notes


@router.post("/{student_id}/notes", status_code=201)
async def add_note(student_id: str, body: NoteBody, mutations: Mutations):
    await mutations.add_note(student_id, body.date, body.text)
    return {"updated": True}


@router.put("/{student_id}/notes/{note_id}")
async def update_note(student_id: str, note_id: str, body: NoteBody, mutations: Mutations):
    await mutations.update_note(student_id, Note(id=note_id, date=body.date, text=body.text))
    return {"updated": True}


@router.delete("/{student_id}/notes/{note_id}", status_code=204)
async def delete_note(student_id: str, note_id: str, mutations: Mutations):
    await mutations.delete_note(student_id, note_id)


# Payments


@router.post("/{student_id}/payments", status_code=201)
async def add_payment(student_id: str, body: PaymentCreateBody, mutations: Mutations):
    await mutations.add_payment(student_id, body.month, body.amount)
    return {"updated": True}


@router.delete("/{student_id}/payments/{payment_id}", status_code=204)
async def delete_payment(student_id: str, payment_id: str, mutations: Mutations):
    await mutations.delete_payment(student_id, payment_id)
