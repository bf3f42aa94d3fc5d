"""Attendance calendar: who still needs a mark today, and marking them."""
import datetime as dt
from typing import Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel

from coachdesk.api.deps import Mutations, Repository
from coachdesk.models.student import AttendanceStatus
from coachdesk.services import views

router = APIRouter()


class AttendanceMarkBody(BaseModel):
    status: AttendanceStatus


@router.get("/due")
async def attendance_due(
    repository: Repository,
    date: Optional[dt.date] = Query(None, description="Day to mark (YYYY-MM-DD), defaults to today"),
    q: str = Query("", description="Search by student name"),
):
    """Active students enrolled on the day's weekday and not yet marked for it."""
    day = date or dt.date.today()
    due = views.attendance_due(repository.students, day, q)
    return {
        "date": day.isoformat(),
        "weekday": views.weekday_name(day),
        "count": len(due),
        "students": [d.model_dump(mode="json", by_alias=True) for d in due],
    }


@router.put("/{student_id}/{date}")
async def mark_attendance(student_id: str, date: dt.date, body: AttendanceMarkBody, mutations: Mutations):
    await mutations.set_attendance(student_id, date, body.status)
    return {"updated": True}


@router.delete("/{student_id}/{date}", status_code=204)
async def clear_attendance(student_id: str, date: dt.date, mutations: Mutations):
    await mutations.clear_attendance(student_id, date)
