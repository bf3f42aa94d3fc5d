"""Live dashboard session over a WebSocket.

The server owns the screen state (``DashboardSession``) and the store
subscription for as long as the socket is open. Every snapshot pushed by the
store re-renders the current screen. Navigation commands re-render at once;
write commands do not, their effect shows up with the next snapshot.
"""
import asyncio
import datetime as dt
import json
import logging
from typing import Any, Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from coachdesk.api.deps import StoreFactory, decode_token
from coachdesk.errors import AuthError, CoachDeskError, StoreError
from coachdesk.models.student import Note, StudentUpdate
from coachdesk.services.mutations import StudentMutations
from coachdesk.services.repository import StudentRepository
from coachdesk.services.session import DashboardSession, View

logger = logging.getLogger(__name__)

router = APIRouter()

# Close codes in the 4000-4999 application range
CLOSE_AUTH_FAILED = 4401


def _day(command: dict, session: DashboardSession) -> dt.date:
    value = command.get("date")
    return dt.date.fromisoformat(value) if value else session.selected_date


class CommandHandler:
    """Applies one client command to the session or the store."""

    def __init__(self, session: DashboardSession, repository: StudentRepository):
        self.session = session
        self.repository = repository
        self.mutations = StudentMutations(repository)

    def render(self) -> dict:
        return self.session.render(self.repository.students)

    async def handle(self, command: dict[str, Any]) -> Optional[dict]:
        action = command.get("action")
        handler = getattr(self, f"do_{action}", None) if isinstance(action, str) else None
        if handler is None:
            return {"type": "notice", "message": f"Unknown action: {action}"}
        try:
            return await handler(command)
        except KeyError as e:
            return {"type": "notice", "message": f"Missing field: {e.args[0]}"}
        except (CoachDeskError, TypeError, ValueError) as e:
            logger.debug("Rejected %s: %s", action, e)
            return {"type": "notice", "message": str(e)}

    # Navigation and filters

    async def do_show_calendar(self, command):
        self.session.show(View.CALENDAR)
        return self.render()

    async def do_show_manage(self, command):
        self.session.show(View.MANAGE)
        return self.render()

    async def do_select(self, command):
        self.session.select(command["studentId"])
        return self.render()

    async def do_back(self, command):
        self.session.back()
        return self.render()

    async def do_start_add(self, command):
        self.session.start_add()
        return self.render()

    async def do_cancel_add(self, command):
        self.session.finish_add()
        return self.render()

    async def do_set_date(self, command):
        self.session.set_date(dt.date.fromisoformat(command["date"]))
        return self.render()

    async def do_search_attendance(self, command):
        self.session.search_attendance(command.get("term", ""))
        return self.render()

    async def do_search_roster(self, command):
        self.session.search_roster(command.get("term", ""))
        return self.render()

    async def do_set_status_filter(self, command):
        self.session.set_status_filter(command["status"])
        return self.render()

    # Writes

    async def do_add_student(self, command):
        await self.repository.create(command["student"])
        self.session.finish_add()
        return self.render()

    async def do_update_student(self, command):
        data = StudentUpdate.model_validate(command["fields"])
        await self.mutations.update_profile(command["studentId"], data)

    async def do_delete_student(self, command):
        student_id = command["studentId"]
        await self.mutations.delete_student(student_id)
        self.session.student_deleted(student_id)
        return self.render()

    async def do_set_attendance(self, command):
        await self.mutations.set_attendance(command["studentId"], _day(command, self.session), command["status"])

    async def do_clear_attendance(self, command):
        await self.mutations.clear_attendance(command["studentId"], _day(command, self.session))

    async def do_add_note(self, command):
        await self.mutations.add_note(command["studentId"], _day(command, self.session), command.get("text", ""))

    async def do_update_note(self, command):
        await self.mutations.update_note(command["studentId"], Note.model_validate(command["note"]))

    async def do_delete_note(self, command):
        await self.mutations.delete_note(command["studentId"], command["noteId"])

    async def do_add_payment(self, command):
        await self.mutations.add_payment(command["studentId"], command.get("month"), command.get("amount"))

    async def do_delete_payment(self, command):
        await self.mutations.delete_payment(command["studentId"], command["paymentId"])


async def _push_snapshots(websocket: WebSocket, session: DashboardSession, snapshots) -> None:
    async for students in snapshots:
        await websocket.send_json(session.render(students))


async def _read_commands(websocket: WebSocket, handler: CommandHandler) -> None:
    while True:
        text = await websocket.receive_text()
        try:
            command = json.loads(text)
        except ValueError:
            await websocket.send_json({"type": "notice", "message": "Commands must be valid JSON"})
            continue
        if not isinstance(command, dict):
            await websocket.send_json({"type": "notice", "message": "Commands must be JSON objects"})
            continue
        reply = await handler.handle(command)
        if reply is not None:
            await websocket.send_json(reply)


@router.websocket("/ws")
async def dashboard_session(
    websocket: WebSocket,
    store_factory: StoreFactory,
    token: str = Query(..., description="Access token from /api/auth/sign-in"),
):
    await websocket.accept()
    try:
        coach = decode_token(token, "access")
        repository = StudentRepository(store_factory(coach.uid))
    except AuthError as e:
        await websocket.send_json({"type": "error", "message": str(e)})
        await websocket.close(code=CLOSE_AUTH_FAILED)
        return
    except StoreError as e:
        await websocket.send_json({"type": "error", "message": str(e)})
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return

    session = DashboardSession()
    handler = CommandHandler(session, repository)
    try:
        async with repository.subscribe() as snapshots:
            pump = asyncio.create_task(_push_snapshots(websocket, session, snapshots))
            reader = asyncio.create_task(_read_commands(websocket, handler))
            try:
                done, _ = await asyncio.wait({pump, reader}, return_when=asyncio.FIRST_COMPLETED)
            finally:
                pump.cancel()
                reader.cancel()
            for task in done:
                task.result()
    except WebSocketDisconnect:
        logger.info("Dashboard session for %s closed", coach.uid)
    except StoreError as e:
        logger.error(f"Subscription for {coach.uid} failed: {e}")
        await websocket.send_json({"type": "error", "message": str(e)})
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
