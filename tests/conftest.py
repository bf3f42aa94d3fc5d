import asyncio
import os
import uuid
from contextlib import asynccontextmanager

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("STORE_BACKEND", "mongo")

import pytest
from fastapi.testclient import TestClient

from coachdesk.api.deps import Identity, create_access_token, get_store_factory
from coachdesk.errors import StoreError, StudentNotFound
from coachdesk.main import app
from coachdesk.models.student import Student, dump_fields
from coachdesk.services.store import StudentStore


class InMemoryStudentStore(StudentStore):
    """Store double: keeps camelCase documents like Firestore and pushes every change."""

    def __init__(self, app_id: str = "test-app", coach_id: str = "coach-1"):
        super().__init__(app_id, coach_id)
        self.docs: dict[str, dict] = {}
        self.listeners: list[tuple[asyncio.AbstractEventLoop, asyncio.Queue]] = []
        self.fail_writes = False
        self.fail_watch = False
        self.writes: list[tuple[str, str, dict]] = []

    def _snapshot(self) -> list[Student]:
        return [Student.model_validate({"id": i, **d}) for i, d in self.docs.items()]

    def _notify(self):
        snapshot = self._snapshot()
        for loop, queue in list(self.listeners):
            loop.call_soon_threadsafe(queue.put_nowait, snapshot)

    def _check(self, message: str):
        if self.fail_writes:
            raise StoreError(message)

    def seed(self, **fields) -> str:
        student_id = fields.pop("id", None) or uuid.uuid4().hex
        data = Student.model_validate({"id": student_id, **fields}).model_dump(exclude={"id"})
        self.docs[student_id] = dump_fields(data, by_alias=True)
        return student_id

    async def list(self) -> list[Student]:
        return self._snapshot()

    @asynccontextmanager
    async def watch(self):
        if self.fail_watch:
            raise StoreError("Failed to load student data.")
        entry = (asyncio.get_running_loop(), asyncio.Queue())
        entry[1].put_nowait(self._snapshot())
        self.listeners.append(entry)
        try:
            yield self._drain(entry[1])
        finally:
            self.listeners.remove(entry)

    async def _drain(self, queue):
        while True:
            yield await queue.get()

    async def create(self, fields):
        self._check("Could not add student.")
        student_id = uuid.uuid4().hex
        self.docs[student_id] = dump_fields(fields, by_alias=True)
        self.writes.append(("create", student_id, fields))
        self._notify()
        return student_id

    async def patch(self, student_id, fields):
        self._check("Could not update student details.")
        if student_id not in self.docs:
            raise StudentNotFound(student_id)
        self.docs[student_id].update(dump_fields(fields, by_alias=True))
        self.writes.append(("patch", student_id, fields))
        self._notify()

    async def delete(self, student_id):
        self._check("Could not delete student.")
        if student_id not in self.docs:
            raise StudentNotFound(student_id)
        del self.docs[student_id]
        self.writes.append(("delete", student_id, {}))
        self._notify()


@pytest.fixture
def store():
    return InMemoryStudentStore()


@pytest.fixture
def client(store):
    stores = {store.coach_id: store}

    def factory(uid: str) -> StudentStore:
        if uid not in stores:
            stores[uid] = InMemoryStudentStore(coach_id=uid)
        return stores[uid]

    app.dependency_overrides[get_store_factory] = lambda: factory
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def access_token(store):
    return create_access_token(Identity(uid=store.coach_id, provider="anonymous"))


@pytest.fixture
def auth_headers(access_token):
    return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture
def make_student():
    def make(**fields) -> Student:
        defaults = {"id": uuid.uuid4().hex, "name": "Alice", "contact": "555-0100"}
        return Student.model_validate({**defaults, **fields})

    return make
