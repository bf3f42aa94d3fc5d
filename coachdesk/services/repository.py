"""In-memory reflection of a coach's student collection."""
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Union

from coachdesk.errors import StoreError, StudentNotFound
from coachdesk.models.student import Student, StudentCreate
from coachdesk.services.store import StudentStore

logger = logging.getLogger(__name__)


class StudentRepository:
    """Holds the latest snapshot pushed by the store.

    Nothing here updates the snapshot optimistically: a write becomes visible
    only when the store echoes it back through ``subscribe`` or ``load``.
    """

    def __init__(self, store: StudentStore):
        self.store = store
        self._students: list[Student] = []

    @property
    def students(self) -> list[Student]:
        return list(self._students)

    def get(self, student_id: str) -> Student:
        for s in self._students:
            if s.id == student_id:
                return s
        raise StudentNotFound(student_id)

    def find(self, student_id: str | None) -> Student | None:
        if not student_id:
            return None
        return next((s for s in self._students if s.id == student_id), None)

    async def load(self) -> list[Student]:
        self._students = await self.store.list()
        return self.students

    @asynccontextmanager
    async def subscribe(self):
        """Live snapshots for as long as the context is held."""
        async with self.store.watch() as snapshots:
            yield self._reflect(snapshots)

    async def _reflect(self, snapshots) -> AsyncIterator[list[Student]]:
        async for students in snapshots:
            self._students = list(students)
            logger.debug("Snapshot of %s: %d student(s)", self.store.path, len(self._students))
            yield self.students

    async def create(self, data: Union[StudentCreate, dict[str, Any]]) -> str:
        if not isinstance(data, StudentCreate):
            data = StudentCreate.model_validate(data)
        fields = data.model_dump()
        fields.update(notes=[], payments=[], attendance={})
        try:
            student_id = await self.store.create(fields)
        except StoreError as e:
            logger.error(f"Error adding student to {self.store.path}: {e}")
            raise
        logger.info("Added student %s to %s", student_id, self.store.path)
        return student_id

    async def patch(self, student_id: str, fields: dict[str, Any]) -> None:
        await self.store.patch(student_id, fields)

    async def delete(self, student_id: str) -> None:
        await self.store.delete(student_id)
        logger.info("Deleted student %s from %s", student_id, self.store.path)
