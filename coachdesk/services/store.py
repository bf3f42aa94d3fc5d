"""Document store client: per-coach student collection with push subscriptions.

Every backend exposes the same small surface the repository builds on:
``list``, ``watch``, ``create``, ``patch`` and ``delete``. Writes replace
whole top-level fields; there is no field-level merge and no version check,
so two sessions rewriting the same field race and the last write wins.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from beanie import PydanticObjectId
from bson.errors import InvalidId
from pydantic import ValidationError
from pymongo.errors import PyMongoError

from coachdesk.config import settings
from coachdesk.errors import StoreError, StudentNotFound
from coachdesk.models.student import Student, StudentDocument, dump_fields

logger = logging.getLogger(__name__)


def collection_path(app_id: str, coach_id: str) -> str:
    return f"artifacts/{app_id}/users/{coach_id}/students"


class StudentStore(ABC):
    """Students of one coach within one deployment."""

    def __init__(self, app_id: str, coach_id: str):
        self.app_id = app_id
        self.coach_id = coach_id

    @property
    def path(self) -> str:
        return collection_path(self.app_id, self.coach_id)

    @abstractmethod
    async def list(self) -> list[Student]:
        """Current contents of the collection."""

    @abstractmethod
    def watch(self):
        """Async context manager yielding an async iterator of full snapshots.

        The first snapshot is the initial load; one more follows every remote
        change, including this session's own writes. Leaving the context
        releases the subscription.
        """

    @abstractmethod
    async def create(self, fields: dict[str, Any]) -> str:
        """Insert a new student; returns the store-assigned id."""

    @abstractmethod
    async def patch(self, student_id: str, fields: dict[str, Any]) -> None:
        """Overwrite the given top-level fields."""

    @abstractmethod
    async def delete(self, student_id: str) -> None:
        """Remove the student document."""


class MongoStudentStore(StudentStore):
    """MongoDB via Beanie; pushes come from a change stream (replica set required)."""

    def _scope(self):
        return [StudentDocument.app_id == self.app_id, StudentDocument.coach_id == self.coach_id]

    async def _get(self, student_id: str) -> StudentDocument:
        try:
            oid = PydanticObjectId(student_id)
        except (InvalidId, TypeError):
            raise StudentNotFound(student_id)
        doc = await StudentDocument.find_one(StudentDocument.id == oid, *self._scope())
        if not doc:
            raise StudentNotFound(student_id)
        return doc

    async def list(self) -> list[Student]:
        try:
            docs = await StudentDocument.find(*self._scope()).to_list()
        except (PyMongoError, ValidationError) as e:
            raise StoreError("Failed to load student data.") from e
        return [d.to_student() for d in docs]

    @asynccontextmanager
    async def watch(self):
        pipeline = [
            {
                "$match": {
                    "$or": [
                        {"operationType": "delete"},
                        {"fullDocument.app_id": self.app_id, "fullDocument.coach_id": self.coach_id},
                    ]
                }
            }
        ]
        collection = StudentDocument.get_motor_collection()
        try:
            stream = collection.watch(pipeline, full_document="updateLookup")
            async with stream:
                logger.info("Subscribed to %s", self.path)
                yield self._snapshots(stream)
        except PyMongoError as e:
            raise StoreError("Failed to load student data.") from e
        finally:
            logger.debug("Released subscription to %s", self.path)

    async def _snapshots(self, stream) -> AsyncIterator[list[Student]]:
        yield await self.list()
        try:
            async for _change in stream:
                yield await self.list()
        except PyMongoError as e:
            raise StoreError("Failed to load student data.") from e

    async def create(self, fields: dict[str, Any]) -> str:
        doc = StudentDocument(app_id=self.app_id, coach_id=self.coach_id, **dump_fields(fields))
        try:
            await doc.insert()
        except PyMongoError as e:
            raise StoreError("Could not add student.") from e
        return str(doc.id)

    async def patch(self, student_id: str, fields: dict[str, Any]) -> None:
        try:
            doc = await self._get(student_id)
            await doc.set(dump_fields(fields))
        except PyMongoError as e:
            raise StoreError("Could not update student details.") from e

    async def delete(self, student_id: str) -> None:
        try:
            doc = await self._get(student_id)
            await doc.delete()
        except PyMongoError as e:
            raise StoreError("Could not delete student.") from e


def get_store(coach_id: str) -> StudentStore:
    """Store for the signed-in coach on the configured backend."""
    if settings.store_backend == "firestore":
        from coachdesk.services.firebase import FirestoreStudentStore

        return FirestoreStudentStore(settings.app_id, coach_id)
    return MongoStudentStore(settings.app_id, coach_id)
