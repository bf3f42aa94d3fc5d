"""Firebase: Firestore-backed student store and ID-token verification."""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

import firebase_admin
from firebase_admin import auth, credentials, exceptions, firestore
from google.api_core.exceptions import GoogleAPICallError, NotFound
from pydantic import ValidationError

from coachdesk.config import settings
from coachdesk.errors import AuthError, StoreError, StudentNotFound
from coachdesk.models.student import Student, dump_fields
from coachdesk.services.store import StudentStore

logger = logging.getLogger(__name__)

_firebase_app = None


def get_firebase_app() -> Optional[firebase_admin.App]:
    global _firebase_app
    if _firebase_app is not None:
        return _firebase_app

    if not settings.firebase_credentials_path:
        logger.warning("FIREBASE_CREDENTIALS_PATH not set. Firebase features are disabled.")
        return None

    try:
        cred = credentials.Certificate(settings.firebase_credentials_path)
        options = {"projectId": settings.firebase_project_id} if settings.firebase_project_id else None
        _firebase_app = firebase_admin.initialize_app(cred, options)
        return _firebase_app
    except (ValueError, OSError) as e:
        logger.error(f"Failed to initialize Firebase app: {e}")
        return None


def verify_id_token(token: str) -> str:
    """Return the uid carried by a Firebase ID token."""
    app = get_firebase_app()
    if not app:
        raise AuthError("Could not connect to authentication service.")
    try:
        claims = auth.verify_id_token(token, app=app)
    except (ValueError, auth.InvalidIdTokenError, auth.ExpiredIdTokenError, auth.RevokedIdTokenError) as e:
        raise AuthError("Invalid or expired token") from e
    except exceptions.FirebaseError as e:
        logger.error(f"Firebase token verification failed: {e}")
        raise AuthError("Could not connect to authentication service.") from e
    return claims["uid"]


def _to_student(snapshot) -> Student:
    return Student.model_validate({"id": snapshot.id, **(snapshot.to_dict() or {})})


def _to_students(snapshots) -> list[Student]:
    """Parse documents, skipping any that no longer fit the model."""
    students = []
    for snapshot in snapshots:
        try:
            students.append(_to_student(snapshot))
        except ValidationError as e:
            logger.warning(f"Skipping unreadable student document {snapshot.id}: {e}")
    return students


class FirestoreStudentStore(StudentStore):
    """Cloud Firestore collection ``artifacts/{app_id}/users/{uid}/students``.

    The Admin SDK is synchronous, so calls run in worker threads. Snapshot
    listeners fire on a background thread and are handed over to the event
    loop through a queue.
    """

    def __init__(self, app_id: str, coach_id: str):
        super().__init__(app_id, coach_id)
        app = get_firebase_app()
        if not app:
            raise StoreError("Failed to initialize the application.")
        self._collection = firestore.client(app).collection(self.path)

    async def list(self) -> list[Student]:
        try:
            snapshots = await asyncio.to_thread(lambda: list(self._collection.stream()))
        except GoogleAPICallError as e:
            raise StoreError("Failed to load student data.") from e
        return _to_students(snapshots)

    @asynccontextmanager
    async def watch(self):
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue()

        def on_snapshot(docs, changes, read_time):
            # Runs on the listener thread; failures are handed to the loop as StoreError
            try:
                item = _to_students(docs)
            except Exception as e:
                logger.error(f"Snapshot listener for {self.path} failed: {e}")
                item = StoreError("Failed to load student data.")
            loop.call_soon_threadsafe(queue.put_nowait, item)

        try:
            watch = self._collection.on_snapshot(on_snapshot)
        except GoogleAPICallError as e:
            raise StoreError("Failed to load student data.") from e
        logger.info("Subscribed to %s", self.path)
        try:
            yield self._drain(queue)
        finally:
            watch.unsubscribe()
            logger.debug("Released subscription to %s", self.path)

    async def _drain(self, queue: asyncio.Queue):
        while True:
            item = await queue.get()
            if isinstance(item, StoreError):
                raise item
            yield item

    async def create(self, fields: dict[str, Any]) -> str:
        data = dump_fields(fields, by_alias=True)
        try:
            _, ref = await asyncio.to_thread(self._collection.add, data)
        except GoogleAPICallError as e:
            raise StoreError("Could not add student.") from e
        return ref.id

    async def patch(self, student_id: str, fields: dict[str, Any]) -> None:
        data = dump_fields(fields, by_alias=True)
        ref = self._collection.document(student_id)
        try:
            await asyncio.to_thread(ref.update, data)
        except NotFound as e:
            raise StudentNotFound(student_id) from e
        except GoogleAPICallError as e:
            raise StoreError("Could not update student details.") from e

    async def delete(self, student_id: str) -> None:
        try:
            await asyncio.to_thread(self._collection.document(student_id).delete)
        except GoogleAPICallError as e:
            raise StoreError("Could not delete student.") from e
