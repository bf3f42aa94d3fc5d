"""Document store startup: MongoDB with Beanie, or Firebase for Firestore."""
from beanie import init_beanie
from motor.motor_asyncio import AsyncIOMotorClient

from coachdesk.config import settings
from coachdesk.errors import StoreError
from coachdesk.models import StudentDocument
from coachdesk.services.firebase import get_firebase_app


_client = None


async def db_startup():
    """Connect the configured backend."""
    global _client
    if settings.store_backend == "firestore":
        if get_firebase_app() is None:
            raise StoreError("Firestore backend selected but Firebase could not be initialized.")
        return
    _client = AsyncIOMotorClient(settings.mongodb_url)
    await init_beanie(
        database=_client[settings.mongodb_db_name],
        document_models=[StudentDocument],
    )


async def db_shutdown():
    """Close MongoDB connection."""
    global _client
    if _client:
        _client.close()
        _client = None
