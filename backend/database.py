import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from fastapi import HTTPException, Request
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import OperationFailure

logger = logging.getLogger(__name__)

USERS = "users"
SESSIONS = "StudyHub"
BOOKINGS = "bookedSession"
REVIEWS = "reviews"
NOTES = "notes"
MATERIALS = "studyMaterials"

BOOKING_UNIQUE_INDEX = "bookings_student_session_unique"


def create_client(mongo_url: str) -> AsyncIOMotorClient:
    return AsyncIOMotorClient(mongo_url)


def get_db(request: Request) -> AsyncIOMotorDatabase:
    return request.app.state.db


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def to_object_id(identifier: str) -> Optional[ObjectId]:
    if ObjectId.is_valid(identifier):
        return ObjectId(identifier)
    return None


def object_id_or_404(identifier: str, label: str) -> ObjectId:
    object_id = to_object_id(identifier)
    if object_id is None:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return object_id


async def find_with_fallback(collection, identifier: str) -> Optional[Dict[str, Any]]:
    """Resolve a document whose ``_id`` may be an ObjectId or a legacy string.

    Older records were stored with plain string ids, so a miss on the ObjectId
    form falls through to a literal string lookup.
    """
    doc = None
    object_id = to_object_id(identifier)
    if object_id is not None:
        doc = await collection.find_one({"_id": object_id})
    if doc is None:
        doc = await collection.find_one({"_id": identifier})
    return doc


async def update_by_id(collection, identifier: str, fields: Dict[str, Any], label: str) -> None:
    result = await collection.update_one(
        {"_id": object_id_or_404(identifier, label)},
        {"$set": {**fields, "updatedAt": now_iso()}},
    )
    if result.matched_count == 0:
        raise HTTPException(status_code=404, detail=f"{label} not found")


async def delete_by_id(collection, identifier: str, label: str) -> None:
    result = await collection.delete_one({"_id": object_id_or_404(identifier, label)})
    if result.deleted_count == 0:
        raise HTTPException(status_code=404, detail=f"{label} not found")


def serialize_doc(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if doc is None:
        return None
    return {key: _serialize_value(value) for key, value in doc.items()}


def serialize_docs(docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [serialize_doc(doc) for doc in docs]


def _serialize_value(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return serialize_doc(value)
    if isinstance(value, list):
        return [_serialize_value(item) for item in value]
    return value


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    await db[USERS].create_index("uid", unique=True, sparse=True)
    await db[USERS].create_index("email")
    await db[SESSIONS].create_index("tutorEmail")
    await db[SESSIONS].create_index("status")
    try:
        await db[BOOKINGS].create_index(
            [("studentEmail", 1), ("studySessionId", 1)],
            unique=True,
            name=BOOKING_UNIQUE_INDEX,
        )
    except OperationFailure as exc:
        # Legacy duplicate bookings block the build; the upsert still refuses sequential duplicates.
        logger.error(
            "Could not create %s on %s: %s. Run scripts/dedupe_bookings.py --apply --create-index",
            BOOKING_UNIQUE_INDEX,
            BOOKINGS,
            exc,
        )
    await db[REVIEWS].create_index("studySessionId")
    await db[NOTES].create_index("email")
    await db[MATERIALS].create_index("studySessionId")
    await db[MATERIALS].create_index("tutorEmail")
    logger.info("Database indexes ensured")
