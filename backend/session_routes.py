import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase

from database import SESSIONS, find_with_fallback, get_db, now_iso, serialize_doc, serialize_docs
from schemas import SessionCreate

logger = logging.getLogger(__name__)

session_router = APIRouter(tags=["Sessions"])

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"

# target status -> statuses it may be entered from
SESSION_TRANSITIONS: Dict[str, List[str]] = {
    STATUS_APPROVED: [STATUS_PENDING],
    STATUS_REJECTED: [STATUS_PENDING],
    STATUS_PENDING: [STATUS_REJECTED],
}


def _status_filter(allowed: List[str]) -> Dict[str, Any]:
    values: List[Optional[str]] = list(allowed)
    if STATUS_PENDING in allowed:
        # Sessions created before status tracking have no status field.
        values.append(None)
    return {"$in": values}


async def get_session_or_404(db: AsyncIOMotorDatabase, session_id: str) -> Dict[str, Any]:
    session = await find_with_fallback(db[SESSIONS], session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


async def transition_session(
    db: AsyncIOMotorDatabase,
    session_id: str,
    target_status: str,
    fields: Dict[str, Any],
) -> Dict[str, Any]:
    session = await get_session_or_404(db, session_id)
    allowed = SESSION_TRANSITIONS[target_status]
    result = await db[SESSIONS].update_one(
        {"_id": session["_id"], "status": _status_filter(allowed)},
        {"$set": {"status": target_status, **fields}},
    )
    if result.matched_count == 0:
        current = session.get("status") or STATUS_PENDING
        raise HTTPException(
            status_code=409,
            detail=f"Cannot move session from {current} to {target_status}",
        )
    logger.info("Session %s moved to %s", session["_id"], target_status)
    return session


@session_router.get("/")
async def root():
    return {"status": "StudyHub API running"}


@session_router.get("/data")
async def list_sessions(db: AsyncIOMotorDatabase = Depends(get_db)):
    sessions = await db[SESSIONS].find({}).to_list(None)
    return serialize_docs(sessions)


@session_router.get("/data/{session_id}")
async def get_session(session_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    session = await get_session_or_404(db, session_id)
    return serialize_doc(session)


@session_router.post("/api/tutor/sessions")
async def create_session(payload: SessionCreate, db: AsyncIOMotorDatabase = Depends(get_db)):
    session_doc = payload.model_dump()
    session_doc.update(
        {
            "registrationFee": 0,
            "status": STATUS_PENDING,
            "createdAt": now_iso(),
        }
    )
    result = await db[SESSIONS].insert_one(session_doc)
    logger.info("Tutor %s created session %s", payload.tutorEmail, result.inserted_id)
    return {"success": True, "sessionId": str(result.inserted_id)}


@session_router.get("/api/tutor/sessions/{email}")
async def list_tutor_sessions(email: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    sessions = await db[SESSIONS].find({"tutorEmail": email}).to_list(None)
    return {"success": True, "sessions": serialize_docs(sessions)}


@session_router.get("/api/tutor/approved-sessions/{email}")
async def list_tutor_approved_sessions(email: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    sessions = await db[SESSIONS].find({"tutorEmail": email, "status": STATUS_APPROVED}).to_list(None)
    return {"success": True, "sessions": serialize_docs(sessions)}


@session_router.put("/api/tutor/sessions/{session_id}/resubmit")
async def resubmit_session(session_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    await transition_session(db, session_id, STATUS_PENDING, {"resubmittedAt": now_iso()})
    return {"success": True}
