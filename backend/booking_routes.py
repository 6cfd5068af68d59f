import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from database import BOOKINGS, SESSIONS, find_with_fallback, get_db, now_iso, serialize_doc
from schemas import BookingCreate

logger = logging.getLogger(__name__)

booking_router = APIRouter(prefix="/api", tags=["Bookings"])


@booking_router.post("/book-session")
async def book_session(payload: BookingCreate, db: AsyncIOMotorDatabase = Depends(get_db)):
    booking_key = {
        "studentEmail": payload.studentEmail,
        "studySessionId": payload.studySessionId,
    }
    booking_fields = {
        "tutorEmail": payload.tutorEmail,
        "sessionTitle": payload.sessionTitle,
        "registrationFee": payload.registrationFee or 0,
        "bookedAt": now_iso(),
    }
    # Check and insert in one round trip; the unique index backs concurrent upserts.
    try:
        result = await db[BOOKINGS].update_one(
            booking_key,
            {"$setOnInsert": booking_fields},
            upsert=True,
        )
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail="Session already booked")

    if result.upserted_id is None:
        raise HTTPException(status_code=400, detail="Session already booked")

    logger.info(
        "Booked session %s for %s booking_id=%s",
        payload.studySessionId,
        payload.studentEmail,
        result.upserted_id,
    )
    return JSONResponse(
        status_code=201,
        content={
            "success": True,
            "message": "Session booked successfully",
            "bookingId": str(result.upserted_id),
        },
    )


@booking_router.get("/booked-sessions/{email}")
async def list_booked_session_ids(email: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    bookings = await db[BOOKINGS].find({"studentEmail": email}).to_list(None)
    session_ids = [serialize_doc(booking).get("studySessionId") for booking in bookings]
    return {"success": True, "bookedSessions": session_ids}


@booking_router.get("/student/booked-sessions/{email}")
async def list_student_bookings(email: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    bookings = await db[BOOKINGS].find({"studentEmail": email}).to_list(None)
    booked_sessions = []
    for booking in bookings:
        session = await find_with_fallback(db[SESSIONS], str(booking.get("studySessionId")))
        entry = serialize_doc(booking)
        entry["sessionDetails"] = serialize_doc(session)
        booked_sessions.append(entry)
    return {"success": True, "bookedSessions": booked_sessions}
