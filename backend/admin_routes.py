import logging
import re

from fastapi import APIRouter, Depends, HTTPException, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

import config
from auth import require_admin
from database import (
    MATERIALS,
    SESSIONS,
    USERS,
    delete_by_id,
    get_db,
    now_iso,
    serialize_docs,
    update_by_id,
)
from schemas import RoleUpdateRequest, SessionApproveRequest, SessionRejectRequest
from session_routes import (
    STATUS_APPROVED,
    STATUS_REJECTED,
    get_session_or_404,
    transition_session,
)

logger = logging.getLogger(__name__)

admin_router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


@admin_router.get("/users")
async def list_users(db: AsyncIOMotorDatabase = Depends(get_db)):
    users = await db[USERS].find({}).to_list(None)
    return serialize_docs(users)


@admin_router.get("/users/search")
async def search_users(q: str = Query(default=""), db: AsyncIOMotorDatabase = Depends(get_db)):
    pattern = re.escape(q)
    users = await db[USERS].find(
        {
            "$or": [
                {"displayName": {"$regex": pattern, "$options": "i"}},
                {"email": {"$regex": pattern, "$options": "i"}},
            ]
        }
    ).to_list(None)
    return serialize_docs(users)


@admin_router.patch("/users/{user_id}/role")
async def update_user_role(
    user_id: str,
    payload: RoleUpdateRequest,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: dict = Depends(require_admin),
):
    role = payload.role.strip().lower()
    if role not in config.USER_ROLE_OPTIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid role. Use one of: {', '.join(sorted(config.USER_ROLE_OPTIONS))}",
        )
    await update_by_id(db[USERS], user_id, {"role": role}, "User")
    logger.info("Admin %s set role of user %s to %s", admin.get("email"), user_id, role)
    return {"message": "User role updated successfully"}


@admin_router.get("/sessions")
async def list_all_sessions(db: AsyncIOMotorDatabase = Depends(get_db)):
    sessions = await db[SESSIONS].find({}).to_list(None)
    return serialize_docs(sessions)


@admin_router.patch("/sessions/{session_id}/approve")
async def approve_session(
    session_id: str,
    payload: SessionApproveRequest,
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    await transition_session(
        db,
        session_id,
        STATUS_APPROVED,
        {
            "isPaid": payload.isPaid,
            "registrationFee": payload.registrationFee,
            "approvedAt": now_iso(),
        },
    )
    return {"message": "Session approved successfully"}


@admin_router.patch("/sessions/{session_id}/reject")
async def reject_session(
    session_id: str,
    payload: SessionRejectRequest,
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    await transition_session(
        db,
        session_id,
        STATUS_REJECTED,
        {
            "rejectionReason": payload.reason,
            "rejectionResponse": payload.response,
            "rejectedAt": now_iso(),
        },
    )
    return {"message": "Session rejected successfully"}


@admin_router.delete("/sessions/{session_id}")
async def delete_session(session_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    session = await get_session_or_404(db, session_id)
    result = await db[SESSIONS].delete_one({"_id": session["_id"]})
    if result.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Session not found")
    logger.info("Deleted session %s", session["_id"])
    return {"message": "Session deleted successfully"}


@admin_router.get("/materials")
async def list_materials(db: AsyncIOMotorDatabase = Depends(get_db)):
    materials = await db[MATERIALS].find({}).to_list(None)
    return serialize_docs(materials)


@admin_router.delete("/materials/{material_id}")
async def delete_material(material_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    await delete_by_id(db[MATERIALS], material_id, "Material")
    return {"message": "Material deleted successfully"}
