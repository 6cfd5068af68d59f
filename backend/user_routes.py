import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from fastapi.responses import JSONResponse
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

import config
from auth import TOKEN_COOKIE_NAME, cookie_options, create_token
from database import USERS, get_db, now_iso, serialize_doc
from schemas import LoginRequest, UserCreate

logger = logging.getLogger(__name__)

user_router = APIRouter(tags=["Users"])


async def _get_user_or_404(db: AsyncIOMotorDatabase, uid: str) -> Dict[str, Any]:
    user = await db[USERS].find_one({"uid": uid})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _identity_claims(user: Dict[str, Any]) -> Dict[str, Any]:
    return {"uid": user.get("uid"), "email": user.get("email"), "role": user.get("role")}


@user_router.post("/users")
async def register_user(payload: UserCreate, db: AsyncIOMotorDatabase = Depends(get_db)):
    role = payload.role or config.DEFAULT_USER_ROLE
    if role not in config.SELF_SERVICE_ROLES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid role. Use one of: {', '.join(sorted(config.SELF_SERVICE_ROLES))}",
        )

    existing = await db[USERS].find_one({"uid": payload.uid})
    if existing:
        return {"message": "User already exists", "user": serialize_doc(existing)}

    timestamp = now_iso()
    user_doc = {
        "uid": payload.uid,
        "displayName": payload.name,
        "email": payload.email,
        "photoURL": payload.photoURL,
        "role": role,
        "createdAt": timestamp,
        "updatedAt": timestamp,
    }
    try:
        result = await db[USERS].insert_one(user_doc)
    except DuplicateKeyError:
        # Lost a registration race; the winner's record is the user.
        existing = await _get_user_or_404(db, payload.uid)
        return {"message": "User already exists", "user": serialize_doc(existing)}

    logger.info("Registered user uid=%s role=%s", payload.uid, user_doc["role"])
    return JSONResponse(
        status_code=201,
        content={"message": "User created successfully", "userId": str(result.inserted_id)},
    )


@user_router.get("/users/{uid}")
async def get_user(uid: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    user = await _get_user_or_404(db, uid)
    return {
        "uid": user.get("uid"),
        "email": user.get("email"),
        "displayName": user.get("displayName"),
        "role": user.get("role"),
        "photoURL": user.get("photoURL"),
    }


@user_router.get("/users/{uid}/role")
async def get_user_role(uid: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    user = await _get_user_or_404(db, uid)
    return {"role": user.get("role")}


@user_router.post("/auth/login")
async def login(payload: LoginRequest, db: AsyncIOMotorDatabase = Depends(get_db)):
    user = await _get_user_or_404(db, payload.uid)
    token = create_token(_identity_claims(user))
    return {
        "token": token,
        "user": {
            "uid": user.get("uid"),
            "email": user.get("email"),
            "displayName": user.get("displayName"),
            "role": user.get("role"),
        },
    }


@user_router.post("/jwt")
async def issue_cookie_token(
    claims: Optional[Dict[str, Any]] = Body(default=None),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    claims = claims or {}
    user = await db[USERS].find_one({"uid": claims["uid"]}) if claims.get("uid") else None
    if user:
        token_claims = _identity_claims(user)
    else:
        # Unknown callers get an identity-less token that no guarded route accepts.
        token_claims = {"email": claims.get("email")}
    logger.info("Issuing cookie token for email=%s uid=%s", token_claims.get("email"), token_claims.get("uid"))
    token = create_token(token_claims)
    response = JSONResponse(content={"success": True})
    response.set_cookie(TOKEN_COOKIE_NAME, token, **cookie_options())
    return response


@user_router.post("/logout")
async def logout(claims: Optional[Dict[str, Any]] = Body(default=None)):
    logger.info("Logging out email=%s", (claims or {}).get("email"))
    response = JSONResponse(content={"success": True})
    response.set_cookie(TOKEN_COOKIE_NAME, "", max_age=0, **cookie_options())
    return response
