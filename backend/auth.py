import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from motor.motor_asyncio import AsyncIOMotorDatabase

import config
from database import USERS, get_db

logger = logging.getLogger(__name__)

TOKEN_COOKIE_NAME = "token"

bearer_scheme = HTTPBearer(auto_error=False)


def cookie_options(is_production: Optional[bool] = None) -> Dict[str, Any]:
    production = config.IS_PRODUCTION if is_production is None else is_production
    return {
        "httponly": True,
        "secure": production,
        "samesite": "none" if production else "strict",
    }


def create_token(claims: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    payload = dict(claims)
    payload["exp"] = datetime.now(timezone.utc) + (
        expires_delta or timedelta(days=config.ACCESS_TOKEN_DAYS)
    )
    return jwt.encode(payload, config.JWT_SECRET, algorithm="HS256")


def decode_token(token: str) -> Dict[str, Any]:
    try:
        return jwt.decode(token, config.JWT_SECRET, algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")


def _extract_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> str:
    if credentials and credentials.credentials:
        return credentials.credentials
    token = request.cookies.get(TOKEN_COOKIE_NAME)
    if token:
        return token
    raise HTTPException(status_code=401, detail="Not authenticated")


async def get_token_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncIOMotorDatabase = Depends(get_db),
) -> Dict[str, Any]:
    payload = decode_token(_extract_token(request, credentials))
    # Only the uid identifies a caller; an email claim alone can be self-issued via /jwt.
    user = None
    if payload.get("uid"):
        user = await db[USERS].find_one({"uid": payload["uid"]})
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    return user


async def require_admin(user: Dict[str, Any] = Depends(get_token_user)) -> Dict[str, Any]:
    # Role comes from the stored record, never from token claims.
    if user.get("role") != "admin":
        logger.warning("Admin route denied for uid=%s role=%s", user.get("uid"), user.get("role"))
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
