"""
WolfPack — Auth Service
bcrypt password hashing, signed session tokens, login and logout.
"""

import asyncio
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
import logging

from config import settings
from errors import AuthenticationError
from models import User, RevokedSession

log = logging.getLogger(__name__)

ALGORITHM = "HS256"


# ══════════════════════════════════════════════════════════════════════════════
# PASSWORD HASHING
# ══════════════════════════════════════════════════════════════════════════════

def hash_password(plain: str) -> str:
    return bcrypt.hashpw(
        plain.encode("utf-8"),
        bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    ).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))


async def hash_password_async(plain: str) -> str:
    """bcrypt is CPU-bound; keep it off the event loop."""
    return await asyncio.to_thread(hash_password, plain)


async def verify_password_async(plain: str, hashed: str) -> bool:
    return await asyncio.to_thread(verify_password, plain, hashed)


# ══════════════════════════════════════════════════════════════════════════════
# SESSION TOKENS
# ══════════════════════════════════════════════════════════════════════════════

@dataclass
class SessionToken:
    token: str
    token_id: str
    expires_at: datetime


def create_session_token(user_id: int) -> SessionToken:
    expire = datetime.now(timezone.utc) + timedelta(days=settings.SESSION_EXPIRE_DAYS)
    token_id = uuid.uuid4().hex
    payload = {"sub": str(user_id), "jti": token_id, "exp": expire, "type": "session"}
    token = jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGORITHM)
    return SessionToken(token=token, token_id=token_id, expires_at=expire)


def decode_token(token: str) -> dict:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        raise AuthenticationError(f"Invalid session: {e}")
    if payload.get("type") != "session" or "sub" not in payload or "jti" not in payload:
        raise AuthenticationError("Invalid session.")
    return payload


async def is_revoked(db: AsyncSession, token_id: str) -> bool:
    result = await db.execute(select(RevokedSession.id).where(RevokedSession.token_id == token_id))
    return result.scalar_one_or_none() is not None


async def revoke_session(db: AsyncSession, payload: dict) -> None:
    if await is_revoked(db, payload["jti"]):
        return
    db.add(RevokedSession(
        token_id=payload["jti"],
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    ))
    await db.flush()


# ══════════════════════════════════════════════════════════════════════════════
# LOGIN
# ══════════════════════════════════════════════════════════════════════════════

async def get_user_by_username(db: AsyncSession, username: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


async def authenticate_user(db: AsyncSession, username: str, password: str) -> User:
    user = await get_user_by_username(db, username)
    if not user or not await verify_password_async(password, user.hashed_password):
        log.info(f"Login failed for '{username}'")
        raise AuthenticationError("Invalid username or password")
    return user
