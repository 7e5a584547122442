"""
Account credentials and session tokens for TeamHub members.

Passwords are stored as passlib hashes. A login issues an HS256 bearer token
naming the user id; the API reloads the user on every request, so the token
carries identity only and never roles or club membership.
"""
from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone

from passlib.context import CryptContext
from jose import JWTError, jwt

from teamhub.models import User

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "teamhub-dev-secret-change-in-production")
ALGORITHM = "HS256"
TOKEN_ISSUER = "teamhub"
TOKEN_TTL = timedelta(days=7)
PASSWORD_MIN_LENGTH = 8


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def check_password(plain: str, stored_hash: str | None) -> tuple[bool, str | None]:
    """
    (matches, replacement_hash). replacement_hash is set when the stored hash
    uses outdated settings and should be written back.
    """
    if not stored_hash:
        return False, None
    return pwd_context.verify_and_update(plain, stored_hash)


def issue_token(user: User, now: datetime | None = None) -> str:
    issued = now or datetime.now(timezone.utc)
    claims = {
        "sub": user.id,
        "iss": TOKEN_ISSUER,
        "iat": issued,
        "exp": issued + TOKEN_TTL,
    }
    return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)


def token_user_id(token: str) -> str | None:
    """User id from a valid, unexpired TeamHub token; None otherwise."""
    try:
        claims = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM], issuer=TOKEN_ISSUER)
    except JWTError:
        return None
    sub = claims.get("sub")
    return sub if isinstance(sub, str) and sub else None
