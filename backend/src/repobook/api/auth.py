"""
Authentication for API endpoints.

Users hold one API key (``rb_live_...``). Only its SHA-256 hash and a short
display prefix are stored; the key itself is shown once when issued.
Passwords are hashed with salted PBKDF2-SHA256.
"""

import base64
import hashlib
import hmac
import secrets
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from repobook.config import settings
from repobook.db.connection import get_db
from repobook.db.repositories import UserRepository
from repobook.models.db import User

API_KEY_PREFIX = "rb_live_"


@dataclass
class AuthContext:
    """
    Identity of the caller.

    Attributes:
        user_id: UUID of the authenticated user
        email: User email
        is_admin: Whether the user bypasses credit checks and may use admin views
    """

    user_id: UUID
    email: str
    is_admin: bool = False

    @classmethod
    def from_user(cls, user: User) -> "AuthContext":
        return cls(user_id=user.id, email=user.email, is_admin=user.is_admin)


def hash_password(password: str, iterations: Optional[int] = None) -> str:
    """Hash a password as ``pbkdf2_sha256$<iterations>$<salt>$<digest>``."""
    iterations = iterations or settings.password_hash_iterations
    salt = secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt, iterations)
    return "$".join(
        [
            "pbkdf2_sha256",
            str(iterations),
            base64.b64encode(salt).decode(),
            base64.b64encode(digest).decode(),
        ]
    )


def verify_password(password: str, stored: str) -> bool:
    """Check a password against a stored PBKDF2 hash."""
    try:
        algorithm, iterations, salt, digest = stored.split("$")
    except ValueError:
        return False
    if algorithm != "pbkdf2_sha256":
        return False
    computed = hashlib.pbkdf2_hmac(
        "sha256", password.encode(), base64.b64decode(salt), int(iterations)
    )
    return hmac.compare_digest(computed, base64.b64decode(digest))


def hash_api_key(api_key: str) -> str:
    return hashlib.sha256(api_key.encode()).hexdigest()


def generate_api_key() -> tuple[str, str, str]:
    """
    Generate a new API key.

    Returns:
        Tuple of (full_key, prefix, sha256_hash)
    """
    random_part = secrets.token_urlsafe(32)
    full_key = f"{API_KEY_PREFIX}{random_part}"
    prefix = f"{API_KEY_PREFIX}{random_part[:4]}"
    return full_key, prefix, hash_api_key(full_key)


def issue_api_key(user: User) -> str:
    """Replace the user's API key and return the new plaintext key."""
    api_key, prefix, key_hash = generate_api_key()
    user.api_key_prefix = prefix
    user.api_key_hash = key_hash
    return api_key


def _resolve_user(authorization: Optional[str], db: Session) -> Optional[User]:
    if not authorization:
        return None
    if not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format",
        )

    api_key = authorization[7:].strip()
    user = UserRepository(db).get_by_api_key_hash(hash_api_key(api_key))
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )
    return user


def get_current_user(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> AuthContext:
    """
    Require an authenticated caller.

    Raises:
        HTTPException(401): If the header is missing or the key is unknown
    """
    user = _resolve_user(authorization, db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
    return AuthContext.from_user(user)


def get_optional_user(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> Optional[AuthContext]:
    """Like get_current_user, but anonymous callers get None instead of 401."""
    user = _resolve_user(authorization, db)
    return AuthContext.from_user(user) if user is not None else None


def require_admin(auth: AuthContext = Depends(get_current_user)) -> AuthContext:
    """Require an admin caller; 403 otherwise."""
    if not auth.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return auth
