"""
Account API routes.

- POST /auth/signup - Create an account and issue its first API key
- POST /auth/token - Exchange email and password for a fresh API key
- GET /auth/me - Current user
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from repobook.api.auth import (
    AuthContext,
    get_current_user,
    hash_password,
    issue_api_key,
    verify_password,
)
from repobook.api.schemas import (
    ApiKeyResponse,
    SignupRequest,
    SignupResponse,
    TokenRequest,
    UserResponse,
)
from repobook.config import settings
from repobook.db.connection import get_db
from repobook.db.repositories import RateLimitRepository, UserRepository
from repobook.exceptions import RateLimitExceededError, UserNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
)
def signup(request: SignupRequest, db: Session = Depends(get_db)) -> SignupResponse:
    """
    Create an account.

    The account whose email matches ADMIN_EMAIL is created as an admin.
    """
    email = request.email.strip().lower()
    if "@" not in email:
        raise HTTPException(status_code=400, detail="Invalid email address")

    users = UserRepository(db)
    if users.get_by_email(email) is not None:
        raise HTTPException(status_code=409, detail="Email already registered")

    user = users.create(
        email=email,
        name=request.name,
        password_hash=hash_password(request.password),
        is_admin=bool(settings.admin_email)
        and email == settings.admin_email.strip().lower(),
    )
    api_key = issue_api_key(user)
    db.commit()
    db.refresh(user)

    logger.info(f"Created user {user.id} (admin={user.is_admin})")
    return SignupResponse(user=UserResponse.model_validate(user), api_key=api_key)


@router.post("/token", response_model=ApiKeyResponse)
def issue_token(request: TokenRequest, db: Session = Depends(get_db)) -> ApiKeyResponse:
    """
    Issue a new API key; the previous key stops working.

    Attempts are rate limited per email.
    """
    email = request.email.strip().lower()
    key = f"token:{email}"
    allowed = RateLimitRepository(db).hit(
        key, settings.token_rate_limit, settings.token_rate_window_seconds
    )
    db.commit()
    if not allowed:
        logger.warning(f"Token rate limit hit for {email}")
        raise RateLimitExceededError(key)

    user = UserRepository(db).get_by_email(email)
    if user is None or not verify_password(request.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    api_key = issue_api_key(user)
    db.commit()
    logger.info(f"Issued new API key for user {user.id}")
    return ApiKeyResponse(api_key=api_key)


@router.get("/me", response_model=UserResponse)
def get_me(
    auth: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> UserResponse:
    user = UserRepository(db).get_fresh(auth.user_id)
    if user is None:
        raise UserNotFoundError(auth.user_id)
    return UserResponse.model_validate(user)
