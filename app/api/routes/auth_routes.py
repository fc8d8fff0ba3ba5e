"""
Authentication Routes

GET  /auth/email-available - Check whether an email can be registered
POST /auth/register - Register a job seeker account
POST /auth/register/employer - Register an employer account with its company
POST /auth/login - Verify credentials (starts two-factor challenge when enabled)
POST /auth/2fa/challenge - Start a two-factor challenge
POST /auth/2fa/verify - Exchange challenge id + code for a JWT
POST /auth/forgot-password - Request a password reset token
POST /auth/reset-password - Set a new password with a reset token
GET  /auth/me - Get current user info
"""

import logging
import uuid
from datetime import timedelta
from typing import Union

from fastapi import APIRouter, BackgroundTasks, HTTPException, Depends, Query, Response
from sqlalchemy import text

from app.core.auth import get_current_user, hash_password, issue_token_for_user, verify_password
from app.core.config import get_settings
from app.core.two_factor import (
    ChallengeExpired, ChallengeNotFound, InvalidCode, get_two_factor_store
)
from app.db.postgres import get_db_session, utcnow
from app.schemas.schemas import (
    RegisterRequest, EmployerRegisterRequest, LoginRequest, TokenResponse,
    TwoFactorChallengeResponse, TwoFactorVerifyRequest, EmailAvailabilityResponse,
    ForgotPasswordRequest, ForgotPasswordResponse, ResetPasswordRequest,
    CurrentUserResponse, MessageResponse
)
from app.services import email_service
from app.services.company_service import insert_company
from app.services.user_service import (
    create_job_seeker_profile, create_user, email_exists, get_user_profile, normalize_email
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

RESET_TOKEN_TTL = timedelta(hours=1)
FORGOT_PASSWORD_MESSAGE = "If an account exists for this email, a password reset link has been sent."


def _authenticate(email: str, password: str):
    """Return (id, email, first_name, last_name) or raise 401 without revealing which check failed."""
    with get_db_session() as db:
        result = db.execute(
            text("""
                SELECT id, email, first_name, last_name, password_hash, is_active, is_blocked
                FROM users WHERE LOWER(email) = :email
            """),
            {"email": normalize_email(email)}
        )
        user = result.fetchone()

    if not user or not user[5] or user[6] or not verify_password(password, user[4]):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return user[0], user[1], user[2], user[3]


def _send_challenge_code(email: str, full_name: str, code: str, ttl: int) -> None:
    try:
        email_service.send_template_email("auth_code", email, {
            "user_full_name": full_name,
            "otp_code": code,
            "otp_expires_minutes": ttl // 60,
        })
    except Exception:
        logger.exception("Could not email two-factor code to %s", email)


def _send_reset_email(email: str, first_name: str, link: str) -> None:
    settings = get_settings()
    try:
        email_service.send_email(
            email,
            f"Reset your {settings.app_name} password",
            f"Hi {first_name},\n\nUse the link below to reset your password. It expires in one hour.\n{link}\n\n"
            f"If you did not request this, you can ignore this email.",
        )
    except Exception:
        logger.exception("Could not send password reset email to %s", email)


def _start_challenge(user, background_tasks: BackgroundTasks) -> TwoFactorChallengeResponse:
    settings = get_settings()
    user_id, email, first_name, last_name = user
    challenge_id, code, ttl = get_two_factor_store().create(user_id)

    if settings.is_production:
        logger.info("Two-factor challenge %s issued for %s", challenge_id, email)
    else:
        logger.info("Two-factor code for %s: %s (challenge %s)", email, code, challenge_id)

    background_tasks.add_task(_send_challenge_code, email, f"{first_name} {last_name}".strip(), code, ttl)

    return TwoFactorChallengeResponse(
        challenge_id=challenge_id,
        expires_in_seconds=ttl,
        message="A verification code has been sent. Enter it to complete sign in.",
        otp_code=None if settings.is_production else code,
    )


@router.get("/email-available", response_model=EmailAvailabilityResponse)
async def email_available(email: str = Query(..., min_length=3, max_length=255)):
    """Check whether an email address is still free to register."""
    with get_db_session() as db:
        taken = email_exists(db, email)
    return EmailAvailabilityResponse(email=normalize_email(email), available=not taken)


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(request: RegisterRequest):
    """
    Register a new job seeker account.

    Creates the user, assigns the JOB_SEEKER role and an empty job seeker
    profile in one transaction, then returns an access token.
    """
    with get_db_session() as db:
        if email_exists(db, request.email):
            raise HTTPException(status_code=409, detail="Email already registered")

        user_id = create_user(
            db, request.first_name, request.last_name, request.email, request.password, "JOB_SEEKER"
        )
        create_job_seeker_profile(db, user_id)

    logger.info("Job seeker registered: %s", user_id)
    return issue_token_for_user(user_id)


@router.post("/register/employer", response_model=TokenResponse, status_code=201)
async def register_employer(request: EmployerRegisterRequest):
    """
    Register an employer account together with its company.

    The company starts active or pending depending on the approval mode.
    """
    with get_db_session() as db:
        if email_exists(db, request.email):
            raise HTTPException(status_code=409, detail="Email already registered")

        user_id = create_user(
            db, request.first_name, request.last_name, request.email, request.password, "EMPLOYER"
        )
        company = insert_company(db, request.company.model_dump(), created_by=user_id)

    logger.info("Employer registered: %s (company %s, %s)", user_id, company["id"], company["status"])
    return issue_token_for_user(user_id)


@router.post(
    "/login",
    response_model=Union[TwoFactorChallengeResponse, TokenResponse],
    responses={202: {"model": TwoFactorChallengeResponse}},
)
async def login(request: LoginRequest, response: Response, background_tasks: BackgroundTasks):
    """
    Verify credentials.

    With two-factor enabled, returns 202 and a challenge id; complete the
    login at /auth/2fa/verify. Otherwise returns the access token directly.
    """
    user = _authenticate(request.email, request.password)

    if get_settings().two_factor_enabled:
        response.status_code = 202
        return _start_challenge(user, background_tasks)

    return issue_token_for_user(user[0])


@router.post("/2fa/challenge", response_model=TwoFactorChallengeResponse)
async def create_challenge(request: LoginRequest, background_tasks: BackgroundTasks):
    """Start a new two-factor challenge (e.g. to resend a code)."""
    user = _authenticate(request.email, request.password)
    return _start_challenge(user, background_tasks)


@router.post("/2fa/verify", response_model=TokenResponse)
async def verify_challenge(request: TwoFactorVerifyRequest):
    """Complete two-factor login with the 6-digit code."""
    store = get_two_factor_store()
    try:
        user_id = store.verify(request.challenge_id, request.code)
    except ChallengeNotFound:
        raise HTTPException(status_code=400, detail="Invalid or expired challenge")
    except ChallengeExpired:
        raise HTTPException(status_code=400, detail="Challenge expired")
    except InvalidCode:
        raise HTTPException(status_code=401, detail="Invalid verification code")

    with get_db_session() as db:
        row = db.execute(
            text("SELECT is_active, is_blocked FROM users WHERE id = :id"), {"id": user_id}
        ).fetchone()
    if not row or not row[0] or row[1]:
        raise HTTPException(status_code=401, detail="Invalid credentials")

    return issue_token_for_user(user_id)


@router.post("/forgot-password", response_model=ForgotPasswordResponse)
async def forgot_password(request: ForgotPasswordRequest, background_tasks: BackgroundTasks):
    """
    Request a password reset.

    Always answers with the same message so account existence is not leaked.
    """
    settings = get_settings()
    reset_token = None

    with get_db_session() as db:
        result = db.execute(
            text("SELECT id, email, first_name FROM users WHERE LOWER(email) = :email AND is_active = TRUE"),
            {"email": normalize_email(request.email)}
        )
        user = result.fetchone()
        if user:
            reset_token = str(uuid.uuid4())
            now = utcnow()
            db.execute(
                text("""
                    UPDATE users SET password_reset_token = :token,
                        password_reset_expires_at = :expires,
                        password_reset_requested_at = :now,
                        updated_at = :now
                    WHERE id = :id
                """),
                {"token": reset_token, "expires": now + RESET_TOKEN_TTL, "now": now, "id": user[0]}
            )

    if user:
        link = f"{settings.cors_origins[0] if settings.cors_origins else ''}/reset-password?token={reset_token}"
        background_tasks.add_task(_send_reset_email, user[1], user[2], link)

    return ForgotPasswordResponse(
        message=FORGOT_PASSWORD_MESSAGE,
        reset_token=None if settings.is_production else reset_token,
    )


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(request: ResetPasswordRequest):
    """Set a new password using a valid, unexpired reset token."""
    now = utcnow()
    with get_db_session() as db:
        result = db.execute(
            text("""
                SELECT id FROM users
                WHERE password_reset_token = :token AND password_reset_expires_at > :now
            """),
            {"token": request.token, "now": now}
        )
        row = result.fetchone()
        if not row:
            raise HTTPException(status_code=400, detail="Invalid or expired reset token")

        db.execute(
            text("""
                UPDATE users SET password_hash = :hash,
                    password_reset_token = NULL,
                    password_reset_expires_at = NULL,
                    updated_at = :now
                WHERE id = :id
            """),
            {"hash": hash_password(request.password), "now": now, "id": row[0]}
        )

    return MessageResponse(message="Password has been reset. You can now sign in.")


@router.get("/me", response_model=CurrentUserResponse)
async def get_me(user: dict = Depends(get_current_user)):
    """Get current authenticated user's info with roles and permissions."""
    profile = get_user_profile(user["user_id"])
    if not profile:
        raise HTTPException(status_code=404, detail="User not found")
    return profile
