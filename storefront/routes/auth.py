import hashlib
import logging
import secrets
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlmodel import Session, select

from storefront.config import settings
from storefront.database import get_session
from storefront.models.pending_registration import PendingRegistration
from storefront.models.user import User
from storefront.notifications import NotificationEvent, dispatch_order_event
from storefront.schemas.user_schemas import (
    ChangeEmailRequest,
    ConfirmEmailChange,
    ForgotPasswordRequest,
    ProfileUpdate,
    RegisterConfirm,
    ResendOtp,
    ResetPasswordRequest,
    Token,
    UserLogin,
    UserRead,
    UserRegister,
)
from storefront.utils.hash import hash_password, verify_password
from storefront.utils.token import create_access_token, decode_access_token, get_current_user
from storefront.utils.timeutils import as_utc, utcnow

logger = logging.getLogger(__name__)

router = APIRouter()


def generate_otp() -> str:
    return f"{secrets.randbelow(10 ** 6):06d}"


def password_fingerprint(user: User) -> str:
    """Changes with the password hash, so a reset link works only once."""
    return hashlib.sha256(user.password.encode()).hexdigest()[:16]


# -------- REGISTRATION (OTP) --------

@router.post("/register", status_code=status.HTTP_202_ACCEPTED)
def register_user(payload: UserRegister, session: Session = Depends(get_session)):
    existing_user = session.exec(select(User).where(User.email == payload.email)).first()
    if existing_user:
        raise HTTPException(400, "Email already registered")

    otp = generate_otp()
    expires_at = utcnow() + timedelta(minutes=settings.OTP_EXPIRE_MINUTES)

    # Registering again replaces the previous code
    pending = session.exec(
        select(PendingRegistration).where(PendingRegistration.email == payload.email)
    ).first() or PendingRegistration(email=payload.email, password_hash="", otp_hash="", expires_at=expires_at)

    pending.name = payload.name
    pending.password_hash = hash_password(payload.password)
    pending.otp_hash = hash_password(otp)
    pending.expires_at = expires_at

    session.add(pending)
    session.commit()

    logger.info(f"Registration OTP issued for {payload.email}")

    dispatch_order_event(
        NotificationEvent.REGISTRATION_OTP,
        to=payload.email,
        notify_admin=False,
        name=payload.name,
        otp=otp,
        expires_minutes=settings.OTP_EXPIRE_MINUTES,
    )

    return {"message": "Verification code sent", "email": payload.email}


@router.put("/register", status_code=status.HTTP_202_ACCEPTED)
def resend_otp(payload: ResendOtp, session: Session = Depends(get_session)):
    pending = session.exec(
        select(PendingRegistration).where(PendingRegistration.email == payload.email)
    ).first()
    if not pending:
        raise HTTPException(404, "No pending registration for this email")

    otp = generate_otp()
    pending.otp_hash = hash_password(otp)
    pending.expires_at = utcnow() + timedelta(minutes=settings.OTP_EXPIRE_MINUTES)

    session.add(pending)
    session.commit()

    logger.info(f"Registration OTP re-sent for {payload.email}")

    dispatch_order_event(
        NotificationEvent.REGISTRATION_OTP,
        to=payload.email,
        notify_admin=False,
        name=pending.name,
        otp=otp,
        expires_minutes=settings.OTP_EXPIRE_MINUTES,
    )

    return {"message": "Verification code sent", "email": payload.email}


@router.post("/register/confirm", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def confirm_registration(payload: RegisterConfirm, session: Session = Depends(get_session)):
    pending = session.exec(
        select(PendingRegistration).where(PendingRegistration.email == payload.email)
    ).first()

    if not pending or not verify_password(payload.otp, pending.otp_hash):
        raise HTTPException(400, "Invalid verification code")

    if as_utc(pending.expires_at) < utcnow():
        session.delete(pending)
        session.commit()
        raise HTTPException(400, "Verification code has expired, please register again")

    if session.exec(select(User).where(User.email == pending.email)).first():
        raise HTTPException(400, "Email already registered")

    user = User(
        name=pending.name,
        email=pending.email,
        password=pending.password_hash,
    )

    session.add(user)
    session.delete(pending)
    session.commit()
    session.refresh(user)

    logger.info(f"User {user.id} registered")
    return user


# -------- LOGIN / SESSION --------

@router.post("/login", response_model=Token)
def login(payload: UserLogin, response: Response, session: Session = Depends(get_session)):
    user = session.exec(select(User).where(User.email == payload.email)).first()

    if not user or not verify_password(payload.password, user.password):
        raise HTTPException(401, "Invalid email or password")

    if not user.can_login:
        raise HTTPException(403, "User account is disabled")

    token = create_access_token({"user_id": user.id, "role": user.role})

    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="lax",
        max_age=settings.access_token_expire_minutes * 60,
    )
    return Token(access_token=token, token_type="bearer")


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(settings.AUTH_COOKIE_NAME)
    return {"message": "Logout successful"}


@router.get("/me", response_model=UserRead)
def me(current_user: User = Depends(get_current_user)):
    return current_user


@router.put("/me", response_model=UserRead)
def update_profile(
    payload: ProfileUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(current_user, field, value)

    session.add(current_user)
    session.commit()
    session.refresh(current_user)
    return current_user


# -------- PASSWORD RESET --------

@router.post("/reset_password")
def forgot_password(payload: ForgotPasswordRequest, session: Session = Depends(get_session)):
    user = session.exec(select(User).where(User.email == payload.email)).first()
    if not user:
        raise HTTPException(404, "User not found")

    reset_token = create_access_token(
        {"user_id": user.id, "action": "reset_password", "pwd": password_fingerprint(user)},
        expires_delta=timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES),
    )

    logger.info(f"Password reset requested for user {user.id}")

    dispatch_order_event(
        NotificationEvent.PASSWORD_RESET,
        to=user.email,
        notify_admin=False,
        name=user.name,
        reset_link=f"{settings.APP_URL}/reset-password?token={reset_token}",
        expires_minutes=settings.RESET_TOKEN_EXPIRE_MINUTES,
    )

    return {"message": "Reset link sent"}


@router.patch("/reset_password")
def reset_password(payload: ResetPasswordRequest, session: Session = Depends(get_session)):
    claims = decode_access_token(payload.token)
    if not claims or claims.get("action") != "reset_password":
        raise HTTPException(400, "Invalid or expired token")

    user = session.get(User, claims.get("user_id"))
    if not user or claims.get("pwd") != password_fingerprint(user):
        raise HTTPException(400, "Invalid or expired token")

    user.password = hash_password(payload.new_password)

    session.add(user)
    session.commit()

    logger.info(f"Password reset for user {user.id}")
    return {"message": "Password updated successfully"}


# -------- EMAIL CHANGE --------

@router.post("/reset_email")
def request_email_change(
    payload: ChangeEmailRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    if payload.new_email == current_user.email:
        raise HTTPException(400, "New email is the same as the current one")

    if session.exec(select(User).where(User.email == payload.new_email)).first():
        raise HTTPException(400, "Email already registered")

    change_token = create_access_token(
        {
            "user_id": current_user.id,
            "action": "change_email",
            "email": current_user.email,
            "new_email": payload.new_email,
        },
        expires_delta=timedelta(minutes=settings.EMAIL_CHANGE_EXPIRE_MINUTES),
    )

    logger.info(f"Email change requested for user {current_user.id}")

    # Confirmation goes to the current address
    dispatch_order_event(
        NotificationEvent.EMAIL_CHANGE,
        to=current_user.email,
        notify_admin=False,
        name=current_user.name,
        new_email=payload.new_email,
        confirm_link=f"{settings.APP_URL}/reset-email?token={change_token}",
        expires_minutes=settings.EMAIL_CHANGE_EXPIRE_MINUTES,
    )

    return {"message": "Confirmation link sent to your current email"}


@router.patch("/reset_email", response_model=UserRead)
def confirm_email_change(payload: ConfirmEmailChange, session: Session = Depends(get_session)):
    claims = decode_access_token(payload.token)
    if not claims or claims.get("action") != "change_email":
        raise HTTPException(400, "Invalid or expired token")

    user = session.get(User, claims.get("user_id"))
    if not user or user.email != claims.get("email"):
        raise HTTPException(400, "Invalid or expired token")

    new_email = claims.get("new_email")
    if session.exec(select(User).where(User.email == new_email)).first():
        raise HTTPException(400, "Email already registered")

    user.email = new_email

    session.add(user)
    session.commit()
    session.refresh(user)

    logger.info(f"Email changed for user {user.id}")
    return user
