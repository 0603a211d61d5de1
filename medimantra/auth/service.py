"""
Authentication service layer for business logic.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from fastapi import BackgroundTasks
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import Settings
from ..core.security import (
    TokenService,
    generate_verification_token,
    get_token_expiry_time,
    hash_password,
    hash_token,
    is_token_expired,
    verify_password,
)
from ..database import transaction
from ..doctors.models import Doctor
from ..exceptions import AppException, TransactionAbortedException
from ..patients.models import Patient
from .exceptions import (
    AccountDeactivatedException,
    AccountNotFoundException,
    EmailAlreadyExistsException,
    EmailAlreadyVerifiedException,
    InvalidCredentialsException,
    InvalidTokenException,
    ProfileMissingException,
    ResetTokenInvalidException,
    VerificationTokenInvalidException,
)
from .models import User, UserRole
from .normalizers import normalize_doctor_profile
from .schemas import DoctorRegistration, PatientRegistration, UserCreate
from .utils import (
    Mailer,
    build_password_reset_url,
    build_verification_url,
    send_password_reset_email,
    send_verification_email,
)

# Set up logging
logger = logging.getLogger(__name__)

PROFESSIONAL_FIELDS = {
    "qualifications",
    "specialties",
    "languages",
    "hospital_affiliations",
    "experience",
    "consultation_fee",
}

PROFILE_MODELS = {
    UserRole.DOCTOR: Doctor,
    UserRole.PATIENT: Patient,
}


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == normalize_email(email)).first()


def _is_email_conflict(error: IntegrityError) -> bool:
    return "email" in str(error.orig).lower()


def _new_user(registration: UserCreate, role: UserRole) -> User:
    return User(
        first_name=registration.first_name.strip(),
        last_name=registration.last_name,
        email=normalize_email(registration.email),
        phone=registration.phone,
        password_hash=hash_password(registration.password),
        role=role,
        gender=registration.gender,
        date_of_birth=registration.date_of_birth,
        street=registration.address,
        city=registration.city,
        state=registration.state,
        postal_code=registration.zip_code,
        country="India",
        avatar=registration.profile_image,
        is_email_verified=False,
        is_active=True,
    )


def build_doctor_profile(user_id: int, registration: DoctorRegistration) -> Doctor:
    """
    Build the doctor profile for a new account from a registration payload.

    Professional fields go through the normalizers; the profile starts
    unverified with no availability.
    """
    fields = normalize_doctor_profile(registration.model_dump(include=PROFESSIONAL_FIELDS))
    return Doctor(
        user_id=user_id,
        gender=registration.gender or "",
        registration_number=registration.registration_number,
        registration_council="Medical Council of India",
        bio=registration.about or "",
        is_verified=False,
        verification_documents=[],
        availability=[],
        **fields,
    )


def build_patient_profile(user_id: int, registration: PatientRegistration) -> Patient:
    return Patient(
        user_id=user_id,
        date_of_birth=registration.date_of_birth,
        gender=registration.gender,
        blood_group=registration.blood_group,
        emergency_contact=registration.emergency_contact,
    )


def _register_account(
    db: Session,
    registration: UserCreate,
    role: UserRole,
    build_profile: Callable[[int], Any],
    tokens: TokenService,
    settings: Settings,
) -> Dict[str, Any]:
    """
    Create an account and its profile as one unit of work.

    Account, profile, verification digest and refresh token are written in a
    single transaction; nothing is persisted unless every step succeeds.

    Returns:
        Dict with the user, the profile, issued tokens and the raw
        verification token (for the email only, never stored)

    Raises:
        EmailAlreadyExistsException: If the email is taken
        ConfigurationMissingException: If a signing secret is missing
        TransactionAbortedException: For any other failure in the unit of work
    """
    email = normalize_email(registration.email)
    try:
        with transaction(db):
            if get_user_by_email(db, email):
                logger.warning(f"Registration failed: Email {email} already registered")
                raise EmailAlreadyExistsException()

            user = _new_user(registration, role)
            db.add(user)
            db.flush()

            profile = build_profile(user.id)
            db.add(profile)
            db.flush()

            raw_token = generate_verification_token()
            user.email_verification_token = hash_token(raw_token)
            user.email_verification_expires = get_token_expiry_time(settings.email_verification_expire_hours)

            issued = tokens.issue_tokens(user.id)
            user.refresh_token = issued["refresh_token"]
            db.flush()
    except (EmailAlreadyExistsException, AppException):
        raise
    except IntegrityError as e:
        if _is_email_conflict(e):
            logger.warning(f"Registration failed: Email {email} registered concurrently")
            raise EmailAlreadyExistsException()
        logger.error(f"{role.value.capitalize()} registration rolled back: {str(e.orig)}")
        raise TransactionAbortedException(str(e.orig))
    except Exception as e:
        logger.error(f"{role.value.capitalize()} registration rolled back: {str(e)}")
        raise TransactionAbortedException(str(e))

    logger.info(f"{role.value.capitalize()} account created: {user.id}")
    return {
        "user": user,
        "profile": profile,
        "access_token": issued["access_token"],
        "refresh_token": issued["refresh_token"],
        "verification_token": raw_token,
    }


def _schedule_verification_email(
    email: str,
    raw_token: str,
    settings: Settings,
    mailer: Optional[Mailer],
    background_tasks: Optional[BackgroundTasks],
    is_doctor: bool,
) -> None:
    if mailer is None:
        logger.warning(f"No mailer available, verification email to {email} skipped")
        return
    verification_url = build_verification_url(settings.client_url, raw_token)
    if background_tasks is not None:
        background_tasks.add_task(send_verification_email, mailer, email, verification_url, is_doctor)
    else:
        send_verification_email(mailer, email, verification_url, is_doctor)


def register_doctor(
    db: Session,
    registration: DoctorRegistration,
    tokens: TokenService,
    settings: Settings,
    mailer: Optional[Mailer] = None,
    background_tasks: Optional[BackgroundTasks] = None,
) -> Dict[str, Any]:
    """
    Register a new doctor: account, doctor profile and session in one transaction.

    The verification email is dispatched after commit and its failure never
    fails the registration.

    Args:
        db: Database session
        registration: Validated doctor registration payload
        tokens: Token service
        settings: Application settings (client URL, expiry)
        mailer: Mail collaborator for the verification email
        background_tasks: FastAPI BackgroundTasks for email sending

    Returns:
        Dict with message, user, doctor profile and tokens
    """
    logger.info(f"Doctor registration attempt for email: {registration.email}")
    result = _register_account(
        db,
        registration,
        UserRole.DOCTOR,
        lambda user_id: build_doctor_profile(user_id, registration),
        tokens,
        settings,
    )
    _schedule_verification_email(
        result["user"].email, result.pop("verification_token"), settings, mailer, background_tasks, is_doctor=True
    )
    result["message"] = "Doctor registered successfully. Please verify your email and wait for admin approval."
    return result


def register_patient(
    db: Session,
    registration: PatientRegistration,
    tokens: TokenService,
    settings: Settings,
    mailer: Optional[Mailer] = None,
    background_tasks: Optional[BackgroundTasks] = None,
) -> Dict[str, Any]:
    """
    Register a new patient: account, patient profile and session in one transaction.

    Returns:
        Dict with message, user, patient profile and tokens
    """
    logger.info(f"Patient registration attempt for email: {registration.email}")
    result = _register_account(
        db,
        registration,
        UserRole.PATIENT,
        lambda user_id: build_patient_profile(user_id, registration),
        tokens,
        settings,
    )
    _schedule_verification_email(
        result["user"].email, result.pop("verification_token"), settings, mailer, background_tasks, is_doctor=False
    )
    result["message"] = "Patient registered successfully. Please verify your email."
    return result


def login_user(
    db: Session,
    email: str,
    password: str,
    role: UserRole,
    tokens: TokenService,
) -> Dict[str, Any]:
    """
    Authenticate a user for a role-specific entry point and issue tokens.

    Args:
        db: Database session
        email: User's email address
        password: User's password
        role: Role expected by the entry point
        tokens: Token service

    Returns:
        Dict with message, user, role profile (if any) and tokens

    Raises:
        InvalidCredentialsException: Unknown email, wrong password or wrong role
        AccountDeactivatedException: If the account has been deactivated
        ProfileMissingException: If the role profile is absent
    """
    user = get_user_by_email(db, email)

    if not user or not verify_password(password, user.password_hash):
        logger.warning(f"Login failed: Invalid credentials for {email}")
        raise InvalidCredentialsException()

    if user.role != role:
        logger.warning(f"Login failed: {email} is not a {role.value} account")
        raise InvalidCredentialsException(f"This account is not registered as a {role.value}")

    if not user.is_active:
        logger.warning(f"Login failed: Account deactivated for {email}")
        raise AccountDeactivatedException()

    profile = None
    profile_model = PROFILE_MODELS.get(role)
    if profile_model is not None:
        profile = db.query(profile_model).filter(profile_model.user_id == user.id).first()
        if profile is None:
            logger.error(f"Login failed: {role.value} profile missing for user {user.id}")
            raise ProfileMissingException(f"{role.value.capitalize()} profile not found. Please contact support.")

    issued = tokens.issue_tokens(user.id)
    user.last_login = datetime.now(timezone.utc)
    user.refresh_token = issued["refresh_token"]
    db.commit()
    db.refresh(user)

    logger.info(f"Login successful: User {user.id} ({user.email})")
    return {
        "message": "Login successful",
        "user": user,
        "profile": profile,
        "access_token": issued["access_token"],
        "refresh_token": issued["refresh_token"],
    }


def refresh_session(db: Session, refresh_token: str, tokens: TokenService) -> Dict[str, Any]:
    """
    Issue a new access token from a stored refresh token.

    Raises:
        TokenExpiredException: If the refresh token has expired
        InvalidTokenException: If it is invalid or not the one stored on the account
        AccountDeactivatedException: If the account has been deactivated
    """
    payload = tokens.verify(refresh_token, refresh=True)
    user = db.get(User, payload["id"])
    if not user or user.refresh_token != refresh_token:
        logger.warning(f"Token refresh failed for user id {payload['id']}")
        raise InvalidTokenException("Invalid refresh token")
    if not user.is_active:
        raise AccountDeactivatedException()

    access_token = tokens.create_access_token(user.id)
    logger.info(f"Token refreshed for user {user.id} ({user.email})")
    return {"message": "Token refreshed successfully", "access_token": access_token}


def logout_user(db: Session, user: User) -> None:
    """Forget the stored refresh token so it can no longer be exchanged."""
    user.refresh_token = None
    db.commit()
    logger.info(f"User {user.id} logged out")


def verify_email(db: Session, raw_token: str) -> User:
    """
    Verify a user's email address with the token from the verification link.

    Raises:
        VerificationTokenInvalidException: If the token is unknown or expired
    """
    user = db.query(User).filter(User.email_verification_token == hash_token(raw_token)).first()
    if not user or not user.email_verification_expires or is_token_expired(user.email_verification_expires):
        logger.warning("Email verification failed: invalid or expired token")
        raise VerificationTokenInvalidException()

    user.is_email_verified = True
    user.email_verification_token = None
    user.email_verification_expires = None
    db.commit()
    logger.info(f"Email verified: {user.email}")
    return user


def resend_verification(
    db: Session,
    email: str,
    settings: Settings,
    mailer: Optional[Mailer] = None,
    background_tasks: Optional[BackgroundTasks] = None,
) -> None:
    """
    Issue a fresh verification token and email it.

    Raises:
        AccountNotFoundException: If no account has this email
        EmailAlreadyVerifiedException: If the email is already verified
    """
    user = get_user_by_email(db, email)
    if not user:
        logger.warning(f"Resend verification failed: Email {email} not found")
        raise AccountNotFoundException()
    if user.is_email_verified:
        raise EmailAlreadyVerifiedException()

    raw_token = generate_verification_token()
    user.email_verification_token = hash_token(raw_token)
    user.email_verification_expires = get_token_expiry_time(settings.email_verification_expire_hours)
    db.commit()

    _schedule_verification_email(
        user.email, raw_token, settings, mailer, background_tasks, is_doctor=user.role == UserRole.DOCTOR
    )


def deactivate_account(db: Session, user_id: int) -> User:
    """
    Deactivate an account; it can no longer log in or refresh its session.

    Raises:
        AccountNotFoundException: If the account does not exist
    """
    user = db.get(User, user_id)
    if not user:
        raise AccountNotFoundException()
    user.is_active = False
    user.refresh_token = None
    db.commit()
    db.refresh(user)
    logger.info(f"Account {user_id} deactivated")
    return user


def _schedule_password_reset_email(
    email: str,
    raw_token: str,
    settings: Settings,
    mailer: Optional[Mailer],
    background_tasks: Optional[BackgroundTasks],
) -> None:
    if mailer is None:
        logger.warning(f"No mailer available, password reset email to {email} skipped")
        return
    reset_url = build_password_reset_url(settings.client_url, raw_token)
    expire_minutes = settings.password_reset_expire_minutes
    if background_tasks is not None:
        background_tasks.add_task(send_password_reset_email, mailer, email, reset_url, expire_minutes)
    else:
        send_password_reset_email(mailer, email, reset_url, expire_minutes)


def forgot_password(
    db: Session,
    email: str,
    settings: Settings,
    mailer: Optional[Mailer] = None,
    background_tasks: Optional[BackgroundTasks] = None,
) -> None:
    """
    Store a password reset digest and email the raw token.

    Unknown and deactivated accounts are ignored without error so the
    response does not reveal which emails are registered.

    Args:
        db: Database session
        email: Address the reset was requested for
        settings: Application settings (client URL, link lifetime)
        mailer: Mail collaborator; the email is skipped when missing
        background_tasks: Runs the send after the response when given
    """
    user = get_user_by_email(db, email)
    if not user or not user.is_active:
        logger.warning(f"Password reset requested for unknown or inactive email: {email}")
        return

    raw_token = generate_verification_token()
    user.password_reset_token = hash_token(raw_token)
    user.password_reset_expires = get_token_expiry_time(hours=0, minutes=settings.password_reset_expire_minutes)
    db.commit()
    logger.info(f"Password reset token issued for user {user.id}")

    _schedule_password_reset_email(user.email, raw_token, settings, mailer, background_tasks)


def reset_password(db: Session, raw_token: str, new_password: str) -> User:
    """
    Set a new password using the token from the reset link.

    The token is single use and the stored refresh token is cleared, so
    existing sessions cannot be renewed with the old credentials.

    Raises:
        ResetTokenInvalidException: If the token is unknown or expired
    """
    user = db.query(User).filter(User.password_reset_token == hash_token(raw_token)).first()
    if not user or not user.password_reset_expires or is_token_expired(user.password_reset_expires):
        logger.warning("Password reset failed: invalid or expired token")
        raise ResetTokenInvalidException()

    user.password_hash = hash_password(new_password)
    user.password_reset_token = None
    user.password_reset_expires = None
    user.refresh_token = None
    db.commit()
    logger.info(f"Password reset for user {user.id}")
    return user


def change_password(db: Session, user: User, current_password: str, new_password: str) -> None:
    """
    Change the password of a signed-in user.

    Raises:
        InvalidCredentialsException: If the current password does not match
    """
    if not verify_password(current_password, user.password_hash):
        logger.warning(f"Password change failed for user {user.id}: wrong current password")
        raise InvalidCredentialsException("Current password is incorrect")

    user.password_hash = hash_password(new_password)
    db.commit()
    logger.info(f"Password changed for user {user.id}")
