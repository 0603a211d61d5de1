"""
Authentication routes: registration, login and session management.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    File,
    Form,
    Header,
    Response,
    UploadFile,
    status,
)
from sqlalchemy.orm import Session

from ..config import Settings
from ..core.cloudinary import ALLOWED_IMAGE_TYPES, MAX_IMAGE_SIZE, CloudinaryStorage
from ..core.security import TokenService
from ..database import get_db
from .dependencies import (
    ACCESS_TOKEN_COOKIE,
    get_app_settings,
    get_current_user,
    get_mailer,
    get_storage,
    get_token_service,
    require_admin,
)
from .exceptions import InvalidTokenException, ValidationFailureException
from .models import User, UserRole
from .schemas import (
    AuthResponse,
    DoctorProfileSummary,
    DoctorRegistration,
    MessageResponse,
    PasswordChange,
    PasswordReset,
    PasswordResetConfirm,
    PatientProfileSummary,
    PatientRegistration,
    RefreshTokenRequest,
    ResendVerification,
    TokenResponse,
    UserLogin,
    UserResponse,
    VerifyEmailRequest,
)
from .service import (
    change_password,
    deactivate_account,
    forgot_password,
    login_user,
    logout_user,
    refresh_session,
    register_doctor,
    register_patient,
    resend_verification,
    reset_password,
    verify_email,
)
from .utils import Mailer, coerce_form_field, coerce_form_value

# Set up logging
logger = logging.getLogger(__name__)

# Create API router
router = APIRouter()


def upload_avatar(avatar: Optional[UploadFile], storage: CloudinaryStorage) -> Optional[str]:
    """
    Validate and upload an optional avatar image.

    Runs before any database work. An upload failure leaves the account
    without an avatar; an invalid file rejects the request.

    Raises:
        ValidationFailureException: If the file type or size is not allowed
    """
    if avatar is None or not avatar.filename:
        return None
    if avatar.content_type not in ALLOWED_IMAGE_TYPES:
        raise ValidationFailureException("Invalid image type. Only jpg, png, webp allowed.")
    if avatar.size and avatar.size > MAX_IMAGE_SIZE:
        raise ValidationFailureException("Image too large. Max 2MB allowed.")
    return storage.upload_profile_image(avatar.file)


def set_access_cookie(response: Response, access_token: str, settings: Settings) -> None:
    response.set_cookie(
        key=ACCESS_TOKEN_COOKIE,
        value=access_token,
        httponly=True,
        samesite="strict",
        secure=settings.is_production,
        max_age=settings.access_token_expire_days * 24 * 60 * 60,
    )


def build_auth_response(result: Dict[str, Any], role: UserRole) -> AuthResponse:
    profile = result.get("profile")
    return AuthResponse(
        message=result["message"],
        user=UserResponse.model_validate(result["user"]),
        doctor_profile=DoctorProfileSummary.model_validate(profile) if role == UserRole.DOCTOR and profile else None,
        patient_profile=PatientProfileSummary.model_validate(profile) if role == UserRole.PATIENT and profile else None,
        access_token=result["access_token"],
    )


@router.post("/register/doctor", response_model=AuthResponse, status_code=status.HTTP_201_CREATED, summary="Doctor Self-Registration")
async def register_doctor_route(
    response: Response,
    background_tasks: BackgroundTasks,
    first_name: str = Form(...),
    last_name: Optional[str] = Form(None),
    email: str = Form(...),
    password: str = Form(...),
    phone: Optional[str] = Form(None),
    date_of_birth: Optional[str] = Form(None),
    gender: Optional[str] = Form(None),
    address: Optional[str] = Form(None),
    city: Optional[str] = Form(None),
    state: Optional[str] = Form(None),
    zip_code: Optional[str] = Form(None),
    registration_number: Optional[str] = Form(None),
    about: Optional[str] = Form(None),
    qualifications: Optional[List[str]] = Form(None),
    specialties: Optional[List[str]] = Form(None),
    languages: Optional[List[str]] = Form(None),
    hospital_affiliations: Optional[List[str]] = Form(None),
    experience: Optional[str] = Form(None),
    consultation_fee: Optional[str] = Form(None),
    avatar: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
    settings: Settings = Depends(get_app_settings),
    mailer: Mailer = Depends(get_mailer),
    storage: CloudinaryStorage = Depends(get_storage),
):
    """
    Doctor registration endpoint.

    Creates the account, the doctor profile and a session in one transaction.
    The profile starts unverified until an administrator reviews it; a
    verification email is sent after the account is committed.

    Professional list fields may be repeated, sent as a comma-separated
    string, or sent as a JSON array/object string.

    Returns:
        AuthResponse with the account, the profile summary and the access token

    Raises:
        EmailAlreadyExistsException: If the email is already registered
        ValidationFailureException: If the avatar is not an allowed image
        TransactionAbortedException: If the registration unit fails
    """
    registration = DoctorRegistration(
        first_name=first_name,
        last_name=last_name,
        email=email,
        password=password,
        phone=phone,
        date_of_birth=date_of_birth or None,
        gender=gender,
        address=address,
        city=city,
        state=state,
        zip_code=zip_code,
        registration_number=registration_number,
        about=about,
        qualifications=coerce_form_field(qualifications),
        specialties=coerce_form_field(specialties),
        languages=coerce_form_field(languages),
        hospital_affiliations=coerce_form_field(hospital_affiliations),
        experience=experience,
        consultation_fee=coerce_form_value(consultation_fee),
    )
    registration.profile_image = upload_avatar(avatar, storage)

    result = register_doctor(db, registration, tokens, settings, mailer, background_tasks)
    set_access_cookie(response, result["access_token"], settings)
    return build_auth_response(result, UserRole.DOCTOR)


@router.post("/register/patient", response_model=AuthResponse, status_code=status.HTTP_201_CREATED, summary="Patient Self-Registration")
async def register_patient_route(
    response: Response,
    background_tasks: BackgroundTasks,
    first_name: str = Form(...),
    last_name: Optional[str] = Form(None),
    email: str = Form(...),
    password: str = Form(...),
    phone: Optional[str] = Form(None),
    date_of_birth: Optional[str] = Form(None),
    gender: Optional[str] = Form(None),
    address: Optional[str] = Form(None),
    city: Optional[str] = Form(None),
    state: Optional[str] = Form(None),
    zip_code: Optional[str] = Form(None),
    blood_group: Optional[str] = Form(None),
    emergency_contact: Optional[str] = Form(None),
    avatar: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
    settings: Settings = Depends(get_app_settings),
    mailer: Mailer = Depends(get_mailer),
    storage: CloudinaryStorage = Depends(get_storage),
):
    """
    Patient self-registration endpoint.

    Returns:
        AuthResponse with the account, the profile summary and the access token
    """
    registration = PatientRegistration(
        first_name=first_name,
        last_name=last_name,
        email=email,
        password=password,
        phone=phone,
        date_of_birth=date_of_birth or None,
        gender=gender,
        address=address,
        city=city,
        state=state,
        zip_code=zip_code,
        blood_group=blood_group,
        emergency_contact=emergency_contact,
    )
    registration.profile_image = upload_avatar(avatar, storage)

    result = register_patient(db, registration, tokens, settings, mailer, background_tasks)
    set_access_cookie(response, result["access_token"], settings)
    return build_auth_response(result, UserRole.PATIENT)


def _login(role: UserRole, login_data: UserLogin, response: Response, db: Session, tokens: TokenService, settings: Settings):
    result = login_user(db, login_data.email, login_data.password, role, tokens)
    set_access_cookie(response, result["access_token"], settings)
    return build_auth_response(result, role)


@router.post("/login/doctor", response_model=AuthResponse, summary="Doctor Login")
async def login_doctor_route(
    login_data: UserLogin,
    response: Response,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
    settings: Settings = Depends(get_app_settings),
):
    """
    Doctor login endpoint.

    Sets the ``accessToken`` cookie and returns the token in the body.

    Raises:
        InvalidCredentialsException: Unknown email, wrong password or not a doctor account
        AccountDeactivatedException: If the account has been deactivated
        ProfileMissingException: If the doctor profile is missing
    """
    return _login(UserRole.DOCTOR, login_data, response, db, tokens, settings)


@router.post("/login/patient", response_model=AuthResponse, summary="Patient Login")
async def login_patient_route(
    login_data: UserLogin,
    response: Response,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
    settings: Settings = Depends(get_app_settings),
):
    """Patient login endpoint. Same contract as the doctor login."""
    return _login(UserRole.PATIENT, login_data, response, db, tokens, settings)


@router.post("/login/admin", response_model=AuthResponse, summary="Admin Login")
async def login_admin_route(
    login_data: UserLogin,
    response: Response,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
    settings: Settings = Depends(get_app_settings),
):
    return _login(UserRole.ADMIN, login_data, response, db, tokens, settings)


@router.post("/refresh-token", response_model=TokenResponse, summary="Refresh Access Token")
async def refresh_token_route(
    refresh_data: RefreshTokenRequest,
    response: Response,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
    settings: Settings = Depends(get_app_settings),
):
    """Exchange the stored refresh token for a new access token."""
    result = refresh_session(db, refresh_data.refresh_token, tokens)
    set_access_cookie(response, result["access_token"], settings)
    return TokenResponse(**result)


@router.post("/token/renew", response_model=TokenResponse, summary="Renew Access Token Near Expiry")
async def renew_token_route(
    response: Response,
    authorization: Optional[str] = Header(None),
    tokens: TokenService = Depends(get_token_service),
    settings: Settings = Depends(get_app_settings),
):
    """
    Re-issue the Bearer access token when it is close to expiry.

    Raises:
        InvalidTokenException: If no Bearer token is sent or it is invalid
        TokenNotEligibleException: If the token still has more than the
            refresh threshold of validity left
    """
    token = TokenService.extract_from_header(authorization)
    if not token:
        raise InvalidTokenException("No token provided")
    access_token = tokens.refresh(token)
    set_access_cookie(response, access_token, settings)
    return TokenResponse(message="Token refreshed successfully", access_token=access_token)


@router.post("/logout", response_model=MessageResponse, summary="User Logout")
async def logout_route(
    response: Response,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Invalidate the stored refresh token and clear the access cookie."""
    logout_user(db, current_user)
    response.delete_cookie(ACCESS_TOKEN_COOKIE)
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=UserResponse, summary="Get Current User Profile")
async def get_current_user_profile(current_user: User = Depends(get_current_user)):
    return current_user


@router.post("/verify-email", response_model=MessageResponse, summary="Verify Email Address")
async def verify_email_route(
    verification_data: VerifyEmailRequest,
    db: Session = Depends(get_db),
):
    """
    Verify email endpoint.

    Raises:
        VerificationTokenInvalidException: If the token is unknown or expired
    """
    verify_email(db, verification_data.token)
    return MessageResponse(message="Email verified successfully")


@router.post("/resend-verification", response_model=MessageResponse, summary="Resend Verification Email")
async def resend_verification_route(
    resend_data: ResendVerification,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    mailer: Mailer = Depends(get_mailer),
):
    """
    Resend verification email endpoint.

    Raises:
        AccountNotFoundException: If no account has this email
        EmailAlreadyVerifiedException: If the email is already verified
    """
    resend_verification(db, resend_data.email, settings, mailer, background_tasks)
    return MessageResponse(message="Verification email sent")


@router.post("/forgot-password", response_model=MessageResponse, summary="Request Password Reset")
async def forgot_password_route(
    reset_request: PasswordReset,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    mailer: Mailer = Depends(get_mailer),
):
    """
    Request a password reset link.

    The response is the same whether or not the email is registered.
    """
    forgot_password(db, reset_request.email, settings, mailer, background_tasks)
    return MessageResponse(message="If the email is registered, a password reset link has been sent")


@router.post("/reset-password", response_model=MessageResponse, summary="Reset Password With Token")
async def reset_password_route(
    reset_data: PasswordResetConfirm,
    db: Session = Depends(get_db),
):
    """
    Reset password endpoint.

    Raises:
        ResetTokenInvalidException: If the token is unknown or expired
    """
    reset_password(db, reset_data.token, reset_data.new_password)
    return MessageResponse(message="Password reset successful")


@router.put("/change-password", response_model=MessageResponse, summary="Change Password")
async def change_password_route(
    password_data: PasswordChange,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Change the signed-in user's password.

    Raises:
        InvalidCredentialsException: If the current password is incorrect
    """
    change_password(db, current_user, password_data.current_password, password_data.new_password)
    return MessageResponse(message="Password changed successfully")


@router.put("/admin/deactivate/{user_id}", response_model=UserResponse, summary="Admin Deactivates User Account")
async def admin_deactivate_user_route(
    user_id: int,
    current_admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Admin deactivates any user's account."""
    logger.info(f"Admin {current_admin.id} deactivating user {user_id}")
    return deactivate_account(db, user_id)
