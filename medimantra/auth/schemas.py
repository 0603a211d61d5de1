"""
User Schemas - Pydantic models for registration, login and token payloads.
"""
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, EmailStr, Field

from .models import UserRole

# Fields that clients may send as a string, a list or a single object
StructuredInput = Optional[Union[str, List[Union[str, Dict[str, Any]]], Dict[str, Any]]]


class UserBase(BaseModel):
    """
    Base User Schema - Contains fields common to all registration schemas

    Fields:
    - first_name: At least 3 characters
    - last_name: Optional family name
    - email: User's email address
    - phone: Contact number (optional)
    """
    first_name: str = Field(..., min_length=3)
    last_name: Optional[str] = None
    email: EmailStr
    phone: Optional[str] = None


class UserCreate(UserBase):
    """
    User Creation Schema - Used when registering a new account

    Extends UserBase with:
    - password: Plain text password, at least 8 characters (hashed before storage)
    - date_of_birth, gender: Personal details (optional)
    - address, city, state, zip_code: Postal address (optional)
    - profile_image: URL of the uploaded avatar (set by the route, not the client)
    """
    password: str = Field(..., min_length=8)
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    profile_image: Optional[str] = None


class PatientRegistration(UserCreate):
    """
    Patient Registration Schema - Used for patient self-registration
    """
    blood_group: Optional[str] = None
    emergency_contact: Optional[str] = None


class DoctorRegistration(UserCreate):
    """
    Doctor Registration Schema - Used for doctor self-registration

    The professional fields accept every shape the client may send; they are
    canonicalized by ``auth.normalizers`` before the profile is stored.
    """
    registration_number: Optional[str] = None
    qualifications: StructuredInput = None
    specialties: Optional[Union[str, List[str]]] = None
    experience: Optional[Union[int, float, str]] = None
    hospital_affiliations: StructuredInput = None
    languages: Optional[Union[str, List[str]]] = None
    consultation_fee: Optional[Union[int, float, str, Dict[str, Any]]] = None
    about: Optional[str] = None


class UserLogin(BaseModel):
    """
    User Login Schema - Used for authentication

    Fields:
    - email: User's email address
    - password: User's plain text password
    """
    email: EmailStr
    password: str = Field(..., min_length=1)


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class VerifyEmailRequest(BaseModel):
    token: str


class ResendVerification(BaseModel):
    """
    Resend Verification Schema - Used to resend verification email
    """
    email: EmailStr


class PasswordReset(BaseModel):
    """
    Password Reset Schema - Used to request a password reset link
    """
    email: EmailStr


class PasswordResetConfirm(BaseModel):
    token: str
    new_password: str = Field(..., min_length=8)


class PasswordChange(BaseModel):
    """
    Password Change Schema - Used by a signed-in user to change the password
    """
    current_password: str
    new_password: str = Field(..., min_length=8)


class UserResponse(BaseModel):
    """
    User Response Schema - Public account fields
    """
    id: int
    first_name: str
    last_name: Optional[str] = None
    email: EmailStr
    phone: Optional[str] = None
    role: UserRole
    avatar: Optional[str] = None
    is_email_verified: bool
    is_active: bool
    last_login: Optional[datetime] = None

    class Config:
        """Configuration for Pydantic model to enable ORM mode"""
        from_attributes = True


class DoctorProfileSummary(BaseModel):
    id: int
    specialties: List[str]
    is_verified: bool

    class Config:
        from_attributes = True


class PatientProfileSummary(BaseModel):
    id: int
    blood_group: Optional[str] = None

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    """
    Auth Response Schema - Returned after registration or login

    Fields:
    - message: Human-readable outcome
    - user: Public account fields
    - doctor_profile / patient_profile: Summary of the role-specific profile
    - access_token: JWT access token (also set as the accessToken cookie)
    """
    message: str
    user: UserResponse
    doctor_profile: Optional[DoctorProfileSummary] = None
    patient_profile: Optional[PatientProfileSummary] = None
    access_token: str
    token_type: str = "bearer"


class TokenResponse(BaseModel):
    message: str
    access_token: str
    token_type: str = "bearer"


class MessageResponse(BaseModel):
    message: str
