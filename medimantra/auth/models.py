"""
User Model - Stores the authentication identity for every role in the system.

Role-specific data lives in profile tables (doctors, patients) that reference
this table by user id.
"""
import enum

from sqlalchemy import Boolean, Column, Date, DateTime, Enum, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base


class UserRole(str, enum.Enum):
    """
    Enumeration for user roles.

    Roles:
    - PATIENT: Patients who book appointments
    - DOCTOR: Medical practitioners, verified by an administrator
    - ADMIN: System administrators with full access
    """
    PATIENT = "patient"
    DOCTOR = "doctor"
    ADMIN = "admin"


class User(Base):
    """
    User Model - Stores account information

    Fields:
    - id: Primary key for user identification
    - first_name / last_name: User's name
    - email: Unique, lowercased email address used for login
    - phone: Contact number (optional)
    - password_hash: bcrypt hash of the password (never store raw passwords)
    - role: patient, doctor or admin
    - gender, date_of_birth: Personal details (optional)
    - street, city, state, postal_code, country: Postal address
    - avatar: URL to the user's profile image (optional)
    - is_email_verified: Whether the email address has been verified
    - email_verification_token: SHA-256 digest of the emailed verification token
    - email_verification_expires: Expiry of the verification token
    - password_reset_token: SHA-256 digest of the emailed password reset token
    - password_reset_expires: Expiry of the password reset token
    - refresh_token: Most recently issued refresh token
    - is_active: False once an administrator deactivates the account
    - last_login: Timestamp of the last successful login
    - created_at / updated_at: Audit timestamps
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=True)
    email = Column(String, unique=True, index=True, nullable=False)
    phone = Column(String, nullable=True)
    password_hash = Column(String, nullable=False)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.PATIENT)
    gender = Column(String, nullable=True)
    date_of_birth = Column(Date, nullable=True)
    street = Column(String, nullable=True)
    city = Column(String, nullable=True)
    state = Column(String, nullable=True)
    postal_code = Column(String, nullable=True)
    country = Column(String, nullable=True, default="India")
    avatar = Column(String, nullable=True)
    is_email_verified = Column(Boolean, nullable=False, default=False)
    email_verification_token = Column(String, nullable=True, index=True)
    email_verification_expires = Column(DateTime(timezone=True), nullable=True)
    password_reset_token = Column(String, nullable=True, index=True)
    password_reset_expires = Column(DateTime(timezone=True), nullable=True)
    refresh_token = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    last_login = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    doctor_profile = relationship("Doctor", back_populates="user", uselist=False)
    patient_profile = relationship("Patient", back_populates="user", uselist=False)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"

    @property
    def full_name(self) -> str:
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name}"
        return self.first_name or self.email.split("@")[0]
