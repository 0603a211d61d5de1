"""
Doctor Service - Business logic for doctor profile management.

Covers profile completion after registration, credential document uploads
and administrator verification.
"""
import logging
from typing import Dict, List

from sqlalchemy.orm import Session

from ..auth.exceptions import ProfileMissingException, ValidationFailureException
from ..auth.normalizers import (
    parse_consultation_fee,
    parse_experience,
    parse_hospital_affiliations,
    parse_qualifications,
    parse_string_list,
)
from .models import Doctor
from .schemas import DoctorProfileUpdate

# Set up logging
logger = logging.getLogger(__name__)

FIELD_PARSERS = {
    "qualifications": parse_qualifications,
    "specialties": parse_string_list,
    "languages": parse_string_list,
    "hospital_affiliations": parse_hospital_affiliations,
    "experience": parse_experience,
    "consultation_fee": parse_consultation_fee,
}


def get_doctor_profile(db: Session, doctor_id: int) -> Doctor:
    """
    Get a doctor profile by ID.

    Raises:
        ProfileMissingException: If doctor profile not found
    """
    doctor = db.get(Doctor, doctor_id)
    if not doctor:
        raise ProfileMissingException("Doctor profile not found")
    return doctor


def get_doctor_profile_by_user_id(db: Session, user_id: int) -> Doctor:
    """
    Get a doctor profile by user ID.

    Args:
        db: Database session
        user_id: ID of the user

    Returns:
        Doctor: Doctor profile

    Raises:
        ProfileMissingException: If the user has no doctor profile
    """
    doctor = db.query(Doctor).filter(Doctor.user_id == user_id).first()
    if not doctor:
        logger.error(f"Doctor profile missing for user {user_id}")
        raise ProfileMissingException("Doctor profile not found. Please contact support.")
    return doctor


def complete_doctor_profile(db: Session, user_id: int, profile_data: DoctorProfileUpdate) -> Doctor:
    """
    Update the current doctor's profile with the fields provided.

    Professional fields go through the same parsers as registration. Any
    change sends the profile back for verification.

    Args:
        db: Database session
        user_id: ID of the doctor's user account
        profile_data: Fields to update

    Returns:
        Doctor: Updated doctor profile
    """
    doctor = get_doctor_profile_by_user_id(db, user_id)

    update_data = profile_data.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in update_data.items():
        parser = FIELD_PARSERS.get(field)
        setattr(doctor, field, parser(value) if parser else value)

    doctor.is_verified = False
    db.commit()
    db.refresh(doctor)
    logger.info(f"Doctor profile {doctor.id} updated by user {user_id}")
    return doctor


def add_verification_documents(db: Session, user_id: int, documents: List[Dict[str, str]]) -> Doctor:
    """
    Attach uploaded credential documents to the doctor's profile.

    Args:
        db: Database session
        user_id: ID of the doctor's user account
        documents: List of {name, url} for the uploaded files

    Returns:
        Doctor: Updated doctor profile, pending verification

    Raises:
        ValidationFailureException: If no document was uploaded
    """
    if not documents:
        raise ValidationFailureException("No documents uploaded")

    doctor = get_doctor_profile_by_user_id(db, user_id)
    new_documents = [{"name": doc["name"], "url": doc["url"], "verified": False} for doc in documents]
    # JSON columns only register reassignment, not in-place mutation
    doctor.verification_documents = list(doctor.verification_documents or []) + new_documents
    doctor.is_verified = False
    db.commit()
    db.refresh(doctor)
    logger.info(f"{len(new_documents)} verification document(s) added to doctor profile {doctor.id}")
    return doctor


def verify_doctor(db: Session, doctor_id: int) -> Doctor:
    """
    Mark a doctor and all of their documents as verified.

    Raises:
        ProfileMissingException: If the doctor profile does not exist
    """
    doctor = get_doctor_profile(db, doctor_id)
    doctor.verification_documents = [
        {**doc, "verified": True} for doc in (doctor.verification_documents or [])
    ]
    doctor.is_verified = True
    db.commit()
    db.refresh(doctor)
    logger.info(f"Doctor profile {doctor_id} verified")
    return doctor
