"""
Doctor Router - API endpoints for doctor profile management.

Note: Doctor registration is handled through /api/v1/auth/
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from ..auth.dependencies import get_storage, require_admin, require_doctor
from ..auth.models import User
from ..core.cloudinary import CloudinaryStorage
from ..database import get_db
from .schemas import DoctorProfileUpdate, DoctorResponse
from .service import (
    add_verification_documents,
    complete_doctor_profile,
    get_doctor_profile_by_user_id,
    verify_doctor,
)

# Set up logging
logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/me", response_model=DoctorResponse)
async def get_my_doctor_profile(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_doctor)
):
    """
    Get the current doctor's profile
    """
    return get_doctor_profile_by_user_id(db, current_user.id)


@router.put("/me", response_model=DoctorResponse)
async def update_my_doctor_profile(
    profile_data: DoctorProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_doctor)
):
    """
    Complete or update the current doctor's profile

    The profile returns to unverified until an administrator reviews it again.
    """
    return complete_doctor_profile(db, current_user.id, profile_data)


@router.post("/me/verification-documents", response_model=DoctorResponse)
async def upload_verification_documents(
    documents: List[UploadFile] = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_doctor),
    storage: CloudinaryStorage = Depends(get_storage)
):
    """
    Upload credential documents for administrator verification

    Files that fail to upload are skipped and logged.
    """
    uploaded = []
    for document in documents:
        url = storage.upload_document(document.file)
        if url:
            uploaded.append({"name": document.filename, "url": url})
        else:
            logger.warning(f"Verification document {document.filename} failed to upload for user {current_user.id}")
    return add_verification_documents(db, current_user.id, uploaded)


@router.put("/{doctor_id}/verify", response_model=DoctorResponse)
async def verify_doctor_profile(
    doctor_id: int,
    db: Session = Depends(get_db),
    current_admin: User = Depends(require_admin)
):
    """
    Verify a doctor's credentials (admin only)
    """
    logger.info(f"Admin {current_admin.id} verifying doctor profile {doctor_id}")
    return verify_doctor(db, doctor_id)
