"""
Doctor Schemas - Pydantic models for doctor profile data validation and serialization.

Note: Doctor registration is handled through auth schemas.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from ..auth.schemas import StructuredInput


class DoctorProfileUpdate(BaseModel):
    """
    Doctor Profile Update Schema - Used when a doctor completes their profile

    Every field is optional; only the fields sent are changed. Professional
    fields accept the same shapes as registration and are normalized the
    same way.
    """
    gender: Optional[str] = None
    registration_number: Optional[str] = None
    registration_council: Optional[str] = None
    qualifications: StructuredInput = None
    specialties: Optional[Union[str, List[str]]] = None
    experience: Optional[Union[int, float, str]] = None
    hospital_affiliations: StructuredInput = None
    languages: Optional[Union[str, List[str]]] = None
    consultation_fee: Optional[Union[int, float, str, Dict[str, Any]]] = None
    bio: Optional[str] = Field(None, max_length=2000)
    availability: Optional[List[Dict[str, Any]]] = None


class VerificationDocument(BaseModel):
    name: str
    url: str
    verified: bool = False


class DoctorResponse(BaseModel):
    """
    Doctor Response Schema - Returned by doctor profile endpoints
    """
    id: int
    user_id: int
    full_name: str
    email: Optional[str] = None
    gender: Optional[str] = None
    registration_number: Optional[str] = None
    registration_council: Optional[str] = None
    specialties: List[str]
    qualifications: List[Dict[str, Any]]
    experience: Union[int, float]
    hospital_affiliations: List[Dict[str, Any]]
    languages: List[str]
    consultation_fee: Dict[str, Any]
    bio: Optional[str] = None
    is_verified: bool
    verification_documents: List[VerificationDocument]
    availability: List[Dict[str, Any]]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        """Configuration for Pydantic model to enable ORM mode"""
        from_attributes = True
