"""
Doctor Model - Stores doctor-specific professional information.

A doctor profile is created in the same transaction as its user account and
references it through ``user_id``.
"""
from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, JSON, String, func
from sqlalchemy.orm import relationship

from ..database import Base


class Doctor(Base):
    """
    Doctor Model - Stores doctor-specific information

    Fields:
    - id: Primary key for doctor profile
    - user_id: Foreign key to User model
    - specialties: List of specialty names
    - qualifications: List of {degree, institution, year}
    - experience: Years of practice
    - hospital_affiliations: List of {name, address, current}
    - languages: List of spoken languages
    - consultation_fee: {in_person, video, phone}
    - is_verified: Whether an administrator has verified the credentials
    - verification_documents: List of {name, url, verified}
    - availability: Weekly availability slots (empty until the doctor sets them)
    """
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    gender = Column(String, nullable=True)
    registration_number = Column(String, nullable=True)
    registration_council = Column(String, nullable=True, default="Medical Council of India")
    specialties = Column(JSON, nullable=False, default=list)
    qualifications = Column(JSON, nullable=False, default=list)
    experience = Column(Float, nullable=False, default=0)
    hospital_affiliations = Column(JSON, nullable=False, default=list)
    languages = Column(JSON, nullable=False, default=list)
    consultation_fee = Column(JSON, nullable=False, default=dict)
    bio = Column(String, nullable=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    verification_documents = Column(JSON, nullable=False, default=list)
    availability = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="doctor_profile", uselist=False)

    def __repr__(self):
        return f"<Doctor(id={self.id}, user_id={self.user_id}, specialties={self.specialties})>"

    @property
    def full_name(self) -> str:
        """Get doctor's display name from associated user"""
        return f"Dr. {self.user.full_name}" if self.user else "Dr."

    @property
    def email(self) -> str:
        return self.user.email if self.user else None
