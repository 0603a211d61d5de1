"""
Patient Model - Stores patient-specific information.

Created in the same transaction as the patient's user account.
"""
from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship

from ..database import Base


class Patient(Base):
    """
    Patient Model - Stores patient-specific information

    Fields:
    - id: Primary key for patient profile
    - user_id: Foreign key to User model
    - date_of_birth: Patient's date of birth
    - gender: Patient's gender
    - blood_group: Blood group (optional)
    - emergency_contact: Emergency contact information
    - created_at: When the patient profile was created
    - updated_at: When the patient profile was last updated
    """
    __tablename__ = "patients"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    date_of_birth = Column(Date, nullable=True)
    gender = Column(String, nullable=True)
    blood_group = Column(String, nullable=True)
    emergency_contact = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="patient_profile", uselist=False)

    def __repr__(self):
        """String representation of the Patient model"""
        return f"<Patient(id={self.id}, user_id={self.user_id})>"

    @property
    def full_name(self) -> str:
        return self.user.full_name if self.user else None
