from beanie import Document, Indexed
from beanie import PydanticObjectId as OID
from pydantic import BaseModel, Field
from datetime import datetime, timezone
from typing import List, Optional

from app.constants import Role, ApprovalStatus


class DoctorInfo(BaseModel):
    """Professional details and approval state of a doctor account."""

    approval_status: ApprovalStatus = ApprovalStatus.PENDING
    approval_date: Optional[datetime] = None
    approved_by: Optional[OID] = None
    rejection_reason: Optional[str] = Field(None, max_length=500)
    specialization: Optional[str] = None
    hospital: Optional[str] = None
    location: Optional[str] = None
    experience: Optional[int] = Field(None, ge=0, le=50)


class MedicalCondition(BaseModel):
    id: OID = Field(default_factory=OID)
    disease_id: OID
    diagnosis_date: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=500)


class User(Document):
    """Platform user (patient, doctor or admin).

    Doctors carry a ``doctor_info`` sub-record whose approval status gates
    doctor-only content creation.
    """

    username: Indexed(str, unique=True)
    email: Indexed(str, unique=True)
    password_hash: str
    first_name: str
    last_name: str
    role: Role = Role.PATIENT
    profile_picture: Optional[str] = None
    bio: Optional[str] = Field(None, max_length=500)
    date_of_birth: Optional[datetime] = None

    is_active: bool = True
    is_verified: bool = False
    last_login: Optional[datetime] = None

    followers: List[OID] = Field(default_factory=list)
    following: List[OID] = Field(default_factory=list)
    medical_conditions: List[MedicalCondition] = Field(default_factory=list)

    doctor_info: Optional[DoctorInfo] = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "users"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def approval_status(self) -> Optional[ApprovalStatus]:
        return self.doctor_info.approval_status if self.doctor_info else None

    def apply_role(self, role: Role) -> None:
        """Change role keeping doctor_info consistent with it."""
        if role == Role.DOCTOR:
            if self.role != Role.DOCTOR or self.doctor_info is None:
                info = self.doctor_info or DoctorInfo()
                info.approval_status = ApprovalStatus.PENDING
                info.approval_date = None
                info.approved_by = None
                info.rejection_reason = None
                self.doctor_info = info
        else:
            self.doctor_info = None
        self.role = role
