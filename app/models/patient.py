"""Pydantic models for patient documents stored in Firestore.

Two families live here:

* ``Patient`` / ``MedicalRecord`` / ``Appointment`` mirror what is stored and
  are deliberately lenient so older documents still load.
* The ``*Create`` / ``*Update`` models validate input at the request boundary
  (required fields, email format, vital-sign ranges, blood pressure pattern).
"""
from datetime import date
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

Gender = Literal["Male", "Female", "Other"]
BloodType = Literal["A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-"]
AppointmentStatus = Literal["Scheduled", "Confirmed", "Completed", "Cancelled"]

STATUS_SCHEDULED = "Scheduled"
STATUS_CONFIRMED = "Confirmed"
STATUS_COMPLETED = "Completed"
STATUS_CANCELLED = "Cancelled"

BLOOD_PRESSURE_PATTERN = r"^\d{2,3}/\d{2,3}$"

SEARCHABLE_FIELDS = ("name", "gender", "chronic_conditions")


def parse_symptoms(value: Union[str, List[str], None]) -> List[str]:
    """Turn "fever, cough ,," into ["fever", "cough"]. Lists pass through."""
    if value is None:
        return []
    if isinstance(value, str):
        return [s.strip() for s in value.split(",") if s.strip()]
    return list(value)


def _check_iso_date(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    date.fromisoformat(value)
    return value


# -------------------------
# Stored shapes
# -------------------------
class MedicalRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    date: str = ""
    symptoms: List[str] = Field(default_factory=list)
    diagnosis: str = ""
    prescription: str = ""
    temperature: Optional[float] = None
    pulse: Optional[float] = None
    blood_pressure: Optional[str] = None

    @field_validator("symptoms", mode="before")
    @classmethod
    def split_symptoms(cls, v):
        return parse_symptoms(v)


class Appointment(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    date: str = ""
    doctor: str = ""
    department: str = ""
    status: str = STATUS_SCHEDULED
    room: str = ""


class Patient(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    name: str = ""
    birthdate: str = ""
    gender: str = ""
    blood_type: str = ""
    chronic_conditions: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    records: List[MedicalRecord] = Field(default_factory=list)
    appointments: List[Appointment] = Field(default_factory=list)

    @field_validator("records", "appointments", mode="before")
    @classmethod
    def never_null(cls, v):
        return v or []


# -------------------------
# Input validation
# -------------------------
class MedicalRecordCreate(BaseModel):
    date: str
    symptoms: List[str] = Field(default_factory=list)
    diagnosis: str = Field(..., min_length=1)
    prescription: str = ""
    temperature: Optional[float] = Field(None, ge=34, le=43)
    pulse: Optional[int] = Field(None, ge=30, le=220)
    blood_pressure: Optional[str] = Field(None, pattern=BLOOD_PRESSURE_PATTERN)

    @field_validator("symptoms", mode="before")
    @classmethod
    def split_symptoms(cls, v):
        return parse_symptoms(v)

    @field_validator("date")
    @classmethod
    def iso_date(cls, v):
        return _check_iso_date(v)


class MedicalRecordUpdate(BaseModel):
    date: Optional[str] = None
    symptoms: Optional[List[str]] = None
    diagnosis: Optional[str] = Field(None, min_length=1)
    prescription: Optional[str] = None
    temperature: Optional[float] = Field(None, ge=34, le=43)
    pulse: Optional[int] = Field(None, ge=30, le=220)
    blood_pressure: Optional[str] = Field(None, pattern=BLOOD_PRESSURE_PATTERN)

    @field_validator("symptoms", mode="before")
    @classmethod
    def split_symptoms(cls, v):
        if v is None:
            return None
        return parse_symptoms(v)

    @field_validator("date")
    @classmethod
    def iso_date(cls, v):
        return _check_iso_date(v)


class AppointmentCreate(BaseModel):
    date: str
    doctor: str = Field(..., min_length=1)
    department: str = ""
    status: AppointmentStatus = STATUS_SCHEDULED
    room: str = ""

    @field_validator("date")
    @classmethod
    def iso_date(cls, v):
        return _check_iso_date(v)


class AppointmentUpdate(BaseModel):
    date: Optional[str] = None
    doctor: Optional[str] = Field(None, min_length=1)
    department: Optional[str] = None
    status: Optional[AppointmentStatus] = None
    room: Optional[str] = None

    @field_validator("date")
    @classmethod
    def iso_date(cls, v):
        return _check_iso_date(v)


class PatientCreate(BaseModel):
    name: str = Field(..., min_length=1)
    birthdate: str
    gender: Gender = "Male"
    blood_type: BloodType = "A+"
    chronic_conditions: str = ""
    email: EmailStr
    phone: str = ""
    address: str = ""
    records: Optional[List[MedicalRecordCreate]] = None
    appointments: Optional[List[AppointmentCreate]] = None

    @field_validator("birthdate")
    @classmethod
    def iso_date(cls, v):
        return _check_iso_date(v)


class PatientUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    birthdate: Optional[str] = None
    gender: Optional[Gender] = None
    blood_type: Optional[BloodType] = None
    chronic_conditions: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None

    @field_validator("birthdate")
    @classmethod
    def iso_date(cls, v):
        return _check_iso_date(v)


class UserProfile(BaseModel):
    uid: str
    email: str = ""
    role: str = "patient"
    name: str = ""
