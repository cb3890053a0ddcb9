"""Patient-related API routes.

Admins manage every patient. A signed-in patient may read their own
document (the patient document id equals their auth uid).
"""

from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query

from app.api.deps import get_repository, require_patient_access, require_role
from app.models.patient import (
    AppointmentCreate,
    AppointmentUpdate,
    MedicalRecordCreate,
    MedicalRecordUpdate,
    PatientCreate,
    PatientUpdate,
)
from app.services import patient_views
from app.services.patient_repository import PatientRepository

router = APIRouter(prefix="/patients", tags=["patients"])

admin_only = require_role(["admin"])


@router.get("/")
def list_patients(
    search: Optional[str] = Query(None),
    field: str = Query("name"),
    user=Depends(admin_only),
    repo: PatientRepository = Depends(get_repository),
):
    """List patients ordered by name, or prefix-search one field."""
    if search:
        try:
            patients = repo.fetch_search(search, field)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
    else:
        patients = repo.fetch_all()

    return {"items": [p.model_dump() for p in patients]}


@router.get("/upcoming")
def list_patients_with_upcoming(
    user=Depends(admin_only),
    repo: PatientRepository = Depends(get_repository),
):
    patients = repo.fetch_with_upcoming_appointments()
    return {"items": [p.model_dump() for p in patients]}


@router.post("/", status_code=201)
def create_patient(
    payload: PatientCreate = Body(...),
    user=Depends(admin_only),
    repo: PatientRepository = Depends(get_repository),
):
    patient_id = repo.create(payload)
    return {"message": "Patient created successfully", "id": patient_id}


@router.get("/{patient_id}")
def get_patient(
    patient_id: str,
    user=Depends(require_patient_access),
    repo: PatientRepository = Depends(get_repository),
):
    """Patient document plus the values the detail view derives from it."""
    patient = repo.get_by_id(patient_id)
    groups = patient_views.group_appointments(patient.appointments)
    next_appt = patient_views.next_appointment(patient)

    return {
        **patient.model_dump(),
        "age": patient_views.calculate_age(patient.birthdate),
        "appointment_groups": {
            "upcoming": [a.model_dump() for a in groups.upcoming],
            "past": [a.model_dump() for a in groups.past],
            "cancelled": [a.model_dump() for a in groups.cancelled],
        },
        "next_appointment": next_appt.model_dump() if next_appt else None,
    }


@router.patch("/{patient_id}")
def update_patient(
    patient_id: str,
    payload: PatientUpdate = Body(...),
    user=Depends(admin_only),
    repo: PatientRepository = Depends(get_repository),
):
    repo.update(patient_id, payload)
    return {"message": "Patient updated"}


@router.delete("/{patient_id}")
def delete_patient(
    patient_id: str,
    user=Depends(admin_only),
    repo: PatientRepository = Depends(get_repository),
):
    repo.delete(patient_id)
    return {"message": "Patient deleted"}


# -------------------------
# Medical records
# -------------------------
@router.post("/{patient_id}/records", status_code=201)
def add_record(
    patient_id: str,
    payload: MedicalRecordCreate = Body(...),
    user=Depends(admin_only),
    repo: PatientRepository = Depends(get_repository),
):
    record = repo.add_record(patient_id, payload)
    return {"message": "Record added", "record": record.model_dump()}


@router.patch("/{patient_id}/records/{record_id}")
def update_record(
    patient_id: str,
    record_id: str,
    payload: MedicalRecordUpdate = Body(...),
    user=Depends(admin_only),
    repo: PatientRepository = Depends(get_repository),
):
    repo.update_record(patient_id, record_id, payload)
    return {"message": "Record updated"}


@router.delete("/{patient_id}/records/{record_id}")
def delete_record(
    patient_id: str,
    record_id: str,
    user=Depends(admin_only),
    repo: PatientRepository = Depends(get_repository),
):
    repo.delete_record(patient_id, record_id)
    return {"message": "Record deleted"}


# -------------------------
# Appointments
# -------------------------
@router.post("/{patient_id}/appointments", status_code=201)
def add_appointment(
    patient_id: str,
    payload: AppointmentCreate = Body(...),
    user=Depends(admin_only),
    repo: PatientRepository = Depends(get_repository),
):
    appointment = repo.add_appointment(patient_id, payload)
    return {"message": "Appointment added", "appointment": appointment.model_dump()}


@router.patch("/{patient_id}/appointments/{appointment_id}")
def update_appointment(
    patient_id: str,
    appointment_id: str,
    payload: AppointmentUpdate = Body(...),
    user=Depends(admin_only),
    repo: PatientRepository = Depends(get_repository),
):
    repo.update_appointment(patient_id, appointment_id, payload)
    return {"message": "Appointment updated"}


@router.delete("/{patient_id}/appointments/{appointment_id}")
def delete_appointment(
    patient_id: str,
    appointment_id: str,
    user=Depends(admin_only),
    repo: PatientRepository = Depends(get_repository),
):
    repo.delete_appointment(patient_id, appointment_id)
    return {"message": "Appointment deleted"}
