"""Query, subscription and mutation layer over the ``patients`` collection.

Layout in Firestore:
  patients/{patient_id}
    name, birthdate, gender, blood_type, chronic_conditions,
    email, phone, address,
    records: [ {id, date, symptoms[], diagnosis, prescription,
                temperature, pulse, blood_pressure} ],
    appointments: [ {id, date, doctor, department, status, room} ],
    createdAt, updatedAt

Medical records and appointments are embedded in the patient document. Every
change to one of them reads the patient, rebuilds the whole list and writes
it back. Two writers working on the same patient at the same time can lose
one of the updates: the last write of the list wins.
"""
from __future__ import annotations

import uuid
from typing import Any, Callable, Dict, List, Optional, Union

from firebase_admin import firestore
from google.api_core import exceptions as gexc
from pydantic import BaseModel

from app.core.config import settings
from app.core.errors import NotFoundError, StoreReadError, StoreWriteError
from app.models.patient import (
    SEARCHABLE_FIELDS,
    Appointment,
    MedicalRecord,
    Patient,
)
from app.services.logger import log_debug
from app.services.patient_views import filter_upcoming
from app.services.subscriptions import Subscription

# Highest code point of the Private Use Area; sorts after any realistic input
PREFIX_SENTINEL = "\uf8ff"

RECORDS = "records"
APPOINTMENTS = "appointments"

Payload = Union[BaseModel, Dict[str, Any]]
PatientsCallback = Callable[[List[Patient]], None]


def _as_dict(value: Payload, partial: bool = False) -> Dict[str, Any]:
    """Plain dict for a write. Partial updates never carry None: null means "leave as is"."""
    if isinstance(value, BaseModel):
        return value.model_dump(exclude_unset=partial, exclude_none=partial)
    data = dict(value)
    if partial:
        data = {k: v for k, v in data.items() if v is not None}
    return data


def _to_patient(doc) -> Patient:
    data = doc.to_dict() or {}
    data["id"] = doc.id
    return Patient.model_validate(data)


def _to_patients(docs) -> List[Patient]:
    return [_to_patient(d) for d in docs]


class PatientRepository:
    def __init__(self, db=None, collection: Optional[str] = None):
        if db is None:
            from app.core.firebase import get_db

            db = get_db()
        self.db = db
        self.collection_name = collection or settings.PATIENTS_COLLECTION

    @property
    def collection(self):
        return self.db.collection(self.collection_name)

    def _ref(self, patient_id: str):
        return self.collection.document(patient_id)

    # -------------------------
    # Queries
    # -------------------------
    def _ordered_query(self):
        return self.collection.order_by("name")

    def _prefix_query(self, term: str, field: str):
        if field not in SEARCHABLE_FIELDS:
            raise ValueError(
                f"Cannot search on '{field}'. Allowed fields: {', '.join(SEARCHABLE_FIELDS)}"
            )
        return (
            self.collection
            .where(field, ">=", term)
            .where(field, "<", term + PREFIX_SENTINEL)
        )

    def _stream(self, query, event: str) -> List[Patient]:
        try:
            return _to_patients(query.stream())
        except gexc.GoogleAPICallError as exc:
            log_debug(event, {"error": str(exc)})
            raise StoreReadError(f"Could not load patients: {exc}") from exc

    def fetch_all(self) -> List[Patient]:
        """All patients ordered by name (one-shot)."""
        return self._stream(self._ordered_query(), "fetch_all_failed")

    def fetch_search(self, term: str, field: str = "name") -> List[Patient]:
        return self._stream(self._prefix_query(term, field), "fetch_search_failed")

    def fetch_with_upcoming_appointments(self, today=None) -> List[Patient]:
        return filter_upcoming(self.fetch_all(), today)

    # -------------------------
    # Live subscriptions
    # -------------------------
    def list_all(self, callback: Optional[PatientsCallback] = None) -> Subscription:
        """
        Watch every patient, ordered by name.

        ``callback`` receives the full list on each change made by any client.
        The caller owns the returned subscription and must unsubscribe.
        """
        return Subscription(self._ordered_query(), _to_patients, callback, name="patients.all")

    def search_by_field(
        self,
        term: str,
        field: str = "name",
        callback: Optional[PatientsCallback] = None,
    ) -> Subscription:
        """Watch patients whose ``field`` starts with ``term`` (case-sensitive)."""
        return Subscription(
            self._prefix_query(term, field),
            _to_patients,
            callback,
            name=f"patients.search.{field}",
        )

    def list_with_upcoming_appointments(
        self,
        callback: Optional[PatientsCallback] = None,
        today=None,
    ) -> Subscription:
        """Same watch as list_all(), re-filtered on every snapshot."""
        return Subscription(
            self._ordered_query(),
            lambda docs: filter_upcoming(_to_patients(docs), today),
            callback,
            name="patients.upcoming",
        )

    # -------------------------
    # Single documents
    # -------------------------
    def _get_snapshot(self, patient_id: str):
        try:
            snap = self._ref(patient_id).get()
        except gexc.GoogleAPICallError as exc:
            log_debug("get_patient_failed", {"patient_id": patient_id, "error": str(exc)})
            raise StoreReadError(f"Could not load patient {patient_id}: {exc}") from exc

        if not snap.exists:
            raise NotFoundError(f"Patient {patient_id} not found")
        return snap

    def get_by_id(self, patient_id: str) -> Patient:
        return _to_patient(self._get_snapshot(patient_id))

    def create(self, patient: Payload) -> str:
        data = _as_dict(patient)
        data.pop("id", None)
        data[RECORDS] = [self._with_id(r) for r in data.get(RECORDS) or []]
        data[APPOINTMENTS] = [self._with_id(a) for a in data.get(APPOINTMENTS) or []]
        data["createdAt"] = firestore.SERVER_TIMESTAMP

        try:
            _, doc_ref = self.collection.add(data)
        except gexc.GoogleAPICallError as exc:
            log_debug("create_patient_failed", {"error": str(exc)})
            raise StoreWriteError(f"Could not create patient: {exc}") from exc

        log_debug("patient_created", {"patient_id": doc_ref.id})
        return doc_ref.id

    def update(self, patient_id: str, fields: Payload) -> None:
        """Merge ``fields`` into the patient; fields not given are left untouched."""
        data = _as_dict(fields, partial=True)
        data.pop("id", None)
        self._write(patient_id, data, "update_patient_failed")

    def delete(self, patient_id: str) -> None:
        """Remove the patient together with its embedded records and appointments."""
        try:
            self._ref(patient_id).delete()
        except gexc.GoogleAPICallError as exc:
            log_debug("delete_patient_failed", {"patient_id": patient_id, "error": str(exc)})
            raise StoreWriteError(f"Could not delete patient {patient_id}: {exc}") from exc

    def _write(self, patient_id: str, data: Dict[str, Any], event: str) -> None:
        data["updatedAt"] = firestore.SERVER_TIMESTAMP
        try:
            self._ref(patient_id).update(data)
        except gexc.NotFound as exc:
            raise NotFoundError(f"Patient {patient_id} not found") from exc
        except gexc.GoogleAPICallError as exc:
            log_debug(event, {"patient_id": patient_id, "error": str(exc)})
            raise StoreWriteError(f"Could not update patient {patient_id}: {exc}") from exc

    # -------------------------
    # Embedded lists (read-modify-write)
    # -------------------------
    @staticmethod
    def _with_id(item: Payload) -> Dict[str, Any]:
        data = _as_dict(item)
        if not data.get("id"):
            data["id"] = str(uuid.uuid4())
        return data

    def _embedded(self, patient_id: str, key: str) -> List[Dict[str, Any]]:
        data = self._get_snapshot(patient_id).to_dict() or {}
        return list(data.get(key) or [])

    def _add_embedded(self, patient_id: str, key: str, item: Payload) -> Dict[str, Any]:
        items = self._embedded(patient_id, key)
        new_item = self._with_id(item)
        self._write(patient_id, {key: items + [new_item]}, f"add_{key}_failed")
        return new_item

    def _update_embedded(self, patient_id: str, key: str, item_id: str, fields: Payload) -> None:
        changes = _as_dict(fields, partial=True)
        changes.pop("id", None)
        items = [
            {**item, **changes} if item.get("id") == item_id else item
            for item in self._embedded(patient_id, key)
        ]
        self._write(patient_id, {key: items}, f"update_{key}_failed")

    def _delete_embedded(self, patient_id: str, key: str, item_id: str) -> None:
        items = [item for item in self._embedded(patient_id, key) if item.get("id") != item_id]
        self._write(patient_id, {key: items}, f"delete_{key}_failed")

    def add_record(self, patient_id: str, record: Payload) -> MedicalRecord:
        return MedicalRecord.model_validate(self._add_embedded(patient_id, RECORDS, record))

    def update_record(self, patient_id: str, record_id: str, fields: Payload) -> None:
        self._update_embedded(patient_id, RECORDS, record_id, fields)

    def delete_record(self, patient_id: str, record_id: str) -> None:
        self._delete_embedded(patient_id, RECORDS, record_id)

    def add_appointment(self, patient_id: str, appointment: Payload) -> Appointment:
        return Appointment.model_validate(self._add_embedded(patient_id, APPOINTMENTS, appointment))

    def update_appointment(self, patient_id: str, appointment_id: str, fields: Payload) -> None:
        self._update_embedded(patient_id, APPOINTMENTS, appointment_id, fields)

    def delete_appointment(self, patient_id: str, appointment_id: str) -> None:
        self._delete_embedded(patient_id, APPOINTMENTS, appointment_id)
