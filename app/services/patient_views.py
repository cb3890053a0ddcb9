"""Derived values shown alongside a patient: age, appointment buckets, dates.

All functions take ``today`` explicitly (an ISO ``YYYY-MM-DD`` string or a
``date``) so callers and tests control the clock; when omitted the current
UTC date is used.
"""
from datetime import date, datetime, timezone
from typing import Iterable, List, NamedTuple, Optional, Union

from app.models.patient import (
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_CONFIRMED,
    STATUS_SCHEDULED,
    Appointment,
    Patient,
    parse_symptoms,
)

__all__ = [
    "AppointmentGroups",
    "calculate_age",
    "filter_upcoming",
    "format_date",
    "format_datetime",
    "format_symptoms",
    "group_appointments",
    "has_upcoming_appointment",
    "next_appointment",
    "parse_symptoms",
    "sort_appointments",
    "today_iso",
]

FRENCH_MONTHS = [
    "janvier", "février", "mars", "avril", "mai", "juin",
    "juillet", "août", "septembre", "octobre", "novembre", "décembre",
]

DateLike = Union[str, date, None]


def today_iso(today: DateLike = None) -> str:
    if today is None:
        return datetime.now(timezone.utc).date().isoformat()
    if isinstance(today, date):
        return today.isoformat()
    return today


def calculate_age(birthdate: str, today: Optional[date] = None) -> Optional[int]:
    """Whole years since ``birthdate``; None when the birthdate is empty or malformed."""
    if not birthdate:
        return None
    try:
        born = date.fromisoformat(birthdate[:10])
    except ValueError:
        return None

    today = today or datetime.now(timezone.utc).date()
    age = today.year - born.year
    if (today.month, today.day) < (born.month, born.day):
        age -= 1
    return age


def format_symptoms(symptoms: Iterable[str]) -> str:
    return ", ".join(symptoms)


# -------------------------
# Appointments
# -------------------------
def _is_upcoming(appointment: Appointment, today: str) -> bool:
    return appointment.date >= today and appointment.status not in (
        STATUS_CANCELLED,
        STATUS_COMPLETED,
    )


def sort_appointments(appointments: Iterable[Appointment], today: DateLike = None) -> List[Appointment]:
    """Upcoming appointments first, then past ones; ascending date within each."""
    today = today_iso(today)
    return sorted(appointments, key=lambda a: (a.date < today, a.date))


class AppointmentGroups(NamedTuple):
    upcoming: List[Appointment]
    past: List[Appointment]
    cancelled: List[Appointment]


def group_appointments(appointments: Iterable[Appointment], today: DateLike = None) -> AppointmentGroups:
    """
    Split appointments into the three buckets of the detail view.

    A cancelled appointment dated in the past lands in both ``past`` and
    ``cancelled``.
    """
    today = today_iso(today)
    ordered = sort_appointments(appointments, today)
    return AppointmentGroups(
        upcoming=[a for a in ordered if _is_upcoming(a, today)],
        past=[a for a in ordered if a.date < today or a.status == STATUS_COMPLETED],
        cancelled=[a for a in ordered if a.status == STATUS_CANCELLED],
    )


def next_appointment(patient: Patient, today: DateLike = None) -> Optional[Appointment]:
    today = today_iso(today)
    upcoming = sorted(
        (a for a in patient.appointments if _is_upcoming(a, today)),
        key=lambda a: a.date,
    )
    return upcoming[0] if upcoming else None


def has_upcoming_appointment(patient: Patient, today: DateLike = None) -> bool:
    return next_appointment(patient, today) is not None


def filter_upcoming(patients: Iterable[Patient], today: DateLike = None) -> List[Patient]:
    """
    Keep patients with at least one Scheduled or Confirmed appointment dated
    today or later. ISO dates compare correctly as plain strings.
    """
    today = today_iso(today)
    return [
        p for p in patients
        if any(
            a.date >= today and a.status in (STATUS_SCHEDULED, STATUS_CONFIRMED)
            for a in p.appointments
        )
    ]


# -------------------------
# Formatting
# -------------------------
def _parse(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def format_date(value: str) -> str:
    """'2024-03-05' -> '05 mars 2024'. Unparseable input is returned as is."""
    try:
        dt = _parse(value)
    except (TypeError, ValueError):
        return value
    return f"{dt.day:02d} {FRENCH_MONTHS[dt.month - 1]} {dt.year}"


def format_datetime(value: str) -> str:
    try:
        dt = _parse(value)
    except (TypeError, ValueError):
        return value
    return f"{dt.day:02d} {FRENCH_MONTHS[dt.month - 1]} {dt.year} {dt:%H:%M}"
