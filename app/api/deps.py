"""
API dependencies (Firebase auth verification, service wiring).

Provides FastAPI dependencies to verify Firebase ID tokens and to hand
routes their repository / auth service.
"""

from typing import List, Callable

from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from firebase_admin import auth

from app.services.auth_service import AuthService, can_access_patient
from app.services.patient_repository import PatientRepository

# FastAPI security scheme (Swagger + header binding)
security = HTTPBearer(auto_error=True)


def get_repository() -> PatientRepository:
    return PatientRepository()


def get_auth_service() -> AuthService:
    return AuthService()


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
):
    """
    Verify Firebase ID token from Authorization header.

    Expects:
        Authorization: Bearer <id_token>
    """
    try:
        id_token = credentials.credentials
        decoded = auth.verify_id_token(id_token)
        return decoded
    except Exception as exc:
        raise HTTPException(
            status_code=401,
            detail="Invalid ID token",
        ) from exc


def require_role(allowed: List[str]) -> Callable:
    """
    Return a FastAPI dependency that enforces a user's role.

    The Firebase ID token is expected to have a custom claim `role`.
    Example claims:
        {'role': 'admin'}
        {'role': 'patient'}
    """

    def _checker(user=Depends(get_current_user)):
        role = user.get("role") or user.get("roles")

        if isinstance(role, list):
            is_allowed = any(r in allowed for r in role)
        else:
            is_allowed = role in allowed

        if not is_allowed:
            raise HTTPException(
                status_code=403,
                detail="Insufficient permissions",
            )

        return user

    return _checker


def require_patient_access(patient_id: str, user=Depends(get_current_user)):
    """Admins may open any patient; patients only their own document."""
    if not can_access_patient(user, patient_id):
        raise HTTPException(status_code=403, detail="Insufficient permissions")
    return user
