"""Authentication-related routes.

Accounts live in Firebase Authentication. Admins register staff and
patients; anyone can exchange credentials for an ID token.
"""
from fastapi import APIRouter, Body, Depends
from typing import Literal

from pydantic import BaseModel, EmailStr, Field

from app.api.deps import get_auth_service, get_current_user, require_role
from app.services.auth_service import AuthService, is_admin

router = APIRouter(prefix="/auth", tags=["auth"])


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: Literal["admin", "patient"] = "patient"
    name: str = ""


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


@router.get("/me")
def get_me(user=Depends(get_current_user)):
    return {"uid": user.get("uid"), "email": user.get("email"), "is_admin": is_admin(user)}


@router.post("/register", status_code=201)
def register(
    payload: RegisterRequest = Body(...),
    user=Depends(require_role(["admin"])),
    service: AuthService = Depends(get_auth_service),
):
    uid = service.register_user(payload.email, payload.password, payload.role, payload.name)
    return {"message": "User registered", "uid": uid}


@router.post("/login")
def login(
    payload: LoginRequest = Body(...),
    service: AuthService = Depends(get_auth_service),
):
    result = service.sign_in(payload.email, payload.password)
    return {
        "uid": result["uid"],
        "id_token": result["id_token"],
        "refresh_token": result["refresh_token"],
        "expires_in": result["expires_in"],
        "role": result["profile"].role,
        "name": result["profile"].name,
    }


@router.post("/logout")
def logout(
    user=Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    service.sign_out(user["uid"])
    return {"message": "Signed out"}
