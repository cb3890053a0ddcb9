"""Staff / patient accounts on top of Firebase Authentication.

Accounts live in Firebase Auth; the role and display name are kept both as a
custom claim (``role``) on the ID token and in ``users/{uid}``:

  users/{uid}
    email, role ("admin" | "patient"), name, createdAt

Password sign-in is not part of the Admin SDK, so it goes through the
Identity Toolkit REST endpoint with the project's web API key.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

import requests
from firebase_admin import auth, firestore
from firebase_admin import exceptions as fb_exceptions
from google.api_core import exceptions as gexc

from app.core.config import settings
from app.core.errors import AuthError, AuthUnavailableError, StoreReadError, StoreWriteError
from app.models.patient import UserProfile
from app.services.logger import log_debug

ROLE_ADMIN = "admin"
ROLE_PATIENT = "patient"


class AuthService:
    def __init__(self, db=None, http=None):
        if db is None:
            from app.core.firebase import get_db

            db = get_db()
        self.db = db
        self.http = http or requests.Session()

    def _user_ref(self, uid: str):
        return self.db.collection(settings.USERS_COLLECTION).document(uid)

    def register_user(self, email: str, password: str, role: str, name: str) -> str:
        """Create the auth account, tag its role and write the users/{uid} profile."""
        if role not in (ROLE_ADMIN, ROLE_PATIENT):
            raise AuthError(f"Unknown role: {role}")

        try:
            user = auth.create_user(email=email, password=password, display_name=name)
            auth.set_custom_user_claims(user.uid, {"role": role})
        except (ValueError, fb_exceptions.FirebaseError) as exc:
            log_debug("register_failed", {"email": email, "error": str(exc)})
            raise AuthError(f"Could not register {email}: {exc}") from exc

        try:
            self._user_ref(user.uid).set(
                {
                    "email": email,
                    "role": role,
                    "name": name,
                    "createdAt": firestore.SERVER_TIMESTAMP,
                }
            )
        except gexc.GoogleAPICallError as exc:
            log_debug("register_profile_failed", {"uid": user.uid, "error": str(exc)})
            self._rollback_account(user.uid)
            raise StoreWriteError(f"Could not save profile for {email}: {exc}") from exc
        log_debug("user_registered", {"uid": user.uid, "role": role})
        return user.uid

    def _rollback_account(self, uid: str) -> None:
        # an account without users/{uid} cannot sign in, so drop it
        try:
            auth.delete_user(uid)
        except (ValueError, fb_exceptions.FirebaseError) as exc:
            log_debug("register_rollback_failed", {"uid": uid, "error": str(exc)})

    def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        """
        Exchange email + password for an ID token.

        Fails when the credentials are rejected or when the account has no
        users/{uid} profile.
        """
        if not settings.FIREBASE_WEB_API_KEY:
            raise AuthError("FIREBASE_WEB_API_KEY is not configured")

        try:
            r = self.http.post(
                f"{settings.AUTH_REST_URL}/accounts:signInWithPassword",
                params={"key": settings.FIREBASE_WEB_API_KEY},
                json={"email": email, "password": password, "returnSecureToken": True},
                timeout=settings.REQUEST_TIMEOUT_SECONDS,
            )
        except requests.RequestException as exc:
            log_debug("sign_in_unreachable", {"email": email, "error": str(exc)})
            raise AuthUnavailableError(f"Sign-in service unavailable: {exc}") from exc
        if not r.ok:
            try:
                reason = r.json().get("error", {}).get("message", r.text)
            except ValueError:
                reason = r.text
            log_debug("sign_in_failed", {"email": email, "status": r.status_code, "reason": reason})
            raise AuthError(f"Sign-in failed: {reason}")

        body = r.json()
        uid = body["localId"]
        profile = self.get_user_profile(uid)
        if profile is None:
            log_debug("sign_in_failed", {"email": email, "reason": "missing profile"})
            raise AuthError("User document not found")

        return {
            "uid": uid,
            "id_token": body["idToken"],
            "refresh_token": body.get("refreshToken"),
            "expires_in": int(body.get("expiresIn", 3600)),
            "profile": profile,
        }

    def sign_out(self, uid: str) -> None:
        """Revoke refresh tokens; already-issued ID tokens expire on their own."""
        try:
            auth.revoke_refresh_tokens(uid)
        except fb_exceptions.FirebaseError as exc:
            raise AuthError(f"Could not sign out {uid}: {exc}") from exc

    def get_user_profile(self, uid: str) -> Optional[UserProfile]:
        try:
            snap = self._user_ref(uid).get()
        except gexc.GoogleAPICallError as exc:
            log_debug("get_user_profile_failed", {"uid": uid, "error": str(exc)})
            raise StoreReadError(f"Could not load profile {uid}: {exc}") from exc
        if not snap.exists:
            return None
        data = snap.to_dict() or {}
        return UserProfile(
            uid=uid,
            email=data.get("email") or "",
            role=data.get("role") or ROLE_PATIENT,
            name=data.get("name") or "",
        )

    def set_role(self, uid: str, role: str) -> None:
        auth.set_custom_user_claims(uid, {"role": role})
        self._user_ref(uid).set({"role": role}, merge=True)


def user_role(user: Optional[dict]) -> Optional[str]:
    """Role from decoded token claims (or a profile dict)."""
    if not user:
        return None
    return user.get("role")


def is_admin(user: Optional[dict]) -> bool:
    return user_role(user) == ROLE_ADMIN


def can_access_patient(user: Optional[dict], patient_id: str) -> bool:
    """Admins see every patient; a patient only sees the document keyed by their uid."""
    if not user:
        return False
    if is_admin(user):
        return True
    return user.get("uid") == patient_id
