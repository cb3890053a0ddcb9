"""Error taxonomy shared by the repository, the auth service and the API.

Validation problems are reported by pydantic at the request boundary and
are not repeated here.
"""


class PatientStoreError(Exception):
    """Base class for failures surfaced by the patient repository."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(PatientStoreError):
    """Referenced patient, record or appointment does not exist."""


class StoreReadError(PatientStoreError):
    """Firestore read failed (network or service error)."""


class StoreWriteError(PatientStoreError):
    """Firestore write failed (network or service error)."""


class AuthError(Exception):
    """Sign-in, registration or token verification failed."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthUnavailableError(AuthError):
    """The sign-in endpoint could not be reached (timeout, connection error)."""
