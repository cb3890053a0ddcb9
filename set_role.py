"""Give an existing Firebase Auth account a role (bootstraps the first admin).

Usage:
    python set_role.py <uid> [admin|patient]
"""
import sys

from app.core.firebase import init_firebase
from app.services.auth_service import ROLE_ADMIN, ROLE_PATIENT, AuthService

if len(sys.argv) < 2:
    print(__doc__)
    sys.exit(1)

uid = sys.argv[1]
role = sys.argv[2] if len(sys.argv) > 2 else ROLE_ADMIN

if role not in (ROLE_ADMIN, ROLE_PATIENT):
    print(f"Unknown role: {role}")
    sys.exit(1)

init_firebase()
AuthService().set_role(uid, role)

print(f"Role '{role}' set for UID: {uid}")
print("Now log out and log in again OR refresh token using getIdToken(true)")
