"""
Pytest configuration for the patient records test suite.

Debug logging is switched off before the app package is imported so test
output stays readable. Firestore is replaced per test by the in-memory
client from ``fake_firestore``; nothing here talks to Firebase.
"""
import os

os.environ.setdefault("DEBUG_MODE", "false")
