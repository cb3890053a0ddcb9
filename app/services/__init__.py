"""Service layer: Firestore-backed patient repository, live queries, auth and view helpers."""
