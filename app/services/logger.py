import json
from datetime import datetime

from app.core.config import settings


def log_debug(event: str, data: dict):
    """
    Logs structured debug info if enabled.
    """
    if not settings.DEBUG_MODE:
        return

    entry = {
        "timestamp": datetime.now().isoformat(),
        "event": event,
        "data": data
    }

    print(f"\n[PATIENTS DEBUG] {event}:")
    print(json.dumps(entry, indent=2, default=str))
