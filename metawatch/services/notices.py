"""
Transient user notices, pushed to connected SSE clients.
"""

import logging
from datetime import datetime
from typing import Dict

from metawatch.config import log_event
from metawatch.state import CONNECTED_CLIENTS, RECENT_NOTICES


def broadcast_event(data: Dict):
    """Broadcast an event to all connected SSE clients."""
    for client_queue in list(CONNECTED_CLIENTS):
        try:
            client_queue.put(data)
        except Exception as e:
            log_event(logging.DEBUG, "sse_client_send_failed", error=str(e))
    log_event(logging.DEBUG, "sse_broadcast", type=data.get("type"), clients=len(CONNECTED_CLIENTS))


def post_notice(kind: str, message: str, **details) -> Dict:
    """Record a notice and broadcast it. Returns the notice payload."""
    notice = {
        "type": "notice",
        "kind": kind,
        "message": message,
        "details": details,
        "timestamp": datetime.now().isoformat(),
    }
    RECENT_NOTICES.append(notice)
    broadcast_event(notice)
    return notice
