"""
Application state management.
Notification queue, processing results, notice-stream clients, recent notices.
"""

from collections import deque
from queue import Queue
from threading import Lock
from typing import Deque, Dict, List

from metawatch.config import MAX_RECENT_NOTICES

# --- STATE CONTAINERS ---

# Connected SSE clients (one queue each)
CONNECTED_CLIENTS: List[Queue] = []

# Most recent notices, newest last
RECENT_NOTICES: Deque[Dict] = deque(maxlen=MAX_RECENT_NOTICES)

# --- NOTIFICATION QUEUE ---
# FIFO queue so open/changed notifications are handled one at a time, in order
NOTIFICATION_QUEUE: Queue = Queue()

# Lock for thread-safe operations
PROCESSING_LOCK: Lock = Lock()

# Track processing results by request ID
PROCESSING_RESULTS: Dict[str, Dict] = {}
