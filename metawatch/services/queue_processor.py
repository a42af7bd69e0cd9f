"""
Queue processor for FIFO notification handling.
Ensures open/changed notifications are handled one at a time, in the order they arrived.
"""

import queue
import logging
import threading
import uuid
from typing import Callable, Dict, Optional
from dataclasses import dataclass
from datetime import datetime

from metawatch.config import log_event, MAX_PROCESSING_RESULTS
from metawatch.state import NOTIFICATION_QUEUE, PROCESSING_LOCK, PROCESSING_RESULTS


@dataclass
class QueueItem:
    """Item in the notification queue."""
    request_id: str
    kind: str
    path: str
    timestamp: datetime
    source: str = "api"


# Background worker thread
_worker_thread: Optional[threading.Thread] = None
_worker_running = False


def enqueue_notification(kind: str, path: str, source: str = "api") -> str:
    """
    Add a notification to the queue.
    Returns a request_id that can be used to check the result.
    """
    request_id = str(uuid.uuid4())[:8]

    item = QueueItem(
        request_id=request_id,
        kind=kind,
        path=path,
        timestamp=datetime.now(),
        source=source,
    )

    # Initialize result slot
    with PROCESSING_LOCK:
        PROCESSING_RESULTS[request_id] = {
            "status": "queued",
            "queued_at": item.timestamp.isoformat(),
            "kind": kind,
            "path": path,
        }

    NOTIFICATION_QUEUE.put(item)

    log_event(logging.DEBUG, "queue_enqueue",
              request_id=request_id,
              kind=kind,
              path=path,
              source=source,
              queue_size=NOTIFICATION_QUEUE.qsize())

    return request_id


def get_result(request_id: str) -> Optional[Dict]:
    """Get the result for a request ID."""
    with PROCESSING_LOCK:
        return PROCESSING_RESULTS.get(request_id)


def process_item(item: QueueItem, handler: Callable[[str, str], Dict]) -> Dict:
    """Run one queued notification through `handler` and record its result."""
    with PROCESSING_LOCK:
        if item.request_id in PROCESSING_RESULTS:
            PROCESSING_RESULTS[item.request_id]["status"] = "processing"
            PROCESSING_RESULTS[item.request_id]["started_at"] = datetime.now().isoformat()

    try:
        result = handler(item.kind, item.path)
        status = "error" if result.get("status") == "error" else "completed"
    except Exception as e:
        log_event(logging.ERROR, "queue_process_error", request_id=item.request_id, error=str(e))
        result = {"status": "error", "error": str(e)}
        status = "error"

    with PROCESSING_LOCK:
        if item.request_id in PROCESSING_RESULTS:
            PROCESSING_RESULTS[item.request_id].update({
                "status": status,
                "completed_at": datetime.now().isoformat(),
                "result": result,
            })
        _trim_results()

    log_event(logging.DEBUG, "queue_process_complete",
              request_id=item.request_id,
              kind=item.kind,
              path=item.path,
              status=status)
    return result


def _trim_results():
    """Keep only the newest results. Caller holds PROCESSING_LOCK."""
    if len(PROCESSING_RESULTS) > MAX_PROCESSING_RESULTS:
        sorted_keys = sorted(
            PROCESSING_RESULTS.keys(),
            key=lambda k: PROCESSING_RESULTS[k].get("queued_at", "")
        )
        for key in sorted_keys[:-MAX_PROCESSING_RESULTS]:
            del PROCESSING_RESULTS[key]


def _process_queue(handler: Callable[[str, str], Dict]):
    """Background worker that processes queue items in FIFO order."""
    log_event(logging.INFO, "queue_worker_started")

    while _worker_running:
        try:
            # Block for up to 1 second waiting for items
            item = NOTIFICATION_QUEUE.get(timeout=1.0)
        except queue.Empty:
            continue

        try:
            process_item(item, handler)
        finally:
            NOTIFICATION_QUEUE.task_done()

    log_event(logging.INFO, "queue_worker_stopped")


def start_queue_worker(handler: Callable[[str, str], Dict]):
    """Start the background worker; `handler(kind, path)` processes each notification."""
    global _worker_thread, _worker_running

    if _worker_thread is not None and _worker_thread.is_alive():
        log_event(logging.WARNING, "queue_worker_already_running")
        return

    _worker_running = True
    _worker_thread = threading.Thread(target=_process_queue, args=(handler,), daemon=True)
    _worker_thread.start()
    log_event(logging.INFO, "queue_worker_thread_started")


def stop_queue_worker():
    """Stop the background worker."""
    global _worker_running
    _worker_running = False
    if _worker_thread is not None:
        _worker_thread.join(timeout=5.0)
    log_event(logging.INFO, "queue_worker_thread_stopped")
