"""
Filesystem event source: turns markdown file events in the vault into
"changed" notifications.
"""

import logging
from typing import Callable, Optional

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from metawatch.config import log_event
from metawatch.services.dispatcher import NOTIFY_CHANGED
from metawatch.services.markdown import DocumentStore


class VaultEventHandler(FileSystemEventHandler):
    """Forward created/modified/moved markdown files to `enqueue(kind, path, source)`."""

    def __init__(self, store: DocumentStore, enqueue: Callable[..., str]):
        super().__init__()
        self.store = store
        self.enqueue = enqueue

    def _forward(self, file_path) -> Optional[str]:
        if isinstance(file_path, bytes):
            file_path = file_path.decode()
        doc_path = self.store.relative(file_path)
        if doc_path is None:
            return None
        return self.enqueue(NOTIFY_CHANGED, doc_path, source="watcher")

    def on_created(self, event):
        if not event.is_directory:
            self._forward(event.src_path)

    def on_modified(self, event):
        if not event.is_directory:
            self._forward(event.src_path)

    def on_moved(self, event):
        if not event.is_directory:
            self._forward(event.dest_path)


def start_watcher(store: DocumentStore, enqueue: Callable[..., str]) -> Observer:
    """Begin watching the vault directory; returns the running observer."""
    store.ensure_root()
    handler = VaultEventHandler(store, enqueue)
    observer = Observer()
    observer.schedule(handler, path=str(store.root), recursive=True)
    observer.daemon = True
    observer.start()
    log_event(logging.INFO, "watcher_started", path=str(store.root))
    return observer
