"""
metawatch - front-matter watcher for a markdown vault.

Watches documents for changes to configured front-matter fields and reacts:
rewrites a matching header line, or runs a registered action.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from flask import Flask
from flask_cors import CORS

from metawatch.config import (
    log_event,
    PORT,
    SETTINGS_FILE,
    VAULT_DIR,
    WATCH_ENABLED,
)
from metawatch.routes import api
from metawatch.services.actions import ActionRegistry, register_builtin_actions, register_shell_actions
from metawatch.services.dispatcher import ChangeDispatcher
from metawatch.services.markdown import DocumentStore
from metawatch.services.notices import post_notice
from metawatch.services.queue_processor import enqueue_notification, start_queue_worker, stop_queue_worker
from metawatch.services.settings_store import SettingsStore
from metawatch.services.watcher import start_watcher


@dataclass
class WatchService:
    """Everything one running instance owns. The dispatcher's baseline cache lives as long as this."""
    store: DocumentStore
    settings: SettingsStore
    registry: ActionRegistry
    dispatcher: ChangeDispatcher


def build_service(vault_dir: Path = VAULT_DIR, settings_file: Path = SETTINGS_FILE,
                  registry: Optional[ActionRegistry] = None) -> WatchService:
    """Load settings, register actions and wire up a dispatcher with a fresh baseline cache."""
    store = DocumentStore(vault_dir)
    settings = SettingsStore(settings_file)
    settings.load()

    if registry is None:
        registry = ActionRegistry()
        register_builtin_actions(registry)
    register_shell_actions(registry, settings.get().shell_actions, cwd=store.root)

    dispatcher = ChangeDispatcher(
        store=store,
        registry=registry,
        settings_provider=settings.get,
        notify=post_notice,
    )
    return WatchService(store=store, settings=settings, registry=registry, dispatcher=dispatcher)


def create_app(service: WatchService) -> Flask:
    app = Flask(__name__)
    CORS(app)
    app.extensions["metawatch"] = service
    app.register_blueprint(api)
    return app


def main():
    service = build_service()
    service.store.ensure_root()
    service.dispatcher.seed_all()
    start_queue_worker(service.dispatcher.handle_notification)

    observer = None
    if WATCH_ENABLED:
        observer = start_watcher(service.store, enqueue_notification)

    log_event(
        logging.INFO,
        "server_startup",
        vault=str(service.store.root),
        settings=str(service.settings.path),
        actions=len(service.registry),
        watching=bool(observer),
        port=PORT,
    )

    print(f"""
    ╔═══════════════════════════════════════════════════╗
    ║        metawatch - front-matter watcher           ║
    ╠═══════════════════════════════════════════════════╣
    ║   Vault:     {str(service.store.root):<36} ║
    ║   Watcher:   {'✅ Running' if observer else '❌ Disabled':<35} ║
    ║   Server:    http://localhost:{PORT:<20} ║
    ╚═══════════════════════════════════════════════════╝
    """)

    try:
        create_app(service).run(port=PORT, threaded=True)
    finally:
        if observer is not None:
            observer.stop()
            observer.join(timeout=5.0)
        stop_queue_worker()


if __name__ == '__main__':
    main()
