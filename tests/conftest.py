"""Shared fixtures: a temporary vault, a document store and a dispatcher."""

import pytest
from unittest.mock import MagicMock

from metawatch.models import ActionRule, HeaderRule, Settings
from metawatch.services.actions import ActionRegistry
from metawatch.services.baseline import BaselineCache
from metawatch.services.dispatcher import ChangeDispatcher
from metawatch.services.markdown import DocumentStore


def write_doc(root, name, front_matter="", body=""):
    """Write a markdown document; `front_matter` is raw YAML without the fences."""
    path = root / name
    path.parent.mkdir(parents=True, exist_ok=True)
    text = f"---\n{front_matter}\n---\n{body}" if front_matter else body
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def vault(tmp_path):
    root = tmp_path / "vault"
    root.mkdir()
    return root


@pytest.fixture
def store(vault):
    return DocumentStore(vault)


@pytest.fixture
def deploy_action():
    return MagicMock(name="deploy")


@pytest.fixture
def registry(deploy_action):
    registry = ActionRegistry()
    registry.register("deploy", "Deploy site", deploy_action)
    return registry


@pytest.fixture
def settings():
    return Settings(
        header_rules=[HeaderRule(watched_field="date", header="## Date", active=True)],
        action_rules=[ActionRule(watched_field="status", action="deploy", active=True)],
    )


@pytest.fixture
def cache():
    return BaselineCache()


@pytest.fixture
def notify():
    return MagicMock(name="notify")


@pytest.fixture
def dispatcher(store, registry, settings, cache, notify):
    return ChangeDispatcher(
        store=store,
        registry=registry,
        settings_provider=lambda: settings,
        cache=cache,
        notify=notify,
    )


@pytest.fixture
def make_doc(vault):
    """Factory fixture: make_doc("note.md", "date: 2024-01-01", "## Date\n")."""
    def _make(name, front_matter="", body=""):
        return write_doc(vault, name, front_matter, body)
    return _make


@pytest.fixture(autouse=True)
def clean_state():
    """Empty the process-level containers around every test."""
    import queue

    from metawatch import state

    def _clear():
        while True:
            try:
                state.NOTIFICATION_QUEUE.get_nowait()
            except queue.Empty:
                break
            state.NOTIFICATION_QUEUE.task_done()
        with state.PROCESSING_LOCK:
            state.PROCESSING_RESULTS.clear()
        state.CONNECTED_CLIENTS.clear()
        state.RECENT_NOTICES.clear()

    _clear()
    yield
    _clear()
