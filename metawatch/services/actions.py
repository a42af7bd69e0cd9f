"""
Action registry: named, invocable actions addressed by opaque identifiers.
"""

import shlex
import logging
import subprocess
import threading
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from metawatch.config import log_event, ACTION_TIMEOUT
from metawatch.models import ActionInfo, ShellAction

LOG_CHANGE_ACTION_ID = "metawatch:log-change"


class ActionRegistry:
    """
    Holds actions as (name, callback) pairs keyed by identifier.

    `execute` never raises: unknown identifiers and failing callbacks are
    reported as False so one bad action cannot take down the caller.
    """

    def __init__(self):
        self._actions: Dict[str, Tuple[str, Callable[[], object]]] = {}
        self._lock = threading.Lock()

    def register(self, action_id: str, name: str, callback: Callable[[], object]) -> None:
        if not action_id:
            raise ValueError("Action id cannot be empty.")
        with self._lock:
            replaced = action_id in self._actions
            self._actions[action_id] = (name, callback)
        log_event(logging.DEBUG, "action_registered", action=action_id, replaced=replaced)

    def unregister(self, action_id: str) -> bool:
        with self._lock:
            return self._actions.pop(action_id, None) is not None

    def find(self, action_id: str) -> Optional[ActionInfo]:
        with self._lock:
            entry = self._actions.get(action_id)
        return ActionInfo(id=action_id, name=entry[0]) if entry else None

    def list_actions(self) -> List[ActionInfo]:
        with self._lock:
            return [ActionInfo(id=k, name=v[0]) for k, v in self._actions.items()]

    def execute(self, action_id: str) -> bool:
        """Run an action by id. Returns True on success."""
        with self._lock:
            entry = self._actions.get(action_id)
        if entry is None:
            log_event(logging.WARNING, "action_unknown", action=action_id)
            return False

        name, callback = entry
        try:
            result = callback()
        except Exception as e:
            log_event(logging.ERROR, "action_failed", action=action_id, name=name, error=str(e))
            return False

        # Callbacks may report failure by returning False explicitly
        if result is False:
            log_event(logging.WARNING, "action_reported_failure", action=action_id, name=name)
            return False

        log_event(logging.INFO, "action_executed", action=action_id, name=name)
        return True

    def __contains__(self, action_id: str) -> bool:
        with self._lock:
            return action_id in self._actions

    def __len__(self) -> int:
        with self._lock:
            return len(self._actions)


def make_shell_callback(command: str, cwd: Optional[Path] = None,
                        timeout: Optional[float] = ACTION_TIMEOUT) -> Callable[[], bool]:
    """Build a callback that runs `command` and succeeds on exit status 0."""
    argv = shlex.split(command)
    if not argv:
        raise ValueError("Shell action command cannot be empty.")

    def run() -> bool:
        completed = subprocess.run(
            argv,
            cwd=str(cwd) if cwd else None,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
        if completed.returncode != 0:
            log_event(
                logging.WARNING,
                "shell_action_exit_nonzero",
                command=argv[0],
                returncode=completed.returncode,
                stderr=completed.stderr.strip()[:200],
            )
            return False
        log_event(logging.DEBUG, "shell_action_output", command=argv[0], stdout=completed.stdout.strip()[:200])
        return True

    return run


def register_shell_actions(registry: ActionRegistry, actions: Iterable[ShellAction],
                           cwd: Optional[Path] = None) -> int:
    """Register every declared shell action; malformed entries are logged and skipped."""
    count = 0
    for action in actions:
        try:
            registry.register(action.id, action.name or action.id, make_shell_callback(action.command, cwd=cwd))
            count += 1
        except ValueError as e:
            log_event(logging.WARNING, "shell_action_invalid", action=action.id, error=str(e))
    log_event(logging.INFO, "shell_actions_registered", count=count)
    return count


def register_builtin_actions(registry: ActionRegistry) -> None:
    registry.register(
        LOG_CHANGE_ACTION_ID,
        "Log metadata change",
        lambda: log_event(logging.INFO, "metadata_change_logged"),
    )
