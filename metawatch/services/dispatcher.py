"""
Change dispatcher: reacts to front-matter changes according to the watch rules.

Two notifications drive it:
- open: refresh the baseline for every live rule's field (seeding, never reacting)
- changed: compare each live rule's field with its baseline and react on difference
    - HeaderRule: rewrite the matching header line, including on first observation
    - ActionRule: invoke the action, but only once a baseline already existed

Baselines are read once at the start of a dispatch and committed at the end,
so several rules watching the same field all see the same previous value.
No exception leaves `handle_notification`: failures are logged, returned and
posted as notices.
"""

import logging
import threading
from dataclasses import asdict
from typing import Any, Callable, Dict, List, Optional

from metawatch.config import log_event
from metawatch.models import ActionRule, DispatchResult, HeaderRule, Settings, WatchRule
from metawatch.services.actions import ActionRegistry
from metawatch.services.baseline import ABSENT, BaselineCache
from metawatch.services.markdown import DocumentStore, has_header, replace_header_with_value

NOTIFY_OPEN = "open"
NOTIFY_CHANGED = "changed"


def _no_notice(kind: str, message: str, **details) -> None:
    return None


def same_value(current: Any, previous: Any) -> bool:
    """True when `current` equals the baseline and has the same type, so `1` and `True` differ."""
    if previous is ABSENT:
        return False
    return type(current) is type(previous) and current == previous


def live_fields(rules: List[WatchRule], metadata: Dict[str, Any]) -> List[str]:
    """Fields watched by an active rule that currently hold a truthy value, in rule order."""
    seen = []
    for rule in rules:
        if rule.is_live and metadata.get(rule.watched_field) and rule.watched_field not in seen:
            seen.append(rule.watched_field)
    return seen


class ChangeDispatcher:
    def __init__(
        self,
        store: DocumentStore,
        registry: ActionRegistry,
        settings_provider: Callable[[], Settings],
        cache: Optional[BaselineCache] = None,
        notify: Callable[..., Any] = _no_notice,
    ):
        self.store = store
        self.registry = registry
        self.settings_provider = settings_provider
        self.cache = cache if cache is not None else BaselineCache()
        self.notify = notify
        self._path_locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, path: str) -> threading.Lock:
        """One lock per document so read-modify-write of a document never interleaves."""
        with self._locks_guard:
            lock = self._path_locks.get(path)
            if lock is None:
                lock = self._path_locks[path] = threading.Lock()
            return lock

    # --- seeding ---

    def seed(self, path: str, metadata: Optional[Dict[str, Any]]) -> int:
        """
        Overwrite the baseline of every live rule's field with its current value.

        Never reacts. Re-opening a document therefore adopts any change made
        while it was closed as the new baseline. Returns the number of fields seeded.
        """
        if not metadata:
            return 0
        settings = self.settings_provider()
        with self._lock_for(path):
            fields = live_fields(settings.rules, metadata)
            for field in fields:
                self.cache.set(path, field, metadata[field])
        if fields:
            log_event(logging.DEBUG, "baseline_seeded", path=path, fields=",".join(fields))
        return len(fields)

    def seed_all(self) -> int:
        """Seed every document in the store. Returns how many documents had fields seeded."""
        seeded = 0
        for path in self.store.list_documents():
            if self.seed(path, self.store.metadata(path)):
                seeded += 1
        log_event(logging.INFO, "baseline_initialized", documents=seeded, entries=len(self.cache))
        return seeded

    def on_file_open(self, path: str) -> int:
        return self.seed(path, self.store.metadata(path))

    # --- dispatch ---

    def on_metadata_changed(self, path: str, metadata: Optional[Dict[str, Any]]) -> DispatchResult:
        """Evaluate every rule against `metadata` and react where the value moved."""
        result = DispatchResult(path=path)
        if not metadata:
            log_event(logging.DEBUG, "dispatch_skipped_no_metadata", path=path)
            return result

        settings = self.settings_provider()
        header_rules = list(settings.header_rules)
        action_rules = list(settings.action_rules)

        with self._lock_for(path):
            fields = live_fields([*header_rules, *action_rules], metadata)
            baseline = self.cache.snapshot(path, fields)
            result.evaluated = True

            for rule in header_rules:
                self._evaluate(rule, path, metadata, baseline, result)
            for rule in action_rules:
                self._evaluate(rule, path, metadata, baseline, result)

            for field in fields:
                self.cache.set(path, field, metadata[field])

        if result.reacted or result.failures:
            log_event(
                logging.INFO,
                "dispatch_complete",
                path=path,
                headers=len(result.headers_updated),
                actions=len(result.actions_executed),
                suppressed=len(result.actions_suppressed),
                failures=len(result.failures),
            )
        return result

    def _evaluate(self, rule: WatchRule, path: str, metadata: Dict[str, Any],
                  baseline: Dict[str, Any], result: DispatchResult) -> None:
        if not rule.is_live:
            return
        current = metadata.get(rule.watched_field)
        if not current:
            return
        previous = baseline.get(rule.watched_field, ABSENT)
        if same_value(current, previous):
            return

        try:
            if isinstance(rule, HeaderRule):
                self._rewrite_header(rule, path, current, result)
            elif isinstance(rule, ActionRule):
                self._run_action(rule, path, previous, result)
            else:
                raise TypeError(f"Unsupported rule type: {type(rule).__name__}")
        except Exception as e:
            log_event(logging.ERROR, "rule_reaction_failed", path=path, field=rule.watched_field, error=str(e))
            result.failures.append({"field": rule.watched_field, "rule": type(rule).__name__, "error": str(e)})
            self.notify("dispatch_failed", f"Could not react to '{rule.watched_field}' in {path}: {e}",
                        path=path, field=rule.watched_field)

    def _rewrite_header(self, rule: HeaderRule, path: str, value: Any, result: DispatchResult) -> None:
        content = self.store.read(path)
        updated = replace_header_with_value(content, rule.header, value)

        if updated == content:
            if has_header(content, rule.header):
                log_event(logging.DEBUG, "header_already_current", path=path, header=rule.header)
                return
            result.headers_missing.append(rule.header)
            log_event(logging.WARNING, "header_not_found", path=path, header=rule.header)
            self.notify("header_not_found", f"Header '{rule.header}' not found in {path}",
                        path=path, header=rule.header)
            return

        if not self.store.write(path, updated):
            raise OSError(f"Could not write {path}")

        result.headers_updated.append(rule.header)
        self.notify("header_updated", f"Updated '{rule.header}' in {path}", path=path, header=rule.header)

    def _run_action(self, rule: ActionRule, path: str, previous: Any, result: DispatchResult) -> None:
        if previous is ABSENT:
            # First value seen for this field becomes the baseline, it does not trigger
            result.actions_suppressed.append(rule.action)
            log_event(logging.DEBUG, "action_suppressed_first_value", path=path, field=rule.watched_field)
            return

        if not rule.action:
            log_event(logging.WARNING, "action_rule_unconfigured", path=path, field=rule.watched_field)
            return

        if self.registry.execute(rule.action):
            result.actions_executed.append(rule.action)
            self.notify("action_executed", f"Ran action '{rule.action}' for {path}",
                        path=path, action=rule.action)
            return

        result.failures.append({"field": rule.watched_field, "rule": "ActionRule", "error": f"action '{rule.action}' failed"})
        self.notify("action_failed", f"Action '{rule.action}' failed for {path}", path=path, action=rule.action)

    # --- notification entry point ---

    def handle_notification(self, kind: str, path: str) -> Dict[str, Any]:
        """Process one host notification. Never raises."""
        try:
            if kind == NOTIFY_OPEN:
                return {"status": "seeded", "path": path, "seeded": self.on_file_open(path)}
            if kind == NOTIFY_CHANGED:
                result = self.on_metadata_changed(path, self.store.metadata(path))
                return {"status": "processed", **asdict(result)}
            raise ValueError(f"Unknown notification kind: {kind}")
        except Exception as e:
            log_event(logging.ERROR, "notification_failed", kind=kind, path=path, error=str(e))
            self.notify("dispatch_failed", f"Could not process {kind} for {path}: {e}", path=path)
            return {"status": "error", "path": path, "error": str(e)}
