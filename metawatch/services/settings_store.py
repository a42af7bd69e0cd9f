"""
Persisted rule configuration.

Responsibilities:
- Load settings from a JSON file, backfilling defaults for missing keys.
- Accept the legacy plugin data format (headerGroups / commandGroups).
- Rule editing operations (add / update / toggle / remove), saved on every edit.
"""

import copy
import json
import logging
import threading
from dataclasses import asdict, fields
from pathlib import Path
from typing import Any, Dict, List, Union

from metawatch.config import log_event, DEFAULT_SETTINGS
from metawatch.models import ActionRule, HeaderRule, Settings, ShellAction

RULE_KINDS = {
    "header": ("header_rules", HeaderRule),
    "action": ("action_rules", ActionRule),
}

# Legacy plugin rule lists -> our keys, and the keys renamed inside their items
LEGACY_RULE_LISTS = {
    "headerGroups": "header_rules",
    "commandGroups": "action_rules",
}
LEGACY_RULE_KEYS = {
    "watchedField": "watched_field",
    "command": "action",
}


def _from_legacy(data: Dict[str, Any]) -> Dict[str, Any]:
    """Convert plugin-style data.json content to our settings shape."""
    converted = {}
    for key, value in data.items():
        if key in LEGACY_RULE_LISTS and isinstance(value, list):
            key = LEGACY_RULE_LISTS[key]
            value = [
                {LEGACY_RULE_KEYS.get(k, k): v for k, v in item.items()} if isinstance(item, dict) else item
                for item in value
            ]
        converted[key] = value
    return converted


def _build_rule(cls, raw: Dict[str, Any]):
    known = {f.name for f in fields(cls)}
    kwargs = {k: v for k, v in (raw or {}).items() if k in known}
    kwargs["watched_field"] = str(kwargs.get("watched_field") or "").strip()
    kwargs["active"] = bool(kwargs.get("active", True))
    return cls(**kwargs)


def settings_from_dict(data: Dict[str, Any]) -> Settings:
    """Shallow-merge `data` over the defaults and build a Settings object."""
    merged = copy.deepcopy(DEFAULT_SETTINGS)
    merged.update(_from_legacy(data or {}))
    return Settings(
        header_rules=[_build_rule(HeaderRule, r) for r in merged.get("header_rules") or []],
        action_rules=[_build_rule(ActionRule, r) for r in merged.get("action_rules") or []],
        shell_actions=[
            ShellAction(id=str(a["id"]), name=str(a.get("name") or a["id"]), command=str(a.get("command", "")))
            for a in merged.get("shell_actions") or []
            if isinstance(a, dict) and a.get("id")
        ],
    )


def settings_to_dict(settings: Settings) -> Dict[str, Any]:
    return asdict(settings)


class SettingsStore:
    """
    JSON-file backed settings. `current` is the in-memory copy the dispatcher
    reads on every notification; every edit is written straight back to disk.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.RLock()
        self.current = Settings()

    def load(self) -> Settings:
        data: Dict[str, Any] = {}
        if self.path.exists():
            try:
                data = json.loads(self.path.read_text(encoding="utf-8")) or {}
                if not isinstance(data, dict):
                    raise ValueError(f"expected a JSON object, got {type(data).__name__}")
            except (OSError, ValueError) as e:
                log_event(logging.ERROR, "settings_load_failed", path=str(self.path), error=str(e))
                data = {}
        with self._lock:
            self.current = settings_from_dict(data)
        log_event(
            logging.INFO,
            "settings_loaded",
            path=str(self.path),
            header_rules=len(self.current.header_rules),
            action_rules=len(self.current.action_rules),
        )
        return self.current

    def save(self) -> bool:
        """Write the current settings to disk. Returns True on success."""
        with self._lock:
            payload = json.dumps(settings_to_dict(self.current), indent=2, ensure_ascii=False)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(payload, encoding="utf-8")
            log_event(logging.DEBUG, "settings_saved", path=str(self.path))
            return True
        except OSError as e:
            log_event(logging.ERROR, "settings_save_failed", path=str(self.path), error=str(e))
            return False

    def get(self) -> Settings:
        return self.current

    # --- rule editing ---

    def _rules(self, kind: str) -> List[Union[HeaderRule, ActionRule]]:
        if kind not in RULE_KINDS:
            raise ValueError(f"Unknown rule kind: {kind}")
        return getattr(self.current, RULE_KINDS[kind][0])

    def add_rule(self, kind: str, **values) -> Union[HeaderRule, ActionRule]:
        with self._lock:
            rules = self._rules(kind)
            rule = _build_rule(RULE_KINDS[kind][1], values)
            rules.append(rule)
            self.save()
        log_event(logging.INFO, "rule_added", kind=kind, index=len(rules) - 1, field=rule.watched_field)
        return rule

    def update_rule(self, kind: str, index: int, **values) -> Union[HeaderRule, ActionRule]:
        with self._lock:
            rules = self._rules(kind)
            if not 0 <= index < len(rules):
                raise IndexError(f"No {kind} rule at index {index}")
            current = asdict(rules[index])
            current.update({k: v for k, v in values.items() if k in current})
            rules[index] = _build_rule(RULE_KINDS[kind][1], current)
            self.save()
        log_event(logging.INFO, "rule_updated", kind=kind, index=index, fields=",".join(sorted(values)))
        return rules[index]

    def toggle_rule(self, kind: str, index: int) -> Union[HeaderRule, ActionRule]:
        with self._lock:
            rules = self._rules(kind)
            if not 0 <= index < len(rules):
                raise IndexError(f"No {kind} rule at index {index}")
            return self.update_rule(kind, index, active=not rules[index].active)

    def remove_rule(self, kind: str, index: int) -> Union[HeaderRule, ActionRule]:
        with self._lock:
            rules = self._rules(kind)
            if not 0 <= index < len(rules):
                raise IndexError(f"No {kind} rule at index {index}")
            removed = rules.pop(index)
            self.save()
        log_event(logging.INFO, "rule_removed", kind=kind, index=index, field=removed.watched_field)
        return removed
