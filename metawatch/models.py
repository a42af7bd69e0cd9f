"""
Data structures (dataclasses) for metawatch.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class WatchRule:
    """Shared shape of every rule: which front-matter key to watch, and whether it is on."""
    watched_field: str = ""
    active: bool = True

    @property
    def is_live(self) -> bool:
        """A rule takes effect only when active and watching a non-empty field."""
        return self.active and bool(self.watched_field)


@dataclass
class HeaderRule(WatchRule):
    """Rewrite the first line starting with `header` to `<header> <value>`."""
    header: str = ""


@dataclass
class ActionRule(WatchRule):
    """Invoke a registered action when the field changes after its baseline."""
    action: str = ""


@dataclass
class ShellAction:
    """A shell command exposed through the action registry."""
    id: str
    name: str
    command: str


@dataclass
class Settings:
    """Ordered rule sequences plus user-declared shell actions."""
    header_rules: List[HeaderRule] = field(default_factory=list)
    action_rules: List[ActionRule] = field(default_factory=list)
    shell_actions: List[ShellAction] = field(default_factory=list)

    @property
    def rules(self) -> List[WatchRule]:
        return [*self.header_rules, *self.action_rules]


@dataclass
class ActionInfo:
    """Name + identifier pair, as listed by the action registry."""
    id: str
    name: str


@dataclass
class DispatchResult:
    """Outcome of one metadata-change dispatch for a single document."""
    path: str
    evaluated: bool = False
    headers_updated: List[str] = field(default_factory=list)
    headers_missing: List[str] = field(default_factory=list)
    actions_executed: List[str] = field(default_factory=list)
    actions_suppressed: List[str] = field(default_factory=list)
    failures: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def reacted(self) -> bool:
        return bool(self.headers_updated or self.actions_executed)
