"""Services package for metawatch."""

from metawatch.services.baseline import (
    ABSENT,
    BaselineCache,
)

from metawatch.services.markdown import (
    DocumentStore,
    format_value,
    has_header,
    parse_front_matter,
    replace_header_with_value,
)

from metawatch.services.actions import (
    ActionRegistry,
    register_builtin_actions,
    register_shell_actions,
)

from metawatch.services.dispatcher import (
    ChangeDispatcher,
    NOTIFY_CHANGED,
    NOTIFY_OPEN,
)

from metawatch.services.fuzzy import (
    highlight,
    rank_candidates,
)

from metawatch.services.settings_store import SettingsStore

__all__ = [
    # Baseline
    "ABSENT",
    "BaselineCache",
    # Markdown
    "DocumentStore",
    "format_value",
    "has_header",
    "parse_front_matter",
    "replace_header_with_value",
    # Actions
    "ActionRegistry",
    "register_builtin_actions",
    "register_shell_actions",
    # Dispatch
    "ChangeDispatcher",
    "NOTIFY_CHANGED",
    "NOTIFY_OPEN",
    # Picker
    "highlight",
    "rank_candidates",
    # Settings
    "SettingsStore",
]
