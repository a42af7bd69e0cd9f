"""Tests for SettingsStore."""

import json

import pytest

from metawatch.models import ActionRule, HeaderRule, ShellAction
from metawatch.services.settings_store import SettingsStore, settings_from_dict


@pytest.fixture
def settings_path(tmp_path):
    return tmp_path / "conf" / "settings.json"


@pytest.fixture
def settings_store(settings_path):
    store = SettingsStore(settings_path)
    store.load()
    return store


class TestLoad:

    def test_defaults_when_missing(self, settings_store):
        settings = settings_store.get()

        assert settings.header_rules == [HeaderRule(watched_field="exampleField", header="## Start Date", active=True)]
        assert settings.action_rules == [ActionRule(watched_field="exampleField", action="", active=True)]
        assert settings.shell_actions == []

    def test_stored_keys_replace_defaults(self, settings_path):
        settings_path.parent.mkdir(parents=True)
        settings_path.write_text(json.dumps({"action_rules": []}))

        settings = SettingsStore(settings_path).load()

        assert settings.action_rules == []
        assert len(settings.header_rules) == 1

    def test_invalid_json_falls_back_to_defaults(self, settings_path):
        settings_path.parent.mkdir(parents=True)
        settings_path.write_text("{not json")

        settings = SettingsStore(settings_path).load()

        assert len(settings.header_rules) == 1

    def test_non_object_falls_back_to_defaults(self, settings_path):
        settings_path.parent.mkdir(parents=True)
        settings_path.write_text(json.dumps(["x"]))

        settings = SettingsStore(settings_path).load()

        assert len(settings.header_rules) == 1
        assert settings.shell_actions == []

    def test_legacy_format(self):
        settings = settings_from_dict({
            "headerGroups": [{"watchedField": "start", "header": "## Start", "active": False}],
            "commandGroups": [{"watchedField": "status", "command": "app:reload", "active": True}],
        })

        assert settings.header_rules == [HeaderRule(watched_field="start", header="## Start", active=False)]
        assert settings.action_rules == [ActionRule(watched_field="status", action="app:reload", active=True)]

    def test_shell_actions(self):
        settings = settings_from_dict({"shell_actions": [
            {"id": "build", "name": "Build", "command": "make"},
            {"name": "no id"},
        ]})

        assert settings.shell_actions == [ShellAction(id="build", name="Build", command="make")]

    def test_legacy_and_shell_actions_together(self):
        """Only the legacy rule lists get their item keys renamed."""
        settings = settings_from_dict({
            "commandGroups": [{"watchedField": "status", "command": "build"}],
            "shell_actions": [{"id": "build", "name": "Build", "command": "make"}],
        })

        assert settings.action_rules == [ActionRule(watched_field="status", action="build", active=True)]
        assert settings.shell_actions == [ShellAction(id="build", name="Build", command="make")]

    def test_unknown_rule_keys_ignored(self):
        settings = settings_from_dict({"header_rules": [{"watched_field": " date ", "colour": "red"}]})

        assert settings.header_rules == [HeaderRule(watched_field="date", header="", active=True)]


class TestEditing:

    def test_add_rule_persists(self, settings_store, settings_path):
        rule = settings_store.add_rule("action", watched_field="status", action="deploy")

        assert rule == ActionRule(watched_field="status", action="deploy", active=True)
        saved = json.loads(settings_path.read_text())
        assert saved["action_rules"][-1] == {"watched_field": "status", "active": True, "action": "deploy"}

    def test_add_blank_rule(self, settings_store):
        rule = settings_store.add_rule("header")

        assert rule == HeaderRule()
        assert len(settings_store.get().header_rules) == 2

    def test_update_rule(self, settings_store):
        rule = settings_store.update_rule("header", 0, header="## Begin", ignored="x")

        assert rule.header == "## Begin"
        assert rule.watched_field == "exampleField"
        assert settings_store.get().header_rules[0] is rule

    def test_toggle_rule(self, settings_store):
        assert settings_store.toggle_rule("action", 0).active is False
        assert settings_store.toggle_rule("action", 0).active is True

    def test_remove_rule(self, settings_store, settings_path):
        removed = settings_store.remove_rule("header", 0)

        assert removed.header == "## Start Date"
        assert settings_store.get().header_rules == []
        assert json.loads(settings_path.read_text())["header_rules"] == []

    def test_unknown_kind(self, settings_store):
        with pytest.raises(ValueError):
            settings_store.add_rule("macro")

    @pytest.mark.parametrize("index", [-1, 1, 5])
    def test_bad_index(self, settings_store, index):
        with pytest.raises(IndexError):
            settings_store.update_rule("header", index, header="x")
        with pytest.raises(IndexError):
            settings_store.remove_rule("header", index)

    def test_round_trip_through_disk(self, settings_store, settings_path):
        settings_store.add_rule("header", watched_field="due", header="## Due")

        reloaded = SettingsStore(settings_path).load()

        assert reloaded.header_rules[-1] == HeaderRule(watched_field="due", header="## Due", active=True)

    def test_edit_keeps_shell_actions(self, settings_path):
        settings_path.parent.mkdir(parents=True)
        settings_path.write_text(json.dumps({"shell_actions": [{"id": "build", "name": "Build", "command": "make all"}]}))
        store = SettingsStore(settings_path)
        store.load()

        store.add_rule("action", watched_field="status", action="build")

        saved = json.loads(settings_path.read_text())
        assert saved["shell_actions"] == [{"id": "build", "name": "Build", "command": "make all"}]
        assert SettingsStore(settings_path).load().shell_actions == [ShellAction(id="build", name="Build", command="make all")]
