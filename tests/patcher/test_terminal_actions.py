"""Tests for keybinding reconciliation in Windows Terminal settings."""

import json

import pytest

from patcher.backup import BackupManager
from patcher.errors import MalformedDocumentError
from patcher.terminal import (
    DESIRED_ACTIONS,
    CombinedSchema,
    SettingsFile,
    SplitSchema,
    detect_schema,
    reconcile_actions,
    reconcile_actions_document,
)

HSPLIT = {"action": "splitPane", "split": "horizontal", "splitMode": "duplicate"}
VSPLIT = {"action": "splitPane", "split": "vertical", "splitMode": "duplicate"}


class TestSchemaDetection:
    def test_keybindings_means_split(self):
        assert isinstance(detect_schema({"actions": [], "keybindings": []}), SplitSchema)

    def test_actions_only_means_combined(self):
        assert isinstance(detect_schema({"actions": []}), CombinedSchema)

    def test_missing_actions_created(self):
        document = {"profiles": {}}

        schema = detect_schema(document)

        assert document["actions"] == []
        assert schema.actions is document["actions"]

    @pytest.mark.parametrize(
        "document",
        [[], {"actions": {}}, {"keybindings": "ctrl+a"}],
    )
    def test_wrong_shapes_rejected(self, document):
        with pytest.raises(MalformedDocumentError):
            detect_schema(document)


class TestCombinedLayout:
    def test_empty_document_gets_all_bindings(self):
        document = {}

        changes = reconcile_actions_document(document)

        assert changes == ["added alt+shift+minus", "added alt+shift+plus", "added ctrl+shift+d"]
        assert document["actions"] == [
            {"command": HSPLIT, "keys": "alt+shift+minus"},
            {"command": VSPLIT, "keys": "alt+shift+plus"},
            {"command": {"action": "duplicateTab"}, "keys": "ctrl+shift+d"},
        ]

    def test_split_mode_added_to_existing_binding(self):
        document = {"actions": [
            {"command": {"action": "splitPane", "split": "horizontal"}, "keys": "alt+shift+minus"},
        ]}

        changes = reconcile_actions_document(document)

        assert "updated alt+shift+minus" in changes
        assert document["actions"][0] == {"command": HSPLIT, "keys": "alt+shift+minus"}

    def test_user_rebinding_preserved(self):
        custom = {"command": "closePane", "keys": "alt+shift+minus"}
        document = {"actions": [custom]}

        changes = reconcile_actions_document(document)

        assert "updated alt+shift+minus" not in changes
        assert document["actions"][0] == {"command": "closePane", "keys": "alt+shift+minus"}

    def test_existing_duplicate_tab_binding_kept(self):
        document = {"actions": [{"command": "newTab", "keys": "ctrl+shift+d"}]}

        changes = reconcile_actions_document(document)

        assert not any("ctrl+shift+d" in c for c in changes)
        assert document["actions"][0]["command"] == "newTab"

    def test_keys_list_and_case(self):
        document = {"actions": [
            {"command": {"action": "splitPane", "split": "vertical"}, "keys": ["Alt+Shift+Plus"]},
        ]}

        changes = reconcile_actions_document(document)

        assert "updated alt+shift+plus" in changes
        assert document["actions"][0]["command"] == VSPLIT

    def test_first_match_wins(self):
        document = {"actions": [
            {"command": {"action": "splitPane", "split": "horizontal"}, "keys": "alt+shift+minus"},
            {"command": {"action": "splitPane", "split": "horizontal"}, "keys": "alt+shift+minus"},
        ]}

        reconcile_actions_document(document)

        assert document["actions"][0]["command"] == HSPLIT
        assert "splitMode" not in document["actions"][1]["command"]

    def test_idempotent(self):
        document = {}
        reconcile_actions_document(document)
        snapshot = json.dumps(document, sort_keys=True)

        assert reconcile_actions_document(document) == []
        assert json.dumps(document, sort_keys=True) == snapshot


class TestSplitLayout:
    def test_empty_layout_gets_own_actions(self):
        document = {"actions": [], "keybindings": []}

        reconcile_actions_document(document)

        assert document["keybindings"] == [
            {"id": "User.inheritCwd.altshiftminus", "keys": "alt+shift+minus"},
            {"id": "User.inheritCwd.altshiftplus", "keys": "alt+shift+plus"},
            {"id": "User.inheritCwd.ctrlshiftd", "keys": "ctrl+shift+d"},
        ]
        assert {a["id"]: a["command"] for a in document["actions"]} == {
            "User.inheritCwd.altshiftminus": HSPLIT,
            "User.inheritCwd.altshiftplus": VSPLIT,
            "User.inheritCwd.ctrlshiftd": {"action": "duplicateTab"},
        }

    def test_bound_user_action_gets_split_mode(self):
        document = {
            "actions": [{"command": {"action": "splitPane", "split": "horizontal"}, "id": "User.mySplit"}],
            "keybindings": [{"id": "User.mySplit", "keys": "alt+shift+minus"}],
        }

        changes = reconcile_actions_document(document)

        assert "updated alt+shift+minus" in changes
        assert document["actions"][0] == {"command": HSPLIT, "id": "User.mySplit"}
        assert document["keybindings"][0] == {"id": "User.mySplit", "keys": "alt+shift+minus"}
        assert [k for k in document["keybindings"] if k["keys"] == "alt+shift+minus"] == [document["keybindings"][0]]
        assert not any(a["id"] == "User.inheritCwd.altshiftminus" for a in document["actions"])

    def test_update_adds_no_pair(self):
        document = {
            "actions": [{"command": {"action": "splitPane", "split": "horizontal"}, "id": "User.mySplit"}],
            "keybindings": [{"id": "User.mySplit", "keys": "alt+shift+minus"}],
        }

        changes = reconcile_actions_document(document, [DESIRED_ACTIONS[0]])

        assert changes == ["updated alt+shift+minus"]
        assert document == {
            "actions": [{"command": HSPLIT, "id": "User.mySplit"}],
            "keybindings": [{"id": "User.mySplit", "keys": "alt+shift+minus"}],
        }

    def test_builtin_id_rebound_to_own_action(self):
        document = {
            "actions": [],
            "keybindings": [{"id": "Terminal.DuplicatePaneAuto", "keys": "alt+shift+plus"}],
        }

        changes = reconcile_actions_document(document)

        assert "rebound alt+shift+plus from Terminal.DuplicatePaneAuto" in changes
        assert document["keybindings"][0] == {"id": "User.inheritCwd.altshiftplus", "keys": "alt+shift+plus"}
        assert {"command": VSPLIT, "id": "User.inheritCwd.altshiftplus"} in document["actions"]

    def test_explicit_unbind_respected(self):
        document = {"actions": [], "keybindings": [{"id": None, "keys": "alt+shift+minus"}]}

        reconcile_actions_document(document)

        assert document["keybindings"][0] == {"id": None, "keys": "alt+shift+minus"}
        assert not any(a["id"] == "User.inheritCwd.altshiftminus" for a in document["actions"])

    def test_idempotent(self):
        document = {
            "actions": [{"command": {"action": "splitPane", "split": "vertical"}, "id": "User.v"}],
            "keybindings": [
                {"id": "Terminal.SplitPaneH", "keys": "alt+shift+minus"},
                {"id": "User.v", "keys": "alt+shift+plus"},
            ],
        }
        assert reconcile_actions_document(document)
        snapshot = json.dumps(document, sort_keys=True)

        assert reconcile_actions_document(document) == []
        assert json.dumps(document, sort_keys=True) == snapshot


class TestReconcileFile:
    def test_rewrites_with_backup(self, tmp_path):
        path = tmp_path / "settings.json"
        original = '{\n    // comment\n    "actions": [],\n}\n'
        path.write_text(original, encoding="utf-8")
        backups = BackupManager()

        assert reconcile_actions(path, backups=backups) is True

        saved = json.loads(path.read_text(encoding="utf-8"))
        assert len(saved["actions"]) == len(DESIRED_ACTIONS)
        assert path.read_text(encoding="utf-8").startswith('{\n    "actions": [')
        assert backups.records[path].backup_path.read_text(encoding="utf-8") == original

    def test_second_run_leaves_file_alone(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("{}", encoding="utf-8")
        reconcile_actions(path)
        before = path.read_bytes()
        backups = BackupManager()

        assert reconcile_actions(path, backups=backups) is False
        assert path.read_bytes() == before
        assert backups.records == {}

    def test_malformed_file_untouched(self, tmp_path, caplog):
        path = tmp_path / "settings.json"
        path.write_text('{"actions": [', encoding="utf-8")

        assert reconcile_actions(path) is False
        assert path.read_text(encoding="utf-8") == '{"actions": ['
        assert list(tmp_path.iterdir()) == [path]
        assert "Skipping keybindings" in caplog.text

    def test_dry_run_writes_nothing(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("{}", encoding="utf-8")

        assert reconcile_actions(path, dry_run=True) is True
        assert path.read_text(encoding="utf-8") == "{}"
        assert list(tmp_path.iterdir()) == [path]

    def test_bom_accepted(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_bytes(b"\xef\xbb\xbf{}")

        assert SettingsFile(path).load() == {}
