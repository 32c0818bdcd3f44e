"""CLI surface tests."""

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

import command_box.cli as cli_mod

runner = CliRunner()


@pytest.fixture(autouse=True)
def cbox_home(tmp_path, monkeypatch):
    home = tmp_path / "home"
    monkeypatch.setenv("CBOX_HOME", str(home))
    monkeypatch.setenv("CBOX_CLOUD_PATH", str(tmp_path / "cloud"))
    monkeypatch.delenv("CBOX_CLOUD_LOGIN", raising=False)
    monkeypatch.delenv("CBOX_SKIP_QUESTIONS", raising=False)
    return home


def _invoke(*args: str):
    return runner.invoke(cli_mod.app, ["--yes", *args])


def _seed():
    assert _invoke("space", "add", "-l", "scripts", "-d", "My scripts").exit_code == 0
    result = _invoke(
        "command", "add", "@scripts", "-l", "deploy", "-c", "make deploy", "-t", "prod"
    )
    assert result.exit_code == 0, result.stdout


def test_help_lists_command_groups():
    result = runner.invoke(cli_mod.app, ["--help"])
    assert result.exit_code == 0
    for group in ("space", "command", "cloud", "config", "search", "tags"):
        assert group in result.stdout


def test_space_add_and_list_json(cbox_home):
    _seed()
    result = _invoke("space", "list", "--json")
    assert result.exit_code == 0
    spaces = json.loads(result.stdout)
    assert [s["id"] for s in spaces] == ["scripts"]
    assert spaces[0]["entries"][0]["id"] == "deploy@scripts"
    assert (cbox_home / "spaces" / "scripts.json").is_file()


def test_command_view_source_prints_snippet():
    _seed()
    result = _invoke("command", "view", "deploy@scripts", "--source")
    assert result.exit_code == 0
    assert result.stdout.strip() == "make deploy"


def test_command_list_json_filters_by_tag():
    _seed()
    _invoke("command", "add", "@scripts", "-l", "build", "-c", "make")
    result = _invoke("command", "list", "prod@scripts", "--json")
    assert result.exit_code == 0
    assert [c["label"] for c in json.loads(result.stdout)] == ["deploy"]


def test_tag_and_untag():
    _seed()
    assert _invoke("command", "tag", "deploy@scripts", "K8S").exit_code == 0
    assert _invoke("command", "untag", "deploy@scripts", "prod").exit_code == 0
    result = _invoke("command", "list", "@scripts", "--json")
    assert json.loads(result.stdout)[0]["tags"] == ["k8s"]


def test_duplicate_command_fails():
    _seed()
    result = _invoke("command", "add", "@scripts", "-l", "deploy", "-c", "other")
    assert result.exit_code == 1
    assert "already exists" in result.stdout


def test_space_rename_moves_file(cbox_home):
    _seed()
    result = _invoke("space", "edit", "scripts", "-l", "tools")
    assert result.exit_code == 0, result.stdout
    assert (cbox_home / "spaces" / "tools.json").is_file()
    assert not (cbox_home / "spaces" / "scripts.json").exists()

    result = _invoke("command", "view", "deploy@tools", "--source")
    assert result.stdout.strip() == "make deploy"


def test_missing_space_exits_nonzero():
    result = _invoke("space", "delete", "nothing")
    assert result.exit_code == 1
    assert "not found" in result.stdout


def test_malformed_selector_exits_nonzero():
    result = _invoke("command", "view", "a@b@c")
    assert result.exit_code == 1


def test_space_delete(cbox_home):
    _seed()
    assert _invoke("space", "delete", "scripts").exit_code == 0
    assert not (cbox_home / "spaces" / "scripts.json").exists()


def test_search_json_free_output():
    _seed()
    result = _invoke("search", "deploy")
    assert result.exit_code == 0
    assert "deploy" in result.stdout


def test_publish_requires_login():
    _seed()
    result = _invoke("cloud", "publish", "scripts")
    assert result.exit_code == 1
    assert "not logged in" in result.stdout


def test_login_publish_and_clone(tmp_path, cbox_home):
    _seed()
    assert _invoke("cloud", "login", "alice").exit_code == 0

    result = _invoke("cloud", "publish", "scripts")
    assert result.exit_code == 0, result.stdout
    assert (tmp_path / "cloud" / "spaces" / "alice:scripts.json").is_file()
    assert (cbox_home / "spaces" / "alice:scripts.json").is_file()

    result = _invoke("cloud", "list", "alice:scripts")
    assert result.exit_code == 0
    assert "deploy" in result.stdout

    # Cloning onto an existing address without a new label is aborted.
    result = _invoke("cloud", "clone", "alice:scripts")
    assert result.exit_code == 1


def test_cleanup_renames_stray_files(cbox_home):
    _seed()
    spaces_dir = cbox_home / "spaces"
    (spaces_dir / "scripts.json").rename(spaces_dir / "stray.json")

    result = _invoke("space", "cleanup", "--apply")
    assert result.exit_code == 0, result.stdout
    assert (spaces_dir / "scripts.json").is_file()
    assert not (spaces_dir / "stray.json").exists()


def test_config_set_unknown_key():
    result = _invoke("config", "set", "nope", "1")
    assert result.exit_code == 1
    assert "Unknown config key" in result.stdout


def test_config_set_and_show():
    assert _invoke("config", "set", "listing_sort", "date").exit_code == 0
    result = _invoke("config", "show", "--json")
    assert result.exit_code == 0
    assert json.loads(result.stdout)["listing_sort"] == "date"


def test_config_set_rejects_bad_value():
    result = _invoke("config", "set", "listing_sort", "size")
    assert result.exit_code == 1
    assert "listing_sort must be one of" in result.stdout
