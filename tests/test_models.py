"""Tests for domain models."""

import pytest
from pydantic import ValidationError

from command_box.errors import DuplicateError, NotFoundError
from command_box.models import Command, Selector, Space


def _space(label="scripts", *commands):
    space = Space(label=label)
    space.selector = Selector(space=label)
    for command in commands:
        space.command_add(command)
    return space


def test_command_defaults():
    command = Command(label="deploy", code="make deploy")
    assert command.description == ""
    assert command.url == ""
    assert command.tags == []
    assert command.selector == Selector()


def test_label_validation():
    with pytest.raises(ValidationError):
        Command(label="Deploy Now")
    with pytest.raises(ValidationError):
        Space(label="my_space")


def test_tags_normalized_on_construction():
    command = Command(label="deploy", tags=["Prod", "prod", " ops "])
    assert command.tags == ["prod", "ops"]


def test_tag_add_is_idempotent():
    command = Command(label="deploy")
    command.tag_add("prod")
    command.tag_add("PROD")
    assert command.tags == ["prod"]


def test_tag_delete_missing_is_noop():
    command = Command(label="deploy", tags=["prod"])
    command.tag_delete("staging")
    command.tag_delete("prod")
    assert command.tags == []


def test_matches_is_case_insensitive():
    command = Command(label="deploy", description="Ship it", code="kubectl apply -f .")
    assert command.matches("SHIP")
    assert command.matches("kubectl")
    assert not command.matches("terraform")


def test_selector_not_serialized():
    space = _space("scripts", Command(label="deploy"))
    data = space.model_dump(mode="json")
    assert "selector" not in data
    assert "selector" not in data["entries"][0]


def test_null_entries_become_empty():
    space = Space.model_validate({"label": "scripts", "entries": None})
    assert space.entries == []


def test_command_add_sets_selector():
    space = _space("scripts", Command(label="deploy"))
    assert str(space.entries[0].selector) == "deploy@scripts"


def test_duplicate_command_rejected():
    space = _space("scripts", Command(label="deploy", code="one"))
    with pytest.raises(DuplicateError):
        space.command_add(Command(label="deploy", code="two"))
    assert len(space.entries) == 1
    assert space.entries[0].code == "one"


def test_command_find_and_delete():
    space = _space("scripts", Command(label="deploy"), Command(label="build"))
    assert space.command_find("build").label == "build"
    space.command_delete("deploy")
    assert [c.label for c in space.entries] == ["build"]
    with pytest.raises(NotFoundError):
        space.command_find("deploy")


def test_command_relabel():
    space = _space("scripts", Command(label="deploy"), Command(label="build"))
    command = space.command_find("deploy")
    with pytest.raises(DuplicateError):
        space.command_relabel(command, "build")
    space.command_relabel(command, "ship")
    assert command.label == "ship"
    assert str(command.selector) == "ship@scripts"


def test_command_list_filters_by_label_or_tag():
    space = _space(
        "scripts",
        Command(label="deploy", tags=["prod"]),
        Command(label="build", tags=["ci"]),
        Command(label="prod", tags=[]),
    )
    assert [c.label for c in space.command_list("prod")] == ["deploy", "prod"]
    assert len(space.command_list()) == 3
    assert space.command_list() is not space.entries


def test_tags_sorted_unique():
    space = _space(
        "scripts",
        Command(label="deploy", tags=["prod", "k8s"]),
        Command(label="build", tags=["k8s"]),
    )
    assert space.tags() == ["k8s", "prod"]


def test_snapshot_leaves_source_untouched():
    space = _space("scripts", Command(label="deploy", tags=["prod"]), Command(label="build"))
    target = Selector.parse("alice:scripts")

    copy = space.snapshot(target, space.command_list("deploy"))

    assert copy.id == "alice:scripts"
    assert [c.id for c in copy.entries] == ["deploy@alice:scripts"]
    assert space.selector == Selector(space="scripts")
    assert [str(c.selector) for c in space.entries] == ["deploy@scripts", "build@scripts"]

    copy.entries[0].tags.append("extra")
    assert space.entries[0].tags == ["prod"]


def test_remote_address_normalized():
    space = Space.model_validate({"label": "scripts", "remote": "deploy@bob:scripts"})
    assert space.remote == "bob:scripts"
    assert space.remote_selector() == Selector.parse("bob:scripts")


def test_remote_address_needs_namespace():
    with pytest.raises(ValidationError):
        Space.model_validate({"label": "scripts", "remote": "scripts"})


def test_remote_selector_fallback():
    local = _space("scripts")
    assert local.remote_selector() is None

    published = Space(label="tools")
    published.selector = Selector.parse("alice:tools")
    assert published.remote_selector() == Selector.parse("alice:tools")
