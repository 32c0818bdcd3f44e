"""Tests for the directory-backed cloud."""

from __future__ import annotations

import pytest

from command_box.cloud import DirectoryCloud
from command_box.errors import NotFoundError, RemoteError
from command_box.models import Command, Selector, Space


@pytest.fixture
def cloud(tmp_path) -> DirectoryCloud:
    return DirectoryCloud(tmp_path / "cloud", login="alice")


def _remote(text: str, *labels: str, tags: list[str] | None = None) -> Space:
    selector = Selector.parse(text)
    space = Space(label=selector.space, description="shared")
    space.selector = selector
    for label in labels:
        space.command_add(Command(label=label, code=f"run {label}", tags=tags or []))
    return space


def test_publish_and_retrieve(cloud):
    cloud.space_publish(_remote("alice:scripts", "deploy", "build"))

    retrieved = cloud.space_retrieve(Selector.parse("alice:scripts"))
    assert [c.label for c in retrieved.entries] == ["deploy", "build"]
    assert str(retrieved.entries[0].selector) == "deploy@alice:scripts"


def test_space_find_omits_commands(cloud):
    cloud.space_publish(_remote("alice:scripts", "deploy"))
    found = cloud.space_find(Selector.parse("alice:scripts"))
    assert found.entries == []
    assert found.description == "shared"


def test_publish_does_not_alias_caller(cloud):
    space = _remote("alice:scripts", "deploy")
    cloud.space_publish(space)
    space.entries[0].code = "changed locally"

    retrieved = cloud.space_retrieve(Selector.parse("alice:scripts"))
    assert retrieved.entries[0].code == "run deploy"


def test_publish_under_other_user_rejected(cloud):
    with pytest.raises(RemoteError):
        cloud.space_publish(_remote("bob:scripts"))


def test_publish_requires_namespace(cloud):
    with pytest.raises(RemoteError):
        cloud.space_publish(_remote("scripts"))


def test_organization_publish_allowed(cloud):
    cloud.space_publish(_remote("acme/ops", "restart"))
    assert cloud.command_list(Selector.parse("restart@acme/ops"))[0].label == "restart"


def test_command_list_filters_by_item(cloud):
    cloud.space_publish(_remote("acme/ops", "restart", "logs"))
    assert [c.label for c in cloud.command_list(Selector.parse("logs@acme/ops"))] == ["logs"]
    assert len(cloud.command_list(Selector.parse("acme/ops"))) == 2


def test_missing_space(cloud):
    with pytest.raises(NotFoundError):
        cloud.space_retrieve(Selector.parse("alice:nothing"))
    with pytest.raises(NotFoundError):
        cloud.space_unpublish(Selector.parse("alice:nothing"))


def test_unpublish(cloud):
    cloud.space_publish(_remote("alice:scripts"))
    cloud.space_unpublish(Selector.parse("alice:scripts"))
    with pytest.raises(NotFoundError):
        cloud.space_find(Selector.parse("alice:scripts"))


def test_corrupt_remote_is_remote_error(cloud):
    cloud.space_publish(_remote("alice:scripts"))
    (cloud.repository.spaces_dir / "alice:scripts.json").write_text("[]", encoding="utf-8")
    with pytest.raises(RemoteError):
        cloud.space_retrieve(Selector.parse("alice:scripts"))
