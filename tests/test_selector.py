"""Tests for selector parsing and formatting."""

import pytest

from command_box.errors import ParseError
from command_box.models import NamespaceType, Selector, check_label, check_namespace


def test_parse_user_namespace_with_item():
    selector = Selector.parse("deploy@dpecos:scripts")
    assert selector.namespace_type == NamespaceType.USER
    assert selector.namespace == "dpecos"
    assert selector.space == "scripts"
    assert selector.item == "deploy"


def test_parse_organization_namespace():
    selector = Selector.parse("acme/ops")
    assert selector.namespace_type == NamespaceType.ORGANIZATION
    assert selector.namespace == "acme"
    assert selector.space == "ops"
    assert selector.item == ""
    assert selector.is_space


def test_parse_plain_space_forms():
    assert Selector.parse("scripts") == Selector(space="scripts")
    assert Selector.parse("@scripts") == Selector(space="scripts")
    assert Selector.parse("deploy@scripts") == Selector(space="scripts", item="deploy")


def test_parse_empty_text_is_empty_selector():
    assert Selector.parse("") == Selector()
    assert Selector.parse("   ") == Selector()


@pytest.mark.parametrize(
    "text",
    [
        "a@b@c",
        "@",
        "deploy@alice:acme/ops",
        "deploy@alice:x:y",
        "deploy@:scripts",
        "deploy@alice:",
        "Deploy@scripts",
        "deploy@scr ipts",
        "dep_loy@scripts",
    ],
)
def test_parse_rejects_malformed(text):
    with pytest.raises(ParseError):
        Selector.parse(text)


@pytest.mark.parametrize(
    "text",
    ["deploy@dpecos:scripts", "acme/ops", "deploy@acme/ops", "scripts", "deploy@scripts"],
)
def test_canonical_roundtrip(text):
    selector = Selector.parse(text)
    assert str(selector) == text
    assert Selector.parse(str(selector)) == selector


def test_at_space_canonicalizes_without_at():
    assert str(Selector.parse("@scripts")) == "scripts"


def test_mandatory_parsers():
    with pytest.raises(ParseError):
        Selector.parse_space_mandatory("deploy@")
    with pytest.raises(ParseError):
        Selector.parse_item_mandatory("scripts")
    assert Selector.parse_item_mandatory("deploy@scripts").item == "deploy"


def test_parse_for_cloud_requires_namespace():
    with pytest.raises(ParseError):
        Selector.parse_for_cloud("scripts")
    selector = Selector.parse_for_cloud("deploy@acme/ops")
    assert selector.namespace == "acme"


def test_filename_forms():
    assert Selector.parse("deploy@dpecos:scripts").to_filename() == "dpecos:scripts"
    assert Selector.parse("acme/ops").to_filename() == "acme=ops"
    assert Selector.parse("scripts").to_filename() == "scripts"


@pytest.mark.parametrize("text", ["dpecos:scripts", "acme/ops", "scripts"])
def test_filename_roundtrip(text):
    selector = Selector.parse(text)
    assert Selector.from_filename(selector.to_filename()) == selector


def test_to_filename_needs_space():
    with pytest.raises(ParseError):
        Selector().to_filename()


def test_key_ignores_item():
    a = Selector.parse("deploy@acme/ops")
    b = Selector.parse("build@acme/ops")
    assert a.key == b.key
    assert a.key != Selector.parse("acme:ops").key


def test_derivations_leave_original_untouched():
    base = Selector.parse("scripts")
    moved = base.with_namespace(NamespaceType.USER, "alice").with_item("deploy")
    assert str(moved) == "deploy@alice:scripts"
    assert str(base) == "scripts"
    assert moved.space_selector() == Selector.parse("alice:scripts")


def test_namespace_without_type_rejected():
    with pytest.raises(ParseError):
        Selector(namespace="alice", space="scripts")


def test_check_label_normalizes():
    assert check_label("  Scripts ") == "scripts"
    with pytest.raises(ParseError):
        check_label("my scripts")
    with pytest.raises(ParseError):
        check_label("")


def test_check_namespace():
    assert check_namespace("ACME.io") == "acme.io"
    with pytest.raises(ParseError):
        check_namespace("-acme")
