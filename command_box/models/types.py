"""Core domain models for cbox.

Spaces and commands are persisted as JSON. Their ``selector`` is derived
state: it is rebuilt from the stored ``id`` on load and never written out.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field, field_validator

from ..errors import DuplicateError, NotFoundError, ParseError
from .selector import NamespaceType, Selector, is_valid_label


def utc_now() -> datetime:
    return datetime.now(UTC)


def _require_label(value: str) -> str:
    if not is_valid_label(value):
        raise ValueError("labels use lowercase letters, digits and '-' only")
    return value


def _normalize_tags(tags: list[str]) -> list[str]:
    seen: list[str] = []
    for tag in tags:
        tag = tag.strip().lower()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


class Command(BaseModel):
    """A stored snippet and its metadata."""

    selector: Selector = Field(default_factory=Selector, exclude=True)
    id: str = ""
    label: str
    description: str = ""
    code: str = ""
    url: str = ""
    tags: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("label")
    @classmethod
    def _label_charset(cls, value: str) -> str:
        return _require_label(value)

    @field_validator("tags")
    @classmethod
    def _tags_lowercase_unique(cls, value: list[str]) -> list[str]:
        return _normalize_tags(value)

    def touch(self) -> None:
        self.updated_at = utc_now()

    def tag_add(self, tag: str) -> None:
        tag = tag.strip().lower()
        if not tag or tag in self.tags:
            return
        self.tags.append(tag)
        self.touch()

    def tag_delete(self, tag: str) -> None:
        tag = tag.strip().lower()
        if tag not in self.tags:
            return
        self.tags.remove(tag)
        self.touch()

    def tagged(self, tag: str) -> bool:
        return tag.strip().lower() in self.tags

    def matches(self, criteria: str) -> bool:
        """Case-insensitive substring match over label, description and code."""
        criteria = criteria.lower()
        return any(
            criteria in field.lower()
            for field in (self.label, self.description, self.code)
        )


class Space(BaseModel):
    """A named collection of commands. Owns its entries exclusively."""

    selector: Selector = Field(default_factory=Selector, exclude=True)
    id: str = ""
    label: str
    description: str = ""
    entries: list[Command] = Field(default_factory=list)
    # Published copy this space tracks; empty until cloned or published.
    remote: str = ""
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("label")
    @classmethod
    def _label_charset(cls, value: str) -> str:
        return _require_label(value)

    @field_validator("entries", mode="before")
    @classmethod
    def _entries_default(cls, value: list | None) -> list:
        return [] if value is None else value

    @field_validator("remote")
    @classmethod
    def _remote_address(cls, value: str) -> str:
        if not value:
            return ""
        try:
            return Selector.parse_for_cloud(value).space_selector().canonical()
        except ParseError as exc:
            raise ValueError(str(exc)) from exc

    def touch(self) -> None:
        self.updated_at = utc_now()

    def remote_selector(self) -> Selector | None:
        """Where pull fetches this space from, or None if it was never shared.

        Spaces stored before ``remote`` was recorded fall back to their own
        namespaced address.
        """
        if self.remote:
            return Selector.parse_for_cloud(self.remote)
        if self.selector.namespace_type is not NamespaceType.NONE:
            return self.selector.space_selector()
        return None

    def command_find(self, label: str) -> Command:
        for command in self.entries:
            if command.label == label:
                return command
        raise NotFoundError(
            f"Command '{label}' not found in space '{self.selector}'",
            self.selector.with_item(label) if self.selector.space else None,
        )

    def command_add(self, command: Command) -> None:
        if any(existing.label == command.label for existing in self.entries):
            raise DuplicateError(
                f"Command '{command.label}' already exists in space '{self.selector}'",
                self.selector.with_item(command.label) if self.selector.space else None,
            )
        if self.selector.space:
            command.selector = self.selector.with_item(command.label)
        self.entries.append(command)
        self.touch()

    def command_delete(self, label: str) -> Command:
        command = self.command_find(label)
        self.entries = [entry for entry in self.entries if entry is not command]
        self.touch()
        return command

    def command_relabel(self, command: Command, label: str) -> None:
        if label == command.label:
            return
        if any(existing.label == label for existing in self.entries):
            raise DuplicateError(
                f"Command '{label}' already exists in space '{self.selector}'",
                self.selector.with_item(label) if self.selector.space else None,
            )
        command.label = label
        if self.selector.space:
            command.selector = self.selector.with_item(label)
        command.touch()
        self.touch()

    def command_list(self, item: str = "") -> list[Command]:
        """Commands matching ``item`` by label or tag (all when empty).

        Always a new list; callers may filter or reorder it freely.
        """
        if not item:
            return list(self.entries)
        return [
            command
            for command in self.entries
            if command.label == item or command.tagged(item)
        ]

    def tags(self) -> list[str]:
        return sorted({tag for command in self.entries for tag in command.tags})

    def snapshot(self, selector: Selector, entries: list[Command] | None = None) -> Space:
        """Copy of this space addressed at ``selector``.

        Commands are copied and re-addressed; this space and its entries
        are left untouched.
        """
        selector = selector.space_selector()
        source = self.entries if entries is None else entries
        commands = [
            command.model_copy(
                update={
                    "selector": selector.with_item(command.label),
                    "id": selector.with_item(command.label).canonical(),
                    "tags": list(command.tags),
                }
            )
            for command in source
        ]
        return self.model_copy(
            update={
                "selector": selector,
                "id": selector.canonical(),
                "entries": commands,
                "remote": "",
            }
        )
