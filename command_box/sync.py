"""Publish, unpublish, clone, pull and copy between a CommandBox and a cloud.

Every operation resolves its inputs, asks for confirmation through the
injected ``confirm`` callable, performs a single remote call and then
persists the CommandBox. Remote failures abort the operation before any
local state is written.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from .cbox import CommandBox
from .cloud.base import CloudService
from .errors import DuplicateError, NotFoundError, ParseError, RemoteError
from .models import Command, NamespaceType, Selector, Space, check_label

logger = logging.getLogger(__name__)

Confirm = Callable[[str], bool]
AskLabel = Callable[[str], str | None]


def _always(_message: str) -> bool:
    return True


def _never_relabel(_message: str) -> str | None:
    return None


@dataclass
class SyncResult:
    """Outcome of one sync operation."""

    selector: Selector
    completed: bool = True
    space: Space | None = None
    commands: list[Command] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    failures: list[str] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        return self.completed and bool(self.failures)


class SyncEngine:
    """Reconciles local spaces with their published copies."""

    def __init__(
        self,
        cbox: CommandBox,
        cloud: CloudService,
        confirm: Confirm | None = None,
        ask_label: AskLabel | None = None,
    ) -> None:
        self.cbox = cbox
        self.cloud = cloud
        self.confirm = confirm or _always
        self.ask_label = ask_label or _never_relabel

    def _save(self) -> None:
        self.cbox.save()
        self.cbox.complete_deletions()

    # --- Read-only ---

    def info(self, selector: Selector) -> Space:
        return self.cloud.space_find(selector)

    def list_commands(self, selector: Selector) -> list[Command]:
        return self.cloud.command_list(selector)

    # --- Publish / unpublish ---

    def publish(self, selector: Selector, organization: str | None = None) -> SyncResult:
        space = self.cbox.space_find(selector)
        previous = space.selector
        target = previous

        if target.namespace_type is NamespaceType.NONE:
            if not self.cloud.login:
                raise RemoteError("cloud: not logged in, run 'cbox cloud login' first", selector)
            target = target.with_namespace(NamespaceType.USER, self.cloud.login)

        result = SyncResult(selector=target)
        if organization:
            if organization != target.namespace:
                warning = (
                    f"Publishing space '{space.label}' under a different "
                    f"organization '{organization}'"
                )
                logger.warning(warning)
                result.warnings.append(warning)
            target = target.with_namespace(NamespaceType.ORGANIZATION, organization)
            result.selector = target

        entries = space.entries
        if selector.item:
            entries = space.command_list(selector.item)
            if not entries:
                raise NotFoundError(f"No local commands matched '{selector}'", selector)

        self.cbox.check_available(target, ignore=space)
        payload = space.snapshot(target, entries)
        result.space = payload
        result.commands = payload.entries

        if not self.confirm(f"Publish space '{target}'?"):
            result.completed = False
            return result

        self.cloud.space_publish(payload)

        space.selector = target
        space.remote = target.canonical()
        self.cbox.space_edit(space, previous)
        self._save()
        logger.info("Published '%s' as '%s'", previous, target)
        return result

    def unpublish(self, selector: Selector) -> SyncResult:
        result = SyncResult(selector=selector)
        try:
            self.cbox.space_find(selector)
            result.warnings.append("Local copy won't be deleted")
        except NotFoundError:
            result.warnings.append("You don't have a local copy of the space")

        if not self.confirm(f"Unpublish space '{selector.space_selector()}'?"):
            result.completed = False
            return result

        self.cloud.space_unpublish(selector)
        return result

    # --- Clone / pull ---

    def clone(self, selector: Selector) -> SyncResult:
        space = self.cloud.space_retrieve(selector)
        space.entries = self.cloud.command_list(selector)
        result = SyncResult(selector=selector, space=space, commands=space.entries)

        if not self.confirm(f"Clone space '{selector.space_selector()}'?"):
            result.completed = False
            return result

        space.remote = selector.space_selector().canonical()
        while True:
            try:
                self.cbox.space_create(space)
                break
            except DuplicateError as exc:
                result.warnings.append(str(exc))
                label = self._ask_new_label(
                    "Space already found in your cbox. Try a different label", result
                )
                if label is None:
                    result.completed = False
                    return result
                space.label = label

        self._save()
        result.selector = space.selector
        return result

    def _ask_new_label(self, message: str, result: SyncResult) -> str | None:
        """Ask until the answer is a valid label; None aborts."""
        while True:
            answer = self.ask_label(message)
            if answer is None:
                return None
            try:
                return check_label(answer)
            except ParseError as exc:
                result.warnings.append(str(exc))
                message = f"{exc}. Try again"

    def pull(self, selector: Selector) -> SyncResult:
        space = self.cbox.space_find(selector)
        source = space.remote_selector()
        if source is None:
            raise NotFoundError(f"Space '{space.selector}' has never been published", selector)

        remote = self.cloud.space_retrieve(source)
        commands = self.cloud.command_list(source)

        # The label stays local: a renamed copy keeps tracking its remote.
        space.entries = commands
        space.updated_at = remote.updated_at
        space.description = remote.description

        self._save()
        return SyncResult(selector=space.selector, space=space, commands=commands)

    # --- Copy ---

    def copy_commands(self, remote_selector: Selector, space_selector: Selector) -> SyncResult:
        space = self.cbox.space_find(space_selector)
        commands = self.cloud.command_list(remote_selector)
        if not commands:
            raise NotFoundError(f"Command '{remote_selector}' not found", remote_selector)

        result = SyncResult(selector=space.selector, space=space, commands=commands)
        if not self.confirm(f"Copy {len(commands)} command(s) into '{space.selector}'?"):
            result.completed = False
            return result

        for command in commands:
            copy = command.model_copy(deep=True)
            try:
                self.cbox.command_add(space, copy)
            except DuplicateError as exc:
                logger.warning("cloud: copy command: %s", exc)
                result.failures.append(str(exc))

        self._save()
        return result
