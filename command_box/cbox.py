"""The CommandBox aggregate: every local space, indexed by address.

A CommandBox is loaded once per invocation, mutated in memory and written
back with ``save()``. Nothing is durable before that call returns.

Files made obsolete by a rename or delete are queued as
``PendingDeletion`` tokens and only removed by ``complete_deletions()``,
after the new state has been saved.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from .errors import DuplicateError, NotFoundError, StorageError
from .models import Command, NamespaceType, Selector, Space
from .repository import PendingDeletion, SpaceRepository

logger = logging.getLogger(__name__)


class CommandBox:
    """In-memory index of all local spaces."""

    def __init__(self, repository: SpaceRepository) -> None:
        self.repository = repository
        self.spaces: list[Space] = []
        self.pending: list[PendingDeletion] = []
        self.fresh = False

    @classmethod
    def load(cls, repository: SpaceRepository) -> CommandBox:
        cbox = cls(repository)
        cbox.fresh = repository.initialize()
        for space in repository.load_all():
            try:
                cbox._register(space)
            except DuplicateError:
                logger.warning("Skipping duplicate copy of space '%s'", space.selector)
        logger.debug("Loaded %d space(s) from %s", len(cbox.spaces), repository.spaces_dir)
        return cbox

    # --- Spaces ---

    def _lookup(self, key: tuple[NamespaceType, str, str]) -> Space | None:
        for space in self.spaces:
            if space.selector.key == key:
                return space
        return None

    def space_find(self, selector: Selector) -> Space:
        """Resolve a space by address.

        A selector without a namespace also matches a published space
        with the same label, as long as only one space carries it.
        """
        space = self._lookup(selector.space_selector().key)
        if space is not None:
            return space

        if selector.namespace_type is NamespaceType.NONE and selector.space:
            candidates = [s for s in self.spaces if s.selector.space == selector.space]
            if len(candidates) == 1:
                return candidates[0]
            if len(candidates) > 1:
                choices = ", ".join(str(s.selector) for s in candidates)
                raise NotFoundError(
                    f"Space '{selector.space}' is ambiguous, use one of: {choices}",
                    selector,
                )
        raise NotFoundError(f"Space '{selector.space_selector()}' not found", selector)

    def check_available(self, selector: Selector, ignore: Space | None = None) -> None:
        """Raise DuplicateError if another space already holds ``selector``."""
        existing = self._lookup(selector.space_selector().key)
        if existing is not None and existing is not ignore:
            raise DuplicateError(
                f"Space '{selector.space_selector()}' already exists", selector
            )

    def _register(self, space: Space) -> None:
        self.check_available(space.selector)
        self.spaces.append(space)

    def space_add(self, space: Space) -> None:
        """Add a new space, addressed by its label."""
        selector = space.selector.with_space(space.label).space_selector()
        self.check_available(selector)
        space.selector = selector
        space.id = selector.canonical()
        for command in space.entries:
            command.selector = selector.with_item(command.label)
        self.spaces.append(space)

    def space_create(self, space: Space) -> None:
        self.space_add(space)

    def space_edit(self, space: Space, previous: Selector) -> PendingDeletion | None:
        """Re-address ``space`` after its label or namespace changed.

        Returns the token for the now-obsolete file, if the file name
        changed. The token is also queued on the box.
        """
        target = space.selector.with_space(space.label).space_selector()
        self.check_available(target, ignore=space)

        space.selector = target
        space.id = target.canonical()
        space.touch()

        previous = previous.space_selector()
        if previous.space and previous.to_filename() != target.to_filename():
            pending = PendingDeletion.for_selector(previous)
            self.pending.append(pending)
            return pending
        return None

    def space_delete(self, selector: Selector) -> PendingDeletion:
        # Work on a copy of the key; list positions shift once removed.
        key = self.space_find(selector).selector.key
        target = Selector(*key)
        self.spaces = [s for s in self.spaces if s.selector.key != key]
        pending = PendingDeletion.for_selector(target)
        self.pending.append(pending)
        return pending

    # --- Commands ---

    def command_add(self, space: Space, command: Command) -> None:
        space.command_add(command)

    def command_find(self, selector: Selector) -> Command:
        return self.space_find(selector).command_find(selector.item)

    def command_list(self, selector: Selector | None = None) -> list[Command]:
        if selector is None or not selector.space:
            commands = [c for space in self.spaces for c in space.entries]
            if selector is not None and selector.item:
                return [c for c in commands if c.label == selector.item or c.tagged(selector.item)]
            return commands
        return self.space_find(selector).command_list(selector.item)

    def command_delete(self, selector: Selector) -> Command:
        return self.space_find(selector).command_delete(selector.item)

    def search(
        self,
        criteria: str,
        selector: Selector | None = None,
        tag: str | None = None,
    ) -> list[Command]:
        return [
            command
            for command in self.command_list(selector)
            if command.matches(criteria) and (tag is None or command.tagged(tag))
        ]

    def tags(self, selector: Selector | None = None) -> list[str]:
        if selector is not None and selector.space:
            return self.space_find(selector).tags()
        return sorted({tag for space in self.spaces for tag in space.tags()})

    # --- Persistence ---

    def save(self) -> None:
        """Persist every space. Not transactional across spaces."""
        persisted: list[Selector] = []
        for space in self.spaces:
            try:
                self.repository.persist(space)
            except StorageError as exc:
                logger.error("Save stopped at space '%s': %s", space.selector, exc)
                raise StorageError(
                    f"Could not save space '{space.selector}' "
                    f"({len(persisted)} of {len(self.spaces)} saved): {exc}",
                    space.selector,
                    persisted=persisted,
                ) from exc
            persisted.append(space.selector)

    def complete_deletions(self) -> list[Selector]:
        """Remove files queued by renames and deletes. Call after ``save()``."""
        deleted: list[Selector] = []
        live = {space.selector.to_filename() for space in self.spaces}
        for pending in self.pending:
            if pending.selector.to_filename() in live:
                logger.info("Keeping %s: now owned by another space", pending.filename)
                continue
            if not self.repository.exists(pending.selector):
                logger.debug("Nothing to delete for %s", pending.filename)
                continue
            self.repository.complete(pending)
            deleted.append(pending.selector)
        self.pending = []
        return deleted


@contextmanager
def open_cbox(repository: SpaceRepository) -> Iterator[CommandBox]:
    """Load a CommandBox for one invocation; save it if the block succeeds."""
    cbox = CommandBox.load(repository)
    yield cbox
    cbox.save()
    cbox.complete_deletions()
