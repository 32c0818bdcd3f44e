"""A cloud backed by a shared directory.

Published spaces are stored with the same on-disk layout as the local
store, so any directory reachable by every participant (a network share,
a synced folder) can act as the remote.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from ..errors import NotFoundError, RemoteError, StorageError
from ..models import Command, NamespaceType, Selector, Space
from ..repository import SpaceRepository
from .base import CloudService

logger = logging.getLogger(__name__)


@contextmanager
def _remote_errors(action: str, selector: Selector) -> Iterator[None]:
    try:
        yield
    except StorageError as exc:
        raise RemoteError(f"cloud: {action} '{selector}': {exc}", selector) from exc


class DirectoryCloud(CloudService):
    name = "directory"

    def __init__(self, root: Path, login: str = "") -> None:
        super().__init__(login)
        self.repository = SpaceRepository(Path(root))

    def _check_address(self, selector: Selector) -> None:
        if selector.namespace_type is NamespaceType.NONE:
            raise RemoteError(f"cloud: space '{selector}' has no namespace", selector)

    def _load(self, selector: Selector) -> Space:
        self._check_address(selector)
        with _remote_errors("read", selector):
            try:
                return self.repository.load(selector.space_selector())
            except NotFoundError:
                raise NotFoundError(
                    f"Space '{selector.space_selector()}' is not published", selector
                ) from None

    def space_find(self, selector: Selector) -> Space:
        space = self._load(selector)
        space.entries = []
        return space

    def space_publish(self, space: Space) -> None:
        selector = space.selector.space_selector()
        self._check_address(selector)
        if selector.namespace_type is NamespaceType.USER and selector.namespace != self.login:
            raise RemoteError(
                f"cloud: cannot publish under user '{selector.namespace}' "
                f"while logged in as '{self.login or '-'}'",
                selector,
            )

        stored = space.model_copy(deep=True)
        with _remote_errors("publish", selector):
            self.repository.initialize()
            self.repository.persist(stored)
        logger.info("Published %s (%d commands)", selector, len(stored.entries))

    def space_unpublish(self, selector: Selector) -> None:
        self._check_address(selector)
        if not self.repository.exists(selector):
            raise NotFoundError(f"Space '{selector.space_selector()}' is not published", selector)
        with _remote_errors("unpublish", selector):
            self.repository.delete(selector)
        logger.info("Unpublished %s", selector.space_selector())

    def space_retrieve(self, selector: Selector) -> Space:
        return self._load(selector)

    def command_list(self, selector: Selector) -> list[Command]:
        return self._load(selector).command_list(selector.item)
