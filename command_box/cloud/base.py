"""Remote service interface used by the sync engine."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..models import Command, Selector, Space


class CloudService(ABC):
    """A remote home for published spaces.

    Calls are synchronous and attempted once. Implementations raise
    ``NotFoundError`` for missing spaces and ``RemoteError`` for anything
    else that goes wrong. Returned objects must not alias remote state.
    """

    name: str = ""

    def __init__(self, login: str = "") -> None:
        self.login = login

    @abstractmethod
    def space_find(self, selector: Selector) -> Space:
        """Space metadata, without its commands."""

    @abstractmethod
    def space_publish(self, space: Space) -> None:
        """Create or replace the space at ``space.selector``."""

    @abstractmethod
    def space_unpublish(self, selector: Selector) -> None:
        """Remove a published space."""

    @abstractmethod
    def space_retrieve(self, selector: Selector) -> Space:
        """Space including its commands."""

    @abstractmethod
    def command_list(self, selector: Selector) -> list[Command]:
        """Commands of a space, filtered by ``selector.item`` when set."""
