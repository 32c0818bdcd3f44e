"""Error taxonomy shared by the store, the aggregate and the sync engine."""

from __future__ import annotations

from typing import Any


class CBoxError(RuntimeError):
    """Base cbox error. Carries the selector the failure relates to, if any."""

    def __init__(self, message: str, selector: Any = None) -> None:
        super().__init__(message)
        self.selector = selector


class ParseError(CBoxError):
    """Selector text or label is malformed."""


class NotFoundError(CBoxError):
    """No matching space or command, locally or remotely."""


class DuplicateError(CBoxError):
    """A space or command uniqueness rule would be violated."""


class StorageError(CBoxError):
    """The local store could not be read or written."""

    def __init__(
        self,
        message: str,
        selector: Any = None,
        persisted: list[Any] | None = None,
    ) -> None:
        super().__init__(message, selector)
        # Spaces durably written before the failure (partial saves).
        self.persisted = persisted or []


class RemoteError(CBoxError):
    """The remote service reported a failure."""


class ConfigError(CBoxError):
    """A configuration key or value is not acceptable."""
