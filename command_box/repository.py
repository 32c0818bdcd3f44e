"""File-backed space storage.

One JSON file per space under ``<root>/spaces/``. The file name is derived
from the space's selector (``Selector.to_filename``) and only speeds up
lookups; the ``id`` fields inside the file are the source of truth for
addressing.

Renames are two steps: the space is written under its new name, and the
file under the old name is removed later through a ``PendingDeletion``.
The repository never deletes anything on its own.
"""

from __future__ import annotations

import json
import logging
from contextlib import suppress
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .errors import NotFoundError, ParseError, StorageError
from .models import Selector, Space

logger = logging.getLogger(__name__)

SPACES_DIR = "spaces"
SPACE_SUFFIX = ".json"


@dataclass(frozen=True)
class PendingDeletion:
    """A file left behind by a rename or delete, to be removed after save."""

    selector: Selector
    filename: str

    @classmethod
    def for_selector(cls, selector: Selector) -> PendingDeletion:
        selector = selector.space_selector()
        return cls(selector=selector, filename=f"{selector.to_filename()}{SPACE_SUFFIX}")


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise StorageError(f"Could not read space file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise StorageError(f"Malformed space file {path}: expected a JSON object")
    return data


def _write_json(path: Path, data: dict[str, Any]) -> None:
    tmp = path.with_suffix(".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        tmp.replace(path)
    except (OSError, TypeError, ValueError) as exc:
        with suppress(OSError):
            tmp.unlink(missing_ok=True)
        raise StorageError(f"Could not write space file {path}: {exc}") from exc


class SpaceRepository:
    """Maps selectors to JSON files under ``<root>/spaces``."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    @property
    def spaces_dir(self) -> Path:
        return self.root / SPACES_DIR

    def path_for(self, selector: Selector) -> Path:
        return self.spaces_dir / f"{selector.to_filename()}{SPACE_SUFFIX}"

    def exists(self, selector: Selector) -> bool:
        return self.path_for(selector).is_file()

    def initialize(self) -> bool:
        """Create the spaces directory. Returns True on first run."""
        if self.spaces_dir.is_dir():
            return False
        try:
            self.spaces_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Could not create {self.spaces_dir}: {exc}") from exc
        logger.info("Initialized space store at %s", self.spaces_dir)
        return True

    # --- Reading ---

    def _space_files(self) -> list[Path]:
        try:
            return sorted(
                path
                for path in self.spaces_dir.iterdir()
                if path.is_file() and path.suffix == SPACE_SUFFIX
            )
        except OSError as exc:
            raise StorageError(f"Could not read spaces in {self.spaces_dir}: {exc}") from exc

    def _load_file(self, path: Path) -> Space:
        data = _read_json(path)
        try:
            space = Space.model_validate(data)
        except ValidationError as exc:
            raise StorageError(f"Invalid space file {path}: {exc}") from exc

        try:
            space.selector = Selector.parse_space_mandatory(space.id)
        except ParseError as exc:
            raise StorageError(
                f"Space file {path}: id {space.id!r} is not a valid selector: {exc}"
            ) from exc

        for command in space.entries:
            try:
                command.selector = Selector.parse_item_mandatory(command.id)
            except ParseError as exc:
                raise StorageError(
                    f"Space {space.id!r}: command id {command.id!r} is not a valid selector: {exc}",
                    space.selector,
                ) from exc
        return space

    def load_all(self) -> list[Space]:
        """Every stored space; properly named files come before stray ones."""
        spaces: list[Space] = []
        strays: list[Space] = []
        for path in self._space_files():
            try:
                provisional: Selector | None = Selector.from_filename(path.stem)
            except ParseError:
                logger.warning("Space file %s has an undecodable name", path.name)
                provisional = None

            space = self._load_file(path)
            if provisional is None or provisional.key != space.selector.key:
                logger.warning(
                    "Space file %s holds '%s'; using the stored id",
                    path.name,
                    space.selector,
                )
                strays.append(space)
                continue
            spaces.append(space)
        return spaces + strays

    def load(self, selector: Selector) -> Space:
        path = self.path_for(selector)
        if not path.is_file():
            raise NotFoundError(f"Space '{selector.space_selector()}' not found", selector)
        return self._load_file(path)

    def find_orphans(self) -> list[tuple[Path, Selector]]:
        """Files whose name disagrees with the address stored inside them."""
        orphans: list[tuple[Path, Selector]] = []
        for path in self._space_files():
            space = self._load_file(path)
            if path.name != f"{space.selector.to_filename()}{SPACE_SUFFIX}":
                orphans.append((path, space.selector))
        return orphans

    # --- Writing ---

    def persist(self, space: Space) -> Path:
        """Write a space, first re-deriving every id from its selector."""
        selector = space.selector.space_selector()
        space.selector = selector
        space.id = selector.canonical()

        for command in space.entries:
            command.selector = selector.with_item(command.label)
            command.id = command.selector.canonical()

        path = self.path_for(selector)
        _write_json(path, space.model_dump(mode="json"))
        logger.debug("Persisted space %s -> %s", space.id, path.name)
        return path

    def delete(self, selector: Selector) -> None:
        path = self.path_for(selector)
        try:
            path.unlink()
        except OSError as exc:
            raise StorageError(
                f"Could not delete space '{selector.space_selector()}': {exc}", selector
            ) from exc
        logger.debug("Deleted space file %s", path.name)

    def discard(self, path: Path) -> None:
        """Remove a stray file reported by ``find_orphans``."""
        if path.parent != self.spaces_dir:
            raise StorageError(f"{path} is not inside {self.spaces_dir}")
        try:
            path.unlink()
        except OSError as exc:
            raise StorageError(f"Could not delete {path}: {exc}") from exc
        logger.info("Discarded stray space file %s", path.name)

    def complete(self, pending: PendingDeletion) -> None:
        """Remove the file a rename or delete left behind."""
        self.delete(pending.selector)
