"""Hierarchical addresses for spaces and commands.

A selector names a namespace (none, a user or an organization), a space
inside it and optionally an item (command) inside the space:

    deploy@dpecos:scripts     user namespace
    deploy@acme/scripts       organization namespace
    deploy@scripts            no namespace
    scripts                   the space itself

Labels only use lowercase letters, digits and hyphens, so none of the
structural separators (``@ : / =``) can appear inside a field and both the
canonical form and the filename form decode unambiguously.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from enum import StrEnum

from ..errors import ParseError

_LABEL_RE = re.compile(r"^[a-z0-9-]+$")
_NAMESPACE_RE = re.compile(r"^[a-z0-9][a-z0-9._-]*$")


class NamespaceType(StrEnum):
    NONE = "none"
    USER = "user"
    ORGANIZATION = "organization"


_SEPARATORS = {
    NamespaceType.USER: ":",
    NamespaceType.ORGANIZATION: "/",
}

# "/" cannot appear in a filename; ":" can.
_FILENAME_SEPARATORS = {
    NamespaceType.USER: ":",
    NamespaceType.ORGANIZATION: "=",
}


def is_valid_label(value: str) -> bool:
    return bool(_LABEL_RE.match(value or ""))


def check_label(value: str) -> str:
    """Normalize user input into a valid space or command label."""
    label = (value or "").strip().lower()
    if not is_valid_label(label):
        raise ParseError(
            f"Invalid label {value!r}: use lowercase letters, digits and '-' only"
        )
    return label


def check_namespace(value: str) -> str:
    """Normalize a user or organization name."""
    namespace = (value or "").strip().lower()
    if not _NAMESPACE_RE.match(namespace):
        raise ParseError(f"Invalid namespace {value!r}")
    return namespace


@dataclass(frozen=True)
class Selector:
    """Immutable address of a space, or of a command within a space."""

    namespace_type: NamespaceType = NamespaceType.NONE
    namespace: str = ""
    space: str = ""
    item: str = ""

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "namespace_type", NamespaceType(self.namespace_type))
        except ValueError:
            raise ParseError(f"Unknown namespace type: {self.namespace_type!r}") from None

        if self.namespace_type is NamespaceType.NONE:
            if self.namespace:
                raise ParseError(f"Namespace {self.namespace!r} given without a namespace type")
        else:
            if not _NAMESPACE_RE.match(self.namespace):
                raise ParseError(f"Invalid namespace: {self.namespace!r}")
            if not self.space:
                raise ParseError(f"Namespace {self.namespace!r} given without a space")

        for name, value in (("space", self.space), ("item", self.item)):
            if value and not is_valid_label(value):
                raise ParseError(f"Invalid {name} label: {value!r}")

    # --- Parsing ---

    @classmethod
    def parse(cls, text: str) -> Selector:
        """Parse the canonical string form. Inverse of ``str(selector)``."""
        text = (text or "").strip()
        if not text:
            return cls()

        if text.count("@") > 1:
            raise ParseError(f"Selector {text!r} contains more than one '@'")
        item, at, location = text.rpartition("@")
        if at and not item and not location:
            raise ParseError("Selector '@' names neither a space nor an item")

        namespace_type, namespace, space = cls._split_location(location, _SEPARATORS, text)
        return cls(namespace_type, namespace, space, item)

    @classmethod
    def parse_space_mandatory(cls, text: str) -> Selector:
        selector = cls.parse(text)
        if not selector.space:
            raise ParseError(f"Selector {text!r} does not name a space")
        return selector

    @classmethod
    def parse_item_mandatory(cls, text: str) -> Selector:
        selector = cls.parse_space_mandatory(text)
        if not selector.item:
            raise ParseError(f"Selector {text!r} does not name a command")
        return selector

    @classmethod
    def parse_for_cloud(cls, text: str) -> Selector:
        """Remote addresses always carry a namespace."""
        selector = cls.parse_space_mandatory(text)
        if selector.namespace_type is NamespaceType.NONE:
            raise ParseError(
                f"Selector {text!r} has no namespace (use user:space or organization/space)"
            )
        return selector

    @classmethod
    def from_filename(cls, stem: str) -> Selector:
        """Decode a storage filename stem into a provisional space selector.

        Only used to locate files; the authoritative address is the ``id``
        stored inside the file.
        """
        namespace_type, namespace, space = cls._split_location(stem, _FILENAME_SEPARATORS, stem)
        return cls(namespace_type, namespace, space)

    @staticmethod
    def _split_location(
        location: str,
        separators: dict[NamespaceType, str],
        original: str,
    ) -> tuple[NamespaceType, str, str]:
        found = [
            (kind, sep) for kind, sep in separators.items() if sep in location
        ]
        if not found:
            return NamespaceType.NONE, "", location
        if len(found) > 1 or location.count(found[0][1]) > 1:
            raise ParseError(f"Selector {original!r} contains more than one namespace separator")

        kind, sep = found[0]
        namespace, _, space = location.partition(sep)
        if not namespace or not space:
            raise ParseError(f"Selector {original!r} has an empty namespace or space")
        return kind, namespace, space

    # --- Serialization ---

    def canonical(self) -> str:
        location = self.space
        if self.namespace_type is not NamespaceType.NONE:
            location = f"{self.namespace}{_SEPARATORS[self.namespace_type]}{self.space}"
        if self.item:
            return f"{self.item}@{location}"
        return location

    def to_filename(self) -> str:
        """Filesystem-safe stem for the space this selector points into."""
        if not self.space:
            raise ParseError(f"Selector {self.canonical()!r} has no space to store")
        if self.namespace_type is NamespaceType.NONE:
            return self.space
        return f"{self.namespace}{_FILENAME_SEPARATORS[self.namespace_type]}{self.space}"

    def __str__(self) -> str:
        return self.canonical()

    # --- Derivation ---

    @property
    def key(self) -> tuple[NamespaceType, str, str]:
        """Identity of the addressed space inside a CommandBox."""
        return (self.namespace_type, self.namespace, self.space)

    @property
    def is_space(self) -> bool:
        return bool(self.space) and not self.item

    def space_selector(self) -> Selector:
        return replace(self, item="")

    def with_space(self, space: str) -> Selector:
        return replace(self, space=space)

    def with_item(self, item: str) -> Selector:
        return replace(self, item=item)

    def with_namespace(self, namespace_type: NamespaceType, namespace: str) -> Selector:
        return replace(self, namespace_type=namespace_type, namespace=namespace)
