"""Domain models: selectors, commands and spaces."""

from .selector import NamespaceType, Selector, check_label, check_namespace
from .types import Command, Space, utc_now

__all__ = [
    "Command",
    "NamespaceType",
    "Selector",
    "Space",
    "check_label",
    "check_namespace",
    "utc_now",
]
