"""Remote services spaces can be published to."""

from .base import CloudService
from .directory import DirectoryCloud

__all__ = [
    "CloudService",
    "DirectoryCloud",
]
