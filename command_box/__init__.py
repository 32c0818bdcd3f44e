"""Command Box: personal organizer for reusable shell commands."""

import os
from pathlib import Path

__version__ = "0.1.0"


def get_cbox_home() -> Path:
    """Get the cbox home directory (~/.cbox/ unless CBOX_HOME is set)."""
    override = os.getenv("CBOX_HOME", "").strip()
    if override:
        return Path(override).expanduser()
    return Path.home() / ".cbox"
