"""Path helpers for runtime defaults."""

from __future__ import annotations

import os
from pathlib import Path

APP_NAME = "sfplay"


def default_bank_path() -> Path:
    """Return the default sample bank directory for this user.

    ``SFPLAY_BANK`` wins, then ``$XDG_DATA_HOME/sfplay/soundfonts``, then
    ``~/.local/share/sfplay/soundfonts``.
    """
    explicit = os.environ.get("SFPLAY_BANK")
    if explicit:
        return Path(explicit).expanduser()

    xdg_data_home = os.environ.get("XDG_DATA_HOME")
    if xdg_data_home:
        return Path(xdg_data_home) / APP_NAME / "soundfonts"

    return Path("~/.local/share").expanduser() / APP_NAME / "soundfonts"


DEFAULT_BANK_PATH = default_bank_path()
