"""Locate and read ``rulebridge.toml``.

The file is found by walking up from the working directory, the way git
finds ``.git/``. ``RULEBRIDGE_CONFIG`` pins an explicit file instead.
Parsed data feeds :class:`rulebridge.config.settings.TomlSettingsSource`;
validation happens there, against :class:`RuleSettings`.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

CONFIG_FILENAME = "rulebridge.toml"
CONFIG_ENV_VAR = "RULEBRIDGE_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Return the nearest ``rulebridge.toml`` at or above *start*.

    An explicit ``RULEBRIDGE_CONFIG`` wins; if it names a missing file no
    config is used at all.
    """
    pinned = os.environ.get(CONFIG_ENV_VAR)
    if pinned:
        path = Path(pinned)
        return path if path.is_file() else None

    directory = (start or Path.cwd()).resolve()
    for candidate_dir in (directory, *directory.parents):
        candidate = candidate_dir / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def read_config(path: Path | None) -> dict[str, Any]:
    """Parse the TOML file at *path*; an absent file reads as no overrides.

    Raises:
        tomllib.TOMLDecodeError: The file is not valid TOML.
    """
    if path is None or not path.is_file():
        return {}
    return tomllib.loads(path.read_text(encoding="utf-8"))
