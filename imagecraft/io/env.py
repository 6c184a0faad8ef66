"""
Helpers for locating and loading imagecraft environment configuration.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from imagecraft.io.credentials import IMAGECRAFT_ENV_FILENAME


def default_env_path() -> Path:
    """
    Environment file in the working directory, falling back to the home directory.
    """
    local = Path.cwd() / IMAGECRAFT_ENV_FILENAME
    if local.is_file():
        return local
    return Path.home() / IMAGECRAFT_ENV_FILENAME


def load_env(path: Optional[Path] = None) -> bool:
    """
    Load variables from the env file into ``os.environ`` without overriding
    values that are already set. Returns True if a file was read.
    """
    path = path or default_env_path()
    if not path.is_file():
        return False
    return load_dotenv(path, override=False)


def is_development() -> bool:
    mode = os.environ.get("ENV", "development")
    if mode == "production":
        return False
    else:
        return True
