"""File path resolution using platformdirs.

In dev mode (running from a source checkout), the database lives in the
project root. When installed as a package, paths use the platform user
data directory:
  macOS: ~/Library/Application Support/agentsquare/
  Linux: ~/.local/share/agentsquare/
  Windows: %LOCALAPPDATA%/agentsquare/
"""

from pathlib import Path

import platformdirs

APP_NAME = "agentsquare"

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


def is_source_checkout() -> bool:
    """Return True when running from a repository checkout."""
    return (_PROJECT_ROOT / "pyproject.toml").is_file()


def get_data_dir() -> Path:
    """Return the directory for persistent data (DB).

    In dev mode: project root.
    Otherwise: platform user data dir.
    """
    if is_source_checkout():
        return _PROJECT_ROOT
    return Path(platformdirs.user_data_dir(APP_NAME, appauthor=False))


def get_default_db_path() -> Path:
    """Return the default SQLite database file path."""
    return get_data_dir() / "agentsquare.db"


def ensure_data_dir() -> Path:
    """Create the data directory if needed and return it."""
    data_dir = get_data_dir()
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir
