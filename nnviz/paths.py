"""
Path utilities for nnviz.

Everything nnviz writes lives under the application directory:
- db/network.txt: the encoded canonical network, rewritten after every commit
- config.json: editor defaults and layout tuning (see nnviz.config)

The application directory is the project root in development and the folder of
the executable when frozen (PyInstaller). NNVIZ_DATA_DIR moves db/ elsewhere,
e.g. onto a mounted volume.
"""

import os
import sys
from pathlib import Path

STATE_FILENAME = "network.txt"
CONFIG_FILENAME = "config.json"


def get_app_dir() -> Path:
    """Project root (parent of nnviz/), or the executable's folder when frozen."""
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    return Path(__file__).parent.parent


def get_db_dir() -> Path:
    override = os.environ.get("NNVIZ_DATA_DIR")
    if override:
        return Path(override).expanduser()
    return get_app_dir() / "db"


def get_state_path() -> Path:
    """File holding the encoded network between runs."""
    return get_db_dir() / STATE_FILENAME


def get_config_path() -> Path:
    return get_app_dir() / CONFIG_FILENAME


def ensure_db_dir() -> Path:
    """Create db/ if needed and return it."""
    db_dir = get_db_dir()
    db_dir.mkdir(parents=True, exist_ok=True)
    return db_dir
