# -*- coding: utf-8 -*-
########################
# paths.py
########################
# Purpose:
# - Central filesystem path helpers for the app.
# - Defines where song charts live and where per-user config and best scores are stored.
#
# Design notes:
# - Keep path derivation consistent across modules.
# - Return pathlib.Path only. Nothing here creates directories.
#
########################
# Interfaces:
# Public functions:
# - app_root_dir() -> pathlib.Path
# - songs_dir() -> pathlib.Path
# - user_config_directory() -> pathlib.Path
# - user_data_directory() -> pathlib.Path
# - default_best_stats_path() -> pathlib.Path
#
# Outputs:
# - Paths used by config.py, library_index.py and best_stats_store.py.
#
########################

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

from platformdirs import user_config_dir, user_data_dir

APP_NAME = "FloorBeat"
APP_AUTHOR = "FloorBeat"


def _entrypoint_file_path() -> Optional[Path]:
    """Best-effort resolution of the launched Python entrypoint file."""
    main_module = sys.modules.get("__main__")
    main_file = getattr(main_module, "__file__", None)
    if main_file:
        return Path(str(main_file)).resolve()

    argv0 = str(sys.argv[0] or "").strip()
    if argv0 and argv0 not in {"-c", "-m"}:
        return Path(argv0).resolve()

    return None


def app_root_dir() -> Path:
    """Return the directory containing the launched .py file, or the working directory."""
    entrypoint_path = _entrypoint_file_path()
    if entrypoint_path is not None:
        return entrypoint_path.parent

    return Path.cwd().resolve()


def songs_dir() -> Path:
    """Return the song charts root directory (not created automatically)."""
    return app_root_dir() / "Songs"


def user_config_directory() -> Path:
    return Path(user_config_dir(APP_NAME, APP_AUTHOR))


def user_data_directory() -> Path:
    return Path(user_data_dir(APP_NAME, APP_AUTHOR))


def default_best_stats_path() -> Path:
    return user_data_directory() / "best_stats.json"
