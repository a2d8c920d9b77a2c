# -*- coding: utf-8 -*-
########################
# library_index.py
########################
# Purpose:
# - Locate chart (.osu) candidates in the songs directory.
#
# Design notes:
# - Directory layout is an interface contract with chart_engine.py and osu_store.py:
#   Songs/<any folder>/<chart>.osu, or charts placed directly in Songs/.
# - Keep search order deterministic (relative path, case-insensitive).
# - No Qt usage. File system paths only.
#
########################
# Interfaces:
# Public dataclasses:
# - ChartCandidate(chart_path: pathlib.Path)
#
# Public functions:
# - list_chart_candidates(songs_root: Optional[pathlib.Path] = None) -> list[ChartCandidate]
#
# Inputs:
# - songs_root: defaults to paths.songs_dir()
#
# Outputs:
# - Paths to charts used by ChartEngine.
#
########################

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import paths

CHART_SUFFIX = ".osu"


@dataclass(frozen=True)
class ChartCandidate:
    chart_path: Path


def list_chart_candidates(songs_root: Optional[Path] = None) -> List[ChartCandidate]:
    """Return every .osu file below songs_root, ordered by relative path."""
    root = Path(songs_root) if songs_root is not None else paths.songs_dir()
    if not root.is_dir():
        return []

    chart_paths = [
        path for path in root.rglob("*") if path.is_file() and path.suffix.lower() == CHART_SUFFIX
    ]
    chart_paths.sort(key=lambda item: item.relative_to(root).as_posix().lower())
    return [ChartCandidate(chart_path=chart_path) for chart_path in chart_paths]
