# -*- coding: utf-8 -*-
########################
# chart_engine.py
########################
# Purpose:
# - Song library resolution only.
# - Loads .osu charts from the songs directory and resolves them by song id "{title}_{artist}".
# - Reports a missing song explicitly so the caller can fall back to the built-in test chart.
#
########################
# Key Logic:
# - Search order is deterministic (library_index ordering).
# - Several difficulties of one song share a song id; version picks one, otherwise the first wins.
# - Strict contract:
#   - Never generate charts here.
#   - Missing chart is a first class outcome.
#   - Unreadable files are skipped while listing, but fatal when they are the requested chart.
#
########################
# Interfaces:
# Public exceptions:
# - class ChartNotFoundError(Exception)
# - class ChartLoadError(Exception)
#
# Public dataclasses:
# - @dataclass(frozen=True) class SongEntry
#   - song_id: str
#   - title: str
#   - artist: str
#   - version: str
#   - chart_path: pathlib.Path
#
# Public classes:
# - class ChartEngine
#   - __init__(songs_root: Optional[pathlib.Path] = None)
#   - list_songs() -> list[SongEntry]
#   - load_song(song_id: str, *, version: Optional[str] = None) -> osu_store.LoadedChart
#     - Raises ChartNotFoundError if no chart matches.
#     - Raises ChartLoadError if the matching chart cannot be read.
#
########################
# Smoke Tests:
#   - python chart_engine.py
########################

from __future__ import annotations

from dataclasses import dataclass
import json
import logging
from pathlib import Path
from typing import List, Optional

import library_index
import osu_store

logger = logging.getLogger(__name__)


class ChartNotFoundError(Exception):
    """Raised when no chart can be resolved for the requested song id."""


class ChartLoadError(Exception):
    """Raised when a matching chart exists but cannot be read."""


@dataclass(frozen=True)
class SongEntry:
    song_id: str
    title: str
    artist: str
    version: str
    chart_path: Path


class ChartEngine:
    def __init__(self, songs_root: Optional[Path] = None) -> None:
        self._songs_root = Path(songs_root) if songs_root is not None else None

    def list_songs(self) -> List[SongEntry]:
        entries: List[SongEntry] = []
        for candidate in library_index.list_chart_candidates(self._songs_root):
            try:
                loaded = osu_store.load_chart(candidate.chart_path)
            except osu_store.ChartError as exc:
                logger.warning("Skipping unreadable chart %s: %s", candidate.chart_path, exc)
                continue

            metadata = loaded.chart.metadata
            entries.append(
                SongEntry(
                    song_id=metadata.song_id(),
                    title=metadata.title,
                    artist=metadata.artist,
                    version=metadata.version,
                    chart_path=candidate.chart_path,
                )
            )
        return entries

    def load_song(self, song_id: str, *, version: Optional[str] = None) -> osu_store.LoadedChart:
        song_id_text = str(song_id or "").strip()
        if not song_id_text:
            raise ValueError("song_id must be a non-empty string")

        for entry in self.list_songs():
            if entry.song_id != song_id_text:
                continue
            if version is not None and entry.version != str(version):
                continue
            try:
                return osu_store.load_chart(entry.chart_path)
            except osu_store.ChartError as exc:
                raise ChartLoadError(f"Failed to load chart {entry.chart_path}: {exc}") from exc

        raise ChartNotFoundError(f"No chart for song_id={song_id_text!r}, version={version!r}")


def main() -> int:
    """List the song library as JSON."""
    songs = ChartEngine().list_songs()
    print(
        json.dumps(
            [
                {
                    "song_id": entry.song_id,
                    "version": entry.version,
                    "chart_path": str(entry.chart_path),
                }
                for entry in songs
            ],
            indent=2,
            ensure_ascii=False,
        )
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
