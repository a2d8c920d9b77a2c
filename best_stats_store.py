# -*- coding: utf-8 -*-
########################
# best_stats_store.py
########################
# Purpose:
# - Persist the best score and best combo per song.
#
# Design notes:
# - Keyed by the stable song id "{title}_{artist}" (ChartMetadata.song_id).
# - Compare and store: record_if_best() writes only when score or combo beats the stored value,
#   and keeps the better of each.
# - JsonBestStatsStore keeps one UTF-8 JSON object on disk, written atomically via a temp file.
#
########################
# Interfaces:
# Public exceptions:
# - class BestStatsError(Exception)
#
# Public dataclasses:
# - BestStats(score: int, combo: int)
#
# Public protocols:
# - BestStatsStore
#   - load_best_stats(song_id: str) -> tuple[int, int]
#   - save_best_stats(song_id: str, score: int, combo: int) -> None
#
# Public classes:
# - class InMemoryBestStatsStore
# - class JsonBestStatsStore(file_path: pathlib.Path)
#
# Public functions:
# - record_if_best(store: BestStatsStore, song_id: str, *, score: int, combo: int) -> bool
#
########################

from __future__ import annotations

from dataclasses import dataclass
import json
import logging
import os
from pathlib import Path
import tempfile
from typing import Dict, Protocol, Tuple, runtime_checkable

logger = logging.getLogger(__name__)


class BestStatsError(Exception):
    """Raised when the best stats file cannot be read or written."""


@dataclass(frozen=True)
class BestStats:
    score: int = 0
    combo: int = 0


@runtime_checkable
class BestStatsStore(Protocol):
    def load_best_stats(self, song_id: str) -> Tuple[int, int]:
        ...

    def save_best_stats(self, song_id: str, score: int, combo: int) -> None:
        ...


class InMemoryBestStatsStore:
    def __init__(self) -> None:
        self._stats: Dict[str, BestStats] = {}
        self.save_count = 0

    def load_best_stats(self, song_id: str) -> Tuple[int, int]:
        stats = self._stats.get(str(song_id), BestStats())
        return (stats.score, stats.combo)

    def save_best_stats(self, song_id: str, score: int, combo: int) -> None:
        self._stats[str(song_id)] = BestStats(score=int(score), combo=int(combo))
        self.save_count += 1


class JsonBestStatsStore:
    """
    File layout:
      {"<song id>": {"score": 123450, "combo": 321}, ...}
    """

    def __init__(self, file_path: Path) -> None:
        self._file_path = Path(file_path)

    @property
    def file_path(self) -> Path:
        return self._file_path

    def _read_all(self) -> Dict[str, Dict[str, int]]:
        if not self._file_path.exists():
            return {}
        try:
            raw_text = self._file_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise BestStatsError(f"Failed to read best stats: {self._file_path}") from exc
        try:
            parsed = json.loads(raw_text) if raw_text.strip() else {}
        except json.JSONDecodeError as exc:
            raise BestStatsError(f"Best stats file is not valid JSON: {self._file_path}") from exc
        if not isinstance(parsed, dict):
            raise BestStatsError(f"Best stats root must be a JSON object: {self._file_path}")
        return parsed

    def load_best_stats(self, song_id: str) -> Tuple[int, int]:
        entry = self._read_all().get(str(song_id))
        if not isinstance(entry, dict):
            return (0, 0)
        try:
            return (int(entry.get("score", 0)), int(entry.get("combo", 0)))
        except (TypeError, ValueError):
            logger.warning("Ignoring malformed best stats entry for %r", song_id)
            return (0, 0)

    def save_best_stats(self, song_id: str, score: int, combo: int) -> None:
        all_stats = self._read_all()
        all_stats[str(song_id)] = {"score": int(score), "combo": int(combo)}

        try:
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            file_descriptor, temp_name = tempfile.mkstemp(
                prefix=".best_stats_", suffix=".json", dir=str(self._file_path.parent)
            )
            with os.fdopen(file_descriptor, "w", encoding="utf-8") as handle:
                json.dump(all_stats, handle, ensure_ascii=False, indent=2, sort_keys=True)
            os.replace(temp_name, self._file_path)
        except OSError as exc:
            raise BestStatsError(f"Failed to write best stats: {self._file_path}") from exc


def record_if_best(store: BestStatsStore, song_id: str, *, score: int, combo: int) -> bool:
    """Store the session result if it beats the stored best. Returns True when something was saved."""
    best_score, best_combo = store.load_best_stats(song_id)
    if int(score) <= best_score and int(combo) <= best_combo:
        return False

    new_score = max(int(score), best_score)
    new_combo = max(int(combo), best_combo)
    store.save_best_stats(song_id, new_score, new_combo)
    logger.info("New best for %s: score %d, combo %d", song_id, new_score, new_combo)
    return True
