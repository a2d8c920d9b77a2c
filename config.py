"""
config.py

Typed configuration loading and validation for FloorBeat.

Design goals
- Load at most one UTF-8 JSON config file
- Validate with pydantic (defaults included)
- Support environment variable overrides
- No other I/O beyond reading the config file, except save_offsets() which writes calibrated offsets back

Config file location
- If FLOORBEAT_CONFIG_PATH is set, that file is used and must exist.
- Otherwise these paths are searched in order and the first one that exists is used:
  1) ./floorbeat_config.json (current working directory)
  2) <user config dir>/FloorBeat/floorbeat_config.json
- When none exists, built-in defaults are used.

Example config file (floorbeat_config.json)
{
  "gameplay": {
    "note_speed": 10.0,
    "spawn_distance": 50.0
  },
  "offsets": {
    "audio_offset_ms": 12,
    "judgement_offset": 0.05
  },
  "logging": {
    "level": "INFO"
  }
}
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

import paths


class GameplayConfig(BaseModel):
    note_speed: float = Field(default=10.0, gt=0.0, description="Track units per second. Windows scale with note_speed / 10.")
    spawn_distance: float = Field(default=50.0, gt=0.0, description="Distance from the judgement line where notes appear.")
    destroy_position: float = Field(default=-10.0, lt=0.0, description="Position behind the line where notes are removed.")
    start_delay_seconds: float = Field(default=0.5, ge=0.0, description="Lead-in between start and song time zero.")
    end_timeout_seconds: float = Field(default=20.0, gt=0.0, description="End the session this long after the last note.")
    hold_tick_interval_seconds: float = Field(default=0.5, gt=0.0)
    hold_tick_score: int = Field(default=50, ge=0)
    curve_tolerance: float = Field(default=0.6, gt=0.0, description="Allowed floor mismatch on curved holds.")
    judgement_display_seconds: float = Field(default=0.5, ge=0.0)


class OffsetConfig(BaseModel):
    audio_offset_ms: int = Field(default=0, ge=-1000, le=1000, description="Positive delays notes relative to audio.")
    judgement_offset: float = Field(default=0.0, ge=-5.0, le=5.0, description="Judgement line shift in track units.")

    @property
    def audio_offset_seconds(self) -> float:
        return self.audio_offset_ms / 1000.0


class TouchBarConfig(BaseModel):
    sensitivity: float = Field(default=0.1, gt=0.0)
    min_height: float = Field(default=0.0)
    max_height: float = Field(default=8.0)

    @model_validator(mode="after")
    def validate_range(self) -> "TouchBarConfig":
        if self.min_height > self.max_height:
            raise ValueError("touch_bar.min_height must not exceed touch_bar.max_height")
        return self


class StorageConfig(BaseModel):
    best_stats_path: Optional[Path] = Field(default=None, description="JSON file for best scores. Default: user data dir.")

    def resolved_best_stats_path(self) -> Path:
        if self.best_stats_path is not None:
            return Path(self.best_stats_path).expanduser()
        return paths.default_best_stats_path()


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", description="DEBUG, INFO, WARNING, ERROR or CRITICAL")

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        normalized = (value or "").strip().upper()
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if normalized not in allowed:
            raise ValueError("level must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL")
        return normalized


class AppConfig(BaseModel):
    gameplay: GameplayConfig = Field(default_factory=GameplayConfig)
    offsets: OffsetConfig = Field(default_factory=OffsetConfig)
    touch_bar: TouchBarConfig = Field(default_factory=TouchBarConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _default_config_candidates() -> List[Path]:
    return [
        Path.cwd() / "floorbeat_config.json",
        paths.user_config_directory() / "floorbeat_config.json",
    ]


def _resolve_config_path() -> Optional[Path]:
    explicit_path_text = os.environ.get("FLOORBEAT_CONFIG_PATH", "").strip()
    if explicit_path_text:
        return Path(explicit_path_text)

    for candidate_path in _default_config_candidates():
        if candidate_path.exists():
            return candidate_path

    return None


def _read_json_file_utf8(config_path: Path) -> Dict[str, Any]:
    try:
        raw_text = config_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise
    except OSError as exception:
        raise OSError(f"Failed to read config file: {config_path}. Error: {exception}") from exception

    try:
        parsed = json.loads(raw_text)
    except json.JSONDecodeError as exception:
        raise ValueError(f"Config file is not valid JSON: {config_path}. Error: {exception}") from exception

    if not isinstance(parsed, dict):
        raise ValueError(f"Config file root must be a JSON object: {config_path}")

    return parsed


def _apply_environment_overrides(config_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    Environment overrides are optional. The config file is the primary source of truth.

    Override variables:
    - FLOORBEAT_NOTE_SPEED
    - FLOORBEAT_AUDIO_OFFSET_MS
    - FLOORBEAT_JUDGEMENT_OFFSET
    - FLOORBEAT_BEST_STATS_PATH
    - FLOORBEAT_LOG_LEVEL
    """
    def ensure_nested(config_root: Dict[str, Any], section_name: str) -> Dict[str, Any]:
        section = config_root.get(section_name)
        if isinstance(section, dict):
            return section
        section = {}
        config_root[section_name] = section
        return section

    updated_config = dict(config_dict)

    gameplay_section = ensure_nested(updated_config, "gameplay")
    offsets_section = ensure_nested(updated_config, "offsets")
    storage_section = ensure_nested(updated_config, "storage")
    logging_section = ensure_nested(updated_config, "logging")

    def override_string(env_name: str, target_dict: Dict[str, Any], key_name: str) -> None:
        value_text = os.environ.get(env_name, "")
        if value_text.strip():
            target_dict[key_name] = value_text.strip()

    def override_int(env_name: str, target_dict: Dict[str, Any], key_name: str) -> None:
        value_text = os.environ.get(env_name, "").strip()
        if not value_text:
            return
        try:
            target_dict[key_name] = int(value_text)
        except ValueError:
            return

    def override_float(env_name: str, target_dict: Dict[str, Any], key_name: str) -> None:
        value_text = os.environ.get(env_name, "").strip()
        if not value_text:
            return
        try:
            target_dict[key_name] = float(value_text)
        except ValueError:
            return

    override_float("FLOORBEAT_NOTE_SPEED", gameplay_section, "note_speed")
    override_int("FLOORBEAT_AUDIO_OFFSET_MS", offsets_section, "audio_offset_ms")
    override_float("FLOORBEAT_JUDGEMENT_OFFSET", offsets_section, "judgement_offset")
    override_string("FLOORBEAT_BEST_STATS_PATH", storage_section, "best_stats_path")
    override_string("FLOORBEAT_LOG_LEVEL", logging_section, "level")

    return updated_config


def load_config(config_path: Optional[Path] = None) -> Tuple[AppConfig, Optional[Path]]:
    resolved_path = config_path if config_path is not None else _resolve_config_path()
    json_dict: Dict[str, Any] = {}
    if resolved_path is not None:
        json_dict = _read_json_file_utf8(Path(resolved_path))
    json_dict = _apply_environment_overrides(json_dict)

    try:
        config = AppConfig.model_validate(json_dict)
    except ValidationError as exception:
        source_text = str(resolved_path) if resolved_path is not None else "(defaults)"
        raise ValueError(f"Config validation failed for {source_text}:\n{exception}") from exception

    return config, resolved_path


@lru_cache(maxsize=1)
def get_config() -> Tuple[AppConfig, Optional[Path]]:
    return load_config()


def save_offsets(config_path: Path, *, audio_offset_ms: int, judgement_offset: float) -> AppConfig:
    """Write calibrated offsets into the config file, keeping every other key as is."""
    resolved_path = Path(config_path).expanduser()
    json_dict: Dict[str, Any] = {}
    if resolved_path.exists():
        json_dict = _read_json_file_utf8(resolved_path)

    offsets_section = json_dict.get("offsets")
    if not isinstance(offsets_section, dict):
        offsets_section = {}
    offsets_section["audio_offset_ms"] = int(audio_offset_ms)
    offsets_section["judgement_offset"] = float(judgement_offset)
    json_dict["offsets"] = offsets_section

    try:
        config = AppConfig.model_validate(json_dict)
    except ValidationError as exception:
        raise ValueError(f"Calibrated offsets rejected:\n{exception}") from exception

    resolved_path.parent.mkdir(parents=True, exist_ok=True)
    resolved_path.write_text(json.dumps(json_dict, ensure_ascii=False, indent=2), encoding="utf-8")
    get_config.cache_clear()
    return config


def main() -> int:
    try:
        config, resolved_path = load_config()
    except Exception as exception:
        error_payload = {"ok": False, "error": str(exception)}
        print(json.dumps(error_payload, ensure_ascii=False, indent=2))
        return 2

    output_payload = {
        "ok": True,
        "config_path": str(resolved_path) if resolved_path is not None else None,
        "config": config.model_dump(mode="json"),
    }
    print(json.dumps(output_payload, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
