"""Configuration dataclasses and loading helpers for the pixel reveal engine."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple

from pixel_reveal.models import DEFAULT_SCHEDULE, PixelationSchedule

ENV_PREFIX = "PIXEL_REVEAL_"


def _parse_bool(value: Any, default: bool) -> bool:
    """Parse truthy/falsy values from multiple input types."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    if isinstance(value, (int, float)):
        return value != 0
    return default


def _parse_positive_int(value: Any, default: int) -> int:
    """Parse a positive integer with fallback to default."""
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


def _parse_fraction(value: Any, default: float) -> float:
    """Parse a float in [0, 1] with fallback to default."""
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return default
    if not 0.0 <= parsed <= 1.0:
        return default
    return parsed


def _parse_log_level(value: Any, default: int) -> int:
    """Accept a level name such as ``"debug"`` or a numeric level."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip():
        text = value.strip()
        if text.isdigit():
            return int(text)
        level = logging.getLevelName(text.upper())
        if isinstance(level, int):
            return level
    return default


def _parse_schedule(value: Any) -> PixelationSchedule:
    """Parse a schedule from a list or a comma separated string.

    Anything that does not form a valid ascending schedule yields the default.
    """
    if value is None:
        return PixelationSchedule(DEFAULT_SCHEDULE)
    if isinstance(value, str):
        items = [part for part in value.replace(" ", "").split(",") if part]
    elif isinstance(value, (list, tuple)):
        items = list(value)
    else:
        return PixelationSchedule(DEFAULT_SCHEDULE)
    try:
        return PixelationSchedule.from_iterable(float(item) for item in items)
    except (TypeError, ValueError):
        return PixelationSchedule(DEFAULT_SCHEDULE)


def _parse_background_color(value: Any) -> Tuple[int, int, int]:
    """Parse and clamp background color definitions to BGR tuples."""
    default = (0, 0, 0)

    def _clamp_triplet(triplet: Any) -> Optional[Tuple[int, int, int]]:
        if not isinstance(triplet, (list, tuple)) or len(triplet) != 3:
            return None
        try:
            return tuple(max(0, min(255, int(channel))) for channel in triplet)
        except (TypeError, ValueError):
            return None

    if isinstance(value, dict):
        if isinstance(value.get("hex"), str):
            return _parse_background_color(value["hex"])
        channels = _clamp_triplet(value.get("value"))
        if channels is None:
            return default
        order = str(value.get("order") or "rgb").lower()
        if order == "bgr":
            return channels
        if order == "rgb":
            return (channels[2], channels[1], channels[0])
        return default

    if isinstance(value, (list, tuple)):
        channels = _clamp_triplet(value)
        if channels is None:
            return default
        return (channels[2], channels[1], channels[0])

    if isinstance(value, str):
        hex_value = value.strip().lstrip("#")
        if len(hex_value) == 6:
            try:
                r = int(hex_value[0:2], 16)
                g = int(hex_value[2:4], 16)
                b = int(hex_value[4:6], 16)
            except ValueError:
                return default
            return (b, g, r)

    return default


@dataclass(frozen=True)
class RevealSettings:
    """Timing and schedule tunables of a reveal."""

    schedule: PixelationSchedule = field(default_factory=PixelationSchedule)
    first_step_delay_ms: int = 400
    step_delay_ms: int = 100
    single_fire: bool = False
    trigger_start: float = 0.5


@dataclass(frozen=True)
class OutputSettings:
    """Settings for offline frame and video export."""

    output_dir: Path = Path("output")
    fps: int = 30
    quality: int = 23
    background_color: Tuple[int, int, int] = (0, 0, 0)
    final_hold_ms: int = 1000


@dataclass(frozen=True)
class LoggingSettings:
    """Where the command line sends its log records, and from which level."""

    level: int = logging.INFO
    log_file: Optional[Path] = None


@dataclass(frozen=True)
class Config:
    """Root configuration object."""

    reveal: RevealSettings = field(default_factory=RevealSettings)
    output: OutputSettings = field(default_factory=OutputSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)


def _parse_reveal_settings(raw: Mapping[str, Any]) -> RevealSettings:
    default = RevealSettings()
    if not isinstance(raw, Mapping):
        return default
    return RevealSettings(
        schedule=_parse_schedule(raw.get("schedule")),
        first_step_delay_ms=_parse_positive_int(
            raw.get("first_step_delay_ms"),
            default.first_step_delay_ms,
        ),
        step_delay_ms=_parse_positive_int(raw.get("step_delay_ms"), default.step_delay_ms),
        single_fire=_parse_bool(raw.get("single_fire"), default.single_fire),
        trigger_start=_parse_fraction(raw.get("trigger_start"), default.trigger_start),
    )


def _parse_output_settings(raw: Mapping[str, Any]) -> OutputSettings:
    default = OutputSettings()
    if not isinstance(raw, Mapping):
        return default
    return OutputSettings(
        output_dir=Path(raw.get("output_dir", default.output_dir)),
        fps=_parse_positive_int(raw.get("fps"), default.fps),
        quality=_parse_positive_int(raw.get("quality"), default.quality),
        background_color=_parse_background_color(raw.get("background_color")),
        final_hold_ms=_parse_positive_int(raw.get("final_hold_ms"), default.final_hold_ms),
    )


def _parse_logging_settings(raw: Mapping[str, Any]) -> LoggingSettings:
    default = LoggingSettings()
    if not isinstance(raw, Mapping):
        return default
    log_file = raw.get("file")
    return LoggingSettings(
        level=_parse_log_level(raw.get("level"), default.level),
        log_file=Path(log_file) if log_file else None,
    )


def _load_env_config(env: Mapping[str, str]) -> Config:
    """Configuration derived from ``PIXEL_REVEAL_*`` environment variables."""

    def get(name: str) -> Optional[str]:
        return env.get(f"{ENV_PREFIX}{name}")

    reveal = _parse_reveal_settings({
        "schedule": get("SCHEDULE"),
        "first_step_delay_ms": get("FIRST_STEP_DELAY_MS"),
        "step_delay_ms": get("STEP_DELAY_MS"),
        "single_fire": get("SINGLE_FIRE"),
        "trigger_start": get("TRIGGER_START"),
    })
    output = _parse_output_settings({
        "output_dir": get("OUTPUT_DIR") or "output",
        "fps": get("FPS"),
        "quality": get("QUALITY"),
        "background_color": get("BACKGROUND_COLOR"),
        "final_hold_ms": get("FINAL_HOLD_MS"),
    })
    logging_settings = _parse_logging_settings({
        "level": get("LOG_LEVEL"),
        "file": get("LOG_FILE"),
    })
    return Config(reveal=reveal, output=output, logging=logging_settings)


def load_config(config_path: Path | str | None, env: Mapping[str, str] | None = None) -> Config:
    """Load configuration from a JSON file or environment defaults."""
    source_env = os.environ if env is None else env

    if config_path is not None:
        path = Path(config_path)
        if path.exists():
            with path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
            return Config(
                reveal=_parse_reveal_settings(data.get("reveal", {})),
                output=_parse_output_settings(data.get("output", {})),
                logging=_parse_logging_settings(data.get("logging", {})),
            )

    return _load_env_config(source_env)


__all__ = [
    "Config",
    "LoggingSettings",
    "OutputSettings",
    "RevealSettings",
    "load_config",
    "_parse_background_color",
    "_parse_bool",
    "_parse_log_level",
    "_parse_positive_int",
    "_parse_schedule",
]
