"""Data models used across the pixel reveal engine."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Iterator, Optional, Tuple

import numpy as np

if TYPE_CHECKING:
    from pixel_reveal.surface import SurfaceManager

DEFAULT_SCHEDULE: Tuple[float, ...] = (4, 9, 20, 50, 100)


@dataclass(frozen=True, eq=False)
class ImageAsset:
    """Decoded source image held as a BGRA array."""

    source: str
    width: int
    height: int
    pixels: np.ndarray = field(repr=False)

    @property
    def aspect_ratio(self) -> float:
        if self.height <= 0:
            return 0.0
        return self.width / self.height


@dataclass(frozen=True)
class PlacementRect:
    """Destination rectangle for the upscaled pass of a draw."""

    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class PixelationSchedule:
    """Ascending pixelation factors, expressed as percent of full resolution.

    A factor of 4 renders the intermediate pass at 4% size before it is
    magnified back; 100 is the unpixelated image.
    """

    factors: Tuple[float, ...] = DEFAULT_SCHEDULE

    def __post_init__(self) -> None:
        factors = tuple(self.factors)
        if not factors:
            raise ValueError("Schedule must contain at least one factor")
        for factor in factors:
            if not 0 < factor <= 100:
                raise ValueError(f"Pixelation factor out of range (0, 100]: {factor}")
        for previous, current in zip(factors, factors[1:]):
            if current <= previous:
                raise ValueError("Schedule factors must be strictly ascending")
        object.__setattr__(self, "factors", factors)

    @classmethod
    def from_iterable(cls, values: Iterable[float]) -> "PixelationSchedule":
        return cls(tuple(float(value) for value in values))

    def __len__(self) -> int:
        return len(self.factors)

    def __getitem__(self, index: int) -> float:
        return self.factors[index]

    def __iter__(self) -> Iterator[float]:
        return iter(self.factors)

    @property
    def final_factor(self) -> float:
        return self.factors[-1]


class RevealStatus(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    DONE = "done"


@dataclass
class RevealState:
    """Mutable state of one reveal: cursor, schedule and the surface it drives."""

    schedule: PixelationSchedule
    surface: "SurfaceManager"
    cursor: int = 0
    status: RevealStatus = RevealStatus.IDLE
    draw_count: int = 0

    @property
    def current_factor(self) -> float:
        return self.schedule[min(self.cursor, len(self.schedule) - 1)]

    @property
    def exhausted(self) -> bool:
        return self.cursor >= len(self.schedule)


@dataclass
class RecordedFrame:
    """A single captured draw of an offline reveal recording."""

    index: int
    factor: float
    timestamp_ms: float
    pixels: np.ndarray = field(repr=False)
    hold_ms: Optional[float] = None


__all__ = [
    "DEFAULT_SCHEDULE",
    "ImageAsset",
    "PixelationSchedule",
    "PlacementRect",
    "RecordedFrame",
    "RevealState",
    "RevealStatus",
]
