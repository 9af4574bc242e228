"""
Stepped depixelation reveals: a raster surface drawn increasingly sharply,
one timed step at a time, after a viewport trigger fires.
"""

from .assets import AssetLoader, AssetLoadError
from .config import Config, OutputSettings, RevealSettings, load_config
from .element import PixelRevealElement
from .events import LayoutBox, Signal, ViewportTrigger
from .models import ImageAsset, PixelationSchedule, PlacementRect, RevealState, RevealStatus
from .sequencer import StageSequencer
from .surface import SurfaceManager, compute_placement
from .timers import SchedulerTimer, VirtualTimer

__all__ = [
    "AssetLoadError",
    "AssetLoader",
    "Config",
    "ImageAsset",
    "LayoutBox",
    "OutputSettings",
    "PixelRevealElement",
    "PixelationSchedule",
    "PlacementRect",
    "RevealSettings",
    "RevealState",
    "RevealStatus",
    "SchedulerTimer",
    "Signal",
    "StageSequencer",
    "SurfaceManager",
    "ViewportTrigger",
    "VirtualTimer",
    "compute_placement",
    "load_config",
]
