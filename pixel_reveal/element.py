"""One pixel-reveal element: asset, surface, sequencer and their event wiring."""

from __future__ import annotations

import logging
from concurrent.futures import Future
from typing import Callable, List, Optional

from pixel_reveal.assets import AssetLoader, AssetLoadError
from pixel_reveal.config import RevealSettings
from pixel_reveal.events import LayoutBox, Signal, ViewportTrigger
from pixel_reveal.models import ImageAsset
from pixel_reveal.sequencer import StageSequencer
from pixel_reveal.surface import SurfaceManager
from pixel_reveal.timers import StepTimer


class PixelRevealElement:
    """Tie an image source to a container and a viewport trigger.

    Nothing is wired until the asset has loaded, so neither the trigger nor
    a container resize can reach the surface before there is an image to
    draw. If loading fails the element stays detached and the host keeps
    showing the plain image.
    """

    def __init__(
        self,
        source: str,
        container: LayoutBox,
        *,
        timer: StepTimer,
        settings: Optional[RevealSettings] = None,
        loader: Optional[AssetLoader] = None,
        trigger: Optional[Signal] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.source = source
        self.container = container
        self.timer = timer
        self.settings = settings or RevealSettings()
        self.loader = loader
        self.trigger = trigger if trigger is not None else ViewportTrigger(self.settings.trigger_start)
        self.logger = logger or logging.getLogger(__name__)
        self.surface: Optional[SurfaceManager] = None
        self.sequencer: Optional[StageSequencer] = None
        self.load_error: Optional[Exception] = None
        self._disconnects: List[Callable[[], None]] = []
        self._load_future: Optional["Future[ImageAsset]"] = None
        self._disposed = False

    @property
    def attached(self) -> bool:
        return self.sequencer is not None

    @property
    def disposed(self) -> bool:
        return self._disposed

    def load(self) -> "Future[ImageAsset]":
        """Resolve the asset in the background and attach once it is ready."""
        if self.loader is None:
            raise RuntimeError("No asset loader configured")
        future = self.loader.load_async(self.source)
        self._load_future = future
        future.add_done_callback(self._on_loaded)
        return future

    def _on_loaded(self, future: "Future[ImageAsset]") -> None:
        if self._disposed or future.cancelled():
            return
        try:
            asset = future.result()
        except AssetLoadError as exc:
            self.load_error = exc
            self.logger.error("Pixel reveal disabled for %s: %s", self.source, exc)
            return
        try:
            self.attach(asset)
        except Exception as exc:
            self.load_error = exc
            self._detach()
            self.logger.error("Pixel reveal failed to attach for %s: %s", self.source, exc)

    def attach(self, asset: ImageAsset) -> Optional[StageSequencer]:
        """Build the surface and sequencer, draw the first frame and wire events."""
        if self._disposed:
            self.logger.debug("Not attaching disposed element %s", self.source)
            return None
        surface = SurfaceManager(asset, logger=self.logger)
        sequencer = StageSequencer(surface, self.settings, self.timer, logger=self.logger)
        surface.resize(self.container.width, self.container.height)
        surface.draw(sequencer.state.current_factor)
        self.surface = surface
        self.sequencer = sequencer
        self.wire(self.trigger, self.container.resized)
        self.logger.info(
            "Pixel reveal ready for %s (%sx%s surface, %s steps)",
            asset.source,
            surface.width,
            surface.height,
            len(self.settings.schedule),
        )
        return sequencer

    def wire(self, trigger: Optional[Signal], resize_source: Optional[Signal]) -> None:
        """Connect the trigger to ``start`` and the resize source to ``resize``."""
        if self.sequencer is None:
            raise RuntimeError("Cannot wire events before the asset is attached")
        sequencer = self.sequencer
        if trigger is not None:
            self._disconnects.append(trigger.connect(sequencer.start))
        if resize_source is not None:
            self._disconnects.append(resize_source.connect(sequencer.resize))

    def _detach(self) -> None:
        for disconnect in self._disconnects:
            disconnect()
        self._disconnects.clear()
        if self.sequencer is not None:
            self.sequencer.dispose()
        self.sequencer = None
        self.surface = None

    def dispose(self) -> None:
        """Stop the reveal for good, including an attach still waiting on the loader."""
        self._disposed = True
        if self._load_future is not None:
            self._load_future.cancel()
        for disconnect in self._disconnects:
            disconnect()
        self._disconnects.clear()
        if self.sequencer is not None:
            self.sequencer.dispose()


__all__ = ["PixelRevealElement"]
