"""
Live preview support: load a preview image at the working resolution and
re-render it through the same pattern code the batch uses, coalescing rapid
setting changes into one render.
"""

import logging
from pathlib import Path
from typing import Any, Callable, Optional, Tuple

from PIL import Image

from tilemark.imaging import DecodedImage, composite, load_image_file
from tilemark.pattern import TileLayout, layout_tiles, render_overlay
from tilemark.settings import WatermarkSettings

logger = logging.getLogger(__name__)

# Quiet period after the last setting change before the preview redraws.
PREVIEW_DEBOUNCE_MS = 200

ScheduleFn = Callable[[int, Callable[[], None]], Any]
CancelFn = Callable[[Any], None]


class Debouncer:
    """Collapse bursts of calls into one call after a quiet period.

    ``schedule(delay_ms, callback)`` must return a handle that ``cancel``
    accepts, which is exactly Tk's ``after``/``after_cancel`` pair.
    """

    def __init__(self, schedule: ScheduleFn, cancel: CancelFn, delay_ms: int = PREVIEW_DEBOUNCE_MS):
        self._schedule = schedule
        self._cancel = cancel
        self.delay_ms = delay_ms
        self._handle: Any = None
        self._callback: Optional[Callable[[], None]] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self, callback: Callable[[], None]) -> None:
        """Schedule ``callback``, superseding any call still waiting."""
        self.cancel()
        self._callback = callback
        self._handle = self._schedule(self.delay_ms, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._cancel(self._handle)
        self._handle = None
        self._callback = None

    def flush(self) -> None:
        """Run the pending call now instead of waiting."""
        if self._handle is None:
            return
        self._cancel(self._handle)
        self._fire()

    def _fire(self) -> None:
        callback = self._callback
        self._handle = None
        self._callback = None
        if callback is not None:
            callback()


class PreviewRenderer:
    """Holds the preview base image and renders watermarked previews of it."""

    def __init__(self):
        self.path: Optional[Path] = None
        self._decoded: Optional[DecodedImage] = None

    @property
    def loaded(self) -> bool:
        return self._decoded is not None

    @property
    def size(self) -> Tuple[int, int]:
        return self._decoded.size if self._decoded else (0, 0)

    @property
    def base(self) -> Optional[Image.Image]:
        return self._decoded.image if self._decoded else None

    def load(self, path: Path) -> Tuple[int, int]:
        """Decode ``path`` at the working resolution; raises ``DecodeError``."""
        decoded = load_image_file(Path(path))
        self._decoded = decoded
        self.path = Path(path)
        logger.debug("Preview image %s loaded at %dx%d", self.path.name, *decoded.size)
        return decoded.size

    def clear(self) -> None:
        self._decoded = None
        self.path = None

    def layout(self, settings: WatermarkSettings) -> Optional[TileLayout]:
        if not self._decoded:
            return None
        width, height = self._decoded.size
        return layout_tiles(width, height, settings)

    def render(self, settings: WatermarkSettings) -> Optional[Image.Image]:
        """Composited preview, or the bare image while the text is empty."""
        if not self._decoded:
            return None
        base = self._decoded.image
        if not settings.text:
            return base
        overlay = render_overlay(self.layout(settings))
        return composite(base, overlay)
