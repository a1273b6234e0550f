"""
Tiled text watermark pattern.

``layout_tiles`` is the one place the tile geometry is computed: spacing
normalised to the image size, the row-major tile grid and the whole-grid
rotation about the canvas centre. ``render_overlay`` rasterises a layout into
a transparent RGBA layer. The batch pipeline and the preview both go through
these two functions, so the preview shows exactly what gets written.
"""

import logging
import math
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterator, Optional, Tuple

from PIL import Image, ImageDraw, ImageFont

from tilemark.settings import WatermarkSettings, clamp_density, round_half_up

logger = logging.getLogger(__name__)

Point = Tuple[int, int]

# Spacing values are expressed for a 1000px short side.
SPACING_REFERENCE = 1000

# Bold faces tried in order; the first one Pillow can open wins.
FONT_CANDIDATES = (
    "arialbd.ttf",
    "Arial Bold.ttf",
    "/System/Library/Fonts/Supplemental/Arial Bold.ttf",
    "/Library/Fonts/Arial Bold.ttf",
    "DejaVuSans-Bold.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "LiberationSans-Bold.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
)

# Text is anchored at the left end of its alphabetic baseline.
TEXT_ANCHOR = "ls"


@lru_cache(maxsize=1)
def _font_path() -> Optional[str]:
    for candidate in FONT_CANDIDATES:
        try:
            return ImageFont.truetype(candidate, 12).path
        except OSError:
            continue
    logger.warning("No bold TrueType font found; using Pillow's default font.")
    return None


def load_font(size: int) -> ImageFont.FreeTypeFont:
    """Return the watermark face at ``size`` pixels.

    A fresh font object is built per call so the preview (Tk thread) and the
    batch (worker thread) never share a FreeType face.
    """
    path = _font_path()
    if path is None:
        return ImageFont.load_default(size=size)
    return ImageFont.truetype(path, size)


def base_scale(width: int, height: int) -> float:
    return min(width, height) / SPACING_REFERENCE


def density_multiplier(density: int) -> float:
    """1 (sparse) -> 2.0, 10 (dense) -> 0.2."""
    return (11 - clamp_density(density)) / 5


def effective_spacing(spacing: int, width: int, height: int, density: int) -> int:
    """Pixel step between tiles, never below 1px."""
    return max(1, round_half_up(spacing * base_scale(width, height) * density_multiplier(density)))


def tile_diagonal(width: int, height: int) -> int:
    return math.ceil(math.sqrt(width * width + height * height))


@dataclass(frozen=True)
class TileLayout:
    """Draw instructions for one overlay.

    Placements are in the unrotated grid frame; ``to_canvas`` maps them onto
    the image after the whole grid is rotated by ``-rotation`` degrees (canvas
    convention, y down) about the image centre.
    """

    width: int
    height: int
    text: str
    font_size: int
    fill: Tuple[int, int, int, int]
    rotation: int
    h_step: int
    v_step: int
    diagonal: int

    @property
    def center(self) -> Tuple[float, float]:
        return self.width / 2, self.height / 2

    @property
    def xs(self) -> range:
        return range(-self.diagonal, 2 * self.diagonal, self.h_step)

    @property
    def ys(self) -> range:
        return range(-self.diagonal, 2 * self.diagonal, self.v_step)

    @property
    def count(self) -> int:
        return len(self.xs) * len(self.ys)

    def placements(self) -> Iterator[Point]:
        """Every tile origin, y outer and x inner."""
        xs = self.xs
        for y in self.ys:
            for x in xs:
                yield x, y

    def placements_within(self, left: float, top: float, right: float, bottom: float) -> Iterator[Point]:
        """Tile origins inside the given grid-frame box, in the same row-major order."""
        xs = _clip(self.xs, left, right)
        for y in _clip(self.ys, top, bottom):
            for x in xs:
                yield x, y

    def to_canvas(self, x: float, y: float) -> Tuple[float, float]:
        cx, cy = self.center
        dx, dy = _turn(x - cx, y - cy, self.rotation)
        return cx + dx, cy + dy

    def from_canvas(self, x: float, y: float) -> Tuple[float, float]:
        cx, cy = self.center
        dx, dy = _turn(x - cx, y - cy, -self.rotation)
        return cx + dx, cy + dy


def _turn(dx: float, dy: float, degrees: float) -> Tuple[float, float]:
    """Rotate a y-down offset counter-clockwise on screen, like ``Image.rotate``."""
    theta = math.radians(-degrees)
    return (
        dx * math.cos(theta) - dy * math.sin(theta),
        dx * math.sin(theta) + dy * math.cos(theta),
    )


def _clip(values: range, low: float, high: float) -> range:
    first = max(0, math.ceil((low - values.start) / values.step))
    last = min(len(values) - 1, math.floor((high - values.start) / values.step))
    if last < first:
        return range(0)
    return values[first:last + 1]


def layout_tiles(width: int, height: int, settings: WatermarkSettings) -> TileLayout:
    if width <= 0 or height <= 0:
        raise ValueError(f"Canvas size must be positive, got {width}x{height}")
    return TileLayout(
        width=width,
        height=height,
        text=settings.text,
        font_size=settings.font_size,
        fill=settings.fill,
        rotation=settings.rotation,
        h_step=effective_spacing(settings.h_spacing, width, height, settings.density),
        v_step=effective_spacing(settings.v_spacing, width, height, settings.density),
        diagonal=tile_diagonal(width, height),
    )


def render_stamp(layout: TileLayout) -> Tuple[Image.Image, Tuple[float, float], Tuple[int, int, int, int]]:
    """Rasterise the text once, already turned by the layout rotation.

    Returns the ``L`` coverage stamp, the position of the text anchor inside
    it, and the unrotated text box relative to the anchor.
    """
    font = load_font(layout.font_size)
    box = font.getbbox(layout.text, anchor=TEXT_ANCHOR)
    left, top, right, bottom = box
    stamp = Image.new("L", (max(1, right - left), max(1, bottom - top)), 0)
    ImageDraw.Draw(stamp).text((-left, -top), layout.text, font=font, fill=255, anchor=TEXT_ANCHOR)

    anchor = (float(-left), float(-top))
    if layout.rotation % 360:
        # Image.rotate(expand=True) keeps the stamp centre at the new centre.
        half_w, half_h = stamp.width / 2, stamp.height / 2
        dx, dy = _turn(anchor[0] - half_w, anchor[1] - half_h, layout.rotation)
        stamp = stamp.rotate(layout.rotation, resample=Image.BICUBIC, expand=True)
        anchor = (stamp.width / 2 + dx, stamp.height / 2 + dy)
    return stamp, anchor, box


def render_overlay(layout: TileLayout) -> Image.Image:
    """Rasterise ``layout`` into a transparent ``width x height`` RGBA layer.

    Nothing larger than the canvas is allocated: the rotated text stamp is
    pasted at each tile origin mapped through ``to_canvas``.
    """
    width, height = layout.width, layout.height
    red, green, blue, alpha = layout.fill
    overlay = Image.new("RGBA", (width, height), (red, green, blue, 0))
    if not layout.text or alpha == 0:
        return overlay

    stamp, (anchor_x, anchor_y), (left, top, right, bottom) = render_stamp(layout)
    stamp_w, stamp_h = stamp.size

    # Canvas bounds seen from the unrotated grid frame.
    corners = [layout.from_canvas(x, y) for x, y in ((0, 0), (width, 0), (width, height), (0, height))]
    grid_left = min(x for x, _ in corners)
    grid_top = min(y for _, y in corners)
    grid_right = max(x for x, _ in corners)
    grid_bottom = max(y for _, y in corners)

    # Coverage is drawn at full strength; opacity is applied once afterwards.
    mask = Image.new("L", (width, height), 0)
    drawn = 0
    for x, y in layout.placements_within(grid_left - right, grid_top - bottom, grid_right - left, grid_bottom - top):
        canvas_x, canvas_y = layout.to_canvas(x, y)
        paste_x = round_half_up(canvas_x - anchor_x)
        paste_y = round_half_up(canvas_y - anchor_y)
        if paste_x >= width or paste_y >= height or paste_x + stamp_w <= 0 or paste_y + stamp_h <= 0:
            continue
        mask.paste(255, (paste_x, paste_y), stamp)
        drawn += 1

    if alpha < 255:
        mask = mask.point(lambda v: (v * alpha + 127) // 255)

    overlay.putalpha(mask)
    logger.debug(
        "Rendered %d of %d tiles on %dx%d (step %dx%d, rotation %d)",
        drawn, layout.count, width, height, layout.h_step, layout.v_step, layout.rotation,
    )
    return overlay


def generate_overlay(width: int, height: int, settings: WatermarkSettings) -> Image.Image:
    return render_overlay(layout_tiles(width, height, settings))
