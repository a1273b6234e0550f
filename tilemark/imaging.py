"""
Image decoding, working-resolution resize, compositing and re-encoding.
"""

import io
import logging
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple

from PIL import Image, UnidentifiedImageError

from tilemark.errors import CompositeError, DecodeError
from tilemark.pattern import generate_overlay
from tilemark.settings import WatermarkSettings, round_half_up

logger = logging.getLogger(__name__)

Size = Tuple[int, int]

# Every image is normalised so its shorter side is this long.
TARGET_SHORT_SIDE = 2048
DEFAULT_QUALITY = 92

# What Pillow raises on damaged or truncated files, depending on the plugin.
DECODE_ERRORS = (
    UnidentifiedImageError,
    OSError,
    ValueError,
    SyntaxError,
    EOFError,
    struct.error,
    IndexError,
    TypeError,
    Image.DecompressionBombError,
)

EXTENSION_FORMATS: Dict[str, str] = {
    ".jpg": "JPEG",
    ".jpeg": "JPEG",
    ".png": "PNG",
    ".bmp": "BMP",
    ".gif": "GIF",
    ".tif": "TIFF",
    ".tiff": "TIFF",
    ".webp": "WEBP",
}

# Containers that can carry an alpha channel through the round trip.
ALPHA_FORMATS = {"PNG", "WEBP", "TIFF"}


@dataclass
class DecodedImage:
    image: Image.Image
    format: Optional[str]
    has_alpha: bool

    @property
    def size(self) -> Size:
        return self.image.size


def target_size(width: int, height: int, target: int = TARGET_SHORT_SIDE) -> Size:
    """Scale so the short side equals ``target``; each axis is rounded on its own."""
    if width <= 0 or height <= 0:
        raise DecodeError(f"Image has no pixels ({width}x{height})")
    scale = target / min(width, height)
    return max(1, round_half_up(width * scale)), max(1, round_half_up(height * scale))


def decode_image(data: bytes, filename: str = "") -> DecodedImage:
    """Fully decode ``data`` into an RGBA image."""
    if not data:
        raise DecodeError(f"{filename or 'image'}: file is empty", filename)
    try:
        with Image.open(io.BytesIO(data)) as source:
            source.load()
            fmt = source.format
            has_alpha = source.mode in ("RGBA", "LA", "PA") or "transparency" in source.info
            image = source.convert("RGBA")
    except DECODE_ERRORS as exc:
        raise DecodeError(f"{filename or 'image'}: cannot decode ({exc})", filename) from exc
    return DecodedImage(image=image, format=fmt, has_alpha=has_alpha)


def resize_to_target(image: Image.Image, target: int = TARGET_SHORT_SIDE) -> Image.Image:
    size = target_size(image.width, image.height, target)
    if size == image.size:
        return image
    return image.resize(size, Image.LANCZOS)


def decode_and_resize(data: bytes, filename: str = "") -> DecodedImage:
    """Decode and bring the image to the working resolution."""
    decoded = decode_image(data, filename)
    decoded.image = resize_to_target(decoded.image)
    return decoded


def load_image_file(path: Path) -> DecodedImage:
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise DecodeError(f"{path.name}: cannot read ({exc})", path.name) from exc
    return decode_and_resize(data, path.name)


def composite(base: Image.Image, overlay: Image.Image) -> Image.Image:
    """Source-over blend of ``overlay`` onto ``base``."""
    if base.size != overlay.size:
        raise CompositeError(f"Overlay size {overlay.size} does not match image size {base.size}")
    if base.mode != "RGBA":
        base = base.convert("RGBA")
    if overlay.mode != "RGBA":
        overlay = overlay.convert("RGBA")
    return Image.alpha_composite(base, overlay)


def format_for(path: Path, fallback: Optional[str] = None) -> str:
    """Output container for ``path``: its extension first, then the decoded format."""
    fmt = EXTENSION_FORMATS.get(Path(path).suffix.lower())
    if fmt:
        return fmt
    if fallback in ("MPO", "JPEG2000"):
        return "JPEG"
    return fallback or "PNG"


def encode_image(image: Image.Image, fmt: str, quality: int = DEFAULT_QUALITY, keep_alpha: bool = False) -> bytes:
    fmt = fmt.upper()
    mode = "RGBA" if keep_alpha and fmt in ALPHA_FORMATS else "RGB"
    out = image if image.mode == mode else image.convert(mode)

    save_kwargs = {}
    if fmt == "JPEG":
        save_kwargs.update(dict(quality=quality, subsampling=0, optimize=True))
    elif fmt == "WEBP":
        save_kwargs.update(dict(quality=quality))

    buffer = io.BytesIO()
    try:
        out.save(buffer, format=fmt, **save_kwargs)
    except (OSError, ValueError, KeyError) as exc:
        raise CompositeError(f"Cannot encode image as {fmt}: {exc}") from exc
    return buffer.getvalue()


def watermark_image(image: Image.Image, settings: WatermarkSettings) -> Image.Image:
    overlay = generate_overlay(image.width, image.height, settings)
    return composite(image, overlay)


def watermark_bytes(
    data: bytes,
    settings: WatermarkSettings,
    filename: str = "",
    quality: int = DEFAULT_QUALITY,
) -> bytes:
    """Full per-file pipeline: decode, resize, overlay, composite, encode."""
    decoded = decode_and_resize(data, filename)
    result = watermark_image(decoded.image, settings)
    fmt = format_for(Path(filename), decoded.format) if filename else (decoded.format or "PNG")
    logger.debug("%s: %s %dx%d", filename or "image", fmt, result.width, result.height)
    return encode_image(result, fmt, quality=quality, keep_alpha=decoded.has_alpha)
