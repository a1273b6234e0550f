"""
Watermark settings: the value object shared by the preview and the batch.

Settings come from the GUI form, CLI flags or a JSON file. Keys may use the
snake_case field names or the short camelCase names of the settings form
(``fontSize``, ``hSpacing``, ``vSpacing``, ...).
"""

import json
import math
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from PIL import ImageColor

from tilemark.errors import SettingsError

RGB = Tuple[int, int, int]

DENSITY_MIN = 1
DENSITY_MAX = 10

# Alternate key -> field name.
KEY_ALIASES: Dict[str, str] = {
    "fontSize": "font_size",
    "font_size_pt": "font_size",
    "colorRGB": "color",
    "rotationDeg": "rotation",
    "hSpacing": "h_spacing",
    "horizontalSpacingBase": "h_spacing",
    "vSpacing": "v_spacing",
    "verticalSpacingBase": "v_spacing",
    "opacityPercent": "opacity",
    "densityFactor": "density",
}


def parse_color(value: Any) -> RGB:
    """Parse ``#RRGGBB``, ``#RGB``, a colour name or an (r, g, b) sequence."""
    if isinstance(value, str):
        try:
            rgb = ImageColor.getrgb(value.strip())
        except ValueError as exc:
            raise SettingsError(f"Invalid colour: {value!r}") from exc
        return rgb[0], rgb[1], rgb[2]
    if isinstance(value, (list, tuple)) and len(value) == 3:
        channels = tuple(_as_int(c, "color") for c in value)
        if any(c < 0 or c > 255 for c in channels):
            raise SettingsError(f"Colour channels must be 0-255: {value!r}")
        return channels[0], channels[1], channels[2]
    raise SettingsError(f"Invalid colour: {value!r}")


def format_color(rgb: RGB) -> str:
    return "#{:02X}{:02X}{:02X}".format(*rgb)


def round_half_up(value: float) -> int:
    """Round .5 upwards, the way the settings form and canvas preview round."""
    return int(math.floor(value + 0.5))


def clamp_density(value: int) -> int:
    return max(DENSITY_MIN, min(DENSITY_MAX, int(value)))


def _as_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise SettingsError(f"{name} must be a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise SettingsError(f"{name} must be a number, got {value!r}") from exc
    if not math.isfinite(number):
        raise SettingsError(f"{name} must be finite, got {value!r}")
    return int(number)


@dataclass(frozen=True)
class WatermarkSettings:
    """Everything needed to lay out and draw the tiled text."""

    text: str = "WATERMARK"
    font_size: int = 40
    color: RGB = (255, 255, 255)
    rotation: int = 30
    h_spacing: int = 300
    v_spacing: int = 300
    opacity: int = 30
    density: int = 5

    def __post_init__(self):
        if not isinstance(self.text, str):
            raise SettingsError("text must be a string")
        if self.font_size <= 0:
            raise SettingsError(f"font_size must be positive, got {self.font_size}")
        if not -180 <= self.rotation <= 180:
            raise SettingsError(f"rotation must be within [-180, 180], got {self.rotation}")
        if self.h_spacing <= 0 or self.v_spacing <= 0:
            raise SettingsError("spacing values must be positive")
        if not 0 <= self.opacity <= 100:
            raise SettingsError(f"opacity must be within [0, 100], got {self.opacity}")
        if len(self.color) != 3 or any(not 0 <= c <= 255 for c in self.color):
            raise SettingsError(f"color must be three 0-255 channels, got {self.color!r}")
        object.__setattr__(self, "color", tuple(self.color))
        # Density is a slider position; out-of-range values are pulled back in.
        object.__setattr__(self, "density", clamp_density(self.density))

    @classmethod
    def from_mapping(
        cls, raw: Optional[Mapping[str, Any]], base: Optional["WatermarkSettings"] = None
    ) -> "WatermarkSettings":
        """Build settings from a mapping, filling gaps from ``base`` (or defaults)."""
        settings = base or cls()
        if not raw:
            return settings
        values: Dict[str, Any] = {}
        for key, value in raw.items():
            name = KEY_ALIASES.get(key, key)
            if name not in cls.__dataclass_fields__:
                raise SettingsError(f"Unknown setting: {key}")
            if value is None:
                continue
            if name == "text":
                values[name] = str(value)
            elif name == "color":
                values[name] = parse_color(value)
            else:
                values[name] = _as_int(value, name)
        return replace(settings, **values)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["color"] = format_color(self.color)
        return data

    def require_text(self) -> None:
        if not self.text:
            raise SettingsError("Watermark text is empty")

    @property
    def fill(self) -> Tuple[int, int, int, int]:
        """Fill colour with the opacity folded into the alpha channel."""
        alpha = round_half_up(self.opacity / 100 * 255)
        return self.color[0], self.color[1], self.color[2], alpha


def load_settings(path: Path, base: Optional[WatermarkSettings] = None) -> WatermarkSettings:
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as exc:
        raise SettingsError(f"Cannot read settings file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise SettingsError(f"Settings file {path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise SettingsError("Settings JSON must be an object mapping names to values.")
    return WatermarkSettings.from_mapping(data, base=base)


def save_settings(settings: WatermarkSettings, path: Path) -> None:
    Path(path).write_text(json.dumps(settings.to_dict(), indent=2), encoding="utf-8")
