"""Deterministic color helpers for Tailwind edits."""

import colorsys
import re

COLOR_MAP: dict[str, str] = {
    "red": "#ef4444",
    "blue": "#3b82f6",
    "green": "#10b981",
    "yellow": "#f59e0b",
    "purple": "#8b5cf6",
    "pink": "#ec4899",
    "orange": "#f97316",
    "cyan": "#06b6d4",
    "teal": "#14b8a6",
    "lime": "#65a30d",
    "emerald": "#059669",
    "sky": "#0ea5e9",
    "indigo": "#6366f1",
    "violet": "#7c3aed",
    "fuchsia": "#d946ef",
    "rose": "#f43f5e",
    "black": "#000000",
    "white": "#ffffff",
    "gray": "#6b7280",
    "grey": "#6b7280",
}

DEFAULT_HEX = COLOR_MAP["blue"]
SHADE_STEPS = (50, 100, 200, 300, 400, 500, 600, 700, 800, 900)

HEX_COLOR_RE = re.compile(r"#(?:[0-9a-fA-F]{6}|[0-9a-fA-F]{3})\b")
HSL_COLOR_RE = re.compile(r"hsl\(\s*\d+(?:\.\d+)?\s*,?\s*\d+(?:\.\d+)?%\s*,?\s*\d+(?:\.\d+)?%\s*\)")
_HSL_PARTS_RE = re.compile(
    r"hsl\(\s*(\d+(?:\.\d+)?)\s*,?\s*(\d+(?:\.\d+)?)%\s*,?\s*(\d+(?:\.\d+)?)%\s*\)"
)


def hsl_to_hex(hsl: str) -> str:
    """Convert ``hsl(h, s%, l%)`` to ``#rrggbb``.

    Raises:
        ValueError: If the value is not a literal HSL color.
    """
    match = _HSL_PARTS_RE.fullmatch(hsl.strip().lower())
    if match is None:
        raise ValueError(f"Not an hsl color: {hsl}")
    hue = float(match.group(1)) % 360 / 360
    saturation = min(100.0, float(match.group(2))) / 100
    lightness = min(100.0, float(match.group(3))) / 100
    red, green, blue = colorsys.hls_to_rgb(hue, lightness, saturation)
    return "#" + "".join(f"{int(channel * 255 + 0.5):02x}" for channel in (red, green, blue))


def color_to_hex(color: str) -> str:
    """Map a color name or literal to hex.

    ``#rgb``/``#rrggbb`` values pass through, ``hsl(...)`` values are
    converted, and unknown names resolve to the default blue.

    Raises:
        ValueError: For a malformed hex or hsl literal.
    """
    value = color.strip().lower()
    if value.startswith("#"):
        _expand_hex(value)
        return value
    if value.startswith("hsl"):
        return hsl_to_hex(value)
    return COLOR_MAP.get(value, DEFAULT_HEX)


def _expand_hex(hex_color: str) -> str:
    value = hex_color.lstrip("#")
    if len(value) == 3:
        value = "".join(ch * 2 for ch in value)
    if len(value) != 6 or not re.fullmatch(r"[0-9a-fA-F]{6}", value):
        raise ValueError(f"Not a hex color: {hex_color}")
    return value.lower()


def generate_shade(hex_color: str, shade: int) -> str:
    """Lighten (below 500) or darken (above 500) a base color.

    Args:
        hex_color: Base color, used verbatim as the 500 step.
        shade: Tailwind step between 50 and 900.

    Returns:
        Lowercase ``#rrggbb`` string.
    """
    value = _expand_hex(hex_color)
    if shade <= 500:
        factor = 1 + (500 - shade) / 500 * 0.8
    else:
        factor = 1 - (shade - 500) / 400 * 0.6

    channels = []
    for offset in (0, 2, 4):
        channel = int(value[offset:offset + 2], 16)
        adjusted = min(255, max(0, int(channel * factor + 0.5)))
        channels.append(f"{adjusted:02x}")
    return "#" + "".join(channels)


def generate_color_scale(hex_color: str) -> dict[str, str]:
    """Return the full 50-900 ramp, with the input as the 500 step."""
    base = "#" + _expand_hex(hex_color)
    scale = {}
    for shade in SHADE_STEPS:
        scale[str(shade)] = base if shade == 500 else generate_shade(base, shade)
    return scale
