"""Color parsing and transformation helpers used by themes and style settings."""

from __future__ import annotations

import re
from typing import NamedTuple


class Color(NamedTuple):
    """RGBA color with 0-255 channels and a 0-1 alpha value."""

    r: int
    g: int
    b: int
    a: float = 1.0


_NAMED_COLORS: dict[str, Color] = {
    "black": Color(0, 0, 0),
    "white": Color(255, 255, 255),
    "transparent": Color(0, 0, 0, 0.0),
}

_HEX = re.compile(r"^#?([0-9a-fA-F]{3,4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")
_RGB = re.compile(
    r"^rgba?\(\s*(\d{1,3})\s*[,\s]\s*(\d{1,3})\s*[,\s]\s*(\d{1,3})\s*"
    r"(?:[,/]\s*([0-9.]+%?)\s*)?\)$",
    re.IGNORECASE,
)


def parse_color(value: str) -> Color:
    """Parse a CSS-like color string.

    Accepts ``#rgb``, ``#rgba``, ``#rrggbb``, ``#rrggbbaa`` (with or without
    the leading hash), ``rgb()``/``rgba()`` notation and a few keywords.
    Raises :class:`ValueError` for anything else.
    """
    if not isinstance(value, str):
        raise ValueError(f"Color values must be strings, got {type(value).__name__}")
    candidate = value.strip()
    named = _NAMED_COLORS.get(candidate.lower())
    if named is not None:
        return named

    match = _HEX.match(candidate)
    if match:
        digits = match.group(1)
        if len(digits) in (3, 4):
            digits = "".join(char * 2 for char in digits)
        channels = [int(digits[index : index + 2], 16) for index in range(0, len(digits), 2)]
        alpha = round(channels[3] / 255, 4) if len(channels) == 4 else 1.0
        return Color(channels[0], channels[1], channels[2], alpha)

    match = _RGB.match(candidate)
    if match:
        red, green, blue = (int(match.group(index)) for index in (1, 2, 3))
        if max(red, green, blue) > 255:
            raise ValueError(f"Color channel out of range in '{value}'")
        raw_alpha = match.group(4)
        alpha = 1.0
        if raw_alpha:
            alpha = float(raw_alpha[:-1]) / 100 if raw_alpha.endswith("%") else float(raw_alpha)
        return Color(red, green, blue, min(max(alpha, 0.0), 1.0))

    raise ValueError(f"Unparseable color value '{value}'")


def to_hex(color: Color) -> str:
    """Serialise a color as ``#rrggbb`` (or ``#rrggbbaa`` when translucent)."""
    base = f"#{color.r:02x}{color.g:02x}{color.b:02x}"
    if color.a >= 1.0:
        return base
    return f"{base}{round(color.a * 255):02x}"


def normalise_color(value: str) -> str:
    """Return the canonical hex form of a color string."""
    return to_hex(parse_color(value))


def _channel(value: int) -> float:
    scaled = value / 255
    return scaled / 12.92 if scaled <= 0.03928 else ((scaled + 0.055) / 1.055) ** 2.4


def luminance(color: Color | str) -> float:
    """Return the WCAG relative luminance of a color (0 is black, 1 is white)."""
    parsed = parse_color(color) if isinstance(color, str) else color
    return 0.2126 * _channel(parsed.r) + 0.7152 * _channel(parsed.g) + 0.0722 * _channel(parsed.b)


def contrast_ratio(first: Color | str, second: Color | str) -> float:
    """Return the WCAG contrast ratio between two colors."""
    lighter, darker = sorted((luminance(first), luminance(second)), reverse=True)
    return (lighter + 0.05) / (darker + 0.05)


def mix(first: Color | str, second: Color | str, amount: float) -> str:
    """Blend ``second`` into ``first`` by ``amount`` (0 keeps ``first``)."""
    base = parse_color(first) if isinstance(first, str) else first
    other = parse_color(second) if isinstance(second, str) else second
    ratio = min(max(amount, 0.0), 1.0)

    def _blend(left: float, right: float) -> float:
        return left + (right - left) * ratio

    return to_hex(
        Color(
            round(_blend(base.r, other.r)),
            round(_blend(base.g, other.g)),
            round(_blend(base.b, other.b)),
            round(_blend(base.a, other.a), 4),
        )
    )


def lighten(color: Color | str, amount: float) -> str:
    """Blend a color towards white."""
    return mix(color, _NAMED_COLORS["white"], amount)


def darken(color: Color | str, amount: float) -> str:
    """Blend a color towards black."""
    return mix(color, _NAMED_COLORS["black"], amount)


def with_alpha(color: Color | str, alpha: float) -> str:
    """Return the color with its alpha channel replaced."""
    parsed = parse_color(color) if isinstance(color, str) else color
    return to_hex(parsed._replace(a=min(max(alpha, 0.0), 1.0)))


def is_dark(color: Color | str) -> bool:
    """Classify a background: dark when white text contrasts better than black."""
    return contrast_ratio(color, _NAMED_COLORS["white"]) > contrast_ratio(
        color, _NAMED_COLORS["black"]
    )


__all__ = [
    "Color",
    "contrast_ratio",
    "darken",
    "is_dark",
    "lighten",
    "luminance",
    "mix",
    "normalise_color",
    "parse_color",
    "to_hex",
    "with_alpha",
]
