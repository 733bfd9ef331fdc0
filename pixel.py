"""
Pixel colour model – the API the demo pages showcase.

Colours are parsed with Pillow's ImageColor and stored as 8-bit RGBA.
"""

import colorsys
import math
from enum import IntEnum

from PIL import ImageColor

QUANTUM_RANGE = 255


class Channel(IntEnum):
    RED = 0
    GREEN = 1
    BLUE = 2
    ALPHA = 3


def _clamp(value, low, high):
    return max(low, min(high, value))


class Pixel:
    def __init__(self, color: str = None) -> None:
        self._rgba = [0, 0, 0, QUANTUM_RANGE]
        if color is not None:
            self.set_color(color)

    def __repr__(self) -> str:
        return f"Pixel({self.get_color_as_string()!r})"

    # --- Setters --------------------------------------------------------------

    def set_color(self, color: str) -> None:
        spec = color.strip()
        # accept our own srgb()/srgba() output
        if spec.lower().startswith("srgb"):
            spec = spec[1:]
        try:
            # rgba() alpha is a 0-1 fraction, Pillow wants 0-255
            if spec.lower().startswith("rgba("):
                head, _, alpha = spec.rstrip(")").rpartition(",")
                alpha = _clamp(float(alpha), 0.0, 1.0)
                spec = f"{head},{round(alpha * QUANTUM_RANGE)})"
            rgba = ImageColor.getcolor(spec, "RGBA")
        except ValueError as exc:
            raise ValueError(f"Unrecognised color string '{color}'") from exc
        self._rgba = [int(_clamp(c, 0, QUANTUM_RANGE)) for c in rgba]

    def set_color_value(self, channel: Channel, value: float) -> None:
        self._rgba[Channel(channel)] = round(_clamp(float(value), 0.0, 1.0) * QUANTUM_RANGE)

    def set_color_value_quantum(self, channel: Channel, value: int) -> None:
        self._rgba[Channel(channel)] = int(_clamp(round(value), 0, QUANTUM_RANGE))

    def set_hsl(self, hue: float, saturation: float, luminosity: float) -> None:
        r, g, b = colorsys.hls_to_rgb(hue % 1.0, _clamp(luminosity, 0.0, 1.0), _clamp(saturation, 0.0, 1.0))
        self._rgba[:3] = [round(c * QUANTUM_RANGE) for c in (r, g, b)]

    # --- Getters --------------------------------------------------------------

    def get_color(self, normalized: bool = False) -> dict:
        keys = ("r", "g", "b", "a")
        if normalized:
            return {k: v / QUANTUM_RANGE for k, v in zip(keys, self._rgba)}
        return dict(zip(keys, self._rgba))

    def get_color_as_string(self) -> str:
        r, g, b, a = self._rgba
        if a == QUANTUM_RANGE:
            return f"srgb({r},{g},{b})"
        return f"srgba({r},{g},{b},{round(a / QUANTUM_RANGE, 4):g})"

    def get_color_value(self, channel: Channel) -> float:
        return self._rgba[Channel(channel)] / QUANTUM_RANGE

    def get_color_value_quantum(self, channel: Channel) -> int:
        return self._rgba[Channel(channel)]

    def get_hsl(self) -> dict:
        r, g, b = (c / QUANTUM_RANGE for c in self._rgba[:3])
        hue, luminosity, saturation = colorsys.rgb_to_hls(r, g, b)
        return {"hue": hue, "saturation": saturation, "luminosity": luminosity}

    def rgba(self) -> tuple:
        return tuple(self._rgba)

    def is_similar(self, other, fuzz: float) -> bool:
        """True when the normalised RGBA distance to ``other`` is within ``fuzz``."""
        if isinstance(other, str):
            other = Pixel(other)
        diff = [(a - b) / QUANTUM_RANGE for a, b in zip(self._rgba, other._rgba)]
        distance = math.sqrt(sum(d * d for d in diff) / len(diff))
        return distance <= fuzz
