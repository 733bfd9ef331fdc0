"""
Demo examples, one per Pixel method shown in the navigation.

Each example renders a short text result and a colour swatch image.
"""

import io
import logging

from PIL import Image, ImageDraw

from pixel import Channel, Pixel
from tier import Output, Response

logger = logging.getLogger(__name__)

SWATCH_SIZE = 120  # px – edge length of one colour square


class PixelExample:
    name = ""
    description = ""

    def __init__(self, swatch_size: int = SWATCH_SIZE) -> None:
        self.swatch_size = swatch_size

    def pixels(self) -> list:
        raise NotImplementedError

    def render(self) -> str:
        return "\n".join(p.get_color_as_string() for p in self.pixels())

    def render_image(self) -> Image.Image:
        pixels = self.pixels()
        size = self.swatch_size
        img = Image.new("RGBA", (size * len(pixels), size), (255, 255, 255, 0))
        draw = ImageDraw.Draw(img)
        for i, pixel in enumerate(pixels):
            draw.rectangle((i * size, 0, (i + 1) * size - 1, size - 1), fill=pixel.rgba())
        return img

    def render_image_safe(self, output: Output) -> Response:
        """Swatch as a PNG response; failures become an error image."""
        try:
            img = self.render_image()
        except ValueError as exc:
            logger.warning("Example %s failed to render: %s", self.name, exc)
            img = Image.new("RGB", (self.swatch_size * 3, self.swatch_size), (255, 255, 255))
            ImageDraw.Draw(img).text((4, 4), str(exc), fill=(255, 0, 0))

        def write_png():
            buf = io.BytesIO()
            img.save(buf, format="PNG")
            output.write(buf.getvalue())

        return Response(body=write_png, headers=[("Content-Type", "image/png")])


class Construct(PixelExample):
    name = "__construct"
    description = "Create pixels from named, hex, rgb() and hsl() colour strings."
    colors = ("red", "#00ff00", "rgb(0, 0, 255)", "hsl(50, 100%, 50%)")

    def pixels(self):
        return [Pixel(color) for color in self.colors]

    def render(self):
        return "\n".join(f"Pixel({c!r}) -> {p.get_color_as_string()}" for c, p in zip(self.colors, self.pixels()))


class GetColor(PixelExample):
    name = "getColor"
    description = "Read the channel values, either as 0-255 integers or normalised to 0-1."

    def pixels(self):
        pixel = Pixel("rgb(100, 150, 200)")
        pixel.set_color_value(Channel.ALPHA, 0.5)
        return [pixel]

    def render(self):
        pixel = self.pixels()[0]
        normalized = {k: round(v, 4) for k, v in pixel.get_color(True).items()}
        return f"get_color() -> {pixel.get_color()}\nget_color(True) -> {normalized}"


class GetColorAsString(PixelExample):
    name = "getColorAsString"
    description = "Format the colour as an srgb() or srgba() string."

    def pixels(self):
        return [Pixel("orange"), Pixel("srgba(0,128,128,0.25)")]


class GetColorValue(PixelExample):
    name = "getColorValue"
    description = "Read a single channel as a value between 0 and 1."

    def pixels(self):
        return [Pixel("#3498db")]

    def render(self):
        pixel = self.pixels()[0]
        return "\n".join(f"{ch.name}: {pixel.get_color_value(ch):.4f}" for ch in Channel)


class GetColorValueQuantum(PixelExample):
    name = "getColorValueQuantum"
    description = "Read a single channel in quantum units (0-255)."

    def pixels(self):
        return [Pixel("#e67e22")]

    def render(self):
        pixel = self.pixels()[0]
        return "\n".join(f"{ch.name}: {pixel.get_color_value_quantum(ch)}" for ch in Channel)


class GetHSL(PixelExample):
    name = "getHSL"
    description = "Read the colour as hue, saturation and luminosity."

    def pixels(self):
        return [Pixel("#c0392b")]

    def render(self):
        hsl = self.pixels()[0].get_hsl()
        return "\n".join(f"{k}: {v:.4f}" for k, v in hsl.items())


class IsSimilar(PixelExample):
    name = "isSimilar"
    description = "Compare two colours within a fuzz distance."
    fuzz_values = (0.01, 0.05)

    def pixels(self):
        return [Pixel("rgb(245, 0, 0)"), Pixel("red")]

    def render(self):
        first, second = self.pixels()
        return "\n".join(f"fuzz {fuzz}: {first.is_similar(second, fuzz)}" for fuzz in self.fuzz_values)


class SetColor(PixelExample):
    name = "setColor"
    description = "Replace the colour of an existing pixel."

    def pixels(self):
        before, after = Pixel("yellow"), Pixel("yellow")
        after.set_color("purple")
        return [before, after]


class SetColorValue(PixelExample):
    name = "setColorValue"
    description = "Set one channel from a value between 0 and 1."

    def pixels(self):
        before, after = Pixel("white"), Pixel("white")
        after.set_color_value(Channel.RED, 0.2)
        return [before, after]


class SetColorValueQuantum(PixelExample):
    name = "setcolorValueQuantum"
    description = "Set one channel in quantum units (0-255)."

    def pixels(self):
        before, after = Pixel("white"), Pixel("white")
        after.set_color_value_quantum(Channel.BLUE, 64)
        return [before, after]


class SetHSL(PixelExample):
    name = "setHSL"
    description = "Set the colour from hue, saturation and luminosity."

    def pixels(self):
        pixel = Pixel()
        pixel.set_hsl(0.33, 0.8, 0.5)
        return [pixel]


EXAMPLES = {
    cls.name: cls
    for cls in (
        Construct,
        GetColor,
        GetColorAsString,
        GetColorValue,
        GetColorValueQuantum,
        GetHSL,
        IsSimilar,
        SetColor,
        SetColorValue,
        SetColorValueQuantum,
        SetHSL,
    )
}
