"""Sidebar navigation for the Pixel examples."""

from markupsafe import escape


class PixelNav:
    examples = (
        "__construct",
        "getColor",
        "getColorAsString",
        "getColorValue",
        "getColorValueQuantum",
        "getHSL",
        "isSimilar",
        "setColor",
        "setColorValue",
        "setcolorValueQuantum",
        "setHSL",
    )

    def __init__(self) -> None:
        self.current_example = None

    def display(self, example: str, provider) -> None:
        self.current_example = example
        provider.alias("Example", example)
        provider.alias("ActiveNav", type(self).__name__)
        provider.share(self)

    def display_index(self, provider) -> None:
        provider.alias("ActiveNav", type(self).__name__)
        provider.share(self)

    def render_image(self, example: str, provider):
        return provider.execute([example, "render_image_safe"])

    def render_title(self) -> str:
        if self.current_example:
            return self.current_example
        return "ImagickPixel"

    def _link(self, example: str, label: str) -> str:
        return f"<a href='/ImagickPixel/{escape(example)}'>{escape(label)}</a>"

    def _neighbour(self, offset: int):
        if self.current_example not in self.examples:
            return None
        index = self.examples.index(self.current_example) + offset
        if 0 <= index < len(self.examples):
            return self.examples[index]
        return None

    def render_previous_button(self) -> str:
        previous = self._neighbour(-1)
        return self._link(previous, f"‹ {previous}") if previous else ""

    def render_next_button(self) -> str:
        following = self._neighbour(1)
        return self._link(following, f"{following} ›") if following else ""

    def render_nav(self) -> str:
        items = "".join(f"<li>{self._link(name, name)}</li>" for name in self.examples)
        return f"<ul class='nav nav-sidebar smallPadding'>{items}</ul>"
