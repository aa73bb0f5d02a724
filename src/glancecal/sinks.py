from __future__ import annotations
from datetime import datetime, tzinfo
import logging
import os
from pathlib import Path
import tempfile
from typing import Callable, Optional, Protocol, Sequence

from .display_inky import show_on_inky
from .models import Event
from .render import MarkupRenderer, RenderError, render_agenda_image

logger = logging.getLogger(__name__)

_PAGE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<style>
{css}
</style>
</head>
<body>
{body}
</body>
</html>
"""


class RenderSink(Protocol):
    def render(self, events: Sequence[Event], now: datetime) -> None: ...


def _atomic_write(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


class HtmlFileSink:
    """Writes a standalone HTML page with the stylesheet inlined."""

    def __init__(self, path: str, renderer: MarkupRenderer) -> None:
        self.path = Path(path)
        self.renderer = renderer
        self.css = ""

    def load_css(self, css: str) -> None:
        self.css = css

    def load_html(self, markup: str) -> None:
        page = _PAGE.format(css=self.css, body=markup)
        try:
            _atomic_write(self.path, page.encode("utf-8"))
        except OSError as exc:
            raise RenderError(f"could not write {self.path}: {exc}") from exc

    def render(self, events: Sequence[Event], now: datetime) -> None:
        self.load_html(self.renderer.render(events))


class ImageSink:
    """Draws the agenda with Pillow and saves it and/or shows it on an Inky panel."""

    def __init__(
        self,
        tz: tzinfo,
        width: int = 800,
        height: int = 480,
        path: str = "",
        inky: bool = False,
        rotate_degrees: int = 0,
        border: str = "white",
        display: Optional[Callable[..., None]] = None,
    ) -> None:
        self.tz = tz
        self.width = width
        self.height = height
        self.path = Path(path) if path else None
        self.inky = inky
        self.rotate_degrees = rotate_degrees
        self.border = border
        self._display = display or show_on_inky

    def render(self, events: Sequence[Event], now: datetime) -> None:
        img = render_agenda_image(events, now, self.tz, self.width, self.height)
        try:
            if self.path is not None:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                img.save(self.path, format="PNG")
            if self.inky:
                self._display(img, rotate_degrees=self.rotate_degrees, border=self.border)
        except (OSError, RuntimeError, ImportError) as exc:
            raise RenderError(f"could not output agenda image: {exc}") from exc
