from __future__ import annotations
from datetime import datetime, tzinfo
from pathlib import Path
from typing import List, Optional, Sequence

import jinja2
from PIL import Image, ImageDraw, ImageFont

from .config import ConfigError
from .models import Event

ASSETS_DIR = Path(__file__).parent / "assets"
DEFAULT_TEMPLATE = ASSETS_DIR / "index.html.j2"
DEFAULT_STYLESHEET = ASSETS_DIR / "style.css"
FONT_PATH = "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"


class RenderError(RuntimeError):
    """Raised when the event list cannot be turned into display output."""


def _fmt_time(dt: datetime) -> str:
    return dt.strftime("%-I:%M %p").lower()


def _fmt_day(dt: datetime) -> str:
    return dt.strftime("%a %-d %b")


def _read_asset(path: Path, what: str) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"could not read {what} {path}: {exc}") from exc


class MarkupRenderer:
    """Renders events to HTML through a Jinja2 template.

    The template and stylesheet are read once; a broken template fails here,
    at startup, rather than on every render tick.
    """

    def __init__(self, template_path: Optional[str] = None, css_path: Optional[str] = None) -> None:
        source = _read_asset(Path(template_path) if template_path else DEFAULT_TEMPLATE, "template")
        self.css = _read_asset(Path(css_path) if css_path else DEFAULT_STYLESHEET, "stylesheet")

        env = jinja2.Environment(autoescape=True, trim_blocks=True, lstrip_blocks=True)
        env.filters["clock"] = _fmt_time
        env.filters["day"] = _fmt_day
        try:
            self._template = env.from_string(source)
        except jinja2.TemplateSyntaxError as exc:
            raise ConfigError(f"could not parse template: {exc}") from exc

    def render(self, events: Sequence[Event]) -> str:
        try:
            return self._template.render(events=list(events))
        except jinja2.TemplateError as exc:
            raise RenderError(f"could not render html: {exc}") from exc


def _load_font(size: int) -> ImageFont.ImageFont:
    # DejaVu ships with most Raspberry Pi images; fall back to Pillow's bundled font.
    try:
        return ImageFont.truetype(FONT_PATH, size)
    except OSError:
        return ImageFont.load_default(size)


def _label(e: Event) -> str:
    day = "Today" if e.is_today else _fmt_day(e.time)
    if e.is_all_day:
        return f"{day} · All day"
    return f"{day} · {_fmt_time(e.time)}"


def _truncate(draw: ImageDraw.ImageDraw, text: str, font: ImageFont.ImageFont, max_width: float) -> str:
    if draw.textlength(text, font=font) <= max_width:
        return text
    while text and draw.textlength(text + "…", font=font) > max_width:
        text = text[:-1]
    return text + "…"


def render_agenda_image(
    events: Sequence[Event],
    now: datetime,
    tz: tzinfo,
    canvas_w: int = 800,
    canvas_h: int = 480,
) -> Image.Image:
    img = Image.new("RGB", (canvas_w, canvas_h), "white")
    d = ImageDraw.Draw(img)

    header_size, label_size, title_size = 40, 22, 30
    font_header = _load_font(header_size)
    font_label = _load_font(label_size)
    font_title = _load_font(title_size)

    padding = 24
    y = padding
    d.text((padding, y), now.astimezone(tz).strftime("%A, %B %-d"), fill="black", font=font_header)
    y += header_size + 12
    d.line((padding, y, canvas_w - padding, y), fill="black", width=2)
    y += 12

    if not events:
        d.text((padding, y), "No upcoming events", fill="black", font=font_title)
        return img

    labels: List[str] = [_label(e) for e in events]
    label_col_w = max(d.textlength(s, font=font_label) for s in labels)
    column_gap = 16
    row_h = title_size + 14
    x_title = padding + label_col_w + column_gap

    for e, label in zip(events, labels):
        if y + row_h > canvas_h - padding:
            d.text((padding, y), "…", fill="black", font=font_title)
            break

        fg = "black"
        if e.is_today:
            d.rectangle((padding - 6, y - 4, canvas_w - padding + 6, y + row_h - 6), fill="black")
            fg = "white"

        d.text((padding, y + (title_size - label_size)), label, fill=fg, font=font_label)
        title = _truncate(d, e.title, font_title, canvas_w - padding - x_title)
        d.text((x_title, y), title, fill=fg, font=font_title)
        if e.is_all_day:
            d.line((x_title, y + title_size + 4, x_title + d.textlength(title, font=font_title), y + title_size + 4), fill=fg, width=1)
        y += row_h

    return img
