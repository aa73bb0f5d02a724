from __future__ import annotations
import logging

from PIL import Image

logger = logging.getLogger(__name__)


def show_on_inky(img: Image.Image, rotate_degrees: int = 0, border: str = "white") -> None:
    """
    Pushes a rendered agenda image to an attached Inky e-paper display.
    The 'inky' library is only needed on the device itself.
    """
    from inky.auto import auto  # type: ignore

    disp = auto(ask_user=False, verbose=False)
    if disp is None:
        raise RuntimeError("Could not auto-detect Inky display. Check wiring and SPI enabled.")

    if rotate_degrees:
        img = img.rotate(rotate_degrees, expand=True)

    if img.size != disp.resolution:
        logger.debug("Resizing agenda image from %s to %s", img.size, disp.resolution)
        img = img.resize(disp.resolution)

    disp.set_border(getattr(disp, border.upper(), disp.WHITE))
    disp.set_image(img)
    disp.show()
