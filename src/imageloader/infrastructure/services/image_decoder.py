"""Decode encoded image bytes and measure decoded footprints with Pillow."""

from __future__ import annotations

import io
import logging
from typing import BinaryIO

from PIL import Image, UnidentifiedImageError

from ...application.interfaces import ImageDecoder
from ...errors import DecodeFailure

LOGGER = logging.getLogger(__name__)

# Bytes per pixel of Pillow's in-memory storage for each mode.  Three-band
# modes are stored padded to four bytes, so RGB costs the same as RGBA.
_BYTES_PER_PIXEL: dict[str, int] = {
    "1": 1,
    "L": 1,
    "P": 1,
    "LA": 4,
    "PA": 4,
    "La": 4,
    "RGB": 4,
    "RGBA": 4,
    "RGBa": 4,
    "RGBX": 4,
    "CMYK": 4,
    "YCbCr": 4,
    "LAB": 4,
    "HSV": 4,
    "I": 4,
    "F": 4,
    "I;16": 2,
    "I;16B": 2,
    "I;16L": 2,
    "I;16N": 2,
}


class PillowImageDecoder(ImageDecoder):
    """Decode encoded image bytes with Pillow."""

    def decode(self, data: bytes | BinaryIO) -> Image.Image:
        """Return a fully loaded :class:`PIL.Image.Image` for *data*.

        Raises :class:`DecodeFailure` for truncated, corrupt or unrecognised
        input.  The returned image no longer references *data*.
        """

        source = io.BytesIO(data) if isinstance(data, (bytes, bytearray)) else data
        try:
            with Image.open(source) as img:
                img.load()
                return img.copy()
        except (UnidentifiedImageError, OSError, ValueError, SyntaxError) as exc:
            raise DecodeFailure(str(exc) or exc.__class__.__name__) from exc
        except Image.DecompressionBombError as exc:
            raise DecodeFailure(str(exc)) from exc

    def size_of(self, image: Image.Image) -> int:
        return image_byte_size(image)


def image_byte_size(image: Image.Image) -> int:
    """Return the decoded footprint of *image*: width × height × bytes per pixel."""

    bpp = _BYTES_PER_PIXEL.get(image.mode, 4)
    return image.width * image.height * bpp
