"""Tests for PillowImageDecoder."""

from __future__ import annotations

import io

import pytest
from PIL import Image

from imageloader.errors import DecodeFailure
from imageloader.infrastructure.services.image_decoder import PillowImageDecoder, image_byte_size

from helpers import png_bytes


class TestPillowImageDecoder:
    def test_decode_bytes(self):
        image = PillowImageDecoder().decode(png_bytes((6, 3)))
        assert image.size == (6, 3)

    def test_decode_stream(self):
        image = PillowImageDecoder().decode(io.BytesIO(png_bytes((2, 2))))
        assert image.size == (2, 2)

    def test_garbage_raises(self):
        with pytest.raises(DecodeFailure):
            PillowImageDecoder().decode(b"definitely not an image")

    def test_truncated_raises(self):
        data = png_bytes((64, 64))
        with pytest.raises(DecodeFailure):
            PillowImageDecoder().decode(data[: len(data) // 2])

    def test_empty_raises(self):
        with pytest.raises(DecodeFailure):
            PillowImageDecoder().decode(b"")


class TestImageByteSize:
    @pytest.mark.parametrize(
        ("mode", "expected"),
        [("RGB", 4 * 10 * 5), ("RGBA", 4 * 10 * 5), ("L", 10 * 5), ("I;16", 2 * 10 * 5)],
    )
    def test_modes(self, mode, expected):
        assert image_byte_size(Image.new(mode, (10, 5))) == expected

    def test_decoder_size_of(self):
        decoder = PillowImageDecoder()
        assert decoder.size_of(decoder.decode(png_bytes((4, 4)))) == 64
