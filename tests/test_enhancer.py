"""Tests for image enhancement and PDF rasterization."""

import io

import fitz
import pytest
from PIL import Image

from manuscript_digitizer.config import ProcessingMode
from manuscript_digitizer.errors import EncodingError
from manuscript_digitizer.ocr.preprocessor import (
    HISTORICAL_PROFILE,
    STANDARD_PROFILE,
    ImageEnhancer,
    profile_for_mode,
    rasterize_pdf,
)


def make_image(size=(120, 80), color=(180, 160, 120), mode="RGB", fmt="PNG") -> bytes:
    image = Image.new(mode, size, color)
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


def make_pdf(pages: int) -> bytes:
    doc = fitz.open()
    for i in range(pages):
        page = doc.new_page(width=200, height=200)
        page.insert_text((40, 100), f"Page {i + 1}")
    data = doc.tobytes()
    doc.close()
    return data


class TestImageEnhancer:
    def setup_method(self):
        self.enhancer = ImageEnhancer()

    def test_deterministic(self):
        data = make_image()
        first = self.enhancer.enhance(data, STANDARD_PROFILE)
        second = self.enhancer.enhance(data, STANDARD_PROFILE)
        assert first == second

    def test_historical_deterministic(self):
        data = make_image()
        assert self.enhancer.enhance(data, HISTORICAL_PROFILE) == self.enhancer.enhance(
            data, HISTORICAL_PROFILE
        )

    def test_output_is_padded_grayscale_jpeg(self):
        out = Image.open(io.BytesIO(self.enhancer.enhance(make_image(size=(120, 80)))))
        assert out.format == "JPEG"
        assert out.mode == "L"
        padding = STANDARD_PROFILE.padding
        assert out.size == (120 + 2 * padding, 80 + 2 * padding)

    def test_padding_is_background_filled(self):
        out = Image.open(io.BytesIO(self.enhancer.enhance(make_image(color=(20, 20, 20)))))
        # Corner lies in the padding border: white background, brightened
        assert out.getpixel((0, 0)) > 240

    def test_transparent_pixels_take_background(self):
        data = make_image(color=(0, 0, 0, 0), mode="RGBA")
        out = Image.open(io.BytesIO(self.enhancer.enhance(data)))
        assert out.getpixel((out.width // 2, out.height // 2)) > 240

    def test_accepts_jpeg_input(self):
        data = make_image(fmt="JPEG")
        assert self.enhancer.enhance(data)

    def test_profiles_differ(self):
        data = make_image()
        assert self.enhancer.enhance(data, STANDARD_PROFILE) != self.enhancer.enhance(
            data, HISTORICAL_PROFILE
        )

    def test_undecodable_input(self):
        with pytest.raises(EncodingError):
            self.enhancer.enhance(b"definitely not an image")

    def test_empty_input(self):
        with pytest.raises(EncodingError):
            self.enhancer.enhance(b"")


class TestProfileForMode:
    def test_standard(self):
        assert profile_for_mode(ProcessingMode.STANDARD) is STANDARD_PROFILE

    def test_historical_binarizes(self):
        profile = profile_for_mode(ProcessingMode.HISTORICAL)
        assert profile is HISTORICAL_PROFILE
        assert profile.binarize is True


class TestRasterizePdf:
    def test_one_png_per_page(self):
        pages = rasterize_pdf(make_pdf(2), dpi=72)
        assert len(pages) == 2
        assert all(page.startswith(b"\x89PNG") for page in pages)

    def test_dpi_scales_output(self):
        low = Image.open(io.BytesIO(rasterize_pdf(make_pdf(1), dpi=72)[0]))
        high = Image.open(io.BytesIO(rasterize_pdf(make_pdf(1), dpi=144)[0]))
        assert high.width == 2 * low.width

    def test_invalid_pdf(self):
        with pytest.raises(EncodingError):
            rasterize_pdf(b"%PDF-garbage")
