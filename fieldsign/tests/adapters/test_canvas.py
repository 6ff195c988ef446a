"""Tests for capture surface encoding."""

from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image

from fieldsign.adapters.capture.canvas import (
    encode_canvas,
    load_signature_image,
    render_strokes,
)


def decode(data: bytes) -> Image.Image:
    image = Image.open(BytesIO(data))
    image.load()
    return image


class TestRenderStrokes:
    def test_produces_transparent_png_of_canvas_size(self) -> None:
        image = render_strokes([[(10, 10), (390, 90)]], width=400, height=100)

        assert image.mime_type == "image/png"
        decoded = decode(image.data)
        assert decoded.format == "PNG"
        assert decoded.size == (400, 100)
        assert decoded.mode == "RGBA"
        assert decoded.getpixel((0, 99))[3] == 0

    def test_ink_lands_on_stroke_path(self) -> None:
        image = render_strokes([[(0, 50), (399, 50)]], width=400, height=100)
        assert decode(image.data).getpixel((200, 50)) == (0, 0, 0, 255)

    def test_single_point_stroke_is_a_dot(self) -> None:
        image = render_strokes([[(20, 20)]], width=40, height=40, stroke_width=4)
        assert decode(image.data).getpixel((20, 20))[3] == 255

    def test_custom_color(self) -> None:
        image = render_strokes(
            [[(0, 5), (9, 5)]], width=10, height=10, color=(0, 0, 255, 255)
        )
        assert decode(image.data).getpixel((5, 5)) == (0, 0, 255, 255)

    @pytest.mark.parametrize("strokes", [[], [[]], [[], []]])
    def test_rejects_empty_signature(self, strokes: list) -> None:
        with pytest.raises(ValueError, match="empty"):
            render_strokes(strokes, width=100, height=100)

    def test_rejects_degenerate_canvas(self) -> None:
        with pytest.raises(ValueError, match="positive"):
            render_strokes([[(0, 0)]], width=0, height=100)


class TestEncodeCanvas:
    def test_jpeg_is_flattened_onto_white(self) -> None:
        canvas = Image.new("RGBA", (20, 20), (0, 0, 0, 0))
        image = encode_canvas(canvas, "jpeg")

        assert image.mime_type == "image/jpeg"
        decoded = decode(image.data)
        assert decoded.mode == "RGB"
        assert all(channel > 240 for channel in decoded.getpixel((10, 10)))

    def test_webp(self) -> None:
        image = encode_canvas(Image.new("RGBA", (8, 8)), "WEBP")
        assert image.mime_type == "image/webp"

    def test_rejects_unknown_format(self) -> None:
        with pytest.raises(ValueError, match="Unsupported"):
            encode_canvas(Image.new("RGBA", (8, 8)), "BMP")


class TestLoadSignatureImage:
    def test_png_is_passed_through(self, tmp_path: Path) -> None:
        path = tmp_path / "sig.png"
        Image.new("RGBA", (30, 10), (0, 0, 0, 255)).save(path, format="PNG")

        image = load_signature_image(path)

        assert image.data == path.read_bytes()
        assert image.mime_type == "image/png"

    def test_other_formats_are_reencoded_as_png(self, tmp_path: Path) -> None:
        path = tmp_path / "sig.jpg"
        Image.new("RGB", (30, 10), "white").save(path, format="JPEG")

        image = load_signature_image(str(path))

        assert image.mime_type == "image/png"
        assert decode(image.data).format == "PNG"
        assert decode(image.data).size == (30, 10)

    def test_unreadable_file(self, tmp_path: Path) -> None:
        path = tmp_path / "notes.txt"
        path.write_text("not an image")

        with pytest.raises(ValueError, match="not a readable image"):
            load_signature_image(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_signature_image(tmp_path / "missing.png")
