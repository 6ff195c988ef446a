"""Capture surface encoding with Pillow.

Turns whatever a drawing surface produced (a Pillow image, a list of pen
strokes, or an image file on disk) into a PNG SignatureImage.
"""

import logging
from collections.abc import Sequence
from io import BytesIO
from pathlib import Path

from PIL import Image, ImageDraw, UnidentifiedImageError

from fieldsign.core.models import SignatureImage

logger = logging.getLogger(__name__)

Point = tuple[float, float]

_MIME_TYPES = {"PNG": "image/png", "JPEG": "image/jpeg", "WEBP": "image/webp"}


def encode_canvas(image: Image.Image, fmt: str = "PNG") -> SignatureImage:
    """Encode a Pillow image into a SignatureImage.

    Args:
        image: The rendered capture surface.
        fmt: Pillow format name (PNG, JPEG, WEBP).

    Raises:
        ValueError: If the format is not supported.
    """
    fmt = fmt.upper()
    if fmt not in _MIME_TYPES:
        raise ValueError(f"Unsupported signature format: {fmt}")
    if fmt == "JPEG" and image.mode not in ("RGB", "L"):
        # JPEG has no alpha; flatten onto white like a paper form.
        background = Image.new("RGB", image.size, (255, 255, 255))
        alpha = image.getchannel("A") if "A" in image.getbands() else None
        background.paste(image, mask=alpha)
        image = background

    buf = BytesIO()
    image.save(buf, format=fmt)
    return SignatureImage(data=buf.getvalue(), mime_type=_MIME_TYPES[fmt])


def render_strokes(
    strokes: Sequence[Sequence[Point]],
    width: int,
    height: int,
    stroke_width: int = 3,
    color: tuple[int, int, int, int] = (0, 0, 0, 255),
) -> SignatureImage:
    """Draw pen strokes onto a transparent canvas and encode it as PNG.

    Each stroke is a sequence of (x, y) points in canvas pixels with the
    origin at the top-left. A single-point stroke is drawn as a dot.

    Raises:
        ValueError: If the canvas size is not positive or there is no ink.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Canvas size must be positive, got {width}x{height}")
    if not any(len(stroke) > 0 for stroke in strokes):
        raise ValueError("Signature is empty")

    image = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    draw = ImageDraw.Draw(image)
    radius = max(stroke_width / 2, 0.5)
    for stroke in strokes:
        points = [(float(x), float(y)) for x, y in stroke]
        if len(points) == 1:
            x, y = points[0]
            draw.ellipse((x - radius, y - radius, x + radius, y + radius), fill=color)
        elif points:
            draw.line(points, fill=color, width=stroke_width, joint="curve")

    return encode_canvas(image)


def load_signature_image(path: str | Path) -> SignatureImage:
    """Read a signature image file, re-encoding to PNG when needed.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not a readable image.
    """
    raw = Path(path).read_bytes()
    try:
        with Image.open(BytesIO(raw)) as image:
            if image.format == "PNG":
                return SignatureImage(data=raw, mime_type="image/png")
            logger.debug(f"Re-encoding {image.format} signature {path} as PNG")
            image.load()
            return encode_canvas(image.convert("RGBA"))
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError(f"{path} is not a readable image: {e}") from e
