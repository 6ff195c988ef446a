"""Coordinate and sizing math for placing signatures on PDF pages."""

from .models import Placement

# Width, in PDF points, that every embedded signature is scaled to.
SIGNATURE_TARGET_WIDTH = 200.0


def scale_to_width(
    width: float, height: float, target_width: float = SIGNATURE_TARGET_WIDTH
) -> tuple[float, float]:
    """Scale (width, height) uniformly so the width equals target_width.

    Args:
        width: Source image width in pixels.
        height: Source image height in pixels.
        target_width: Desired output width.

    Returns:
        Tuple of (target_width, derived_height).

    Raises:
        ValueError: If width or height is not positive.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
    scale = target_width / width
    return target_width, height * scale


def screen_to_page(
    x: float,
    y: float,
    page_index: int,
    page_height: float,
    view_scale: float = 1.0,
) -> Placement:
    """Convert a top-left screen position into PDF page space.

    The annotation engine never flips axes; callers that capture taps on
    a rendered page use this before handing the placement over.

    Args:
        x: Horizontal offset from the left edge of the rendered page.
        y: Vertical offset from the top edge of the rendered page.
        page_index: Zero-based page the tap landed on.
        page_height: Height of the PDF page in points.
        view_scale: Rendered pixels per PDF point.
    """
    if view_scale <= 0:
        raise ValueError("view_scale must be positive")
    return Placement(
        x=x / view_scale,
        y=page_height - (y / view_scale),
        page_index=page_index,
    )
