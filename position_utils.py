import math
from typing import Tuple


def fit_image_in_box(
    image_w: float, image_h: float, box_w: float, box_h: float
) -> Tuple[float, float, float, float]:
    """
    Scale an image to fit inside a box without stretching, centered.

    Args:
        image_w (float): Source image width (px or pt, only the ratio matters).
        image_h (float): Source image height.
        box_w (float): Target box width in points.
        box_h (float): Target box height in points.

    Returns:
        (w, h, offset_x, offset_y): fitted size and its offset from the box's
        lower-left corner. Degenerate images return the box unchanged.
    """
    if image_w <= 0 or image_h <= 0 or box_w <= 0 or box_h <= 0:
        return box_w, box_h, 0.0, 0.0

    image_ratio = image_w / image_h
    box_ratio = box_w / box_h

    if image_ratio > box_ratio:
        w = box_w
        h = box_w / image_ratio
    else:
        h = box_h
        w = box_h * image_ratio

    return w, h, (box_w - w) / 2, (box_h - h) / 2


def is_valid_stamp_rect(x: float, y: float, w: float, h: float) -> bool:
    """Positive, finite size at a finite position."""
    values = (x, y, w, h)
    if any(math.isnan(v) or math.isinf(v) for v in values):
        return False
    return w > 0 and h > 0
