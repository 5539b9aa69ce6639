"""
Signature placement: one math path from a viewer-relative box to both the
on-screen overlay rectangle and the PDF-space stamp placement.

Viewer space is top-left origin, y down, with width/height swapped at 90/270.
PDF space is bottom-left origin, y up, always the unrotated page box.
The merge result is centered so the stamper can rotate about (cx, cy).
"""
import math
from typing import Tuple

from config import CANONICAL_ROTATIONS, MIN_STAMP_DIMENSION
from geometry_context import normalize_rotation, round_points
from models import (
    MergeResult,
    OverlayResult,
    PageGeometry,
    PageSize,
    PlacementResult,
    RelativeBox,
    StampConfig,
    StampSize,
    StampStrategy,
    ValidationResult,
    ViewportSize,
)


def calculate_viewport_size(original: PageSize, rotation: int) -> ViewportSize:
    if rotation in (0, 180):
        return ViewportSize(width=original.width, height=original.height)
    return ViewportSize(width=original.height, height=original.width)


def _resolve_strategy(strategy) -> StampStrategy:
    try:
        return StampStrategy(strategy)
    except ValueError:
        raise ValueError(f"Unsupported stamp strategy: {strategy!r}") from None


def resolve_stamp_size(config: StampConfig, w_v: float, h_v: float) -> StampSize:
    strategy = _resolve_strategy(config.strategy)
    if strategy == StampStrategy.FIXED:
        if config.fixed_size is None:
            raise ValueError("Fixed stamp size not provided")
        return config.fixed_size
    return StampSize(w=w_v, h=h_v)


def transform_center_to_pdf(
    x_v: float,
    y_v: float,
    stamp: StampSize,
    original: PageSize,
    rotation: int,
) -> Tuple[float, float]:
    """
    Map the viewer-space stamp center to the unrotated PDF page.

    0°:   (c_vx, H - c_vy)
    90°:  (W - c_vy, H - c_vx)
    180°: (W - c_vx, c_vy)
    270°: (W - c_vy, H - c_vx)

    90° and 270° share a formula; the stamp is counter-rotated at draw time.
    """
    W, H = original.width, original.height
    c_vx = x_v + stamp.w / 2
    c_vy = y_v + stamp.h / 2

    if rotation == 0:
        return c_vx, H - c_vy
    elif rotation == 90:
        return W - c_vy, H - c_vx
    elif rotation == 180:
        return W - c_vx, c_vy
    elif rotation == 270:
        return W - c_vy, H - c_vx
    raise ValueError(f"Unsupported rotation: {rotation}")


def clamp_to_bounds(
    x: float, y: float, w: float, h: float, page_w: float, page_h: float
) -> Tuple[float, float, float, float]:
    """Shrink to fit the page (never below MIN_STAMP_DIMENSION), then pull inside."""
    w = max(MIN_STAMP_DIMENSION, min(w, page_w))
    h = max(MIN_STAMP_DIMENSION, min(h, page_h))
    x = max(0.0, min(x, page_w - w))
    y = max(0.0, min(y, page_h - h))
    return x, y, w, h


def validate_placement_input(
    geometry: PageGeometry, box: RelativeBox, config: StampConfig
) -> ValidationResult:
    """Check a placement request without raising. Callers decide what to do with a failure."""
    if geometry.page_number < 1:
        return ValidationResult(False, "Page number must be >= 1")
    if not (geometry.original.width > 0 and geometry.original.height > 0):
        return ValidationResult(False, "Page dimensions must be positive")
    if geometry.rotation not in CANONICAL_ROTATIONS:
        return ValidationResult(False, "Rotation must be 0, 90, 180, or 270")

    for value in (box.rx, box.ry, box.rw, box.rh):
        if not (0 <= value <= 1):
            return ValidationResult(False, "Relative coordinates must be in [0..1]")
    if box.rx + box.rw > 1 or box.ry + box.rh > 1:
        return ValidationResult(False, "Relative box extends beyond page bounds")

    try:
        strategy = _resolve_strategy(config.strategy)
    except ValueError:
        return ValidationResult(False, f"Unknown stamp strategy: {config.strategy}")
    if strategy == StampStrategy.FIXED:
        if config.fixed_size is None:
            return ValidationResult(False, "Fixed stamp size required when strategy is 'fixed'")
        if not (config.fixed_size.w > 0 and config.fixed_size.h > 0):
            return ValidationResult(False, "Fixed stamp size must be positive")

    return ValidationResult(True)


def place_signature(
    geometry: PageGeometry, box: RelativeBox, config: StampConfig
) -> PlacementResult:
    """
    Compute overlay and merge coordinates for one signature.

    Does not validate; out-of-range boxes are only rescued by the page clamp.
    Raises ValueError for a fixed strategy without a size, an unknown strategy,
    or a rotation the transform does not handle.
    """
    rotation = normalize_rotation(geometry.rotation)
    W = round_points(geometry.original.width)
    H = round_points(geometry.original.height)
    original = PageSize(width=W, height=H)

    viewport = calculate_viewport_size(original, rotation)

    x_v = box.rx * viewport.width
    y_v = box.ry * viewport.height
    w_v = box.rw * viewport.width
    h_v = box.rh * viewport.height

    stamp = resolve_stamp_size(config, w_v, h_v)

    cx, cy = transform_center_to_pdf(x_v, y_v, stamp, original, rotation)

    x, y, w, h = clamp_to_bounds(cx - stamp.w / 2, cy - stamp.h / 2, stamp.w, stamp.h, W, H)
    merge = MergeResult(cx=x + w / 2, cy=y + h / 2, x=x, y=y, w=w, h=h)

    log = (
        f"MERGE v3 | page={geometry.page_number} rot={rotation} | W={W} H={H} "
        f"| Wv={viewport.width} Hv={viewport.height} "
        f"| x_v={x_v:.3f} y_v={y_v:.3f} w_v={w_v:.3f} h_v={h_v:.3f} "
        f"| center=({merge.cx:.3f},{merge.cy:.3f}) "
        f"| stamp={stamp.w:g}x{stamp.h:g} | mode=center-rotate"
    )

    overlay = OverlayResult(viewport=viewport, x_v=x_v, y_v=y_v, w_v=w_v, h_v=h_v)
    return PlacementResult(overlay=overlay, merge=merge, log=log)


def relative_box_from_viewer(
    x: float, y: float, w: float, h: float, geometry: PageGeometry, scale: float = 1.0
) -> RelativeBox:
    """
    Turn a rectangle captured on screen (top-left origin, at zoom `scale`)
    into fractions of the viewer viewport.
    """
    if not scale > 0 or math.isinf(scale):
        raise ValueError(f"Zoom scale must be positive, got {scale}")
    rotation = normalize_rotation(geometry.rotation)
    original = PageSize(
        width=round_points(geometry.original.width),
        height=round_points(geometry.original.height),
    )
    viewport = calculate_viewport_size(original, rotation)
    if viewport.width <= 0 or viewport.height <= 0:
        raise ValueError("Page dimensions must be positive")
    return RelativeBox(
        rx=(x / scale) / viewport.width,
        ry=(y / scale) / viewport.height,
        rw=(w / scale) / viewport.width,
        rh=(h / scale) / viewport.height,
    )
