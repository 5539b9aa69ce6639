import math

import pytest

from config import MIN_STAMP_DIMENSION
from geometry_context import normalize_rotation
from logger import get_error_summary, reset_error_tracking
from models import PageGeometry, PageSize, RelativeBox, StampConfig, StampSize
from signature_placement import (
    place_signature,
    relative_box_from_viewer,
    transform_center_to_pdf,
    validate_placement_input,
)

W, H = 612, 792
FIXED = StampConfig(strategy="fixed", fixed_size=StampSize(w=150, h=75))
RELATIVE = StampConfig(strategy="relative")


def page(rotation=0, width=W, height=H, number=1):
    return PageGeometry(page_number=number, original=PageSize(width, height), rotation=rotation)


def expected_center(rotation, x_v, y_v, w, h):
    c_vx, c_vy = x_v + w / 2, y_v + h / 2
    return {
        0: (c_vx, H - c_vy),
        90: (W - c_vy, H - c_vx),
        180: (W - c_vx, c_vy),
        270: (W - c_vy, H - c_vx),
    }[rotation]


# --- viewport & overlay ---

@pytest.mark.parametrize("rotation,viewport", [(0, (612, 792)), (90, (792, 612)), (180, (612, 792)), (270, (792, 612))])
def test_viewport_swaps_for_sideways_pages(rotation, viewport):
    result = place_signature(page(rotation), RelativeBox(0.1, 0.1, 0.2, 0.1), RELATIVE)
    assert (result.overlay.viewport.width, result.overlay.viewport.height) == viewport


def test_full_width_signature_unrotated():
    result = place_signature(page(0), RelativeBox(0, 0, 1, 0.1), RELATIVE)
    assert result.overlay.w_v == pytest.approx(612)
    assert result.overlay.h_v == pytest.approx(79.2)
    assert result.merge.cx == pytest.approx(306)
    assert result.merge.cy == pytest.approx(752.4)


# --- rotation coverage ---

@pytest.mark.parametrize("rotation", [0, 90, 180, 270])
def test_center_follows_rotation_formula(rotation):
    box = RelativeBox(0.1, 0.1, 0.2, 0.1)
    result = place_signature(page(rotation), box, RELATIVE)
    vp = result.overlay.viewport
    x_v, y_v = box.rx * vp.width, box.ry * vp.height
    w, h = box.rw * vp.width, box.rh * vp.height

    cx, cy = expected_center(rotation, x_v, y_v, w, h)
    assert result.merge.cx == pytest.approx(cx)
    assert result.merge.cy == pytest.approx(cy)
    assert result.merge.w == pytest.approx(w)
    assert result.merge.h == pytest.approx(h)


def test_rotation_zero_center_y():
    result = place_signature(page(0), RelativeBox(0.1, 0.1, 0.2, 0.1), RELATIVE)
    assert result.merge.cy == pytest.approx(792 - 118.8)


def test_rotation_90_fixed_stamp():
    result = place_signature(page(90), RelativeBox(0.5, 0.5, 0.2, 0.1), FIXED)
    assert result.merge.cx == pytest.approx(268.5)
    assert result.merge.cy == pytest.approx(321)
    assert result.merge.x == pytest.approx(193.5)
    assert result.merge.y == pytest.approx(283.5)


def test_rotation_90_and_270_share_mapping():
    box = RelativeBox(0.5, 0.5, 0.2, 0.1)
    a = place_signature(page(90), box, FIXED)
    b = place_signature(page(270), box, FIXED)
    assert (a.merge.cx, a.merge.cy) == (b.merge.cx, b.merge.cy)


def test_rotation_180_fixed_stamp():
    result = place_signature(page(180), RelativeBox(0.75, 0.75, 0.2, 0.1), FIXED)
    assert result.merge.x == pytest.approx(3)
    assert result.merge.y == pytest.approx(594)


def test_rotation_zero_fixed_stamp():
    result = place_signature(page(0), RelativeBox(0.25, 0.25, 0.2, 0.1), FIXED)
    assert result.merge.x == pytest.approx(153)
    assert result.merge.y == pytest.approx(519)
    assert (result.merge.w, result.merge.h) == (150, 75)


# --- invariants ---

@pytest.mark.parametrize("rx,ry,rw,rh", [(0.05, 0.1, 0.1, 0.05), (0.3, 0.6, 0.25, 0.08), (0.0, 0.0, 0.4, 0.2)])
def test_round_trip_at_zero_rotation(rx, ry, rw, rh):
    result = place_signature(page(0), RelativeBox(rx, ry, rw, rh), RELATIVE)
    m = result.merge
    x_v = m.x
    y_v = H - (m.y + m.h)
    assert x_v == pytest.approx(result.overlay.x_v)
    assert y_v == pytest.approx(result.overlay.y_v)
    assert m.w == pytest.approx(result.overlay.w_v)
    assert m.h == pytest.approx(result.overlay.h_v)


@pytest.mark.parametrize("rotation", [0, 90, 180, 270])
@pytest.mark.parametrize("box", [
    RelativeBox(0.1, 0.1, 0.2, 0.1),
    RelativeBox(0.9, 0.9, 0.1, 0.1),
    RelativeBox(0.0, 0.95, 0.5, 0.05),
    RelativeBox(0.95, 0.0, 0.2, 0.3),
])
@pytest.mark.parametrize("config", [FIXED, RELATIVE])
def test_center_and_corner_agree(rotation, box, config):
    m = place_signature(page(rotation), box, config).merge
    assert m.x == pytest.approx(m.cx - m.w / 2)
    assert m.y == pytest.approx(m.cy - m.h / 2)
    assert 0 <= m.x <= W - m.w + 1e-9
    assert 0 <= m.y <= H - m.h + 1e-9


def test_box_past_right_edge_is_clamped():
    m = place_signature(page(0), RelativeBox(0.95, 0.1, 0.2, 0.1), RELATIVE).merge
    assert m.x >= 0
    assert m.w <= W - m.x + 1e-9
    assert m.w > 0 and m.h > 0


def test_oversized_fixed_stamp_shrinks_to_page():
    config = StampConfig(strategy="fixed", fixed_size=StampSize(w=1000, h=1000))
    m = place_signature(page(0), RelativeBox(0.5, 0.5, 0.1, 0.1), config).merge
    assert (m.x, m.y, m.w, m.h) == (0, 0, W, H)


def test_zero_size_box_keeps_minimum_dimension():
    m = place_signature(page(0), RelativeBox(0.5, 0.5, 0.0, 0.0), RELATIVE).merge
    assert m.w == MIN_STAMP_DIMENSION
    assert m.h == MIN_STAMP_DIMENSION


# --- rotation normalization & jitter ---

@pytest.mark.parametrize("raw", [450, 90, -270])
def test_rotation_inputs_normalize_to_90(raw):
    assert normalize_rotation(raw) == 90
    a = place_signature(page(raw), RelativeBox(0.2, 0.2, 0.2, 0.1), FIXED)
    b = place_signature(page(90), RelativeBox(0.2, 0.2, 0.2, 0.1), FIXED)
    assert a.merge == b.merge
    assert "rot=90" in a.log


def test_non_right_angle_rotation_falls_back_to_zero_with_warning():
    reset_error_tracking()
    assert normalize_rotation(45) == 0
    assert get_error_summary()["warning_types"].get("Rotation") == 1
    result = place_signature(page(45), RelativeBox(0.1, 0.1, 0.2, 0.1), FIXED)
    assert "rot=0" in result.log


def test_page_size_jitter_is_rounded():
    result = place_signature(page(0, width=611.99998, height=791.999978), RelativeBox(0.5, 0.5, 0.2, 0.1), FIXED)
    assert result.overlay.viewport.width == 612
    assert result.overlay.viewport.height == 792
    assert result.merge.y == pytest.approx(792 - (396 + 75))


def test_rounding_is_half_up_not_truncation():
    result = place_signature(page(0, width=611.5, height=791.6), RelativeBox(0.1, 0.1, 0.1, 0.1), FIXED)
    assert result.overlay.viewport.width == 612
    assert result.overlay.viewport.height == 792


# --- contract violations ---

def test_fixed_strategy_without_size_raises():
    with pytest.raises(ValueError, match="Fixed stamp size not provided"):
        place_signature(page(0), RelativeBox(0.1, 0.1, 0.2, 0.1), StampConfig(strategy="fixed"))


def test_unknown_strategy_raises():
    with pytest.raises(ValueError, match="Unsupported stamp strategy"):
        place_signature(page(0), RelativeBox(0.1, 0.1, 0.2, 0.1), StampConfig(strategy="stretchy"))


def test_transform_rejects_unsupported_rotation():
    with pytest.raises(ValueError, match="Unsupported rotation: 45"):
        transform_center_to_pdf(0, 0, StampSize(10, 10), PageSize(W, H), 45)


# --- log ---

def test_log_line_describes_placement():
    result = place_signature(page(270), RelativeBox(0.7, 0.7, 0.2, 0.1), FIXED)
    log = result.log
    assert log.startswith("MERGE v3 | page=1 rot=270")
    assert "W=612 H=792" in log
    assert "Wv=792 Hv=612" in log
    assert f"x_v={result.overlay.x_v:.3f}" in log
    assert f"center=({result.merge.cx:.3f},{result.merge.cy:.3f})" in log
    assert "stamp=150x75" in log
    assert "\n" not in log


# --- validation ---

@pytest.mark.parametrize("geometry,box,config,error", [
    (page(number=0), RelativeBox(0.5, 0.5, 0.2, 0.1), FIXED, "Page number must be >= 1"),
    (page(width=-612), RelativeBox(0.5, 0.5, 0.2, 0.1), FIXED, "Page dimensions must be positive"),
    (page(45), RelativeBox(0.5, 0.5, 0.2, 0.1), FIXED, "Rotation must be 0, 90, 180, or 270"),
    (page(450), RelativeBox(0.5, 0.5, 0.2, 0.1), FIXED, "Rotation must be 0, 90, 180, or 270"),
    (page(), RelativeBox(1.5, 0.5, 0.2, 0.1), FIXED, "Relative coordinates must be in [0..1]"),
    (page(), RelativeBox(-0.1, 0.5, 0.2, 0.1), FIXED, "Relative coordinates must be in [0..1]"),
    (page(), RelativeBox(math.nan, 0.5, 0.2, 0.1), FIXED, "Relative coordinates must be in [0..1]"),
    (page(), RelativeBox(0.9, 0.5, 0.3, 0.1), FIXED, "Relative box extends beyond page bounds"),
    (page(), RelativeBox(0.5, 0.95, 0.2, 0.1), FIXED, "Relative box extends beyond page bounds"),
    (page(), RelativeBox(0.5, 0.5, 0.2, 0.1), StampConfig(strategy="fixed"),
     "Fixed stamp size required when strategy is 'fixed'"),
    (page(), RelativeBox(0.5, 0.5, 0.2, 0.1), StampConfig(strategy="fixed", fixed_size=StampSize(-150, 75)),
     "Fixed stamp size must be positive"),
    (page(), RelativeBox(0.5, 0.5, 0.2, 0.1), StampConfig(strategy="stretchy"), "Unknown stamp strategy: stretchy"),
])
def test_validation_rejects_malformed_input(geometry, box, config, error):
    result = validate_placement_input(geometry, box, config)
    assert result.valid is False
    assert result.error == error


@pytest.mark.parametrize("rotation,config", [(270, FIXED), (90, RELATIVE), (0, RELATIVE)])
def test_validation_accepts_good_input(rotation, config):
    result = validate_placement_input(page(rotation), RelativeBox(0.5, 0.5, 0.2, 0.1), config)
    assert result.valid is True
    assert result.error is None


def test_validation_accepts_box_touching_edges():
    assert validate_placement_input(page(), RelativeBox(0, 0, 1, 1), RELATIVE).valid


# --- capture side ---

def test_relative_box_from_zoomed_viewer():
    box = relative_box_from_viewer(792, 612, 158.4, 61.2, page(90), scale=2.0)
    assert box.rx == pytest.approx(0.5)
    assert box.ry == pytest.approx(0.5)
    assert box.rw == pytest.approx(0.1)
    assert box.rh == pytest.approx(0.05)


def test_relative_box_round_trips_through_overlay():
    result = place_signature(page(180), RelativeBox(0.3, 0.4, 0.2, 0.1), RELATIVE)
    o = result.overlay
    box = relative_box_from_viewer(o.x_v, o.y_v, o.w_v, o.h_v, page(180))
    assert (box.rx, box.ry, box.rw, box.rh) == pytest.approx((0.3, 0.4, 0.2, 0.1))


@pytest.mark.parametrize("scale", [0, -1.5])
def test_relative_box_rejects_bad_zoom(scale):
    with pytest.raises(ValueError):
        relative_box_from_viewer(10, 10, 10, 10, page(0), scale=scale)
