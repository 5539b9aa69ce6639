import math
import re
from typing import List, Optional, Tuple

import pikepdf
from pikepdf import Name

from config import (
    CANONICAL_ROTATIONS,
    CORRECT_SCANNED_ORIENTATION,
    SCANNER_KEYWORDS,
    SCAN_CONFIDENCE_THRESHOLD,
    SCAN_FIELD_WEIGHTS,
    SCAN_MIXED_ORIENTATION_WEIGHT,
    SCAN_SIZE_TOLERANCE,
    STANDARD_PAGE_SIZES,
)
from logger import logger, track_warning
from models import PageGeometry, PageSize

_INHERITABLE = ("MediaBox", "CropBox", "Rotate")
_SCANNER_PATTERN = re.compile(
    r"\b(?:" + "|".join(re.escape(k) for k in SCANNER_KEYWORDS) + r")\b", re.IGNORECASE
)


def round_points(value: float) -> int:
    """四舍五入到最近的整数点（消除 611.99998 这类浮点抖动），不截断。"""
    return int(math.floor(float(value) + 0.5))


def normalize_rotation(rotation) -> int:
    """
    将任意旋转角规范化为 0/90/180/270。
    无法规范化的值（如 45、非数字）回退为 0 并记录警告。
    """
    try:
        value = float(rotation)
    except (TypeError, ValueError):
        track_warning("Rotation", f"Invalid rotation {rotation!r}, defaulting to 0°")
        return 0
    if math.isnan(value) or math.isinf(value):
        track_warning("Rotation", f"Invalid rotation {rotation!r}, defaulting to 0°")
        return 0
    normalized = ((value % 360) + 360) % 360
    if normalized in CANONICAL_ROTATIONS:
        return int(normalized)
    track_warning("Rotation", f"Invalid rotation {rotation!r}, defaulting to 0°")
    return 0


def _get_inherited(page_obj, key: str):
    """读取页面属性，必要时沿 /Parent 链向上查找可继承属性。"""
    node = page_obj
    seen = 0
    while node is not None and seen < 64:
        value = node.get(Name(f'/{key}'))
        if value is not None:
            return value
        if key not in _INHERITABLE:
            return None
        node = node.get(Name('/Parent'))
        seen += 1
    return None


def get_page_box(page: pikepdf.Page, name: str) -> Optional[Tuple[float, float, float, float]]:
    """安全地获取页面的尺寸框，返回一个元组或None。"""
    box = _get_inherited(page.obj, name)
    if box is not None and len(box) == 4:
        return tuple(float(v) for v in box)
    return None


def _near(a: float, b: float, tolerance: float = SCAN_SIZE_TOLERANCE) -> bool:
    return abs(a - b) <= tolerance


def is_landscape_standard_size(width: float, height: float) -> bool:
    """宽 > 高 且接近某一标准纸张横放尺寸（Letter/A4/Legal）。"""
    if width <= height:
        return False
    for portrait_w, portrait_h in STANDARD_PAGE_SIZES.values():
        if _near(width, portrait_h) and _near(height, portrait_w):
            return True
    return False


def _text_has_scanner_keyword(text) -> bool:
    if text is None:
        return False
    # 整词匹配：iTextSharp 不应命中 sharp
    return _SCANNER_PATTERN.search(str(text)) is not None


def detect_scanned_document(pdf: pikepdf.Pdf) -> bool:
    """
    根据文档信息（Creator/Producer/Title/Subject）中的扫描软件关键词
    以及多页文档中混合的横竖方向，估计该文档是否为扫描件。
    """
    confidence = 0.0
    indicators = []
    try:
        info = pdf.trailer.get(Name('/Info'))
        if info is not None:
            for field_name, weight in SCAN_FIELD_WEIGHTS.items():
                value = info.get(Name(field_name))
                if _text_has_scanner_keyword(value):
                    indicators.append(f"{field_name[1:]}: {value}")
                    confidence += weight

        portrait = landscape = 0
        for page in pdf.pages:
            box = get_page_box(page, 'CropBox') or get_page_box(page, 'MediaBox')
            if not box:
                continue
            if abs(box[2] - box[0]) > abs(box[3] - box[1]):
                landscape += 1
            else:
                portrait += 1
        if len(pdf.pages) > 1 and portrait and landscape:
            indicators.append(f"Mixed orientations: {portrait} portrait, {landscape} landscape")
            confidence += SCAN_MIXED_ORIENTATION_WEIGHT
    except Exception as e:
        logger.warning(f"[Scan Detect] Failed to inspect document: {e}")
        return False

    is_scanned = confidence >= SCAN_CONFIDENCE_THRESHOLD
    if is_scanned:
        logger.info(f"[Scan Detect] Scanned document (confidence={confidence:.2f}): {'; '.join(indicators)}")
    return is_scanned


def build_page_geometry(
    page: pikepdf.Page,
    page_number: int,
    scanned_document: bool = False,
    correct_orientation: bool = CORRECT_SCANNED_ORIENTATION,
) -> PageGeometry:
    """
    根据 pikepdf.Page 对象构建 PageGeometry。

    Args:
        page: pikepdf 页面对象。
        page_number: 页码（从 1 开始）。
        scanned_document: 所属文档是否被判定为扫描件。
        correct_orientation: 是否对扫描件方向不一致进行修正。

    Returns:
        尺寸已取整、旋转已规范化（必要时已修正）的 PageGeometry。
    """
    media_box = get_page_box(page, 'MediaBox')
    crop_box = get_page_box(page, 'CropBox')

    # MediaBox 是必须的，如果不存在则无法继续
    if not media_box and not crop_box:
        raise ValueError(f"无法获取第 {page_number} 页的 MediaBox，无法构建几何信息。")

    active_box = crop_box or media_box
    x0, x1 = sorted((active_box[0], active_box[2]))
    y0, y1 = sorted((active_box[1], active_box[3]))
    width = round_points(x1 - x0)
    height = round_points(y1 - y0)

    raw_rotate = _get_inherited(page.obj, 'Rotate')
    try:
        declared = int(raw_rotate) if raw_rotate is not None else 0
    except (TypeError, ValueError):
        declared = 0
    rotation = normalize_rotation(raw_rotate if raw_rotate is not None else 0)

    corrected = False
    if (
        correct_orientation
        and scanned_document
        and rotation == 0
        and is_landscape_standard_size(width, height)
    ):
        # 扫描件：横放的标准纸张且 /Rotate=0，按竖版显示
        rotation = 90
        corrected = True
        logger.info(f"[Geometry] Page {page_number}: scanned orientation corrected {width}x{height} rot 0 -> 90")

    return PageGeometry(
        page_number=page_number,
        original=PageSize(width=width, height=height),
        rotation=rotation,
        origin=(x0, y0),
        declared_rotation=declared,
        scanned_document=scanned_document,
        orientation_corrected=corrected,
    )


def extract_document_geometry(
    pdf: pikepdf.Pdf,
    correct_orientation: bool = CORRECT_SCANNED_ORIENTATION,
) -> List[PageGeometry]:
    """扫描件检测只做一次，然后为每一页构建几何信息。"""
    scanned = detect_scanned_document(pdf)
    geometries = []
    for index, page in enumerate(pdf.pages):
        geometries.append(build_page_geometry(
            page, index + 1, scanned_document=scanned, correct_orientation=correct_orientation
        ))
    logger.debug(f"[Geometry] Extracted {len(geometries)} pages (scanned={scanned})")
    return geometries


def load_document_geometry(
    path: str,
    correct_orientation: bool = CORRECT_SCANNED_ORIENTATION,
) -> List[PageGeometry]:
    with pikepdf.open(path) as pdf:
        return extract_document_geometry(pdf, correct_orientation=correct_orientation)
