# pdf_stamper.py
from io import BytesIO
from typing import Dict, List, Sequence, Tuple

import pikepdf
from PIL import Image
from PyPDF2 import PdfReader, PdfWriter
from PyPDF2.errors import PdfReadError
from PyPDF2.generic import NameObject, NumberObject
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from config import CORRECT_SCANNED_ORIENTATION
from geometry_context import extract_document_geometry
from logger import logger, log_performance, track_error
from models import (
    MergeResult,
    PageGeometry,
    SignatureStampRequest,
    StampResult,
)
from position_utils import fit_image_in_box, is_valid_stamp_rect
from signature_placement import place_signature, validate_placement_input


def _request_label(request: SignatureStampRequest, index: int) -> str:
    return request.request_id or str(index)


def build_stamp_overlay(
    page_size: Tuple[float, float],
    image_bytes: bytes,
    merge: MergeResult,
    rotation: int,
    origin: Tuple[float, float] = (0.0, 0.0),
    preserve_aspect: bool = True,
) -> bytes:
    """
    生成与目标页同坐标系的单页 Overlay PDF：
    以 (cx, cy) 为中心旋转 -rotation 度后绘制签名图像，使其在页面显示时保持正向。
    图像只在 merge.w x merge.h 框内等比缩放，不会超出已裁剪的签名框。
    """
    sig = Image.open(BytesIO(image_bytes)).convert("RGBA")

    w, h = merge.w, merge.h
    if preserve_aspect:
        w, h, _, _ = fit_image_in_box(sig.width, sig.height, merge.w, merge.h)
    if not is_valid_stamp_rect(merge.cx, merge.cy, w, h):
        raise ValueError(f"Invalid stamp rectangle: center=({merge.cx},{merge.cy}) size={w}x{h}")

    ox, oy = origin
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=(ox + page_size[0], oy + page_size[1]))
    c.saveState()
    c.translate(ox + merge.cx, oy + merge.cy)
    if rotation:
        c.rotate(-rotation)
    # 中心对齐：图像中心与旋转中心重合
    c.drawImage(ImageReader(sig), -w / 2, -h / 2, width=w, height=h, mask="auto")
    c.restoreState()
    c.save()
    return buf.getvalue()


def validate_stamp_requests(
    requests: Sequence[SignatureStampRequest],
    geometries: Sequence[PageGeometry],
) -> Tuple[List[Tuple[int, SignatureStampRequest]], List[Tuple[str, str]]]:
    """按页码、图像数据与放置参数筛选请求，返回 ([(序号, 请求)], [(标识, 原因)])。"""
    valid = []
    invalid = []
    total = len(geometries)
    for index, request in enumerate(requests):
        label = _request_label(request, index)
        if request.page_number < 1 or request.page_number > total:
            invalid.append((label, f"Page {request.page_number} does not exist"))
            continue
        if not request.image:
            invalid.append((label, "Missing image data"))
            continue
        check = validate_placement_input(
            geometries[request.page_number - 1], request.box, request.stamp_config
        )
        if not check.valid:
            invalid.append((label, check.error))
            continue
        valid.append((index, request))
    return valid, invalid


@log_performance("stamp_signatures", context="Stamp")
def stamp_signatures(
    input_path: str,
    output_path: str,
    requests: Sequence[SignatureStampRequest],
    correct_orientation: bool = CORRECT_SCANNED_ORIENTATION,
) -> StampResult:
    """
    将签名图像写入 PDF。几何信息由 pikepdf 读取一次，
    每个签名先经 place_signature 计算中心坐标，再以 reportlab 覆盖层合并（PyPDF2）。
    无效请求被跳过并记录在结果中；文档级错误返回 success=False。
    """
    result = StampResult(input=input_path)
    try:
        with pikepdf.open(input_path) as pdf:
            geometries = extract_document_geometry(pdf, correct_orientation=correct_orientation)

        valid, invalid = validate_stamp_requests(requests, geometries)
        for label, reason in invalid:
            logger.warning(f"[Stamp] Skipping signature {label}: {reason}")
        result.skipped.extend(invalid)

        reader = PdfReader(input_path)
        if reader.is_encrypted:
            raise PdfReadError("File is encrypted. Please unlock it first.")

        by_page: Dict[int, List[Tuple[int, SignatureStampRequest]]] = {}
        for index, request in valid:
            by_page.setdefault(request.page_number, []).append((index, request))

        writer = PdfWriter()
        for index, page in enumerate(reader.pages):
            geometry = geometries[index]
            for request_index, request in by_page.get(geometry.page_number, []):
                label = _request_label(request, request_index)
                try:
                    placement = place_signature(geometry, request.box, request.stamp_config)
                    logger.debug(placement.log)
                    overlay_pdf = build_stamp_overlay(
                        (geometry.original.width, geometry.original.height),
                        request.image,
                        placement.merge,
                        geometry.rotation,
                        origin=geometry.origin,
                        preserve_aspect=request.preserve_aspect,
                    )
                    page.merge_page(PdfReader(BytesIO(overlay_pdf)).pages[0])
                    result.applied.append(placement)
                except Exception as e:
                    track_error("Stamp", f"Failed to apply signature {label} on page {geometry.page_number}: {e}", e)
                    result.skipped.append((label, str(e)))
            if geometry.orientation_corrected:
                page[NameObject("/Rotate")] = NumberObject(geometry.rotation)
            writer.add_page(page)

        with open(output_path, "wb") as f:
            writer.write(f)
        result.output = output_path
        logger.info(
            f"[Stamp] {input_path} -> {output_path}: "
            f"{len(result.applied)} applied, {len(result.skipped)} skipped"
        )
    except (PdfReadError, Exception) as e:
        track_error("Stamp", f"Failed to stamp {input_path}: {e}", e)
        result.success = False
        result.error = str(e)
        result.output = None
    return result
