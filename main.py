# main.py
import sys
import os
import json
import argparse
from dataclasses import asdict

from logger import logger, get_error_summary, reset_error_tracking
from config import load_settings, apply_defaults
from models import PageGeometry, PageSize, RelativeBox, SignatureStampRequest, StampConfig, StampSize


def _add_box_arguments(parser):
    parser.add_argument("--rx", type=float, required=True, help="Left edge as a fraction of viewer width")
    parser.add_argument("--ry", type=float, required=True, help="Top edge as a fraction of viewer height")
    parser.add_argument("--rw", type=float, required=True, help="Width as a fraction of viewer width")
    parser.add_argument("--rh", type=float, required=True, help="Height as a fraction of viewer height")
    parser.add_argument("--strategy", choices=["fixed", "relative"], help="Stamp sizing strategy")
    parser.add_argument("--stamp-width", type=float, help="Fixed stamp width (pt)")
    parser.add_argument("--stamp-height", type=float, help="Fixed stamp height (pt)")


def _stamp_config_from_args(args, settings: dict) -> StampConfig:
    strategy = args.strategy or settings["stamp_strategy"]
    if strategy != "fixed":
        return StampConfig(strategy=strategy)
    width = args.stamp_width if args.stamp_width is not None else settings["fixed_stamp_width"]
    height = args.stamp_height if args.stamp_height is not None else settings["fixed_stamp_height"]
    return StampConfig(strategy=strategy, fixed_size=StampSize(w=width, h=height))


def default_output_path(input_path: str, suffix: str) -> str:
    base, ext = os.path.splitext(input_path)
    return f"{base}{suffix}{ext or '.pdf'}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="signdeck", description="SignDeck signature placement")
    sub = parser.add_subparsers(dest="command", required=True)

    inspect_p = sub.add_parser("inspect", help="Print page geometry of a PDF as JSON")
    inspect_p.add_argument("pdf", help="PDF file")
    inspect_p.add_argument("--no-correct-orientation", action="store_true", help="Disable scanned-document orientation correction")

    place_p = sub.add_parser("place", help="Compute overlay and merge coordinates")
    place_p.add_argument("--width", type=float, required=True, help="Unrotated page width (pt)")
    place_p.add_argument("--height", type=float, required=True, help="Unrotated page height (pt)")
    place_p.add_argument("--rotation", type=int, default=0, help="Page rotation (degrees clockwise)")
    place_p.add_argument("--page", type=int, default=1, help="Page number (1-based)")
    _add_box_arguments(place_p)

    stamp_p = sub.add_parser("stamp", help="Stamp a signature image into a PDF")
    stamp_p.add_argument("input", help="Source PDF")
    stamp_p.add_argument("output", nargs="?", help="Output PDF (default: input name plus the output_suffix setting)")
    stamp_p.add_argument("--image", required=True, help="Signature image (PNG/JPEG)")
    stamp_p.add_argument("--page", type=int, default=1, help="Page number (1-based)")
    stamp_p.add_argument("--no-preserve-aspect", action="store_true", help="Stretch the image to the stamp box")
    stamp_p.add_argument("--no-correct-orientation", action="store_true", help="Disable scanned-document orientation correction")
    _add_box_arguments(stamp_p)
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    settings = apply_defaults(load_settings())

    if args.command == "inspect":
        from geometry_context import load_document_geometry
        correct = settings["correct_scanned_orientation"] and not args.no_correct_orientation
        try:
            geometries = load_document_geometry(args.pdf, correct_orientation=correct)
        except Exception as e:
            logger.error(f"无法读取几何信息: {args.pdf} - {e}")
            return 1
        print(json.dumps([asdict(g) for g in geometries], ensure_ascii=False, indent=2))
        return 0

    if args.command == "place":
        from signature_placement import place_signature, validate_placement_input
        geometry = PageGeometry(
            page_number=args.page,
            original=PageSize(width=args.width, height=args.height),
            rotation=args.rotation,
            declared_rotation=args.rotation,
        )
        box = RelativeBox(rx=args.rx, ry=args.ry, rw=args.rw, rh=args.rh)
        config = _stamp_config_from_args(args, settings)
        check = validate_placement_input(geometry, box, config)
        if not check.valid:
            logger.error(f"输入无效: {check.error}")
            return 2
        result = place_signature(geometry, box, config)
        logger.info(result.log)
        print(json.dumps(asdict(result), ensure_ascii=False, indent=2))
        return 0

    if args.command == "stamp":
        from pdf_stamper import stamp_signatures
        if not os.path.isfile(args.image):
            logger.error(f"签名图像不存在: {args.image}")
            return 1
        with open(args.image, "rb") as f:
            image = f.read()
        request = SignatureStampRequest(
            page_number=args.page,
            box=RelativeBox(rx=args.rx, ry=args.ry, rw=args.rw, rh=args.rh),
            image=image,
            stamp_config=_stamp_config_from_args(args, settings),
            preserve_aspect=settings["preserve_aspect"] and not args.no_preserve_aspect,
        )
        correct = settings["correct_scanned_orientation"] and not args.no_correct_orientation
        output = args.output or default_output_path(args.input, settings["output_suffix"])
        reset_error_tracking()
        result = stamp_signatures(args.input, output, [request], correct_orientation=correct)
        summary = get_error_summary()
        if summary["total_errors"] or summary["total_warnings"]:
            logger.info(f"错误统计: {summary}")
        if not result.success:
            logger.error(f"签名失败: {result.error}")
            return 1
        if result.skipped:
            for label, reason in result.skipped:
                logger.error(f"签名 {label} 未写入: {reason}")
            return 1
        logger.info(f"签名完成: {result.output}")
        return 0

    return 1


if __name__ == "__main__":
    sys.exit(main())
