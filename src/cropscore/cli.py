"""
Command line front end.

Usage:
  cropscore photo.jpg --width 250 --height 250
  cropscore photo.jpg -W 1080 -H 1440 --output cover.jpg
  cropscore portrait.jpg -W 400 -H 400 --faces --all --top 5
  python -m cropscore photo.jpg -W 300 --report crops.json
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

from cropscore.analyzer import SmartCropAnalyzer, crop_image
from cropscore.config import DEFAULT_CONFIG, FACE_DETECT_CONFIG
from cropscore.errors import CropScoreError
from cropscore.geometry import Crop, Rectangle
from cropscore.imaging import load_image


def write_json_report(
    report_path: Path,
    image_path: Path,
    width: int,
    height: int,
    best: Rectangle,
    crops: list[Crop],
) -> Path:
    """Write the chosen crop and every scored candidate, best first."""
    ranked = sorted(crops, key=lambda c: c.total, reverse=True)
    payload = {
        "image": str(image_path),
        "target": {"width": width, "height": height},
        "best_crop_xyxy": list(best.as_box()),
        "candidates": [crop.as_dict() for crop in ranked],
    }
    report_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return report_path


def run(
    image_path: str,
    width: int,
    height: int,
    output_path: Optional[str] = None,
    faces: bool = False,
    classifier: Optional[str] = None,
    show_all: bool = False,
    top_n: int = 10,
    report_path: Optional[str] = None,
    debug: bool = False,
) -> Rectangle:
    src = Path(image_path).expanduser()
    if not src.is_file():
        raise FileNotFoundError(f"Input image not found: {src}")

    config = FACE_DETECT_CONFIG if faces else DEFAULT_CONFIG
    if classifier:
        config = config.replace(face_detect_classifier_file=classifier)

    pixels = load_image(src)
    analyzer = SmartCropAnalyzer(config, debug=debug)

    best = analyzer.find_best_crop(pixels, width, height)
    x, y, w, h = best.as_xywh()
    print(f"✂️  Best crop for {src.name}: x={x} y={y} w={w} h={h}")

    if show_all or report_path:
        crops = analyzer.find_all_crops(pixels, width, height)
        if show_all:
            ranked = sorted(crops, key=lambda c: c.total, reverse=True)[:top_n]
            print(f"  📊 Top {len(ranked)} of {len(crops)} candidates:")
            for rank, crop in enumerate(ranked, start=1):
                print(
                    f"  #{rank}: {crop.rect.as_box()} total={crop.total:.5f} "
                    f"(detail={crop.score.detail:.2f}, skin={crop.score.skin:.2f}, "
                    f"sat={crop.score.saturation:.2f}, face={crop.score.face:.2f})"
                )
        if report_path:
            dest = write_json_report(Path(report_path), src, width, height, best, crops)
            print(f"  📋 JSON Report: {dest}")

    if output_path:
        dest = Path(output_path)
        cropped = crop_image(pixels, best)
        if dest.suffix.lower() in {".jpg", ".jpeg"}:
            cropped = cropped.convert("RGB")
        cropped.save(dest)
        print(f"  ✅ Saved crop → {dest}")

    return best


class _HelpOnErrorArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that prints full help text on parse errors."""

    def error(self, message):
        self.print_help(sys.stderr)
        self.exit(2, f"\n{self.prog}: error: {message}\n")


def main():
    parser = _HelpOnErrorArgumentParser(
        prog="cropscore",
        description="Find the crop of an image that best keeps its interesting content.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s photo.jpg --width 250 --height 250
  %(prog)s photo.jpg -W 1080 -H 1440 --output cover.jpg
  %(prog)s portrait.jpg -W 400 -H 400 --faces --all --top 5
        """,
    )
    parser.add_argument("image", help="Path to the image to analyse")
    parser.add_argument("--width", "-W", type=int, default=0, help="Target width (0 = any)")
    parser.add_argument("--height", "-H", type=int, default=0, help="Target height (0 = any)")
    parser.add_argument("--output", "-o", default=None, help="Write the cropped image here")
    parser.add_argument(
        "--faces",
        action="store_true",
        help="Use the face-detection preset (Haar cascade) when scoring",
    )
    parser.add_argument(
        "--classifier",
        default=None,
        help="Haar cascade XML for --faces (default: CROPSCORE_FACE_CLASSIFIER or OpenCV's)",
    )
    parser.add_argument(
        "--all",
        dest="show_all",
        action="store_true",
        help="Print the best-scoring candidates, not just the winner",
    )
    parser.add_argument(
        "--top", "-n", type=int, default=10, help="Candidates to print with --all (default: 10)"
    )
    parser.add_argument("--report", default=None, help="Write a JSON report of all candidates")
    parser.add_argument("--debug", action="store_true", help="Print timings and internals")

    args = parser.parse_args()

    try:
        run(
            image_path=args.image,
            width=args.width,
            height=args.height,
            output_path=args.output,
            faces=args.faces,
            classifier=args.classifier,
            show_all=args.show_all,
            top_n=args.top,
            report_path=args.report,
            debug=args.debug,
        )
    except (CropScoreError, OSError) as e:
        print(f"❌ {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
