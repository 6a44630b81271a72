#!/usr/bin/env python3
"""CLI tool for dirty / hazy lens detection.

Usage:
    python detect_dirty_lens.py image.jpg
    python detect_dirty_lens.py image.jpg --threshold 0.6 --output outputs/
    python detect_dirty_lens.py --dir ./photos --workers 4
"""

import argparse
import logging
import sys
from pathlib import Path

import matplotlib

# Use non-interactive backend if not displaying
matplotlib.use("Agg")

from lens_screener.errors import LensScreenerError
from lens_screener.lens_dirt_detector import DetectionResult, LensDirtDetector
from lens_screener.visualization import create_dirt_diagnostics_plot

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".bmp"}


def print_result(result: DetectionResult) -> None:
    """Print a single analysis result."""
    print("\n" + "=" * 80)
    print("LENS DIRT ANALYSIS RESULTS")
    print("=" * 80)
    print(f"\nImage: {Path(result.image_path).name}")
    print(f"\nDirty Score: {result.dirty_score:.4f} / 1.0")
    print(f"Classification: {'DIRTY' if result.is_dirty else 'CLEAN'} (threshold {result.threshold:.2f})")

    if result.mostly_solid:
        print("\nImage is mostly a solid color; feature extraction skipped.")
    else:
        features = result.features
        fusion = result.fusion
        print("\nFeatures:")
        print(f"  Laplacian Std Dev:   {features.laplacian_std_dev:.3f} (strong edges: {features.edge_count})")
        print(f"  Tenengrad:           {features.tenengrad:.3f}")
        print(f"  Contrast Std Dev:    {features.contrast_std_dev:.3f}")
        print(f"  Brightness:          {features.brightness:.3f}")
        print(f"  Dark Channel Avg:    {features.dark_channel_avg:.3f}")
        print("\nFusion:")
        print(f"  Sharpness Signal:    {'Tenengrad' if fusion.use_tenengrad else 'Laplacian'}")
        print(f"  Edge Focus Score:    {fusion.edge_focus_score:.3f} (x{fusion.edge_correction})")
        print(f"  Haze Override:       {fusion.haze_override}")
    print("=" * 80)


def batch_detect(detector: LensDirtDetector, image_dir: Path, workers: int) -> None:
    """
    Score every image in a directory.

    Args:
        detector: Configured detector
        image_dir: Directory containing images
        workers: Thread count
    """
    from tqdm import tqdm

    images = sorted(p for p in image_dir.iterdir() if p.suffix.lower() in IMAGE_EXTENSIONS)
    if len(images) == 0:
        print(f"No images found in {image_dir}", file=sys.stderr)
        sys.exit(1)

    print(f"\nScoring {len(images)} images...\n")

    with tqdm(total=len(images), desc="Processing") as pbar:
        results = detector.batch_analyze(
            images,
            max_workers=max(1, workers),
            skip_errors=True,
            on_complete=lambda path, result: pbar.update(1),
        )

    print("\n" + "=" * 80)
    print("BATCH LENS DIRT RESULTS")
    print("=" * 80)
    print(f"{'Image':<50} {'Score':<10} {'Result':<10}")
    print("-" * 80)
    for result in results:
        verdict = "DIRTY" if result.is_dirty else "CLEAN"
        print(f"{Path(result.image_path).name:<50} {result.dirty_score:<10.4f} {verdict:<10}")

    dirty_count = sum(1 for r in results if r.is_dirty)
    print("\n" + "-" * 80)
    print(f"Summary: {len(results) - dirty_count} clean, {dirty_count} dirty, "
          f"{len(images) - len(results)} failed")
    print("=" * 80)


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Detect dirty, hazy or out-of-focus camera lenses from photos",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python detect_dirty_lens.py image.jpg
  python detect_dirty_lens.py image.jpg --output outputs/
  python detect_dirty_lens.py --dir ./photos --threshold 0.6
        """,
    )

    parser.add_argument(
        "image_path",
        type=str,
        nargs="?",
        help="Path to input image file",
    )

    parser.add_argument(
        "--dir",
        type=str,
        help="Directory containing images to score (batch mode)",
    )

    parser.add_argument(
        "--threshold",
        "-t",
        type=float,
        default=0.7,
        help="Dirty classification threshold (default: 0.7)",
    )

    parser.add_argument(
        "--output",
        "-o",
        type=str,
        default=None,
        help="Output directory or file path for the diagnostics plot",
    )

    parser.add_argument(
        "--prefilter",
        action="store_true",
        help="Apply a 3x3 box blur before scoring to suppress sensor noise",
    )

    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Worker threads for batch mode (default: 1)",
    )

    args = parser.parse_args()

    if not args.image_path and not args.dir:
        print("Error: Must specify either an image path or --dir", file=sys.stderr)
        sys.exit(1)

    detector = LensDirtDetector(threshold=args.threshold, prefilter=args.prefilter)

    if args.dir:
        image_dir = Path(args.dir)
        if not image_dir.is_dir():
            logger.error(f"Directory not found: {image_dir}")
            sys.exit(1)
        batch_detect(detector, image_dir, args.workers)
        return

    image_path = Path(args.image_path)
    try:
        result = detector.analyze(image_path)
    except LensScreenerError as e:
        logger.error(f"Analysis failed [{e.code}]: {e}")
        sys.exit(1)

    print_result(result)

    if args.output:
        output_path = Path(args.output)
        if output_path.suffix in [".png", ".jpg", ".pdf", ".svg"]:
            diagnostics_path = output_path
        else:
            output_path.mkdir(parents=True, exist_ok=True)
            diagnostics_path = output_path / f"{image_path.stem}_lens_diagnostics.png"

        logger.info(f"Creating diagnostics plot: {diagnostics_path}")
        create_dirt_diagnostics_plot(result, output_path=diagnostics_path, show_plot=False)
        print(f"\nSaved diagnostics to: {diagnostics_path}")

    # Exit code mirrors the classification
    sys.exit(2 if result.is_dirty else 0)


if __name__ == "__main__":
    main()
