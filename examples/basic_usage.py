"""Basic usage example for Lens Dirt Detector."""

import logging
from pathlib import Path

from lens_screener import LensDirtDetector
from lens_screener.method_channel import IS_DIRTY_METHOD, handle_method_call

# Configure logging
logging.basicConfig(level=logging.INFO)


# Example: Analyze a single image
def analyze_single_image():
    """Analyze a single photo for lens dirt."""
    detector = LensDirtDetector(threshold=0.7)

    image_path = Path("documentation/test images/lens/smudged.jpg")

    if not image_path.exists():
        print(f"Image not found: {image_path}")
        print("Please provide a valid image path")
        return

    result = detector.analyze(image_path)

    print(f"\nAnalysis Results for: {result.image_path}")
    print(f"Dirty Score: {result.dirty_score:.4f}")
    print(f"Is Dirty: {result.is_dirty}")
    if result.features is not None:
        print(f"Dark Channel Avg: {result.features.dark_channel_avg:.2f}")
        print(f"Contrast Std Dev: {result.features.contrast_std_dev:.2f}")


# Example: Score an already-decoded buffer with a custom threshold
def score_buffer():
    """Decode once, then classify at several thresholds."""
    detector = LensDirtDetector()

    image_path = Path("documentation/test images/lens/clean.jpg")
    if not image_path.exists():
        print(f"Image not found: {image_path}")
        return

    buffer = detector.decode_for_analysis(image_path)
    for threshold in (0.5, 0.6, 0.7):
        result = detector.score(buffer, threshold=threshold)
        print(f"threshold={threshold:.1f} score={result.dirty_score:.4f} dirty={result.is_dirty}")


# Example: Batch analyze multiple images
def batch_analyze():
    """Analyze multiple images in parallel."""
    detector = LensDirtDetector()

    test_dir = Path("documentation/test images")
    image_paths = []
    for ext in ["*.jpg", "*.png"]:
        image_paths.extend(test_dir.rglob(ext))

    if not image_paths:
        print("No test images found")
        return

    print(f"Analyzing {len(image_paths)} images...\n")
    results = detector.batch_analyze(image_paths, max_workers=4)

    print("Batch Analysis Results:")
    print("-" * 60)
    for result in results:
        print(
            f"{Path(result.image_path).name:30s} | "
            f"Score: {result.dirty_score:.4f} | "
            f"Dirty: {result.is_dirty}"
        )


# Example: Request/response dispatch as a host bridge would call it
def dispatch_request():
    """Call the detector through the method-call dispatcher."""
    response = handle_method_call(IS_DIRTY_METHOD, {"path": "missing.jpg", "threshold": 0.6})
    print(f"Response: {response}")


if __name__ == "__main__":
    print("=" * 60)
    print("Lens Dirt Detector - Basic Usage Example")
    print("=" * 60)

    analyze_single_image()
    print()
    score_buffer()
    print()
    batch_analyze()
    print()
    dispatch_request()
