"""Visualization functions for lens dirtiness analysis."""

import logging
from pathlib import Path
from typing import Optional

import matplotlib.pyplot as plt
import numpy as np

from lens_screener.constants import DARK_CHANNEL_WINDOW
from lens_screener.features import dark_channel, gradient_magnitude, laplacian_response
from lens_screener.lens_dirt_detector import DetectionResult
from lens_screener.preprocessing import to_luma

logger = logging.getLogger(__name__)

__all__ = ['create_dirt_diagnostics_plot']


def _feature_summary(result: DetectionResult) -> str:
    if result.mostly_solid:
        return "Mostly solid color:\nfeature extraction skipped"

    features = result.features
    fusion = result.fusion
    lines = [
        f"Laplacian std: {features.laplacian_std_dev:.2f} (edges: {features.edge_count})",
        f"Tenengrad: {features.tenengrad:.2f}",
        f"Contrast std: {features.contrast_std_dev:.2f}",
        f"Brightness: {features.brightness:.2f}",
        f"Dark channel: {features.dark_channel_avg:.2f}",
        "",
        f"Sharpness signal: {'Tenengrad' if fusion.use_tenengrad else 'Laplacian'}",
        f"Edge focus score: {fusion.edge_focus_score:.3f} (x{fusion.edge_correction})",
    ]
    if fusion.haze_override:
        lines.append("Haze override applied")
    return "\n".join(lines)


def create_dirt_diagnostics_plot(
    result: DetectionResult,
    output_path: Optional[Path] = None,
    show_plot: bool = True,
    dark_window: int = DARK_CHANNEL_WINDOW,
) -> None:
    """
    Create diagnostic plots for a lens dirtiness analysis.

    Panels: working image, Laplacian response, gradient magnitude, dark
    channel, normalized fusion inputs and a feature summary.

    Args:
        result: DetectionResult from LensDirtDetector.analyze
        output_path: Optional path to save plot
        show_plot: Whether to display plot interactively
        dark_window: Neighbourhood size used for the dark channel map
    """
    rgb = result.working_image[:, :, :3]
    luma = to_luma(rgb)

    fig = plt.figure(figsize=(16, 10))
    gs = fig.add_gridspec(2, 3, hspace=0.3, wspace=0.3)

    filename = Path(result.image_path).name
    verdict = "DIRTY" if result.is_dirty else "CLEAN"
    fig.suptitle(
        f'Analysis of "{filename}": Dirty Score {result.dirty_score:.3f} '
        f"({verdict} at threshold {result.threshold:.2f})",
        fontsize=16,
        fontweight="bold",
    )

    # 1. Working-resolution image
    ax1 = fig.add_subplot(gs[0, 0])
    ax1.imshow(rgb, interpolation="nearest")
    ax1.set_title(f"Working Image\n{rgb.shape[1]}x{rgb.shape[0]}", fontweight="bold")
    ax1.axis("off")

    # 2. Laplacian response
    ax2 = fig.add_subplot(gs[0, 1])
    lap = laplacian_response(luma)
    if lap.size > 0:
        im = ax2.imshow(np.abs(lap), cmap="magma", interpolation="nearest")
        plt.colorbar(im, ax=ax2, label="|Laplacian|")
    else:
        ax2.text(0.5, 0.5, "Image too small", ha="center", va="center")
    ax2.set_title("Laplacian Response", fontweight="bold")
    ax2.axis("off")

    # 3. Gradient magnitude
    ax3 = fig.add_subplot(gs[0, 2])
    grad = gradient_magnitude(luma)
    if grad.size > 0:
        im = ax3.imshow(grad, cmap="viridis", interpolation="nearest")
        plt.colorbar(im, ax=ax3, label="Gradient magnitude")
    else:
        ax3.text(0.5, 0.5, "Image too small", ha="center", va="center")
    ax3.set_title("Sobel Gradient Magnitude", fontweight="bold")
    ax3.axis("off")

    # 4. Dark channel
    ax4 = fig.add_subplot(gs[1, 0])
    im = ax4.imshow(dark_channel(rgb, dark_window), cmap="gray", vmin=0, vmax=255)
    plt.colorbar(im, ax=ax4, label="Dark channel")
    ax4.set_title(f"Dark Channel ({dark_window}x{dark_window})", fontweight="bold")
    ax4.axis("off")

    # 5. Normalized fusion inputs
    ax5 = fig.add_subplot(gs[1, 1])
    if result.fusion is not None:
        fusion = result.fusion
        labels = ["Laplacian", "Tenengrad", "Contrast", "Dark ch.", "Edge focus"]
        values = [
            fusion.laplacian_scaled,
            fusion.tenengrad_scaled,
            fusion.contrast_scaled,
            fusion.dark_channel_scaled,
            fusion.edge_focus_score,
        ]
        colors = ["tab:blue", "tab:blue", "tab:green", "tab:red", "tab:orange"]
        ax5.bar(labels, values, color=colors, alpha=0.8)
        ax5.axhline(result.dirty_score, color="black", linestyle="--", label="Dirty score")
        ax5.axhline(result.threshold, color="red", linestyle=":", label="Threshold")
        ax5.set_ylabel("Scaled value", fontweight="bold")
        ax5.grid(True, axis="y", alpha=0.3)
        ax5.legend()
    else:
        ax5.text(0.5, 0.5, "No fusion data", ha="center", va="center")
    ax5.set_title("Fusion Inputs", fontweight="bold")

    # 6. Summary
    ax6 = fig.add_subplot(gs[1, 2])
    ax6.axis("off")
    ax6.text(
        0.02,
        0.98,
        _feature_summary(result),
        transform=ax6.transAxes,
        fontsize=10,
        verticalalignment="top",
        family="monospace",
        bbox=dict(boxstyle="round", facecolor="wheat", alpha=0.5),
    )
    ax6.set_title("Features", fontweight="bold")

    if output_path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        plt.savefig(output_path, dpi=150, bbox_inches="tight")
        logger.info(f"Saved diagnostics plot to {output_path}")

    if show_plot:
        backend = plt.get_backend()
        if backend.lower() != "agg":
            plt.show()
        else:
            logger.debug(f"Skipping plt.show() - non-interactive backend: {backend}")
    else:
        plt.close(fig)
