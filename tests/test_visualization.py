"""Tests for diagnostics plotting."""

import matplotlib

matplotlib.use("Agg")

from PIL import Image

from lens_screener.lens_dirt_detector import LensDirtDetector
from lens_screener.visualization import create_dirt_diagnostics_plot


def test_diagnostics_plot_hazy(tmp_path, hazy):
    """Test writing a diagnostics figure for a scored image."""
    img_path = tmp_path / "hazy.png"
    Image.fromarray(hazy).save(img_path)
    result = LensDirtDetector(working_scale=1.0).analyze(img_path)

    output_path = tmp_path / "plots" / "hazy_diagnostics.png"
    create_dirt_diagnostics_plot(result, output_path=output_path, show_plot=False)

    assert output_path.exists()
    assert output_path.stat().st_size > 0


def test_diagnostics_plot_solid(tmp_path, flat_gray):
    """Test writing a diagnostics figure when the solid short-circuit fired."""
    img_path = tmp_path / "flat.png"
    Image.fromarray(flat_gray).save(img_path)
    result = LensDirtDetector().analyze(img_path)

    output_path = tmp_path / "flat_diagnostics.png"
    create_dirt_diagnostics_plot(result, output_path=output_path, show_plot=False)

    assert result.mostly_solid
    assert output_path.exists()
