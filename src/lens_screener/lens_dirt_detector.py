"""Lens Dirt Detector - Main class for dirty / hazy / defocused lens scoring."""

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, NamedTuple, Optional, Tuple, Union

import numpy as np
from pydantic import Field, field_validator
from pydantic.dataclasses import dataclass

from lens_screener.constants import (
    DARK_CHANNEL_WINDOW,
    DEFAULT_DIRTY_THRESHOLD,
    DEFAULT_MAX_HEIGHT,
    DEFAULT_MAX_WIDTH,
    LAPLACIAN_EDGE_THRESHOLD,
    PROCESSING_SCALE_FACTOR,
    SOLID_SAMPLE_SEED,
)
from lens_screener.errors import LensScreenerError, ProcessingError
from lens_screener.features import extract_features
from lens_screener.fusion import FusionPolicy
from lens_screener.preprocessing import ImageDecoder, PixelBuffer
from lens_screener.types import FeatureSet, FusionResult, ScoreResult
from lens_screener.uniformity import UniformityDetector

logger = logging.getLogger(__name__)

__all__ = ['LensDirtDetector', 'DetectionResult']


class DetectionResult(NamedTuple):
    """Result of analysing one image file."""

    image_path: str
    dirty_score: float
    is_dirty: bool
    threshold: float
    mostly_solid: bool  # Solid-color short-circuit fired
    features: Optional[FeatureSet]  # None when mostly_solid
    fusion: Optional[FusionResult]  # None when mostly_solid
    working_image: np.ndarray  # Working-resolution RGBA pixels


@dataclass
class LensDirtDetector:
    """
    Estimates whether a photo was taken through a dirty, hazy or
    out-of-focus lens.

    Pipeline: sampled decode -> working-resolution scale -> solid-color
    short-circuit -> luma -> five features -> fusion -> haze override.
    Scoring is pure and synchronous; one detector can serve concurrent calls.
    """

    threshold: float = Field(default=DEFAULT_DIRTY_THRESHOLD, ge=0.0, le=1.0)
    max_width: int = Field(default=DEFAULT_MAX_WIDTH, ge=1)
    max_height: int = Field(default=DEFAULT_MAX_HEIGHT, ge=1)
    working_scale: float = Field(default=PROCESSING_SCALE_FACTOR, gt=0.0, le=1.0)
    prefilter: bool = Field(default=False)
    edge_threshold: float = Field(default=LAPLACIAN_EDGE_THRESHOLD, ge=0.0)
    dark_window: int = Field(default=DARK_CHANNEL_WINDOW, ge=1)
    sample_seed: Optional[int] = Field(default=SOLID_SAMPLE_SEED)

    @field_validator("dark_window")
    @classmethod
    def validate_dark_window(cls, v: int) -> int:
        """Dark channel neighbourhoods must be centred on a pixel."""
        if v % 2 == 0:
            raise ValueError(f"dark_window must be odd, got {v}")
        return v

    def __post_init__(self):
        """Initialize sub-components."""
        self.decoder = ImageDecoder(
            max_width=self.max_width,
            max_height=self.max_height,
            working_scale=self.working_scale,
            prefilter=self.prefilter,
        )
        self.uniformity_detector = UniformityDetector(seed=self.sample_seed)
        self.fusion_policy = FusionPolicy()

    def decode_for_analysis(self, image_path: Union[str, Path]) -> PixelBuffer:
        """
        Decode an image file into a working-resolution buffer.

        Raises:
            InputError: If the path is missing or blank
            DecodeError: If the file cannot be decoded
        """
        return self.decoder.decode_for_analysis(image_path)

    def _evaluate(
        self, buffer: PixelBuffer
    ) -> Tuple[bool, Optional[FeatureSet], Optional[FusionResult]]:
        """Run the numeric stages, wrapping unexpected failures."""
        try:
            rgb = buffer.rgb
            if self.uniformity_detector.is_mostly_solid(rgb):
                logger.debug(f"{buffer} is mostly solid, skipping feature extraction")
                return True, None, None

            luma = buffer.luma()
            features = extract_features(
                luma, rgb, edge_threshold=self.edge_threshold, dark_window=self.dark_window
            )
            return False, features, self.fusion_policy.fuse(features)
        except LensScreenerError:
            raise
        except Exception as e:
            raise ProcessingError(f"Failed to score {buffer}: {e}") from e

    def compute_dirty_score(self, buffer: PixelBuffer) -> float:
        """
        Compute the dirtiness score of a working-resolution buffer.

        Args:
            buffer: Working-resolution pixels (see decode_for_analysis)

        Returns:
            Score in [0, 1]; 0.0 for solid-color images

        Raises:
            ProcessingError: On unexpected numeric failures
        """
        _, _, fusion = self._evaluate(buffer)
        return 0.0 if fusion is None else fusion.dirty_score

    def _resolve_threshold(self, threshold: Optional[float]) -> float:
        return self.threshold if threshold is None else float(threshold)

    def score(self, buffer: PixelBuffer, threshold: Optional[float] = None) -> ScoreResult:
        """
        Score a buffer and classify it against a threshold.

        Args:
            buffer: Working-resolution pixels
            threshold: Overrides the detector's threshold for this call

        Returns:
            ScoreResult
        """
        threshold = self._resolve_threshold(threshold)
        dirty_score = self.compute_dirty_score(buffer)
        return ScoreResult(
            dirty_score=dirty_score,
            is_dirty=dirty_score >= threshold,
            threshold=threshold,
        )

    def is_dirty(self, buffer: PixelBuffer, threshold: Optional[float] = None) -> bool:
        """Whether compute_dirty_score(buffer) >= threshold."""
        return self.score(buffer, threshold).is_dirty

    def analyze(self, image_path: Union[str, Path]) -> DetectionResult:
        """
        Analyze an image file for lens dirtiness.

        Args:
            image_path: Path to the image file

        Returns:
            DetectionResult with score, classification, features and the
            working-resolution image

        Raises:
            InputError, DecodeError, ProcessingError
        """
        logger.info(f"Analyzing image: {image_path}")

        buffer = self.decode_for_analysis(image_path)
        mostly_solid, features, fusion = self._evaluate(buffer)
        dirty_score = 0.0 if fusion is None else fusion.dirty_score

        result = DetectionResult(
            image_path=str(image_path),
            dirty_score=dirty_score,
            is_dirty=dirty_score >= self.threshold,
            threshold=self.threshold,
            mostly_solid=mostly_solid,
            features=features,
            fusion=fusion,
            working_image=buffer.pixels,
        )

        logger.info(
            f"Analysis complete: dirty_score={result.dirty_score:.4f}, "
            f"is_dirty={result.is_dirty}, mostly_solid={result.mostly_solid}"
        )

        return result

    def batch_analyze(
        self,
        image_paths: list[Union[str, Path]],
        max_workers: Optional[int] = None,
        skip_errors: bool = False,
        on_complete: Optional[Callable[[str, Optional[DetectionResult]], None]] = None,
    ) -> list[DetectionResult]:
        """
        Analyze multiple images, in parallel across a thread pool.

        Args:
            image_paths: List of paths to image files
            max_workers: Thread count (None lets the executor decide, 1 runs serially)
            skip_errors: Log and drop images that raise a LensScreenerError
                instead of propagating the first failure
            on_complete: Called as on_complete(path, result) after each image
                finishes; result is None for a skipped failure

        Returns:
            List of DetectionResult objects in input order (failures omitted
            when skip_errors is set)

        Raises:
            The first error raised for any path, unless skip_errors is set
        """
        logger.info(f"Batch analyzing {len(image_paths)} images")

        def analyze_one(image_path: Union[str, Path]) -> Optional[DetectionResult]:
            try:
                result = self.analyze(image_path)
            except LensScreenerError as e:
                if not skip_errors:
                    raise
                logger.warning(f"Skipping {image_path} [{e.code}]: {e}")
                result = None
            if on_complete is not None:
                on_complete(str(image_path), result)
            return result

        if max_workers == 1:
            results = [analyze_one(path) for path in image_paths]
        else:
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                results = list(executor.map(analyze_one, image_paths))

        return [result for result in results if result is not None]
