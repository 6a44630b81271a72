"""Lens Screener - Dirty / hazy / defocused lens detection"""

__version__ = "0.1.0"

from .errors import DecodeError, InputError, LensScreenerError, ProcessingError
from .lens_dirt_detector import DetectionResult, LensDirtDetector
from .preprocessing import PixelBuffer
from .types import FeatureSet, FusionResult, ScoreResult

__all__ = [
    "LensDirtDetector",
    "DetectionResult",
    "PixelBuffer",
    "FeatureSet",
    "FusionResult",
    "ScoreResult",
    "LensScreenerError",
    "InputError",
    "DecodeError",
    "ProcessingError",
]
