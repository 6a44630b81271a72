"""Request/response dispatch for host runtimes calling the detector by name.

Requests carry a method name and an argument mapping; responses are plain
dicts so a host bridge can serialize them directly:

    {"score": 0.42}
    {"isDirty": True}
    {"error": {"code": "DECODE_ERROR", "message": "..."}}
"""

import logging
from numbers import Real
from typing import Any, Dict, Mapping, Optional

from lens_screener.errors import DecodeError, InputError, LensScreenerError
from lens_screener.lens_dirt_detector import LensDirtDetector

logger = logging.getLogger(__name__)

__all__ = [
    'GET_SCORE_METHOD',
    'IS_DIRTY_METHOD',
    'NOT_IMPLEMENTED',
    'handle_method_call',
]

GET_SCORE_METHOD = "getLensDirtyScore"
IS_DIRTY_METHOD = "isLensDirty"
NOT_IMPLEMENTED = "NOT_IMPLEMENTED"


def _error(code: str, message: str) -> Dict[str, Any]:
    return {"error": {"code": code, "message": message}}


def _parse_arguments(arguments: Optional[Mapping[str, Any]]) -> tuple:
    """Extract (path, threshold) from a request, raising InputError if invalid."""
    arguments = arguments or {}

    path = arguments.get("path")
    if not isinstance(path, str) or not path.strip():
        raise InputError("Path argument is required")

    threshold = arguments.get("threshold")
    if threshold is not None:
        if isinstance(threshold, bool) or not isinstance(threshold, Real):
            raise InputError(f"Threshold must be a number, got {threshold!r}")
        threshold = float(threshold)

    return path, threshold


def handle_method_call(
    method: str,
    arguments: Optional[Mapping[str, Any]] = None,
    detector: Optional[LensDirtDetector] = None,
) -> Dict[str, Any]:
    """
    Dispatch one method call to the detector.

    Args:
        method: GET_SCORE_METHOD or IS_DIRTY_METHOD
        arguments: {"path": str, "threshold": float | None}
        detector: Detector to use (a default one is created if omitted)

    Returns:
        {"score": float}, {"isDirty": bool} or {"error": {"code", "message"}}
    """
    if method not in (GET_SCORE_METHOD, IS_DIRTY_METHOD):
        return _error(NOT_IMPLEMENTED, f"Method not implemented: {method}")

    try:
        path, threshold = _parse_arguments(arguments)
    except InputError as e:
        return _error(e.code, str(e))

    if detector is None:
        detector = LensDirtDetector()

    try:
        buffer = detector.decode_for_analysis(path)
        result = detector.score(buffer, threshold)
    except DecodeError as e:
        logger.error(f"Failed to decode image {path}: {e}")
        return _error(e.code, str(e))
    except LensScreenerError as e:
        logger.error(f"Error processing image {path}: {e}", exc_info=True)
        return _error(e.code, str(e))
    except Exception as e:
        logger.error(f"Unexpected error processing image {path}: {e}", exc_info=True)
        return _error("PROCESSING_ERROR", f"Exception during processing: {e}")

    if method == IS_DIRTY_METHOD:
        return {"isDirty": result.is_dirty}
    return {"score": result.dirty_score}
