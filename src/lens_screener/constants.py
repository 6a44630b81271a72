"""Tuned constants for lens dirtiness scoring.

All values are empirically tuned against the working resolution produced by
PROCESSING_SCALE_FACTOR; they are not derived from first principles.
"""

# Decoding / Downsampling
DEFAULT_MAX_WIDTH = 640  # Target decode bound (pixels)
DEFAULT_MAX_HEIGHT = 640
PROCESSING_SCALE_FACTOR = 0.15  # Decoded image -> working resolution

# Luma coefficients (perceptual, Rec. 709)
LUMA_RED = 0.2126
LUMA_GREEN = 0.7152
LUMA_BLUE = 0.0722

# Solid Color Check
SOLID_RGB_STD_DEV_THRESHOLD = 15.0  # Per-channel std below this on all channels -> solid
SOLID_SAMPLE_RATIO = 0.2  # Fraction of pixels sampled
SOLID_MIN_SAMPLES = 200  # Lower bound on sample count (capped at pixel count)
SOLID_SAMPLE_SEED = 0

# Feature Extraction
LAPLACIAN_EDGE_THRESHOLD = 20.0  # |response| above this counts as a strong edge
DARK_CHANNEL_WINDOW = 7  # Local minimum neighbourhood (odd)

# Normalization (divisor, upper clamp)
LAPLACIAN_DIVISOR = 30.0
LAPLACIAN_MAX = 1.5
TENENGRAD_DIVISOR = 50.0
TENENGRAD_MAX = 1.0
CONTRAST_DIVISOR = 50.0
CONTRAST_MAX = 1.0
DARK_CHANNEL_DIVISOR = 60.0
DARK_CHANNEL_MAX = 2.0

# Adaptive blend selection
LOW_CONTRAST_STD = 15.0  # Contrast std below this -> prefer Tenengrad
BRIGHT_THRESHOLD = 170.0  # Brightness above this -> prefer Tenengrad
HAZE_DARK_CHANNEL_THRESHOLD = 35.0  # Dark channel avg above this -> prefer Tenengrad
PREFERRED_SIGNAL_WEIGHT = 0.7  # Weight given to the preferred sharpness signal

# Weighted sum
DARK_CHANNEL_WEIGHT = 0.4
CONTRAST_WEIGHT = 0.35
EDGE_FOCUS_WEIGHT = 0.25

# Edge-strength correction
UNFOCUSED_EDGE_SCORE = 0.8  # edge_focus_score above this -> UNFOCUSED_FACTOR
UNFOCUSED_FACTOR = 0.5
SHARP_EDGE_SCORE = 0.3  # edge_focus_score below this -> SHARP_FACTOR
SHARP_FACTOR = 0.85

# Haze override
HAZE_DARK_SCALED_THRESHOLD = 0.7  # Together with contrast std < LOW_CONTRAST_STD
STRONG_HAZE_DARK_SCALED_THRESHOLD = 1.0  # On its own
HAZE_OVERRIDE_CEILING = 0.6  # Only scores below this are overridden
HAZE_OVERRIDE_SCORE = 0.75

# Classification
DEFAULT_DIRTY_THRESHOLD = 0.7
