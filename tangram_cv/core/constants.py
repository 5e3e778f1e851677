"""Application-wide constants for the tangram CV validation core."""

from typing import Dict, Tuple

APP_NAME = "tangram-cv"
VERSION = "1.0.0"

# Canvas the CV pipeline renders into. Every normalized -> canvas mapping
# reads this value; do not inline the dimensions elsewhere.
REFERENCE_CANVAS_SIZE: Tuple[int, int] = (1080, 1920)  # (width, height)

# Nominal CV output rate (Hz)
CV_STREAM_FREQUENCY = 20.0

# Coordinates larger than this in magnitude are treated as canvas pixels rather
# than normalized coordinates.
NORMALIZED_COORDINATE_LIMIT = 1.5

CV_CLASS_NAMES: Dict[int, str] = {
    0: "tangram_parallelogram",
    1: "tangram_square",
    2: "tangram_triangle_lrg",
    3: "tangram_triangle_lrg2",
    4: "tangram_triangle_med",
    5: "tangram_triangle_sml",
    6: "tangram_triangle_sml2",
}
UNKNOWN_CV_CLASS_NAME = "tangram_unknown"
