"""Default configuration values."""

from typing import Any, Dict

from ..core.constants import REFERENCE_CANVAS_SIZE, CV_STREAM_FREQUENCY

DEFAULT_CONFIG: Dict[str, Any] = {
    # Validation tolerances
    "position_tolerance": 35.0,  # rendering-space units (pixels)
    "rotation_tolerance_deg": 18.0,
    "orientation_tolerance_deg": 5.0,
    "rotation_nudge_upper_deg": 45.0,
    "difficulty": "normal",  # easy | normal | hard; only used when apply_difficulty is on
    "apply_difficulty": False,

    # Nudges
    "success_pulse_intensity": 0.4,
    "success_pulse_duration": 1.2,
    "corrective_nudge_duration": 2.0,

    # CV frame mapping
    "reference_canvas_width": REFERENCE_CANVAS_SIZE[0],
    "reference_canvas_height": REFERENCE_CANVAS_SIZE[1],
    "observation_scale": 1.0,  # 50.0 when CV translations are in normalized plane units
    "assignment_threshold_px": 120.0,
    "max_tracks_per_class": 16,
    "needs_camera_inversion": False,
    "target_fps": int(CV_STREAM_FREQUENCY),

    # Debug and Logging Settings
    "debug": False,
    "log_level": "INFO",
    "log_dir": "logs",
    "enable_file_logging": False,
    "structured_logging": False,
}

# (position, rotation_deg) per difficulty
DIFFICULTY_TOLERANCES: Dict[str, tuple] = {
    "easy": (55.0, 24.0),
    "normal": (40.0, 18.0),
    "hard": (28.0, 12.0),
}
