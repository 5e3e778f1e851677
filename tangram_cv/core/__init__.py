"""Core domain entities and constants."""

from .entities import (
    PieceType, AffineTransform, Pose, TargetPiece, Puzzle, Observation,
    ValidationResult, NudgeLevel, NudgeContent, PulseHint, FlipDemoHint,
    RotationDemoHint, PieceValidationState, OrientationFeedback, Point,
    FrameValidationState, CVFrameEvent, CVPieceEvent, CVPose, DetectionResult,
)
from .exceptions import ApplicationError, ConfigError, ValidationError, DetectionError
from .constants import APP_NAME, VERSION, REFERENCE_CANVAS_SIZE

__all__ = [
    "PieceType", "AffineTransform", "Pose", "TargetPiece", "Puzzle", "Observation",
    "ValidationResult", "NudgeLevel", "NudgeContent", "PulseHint", "FlipDemoHint",
    "RotationDemoHint", "PieceValidationState", "OrientationFeedback", "Point",
    "FrameValidationState", "CVFrameEvent", "CVPieceEvent", "CVPose", "DetectionResult",
    "ApplicationError", "ConfigError", "ValidationError", "DetectionError",
    "APP_NAME", "VERSION", "REFERENCE_CANVAS_SIZE",
]
