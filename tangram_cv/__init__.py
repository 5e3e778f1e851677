"""
Pose validation core for camera-tracked tangram puzzles.
"""

__version__ = "1.0.0"

from .config.settings import Config, load_config, save_config
from .core.entities import (
    PieceType, AffineTransform, TargetPiece, Puzzle, Observation,
    ValidationResult, OrientationFeedback, FrameValidationState,
)
from .services.piece_validator import PieceValidator
from .services.orientation_feedback import OrientationFeedbackGenerator
from .services.pipeline import ValidationPipeline

__all__ = [
    "Config", "load_config", "save_config",
    "PieceType", "AffineTransform", "TargetPiece", "Puzzle", "Observation",
    "ValidationResult", "OrientationFeedback", "FrameValidationState",
    "PieceValidator", "OrientationFeedbackGenerator", "ValidationPipeline",
]
