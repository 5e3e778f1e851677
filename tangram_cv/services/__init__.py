"""Services package for validation logic."""

from .piece_validator import PieceValidator, is_flip_valid
from .orientation_feedback import OrientationFeedbackGenerator
from .cv_events_adapter import CVEventsAdapter, CVFrameBuilder, IdentityTracker
from .cv_converter import convert_to_raw_transform, observation_from_event, observations_from_frame
from .pipeline import ValidationPipeline

__all__ = [
    "PieceValidator", "is_flip_valid", "OrientationFeedbackGenerator",
    "CVEventsAdapter", "CVFrameBuilder", "IdentityTracker",
    "convert_to_raw_transform", "observation_from_event", "observations_from_frame",
    "ValidationPipeline",
]
