"""Validation of one placed piece against one puzzle target."""
from __future__ import annotations
import logging
from typing import Container, Optional

from ..config.defaults import DEFAULT_CONFIG
from ..config.settings import Config, ValidationTolerances
from ..core.entities import AffineTransform, Observation, PieceType, Point, Puzzle, TargetPiece, ValidationResult
from ..utils.geometry import distance, raw_position, render_position
from .feature_angles import is_transform_flipped, piece_feature_angle, target_feature_angle
from .rotation_validator import is_rotation_valid

logger = logging.getLogger(__name__)


def is_flip_valid(piece_type: PieceType, is_flipped: bool, target_transform: AffineTransform) -> bool:
    """Flip check; only the chiral piece can fail it.

    The parallelogram rule is inverted (flip states must *differ*) because the
    model space and the rendering space have opposite handedness. Keep it that way.
    """
    if not piece_type.is_chiral:
        return True
    return is_flipped != is_transform_flipped(target_transform)


class PieceValidator:
    """Checks position, flip and symmetry-aware rotation of a placed piece.

    Tolerances given to the constructor are session defaults; every method
    accepts per-call overrides.
    """

    def __init__(self, position_tolerance: float = DEFAULT_CONFIG["position_tolerance"],
                 rotation_tolerance: float = DEFAULT_CONFIG["rotation_tolerance_deg"]):
        self.position_tolerance = position_tolerance
        self.rotation_tolerance = rotation_tolerance

    @classmethod
    def from_tolerances(cls, tolerances: ValidationTolerances) -> "PieceValidator":
        return cls(position_tolerance=tolerances.position, rotation_tolerance=tolerances.rotation_deg)

    @classmethod
    def from_config(cls, cfg: Config) -> "PieceValidator":
        return cls.from_tolerances(cfg.tolerances())

    def validate_with_features(
        self,
        piece_position: Point,
        piece_feature_angle: float,
        target_feature_angle: float,
        piece_type: PieceType,
        is_flipped: bool,
        target_transform: AffineTransform,
        target_world_position: Point,
        position_tolerance: Optional[float] = None,
        rotation_tolerance: Optional[float] = None,
    ) -> ValidationResult:
        """Validate from precomputed feature angles and a rendering-space target position.

        Args:
            piece_position: Current piece position (rendering space)
            piece_feature_angle: Feature angle of the piece
            target_feature_angle: Feature angle of the target
            piece_type: Type of the piece
            is_flipped: Whether the piece is flipped
            target_transform: Target transform (used for flip detection)
            target_world_position: Target position (rendering space)

        Returns:
            ValidationResult with each criterion reported separately.
        """
        pos_tol = self.position_tolerance if position_tolerance is None else position_tolerance
        rot_tol = self.rotation_tolerance if rotation_tolerance is None else rotation_tolerance

        position_valid = distance(piece_position, target_world_position) < pos_tol
        rotation_valid = is_rotation_valid(
            piece_feature_angle, target_feature_angle, piece_type, is_flipped, tolerance_degrees=rot_tol
        )
        flip_valid = is_flip_valid(piece_type, is_flipped, target_transform)
        return ValidationResult(position_valid, rotation_valid, flip_valid)

    def validate_observation(
        self,
        observation: Observation,
        target: TargetPiece,
        position_tolerance: Optional[float] = None,
        rotation_tolerance: Optional[float] = None,
    ) -> ValidationResult:
        """Per-criterion verdict for an observation; all-invalid on a type mismatch."""
        if observation.piece_type != target.piece_type:
            return ValidationResult.invalid()

        target_position = render_position(raw_position(target.transform))
        result = self.validate_with_features(
            piece_position=observation.position,
            piece_feature_angle=piece_feature_angle(
                observation.rotation_radians, observation.piece_type, observation.is_flipped
            ),
            target_feature_angle=target_feature_angle(target.transform, target.piece_type),
            piece_type=observation.piece_type,
            is_flipped=observation.is_flipped,
            target_transform=target.transform,
            target_world_position=target_position,
            position_tolerance=position_tolerance,
            rotation_tolerance=rotation_tolerance,
        )
        logger.debug(f"{observation.piece_id} vs {target.id}: {result}")
        return result

    def validate(
        self,
        observation: Observation,
        target: TargetPiece,
        position_tolerance: Optional[float] = None,
        rotation_tolerance: Optional[float] = None,
    ) -> bool:
        return self.validate_observation(
            observation, target,
            position_tolerance=position_tolerance,
            rotation_tolerance=rotation_tolerance,
        ).is_valid

    def find_matching_target(
        self,
        observation: Observation,
        puzzle: Puzzle,
        exclude: Container[str] = (),
        position_tolerance: Optional[float] = None,
        rotation_tolerance: Optional[float] = None,
    ) -> Optional[TargetPiece]:
        """First target, in declared order, that the observation validates against."""
        for target in puzzle.targets_of_type(observation.piece_type):
            if target.id in exclude:
                continue
            if self.validate(observation, target, position_tolerance, rotation_tolerance):
                return target
        return None
