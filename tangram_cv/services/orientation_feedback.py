"""Orientation-only feedback for pieces not yet anchored to a target.

Before a piece is bound to a specific target, every same-type target is a
candidate. The candidate closest in rotation wins and decides the feedback:

1. rotation and flip both correct -> target marked oriented, success pulse
   (only when the piece was not already valid)
2. chiral piece with the wrong flip -> "try flipping"
3. rotation off by more than the orientation tolerance but less than the
   nudge upper bound -> "try rotating" with a rotation demo
4. anything else -> no nudge
"""
from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from ..config.settings import Config, ValidationTolerances
from ..core.entities import (
    FlipDemoHint, NudgeContent, NudgeLevel, Observation, OrientationFeedback,
    PieceValidationState, PulseHint, Puzzle, RotationDemoHint, TargetPiece,
)
from .feature_angles import expected_piece_rotation, piece_feature_angle, target_feature_angle
from .piece_validator import is_flip_valid
from .rotation_validator import is_rotation_valid, rotation_difference_to_nearest

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "✅ Good job!"
FLIP_MESSAGE = "🔁 Try flipping"
ROTATE_MESSAGE = "🔄 Try rotating"


@dataclass(slots=True)
class _Candidate:
    target: TargetPiece
    error_deg: float
    feature_angle: float


class OrientationFeedbackGenerator:
    """Picks the best-oriented candidate target per observation and builds nudges."""

    def __init__(self, cfg: Optional[Config] = None):
        self.cfg = cfg or Config()

    def best_candidate(self, observation: Observation, puzzle: Puzzle) -> Optional[_Candidate]:
        """Closest same-type target by symmetry-aware rotation error.

        Uses a strict comparison, so when two targets are equally close the one
        declared first in the puzzle wins.
        """
        feature = piece_feature_angle(observation.rotation_radians, observation.piece_type, observation.is_flipped)
        best: Optional[_Candidate] = None
        for target in puzzle.targets_of_type(observation.piece_type):
            target_feature = target_feature_angle(target.transform, target.piece_type)
            diff = rotation_difference_to_nearest(
                feature, target_feature, observation.piece_type, observation.is_flipped
            )
            error_deg = math.degrees(abs(diff))
            if best is None or error_deg < best.error_deg:
                best = _Candidate(target=target, error_deg=error_deg, feature_angle=target_feature)
        return best

    def compute(
        self,
        observations: Iterable[Observation],
        puzzle: Puzzle,
        current_piece_states: Optional[Mapping[str, PieceValidationState]] = None,
        tolerances: Optional[ValidationTolerances] = None,
    ) -> OrientationFeedback:
        """Oriented target ids and at most one nudge per observed piece."""
        tolerances = tolerances or self.cfg.tolerances()
        states = current_piece_states or {}
        feedback = OrientationFeedback()

        for obs in observations:
            picked = self.best_candidate(obs, puzzle)
            if picked is None:
                continue

            flip_ok = is_flip_valid(obs.piece_type, obs.is_flipped, picked.target.transform)
            rotation_ok = is_rotation_valid(
                piece_feature_angle(obs.rotation_radians, obs.piece_type, obs.is_flipped),
                picked.feature_angle,
                obs.piece_type,
                obs.is_flipped,
                tolerance_degrees=tolerances.orientation_deg,
            )

            nudge: Optional[NudgeContent] = None
            if rotation_ok and flip_ok:
                feedback.oriented_targets.add(picked.target.id)
                previous = states.get(obs.piece_id)
                if previous is None or not previous.is_valid:
                    nudge = self._success_nudge()
            elif obs.piece_type.is_chiral and not flip_ok:
                nudge = self._flip_nudge()
            elif tolerances.orientation_deg < picked.error_deg < tolerances.nudge_upper_deg:
                nudge = self._rotate_nudge(obs, picked.target)

            if nudge is not None:
                feedback.piece_nudges[obs.piece_id] = nudge
            logger.debug(
                f"{obs.piece_id} -> {picked.target.id} error={picked.error_deg:.1f}° "
                f"flip_ok={flip_ok} rotation_ok={rotation_ok} nudge={nudge.message if nudge else None}"
            )

        return feedback

    def _success_nudge(self) -> NudgeContent:
        return NudgeContent(
            level=NudgeLevel.GENTLE,
            message=SUCCESS_MESSAGE,
            visual_hint=PulseHint(intensity=self.cfg.success_pulse_intensity),
            duration=self.cfg.success_pulse_duration,
        )

    def _flip_nudge(self) -> NudgeContent:
        return NudgeContent(
            level=NudgeLevel.SPECIFIC,
            message=FLIP_MESSAGE,
            visual_hint=FlipDemoHint(),
            duration=self.cfg.corrective_nudge_duration,
        )

    def _rotate_nudge(self, obs: Observation, target: TargetPiece) -> NudgeContent:
        desired = expected_piece_rotation(target.transform, obs.piece_type, obs.is_flipped)
        return NudgeContent(
            level=NudgeLevel.SPECIFIC,
            message=ROTATE_MESSAGE,
            visual_hint=RotationDemoHint(current=obs.rotation_radians, target=desired),
            duration=self.cfg.corrective_nudge_duration,
        )
