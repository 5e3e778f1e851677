"""Per-frame validation pipeline orchestration."""
from __future__ import annotations
import logging
import time
from typing import Callable, Dict, List, Optional, Set

from ..config.settings import Config, ValidationTolerances
from ..core.entities import (
    CVFrameEvent, DetectionResult, FrameValidationState, Observation, PieceValidationState, Puzzle,
)
from ..core.logging_config import CorrelationContext
from .cv_converter import observations_from_frame
from .cv_events_adapter import CVEventsAdapter
from .orientation_feedback import OrientationFeedbackGenerator
from .piece_validator import PieceValidator

logger = logging.getLogger(__name__)

Listener = Callable[[FrameValidationState], None]


class ValidationPipeline:
    """Evaluates one CV frame at a time against the active puzzle.

    Frames must arrive in order. A numbered frame whose number is not newer
    than the last numbered one evaluated is dropped, never merged. Frames
    without a number are always evaluated, in arrival order. Piece states
    from the previous frame feed the feedback generator so a success is only
    announced once.
    """

    def __init__(self, puzzle: Puzzle, cfg: Optional[Config] = None,
                 validator: Optional[PieceValidator] = None,
                 feedback_generator: Optional[OrientationFeedbackGenerator] = None,
                 adapter: Optional[CVEventsAdapter] = None):
        self.cfg = cfg or Config()
        self.puzzle = puzzle
        self.validator = validator or PieceValidator.from_config(self.cfg)
        self.feedback_generator = feedback_generator or OrientationFeedbackGenerator(self.cfg)
        self.adapter = adapter or CVEventsAdapter(self.cfg)
        self.tolerances = self.cfg.tolerances()
        self._listeners: List[Listener] = []
        self._piece_states: Dict[str, PieceValidationState] = {}
        self._last_frame_number: Optional[int] = None
        self._sequence = 0

    @property
    def piece_states(self) -> Dict[str, PieceValidationState]:
        return dict(self._piece_states)

    @property
    def last_frame_number(self) -> Optional[int]:
        return self._last_frame_number

    def add_listener(self, cb: Listener) -> None:
        self._listeners.append(cb)

    def remove_listener(self, cb: Listener) -> None:
        if cb in self._listeners:
            self._listeners.remove(cb)

    def set_puzzle(self, puzzle: Puzzle) -> None:
        logger.info(f"Switching puzzle {self.puzzle.id} -> {puzzle.id}")
        self.puzzle = puzzle
        self.reset()

    def reset(self) -> None:
        """Forget piece states, frame ordering and tracked identities."""
        self._piece_states = {}
        self._last_frame_number = None
        self._sequence = 0
        self.adapter.reset()

    def process_detections(self, result: DetectionResult,
                           tolerances: Optional[ValidationTolerances] = None) -> Optional[FrameValidationState]:
        """Run raw detector output through the adapter, then validate it."""
        return self.process_frame(self.adapter.process(result), tolerances)

    def process_frame(self, frame: CVFrameEvent,
                      tolerances: Optional[ValidationTolerances] = None) -> Optional[FrameValidationState]:
        if self._is_stale(frame.frame_number):
            logger.debug(
                f"Discarding stale frame {frame.frame_number} (last processed {self._last_frame_number})"
            )
            return None

        self._sequence += 1
        label = frame.frame_number if frame.frame_number is not None else f"seq{self._sequence}"
        with CorrelationContext(f"frame-{label}"):
            start = time.perf_counter()
            tol = tolerances or self.tolerances
            observations = observations_from_frame(
                frame,
                needs_camera_inversion=self.cfg.needs_camera_inversion,
                visual_scale=self.cfg.observation_scale,
            )
            states = self._bind_observations(observations, tol)
            feedback = self.feedback_generator.compute(
                observations, self.puzzle, current_piece_states=self._piece_states, tolerances=tol
            )
            latency_ms = (time.perf_counter() - start) * 1000.0

            state = FrameValidationState(
                frame_number=frame.frame_number,
                observations=observations,
                piece_states=states,
                feedback=feedback,
                total_targets=len(self.puzzle.target_pieces),
                latency_ms=latency_ms,
            )
            self._piece_states = states
            if frame.frame_number is not None:
                self._last_frame_number = frame.frame_number

            logger.debug(
                f"{len(observations)} observations, {len(state.bound_targets)}/{state.total_targets} "
                f"targets bound, {len(feedback.piece_nudges)} nudges in {latency_ms:.1f} ms"
            )
            if state.is_complete:
                logger.info(f"Puzzle {self.puzzle.id} completed at frame {label}")
            self._notify(state)
        return state

    def _is_stale(self, frame_number: Optional[int]) -> bool:
        return (frame_number is not None and self._last_frame_number is not None
                and frame_number <= self._last_frame_number)

    def _bind_observations(self, observations: List[Observation],
                           tol: ValidationTolerances) -> Dict[str, PieceValidationState]:
        """Bind each observation to the first target it validates against; a target binds once."""
        bound: Set[str] = set()
        states: Dict[str, PieceValidationState] = {}
        for obs in observations:
            target = self.validator.find_matching_target(
                obs, self.puzzle, exclude=bound,
                position_tolerance=tol.position,
                rotation_tolerance=tol.rotation_deg,
            )
            if target is not None:
                bound.add(target.id)
                states[obs.piece_id] = PieceValidationState(
                    piece_id=obs.piece_id, is_valid=True, confidence=1.0, target_id=target.id
                )
            else:
                states[obs.piece_id] = PieceValidationState(piece_id=obs.piece_id, is_valid=False)
        return states

    def _notify(self, state: FrameValidationState) -> None:
        for cb in list(self._listeners):
            try:
                cb(state)
            except Exception:
                logger.exception(f"Validation listener {cb!r} failed on frame {state.frame_number}")


__all__ = ["ValidationPipeline"]
