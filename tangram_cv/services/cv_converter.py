"""Conversion of CV frame events into model-space transforms and observations."""
from __future__ import annotations
import logging
import math
from typing import List, Optional, Sequence

from ..core.entities import AffineTransform, CVFrameEvent, CVPieceEvent, Observation, PieceType, Point
from ..utils.geometry import (
    apply_homography, describe_transform, normalize_angle, raw_transform, render_components,
)

logger = logging.getLogger(__name__)

CAMERA_INVERSION_ANGLE = math.pi


def convert_to_raw_transform(
    rotation_degrees: float,
    translation: Sequence[float],
    homography: Optional[Sequence[Sequence[float]]] = None,
    needs_camera_inversion: bool = False,
    visual_scale: float = 1.0,
) -> AffineTransform:
    """Build a model-space transform from a CV rotation and translation.

    Args:
        rotation_degrees: Rotation reported by the detector
        translation: ``[x, y]`` reported by the detector
        homography: Optional 3x3 matrix mapping image points onto the play plane
        needs_camera_inversion: Camera is mounted upside down (adds 180° and
            reflects the position through the origin)
        visual_scale: Multiplier applied to the position last

    Returns:
        AffineTransform rotating first, then translating.
    """
    rotation = math.radians(rotation_degrees)
    point: Point = (float(translation[0]), float(translation[1]))

    if homography is not None:
        point = apply_homography(point, homography)

    if needs_camera_inversion:
        rotation = normalize_angle(rotation + CAMERA_INVERSION_ANGLE)
        point = (-point[0], -point[1])

    point = (point[0] * visual_scale, point[1] * visual_scale)
    return raw_transform(rotation, point)


def observation_from_event(
    event: CVPieceEvent,
    homography: Optional[Sequence[Sequence[float]]] = None,
    needs_camera_inversion: bool = False,
    visual_scale: float = 1.0,
    is_flipped: bool = False,
) -> Optional[Observation]:
    """Rendering-space observation for one CV object; None for unknown classes."""
    piece_type = PieceType.from_class_id(event.class_id)
    if piece_type is None:
        logger.debug(f"Skipping {event.name}: unknown class id {event.class_id}")
        return None

    transform = convert_to_raw_transform(
        event.pose.rotation_degrees,
        event.pose.translation,
        homography=homography,
        needs_camera_inversion=needs_camera_inversion,
        visual_scale=visual_scale,
    )
    angle, position = render_components(transform)
    logger.debug(f"{event.name}: {describe_transform(transform)}")
    return Observation(
        piece_id=event.name,
        piece_type=piece_type,
        position=position,
        rotation_degrees=math.degrees(angle),
        is_flipped=is_flipped,
    )


def observations_from_frame(
    frame: CVFrameEvent,
    needs_camera_inversion: bool = False,
    visual_scale: float = 1.0,
    use_homography: bool = False,
) -> List[Observation]:
    """Observations for every recognised object in the frame, in frame order.

    Frame coordinates are already in canvas pixels, so the frame's homography
    is only applied when ``use_homography`` is set.
    """
    homography = frame.homography if use_homography else None
    observations = []
    for event in frame.objects:
        obs = observation_from_event(
            event,
            homography=homography,
            needs_camera_inversion=needs_camera_inversion,
            visual_scale=visual_scale,
        )
        if obs is not None:
            observations.append(obs)
    return observations


__all__ = ["convert_to_raw_transform", "observation_from_event", "observations_from_frame"]
