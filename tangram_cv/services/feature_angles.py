"""Feature angles: rotations expressed in a frame shared by pieces and targets.

Placed pieces and puzzle targets are drawn from differently oriented local
geometry (a triangle piece's hypotenuse sits at 135°, a target's at 45°), so
their raw rotations are not comparable. Adding the per-type canonical offset
moves both into the same reference frame.
"""
from __future__ import annotations
import math

from ..core.entities import AffineTransform, PieceType
from ..utils.geometry import normalize_angle, raw_angle, render_angle


def canonical_piece_angle(piece_type: PieceType) -> float:
    return 3.0 * math.pi / 4.0 if piece_type.is_triangle else 0.0


def canonical_target_angle(piece_type: PieceType) -> float:
    return math.pi / 4.0 if piece_type.is_triangle else 0.0


def _signed_piece_offset(piece_type: PieceType, is_flipped: bool) -> float:
    offset = canonical_piece_angle(piece_type)
    return -offset if is_flipped else offset


def piece_feature_angle(rotation: float, piece_type: PieceType, is_flipped: bool) -> float:
    """Feature angle of a placed piece from its rendering-space rotation."""
    return normalize_angle(rotation + _signed_piece_offset(piece_type, is_flipped))


def target_feature_angle(transform: AffineTransform, piece_type: PieceType) -> float:
    """Feature angle of a target from its model-space transform."""
    rotation = render_angle(raw_angle(transform))
    return normalize_angle(rotation + canonical_target_angle(piece_type))


def is_transform_flipped(transform: AffineTransform) -> bool:
    """A transform is mirrored when its determinant is negative."""
    return transform.determinant < 0


def expected_piece_rotation(transform: AffineTransform, piece_type: PieceType, is_flipped: bool) -> float:
    """Rendering-space rotation a piece needs for its feature angle to match the target's."""
    target_rotation = render_angle(raw_angle(transform))
    return normalize_angle(
        target_rotation + canonical_target_angle(piece_type) - _signed_piece_offset(piece_type, is_flipped)
    )
