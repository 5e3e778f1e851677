"""Symmetry-aware rotation comparison for tangram pieces.

A piece with rotational symmetry of fold N looks identical at ``target + k*2pi/N``
for every k in [0, N). Comparisons consider all of those equivalent targets and
report the difference to the nearest one.

All angles are in radians except ``tolerance_degrees``.
"""
from __future__ import annotations
import logging
import math

from ..core.entities import PieceType
from ..utils.geometry import normalize_angle

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE_DEGREES = 25.0

__all__ = [
    "normalize_angle", "symmetry_fold", "nearest_valid_rotation",
    "rotation_difference_to_nearest", "is_rotation_valid",
]


def symmetry_fold(piece_type: PieceType, is_flipped: bool) -> int:
    """Rotational symmetry order of a piece.

    Square: 4. Right triangles: 1 (the right-angle corner makes every
    orientation unique). Parallelogram: 2, dropping to 1 once flipped.
    """
    if piece_type is PieceType.SQUARE:
        return 4
    if piece_type is PieceType.PARALLELOGRAM:
        return 1 if is_flipped else 2
    return 1


def nearest_valid_rotation(current: float, target: float, piece_type: PieceType, is_flipped: bool) -> float:
    """The equivalent of ``target`` closest to ``current``.

    Candidates are visited in increasing k and replaced only on a strictly
    smaller difference, so an exact tie (difference of pi/N) resolves to the
    smaller k.
    """
    fold = symmetry_fold(piece_type, is_flipped)
    if fold == 1:
        return target

    step = 2.0 * math.pi / fold
    closest = target
    min_difference = abs(normalize_angle(current - target))
    for k in range(1, fold):
        equivalent = target + k * step
        diff = abs(normalize_angle(current - equivalent))
        if diff < min_difference:
            min_difference = diff
            closest = equivalent
    return closest


def rotation_difference_to_nearest(current: float, target: float, piece_type: PieceType, is_flipped: bool) -> float:
    """Signed difference (current - nearest equivalent target), in (-pi, pi]."""
    nearest = nearest_valid_rotation(current, target, piece_type, is_flipped)
    return normalize_angle(current - nearest)


def is_rotation_valid(
    current: float,
    target: float,
    piece_type: PieceType,
    is_flipped: bool,
    tolerance_degrees: float = DEFAULT_TOLERANCE_DEGREES,
) -> bool:
    """True when the symmetry-aware difference is strictly inside the tolerance."""
    diff_deg = math.degrees(abs(rotation_difference_to_nearest(current, target, piece_type, is_flipped)))
    valid = diff_deg < tolerance_degrees
    logger.debug(
        "rotation check %s fold=%d current=%.1f° target=%.1f° diff=%.1f° tol=%.1f° -> %s",
        piece_type.value, symmetry_fold(piece_type, is_flipped),
        math.degrees(current), math.degrees(target), diff_deg, tolerance_degrees, valid,
    )
    return valid
