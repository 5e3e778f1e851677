"""Pose mapping between puzzle/CV model space and rendering space.

Model space (puzzle definitions, CV output) is Y-down with clockwise-positive
angles when viewed on screen. Rendering space is Y-up with counter-clockwise
positive angles. The relationship between the two is held once in
``RENDER_CONVENTION``; every conversion below reads it, so flipping the
rendering layer later only means changing that constant.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple
import math

import cv2
import numpy as np

from ..core.entities import AffineTransform, Point

TWO_PI = 2.0 * math.pi
# |w| at or below this leaves a point untouched by a homography
HOMOGRAPHY_EPSILON = 1e-4


@dataclass(frozen=True)
class SpaceConvention:
    """Sign applied to the Y axis and to angles going from model to rendering space."""
    y_sign: float
    angle_sign: float


RENDER_CONVENTION = SpaceConvention(y_sign=-1.0, angle_sign=-1.0)


def normalize_angle(angle: float) -> float:
    """Wrap an angle in radians into the half-open range (-pi, pi]."""
    normalized = math.fmod(angle, TWO_PI)
    if normalized > math.pi:
        normalized -= TWO_PI
    elif normalized <= -math.pi:
        normalized += TWO_PI
    return normalized


# --- model space extraction ---

def raw_angle(transform: AffineTransform) -> float:
    return math.atan2(transform.b, transform.a)


def raw_position(transform: AffineTransform) -> Point:
    return (transform.tx, transform.ty)


# --- model -> rendering ---

def render_angle(raw: float) -> float:
    return RENDER_CONVENTION.angle_sign * raw


def render_position(raw: Point) -> Point:
    return (raw[0], RENDER_CONVENTION.y_sign * raw[1])


# --- rendering -> model ---

def raw_angle_from_render(angle: float) -> float:
    return angle / RENDER_CONVENTION.angle_sign


def raw_position_from_render(position: Point) -> Point:
    return (position[0], position[1] / RENDER_CONVENTION.y_sign)


def raw_transform(angle: float, position: Point) -> AffineTransform:
    """Rotation by ``angle`` followed by translation to ``position`` (model space)."""
    return AffineTransform.from_rotation(angle, tx=position[0], ty=position[1])


def render_components(transform: AffineTransform) -> Tuple[float, Point]:
    """(angle, position) of a model-space transform, in rendering space."""
    return (render_angle(raw_angle(transform)), render_position(raw_position(transform)))


def describe_transform(transform: AffineTransform) -> str:
    """Debug string with both model and rendering representations."""
    angle, position = raw_angle(transform), raw_position(transform)
    r_angle, r_position = render_components(transform)
    return (
        f"raw: angle={math.degrees(angle):.1f}° pos=({position[0]:.1f}, {position[1]:.1f}) | "
        f"render: angle={math.degrees(r_angle):.1f}° pos=({r_position[0]:.1f}, {r_position[1]:.1f})"
    )


# --- plain geometry ---

def distance(p1: Point, p2: Point) -> float:
    return math.hypot(p1[0] - p2[0], p1[1] - p2[1])


def centroid(vertices: Sequence[Point]) -> Point:
    """Mean of the vertices; origin for an empty polygon."""
    if len(vertices) == 0:
        return (0.0, 0.0)
    cx, cy = np.asarray(vertices, dtype=float).mean(axis=0)
    return (float(cx), float(cy))


def apply_homography(point: Point, homography: Optional[Sequence[Sequence[float]]]) -> Point:
    """Project a point through a 3x3 homography.

    Invalid matrices and points that map to (near) infinity are returned unchanged.
    """
    if homography is None:
        return point
    H = np.asarray(homography, dtype=np.float64)
    if H.shape != (3, 3):
        return point
    w = H[2, 0] * point[0] + H[2, 1] * point[1] + H[2, 2]
    if abs(w) <= HOMOGRAPHY_EPSILON:
        return point
    src = np.array([[[point[0], point[1]]]], dtype=np.float64)
    dst = cv2.perspectiveTransform(src, H)
    return (float(dst[0, 0, 0]), float(dst[0, 0, 1]))
