"""Utility functions package."""

from .geometry import (
    RENDER_CONVENTION, normalize_angle, raw_angle, raw_position, render_angle,
    render_position, raw_angle_from_render, raw_position_from_render, raw_transform,
    render_components, describe_transform, distance, centroid, apply_homography,
)

__all__ = [
    "RENDER_CONVENTION", "normalize_angle", "raw_angle", "raw_position", "render_angle",
    "render_position", "raw_angle_from_render", "raw_position_from_render", "raw_transform",
    "render_components", "describe_transform", "distance", "centroid", "apply_homography",
]
