"""Pytest configuration and shared fixtures for the tangram CV validation core.

Provides puzzles, observations, detector results and configuration objects
shared by the unit, integration and regression suites.
"""
import os
import sys
import json
import math
import logging
import tempfile
from pathlib import Path

import pytest

# Add the project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from tangram_cv.config.settings import Config, ValidationTolerances
from tangram_cv.core.entities import (
    AffineTransform, BoundingBox, CVFrameEvent, CVPieceEvent, CVPose, Detection, DetectionResult,
    IntegratedPose, IntegratedResult, Observation, PieceType, Puzzle, TargetPiece,
)


# Configure logging for tests
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler()]
)


@pytest.fixture(scope="session")
def project_root():
    return PROJECT_ROOT


@pytest.fixture
def temp_dir():
    """Provide a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def default_config():
    return Config()


@pytest.fixture
def config_file(temp_dir):
    """Write a config.json with a few overrides and return its path."""
    config_data = {
        "position_tolerance": 20.0,
        "rotation_tolerance_deg": 10.0,
        "difficulty": "hard",
        "custom_flag": True,
    }
    path = temp_dir / "config.json"
    with open(path, "w") as f:
        json.dump(config_data, f, indent=2)
    return path


@pytest.fixture
def strict_tolerances():
    return ValidationTolerances(position=20.0, rotation_deg=10.0, orientation_deg=10.0, nudge_upper_deg=30.0)


@pytest.fixture
def flipped_transform():
    """Mirror across the x axis at (40, 60): determinant -1, raw angle 0."""
    return AffineTransform(a=1.0, b=0.0, c=0.0, d=-1.0, tx=40.0, ty=60.0)


@pytest.fixture
def sample_puzzle(flipped_transform):
    """Square, two small triangles, and a mirrored parallelogram."""
    return Puzzle(
        id="house",
        name="House",
        target_pieces=[
            TargetPiece("sq", PieceType.SQUARE, AffineTransform.from_rotation(0.0, tx=100.0, ty=200.0)),
            TargetPiece("st_a", PieceType.SMALL_TRIANGLE_1, AffineTransform.from_rotation(0.0, tx=300.0, ty=100.0)),
            TargetPiece("st_b", PieceType.SMALL_TRIANGLE_1,
                        AffineTransform.from_rotation(-math.pi / 2, tx=500.0, ty=100.0)),
            TargetPiece("para", PieceType.PARALLELOGRAM, flipped_transform),
        ],
    )


@pytest.fixture
def make_observation():
    """Factory for observations with sensible defaults."""
    def _make(piece_type=PieceType.SQUARE, position=(0.0, 0.0), rotation_degrees=0.0,
              is_flipped=False, piece_id="piece"):
        return Observation(
            piece_id=piece_id,
            piece_type=piece_type,
            position=position,
            rotation_degrees=rotation_degrees,
            is_flipped=is_flipped,
        )
    return _make


@pytest.fixture
def bbox_detection_result():
    """Two squares and one parallelogram reported as bounding boxes only."""
    return DetectionResult(
        detections=[
            Detection(class_id=1, score=0.9, bbox=BoundingBox(0.5, 0.5, 0.1, 0.1)),
            Detection(class_id=1, score=0.8, bbox=BoundingBox(0.1, 0.2, 0.1, 0.1)),
            Detection(class_id=0, score=0.7, bbox=BoundingBox(0.3, 0.3, 0.2, 0.1)),
        ],
        frame_number=1,
    )


@pytest.fixture
def integrated_detection_result():
    """Integrated result with a posed square and a polygon-only medium triangle."""
    return DetectionResult(
        integrated=IntegratedResult(
            homography=[1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0],
            scale=2.5,
            poses={1: IntegratedPose(theta=math.pi / 2, tx=0.5, ty=0.25)},
            refined_polygons={4: [0.0, 0.0, 0.3, 0.0, 0.0, 0.3]},
        ),
        frame_number=7,
    )


@pytest.fixture
def make_frame():
    """Factory for CV frames of pieces given as (class_id, rotation_degrees, (x, y))."""
    def _make(pieces, frame_number=1):
        objects = [
            CVPieceEvent(name=f"piece_{i}", class_id=cid, pose=CVPose(rot, (float(x), float(y))))
            for i, (cid, rot, (x, y)) in enumerate(pieces)
        ]
        return CVFrameEvent(objects=objects, frame_number=frame_number)
    return _make


# Test markers and utilities
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "regression: mark test as regression test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


def pytest_collection_modifyitems(config, items):
    """Add markers based on test file location."""
    for item in items:
        path = str(item.path)
        if f"{os.sep}integration{os.sep}" in path:
            item.add_marker(pytest.mark.integration)
        elif f"{os.sep}unit{os.sep}" in path:
            item.add_marker(pytest.mark.unit)
