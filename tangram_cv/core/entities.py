"""Domain entities (data-only structures) used across services."""
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple, Union
import math

import numpy as np

from .constants import CV_CLASS_NAMES, UNKNOWN_CV_CLASS_NAME
from .exceptions import DetectionError, ValidationError

Point = Tuple[float, float]


class PieceType(Enum):
    """One member per physical tangram shape."""
    SMALL_TRIANGLE_1 = "smallTriangle1"
    SMALL_TRIANGLE_2 = "smallTriangle2"
    MEDIUM_TRIANGLE = "mediumTriangle"
    LARGE_TRIANGLE_1 = "largeTriangle1"
    LARGE_TRIANGLE_2 = "largeTriangle2"
    SQUARE = "square"
    PARALLELOGRAM = "parallelogram"

    @property
    def is_triangle(self) -> bool:
        return self not in (PieceType.SQUARE, PieceType.PARALLELOGRAM)

    @property
    def is_chiral(self) -> bool:
        """Only the parallelogram has a distinct mirror image."""
        return self is PieceType.PARALLELOGRAM

    @property
    def display_name(self) -> str:
        if self in (PieceType.SMALL_TRIANGLE_1, PieceType.SMALL_TRIANGLE_2):
            return "Small Triangle"
        if self in (PieceType.LARGE_TRIANGLE_1, PieceType.LARGE_TRIANGLE_2):
            return "Large Triangle"
        if self is PieceType.MEDIUM_TRIANGLE:
            return "Medium Triangle"
        return self.value.capitalize()

    @property
    def class_id(self) -> int:
        return _CLASS_ID_BY_TYPE[self]

    @property
    def cv_name(self) -> str:
        return CV_CLASS_NAMES[self.class_id]

    @classmethod
    def from_class_id(cls, class_id: int) -> Optional["PieceType"]:
        """Map a detector class id to a piece type (None for unknown ids)."""
        return _TYPE_BY_CLASS_ID.get(class_id)


_TYPE_BY_CLASS_ID: Dict[int, PieceType] = {
    0: PieceType.PARALLELOGRAM,
    1: PieceType.SQUARE,
    2: PieceType.LARGE_TRIANGLE_1,
    3: PieceType.LARGE_TRIANGLE_2,
    4: PieceType.MEDIUM_TRIANGLE,
    5: PieceType.SMALL_TRIANGLE_1,
    6: PieceType.SMALL_TRIANGLE_2,
}
_CLASS_ID_BY_TYPE: Dict[PieceType, int] = {t: cid for cid, t in _TYPE_BY_CLASS_ID.items()}


def cv_name_for_class(class_id: int) -> str:
    return CV_CLASS_NAMES.get(class_id, UNKNOWN_CV_CLASS_NAME)


@dataclass(slots=True, frozen=True)
class AffineTransform:
    """2D affine transform in puzzle-definition (model) space.

    Follows the row-vector convention: ``x' = a*x + c*y + tx``,
    ``y' = b*x + d*y + ty``.
    """
    a: float = 1.0
    b: float = 0.0
    c: float = 0.0
    d: float = 1.0
    tx: float = 0.0
    ty: float = 0.0

    @classmethod
    def identity(cls) -> "AffineTransform":
        return cls()

    @classmethod
    def from_rotation(cls, angle: float, tx: float = 0.0, ty: float = 0.0) -> "AffineTransform":
        cos_t, sin_t = math.cos(angle), math.sin(angle)
        return cls(a=cos_t, b=sin_t, c=-sin_t, d=cos_t, tx=tx, ty=ty)

    @classmethod
    def from_matrix(cls, matrix: Any) -> "AffineTransform":
        """Build from a 2x3 or 3x3 column-vector matrix ``[[a, c, tx], [b, d, ty]]``."""
        m = np.asarray(matrix, dtype=float)
        if m.shape not in ((2, 3), (3, 3)):
            raise ValidationError(f"Affine matrix must be 2x3 or 3x3, got shape {m.shape}")
        return cls(a=float(m[0, 0]), b=float(m[1, 0]), c=float(m[0, 1]),
                   d=float(m[1, 1]), tx=float(m[0, 2]), ty=float(m[1, 2]))

    def as_matrix(self) -> np.ndarray:
        return np.array([[self.a, self.c, self.tx],
                         [self.b, self.d, self.ty],
                         [0.0, 0.0, 1.0]])

    @property
    def determinant(self) -> float:
        return self.a * self.d - self.b * self.c

    def concatenating(self, other: "AffineTransform") -> "AffineTransform":
        """Apply ``self`` first, then ``other``."""
        return AffineTransform.from_matrix(other.as_matrix() @ self.as_matrix())


@dataclass(slots=True)
class Pose:
    position: Point
    rotation: float  # radians, rendering-space convention
    is_flipped: bool = False


@dataclass(slots=True, frozen=True)
class TargetPiece:
    id: str
    piece_type: PieceType
    transform: AffineTransform


@dataclass(slots=True)
class Puzzle:
    id: str
    name: str
    target_pieces: List[TargetPiece] = field(default_factory=list)
    category: Optional[str] = None

    def __post_init__(self):
        seen: Set[str] = set()
        for target in self.target_pieces:
            if target.id in seen:
                raise ValidationError(f"Duplicate target id '{target.id}' in puzzle '{self.id}'")
            seen.add(target.id)

    def targets_of_type(self, piece_type: PieceType) -> List[TargetPiece]:
        """Targets of the given type, in declared order."""
        return [t for t in self.target_pieces if t.piece_type == piece_type]

    def target(self, target_id: str) -> Optional[TargetPiece]:
        return next((t for t in self.target_pieces if t.id == target_id), None)


@dataclass(slots=True)
class Observation:
    """A piece seen in one vision frame (a.k.a. placed piece)."""
    piece_id: str
    piece_type: PieceType
    position: Point  # rendering space
    rotation_degrees: float  # rendering space
    is_flipped: bool = False

    @property
    def rotation_radians(self) -> float:
        return math.radians(self.rotation_degrees)

    def as_pose(self) -> Pose:
        return Pose(position=self.position, rotation=self.rotation_radians, is_flipped=self.is_flipped)


@dataclass(slots=True, frozen=True)
class ValidationResult:
    position_valid: bool
    rotation_valid: bool
    flip_valid: bool

    @property
    def is_valid(self) -> bool:
        return self.position_valid and self.rotation_valid and self.flip_valid

    @classmethod
    def invalid(cls) -> "ValidationResult":
        return cls(False, False, False)


class NudgeLevel(IntEnum):
    NONE = 0
    VISUAL = 1      # Color/opacity change only
    GENTLE = 2      # Generic encouragement
    SPECIFIC = 3    # Specific action like "Flip this piece"
    DIRECTED = 4    # Arrow showing direction
    SOLUTION = 5    # Ghost piece showing exact placement


@dataclass(slots=True, frozen=True)
class PulseHint:
    intensity: float


@dataclass(slots=True, frozen=True)
class FlipDemoHint:
    pass


@dataclass(slots=True, frozen=True)
class RotationDemoHint:
    current: float  # radians, rendering space
    target: float   # radians, rendering space


VisualHint = Union[PulseHint, FlipDemoHint, RotationDemoHint]


@dataclass(slots=True, frozen=True)
class NudgeContent:
    level: NudgeLevel
    message: str
    visual_hint: Optional[VisualHint]
    duration: float  # seconds


@dataclass(slots=True, frozen=True)
class PieceValidationState:
    piece_id: str
    is_valid: bool
    confidence: float = 0.0
    target_id: Optional[str] = None


@dataclass(slots=True)
class OrientationFeedback:
    oriented_targets: Set[str] = field(default_factory=set)
    piece_nudges: Dict[str, NudgeContent] = field(default_factory=dict)


@dataclass(slots=True)
class FrameValidationState:
    """Everything the validation pipeline concluded about one frame."""
    frame_number: Optional[int]
    observations: List[Observation]
    piece_states: Dict[str, PieceValidationState]
    feedback: OrientationFeedback
    total_targets: int
    latency_ms: float = 0.0

    @property
    def bound_targets(self) -> Dict[str, str]:
        """target id -> piece id for every validated piece."""
        return {s.target_id: s.piece_id for s in self.piece_states.values() if s.is_valid and s.target_id}

    @property
    def is_complete(self) -> bool:
        return self.total_targets > 0 and len(self.bound_targets) == self.total_targets


# ---------------------------------------------------------------------------
# Detection pipeline boundary (typed contract for the third-party detector)
# ---------------------------------------------------------------------------

@dataclass(slots=True, frozen=True)
class BoundingBox:
    """Axis-aligned box in normalized [0, 1] image coordinates (top-left origin)."""
    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> Point:
        return (self.x + self.width / 2.0, self.y + self.height / 2.0)

    def corners(self) -> List[Point]:
        x1, y1 = self.x + self.width, self.y + self.height
        return [(self.x, self.y), (x1, self.y), (x1, y1), (self.x, y1)]


@dataclass(slots=True, frozen=True)
class Detection:
    class_id: int
    score: float
    bbox: BoundingBox


@dataclass(slots=True, frozen=True)
class IntegratedPose:
    theta: float = 0.0  # radians
    tx: float = 0.0
    ty: float = 0.0


@dataclass(slots=True)
class IntegratedResult:
    """Pose/polygon output of the integrated tangram solver."""
    homography: Sequence[float]  # row-major 3x3, 9 values
    scale: float = 0.0
    poses: Dict[int, IntegratedPose] = field(default_factory=dict)
    refined_polygons: Dict[int, List[float]] = field(default_factory=dict)  # flat [x0, y0, x1, y1, ...]

    def homography_matrix(self) -> Optional[List[List[float]]]:
        if len(self.homography) != 9:
            return None
        h = [float(v) for v in self.homography]
        return [h[0:3], h[3:6], h[6:9]]


@dataclass(slots=True)
class DetectionResult:
    detections: List[Detection] = field(default_factory=list)
    integrated: Optional[IntegratedResult] = None
    frame_number: Optional[int] = None  # None: not numbered by the detector
    timestamp: float = 0.0


@dataclass(slots=True, frozen=True)
class CVPose:
    rotation_degrees: float
    translation: Tuple[float, float]

    def to_dict(self) -> Dict[str, Any]:
        return {"rotation_degrees": self.rotation_degrees, "translation": list(self.translation)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CVPose":
        tx, ty = (list(data.get("translation") or []) + [0.0, 0.0])[:2]
        return cls(rotation_degrees=float(data.get("rotation_degrees", 0.0)),
                   translation=(float(tx), float(ty)))


@dataclass(slots=True, frozen=True)
class CVPieceEvent:
    name: str
    class_id: int
    pose: CVPose
    vertices: Tuple[Point, ...] = ()

    def renamed(self, name: str) -> "CVPieceEvent":
        return CVPieceEvent(name=name, class_id=self.class_id, pose=self.pose, vertices=self.vertices)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "class_id": self.class_id,
            "pose": self.pose.to_dict(),
            "vertices": [list(v) for v in self.vertices],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CVPieceEvent":
        try:
            return cls(
                name=str(data["name"]),
                class_id=int(data["class_id"]),
                pose=CVPose.from_dict(data.get("pose") or {}),
                vertices=tuple((float(v[0]), float(v[1])) for v in data.get("vertices") or []),
            )
        except (KeyError, TypeError, ValueError, IndexError) as e:
            raise DetectionError(f"Malformed CV object {data!r}: {e}") from e


@dataclass(slots=True)
class CVFrameEvent:
    """All objects seen in one frame, in reference-canvas coordinates."""
    objects: List[CVPieceEvent] = field(default_factory=list)
    # Carried through untouched; no consumer requires it yet.
    homography: Optional[List[List[float]]] = None
    scale: float = 0.0
    frame_number: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "homography": self.homography,
            "scale": self.scale,
            "frame_number": self.frame_number,
            "objects": [o.to_dict() for o in self.objects],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CVFrameEvent":
        return cls(
            objects=[CVPieceEvent.from_dict(o) for o in data.get("objects") or []],
            homography=data.get("homography"),
            scale=float(data.get("scale", 0.0)),
            frame_number=None if data.get("frame_number") is None else int(data["frame_number"]),
        )
