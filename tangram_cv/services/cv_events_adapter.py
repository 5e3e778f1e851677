"""Turns detector output into CV frame events with stable piece names.

The detector reports either an integrated tangram result (poses and refined
polygons per class) or plain bounding boxes. Both are mapped into a single
reference canvas so downstream consumers see one coordinate space regardless
of the source.
"""
from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from ..config.defaults import DEFAULT_CONFIG
from ..config.settings import Config
from ..core.constants import NORMALIZED_COORDINATE_LIMIT, REFERENCE_CANVAS_SIZE
from ..core.entities import (
    CVFrameEvent, CVPieceEvent, CVPose, Detection, DetectionResult, IntegratedResult, Point,
    cv_name_for_class,
)
from ..utils.geometry import centroid, distance

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _Entry:
    class_id: int
    rotation_degrees: float
    translation: Point
    vertices: Tuple[Point, ...]


class CVFrameBuilder:
    """Maps one ``DetectionResult`` to a ``CVFrameEvent`` in canvas pixels."""

    def __init__(self, canvas_size: Tuple[int, int] = REFERENCE_CANVAS_SIZE):
        self.canvas_size = canvas_size

    def build(self, result: DetectionResult) -> CVFrameEvent:
        frame = None
        if result.integrated is not None:
            frame = self._from_integrated(result.integrated, result.detections)
            if frame is None:
                logger.debug("Integrated result has no usable homography, using bounding boxes")
        if frame is None:
            frame = CVFrameEvent(objects=self._name_entries(self._entries_from_detections(result.detections)))
        frame.frame_number = result.frame_number
        return frame

    def to_canvas(self, point: Sequence[float]) -> Point:
        """Scale a normalized point to canvas pixels.

        Coordinates beyond ``NORMALIZED_COORDINATE_LIMIT`` are taken to be
        pixels already and pass through.
        """
        x, y = float(point[0]), float(point[1])
        if abs(x) > NORMALIZED_COORDINATE_LIMIT or abs(y) > NORMALIZED_COORDINATE_LIMIT:
            return (x, y)
        width, height = self.canvas_size
        return (x * width, y * height)

    def _from_integrated(self, integrated: IntegratedResult,
                         detections: Sequence[Detection] = ()) -> Optional[CVFrameEvent]:
        """Entries from integrated poses/polygons.

        A class with no refined polygon takes its vertices (and, without a
        pose, its translation) from its best-scoring bounding box. Classes
        seen only as boxes are kept as box entries.
        """
        homography = integrated.homography_matrix()
        if homography is None:
            return None

        best_box: Dict[int, Detection] = {}
        for det in detections:
            current = best_box.get(int(det.class_id))
            if current is None or det.score > current.score:
                best_box[int(det.class_id)] = det

        integrated_classes = set(integrated.poses) | set(integrated.refined_polygons)
        entries: List[_Entry] = []
        for class_id in sorted(integrated_classes):
            rotation_degrees = 0.0
            translation: Optional[Point] = None
            pose = integrated.poses.get(class_id)
            if pose is not None:
                rotation_degrees = math.degrees(pose.theta)
                translation = self.to_canvas((pose.tx, pose.ty))

            flat = integrated.refined_polygons.get(class_id) or []
            vertices = tuple(self.to_canvas(flat[i:i + 2]) for i in range(0, len(flat) - 1, 2))
            box = best_box.get(class_id)
            if not vertices and box is not None:
                vertices = tuple(self.to_canvas(c) for c in box.bbox.corners())
                if translation is None:
                    translation = self.to_canvas(box.bbox.center)
            elif vertices:
                translation = centroid(vertices)
            entries.append(_Entry(class_id, rotation_degrees, translation or (0.0, 0.0), vertices))

        entries.extend(self._entries_from_detections(
            [det for det in detections if int(det.class_id) not in integrated_classes]
        ))
        return CVFrameEvent(
            objects=self._name_entries(entries),
            homography=homography,
            scale=float(integrated.scale),
        )

    def _entries_from_detections(self, detections: Sequence[Detection]) -> List[_Entry]:
        entries = []
        for det in detections:
            center = self.to_canvas(det.bbox.center)
            corners = tuple(self.to_canvas(c) for c in det.bbox.corners())
            entries.append(_Entry(int(det.class_id), 0.0, center, corners))
        return entries

    @staticmethod
    def _name_entries(entries: Sequence[_Entry]) -> List[CVPieceEvent]:
        """Index each class's entries by x, then y, and name them ``<cv_name>_<index>``."""
        grouped: Dict[int, List[_Entry]] = {}
        for entry in entries:
            grouped.setdefault(entry.class_id, []).append(entry)

        objects: List[CVPieceEvent] = []
        for class_id in sorted(grouped):
            ordered = sorted(grouped[class_id], key=lambda e: (e.translation[0], e.translation[1]))
            for idx, entry in enumerate(ordered):
                objects.append(CVPieceEvent(
                    name=f"{cv_name_for_class(class_id)}_{idx}",
                    class_id=class_id,
                    pose=CVPose(rotation_degrees=entry.rotation_degrees, translation=entry.translation),
                    vertices=entry.vertices,
                ))
        return objects


@dataclass(slots=True)
class _Track:
    track_id: int
    last: Point
    last_seen: int = 0


class IdentityTracker:
    """Keeps piece names stable across frames.

    Per class, detections are greedily paired with the nearest existing track
    (closest pair first) while the distance stays within the threshold.
    Leftover detections open new tracks numbered from 1. Tracks outlive the
    frames a piece is missing from, so a piece that reappears near its last
    position keeps its name. Once a class holds more than
    ``max_tracks_per_class`` tracks, the least recently matched are forgotten
    and their numbers are not reused.
    """

    def __init__(self, assignment_threshold_px: float = DEFAULT_CONFIG["assignment_threshold_px"],
                 max_tracks_per_class: int = DEFAULT_CONFIG["max_tracks_per_class"]):
        self.assignment_threshold_px = assignment_threshold_px
        self.max_tracks_per_class = max_tracks_per_class
        self._frames_seen = 0
        self._tracks: Dict[int, List[_Track]] = {}
        self._next_index: Dict[int, int] = {}

    def reset(self) -> None:
        self._tracks.clear()
        self._next_index.clear()
        self._frames_seen = 0

    def track_count(self, class_id: int) -> int:
        return len(self._tracks.get(class_id, []))

    def assign(self, frame: CVFrameEvent) -> CVFrameEvent:
        """Copy of ``frame`` with every object renamed to ``cv_<cv_name>_<track>``."""
        self._frames_seen += 1
        indices_by_class: Dict[int, List[int]] = {}
        for idx, obj in enumerate(frame.objects):
            indices_by_class.setdefault(obj.class_id, []).append(idx)

        objects = list(frame.objects)
        for class_id, indices in indices_by_class.items():
            base_name = cv_name_for_class(class_id)
            points = [objects[i].pose.translation for i in indices]
            tracks = self._tracks.setdefault(class_id, [])
            unmatched_dets = list(range(len(indices)))
            unmatched_tracks = list(range(len(tracks)))

            while unmatched_dets and unmatched_tracks:
                best: Optional[Tuple[int, int, float]] = None
                for d in unmatched_dets:
                    for t in unmatched_tracks:
                        dist = distance(points[d], tracks[t].last)
                        if best is None or dist < best[2]:
                            best = (d, t, dist)
                d, t, dist = best
                if dist > self.assignment_threshold_px:
                    break
                objects[indices[d]] = objects[indices[d]].renamed(f"cv_{base_name}_{tracks[t].track_id}")
                tracks[t].last = points[d]
                tracks[t].last_seen = self._frames_seen
                unmatched_dets.remove(d)
                unmatched_tracks.remove(t)

            next_index = self._next_index.get(class_id, 1)
            for d in unmatched_dets:
                objects[indices[d]] = objects[indices[d]].renamed(f"cv_{base_name}_{next_index}")
                tracks.append(_Track(track_id=next_index, last=points[d], last_seen=self._frames_seen))
                logger.debug(f"New track cv_{base_name}_{next_index} at {points[d]}")
                next_index += 1
            self._next_index[class_id] = next_index
            if len(tracks) > self.max_tracks_per_class:
                tracks.sort(key=lambda tr: tr.last_seen, reverse=True)
                dropped = tracks[self.max_tracks_per_class:]
                del tracks[self.max_tracks_per_class:]
                logger.debug(f"Forgot {len(dropped)} stale cv_{base_name} track(s)")

        return CVFrameEvent(
            objects=objects,
            homography=frame.homography,
            scale=frame.scale,
            frame_number=frame.frame_number,
        )


class CVEventsAdapter:
    """Detector results in, identity-stabilized frame events out."""

    def __init__(self, cfg: Optional[Config] = None,
                 builder: Optional[CVFrameBuilder] = None,
                 tracker: Optional[IdentityTracker] = None):
        self.cfg = cfg or Config()
        self.builder = builder or CVFrameBuilder(self.cfg.canvas_size)
        self.tracker = tracker or IdentityTracker(
            self.cfg.assignment_threshold_px, self.cfg.max_tracks_per_class
        )

    def process(self, result: DetectionResult) -> CVFrameEvent:
        frame = self.tracker.assign(self.builder.build(result))
        logger.debug(f"Frame {frame.frame_number}: {len(frame.objects)} objects")
        return frame

    def reset(self) -> None:
        self.tracker.reset()


__all__ = ["CVFrameBuilder", "IdentityTracker", "CVEventsAdapter"]
