"""Visualizer class for rendering ranked hazards on video frames."""

from typing import Dict, List, Optional, Tuple

import cv2
import numpy as np

from detection.detection import Detection
from engine.hazard_engine import PlacedHazard


class Visualizer:
    """Handles visualization of detections, ranked hazards and the forward cone.

    Draws on frames for debugging and verification of the pipeline output;
    it is not part of the hazard decision path.

    Attributes:
        show_ids: Whether to display hazard ids
        show_placements: Whether to display camera-relative placement offsets
        show_detections: Whether to display raw detection boxes
        show_cone: Whether to display the forward cone boundaries
        cone_degrees: Forward cone width used for the boundary lines
    """

    # Color definitions (BGR format for OpenCV)
    COLOR_DETECTION = (0, 255, 0)  # Green for raw detections
    COLOR_HIGH = (0, 0, 255)  # Red for high severity hazards
    COLOR_MEDIUM = (0, 165, 255)  # Orange for medium severity hazards
    COLOR_LOW = (0, 255, 255)  # Yellow for low severity hazards
    COLOR_CONE = (255, 0, 255)  # Magenta for forward cone
    COLOR_TEXT_BG = (0, 0, 0)  # Black background for text
    COLOR_TEXT_FG = (255, 255, 255)  # White foreground for text

    HIGH_SEVERITY = 90.0
    MEDIUM_SEVERITY = 60.0

    def __init__(self, show_ids: bool = True, show_placements: bool = True, show_cone: bool = True,
                 cone_degrees: float = 60.0, show_detections: bool = True):
        """Initialize Visualizer with configuration options.

        Args:
            show_ids: Whether to display hazard ids next to their boxes
            show_placements: Whether to display placement offsets
            show_cone: Whether to display the forward cone boundaries
            cone_degrees: Forward cone width in degrees (default: 60)
            show_detections: Whether to display raw detection boxes
        """
        self.show_ids = show_ids
        self.show_placements = show_placements
        self.show_cone = show_cone
        self.cone_degrees = cone_degrees
        self.show_detections = show_detections

    @classmethod
    def from_config(cls, config: Dict) -> 'Visualizer':
        """Build a visualizer from the configuration dictionary.

        Every toggle defaults to on when its key is missing.
        """
        viz_config = config.get('visualization', {})
        return cls(
            show_ids=viz_config.get('show_hazard_ids', True),
            show_placements=viz_config.get('show_placements', True),
            show_cone=viz_config.get('show_cone', True),
            cone_degrees=config.get('filtering', {}).get('forward_cone_degrees', 60.0),
            show_detections=viz_config.get('show_detections', True)
        )

    def draw_detections(self, frame: np.ndarray, detections: List[Detection]) -> np.ndarray:
        """Draw thin boxes for raw detections on the frame.

        Args:
            frame: Input video frame (will be modified in place)
            detections: List of Detection objects to visualize

        Returns:
            Modified frame with detection bounding boxes drawn
        """
        if not self.show_detections:
            return frame

        for detection in detections:
            top_left, bottom_right = self._to_pixels(frame, detection.bbox)
            cv2.rectangle(frame, top_left, bottom_right, self.COLOR_DETECTION, 1)

            label = detection.label
            if detection.confidence is not None:
                label += f" {detection.confidence:.2f}"
            self._draw_label(frame, label, (top_left[0], bottom_right[1] + 18), self.COLOR_DETECTION)

        return frame

    def draw_hazards(self, frame: np.ndarray, hazards: List[PlacedHazard]) -> np.ndarray:
        """Draw ranked hazards with severity, explanation and placement.

        Args:
            frame: Input video frame (will be modified in place)
            hazards: Placed hazards from the engine, highest severity first

        Returns:
            Modified frame with hazards drawn
        """
        for rank, hazard in enumerate(hazards, 1):
            color = self._severity_color(hazard.severity)
            top_left, bottom_right = self._to_pixels(frame, hazard.bbox)

            cv2.rectangle(frame, top_left, bottom_right, color, 3)

            # Hershey fonts only cover ASCII
            explanation = hazard.explanation.replace('—', '-')
            label = f"#{rank} {explanation} ({hazard.severity:.0f})"
            if self.show_ids:
                label = f"[{hazard.id}] " + label
            self._draw_label(frame, label, (top_left[0], top_left[1] - 10), color)

            if self.show_placements:
                p = hazard.placement
                distance = f"{hazard.distance:.1f}m" if hazard.distance is not None else "?m"
                detail = f"d={distance} lat={p.lateral:+.2f} fwd={p.forward:.1f} up={p.vertical:+.1f}"
                self._draw_label(frame, detail, (top_left[0], top_left[1] + 20), color)

        return frame

    def draw_cone(self, frame: np.ndarray) -> np.ndarray:
        """Draw the forward cone boundaries as vertical lines.

        Args:
            frame: Input video frame (will be modified in place)

        Returns:
            Modified frame with the cone drawn
        """
        if not self.show_cone:
            return frame

        height, width = frame.shape[:2]
        half_width = (self.cone_degrees / 2.0) / 180.0
        for edge in (0.5 - half_width, 0.5 + half_width):
            x = int(max(0.0, min(1.0, edge)) * width)
            cv2.line(frame, (x, 0), (x, height), self.COLOR_CONE, 1)

        return frame

    def draw_status(self, frame: np.ndarray, text: str) -> np.ndarray:
        """Draw a status line in the top-left corner."""
        self._draw_label(frame, text, (10, 25))
        return frame

    def _severity_color(self, severity: float) -> Tuple[int, int, int]:
        if severity >= self.HIGH_SEVERITY:
            return self.COLOR_HIGH
        if severity >= self.MEDIUM_SEVERITY:
            return self.COLOR_MEDIUM
        return self.COLOR_LOW

    @staticmethod
    def _to_pixels(frame: np.ndarray, bbox: Tuple[float, float, float, float]
                   ) -> Tuple[Tuple[int, int], Tuple[int, int]]:
        """Convert a normalized box into pixel corner points."""
        height, width = frame.shape[:2]
        x, y, w, h = bbox
        return ((int(x * width), int(y * height)),
                (int((x + w) * width), int((y + h) * height)))

    def _draw_label(self, frame: np.ndarray, text: str, position: Tuple[int, int],
                    color: Optional[Tuple[int, int, int]] = None) -> None:
        """Draw text label with background for readability.

        Args:
            frame: Input video frame (will be modified in place)
            text: Text to display
            position: Position for the label as (x, y)
            color: Optional color for the text (defaults to white)
        """
        x, y = position

        if color is None:
            color = self.COLOR_TEXT_FG

        font = cv2.FONT_HERSHEY_SIMPLEX
        font_scale = 0.5
        thickness = 1
        (text_width, text_height), baseline = cv2.getTextSize(text, font, font_scale, thickness)

        # Keep label within frame bounds
        y = max(text_height + 5, min(y, frame.shape[0] - baseline - 2))
        x = max(0, min(x, frame.shape[1] - text_width - 10))

        cv2.rectangle(frame,
                      (x - 2, y - text_height - 2),
                      (x + text_width + 2, y + baseline + 2),
                      self.COLOR_TEXT_BG, -1)

        cv2.putText(frame, text, (x, y), font, font_scale, color, thickness)
