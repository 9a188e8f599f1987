"""Report data classes for the hazard guidance system."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from engine.hazard_engine import TickResult


@dataclass
class LabelReport:
    """Report for a single hazard class.

    Attributes:
        label: Lowercase class name
        sightings: Number of ticks the class was among the displayed hazards
        max_severity: Highest fused severity seen for the class
        approaching_count: Ticks where the class was flagged as approaching fast
        confirmed_count: Ticks where the backend confirmed the class
        evictions: Number of times an id of this class was evicted
    """
    label: str
    sightings: int = 0
    max_severity: float = 0.0
    approaching_count: int = 0
    confirmed_count: int = 0
    evictions: int = 0

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization.

        Returns:
            Dictionary representation of the label report
        """
        return {
            'label': self.label,
            'sightings': self.sightings,
            'max_severity': self.max_severity,
            'approaching_count': self.approaching_count,
            'confirmed_count': self.confirmed_count,
            'evictions': self.evictions
        }


@dataclass
class HazardReport:
    """Complete report for video processing.

    Contains frame and tick counts, performance metrics and per-class hazard
    statistics from running the engine over a video.

    Attributes:
        video_path: Path to the processed video file
        total_frames: Total number of frames processed
        processing_fps: Average processing speed in frames per second
        detector_runs: Number of detector invocations
        fresh_ticks: Ticks that processed a new detector result
        labels: Dictionary mapping labels to LabelReport objects
        backend_errors: Number of failed backend calls or unusable payloads
        final_hazards: Hazards displayed on the last tick
        video_properties: Optional dictionary with video metadata
        processing_time_seconds: Optional total processing time
        output_path: Optional path to output video file
        success: Whether processing completed successfully
        error: Optional error message if processing failed
    """
    video_path: str
    total_frames: int
    processing_fps: float
    detector_runs: int = 0
    fresh_ticks: int = 0
    labels: Dict[str, LabelReport] = field(default_factory=dict)
    backend_errors: int = 0
    final_hazards: List[Dict] = field(default_factory=list)
    video_properties: Optional[Dict] = None
    processing_time_seconds: Optional[float] = None
    output_path: Optional[str] = None
    success: bool = True
    error: Optional[str] = None

    def record_tick(self, result: TickResult) -> None:
        """Accumulate statistics from one engine tick."""
        if result.fresh:
            self.fresh_ticks += 1

        for hazard in result.hazards:
            label_report = self.labels.setdefault(hazard.label, LabelReport(label=hazard.label))
            label_report.sightings += 1
            label_report.max_severity = max(label_report.max_severity, hazard.severity)
            if 'approaching fast' in hazard.explanation:
                label_report.approaching_count += 1
            if hazard.label in result.confirmed:
                label_report.confirmed_count += 1

        for hazard_id in result.removed:
            # Ids are '<label>' or '<label>-<n>'
            label = hazard_id.rsplit('-', 1)[0] if hazard_id.rsplit('-', 1)[-1].isdigit() else hazard_id
            label_report = self.labels.setdefault(label, LabelReport(label=label))
            label_report.evictions += 1

        self.final_hazards = [hazard.to_dict() for hazard in result.hazards]

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization.

        Returns:
            Dictionary representation of the hazard report
        """
        report_dict = {
            'video_path': self.video_path,
            'total_frames': self.total_frames,
            'processing_fps': self.processing_fps,
            'detector_runs': self.detector_runs,
            'fresh_ticks': self.fresh_ticks,
            'backend_errors': self.backend_errors,
            'success': self.success,
            'labels': {
                name: label_report.to_dict()
                for name, label_report in self.labels.items()
            },
            'final_hazards': self.final_hazards
        }

        if self.video_properties:
            report_dict['video_properties'] = self.video_properties

        if self.processing_time_seconds is not None:
            report_dict['processing_time_seconds'] = self.processing_time_seconds

        if self.output_path:
            report_dict['output_path'] = self.output_path

        if self.error:
            report_dict['error'] = self.error

        return report_dict
