"""Main application for the pedestrian hazard guidance system."""

import os
import time
import json
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Dict, List, Optional, Tuple
from pathlib import Path
import cv2
import numpy as np

from detection.detection import Detection
from detection.hazard_detector import HazardDetector
from depth.depth_resolver import DepthResolver
from engine.hazard_engine import HazardEngine, MotionState, TickResult
from fusion.backend import ParseErrorKind
from fusion.backend_client import BackendClient, BackendError
from visualization.visualizer import Visualizer
from utils.report import HazardReport


class HazardGuidanceApp:
    """Main application orchestrating detection, depth, backend fusion and the hazard engine.

    Owns one instance of every collaborator and drives the engine with the
    video clock, so a video replays exactly like a live walk would tick.

    Attributes:
        detector: HazardDetector instance for detecting hazards
        depth_resolver: DepthResolver shared with the engine
        backend: Optional BackendClient for semantic confirmation
        engine: HazardEngine running the decision pipeline
        visualizer: Visualizer for rendering annotations
        config: Configuration dictionary
    """

    def __init__(self, config: Dict):
        """Initialize the hazard guidance application.

        Args:
            config: Configuration dictionary with all settings
        """
        self.config = config

        # Initialize detection module
        detection_config = config.get('detection', {})
        self.detector = HazardDetector(
            model_path=detection_config.get('yolo_model_path', 'yolo11n.pt'),
            min_confidence=detection_config.get('confidence_threshold', 0.35),
            iou_threshold=detection_config.get('iou_threshold', 0.45),
            image_size=detection_config.get('image_size', 640),
            base_interval=detection_config.get('min_interval_s', 0.30),
            slow_interval=detection_config.get('slow_interval_s', 0.45)
        )
        self.moving_speed = detection_config.get('moving_speed_mps', 0.35)
        self.idle_interval = detection_config.get('idle_interval_s', 2.0)

        # Initialize depth resolver (shared with the engine)
        depth_config = config.get('depth', {})
        self.depth_resolver = DepthResolver(use_heuristic=depth_config.get('use_heuristic', True))
        self.depth_interval = depth_config.get('update_interval_s', 0.10)

        # Initialize backend client if configured
        backend_config = config.get('backend', {})
        self.backend = None
        if backend_config.get('enabled', False) and backend_config.get('base_url'):
            self.backend = BackendClient(
                base_url=backend_config['base_url'],
                min_interval=backend_config.get('min_interval_s', 0.75),
                timeout=backend_config.get('timeout_s', 4.0)
            )

        # Initialize engine
        self.engine = HazardEngine.from_config(config, depth_resolver=self.depth_resolver)

        # Motion collaborator; video files carry no motion, so it comes from config
        motion_config = config.get('motion', {})
        self.motion = MotionState(
            speed=motion_config.get('speed_mps'),
            heading=motion_config.get('heading_deg')
        )

        # Optional background detection
        processing_config = config.get('processing', {})
        self.async_detection = processing_config.get('async_detection', False)
        self.executor: Optional[ThreadPoolExecutor] = None
        self.pending_detection: Optional[Tuple[float, Future]] = None

        # Initialize visualizer
        self.visualizer = Visualizer.from_config(config)

        self.verbose = config.get('output', {}).get('verbose', False)

        # Statistics
        self.total_frames_processed = 0
        self.detector_runs = 0
        self.backend_errors = 0
        self.last_detection_run: Optional[float] = None
        self.last_depth_update: Optional[float] = None
        self.last_detections: List[Detection] = []
        self.processing_start_time = None

    def _should_run_detector(self, now: float) -> bool:
        """Check the detector throttle and the motion context gate.

        While the user is standing still the detector only runs every
        idle interval, which keeps indoor and idle scenes quiet.
        """
        if not self.detector.should_run(now):
            return False

        if self.last_detection_run is None:
            return True

        moving = (self.motion.speed or 0.0) > self.moving_speed
        return moving or now - self.last_detection_run > self.idle_interval

    def _update_depth(self, frame: np.ndarray, now: float,
                      depth_map: Optional[np.ndarray] = None) -> None:
        if self.last_depth_update is None or now - self.last_depth_update >= self.depth_interval:
            self.depth_resolver.update(depth_map=depth_map, image=frame)
            self.last_depth_update = now

    def _run_detector(self, frame: np.ndarray, now: float) -> None:
        """Run or schedule the detector and submit completed results to the engine."""
        if self.async_detection:
            self._collect_async_detection()
            if self.pending_detection is None and self._should_run_detector(now):
                if self.executor is None:
                    self.executor = ThreadPoolExecutor(max_workers=1)
                self.last_detection_run = now
                self.detector_runs += 1
                future = self.executor.submit(self.detector.detect, frame.copy(), now)
                self.pending_detection = (now, future)
            return

        if self._should_run_detector(now):
            self.last_detection_run = now
            self.detector_runs += 1
            detections = self.detector.detect(frame, now)
            self._accept_detections(detections, now)

    def _collect_async_detection(self) -> None:
        if self.pending_detection is None:
            return

        query_time, future = self.pending_detection
        if not future.done():
            return

        self.pending_detection = None
        try:
            detections = future.result()
        except Exception as e:
            print(f"Warning: background detection failed: {e}")
            detections = []
        self._accept_detections(detections, query_time)

    def _accept_detections(self, detections: List[Detection], query_time: float) -> None:
        if not self.engine.submit_detections(detections, query_time):
            return
        self.last_detections = detections
        self._send_to_backend(detections, query_time)

    def _send_to_backend(self, detections: List[Detection], query_time: float) -> None:
        """Ask the backend to confirm this frame's detections."""
        if self.backend is None:
            return

        try:
            response = self.backend.send(detections, heading=self.motion.heading, now=query_time)
        except BackendError as e:
            self.backend_errors += 1
            print(f"Warning: {e}")
            return

        if response is None:
            return

        result = self.engine.submit_backend(response, query_time)
        if result.error is not None and result.error != ParseErrorKind.MISSING:
            self.backend_errors += 1

    def process_frame(self, frame: np.ndarray, now: float,
                      depth_map: Optional[np.ndarray] = None) -> Tuple[np.ndarray, TickResult]:
        """Process a single frame through the complete pipeline.

        Runs depth update → detection → engine tick → visualization on the
        input frame.

        Args:
            frame: Input video frame as numpy array (BGR format)
            now: Clock value of this frame in seconds
            depth_map: Optional sensor depth map aligned with the frame

        Returns:
            Tuple of (annotated_frame, tick_result)
        """
        # Step 1: Depth - refresh depth buffers at their own cadence
        self._update_depth(frame, now, depth_map)

        # Step 2: Detection - throttled, optionally in the background
        self._run_detector(frame, now)

        # Step 3: Engine tick - rank, fuse, smooth and place hazards
        result = self.engine.tick(now, self.motion)

        if self.verbose:
            for hazard_id in result.added:
                print(f"+ Added hazard '{hazard_id}' at t={now:.2f}s")
            for hazard_id in result.removed:
                print(f"- Removed hazard '{hazard_id}' at t={now:.2f}s")

        # Step 4: Visualization - draw annotations on frame
        annotated_frame = frame.copy()
        annotated_frame = self.visualizer.draw_detections(annotated_frame, self.last_detections)
        annotated_frame = self.visualizer.draw_cone(annotated_frame)
        annotated_frame = self.visualizer.draw_hazards(annotated_frame, result.hazards)
        annotated_frame = self.visualizer.draw_status(
            annotated_frame, f"t={now:.2f}s hazards={len(result.hazards)}"
        )

        self.total_frames_processed += 1

        return annotated_frame, result

    def process_video(self, video_path: str, output_path: Optional[str] = None) -> HazardReport:
        """Process a complete video file through the pipeline.

        Reads video file, processes each frame, writes annotated output video,
        and generates a hazard report.

        Args:
            video_path: Path to input video file
            output_path: Optional path for output video (auto-generated if None)

        Returns:
            HazardReport object containing processing statistics and hazards
        """
        print(f"Processing video: {video_path}")

        if not os.path.isfile(video_path):
            error_msg = f"File not found: {video_path}"
            print(f"Error: {error_msg}")
            return HazardReport(
                video_path=video_path,
                total_frames=0,
                processing_fps=0.0,
                success=False,
                error=error_msg
            )

        cap = cv2.VideoCapture(video_path)

        if not cap.isOpened():
            error_msg = f"Could not open video file (unsupported format or corrupted): {video_path}"
            print(f"Error: {error_msg}")
            return HazardReport(
                video_path=video_path,
                total_frames=0,
                processing_fps=0.0,
                success=False,
                error=error_msg
            )

        fps = cap.get(cv2.CAP_PROP_FPS) or 30.0
        frame_width = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        frame_height = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        total_frames = int(cap.get(cv2.CAP_PROP_FRAME_COUNT))

        video_properties = {
            'width': frame_width,
            'height': frame_height,
            'fps': fps,
            'total_frames': total_frames
        }

        print(f"Video properties: {frame_width}x{frame_height} @ {fps:.1f} FPS, {total_frames} frames")

        report = HazardReport(
            video_path=video_path,
            total_frames=0,
            processing_fps=0.0,
            video_properties=video_properties
        )

        # Setup output video writer if enabled
        output_config = self.config.get('output', {})
        video_writer = None

        if output_config.get('output_video', True):
            if output_path is None:
                output_dir = output_config.get('output_directory', 'output')
                output_path = os.path.join(output_dir, f"{Path(video_path).stem}_hazards.mp4")
            video_writer = self._open_writer(output_path, fps, frame_width, frame_height)
            if video_writer is None:
                output_path = None

        # Processing loop
        self.processing_start_time = time.time()
        frame_count = 0

        video_config = self.config.get('video', {})
        frame_skip = video_config.get('frame_skip', 0)

        try:
            while True:
                ret, frame = cap.read()

                if not ret:
                    break

                frame_count += 1

                if frame_skip > 0 and frame_count % (frame_skip + 1) != 0:
                    continue

                # Video time is the engine clock
                now = (frame_count - 1) / fps
                annotated_frame, result = self.process_frame(frame, now)
                report.record_tick(result)

                if video_writer is not None:
                    try:
                        video_writer.write(annotated_frame)
                    except cv2.error as e:
                        print(f"Warning: Failed to write frame {frame_count}: {e}")
                        print("Continuing processing without video output...")
                        video_writer.release()
                        video_writer = None

                if frame_count % 30 == 0:
                    elapsed_time = time.time() - self.processing_start_time
                    processing_fps = frame_count / elapsed_time if elapsed_time > 0 else 0
                    progress = (frame_count / total_frames * 100) if total_frames > 0 else 0
                    print(f"Progress: {frame_count}/{total_frames} ({progress:.1f}%) - "
                          f"Processing FPS: {processing_fps:.1f}")

        except Exception as e:
            print(f"Error during video processing: {e}")
            import traceback
            traceback.print_exc()

            elapsed_time = time.time() - self.processing_start_time
            report.total_frames = frame_count
            report.processing_fps = frame_count / elapsed_time if elapsed_time > 0 else 0
            report.processing_time_seconds = elapsed_time
            report.output_path = output_path
            report.success = False
            report.error = str(e)
            return report

        finally:
            cap.release()
            if video_writer is not None:
                video_writer.release()

        elapsed_time = time.time() - self.processing_start_time
        processing_fps = frame_count / elapsed_time if elapsed_time > 0 else 0

        print(f"\n{'='*60}")
        print(f"Processing complete!")
        print(f"{'='*60}")
        print(f"Total frames processed: {frame_count}")
        print(f"Processing time: {elapsed_time:.2f} seconds")
        print(f"Average processing FPS: {processing_fps:.2f}")
        print(f"Detector runs: {self.detector_runs}")

        print(f"\nHazards seen:")
        if report.labels:
            for label, label_report in sorted(report.labels.items()):
                print(f"  {label}: {label_report.sightings} ticks, "
                      f"max severity {label_report.max_severity:.0f}, "
                      f"approaching {label_report.approaching_count}x")
        else:
            print("  No hazards displayed")
        print(f"{'='*60}\n")

        report = self.generate_report(
            report=report,
            output_path=output_path,
            frame_count=frame_count,
            elapsed_time=elapsed_time,
            processing_fps=processing_fps
        )

        if output_config.get('output_report', True):
            report_path = self._save_report_json(report, video_path)
            print(f"Report saved: {report_path}")

        return report

    def process_multiple_videos(self, video_paths: List[str]) -> List[HazardReport]:
        """Process multiple video files in batch.

        Processes each video sequentially and collects reports for all videos.
        Resets engine state between videos.

        Args:
            video_paths: List of paths to video files

        Returns:
            List of HazardReport objects, one per video
        """
        print(f"Batch processing {len(video_paths)} videos...")

        reports = []

        for i, video_path in enumerate(video_paths, 1):
            print(f"\n{'='*60}")
            print(f"Processing video {i}/{len(video_paths)}")
            print(f"{'='*60}")

            self._reset_state()

            report = self.process_video(video_path)
            reports.append(report)

            if not report.success:
                print(f"Warning: Video processing failed for {video_path}")

        print(f"\n{'='*60}")
        print(f"Batch processing complete!")
        print(f"{'='*60}")
        print(f"Total videos processed: {len(reports)}")
        successful = sum(1 for r in reports if r.success)
        print(f"Successful: {successful}")
        print(f"Failed: {len(reports) - successful}")

        return reports

    def process_directory(self, directory_path: str,
                          extensions: List[str] = None) -> List[HazardReport]:
        """Process all video files in a directory.

        Args:
            directory_path: Path to directory containing video files
            extensions: List of video file extensions to process
                       (default: ['.mp4', '.avi', '.mov', '.mkv'])

        Returns:
            List of HazardReport objects, one per video
        """
        if extensions is None:
            extensions = ['.mp4', '.avi', '.mov', '.mkv']

        directory = Path(directory_path)

        if not directory.is_dir():
            print(f"Error: Directory not found: {directory_path}")
            return []

        video_paths = []
        for ext in extensions:
            video_paths.extend(directory.glob(f"*{ext}"))
            video_paths.extend(directory.glob(f"*{ext.upper()}"))

        video_paths = sorted({str(p) for p in video_paths})

        if not video_paths:
            print(f"No video files found in {directory_path}")
            print(f"Searched for extensions: {extensions}")
            return []

        print(f"Found {len(video_paths)} video files in {directory_path}")

        return self.process_multiple_videos(video_paths)

    def close(self) -> None:
        """Shut down the background detection worker, if any."""
        if self.executor is not None:
            self.executor.shutdown(wait=True)
            self.executor = None
        self.pending_detection = None

    def _reset_state(self) -> None:
        """Reset engine and throttle state for processing a new video."""
        self.engine.reset()
        self.depth_resolver.update()
        self.detector.last_run = None
        if self.pending_detection is not None:
            self.pending_detection[1].cancel()
        self.pending_detection = None

        self.total_frames_processed = 0
        self.detector_runs = 0
        self.backend_errors = 0
        self.last_detection_run = None
        self.last_depth_update = None
        self.last_detections = []
        self.processing_start_time = None

    def _open_writer(self, output_path: str, fps: float, frame_width: int,
                     frame_height: int) -> Optional[cv2.VideoWriter]:
        """Open the annotated video writer, trying fallback codecs.

        Returns:
            Opened VideoWriter, or None if no codec worked
        """
        try:
            output_dir = os.path.dirname(output_path)
            if output_dir:
                os.makedirs(output_dir, exist_ok=True)
        except OSError as e:
            print(f"Warning: Could not create output directory: {e}")
            print("Continuing without video output...")
            return None

        codec = self.config.get('output', {}).get('video_codec', 'mp4v')
        for candidate in [codec] + [c for c in ('avc1', 'XVID', 'MJPG') if c != codec]:
            fourcc = cv2.VideoWriter_fourcc(*candidate)
            writer = cv2.VideoWriter(output_path, fourcc, fps, (frame_width, frame_height))
            if writer.isOpened():
                print(f"Output video: {output_path} (codec '{candidate}')")
                return writer
            print(f"Warning: Could not open video writer with codec '{candidate}'")

        print("Warning: All codec attempts failed. Continuing without video output...")
        return None

    def generate_report(self, report: HazardReport, output_path: Optional[str], frame_count: int,
                        elapsed_time: float, processing_fps: float) -> HazardReport:
        """Complete a HazardReport with the processing statistics.

        Args:
            report: Report accumulated tick by tick during processing
            output_path: Path to output video file (if generated)
            frame_count: Total number of frames processed
            elapsed_time: Total processing time in seconds
            processing_fps: Average processing speed

        Returns:
            The completed HazardReport
        """
        report.total_frames = frame_count
        report.processing_fps = processing_fps
        report.processing_time_seconds = elapsed_time
        report.output_path = output_path
        report.detector_runs = self.detector_runs
        report.backend_errors = self.backend_errors
        report.success = True
        return report

    def _save_report_json(self, report: HazardReport, video_path: str) -> str:
        """Save HazardReport to JSON file.

        Args:
            report: HazardReport object to save
            video_path: Path to video file (used for naming report)

        Returns:
            Path to saved report file
        """
        output_config = self.config.get('output', {})
        output_dir = output_config.get('output_directory', 'output')

        reports_dir = os.path.join(output_dir, 'reports')
        os.makedirs(reports_dir, exist_ok=True)

        video_name = Path(video_path).stem
        report_path = os.path.join(reports_dir, f"{video_name}_report.json")

        try:
            with open(report_path, 'w') as f:
                json.dump(report.to_dict(), f, indent=2)
        except OSError as e:
            print(f"Warning: Could not save report to {report_path}: {e}")

        return report_path
