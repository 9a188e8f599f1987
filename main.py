#!/usr/bin/env python3
"""
Hazard Guidance System - Main Entry Point

Command-line interface for replaying videos through hazard detection,
depth resolution, backend fusion and the hazard prioritization engine.
"""

import argparse
import sys
import os
import yaml

from hazard_guidance_app import HazardGuidanceApp


def load_config(config_path: str) -> dict:
    """Load configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is invalid
    """
    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r') as f:
        config = yaml.safe_load(f)

    return config or {}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Hazard Guidance System - Rank and place pedestrian hazards in video footage',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Process a single video with default config
  python main.py --video path/to/walk.mp4

  # Simulate a walking user heading north-east
  python main.py --video walk.mp4 --speed 1.2 --heading 45

  # Ask a backend to confirm detections
  python main.py --video walk.mp4 --backend-url http://localhost:8000

  # Process all videos in a directory
  python main.py --video-dir recordings/ --output-dir results/
        """
    )

    # Input options
    input_group = parser.add_mutually_exclusive_group(required=True)
    input_group.add_argument(
        '--video', '-v',
        type=str,
        help='Path to input video file'
    )
    input_group.add_argument(
        '--video-dir', '-d',
        type=str,
        help='Path to directory containing video files (processes all videos)'
    )

    # Configuration options
    parser.add_argument(
        '--config', '-c',
        type=str,
        default='config.yaml',
        help='Path to configuration YAML file (default: config.yaml)'
    )

    # Output options
    parser.add_argument(
        '--output-dir', '-o',
        type=str,
        help='Output directory for annotated videos and reports (overrides config)'
    )
    parser.add_argument(
        '--no-output-video',
        action='store_true',
        help='Disable output video generation (only generate report)'
    )
    parser.add_argument(
        '--no-output-report',
        action='store_true',
        help='Disable report generation (only generate video)'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Print hazards as they are added and removed'
    )

    # Visualization toggles
    viz_group = parser.add_argument_group('visualization options')
    viz_group.add_argument(
        '--no-show-detections',
        action='store_true',
        help='Hide raw detection boxes'
    )
    viz_group.add_argument(
        '--no-show-ids',
        action='store_true',
        help='Hide hazard ids'
    )
    viz_group.add_argument(
        '--no-show-placements',
        action='store_true',
        help='Hide placement offsets'
    )
    viz_group.add_argument(
        '--no-show-cone',
        action='store_true',
        help='Hide forward cone boundaries'
    )

    # Detection options
    detection_group = parser.add_argument_group('detection options')
    detection_group.add_argument(
        '--model',
        type=str,
        help='Path to YOLO model file (overrides config)'
    )
    detection_group.add_argument(
        '--confidence',
        type=float,
        help='Detection confidence threshold 0.0-1.0 (overrides config)'
    )

    # Motion options
    motion_group = parser.add_argument_group('motion options')
    motion_group.add_argument(
        '--speed',
        type=float,
        help='User walking speed in m/s (overrides config)'
    )
    motion_group.add_argument(
        '--heading',
        type=float,
        help='User heading in degrees (overrides config)'
    )

    # Backend options
    backend_group = parser.add_argument_group('backend options')
    backend_group.add_argument(
        '--backend-url',
        type=str,
        help='Base URL of the confirmation backend (enables it)'
    )

    # Processing options
    processing_group = parser.add_argument_group('processing options')
    processing_group.add_argument(
        '--frame-skip',
        type=int,
        help='Process every Nth frame (0=all frames, overrides config)'
    )

    return parser


def parse_arguments(argv=None):
    """Parse command-line arguments.

    Returns:
        Parsed arguments namespace
    """
    return build_parser().parse_args(argv)


def apply_cli_overrides(config: dict, args: argparse.Namespace) -> dict:
    """Apply command-line argument overrides to configuration.

    Args:
        config: Base configuration dictionary
        args: Parsed command-line arguments

    Returns:
        Updated configuration dictionary
    """
    for section in ('output', 'visualization', 'detection', 'motion', 'backend', 'video'):
        config.setdefault(section, {})

    # Output options
    if args.output_dir:
        config['output']['output_directory'] = args.output_dir

    if args.no_output_video:
        config['output']['output_video'] = False

    if args.no_output_report:
        config['output']['output_report'] = False

    if args.verbose:
        config['output']['verbose'] = True

    # Visualization toggles
    if args.no_show_detections:
        config['visualization']['show_detections'] = False

    if args.no_show_ids:
        config['visualization']['show_hazard_ids'] = False

    if args.no_show_placements:
        config['visualization']['show_placements'] = False

    if args.no_show_cone:
        config['visualization']['show_cone'] = False

    # Detection options
    if args.model:
        config['detection']['yolo_model_path'] = args.model

    if args.confidence is not None:
        config['detection']['confidence_threshold'] = args.confidence

    # Motion options
    if args.speed is not None:
        config['motion']['speed_mps'] = args.speed

    if args.heading is not None:
        config['motion']['heading_deg'] = args.heading

    # Backend options
    if args.backend_url:
        config['backend']['base_url'] = args.backend_url
        config['backend']['enabled'] = True

    # Processing options
    if args.frame_skip is not None:
        config['video']['frame_skip'] = args.frame_skip

    return config


def main():
    """Main entry point for the hazard guidance system."""
    # Parse command-line arguments
    args = parse_arguments()

    # Load configuration
    try:
        config = load_config(args.config)
        print(f"Loaded configuration from: {args.config}")
    except FileNotFoundError as e:
        print(f"Error: {e}")
        print("Please create a configuration file or use --config to specify a different path")
        sys.exit(1)
    except yaml.YAMLError as e:
        print(f"Error parsing configuration file: {e}")
        sys.exit(1)

    # Apply command-line overrides
    config = apply_cli_overrides(config, args)

    # Initialize application
    try:
        app = HazardGuidanceApp(config)
        print("Hazard Guidance System initialized successfully")
    except Exception as e:
        print(f"Error initializing application: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)

    # Process video(s)
    try:
        if args.video:
            if not os.path.exists(args.video):
                print(f"Error: Video file not found: {args.video}")
                sys.exit(1)

            print(f"\n{'='*60}")
            print(f"Processing single video: {args.video}")
            print(f"{'='*60}\n")

            report = app.process_video(args.video)

            if report.success:
                print(f"\n✓ Video processing completed successfully")
                sys.exit(0)
            else:
                print(f"\n✗ Video processing failed")
                sys.exit(1)

        elif args.video_dir:
            if not os.path.isdir(args.video_dir):
                print(f"Error: Directory not found: {args.video_dir}")
                sys.exit(1)

            print(f"\n{'='*60}")
            print(f"Processing videos in directory: {args.video_dir}")
            print(f"{'='*60}\n")

            reports = app.process_directory(args.video_dir)

            if not reports:
                print(f"\n✗ No videos found or processed")
                sys.exit(1)

            successful = sum(1 for r in reports if r.success)

            if successful > 0:
                print(f"\n✓ Batch processing completed: {successful}/{len(reports)} successful")
                sys.exit(0)
            else:
                print(f"\n✗ All video processing failed")
                sys.exit(1)

    except KeyboardInterrupt:
        print("\n\nProcessing interrupted by user")
        sys.exit(130)

    except Exception as e:
        print(f"\nError during processing: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)

    finally:
        app.close()


if __name__ == '__main__':
    main()
