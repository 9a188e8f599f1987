"""Utility functions and helpers."""

from .geometry import angular_difference, calculate_iou, clamp, clamp01, non_max_suppression

__all__ = ['angular_difference', 'calculate_iou', 'clamp', 'clamp01', 'non_max_suppression']
