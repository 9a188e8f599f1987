"""Visualization module for drawing hazards on frames."""

from .visualizer import Visualizer

__all__ = ['Visualizer']
