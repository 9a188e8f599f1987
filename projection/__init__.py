"""Projection module for camera-relative hazard placement."""

from .spatial_projector import Placement, SpatialProjector

__all__ = ['Placement', 'SpatialProjector']
