"""Tracking module for hazard motion and lifecycle state."""

from .velocity_tracker import VelocityResult, VelocitySample, VelocityTracker
from .lifecycle import ActiveHazard, HazardLifecycleTracker, LifecycleUpdate

__all__ = ['VelocityResult', 'VelocitySample', 'VelocityTracker',
           'ActiveHazard', 'HazardLifecycleTracker', 'LifecycleUpdate']
