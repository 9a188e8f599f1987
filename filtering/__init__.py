"""Filtering module for hazard candidate selection."""

from .hazard_filter import HazardFilter

__all__ = ['HazardFilter']
