"""Fusion module merging backend confirmations and motion into ranked hazards."""

from .backend import BackendParseResult, ParseErrorKind, parse_backend_confirmation
from .hazard_fusion import FusedHazard, HazardFusion

__all__ = ['BackendParseResult', 'ParseErrorKind', 'parse_backend_confirmation',
           'FusedHazard', 'HazardFusion']
