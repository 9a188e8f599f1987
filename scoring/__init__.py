"""Scoring module for hazard severity ranking."""

from .severity import ScoredHazard, SeverityScorer

__all__ = ['ScoredHazard', 'SeverityScorer']
