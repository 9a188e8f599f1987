"""Engine module running the hazard pipeline per frame tick."""

from .hazard_engine import HazardEngine, MotionState, PlacedHazard, TickResult
from .result_slot import LatestResultSlot, TimedResult

__all__ = ['HazardEngine', 'MotionState', 'PlacedHazard', 'TickResult',
           'LatestResultSlot', 'TimedResult']
