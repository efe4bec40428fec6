"""Session layer: the UI command surface and playhead polling."""

from .engine import EngineNotReadyError, MixEngine
from .position import PositionPoller

__all__ = [
    "EngineNotReadyError",
    "MixEngine",
    "PositionPoller",
]
