"""Shared engine configuration and the gain automation timeline.

Every scheduling port (the deterministic fake used in tests and the
sounddevice-backed host) stores gain automation the same way: a list of
``(time, value)`` breakpoints written ahead of time by the playback
scheduler.  Evaluating that list goes through :func:`audio.automation.envelope`
so live playback and the offline renderer share one interpolation routine.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple

import numpy as np

from .automation import envelope


@dataclass
class EngineConfig:
    """Global audio configuration shared across the mixer."""

    sample_rate: int = 44_100
    block_size: int = 512
    channels: int = 2
    default_gain: float = 0.5
    min_project_seconds: float = 300.0
    fade_seconds: float = 2.0


@dataclass(order=True)
class AutomationEvent:
    """A gain instruction expressed in absolute engine-clock time."""

    time_seconds: float
    value: float = field(compare=False)
    kind: str = field(default="ramp", compare=False)


class GainAutomation:
    """Ordered gain breakpoints written ahead of playback.

    ``set_value_at_time`` writes a step, ``linear_ramp_to_value_at_time``
    ramps from the previous breakpoint to the new one.  Both end up as plain
    breakpoints because a step is a zero-width segment: the later entry wins
    once the clock moves past the shared timestamp.
    """

    def __init__(self, initial_value: float = 1.0) -> None:
        self._initial_value = float(initial_value)
        self._events: List[AutomationEvent] = []

    def set_value_at_time(self, value: float, time_seconds: float) -> None:
        self._insert(AutomationEvent(float(time_seconds), float(value), "set"))

    def linear_ramp_to_value_at_time(self, value: float, time_seconds: float) -> None:
        self._insert(AutomationEvent(float(time_seconds), float(value), "ramp"))

    def cancel(self) -> None:
        """Drop every scheduled breakpoint."""

        self._events.clear()

    @property
    def events(self) -> List[AutomationEvent]:
        return list(self._events)

    def breakpoints(self) -> Tuple[np.ndarray, np.ndarray]:
        times = np.array([event.time_seconds for event in self._events], dtype=np.float64)
        values = np.array([event.value for event in self._events], dtype=np.float64)
        return times, values

    def value_at(self, time_seconds: float) -> float:
        return float(self.values_at(np.array([time_seconds], dtype=np.float64))[0])

    def values_at(self, times: np.ndarray) -> np.ndarray:
        """Evaluate the timeline at every entry of *times*."""

        if not self._events:
            return np.full(np.shape(times), self._initial_value, dtype=np.float64)
        point_times, point_values = self.breakpoints()
        return envelope(point_times, point_values, times)

    def _insert(self, event: AutomationEvent) -> None:
        # Stable insertion: equal timestamps keep scheduling order.
        index = len(self._events)
        while index > 0 and self._events[index - 1].time_seconds > event.time_seconds:
            index -= 1
        self._events.insert(index, event)

    def __len__(self) -> int:  # pragma: no cover - trivial
        return len(self._events)


__all__ = [
    "AutomationEvent",
    "EngineConfig",
    "GainAutomation",
]
