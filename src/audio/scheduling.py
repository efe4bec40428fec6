"""Scheduling port: the control-plane surface of a real-time audio host.

The playback scheduler never mixes samples itself.  It asks a port for
source and gain nodes, writes gain breakpoints ahead of time and starts
sources at a future clock time; the host's own audio thread does the rest.
Two ports implement the contract: :class:`FakeSchedulingPort` below, which
records instructions against a manual clock, and
:class:`audio.device.StreamSchedulingPort`, which renders them into a
sounddevice output stream.
"""
from __future__ import annotations

import threading
from typing import List, Protocol

import numpy as np

from .clips import Clip
from .engine import AutomationEvent, GainAutomation


class GainNode(Protocol):
    gain: GainAutomation

    def connect_output(self) -> None:
        """Route the node into the port's shared output."""

    def disconnect(self) -> None:
        """Detach from the output; safe to call repeatedly."""


class SourceNode(Protocol):
    clip: Clip

    def connect(self, gain: GainNode) -> None:
        """Feed this source into *gain*."""

    def start(self, when: float, offset: float = 0.0) -> None:
        """Begin playback at clock time *when*, reading from clip *offset* seconds."""

    def stop(self) -> None:
        """Stop playback; safe to call repeatedly or before :meth:`start`."""

    def disconnect(self) -> None:
        """Detach from the gain node; safe to call repeatedly."""


class SchedulingPort(Protocol):
    sample_rate: int

    @property
    def current_time(self) -> float:
        """Seconds on the host clock."""

    @property
    def suspended(self) -> bool:
        """Whether the host clock is currently frozen."""

    def create_source(self, clip: Clip) -> SourceNode:
        """Create an unstarted source bound to *clip*."""

    def create_gain(self) -> GainNode:
        """Create an unconnected gain node."""

    def suspend(self) -> None:
        """Freeze the clock; scheduled ramps stop advancing."""

    def resume(self) -> None:
        """Unfreeze the clock."""

    def close(self) -> None:
        """Release host resources."""


class GainControlNode:
    """Gain stage whose automation is evaluated by the owning port."""

    def __init__(self) -> None:
        self.gain = GainAutomation(initial_value=1.0)
        self.connected = False

    def connect_output(self) -> None:
        self.connected = True

    def disconnect(self) -> None:
        self.connected = False


class BufferSourceNode:
    """One-shot clip player, pre-rendered to the port's rate and channel count."""

    def __init__(self, clip: Clip, frames: np.ndarray) -> None:
        self.clip = clip
        self.frames = frames
        self.target: GainControlNode | None = None
        self.start_time: float | None = None
        self.offset = 0.0
        self.stopped = False

    def connect(self, gain: GainControlNode) -> None:  # type: ignore[override]
        self.target = gain

    def start(self, when: float, offset: float = 0.0) -> None:
        if self.start_time is not None:
            raise RuntimeError("Source node can only be started once")
        self.start_time = float(when)
        self.offset = max(0.0, float(offset))

    def stop(self) -> None:
        self.stopped = True

    def disconnect(self) -> None:
        self.target = None

    @property
    def active(self) -> bool:
        """Started, not stopped and routed to a connected gain node."""

        return (
            self.start_time is not None
            and not self.stopped
            and self.target is not None
            and self.target.connected
        )


class BaseSchedulingPort:
    """Node bookkeeping shared by the fake and the sounddevice-backed port."""

    def __init__(self, sample_rate: int, channels: int = 2) -> None:
        if sample_rate <= 0:
            raise ValueError("sample_rate must be positive")
        self.sample_rate = int(sample_rate)
        self.channels = int(channels)
        self._suspended = False
        self._lock = threading.Lock()
        self._sources: List[BufferSourceNode] = []

    @property
    def current_time(self) -> float:
        raise NotImplementedError

    @property
    def suspended(self) -> bool:
        return self._suspended

    def create_source(self, clip: Clip) -> BufferSourceNode:
        node = BufferSourceNode(clip, clip.render_frames(self.sample_rate, self.channels))
        with self._lock:
            self._sources = [source for source in self._sources if not source.stopped]
            self._sources.append(node)
        return node

    def create_gain(self) -> GainControlNode:
        return GainControlNode()

    def suspend(self) -> None:
        self._suspended = True

    def resume(self) -> None:
        self._suspended = False

    def close(self) -> None:
        with self._lock:
            for source in self._sources:
                source.stop()
                source.disconnect()
            self._sources = []

    def active_sources(self) -> List[BufferSourceNode]:
        with self._lock:
            return [source for source in self._sources if source.active]


class FakeSchedulingPort(BaseSchedulingPort):
    """Deterministic port that records instructions against a manual clock.

    Time only moves through :meth:`advance`, and not at all while suspended.
    Every node ever created stays inspectable through ``created_sources`` and
    ``created_gains``.
    """

    def __init__(self, sample_rate: int = 44_100, *, start_time: float = 0.0, channels: int = 2) -> None:
        super().__init__(sample_rate, channels)
        self._now = float(start_time)
        self.created_sources: List[BufferSourceNode] = []
        self.created_gains: List[GainControlNode] = []
        self.closed = False

    @property
    def current_time(self) -> float:
        return self._now

    def advance(self, seconds: float) -> float:
        """Move the clock forward unless suspended; returns the new time."""

        if seconds < 0:
            raise ValueError("The clock cannot run backwards")
        if not self._suspended:
            self._now += float(seconds)
        return self._now

    def create_source(self, clip: Clip) -> BufferSourceNode:
        node = super().create_source(clip)
        self.created_sources.append(node)
        return node

    def create_gain(self) -> GainControlNode:
        node = super().create_gain()
        self.created_gains.append(node)
        return node

    def close(self) -> None:
        super().close()
        self.closed = True

    def fired_ramps(self) -> List[AutomationEvent]:
        """Ramps already reached on gain nodes that still feed the output."""

        fired: List[AutomationEvent] = []
        for gain in self.created_gains:
            if not gain.connected:
                continue
            fired.extend(
                event
                for event in gain.gain.events
                if event.kind == "ramp" and event.time_seconds <= self._now
            )
        return sorted(fired)

    def pending_ramps(self) -> List[AutomationEvent]:
        """Ramps still ahead of the clock on connected gain nodes."""

        pending: List[AutomationEvent] = []
        for gain in self.created_gains:
            if not gain.connected:
                continue
            pending.extend(
                event
                for event in gain.gain.events
                if event.kind == "ramp" and event.time_seconds > self._now
            )
        return sorted(pending)


__all__ = [
    "BaseSchedulingPort",
    "BufferSourceNode",
    "FakeSchedulingPort",
    "GainControlNode",
    "GainNode",
    "SchedulingPort",
    "SourceNode",
]
