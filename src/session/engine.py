"""UI-facing mix engine.

:class:`MixEngine` is the small command surface a timeline UI talks to:
load clips into tracks, drive the transport, edit keyframes and export the
mix.  It owns the project, the clip registry, the live scheduler and an
offline renderer, and hands immutable snapshots to the latter two.
"""
from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence

from audio.automation import fade_in, fade_out, insert_keyframe, remove_keyframe
from audio.clips import Clip, ClipRegistry
from audio.device import open_output_port
from audio.engine import EngineConfig
from audio.mixer import MixSnapshot
from audio.renderer import OfflineRenderer
from audio.scheduler import PlaybackScheduler, TransportState
from audio.scheduling import SchedulingPort
from audio.wav import encode_wav
from domain.models import Keyframe, Project, Track

logger = logging.getLogger(__name__)


class EngineNotReadyError(RuntimeError):
    """Raised when an export is requested before the engine is ready."""


class MixEngine:
    """Transport, editing and export commands over one project.

    A caller-supplied project keeps its own ``min_duration``; the starter
    project created when none is given takes ``config.min_project_seconds``.
    """

    def __init__(
        self,
        project: Optional[Project] = None,
        *,
        port: Optional[SchedulingPort],
        config: Optional[EngineConfig] = None,
        clips: Optional[ClipRegistry] = None,
    ) -> None:
        self.config = config or EngineConfig()
        if project is None:
            project = Project.starter()
            project.min_duration = self.config.min_project_seconds
        self.project = project
        self.clips = clips or ClipRegistry()
        self.scheduler = PlaybackScheduler(port, default_gain=self.config.default_gain)
        self.renderer = OfflineRenderer(self.config)
        self._refresh_duration()

    @classmethod
    def open(cls, project: Optional[Project] = None, *, config: Optional[EngineConfig] = None) -> MixEngine:
        """Create an engine on the default output device, if there is one."""

        config = config or EngineConfig()
        return cls(project, port=open_output_port(config), config=config)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def is_ready(self) -> bool:
        """True once an output is available and at least one clip is loaded."""

        return self.scheduler.is_ready and len(self.clips) > 0

    def current_position(self) -> float:
        return self.scheduler.current_position()

    @property
    def state(self) -> TransportState:
        return self.scheduler.state

    @property
    def total_duration(self) -> float:
        return self.project.total_duration

    def snapshot(self) -> MixSnapshot:
        return MixSnapshot.capture(self.project, self.clips)

    # ------------------------------------------------------------------
    # Clips
    # ------------------------------------------------------------------
    def load_clip(self, track_id: str, raw: bytes) -> Clip:
        """Decode *raw* into *track_id*; raises :class:`audio.clips.DecodeError`."""

        self.project.track(track_id)
        clip = self.clips.load(track_id, raw)
        self._refresh_duration()
        return clip

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    def play(self, offset: float | None = None) -> None:
        self.scheduler.play(self.snapshot(), offset)

    def pause(self) -> float:
        return self.scheduler.pause()

    def stop(self) -> None:
        self.scheduler.stop()

    def seek(self, time_seconds: float) -> float:
        return self.scheduler.seek(time_seconds, self.snapshot())

    def close(self) -> None:
        self.scheduler.close()

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------
    def export_mix(
        self,
        *,
        sample_rate: int | None = None,
        duration_seconds: float | None = None,
    ) -> bytes:
        """Render the whole project offline and return WAV bytes."""

        if not self.is_ready():
            raise EngineNotReadyError("Audio engine is not ready; load audio before exporting")
        port = self.scheduler.port
        rate = int(sample_rate or (port.sample_rate if port is not None else self.config.sample_rate))
        duration = self.project.total_duration if duration_seconds is None else duration_seconds
        buffer = self.renderer.render(self.snapshot(), duration, rate)
        payload = encode_wav(buffer, rate, buffer.shape[1])
        logger.info("Exported %.2fs mix at %d Hz (%d bytes)", duration, rate, len(payload))
        return payload

    # ------------------------------------------------------------------
    # Track and keyframe editing
    # ------------------------------------------------------------------
    def add_track(self, track: Track | None = None) -> Track:
        return self.project.add_track(track)

    def remove_track(self, track_id: str) -> Track:
        track = self.project.remove_track(track_id)
        self.clips.discard(track_id)
        self._refresh_duration()
        return track

    def update_track(self, track_id: str, **changes: Any) -> Track:
        """Apply attribute changes (``base_volume``, ``muted``, ``solo``, ...)."""

        track = self.project.track(track_id)
        for name, value in changes.items():
            if name == "id" or name not in Track.model_fields:
                raise KeyError(f"Track has no editable field {name!r}")
            setattr(track, name, value)
        return track

    def set_keyframes(self, track_id: str, keyframes: Sequence[Keyframe]) -> List[Keyframe]:
        track = self.project.track(track_id)
        track.replace_keyframes(keyframes)
        return list(track.keyframes)

    def add_keyframe_at_playhead(self, track_id: str) -> List[Keyframe]:
        """Insert a keyframe at the playhead carrying the curve's current value."""

        track = self.project.track(track_id)
        updated = insert_keyframe(
            track.keyframes, self.current_position(), default=self.config.default_gain
        )
        return self.set_keyframes(track_id, updated)

    def remove_keyframe(self, track_id: str, index: int) -> List[Keyframe]:
        track = self.project.track(track_id)
        return self.set_keyframes(track_id, remove_keyframe(track.keyframes, index))

    def apply_fade_in(self, track_id: str) -> List[Keyframe]:
        track = self.project.track(track_id)
        clip = self._require_clip(track_id)
        updated = fade_in(track.keyframes, clip.duration, fade_seconds=self.config.fade_seconds)
        return self.set_keyframes(track_id, updated)

    def apply_fade_out(self, track_id: str) -> List[Keyframe]:
        track = self.project.track(track_id)
        clip = self._require_clip(track_id)
        updated = fade_out(track.keyframes, clip.duration, fade_seconds=self.config.fade_seconds)
        return self.set_keyframes(track_id, updated)

    def _refresh_duration(self) -> None:
        duration = self.project.refresh_duration(self.clips.durations())
        self.scheduler.set_duration(duration)

    def _require_clip(self, track_id: str) -> Clip:
        clip = self.clips.get(track_id)
        if clip is None:
            raise ValueError(f"Track {track_id!r} has no clip loaded")
        return clip


__all__ = ["EngineNotReadyError", "MixEngine"]
