"""Live playback scheduler: transport state machine over a scheduling port.

Gain ramps are written to the host ahead of time and cannot be edited once
scheduled, so every change of playback offset (play, seek) tears the live
graph down and rebuilds it from the new offset.  The playhead is derived
from the host clock while playing (``now - epoch``) and stored otherwise.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
import math
from typing import List, Optional

from .automation import DEFAULT_GAIN, volume_at
from .mixer import MixSnapshot, TrackMix
from .scheduling import GainNode, SchedulingPort, SourceNode

logger = logging.getLogger(__name__)

_RESUME_TOLERANCE = 1e-9


class TransportState(str, Enum):
    STOPPED = "stopped"
    PLAYING = "playing"
    PAUSED = "paused"


@dataclass
class LiveVoice:
    """One audible track's nodes within the current playback session."""

    track_id: str
    source: SourceNode
    gain: GainNode


class PlaybackScheduler:
    """Drives play/pause/seek/stop against a :class:`SchedulingPort`.

    Without a port (no output device) the scheduler is permanently not
    ready and every transport command is a logged no-op.
    """

    def __init__(self, port: Optional[SchedulingPort], *, default_gain: float = DEFAULT_GAIN) -> None:
        self._port = port
        self._default_gain = default_gain
        self._state = TransportState.STOPPED
        self._position = 0.0
        self._epoch = 0.0
        self._duration = math.inf
        self._snapshot: Optional[MixSnapshot] = None
        self._voices: List[LiveVoice] = []

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def is_ready(self) -> bool:
        return self._port is not None

    @property
    def port(self) -> Optional[SchedulingPort]:
        return self._port

    @property
    def state(self) -> TransportState:
        return self._state

    @property
    def voices(self) -> List[LiveVoice]:
        return list(self._voices)

    def current_position(self) -> float:
        """Authoritative playhead in seconds, clamped to the project length."""

        if self._state is TransportState.PLAYING and self._port is not None:
            return self._clamp(self._port.current_time - self._epoch)
        return self._position

    # ------------------------------------------------------------------
    # Transport commands
    # ------------------------------------------------------------------
    def play(self, snapshot: MixSnapshot, offset: float | None = None) -> None:
        """Start (or resume) playback of *snapshot* from *offset* seconds.

        Omitting *offset* plays from the stored playhead.  Resuming a paused
        session at its own position unfreezes the clock instead of rebuilding.
        """

        if self._port is None:
            logger.warning("play() ignored: audio output not available")
            return
        self._duration = snapshot.total_duration
        target = self._clamp(self._position if offset is None else offset)

        if (
            self._state is TransportState.PAUSED
            and self._voices
            and snapshot == self._snapshot
            and abs(target - self._position) <= _RESUME_TOLERANCE
        ):
            self._port.resume()
            self._state = TransportState.PLAYING
            logger.debug("Resumed playback at %.3fs", self._position)
            return

        self._start(snapshot, target)

    def pause(self) -> float:
        """Freeze the clock and record the elapsed time as the playhead."""

        if self._port is None:
            logger.warning("pause() ignored: audio output not available")
            return self._position
        if self._state is not TransportState.PLAYING:
            return self._position
        elapsed = self._port.current_time - self._epoch
        self._port.suspend()
        self._position = self._clamp(elapsed)
        self._state = TransportState.PAUSED
        logger.debug("Paused at %.3fs", self._position)
        return self._position

    def seek(self, time_seconds: float, snapshot: MixSnapshot | None = None) -> float:
        """Move the playhead, rebuilding the live graph when playing."""

        if self._port is None:
            logger.warning("seek() ignored: audio output not available")
            return self._position
        if snapshot is not None:
            self._duration = snapshot.total_duration
        was_playing = self._state is TransportState.PLAYING
        self._teardown()
        self._position = self._clamp(time_seconds)
        if was_playing:
            rebuild_from = snapshot or self._snapshot
            assert rebuild_from is not None  # set by the play() that started playback
            self._start(rebuild_from, self._position)
        logger.debug("Seek to %.3fs (state=%s)", self._position, self._state.value)
        return self._position

    def stop(self) -> None:
        """Tear down the live graph and rewind to the start."""

        if self._port is None:
            logger.warning("stop() ignored: audio output not available")
            return
        self._teardown()
        self._position = 0.0
        self._state = TransportState.STOPPED
        logger.debug("Stopped")

    def close(self) -> None:
        """Stop playback and release the port."""

        if self._port is None:
            return
        self.stop()
        self._port.close()

    def set_duration(self, duration: float) -> float:
        """Adopt a new project length and pull the playhead inside it.

        A running session keeps its graph; only the reported position is
        clamped against the new length.
        """

        self._duration = float(duration)
        if self._state is not TransportState.PLAYING:
            self._position = self._clamp(self._position)
        logger.debug("Project length set to %.3fs", self._duration)
        return self.current_position()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _clamp(self, time_seconds: float) -> float:
        return max(0.0, min(float(time_seconds), self._duration))

    def _start(self, snapshot: MixSnapshot, offset: float) -> None:
        port = self._port
        assert port is not None
        self._teardown()
        if port.suspended:
            port.resume()

        now = port.current_time
        self._epoch = now - offset
        for track in snapshot.playable_tracks():
            self._voices.append(self._schedule_track(port, track, now, offset))

        self._snapshot = snapshot
        self._position = offset
        self._state = TransportState.PLAYING
        logger.debug("Playing %d voice(s) from %.3fs", len(self._voices), offset)

    def _schedule_track(
        self, port: SchedulingPort, track: TrackMix, now: float, offset: float
    ) -> LiveVoice:
        assert track.clip is not None
        source = port.create_source(track.clip)
        gain = port.create_gain()
        source.connect(gain)
        gain.connect_output()

        initial = volume_at(track.keyframes, offset, default=self._default_gain)
        gain.gain.set_value_at_time(initial * track.base_volume, now)
        for keyframe in track.keyframes:
            if keyframe.time >= offset:
                gain.gain.linear_ramp_to_value_at_time(
                    keyframe.volume * track.base_volume, self._epoch + keyframe.time
                )
        source.start(now, offset)
        return LiveVoice(track_id=track.track_id, source=source, gain=gain)

    def _teardown(self) -> None:
        voices, self._voices = self._voices, []
        for voice in voices:
            voice.source.stop()
            voice.source.disconnect()
            voice.gain.disconnect()
        if voices:
            logger.debug("Tore down %d voice(s)", len(voices))


__all__ = ["LiveVoice", "PlaybackScheduler", "TransportState"]
