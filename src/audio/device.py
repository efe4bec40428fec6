"""Scheduling port backed by a sounddevice output stream.

The stream callback is the host audio thread: it mixes every active source
through its gain node's automation for the block being rendered and
advances the port clock by the number of frames written.  While suspended
the callback writes silence and the clock stands still, so scheduled ramps
resume exactly where they left off.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import numpy as np

from .engine import EngineConfig
from .scheduling import BaseSchedulingPort

logger = logging.getLogger(__name__)

try:  # pragma: no cover - depends on PortAudio being installed
    import sounddevice as sd
except (ImportError, OSError):  # pragma: no cover - no audio backend
    sd = None  # type: ignore

StreamFactory = Callable[..., Any]


class StreamSchedulingPort(BaseSchedulingPort):
    """Real-time port whose clock is the number of frames handed to the device."""

    def __init__(self, sample_rate: int, *, channels: int = 2) -> None:
        super().__init__(sample_rate, channels)
        self._frames_rendered = 0
        self._stream: Any = None

    @property
    def current_time(self) -> float:
        return self._frames_rendered / float(self.sample_rate)

    def attach_stream(self, stream: Any) -> None:
        self._stream = stream

    def render(self, frames: int) -> np.ndarray:
        """Mix the next *frames* frames and advance the clock."""

        output = np.zeros((frames, self.channels), dtype=np.float32)
        if self._suspended or frames <= 0:
            return output

        block_start = self._frames_rendered
        global_frames = np.arange(block_start, block_start + frames, dtype=np.int64)
        times = global_frames / float(self.sample_rate)

        for source in self.active_sources():
            target = source.target
            if target is None or source.start_time is None:
                continue
            start_frame = int(round(source.start_time * self.sample_rate))
            offset_frame = int(round(source.offset * self.sample_rate))
            positions = global_frames - start_frame + offset_frame
            valid = (global_frames >= start_frame) & (positions >= 0) & (positions < source.frames.shape[0])
            if not np.any(valid):
                if positions[0] >= source.frames.shape[0]:
                    source.stop()
                continue
            gains = target.gain.values_at(times[valid]).astype(np.float32)
            output[valid] += source.frames[positions[valid]] * gains[:, None]

        self._frames_rendered += frames
        return output

    def _callback(self, outdata, frames, time_info, status) -> None:  # pragma: no cover - device thread
        outdata[:] = self.render(frames)

    def close(self) -> None:
        super().close()
        stream, self._stream = self._stream, None
        if stream is not None:
            stream.stop()
            stream.close()


def open_output_port(
    config: EngineConfig,
    *,
    stream_factory: Optional[StreamFactory] = None,
) -> Optional[StreamSchedulingPort]:
    """Open the default output device, or return ``None`` when unavailable.

    A ``None`` result leaves the engine permanently not ready; callers never
    see an exception for a missing device.
    """

    if stream_factory is None:
        if sd is None:
            logger.warning("sounddevice/PortAudio not available; live playback disabled")
            return None
        stream_factory = sd.OutputStream

    errors: tuple[type[BaseException], ...] = (OSError, ValueError, RuntimeError)
    if sd is not None:
        errors = errors + (sd.PortAudioError,)

    port = StreamSchedulingPort(config.sample_rate, channels=config.channels)
    try:
        stream = stream_factory(
            samplerate=config.sample_rate,
            blocksize=config.block_size,
            channels=config.channels,
            dtype="float32",
            callback=port._callback,
        )
        stream.start()
    except errors as exc:
        logger.warning("Audio output device unavailable: %s", exc)
        return None
    port.attach_stream(stream)
    logger.debug(
        "Opened output stream at %d Hz, block size %d, %d channels",
        config.sample_rate,
        config.block_size,
        config.channels,
    )
    return port


__all__ = ["StreamSchedulingPort", "open_output_port"]
