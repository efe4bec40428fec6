"""Deterministic offline mixdown.

Renders every audible track of a :class:`MixSnapshot` into a fixed-length
stereo buffer, block by block, using the same keyframe interpolation the
live scheduler hands to the host.  Gain is evaluated per sample, so the
ramps between keyframes come out smooth rather than stepped.
"""
from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from .automation import envelope, sort_keyframes
from .engine import EngineConfig
from .mixer import MixSnapshot, TrackMix

logger = logging.getLogger(__name__)

RENDER_CHANNELS = 2


class OfflineRenderer:
    """Block-based, side-effect-free mixdown of a project snapshot."""

    def __init__(self, config: Optional[EngineConfig] = None) -> None:
        self.config = config or EngineConfig()

    def render(
        self,
        snapshot: MixSnapshot,
        duration_seconds: float,
        sample_rate: Optional[int] = None,
    ) -> np.ndarray:
        """Return a ``(frames, 2)`` float32 buffer; row-major, so interleaved.

        Contributions are summed without normalisation; values outside
        ``[-1, 1]`` are left for the encoder to clamp.
        """

        sample_rate = int(sample_rate or self.config.sample_rate)
        if sample_rate <= 0:
            raise ValueError("sample_rate must be positive")
        total_frames = max(0, int(round(duration_seconds * sample_rate)))
        output = np.zeros((total_frames, RENDER_CHANNELS), dtype=np.float32)

        tracks = snapshot.playable_tracks()
        for track in tracks:
            self._mix_track(output, track, sample_rate)

        logger.debug(
            "Rendered %d frame(s) at %d Hz from %d track(s)", total_frames, sample_rate, len(tracks)
        )
        return output

    def _mix_track(self, output: np.ndarray, track: TrackMix, sample_rate: int) -> None:
        assert track.clip is not None
        frames = track.clip.render_frames(sample_rate, RENDER_CHANNELS)
        audible_frames = min(frames.shape[0], output.shape[0])
        if audible_frames == 0:
            return

        ordered = sort_keyframes(track.keyframes)
        point_times = np.array([keyframe.time for keyframe in ordered], dtype=np.float64)
        point_values = np.array([keyframe.volume for keyframe in ordered], dtype=np.float64)
        block_size = self.config.block_size

        for frame_start in range(0, audible_frames, block_size):
            frame_end = min(frame_start + block_size, audible_frames)
            times = np.arange(frame_start, frame_end, dtype=np.float64) / sample_rate
            if ordered:
                gains = envelope(point_times, point_values, times)
            else:
                gains = np.full(times.shape, self.config.default_gain, dtype=np.float64)
            gains = gains * track.base_volume
            block = frames[frame_start:frame_end].astype(np.float64) * gains[:, None]
            output[frame_start:frame_end] += block.astype(np.float32)


def interleave(buffer: np.ndarray) -> np.ndarray:
    """Flatten a ``(frames, channels)`` buffer into L/R/L/R order."""

    return np.ascontiguousarray(buffer).reshape(-1)


__all__ = ["OfflineRenderer", "RENDER_CHANNELS", "interleave"]
