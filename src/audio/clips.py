"""Decoded audio clips and the per-track clip registry."""
from __future__ import annotations

from dataclasses import dataclass
import io
import logging
from typing import Dict, Iterator, Mapping, Optional, Protocol, Tuple

import numpy as np
import soundfile as sf

logger = logging.getLogger(__name__)


class DecodeError(ValueError):
    """Raised when raw bytes cannot be decoded into a :class:`Clip`."""


@dataclass(frozen=True, eq=False)
class Clip:
    """Immutable decoded audio shaped ``(frames, channels)`` in float32."""

    samples: np.ndarray
    sample_rate: int

    def __post_init__(self) -> None:
        samples = np.asarray(self.samples, dtype=np.float32)
        if samples.ndim == 1:
            samples = samples[:, None]
        if samples.ndim != 2:
            raise ValueError("Clip samples must be 1-D or (frames, channels)")
        if self.sample_rate <= 0:
            raise ValueError("Clip sample rate must be positive")
        samples = samples.copy()
        samples.flags.writeable = False
        object.__setattr__(self, "samples", samples)

    @property
    def frames(self) -> int:
        return int(self.samples.shape[0])

    @property
    def channels(self) -> int:
        return int(self.samples.shape[1])

    @property
    def duration(self) -> float:
        return self.frames / float(self.sample_rate)

    def render_frames(self, sample_rate: int, channels: int = 2) -> np.ndarray:
        """Return the clip resampled to *sample_rate* and mapped to *channels*.

        Mono clips feed every output channel; extra source channels are
        dropped.  Resampling is linear interpolation.
        """

        data = self.samples
        if sample_rate != self.sample_rate and self.frames > 0:
            out_frames = int(round(self.frames * sample_rate / float(self.sample_rate)))
            positions = np.arange(out_frames, dtype=np.float64) * (self.sample_rate / float(sample_rate))
            source = np.arange(self.frames, dtype=np.float64)
            data = np.stack(
                [np.interp(positions, source, data[:, channel]) for channel in range(self.channels)],
                axis=1,
            ).astype(np.float32)

        if data.shape[1] == channels:
            return np.array(data, dtype=np.float32, copy=True)
        if data.shape[1] == 1:
            return np.repeat(data, channels, axis=1).astype(np.float32)
        if data.shape[1] > channels:
            return np.array(data[:, :channels], dtype=np.float32, copy=True)
        padded = np.zeros((data.shape[0], channels), dtype=np.float32)
        padded[:, : data.shape[1]] = data
        return padded


class ClipDecoder(Protocol):
    """Turns raw file bytes into a :class:`Clip` or raises :class:`DecodeError`."""

    def decode(self, raw: bytes) -> Clip:
        """Decode *raw* into a clip."""


class SoundFileDecoder:
    """Decoder backed by libsndfile (WAV, FLAC, OGG, MP3 where supported)."""

    def decode(self, raw: bytes) -> Clip:
        if not raw:
            raise DecodeError("No audio data supplied")
        try:
            samples, sample_rate = sf.read(io.BytesIO(raw), dtype="float32", always_2d=True)
        except RuntimeError as exc:
            raise DecodeError(f"Unsupported or corrupt audio data: {exc}") from exc
        if samples.shape[0] == 0:
            raise DecodeError("Audio data contains no frames")
        return Clip(samples=samples, sample_rate=int(sample_rate))


class ClipRegistry:
    """Owns the decoded clip for each track id."""

    def __init__(self, decoder: ClipDecoder | None = None) -> None:
        self._decoder = decoder or SoundFileDecoder()
        self._clips: Dict[str, Clip] = {}

    def load(self, track_id: str, raw: bytes) -> Clip:
        """Decode *raw* and bind it to *track_id*.

        On :class:`DecodeError` the registry is left exactly as it was.
        """

        try:
            clip = self._decoder.decode(raw)
        except DecodeError:
            logger.warning("Failed to decode audio for track %s", track_id)
            raise
        self._clips[track_id] = clip
        logger.info(
            "Loaded clip for track %s (%.2fs, %d ch @ %d Hz)",
            track_id,
            clip.duration,
            clip.channels,
            clip.sample_rate,
        )
        return clip

    def assign(self, track_id: str, clip: Clip) -> None:
        """Bind an already decoded clip to *track_id*."""

        self._clips[track_id] = clip

    def get(self, track_id: str) -> Optional[Clip]:
        return self._clips.get(track_id)

    def discard(self, track_id: str) -> None:
        self._clips.pop(track_id, None)

    def durations(self) -> Mapping[str, float]:
        return {track_id: clip.duration for track_id, clip in self._clips.items()}

    def items(self) -> Iterator[Tuple[str, Clip]]:
        return iter(list(self._clips.items()))

    def __contains__(self, track_id: object) -> bool:
        return track_id in self._clips

    def __len__(self) -> int:
        return len(self._clips)


__all__ = [
    "Clip",
    "ClipDecoder",
    "ClipRegistry",
    "DecodeError",
    "SoundFileDecoder",
]
