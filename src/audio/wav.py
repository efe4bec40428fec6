"""Canonical 16-bit PCM RIFF/WAVE encoding."""
from __future__ import annotations

from dataclasses import dataclass
import struct

import numpy as np

HEADER_SIZE = 44
BITS_PER_SAMPLE = 16
PCM_FORMAT = 1

_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")


@dataclass(frozen=True)
class WavHeader:
    """Fields of the 44-byte canonical header."""

    riff_size: int
    audio_format: int
    channels: int
    sample_rate: int
    byte_rate: int
    block_align: int
    bits_per_sample: int
    data_size: int

    @property
    def frames(self) -> int:
        return self.data_size // self.block_align if self.block_align else 0


def encoded_size(frames: int, channels: int) -> int:
    """Total byte length of an encoded file, header included."""

    return HEADER_SIZE + frames * channels * (BITS_PER_SAMPLE // 8)


def float_to_pcm16(samples: np.ndarray) -> np.ndarray:
    """Clamp to ``[-1, 1]`` and scale asymmetrically into int16.

    Negative values scale by 32768 and the rest by 32767, truncating toward
    zero, so ``-1.0`` maps to ``-32768`` and ``1.0`` to ``32767``.
    """

    values = np.nan_to_num(np.asarray(samples, dtype=np.float64), nan=0.0)
    values = np.clip(values, -1.0, 1.0)
    scaled = np.where(values < 0.0, values * 32768.0, values * 32767.0)
    return np.trunc(scaled).astype(np.int16)


def encode_wav(pcm: np.ndarray, sample_rate: int, channels: int = 2) -> bytes:
    """Serialise *pcm* into a WAV byte string.

    *pcm* is either ``(frames, channels)`` or already interleaved 1-D data.
    """

    if sample_rate <= 0:
        raise ValueError("sample_rate must be positive")
    if channels <= 0:
        raise ValueError("channels must be positive")

    data = np.asarray(pcm)
    if data.ndim == 2:
        if data.shape[1] != channels:
            raise ValueError(f"Buffer has {data.shape[1]} channels; expected {channels}")
    elif data.ndim == 1:
        if data.shape[0] % channels:
            raise ValueError("Interleaved buffer length is not a multiple of the channel count")
    else:
        raise ValueError("PCM buffer must be 1-D interleaved or (frames, channels)")

    payload = float_to_pcm16(data).astype("<i2").tobytes(order="C")
    block_align = channels * (BITS_PER_SAMPLE // 8)
    header = _HEADER.pack(
        b"RIFF",
        HEADER_SIZE - 8 + len(payload),
        b"WAVE",
        b"fmt ",
        16,
        PCM_FORMAT,
        channels,
        sample_rate,
        sample_rate * block_align,
        block_align,
        BITS_PER_SAMPLE,
        b"data",
        len(payload),
    )
    return header + payload


def read_wav_header(data: bytes) -> WavHeader:
    """Parse the canonical header written by :func:`encode_wav`."""

    if len(data) < HEADER_SIZE:
        raise ValueError("Data is shorter than a WAV header")
    (
        riff,
        riff_size,
        wave,
        fmt,
        fmt_size,
        audio_format,
        channels,
        sample_rate,
        byte_rate,
        block_align,
        bits_per_sample,
        data_id,
        data_size,
    ) = _HEADER.unpack_from(data)
    if riff != b"RIFF" or wave != b"WAVE" or fmt != b"fmt " or data_id != b"data" or fmt_size != 16:
        raise ValueError("Not a canonical PCM WAV header")
    return WavHeader(
        riff_size=riff_size,
        audio_format=audio_format,
        channels=channels,
        sample_rate=sample_rate,
        byte_rate=byte_rate,
        block_align=block_align,
        bits_per_sample=bits_per_sample,
        data_size=data_size,
    )


__all__ = [
    "BITS_PER_SAMPLE",
    "HEADER_SIZE",
    "WavHeader",
    "encode_wav",
    "encoded_size",
    "float_to_pcm16",
    "read_wav_header",
]
