"""Keyframe automation curves.

A track's gain over time is a piecewise-linear curve through its keyframes,
held flat before the first and after the last keyframe.  The same evaluation
feeds the live scheduler (which primes gain nodes with it) and the offline
renderer (which evaluates it per sample), so a preview and an export of the
same project agree.
"""
from __future__ import annotations

from typing import Iterable, List, Protocol, Sequence

import numpy as np

from domain.models import Keyframe

DEFAULT_GAIN = 0.5
"""Gain reported for a track without any keyframes."""

DEFAULT_FADE_SECONDS = 2.0


class KeyframeLike(Protocol):
    time: float
    volume: float


def sort_keyframes(keyframes: Iterable[KeyframeLike]) -> List[KeyframeLike]:
    """Return a time-ordered copy; equal timestamps keep their list order."""

    return sorted(keyframes, key=lambda keyframe: keyframe.time)


def volume_at(
    keyframes: Sequence[KeyframeLike],
    time_seconds: float,
    *,
    default: float = DEFAULT_GAIN,
) -> float:
    """Return the automation value at *time_seconds*.

    The sequence is never mutated.  ``next`` is the first keyframe whose time
    is at or after *time_seconds* and ``prev`` its predecessor; a zero-width
    segment returns ``prev.volume``.
    """

    ordered = sort_keyframes(keyframes)
    if not ordered:
        return default

    next_index = next(
        (index for index, keyframe in enumerate(ordered) if keyframe.time >= time_seconds),
        -1,
    )
    if next_index == -1:
        return float(ordered[-1].volume)
    if next_index == 0:
        return float(ordered[0].volume)

    prev = ordered[next_index - 1]
    nxt = ordered[next_index]
    if nxt.time == prev.time:
        return float(prev.volume)
    ratio = (time_seconds - prev.time) / (nxt.time - prev.time)
    return float(prev.volume + (nxt.volume - prev.volume) * ratio)


def envelope(times: np.ndarray, values: np.ndarray, query: np.ndarray) -> np.ndarray:
    """Vectorised :func:`volume_at` over ascending breakpoint arrays.

    *times* must already be sorted.  Returns a float64 array shaped like
    *query*.
    """

    query = np.asarray(query, dtype=np.float64)
    count = len(times)
    if count == 0:
        raise ValueError("envelope() needs at least one breakpoint")
    if count == 1:
        return np.full(query.shape, float(values[0]), dtype=np.float64)

    index = np.searchsorted(times, query, side="left")
    nxt = np.clip(index, 1, count - 1)
    prev = nxt - 1
    span = times[nxt] - times[prev]
    flat = span == 0.0
    ratio = (query - times[prev]) / np.where(flat, 1.0, span)
    ramp = values[prev] + (values[nxt] - values[prev]) * ratio
    ramp = np.where(flat, values[prev], ramp)
    ramp = np.where(index == 0, values[0], ramp)
    return np.where(index >= count, values[-1], ramp)


def gain_envelope(
    keyframes: Sequence[KeyframeLike],
    times: np.ndarray,
    *,
    base_volume: float = 1.0,
    default: float = DEFAULT_GAIN,
) -> np.ndarray:
    """Return ``volume_at(keyframes, t) * base_volume`` for every ``t`` in *times*."""

    ordered = sort_keyframes(keyframes)
    if not ordered:
        return np.full(np.shape(times), default * base_volume, dtype=np.float64)
    point_times = np.array([keyframe.time for keyframe in ordered], dtype=np.float64)
    point_values = np.array([keyframe.volume for keyframe in ordered], dtype=np.float64)
    return envelope(point_times, point_values, times) * base_volume


# ----------------------------------------------------------------------
# Keyframe edits.  Each returns a new sorted list; inputs are untouched.
# ----------------------------------------------------------------------
def insert_keyframe(
    keyframes: Sequence[Keyframe],
    time_seconds: float,
    *,
    volume: float | None = None,
    default: float = DEFAULT_GAIN,
) -> List[Keyframe]:
    """Add a keyframe at *time_seconds*, sampling the curve when no volume is given."""

    if volume is None:
        volume = volume_at(keyframes, time_seconds, default=default)
    added = Keyframe(time=time_seconds, volume=volume)
    return sort_keyframes([*keyframes, added])


def remove_keyframe(keyframes: Sequence[Keyframe], index: int) -> List[Keyframe]:
    if index < 0 or index >= len(keyframes):
        raise IndexError(f"Keyframe index {index} out of range")
    return [keyframe for position, keyframe in enumerate(keyframes) if position != index]


def fade_in(
    keyframes: Sequence[Keyframe],
    clip_duration: float,
    *,
    fade_seconds: float = DEFAULT_FADE_SECONDS,
) -> List[Keyframe]:
    """Ramp from silence to unity over the first *fade_seconds* of the clip.

    Keyframes inside the fade window are replaced; later ones are kept.
    """

    end = min(fade_seconds, clip_duration)
    kept = [keyframe for keyframe in keyframes if keyframe.time > end]
    return sort_keyframes([Keyframe(time=0.0, volume=0.0), Keyframe(time=end, volume=1.0), *kept])


def fade_out(
    keyframes: Sequence[Keyframe],
    clip_duration: float,
    *,
    fade_seconds: float = DEFAULT_FADE_SECONDS,
) -> List[Keyframe]:
    """Ramp from unity to silence over the last *fade_seconds* of the clip."""

    start = max(0.0, clip_duration - fade_seconds)
    kept = [keyframe for keyframe in keyframes if keyframe.time < start]
    return sort_keyframes(
        [*kept, Keyframe(time=start, volume=1.0), Keyframe(time=clip_duration, volume=0.0)]
    )


__all__ = [
    "DEFAULT_FADE_SECONDS",
    "DEFAULT_GAIN",
    "KeyframeLike",
    "envelope",
    "fade_in",
    "fade_out",
    "gain_envelope",
    "insert_keyframe",
    "remove_keyframe",
    "sort_keyframes",
    "volume_at",
]
