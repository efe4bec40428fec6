"""Pydantic-powered domain models for multi-track mix projects.

Tracks own their automation keyframes; decoded audio lives outside the
models in :class:`audio.clips.ClipRegistry` so projects stay plain data.
Keyframe lists are always replaced wholesale and stored sorted by time.
"""
from __future__ import annotations

from typing import Iterable, List, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator

MIN_PROJECT_SECONDS = 300.0


class Keyframe(BaseModel):
    """A (time, gain) control point on a track's automation curve."""

    model_config = ConfigDict(frozen=True)

    time: float = Field(..., ge=0.0, description="Position of the keyframe in seconds")
    volume: float = Field(..., description="Gain multiplier, typically within 0..1.5")


class Track(BaseModel):
    """Mixer track: base volume, mute/solo switches and automation keyframes."""

    model_config = ConfigDict(validate_assignment=True)

    id: str
    name: str = ""
    base_volume: float = Field(1.0, ge=0.0)
    muted: bool = False
    solo: bool = False
    keyframes: List[Keyframe] = Field(default_factory=list)

    @field_validator("keyframes")
    @classmethod
    def sort_keyframes(cls, value: List[Keyframe]) -> List[Keyframe]:
        return sorted(value, key=lambda keyframe: keyframe.time)

    def replace_keyframes(self, keyframes: Iterable[Keyframe]) -> None:
        """Swap in a new keyframe list, sorted by time."""

        self.keyframes = sorted(keyframes, key=lambda keyframe: keyframe.time)


class Project(BaseModel):
    """Top-level container storing the ordered track list."""

    name: str = "Untitled Podcast"
    tracks: List[Track] = Field(default_factory=list)
    total_duration: float = Field(MIN_PROJECT_SECONDS, ge=0.0)
    min_duration: float = Field(MIN_PROJECT_SECONDS, ge=0.0)

    @classmethod
    def starter(cls, name: str = "Untitled Podcast") -> Project:
        """Return the default two-track layout (voice plus quieter music bed)."""

        return cls(
            name=name,
            tracks=[
                Track(id="track-1", name="Voice", base_volume=1.0),
                Track(id="track-2", name="Music", base_volume=0.5),
            ],
        )

    def track(self, track_id: str) -> Track:
        """Return the track registered under *track_id*."""

        for track in self.tracks:
            if track.id == track_id:
                return track
        raise KeyError(f"Track {track_id!r} not found")

    def add_track(self, track: Track | None = None) -> Track:
        """Append *track* (or a fresh ``Track N``), rejecting duplicate ids."""

        if track is None:
            number = len(self.tracks) + 1
            track_id = f"track-{number}"
            while any(existing.id == track_id for existing in self.tracks):
                number += 1
                track_id = f"track-{number}"
            track = Track(id=track_id, name=f"Track {len(self.tracks) + 1}")
        elif any(existing.id == track.id for existing in self.tracks):
            raise ValueError(f"Track {track.id!r} already exists")
        self.tracks.append(track)
        return track

    def remove_track(self, track_id: str) -> Track:
        track = self.track(track_id)
        self.tracks.remove(track)
        return track

    def refresh_duration(self, clip_durations: Mapping[str, float]) -> float:
        """Recompute ``total_duration`` from the loaded clip durations.

        The result never drops below ``min_duration``.
        """

        longest = max(
            (
                float(duration)
                for track_id, duration in clip_durations.items()
                if any(track.id == track_id for track in self.tracks)
            ),
            default=0.0,
        )
        self.total_duration = max(longest, self.min_duration)
        return self.total_duration
