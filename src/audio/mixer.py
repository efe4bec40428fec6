"""Solo/mute policy and immutable mix snapshots.

Live playback and offline export both consume a :class:`MixSnapshot`, a
frozen copy of every track's switches, keyframes and clip reference.
Taking the snapshot is the only point where either path reads the mutable
project, so a render running alongside playback never observes a half-edited
track.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Protocol, Sequence, Tuple

from domain.models import Keyframe, Project

from .clips import Clip, ClipRegistry


class SoloMuteSwitches(Protocol):
    muted: bool
    solo: bool


def audible(candidates: Sequence[SoloMuteSwitches]) -> List[SoloMuteSwitches]:
    """Return the entries of *candidates* that should be heard.

    When any entry is soloed only soloed entries are eligible; mute then
    filters within the eligible set.
    """

    any_solo = any(candidate.solo for candidate in candidates)
    return [
        candidate
        for candidate in candidates
        if not candidate.muted and (candidate.solo or not any_solo)
    ]


@dataclass(frozen=True)
class TrackMix:
    """Read-only view of one track as the mixer sees it."""

    track_id: str
    clip: Clip | None
    base_volume: float
    muted: bool
    solo: bool
    keyframes: Tuple[Keyframe, ...]


@dataclass(frozen=True)
class MixSnapshot:
    """Frozen copy of the project state needed to play or render a mix."""

    tracks: Tuple[TrackMix, ...]
    total_duration: float

    @classmethod
    def capture(cls, project: Project, clips: ClipRegistry) -> MixSnapshot:
        return cls(
            tracks=tuple(
                TrackMix(
                    track_id=track.id,
                    clip=clips.get(track.id),
                    base_volume=float(track.base_volume),
                    muted=bool(track.muted),
                    solo=bool(track.solo),
                    keyframes=tuple(sorted(track.keyframes, key=lambda keyframe: keyframe.time)),
                )
                for track in project.tracks
            ),
            total_duration=float(project.total_duration),
        )

    @classmethod
    def from_tracks(cls, tracks: Iterable[TrackMix], total_duration: float) -> MixSnapshot:
        return cls(tracks=tuple(tracks), total_duration=float(total_duration))

    def audible_tracks(self) -> List[TrackMix]:
        """Tracks that pass the solo/mute policy, clip or not."""

        return audible(self.tracks)

    def playable_tracks(self) -> List[TrackMix]:
        """Audible tracks that actually have a clip to play."""

        return [track for track in self.audible_tracks() if track.clip is not None]


__all__ = [
    "MixSnapshot",
    "SoloMuteSwitches",
    "TrackMix",
    "audible",
]
