import pytest
from pydantic import ValidationError

from domain.models import MIN_PROJECT_SECONDS, Keyframe, Project, Track


def test_starter_project_has_voice_and_music_tracks() -> None:
    project = Project.starter()
    assert [(track.id, track.name, track.base_volume) for track in project.tracks] == [
        ("track-1", "Voice", 1.0),
        ("track-2", "Music", 0.5),
    ]
    assert project.total_duration == MIN_PROJECT_SECONDS


def test_keyframe_rejects_negative_time() -> None:
    with pytest.raises(ValidationError):
        Keyframe(time=-0.1, volume=1.0)


def test_keyframes_are_sorted_stably_on_construction_and_replace() -> None:
    track = Track(
        id="t",
        keyframes=[
            Keyframe(time=3.0, volume=0.1),
            Keyframe(time=1.0, volume=0.5),
            Keyframe(time=3.0, volume=0.9),
        ],
    )
    assert [(k.time, k.volume) for k in track.keyframes] == [(1.0, 0.5), (3.0, 0.1), (3.0, 0.9)]

    previous = track.keyframes
    track.replace_keyframes([Keyframe(time=2.0, volume=0.2), Keyframe(time=0.0, volume=1.0)])
    assert [k.time for k in track.keyframes] == [0.0, 2.0]
    assert track.keyframes is not previous
    assert [k.time for k in previous] == [1.0, 3.0, 3.0]


def test_track_assignment_is_validated() -> None:
    track = Track(id="t")
    track.muted = True
    assert track.muted is True
    with pytest.raises(ValidationError):
        track.base_volume = -1.0


def test_add_track_generates_unique_ids() -> None:
    project = Project.starter()
    added = project.add_track()
    assert added.id == "track-3"
    assert added.name == "Track 3"
    with pytest.raises(ValueError):
        project.add_track(Track(id="track-1"))


def test_track_lookup_and_removal() -> None:
    project = Project.starter()
    assert project.track("track-2").name == "Music"
    project.remove_track("track-2")
    with pytest.raises(KeyError):
        project.track("track-2")


def test_refresh_duration_uses_longest_clip_with_floor() -> None:
    project = Project.starter()
    assert project.refresh_duration({"track-1": 42.0}) == MIN_PROJECT_SECONDS
    assert project.refresh_duration({"track-1": 42.0, "track-2": 412.5}) == 412.5
    # Clips for tracks that are no longer in the project are ignored.
    assert project.refresh_duration({"gone": 900.0}) == MIN_PROJECT_SECONDS
