import pytest

from audio.mixer import MixSnapshot, TrackMix
from audio.scheduler import PlaybackScheduler, TransportState
from audio.scheduling import FakeSchedulingPort
from domain.models import Keyframe


def _snapshot(*tracks: TrackMix, duration: float = 60.0) -> MixSnapshot:
    return MixSnapshot.from_tracks(tracks, duration)


def _voice(make_clip, keyframes=(), *, track_id="voice", base=1.0, muted=False, solo=False, clip=True):
    return TrackMix(
        track_id=track_id,
        clip=make_clip(60.0) if clip else None,
        base_volume=base,
        muted=muted,
        solo=solo,
        keyframes=tuple(Keyframe(time=t, volume=v) for t, v in keyframes),
    )


def test_play_primes_gain_and_schedules_remaining_ramps(make_clip) -> None:
    port = FakeSchedulingPort(start_time=100.0)
    scheduler = PlaybackScheduler(port)
    track = _voice(make_clip, [(0.0, 0.0), (2.0, 1.0), (6.0, 0.5)], base=0.8)

    scheduler.play(_snapshot(track), 3.0)

    assert scheduler.state is TransportState.PLAYING
    (voice,) = scheduler.voices
    events = voice.gain.gain.events
    assert events[0].kind == "set"
    assert events[0].time_seconds == pytest.approx(100.0)
    assert events[0].value == pytest.approx(0.875 * 0.8)
    assert [(event.kind, event.time_seconds, event.value) for event in events[1:]] == [
        ("ramp", pytest.approx(103.0), pytest.approx(0.4)),
    ]
    assert voice.source.start_time == pytest.approx(100.0)
    assert voice.source.offset == pytest.approx(3.0)
    assert scheduler.current_position() == pytest.approx(3.0)
    port.advance(1.5)
    assert scheduler.current_position() == pytest.approx(4.5)


def test_track_without_keyframes_plays_at_default_gain(make_clip) -> None:
    port = FakeSchedulingPort()
    scheduler = PlaybackScheduler(port)
    scheduler.play(_snapshot(_voice(make_clip, base=0.5)), 0.0)
    (voice,) = scheduler.voices
    assert [(event.kind, event.value) for event in voice.gain.gain.events] == [("set", 0.25)]


def test_only_audible_tracks_with_clips_get_voices(make_clip) -> None:
    port = FakeSchedulingPort()
    scheduler = PlaybackScheduler(port)
    snapshot = _snapshot(
        _voice(make_clip, track_id="A"),
        _voice(make_clip, track_id="B", solo=True),
        _voice(make_clip, track_id="C", solo=True, muted=True),
        _voice(make_clip, track_id="D", solo=True, clip=False),
    )
    scheduler.play(snapshot, 0.0)
    assert [voice.track_id for voice in scheduler.voices] == ["B"]


def test_pause_freezes_position_and_resume_reuses_graph(make_clip) -> None:
    port = FakeSchedulingPort()
    scheduler = PlaybackScheduler(port)
    snapshot = _snapshot(_voice(make_clip, [(0.0, 1.0)]))
    scheduler.play(snapshot, 3.0)
    port.advance(4.0)

    assert scheduler.pause() == pytest.approx(7.0)
    assert scheduler.state is TransportState.PAUSED
    assert port.suspended
    port.advance(10.0)
    assert scheduler.current_position() == pytest.approx(7.0)

    scheduler.play(snapshot)
    assert scheduler.state is TransportState.PLAYING
    assert len(port.created_sources) == 1
    port.advance(1.0)
    assert scheduler.current_position() == pytest.approx(8.0)


def test_play_from_pause_at_new_offset_rebuilds(make_clip) -> None:
    port = FakeSchedulingPort()
    scheduler = PlaybackScheduler(port)
    snapshot = _snapshot(_voice(make_clip))
    scheduler.play(snapshot, 0.0)
    port.advance(2.0)
    scheduler.pause()

    scheduler.play(snapshot, 20.0)
    first, second = port.created_sources
    assert first.stopped and first.target is None
    assert second.offset == pytest.approx(20.0)
    assert not port.suspended
    assert scheduler.current_position() == pytest.approx(20.0)


def test_seek_during_playback_discards_earlier_ramps(make_clip) -> None:
    port = FakeSchedulingPort()
    scheduler = PlaybackScheduler(port)
    snapshot = _snapshot(_voice(make_clip, [(5.0, 0.1), (8.0, 0.3), (12.0, 1.0)]))
    scheduler.play(snapshot, 0.0)
    old_voice = scheduler.voices[0]
    port.advance(3.0)

    assert scheduler.seek(10.0) == pytest.approx(10.0)

    assert scheduler.state is TransportState.PLAYING
    assert old_voice.source.stopped
    assert old_voice.source.target is None
    assert not old_voice.gain.connected
    (new_voice,) = scheduler.voices
    events = new_voice.gain.gain.events
    assert events[0].value == pytest.approx(0.65)
    assert [event.time_seconds for event in events[1:]] == [pytest.approx(5.0)]

    port.advance(1.0)
    assert scheduler.current_position() >= 10.0
    assert port.fired_ramps() == []
    assert [event.value for event in port.pending_ramps()] == [pytest.approx(1.0)]
    port.advance(2.0)
    assert [event.value for event in port.fired_ramps()] == [pytest.approx(1.0)]
    assert scheduler.current_position() == pytest.approx(13.0)


def test_seek_while_paused_stays_paused_until_play(make_clip) -> None:
    port = FakeSchedulingPort()
    scheduler = PlaybackScheduler(port)
    snapshot = _snapshot(_voice(make_clip))
    scheduler.play(snapshot, 0.0)
    port.advance(2.0)
    scheduler.pause()

    assert scheduler.seek(7.0) == pytest.approx(7.0)
    assert scheduler.state is TransportState.PAUSED
    assert scheduler.voices == []
    assert all(source.stopped for source in port.created_sources)

    scheduler.play(snapshot)
    assert scheduler.state is TransportState.PLAYING
    assert port.created_sources[-1].offset == pytest.approx(7.0)


def test_seek_clamps_to_project_bounds(make_clip) -> None:
    port = FakeSchedulingPort()
    scheduler = PlaybackScheduler(port)
    snapshot = _snapshot(_voice(make_clip), duration=60.0)
    assert scheduler.seek(-4.0, snapshot) == 0.0
    assert scheduler.seek(999.0, snapshot) == pytest.approx(60.0)
    assert scheduler.state is TransportState.STOPPED


def test_position_is_clamped_while_playing(make_clip) -> None:
    port = FakeSchedulingPort()
    scheduler = PlaybackScheduler(port)
    scheduler.play(_snapshot(_voice(make_clip), duration=60.0), 58.0)
    port.advance(10.0)
    assert scheduler.current_position() == pytest.approx(60.0)


def test_play_while_playing_tears_down_previous_session(make_clip) -> None:
    port = FakeSchedulingPort()
    scheduler = PlaybackScheduler(port)
    snapshot = _snapshot(_voice(make_clip))
    scheduler.play(snapshot, 0.0)
    scheduler.play(snapshot, 5.0)
    assert len(port.created_sources) == 2
    assert port.created_sources[0].stopped
    assert len(port.active_sources()) == 1


def test_stop_rewinds_and_teardown_is_idempotent(make_clip) -> None:
    port = FakeSchedulingPort()
    scheduler = PlaybackScheduler(port)
    scheduler.stop()
    scheduler.play(_snapshot(_voice(make_clip)), 4.0)
    port.advance(1.0)

    scheduler.stop()
    scheduler.stop()
    assert scheduler.state is TransportState.STOPPED
    assert scheduler.current_position() == 0.0
    assert scheduler.voices == []
    assert port.active_sources() == []


def test_scheduler_without_port_ignores_transport(make_clip) -> None:
    scheduler = PlaybackScheduler(None)
    snapshot = _snapshot(_voice(make_clip))
    assert not scheduler.is_ready
    scheduler.play(snapshot, 5.0)
    assert scheduler.seek(3.0, snapshot) == 0.0
    assert scheduler.pause() == 0.0
    scheduler.stop()
    scheduler.close()
    assert scheduler.state is TransportState.STOPPED
    assert scheduler.current_position() == 0.0


def test_set_duration_clamps_stored_position(make_clip) -> None:
    port = FakeSchedulingPort()
    scheduler = PlaybackScheduler(port)
    scheduler.seek(40.0, _snapshot(_voice(make_clip), duration=60.0))

    assert scheduler.set_duration(25.0) == pytest.approx(25.0)
    assert scheduler.current_position() == pytest.approx(25.0)
    assert scheduler.seek(50.0) == pytest.approx(25.0)


def test_set_duration_clamps_live_position(make_clip) -> None:
    port = FakeSchedulingPort()
    scheduler = PlaybackScheduler(port)
    scheduler.play(_snapshot(_voice(make_clip), duration=60.0), 30.0)
    port.advance(2.0)

    scheduler.set_duration(10.0)

    assert scheduler.state is TransportState.PLAYING
    assert scheduler.current_position() == pytest.approx(10.0)
