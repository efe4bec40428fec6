import numpy as np
import pytest

from audio.clips import Clip, ClipRegistry, DecodeError, SoundFileDecoder


def test_soundfile_decoder_reads_wav_bytes(make_wav) -> None:
    clip = SoundFileDecoder().decode(make_wav(1.5, 0.25, sample_rate=8_000, channels=2))
    assert clip.sample_rate == 8_000
    assert clip.channels == 2
    assert clip.frames == 12_000
    assert clip.duration == pytest.approx(1.5)
    np.testing.assert_allclose(clip.samples[:4], np.full((4, 2), 0.25))


@pytest.mark.parametrize("raw", [b"", b"definitely not audio", b"RIFF\x00\x00\x00\x00WAVE"])
def test_soundfile_decoder_rejects_garbage(raw: bytes) -> None:
    with pytest.raises(DecodeError):
        SoundFileDecoder().decode(raw)


def test_clip_is_read_only() -> None:
    clip = Clip(samples=np.zeros(10, dtype=np.float32), sample_rate=10)
    assert clip.samples.shape == (10, 1)
    with pytest.raises(ValueError):
        clip.samples[0, 0] = 1.0


def test_render_frames_maps_mono_to_stereo() -> None:
    clip = Clip(samples=np.arange(4, dtype=np.float32), sample_rate=4)
    frames = clip.render_frames(4, 2)
    assert frames.shape == (4, 2)
    np.testing.assert_array_equal(frames[:, 0], frames[:, 1])


def test_render_frames_drops_extra_channels_and_resamples() -> None:
    samples = np.stack([np.linspace(0.0, 1.0, 100), np.zeros(100), np.ones(100)], axis=1)
    clip = Clip(samples=samples, sample_rate=100)
    frames = clip.render_frames(200, 2)
    assert frames.shape == (200, 2)
    assert frames[0, 0] == pytest.approx(0.0)
    assert frames[2, 0] == pytest.approx(samples[1, 0], rel=1e-5)
    np.testing.assert_array_equal(frames[:, 1], np.zeros(200, dtype=np.float32))


def test_registry_keeps_previous_clip_when_decode_fails(make_wav) -> None:
    registry = ClipRegistry()
    original = registry.load("voice", make_wav(2.0))
    with pytest.raises(DecodeError):
        registry.load("voice", b"garbage")
    with pytest.raises(DecodeError):
        registry.load("music", b"garbage")
    assert registry.get("voice") is original
    assert "music" not in registry
    assert registry.durations() == {"voice": pytest.approx(2.0)}


def test_registry_replaces_and_discards_clips(make_wav) -> None:
    registry = ClipRegistry()
    registry.load("voice", make_wav(1.0))
    replacement = registry.load("voice", make_wav(3.0))
    assert registry.get("voice") is replacement
    assert len(registry) == 1
    registry.discard("voice")
    registry.discard("voice")
    assert registry.get("voice") is None
