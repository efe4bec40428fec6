import io
import sys
from pathlib import Path
from typing import Callable

import numpy as np
import pytest
import soundfile as sf

from audio.clips import Clip
from domain.models import Keyframe, Project, Track

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def constant_clip(seconds: float, value: float = 1.0, *, sample_rate: int = 100, channels: int = 1) -> Clip:
    frames = int(round(seconds * sample_rate))
    return Clip(samples=np.full((frames, channels), value, dtype=np.float32), sample_rate=sample_rate)


def wav_bytes(samples: np.ndarray, sample_rate: int) -> bytes:
    buffer = io.BytesIO()
    sf.write(buffer, samples, sample_rate, format="WAV", subtype="FLOAT")
    return buffer.getvalue()


@pytest.fixture()
def make_clip() -> Callable[..., Clip]:
    return constant_clip


@pytest.fixture()
def make_wav() -> Callable[..., bytes]:
    def factory(seconds: float, value: float = 0.25, *, sample_rate: int = 8_000, channels: int = 1) -> bytes:
        frames = int(round(seconds * sample_rate))
        return wav_bytes(np.full((frames, channels), value, dtype=np.float32), sample_rate)

    return factory


@pytest.fixture()
def two_track_project() -> Project:
    return Project(
        name="Interview",
        min_duration=5.0,
        total_duration=5.0,
        tracks=[
            Track(
                id="voice",
                name="Voice",
                base_volume=1.0,
                keyframes=[Keyframe(time=0.0, volume=0.0), Keyframe(time=2.0, volume=1.0)],
            ),
            Track(id="music", name="Music", base_volume=0.5),
        ],
    )
