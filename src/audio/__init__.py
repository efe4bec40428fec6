"""Multi-track playback and mixdown engine."""
from .automation import (
    DEFAULT_GAIN,
    envelope,
    fade_in,
    fade_out,
    gain_envelope,
    insert_keyframe,
    remove_keyframe,
    volume_at,
)
from .clips import Clip, ClipRegistry, DecodeError, SoundFileDecoder
from .device import StreamSchedulingPort, open_output_port
from .engine import AutomationEvent, EngineConfig, GainAutomation
from .mixer import MixSnapshot, TrackMix, audible
from .renderer import OfflineRenderer, interleave
from .scheduler import PlaybackScheduler, TransportState
from .scheduling import FakeSchedulingPort, SchedulingPort
from .wav import WavHeader, encode_wav, read_wav_header

__all__ = [
    "AutomationEvent",
    "Clip",
    "ClipRegistry",
    "DEFAULT_GAIN",
    "DecodeError",
    "EngineConfig",
    "FakeSchedulingPort",
    "GainAutomation",
    "MixSnapshot",
    "OfflineRenderer",
    "PlaybackScheduler",
    "SchedulingPort",
    "SoundFileDecoder",
    "StreamSchedulingPort",
    "TrackMix",
    "TransportState",
    "WavHeader",
    "audible",
    "encode_wav",
    "envelope",
    "fade_in",
    "fade_out",
    "gain_envelope",
    "insert_keyframe",
    "interleave",
    "open_output_port",
    "read_wav_header",
    "remove_keyframe",
    "volume_at",
]
