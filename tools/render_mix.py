"""CLI helper that mixes audio files into a single 16-bit WAV file offline."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Iterable, Sequence

from audio.automation import fade_in, fade_out
from audio.clips import ClipRegistry, DecodeError
from audio.engine import EngineConfig
from audio.mixer import MixSnapshot
from audio.renderer import OfflineRenderer
from audio.wav import encode_wav
from domain.models import Keyframe, Project, Track


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Render a multi-track mix with keyframed gain automation to a WAV file.",
    )
    parser.add_argument(
        "--track",
        action="append",
        default=[],
        metavar="PATH[,VOLUME]",
        help="Audio file to add as a track, optionally followed by its base volume (default 1.0).",
    )
    parser.add_argument(
        "--keyframe",
        action="append",
        default=[],
        metavar="TRACK@TIME=VOLUME",
        help="Automation keyframe for the 1-based track number, e.g. 2@10.5=0.3.",
    )
    parser.add_argument("--mute", action="append", type=int, default=[], metavar="TRACK")
    parser.add_argument("--solo", action="append", type=int, default=[], metavar="TRACK")
    parser.add_argument("--fade-in", action="append", type=int, default=[], metavar="TRACK")
    parser.add_argument("--fade-out", action="append", type=int, default=[], metavar="TRACK")
    parser.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Mix length in seconds (defaults to the longest clip, at least five minutes).",
    )
    parser.add_argument("--sample-rate", type=int, default=EngineConfig.sample_rate)
    parser.add_argument("--output", type=Path, required=True, help="Destination WAV path.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def _parse_track_spec(entry: str) -> tuple[Path, float]:
    path_part, _, volume_part = entry.partition(",")
    try:
        volume = float(volume_part) if volume_part else 1.0
    except ValueError as exc:
        raise SystemExit(f"Invalid --track entry '{entry}'. Volume must be a number.") from exc
    return Path(path_part).expanduser().resolve(), volume


def _parse_keyframes(entries: Iterable[str]) -> list[tuple[int, Keyframe]]:
    parsed: list[tuple[int, Keyframe]] = []
    for entry in entries:
        track_part, sep, remainder = entry.partition("@")
        time_part, eq, volume_part = remainder.partition("=")
        if not sep or not eq:
            raise SystemExit(f"Invalid --keyframe entry '{entry}'. Expected TRACK@TIME=VOLUME.")
        try:
            parsed.append(
                (int(track_part), Keyframe(time=float(time_part), volume=float(volume_part)))
            )
        except ValueError as exc:
            raise SystemExit(f"Invalid --keyframe entry '{entry}': {exc}") from exc
    return parsed


def _track_at(project: Project, number: int) -> Track:
    if number < 1 or number > len(project.tracks):
        raise SystemExit(f"Track number {number} is out of range (1-{len(project.tracks)}).")
    return project.tracks[number - 1]


def build_project(args: argparse.Namespace, config: EngineConfig) -> tuple[Project, ClipRegistry]:
    project = Project(name="CLI Mix", min_duration=config.min_project_seconds)
    clips = ClipRegistry()
    for index, entry in enumerate(args.track, start=1):
        path, volume = _parse_track_spec(entry)
        if not path.exists():
            raise SystemExit(f"Audio file '{path}' does not exist.")
        track = project.add_track(Track(id=f"track-{index}", name=path.stem, base_volume=volume))
        try:
            clips.load(track.id, path.read_bytes())
        except DecodeError as exc:
            raise SystemExit(f"Could not decode '{path}': {exc}") from exc
    project.refresh_duration(clips.durations())

    for number, keyframe in _parse_keyframes(args.keyframe):
        track = _track_at(project, number)
        track.replace_keyframes([*track.keyframes, keyframe])
    for number in args.mute:
        _track_at(project, number).muted = True
    for number in args.solo:
        _track_at(project, number).solo = True
    for number in args.fade_in:
        track = _track_at(project, number)
        clip = clips.get(track.id)
        assert clip is not None
        track.replace_keyframes(fade_in(track.keyframes, clip.duration, fade_seconds=config.fade_seconds))
    for number in args.fade_out:
        track = _track_at(project, number)
        clip = clips.get(track.id)
        assert clip is not None
        track.replace_keyframes(fade_out(track.keyframes, clip.duration, fade_seconds=config.fade_seconds))
    return project, clips


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    if not args.track:
        raise SystemExit("At least one --track is required.")

    config = EngineConfig(sample_rate=args.sample_rate)
    project, clips = build_project(args, config)
    duration = project.total_duration if args.duration is None else args.duration

    buffer = OfflineRenderer(config).render(MixSnapshot.capture(project, clips), duration, config.sample_rate)
    payload = encode_wav(buffer, config.sample_rate, buffer.shape[1])

    output = args.output.expanduser().resolve()
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(payload)

    print(f"Rendered {duration:.2f}s from {len(project.tracks)} track(s) to {output}")
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
