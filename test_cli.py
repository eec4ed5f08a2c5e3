"""
Test CLI (track replay and commands)
====================================

Usage:
    pytest test_cli.py
"""

from datetime import date
from pathlib import Path

import pytest

from canyon_cli.cli import main
from canyon_cli.replay import ReplayClock, read_track
from canyon_zone import Coordinate

ROOT = Path(__file__).parent


@pytest.fixture
def memory_config(tmp_path):
    path = tmp_path / "engine.yaml"
    path.write_text(
        f'dataset_path: "{(ROOT / "data" / "dataset.json").as_posix()}"\n'
        'storage:\n'
        '  backend: "memory"\n'
    )
    return str(path)


def test_read_csv_track(tmp_path):
    path = tmp_path / "walk.csv"
    path.write_text(
        "latitude,longitude,timestamp\n"
        "# comment\n"
        "35.3132,-120.6544,100\n"
        "\n"
        "35.3144,-120.6535\n"
    )

    track = read_track(path)

    assert [p.coordinate for p in track] == [
        Coordinate(35.3132, -120.6544),
        Coordinate(35.3144, -120.6535),
    ]
    assert [p.timestamp for p in track] == [100.0, None]


def test_read_json_lines_track(tmp_path):
    path = tmp_path / "walk.jsonl"
    path.write_text(
        '{"latitude": 35.3132, "longitude": -120.6544, "timestamp": 5}\n'
        '{"latitude": 35.3144, "longitude": -120.6535}\n'
    )

    track = read_track(path)

    assert track[0].timestamp == 5.0
    assert track[1].coordinate == Coordinate(35.3144, -120.6535)


def test_read_track_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_track(tmp_path / "missing.csv")

    bad = tmp_path / "bad.csv"
    bad.write_text("35.3,not-a-number\n")
    with pytest.raises(ValueError):
        read_track(bad)


def test_replay_clock():
    clock = ReplayClock(start=1000.0, step_s=2.0)

    clock.advance()
    assert clock.monotonic() == 1000.0
    clock.advance()
    assert clock.monotonic() == 1002.0
    clock.advance(5000.0)
    assert clock.monotonic() == 5000.0
    assert clock.today() == date.fromtimestamp(5000.0)


def test_replay_bundled_walk(memory_config, capsys):
    track = ROOT / "data" / "tracks" / "canyon_walk.csv"

    assert main(["--config", memory_config, "replay", str(track), "--no-publish"]) == 0

    out = capsys.readouterr().out
    assert "Visited 1: Greenhouse" in out
    assert "Visited 2: Bridge" in out
    assert "Visited 3: Geodesic Dome" in out
    assert "Visited 4" not in out
    assert "3/5" in out


def test_replay_with_denied_permission(memory_config, capsys):
    track = ROOT / "data" / "tracks" / "canyon_walk.csv"

    assert main(["--config", memory_config, "replay", str(track), "--deny-permission"]) == 0

    out = capsys.readouterr().out
    assert "Visited" not in out.split("📊")[0]
    assert "needs_permission" in out


def test_lookup_commands(memory_config, capsys):
    assert main(["--config", memory_config, "nearest", "35.31321", "-120.65441"]) == 0
    out = capsys.readouterr().out
    assert "Map point 1 (structure 1)" in out

    assert main(["--config", memory_config, "recommend", "37.7749", "-122.4194"]) == 0
    assert "virtual_tour" in capsys.readouterr().out

    assert main(["--config", memory_config, "stats"]) == 0
    assert "0/5" in capsys.readouterr().out


def test_bad_config_reports_error(tmp_path, capsys):
    assert main(["--config", str(tmp_path / "missing.yaml"), "stats"]) == 1
    assert "❌ Error" in capsys.readouterr().err


def test_no_command_prints_help(capsys):
    assert main([]) == 1
