import json

from pushup_alarm.runtime import cli


def _motion_lines():
    lines, ms = [], 0
    for z, n in ((9.8, 10), (12.8, 12), (10.3, 12)):
        for _ in range(n):
            lines.append(json.dumps({"acceleration": {"x": 0, "y": 0, "z": z}, "timestampMs": ms}))
            ms += 100
    return lines


def test_replay_counts_motion_recording(capsys):
    results = cli.replay(["# recorded on the bedroom floor"] + _motion_lines(), mode="motion")
    assert results[-1].count == 1
    assert "rep 1" in capsys.readouterr().out


def test_replay_stops_at_target(capsys):
    lines = _motion_lines()
    results = cli.replay(lines, mode="motion", target=1)
    assert len(results) < len(lines) - 10
    assert "alarm dismissed" in capsys.readouterr().out


def test_replay_skips_bad_lines(capsys):
    results = cli.replay(["{oops", "[]", ""], mode="pose")
    assert len(results) == 1
    assert not results[0].form_valid
    assert "line 1: skipped" in capsys.readouterr().err


def test_main_replay_file(tmp_path, capsys):
    path = tmp_path / "session.jsonl"
    path.write_text("\n".join(_motion_lines()), encoding="utf-8")
    assert cli.main(["replay", str(path), "--mode", "motion"]) == 0
    assert "reps: 1" in capsys.readouterr().out
