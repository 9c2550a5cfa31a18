"""Tests for the config diff tool."""
import yaml

from pr_triage.tools.config_diff import diff, main, render


def _write(tmp_path, name, data):
    path = tmp_path / name
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return str(path)


def test_diff_rows():
    a = {"version": 1, "caps": {"test_score_cap": 0.15, "doc_score_cap": 0.05}, "old": 1}
    b = {"version": 2, "caps": {"test_score_cap": 0.2, "doc_score_cap": 0.05}, "new": [1]}
    assert diff(a, b) == [
        ("caps.test_score_cap", "changed", 0.15, 0.2),
        ("new", "added", None, [1]),
        ("old", "removed", 1, None),
        ("version", "changed", 1, 2),
    ]


def test_render():
    rows = [("a", "added", None, 1), ("b", "removed", 2, None), ("c", "changed", 1, 2)]
    assert render(rows) == "+ a: 1\n- b: 2\n~ c: 1 -> 2"


def test_warns_when_version_not_bumped(tmp_path):
    a = _write(tmp_path, "a.yaml", {"version": 1, "caps": {"test_score_cap": 0.15}})
    b = _write(tmp_path, "b.yaml", {"version": 1, "caps": {"test_score_cap": 0.3}})
    out = main(a, b)
    assert "~ caps.test_score_cap: 0.15 -> 0.3" in out
    assert "'version' is unchanged" in out


def test_no_warning_when_version_bumped(tmp_path):
    a = _write(tmp_path, "a.yaml", {"version": 1, "caps": {"test_score_cap": 0.15}})
    b = _write(tmp_path, "b.yaml", {"version": 2, "caps": {"test_score_cap": 0.3}})
    assert "unchanged" not in main(a, b)


def test_identical_files(tmp_path):
    a = _write(tmp_path, "a.yaml", {"version": 1})
    assert main(a, a) == "no differences"
