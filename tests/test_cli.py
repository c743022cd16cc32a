"""Tests for the CLI module."""

import json

import pytest

from cloudcostgh.cli import main


def test_cli_help():
    """Test CLI help display."""
    with pytest.raises(SystemExit) as exc_info:
        main(["--help"])
    assert exc_info.value.code == 0


def test_cli_missing_file(tmp_path):
    """Test CLI with missing input file."""
    result = main([str(tmp_path / "base.json"), str(tmp_path / "head.json")])
    assert result == 2


def test_cli_invalid_report(tmp_path, report_files):
    """Test CLI with a report that is not JSON."""
    base, _ = report_files
    bad = tmp_path / "bad.json"
    bad.write_text("not json")
    assert main([str(base), str(bad)]) == 3


def test_cli_prints_markdown(report_files, capsys):
    """Test CLI writes the comment to stdout."""
    base, head = report_files
    assert main([str(base), str(head), "--title", "Infra cost"]) == 0
    out = capsys.readouterr().out
    assert out.startswith("<!-- cloudcostgh-comment -->\n## Infra cost\n")
    assert "| ApiStack | AmazonEC2 | WebServer | $80.00 | $120.00 | $40.00 |" in out


def test_cli_writes_files(tmp_path, report_files, capsys):
    """Test CLI output files."""
    base, head = report_files
    out_md = tmp_path / "comment.md"
    out_json = tmp_path / "delta.json"

    assert main([str(base), str(head), "--out-md", str(out_md), "--out-json", str(out_json)]) == 0
    assert capsys.readouterr().out == ""
    assert out_md.read_text().startswith("<!-- cloudcostgh-comment -->")

    delta = json.loads(out_json.read_text())
    assert delta["total"] == {"base": 130.0, "head": 172.5, "diff": 42.5}
    assert delta["stacks"][0]["stackName"] == "ApiStack"
