from __future__ import annotations

import json
from pathlib import Path

from click.testing import CliRunner

from streammd.cli import main


def _write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "input.md"
    path.write_text(content, encoding="utf-8")
    return path


def test_cli_json_to_stdout(tmp_path: Path) -> None:
    source = _write(tmp_path, "# Hi\n\nthere[^1]\n\n[^1]: note")
    result = CliRunner().invoke(main, [str(source)])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["is_complete"] is True
    assert [block["type"] for block in payload["blocks"]] == ["heading", "paragraph"]
    assert list(payload["footnotes"]) == ["1"]


def test_cli_html_to_file(tmp_path: Path) -> None:
    source = _write(tmp_path, "# Page\n\n$$x$$")
    output = tmp_path / "out" / "page.html"
    result = CliRunner().invoke(
        main, [str(source), "--format", "html", "-o", str(output), "--dark-mode", "--math-engine", "katex"]
    )
    assert result.exit_code == 0, result.output
    assert "Rendered:" in result.output
    html = output.read_text(encoding="utf-8")
    assert "<title>Page</title>" in html
    assert "md-dark" in html
    assert "katex.min.js" in html


def test_cli_text_format(tmp_path: Path) -> None:
    source = _write(tmp_path, "# A\n\n- b")
    output = tmp_path / "a.txt"
    result = CliRunner().invoke(main, [str(source), "--format", "text", "-o", str(output)])
    assert result.exit_code == 0, result.output
    assert output.read_text(encoding="utf-8") == "A\n• b\n"


def test_cli_stream_replay(tmp_path: Path) -> None:
    source = _write(tmp_path, "# A\n\nbody text")
    output = tmp_path / "doc.json"
    result = CliRunner().invoke(main, [str(source), "--stream", "4", "-o", str(output)])
    assert result.exit_code == 0, result.output

    steps = [json.loads(line) for line in result.output.splitlines() if line.startswith("{")]
    assert [step["chars"] for step in steps] == [4, 8, 12, 14]
    assert all(step["stable_chars"] + step["buffered_chars"] == step["chars"] for step in steps)
    assert steps[-1]["stable_chars"] == 5
    assert json.loads(output.read_text(encoding="utf-8"))["is_complete"] is True


def test_cli_no_tables(tmp_path: Path) -> None:
    source = _write(tmp_path, "| a |\n|---|\n| 1 |")
    result = CliRunner().invoke(main, [str(source), "--no-tables"])
    assert result.exit_code == 0, result.output
    assert [block["type"] for block in json.loads(result.output)["blocks"]] == ["paragraph"]


def test_cli_missing_input(tmp_path: Path) -> None:
    result = CliRunner().invoke(main, [str(tmp_path / "missing.md")])
    assert result.exit_code == 2


def test_cli_text_format_keeps_code_math_and_tables(tmp_path: Path) -> None:
    source = _write(tmp_path, "Intro\n\n```py\nprint(1)\n```\n\n$$x^2$$\n\n| a |\n|---|\n| 1 |\n\nEnd")
    output = tmp_path / "doc.txt"
    result = CliRunner().invoke(main, [str(source), "--format", "text", "-o", str(output)])
    assert result.exit_code == 0, result.output
    assert output.read_text(encoding="utf-8") == "Intro\n\nprint(1)\n\n$$x^2$$\n\na\n1\n\nEnd\n"
