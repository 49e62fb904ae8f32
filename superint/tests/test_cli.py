"""
Tests for the command-line interface.
"""

import json

import pytest

from .. import cli


@pytest.fixture(autouse=True)
def quiet_cli(monkeypatch):
    """Keep the CLI from installing handlers and reading the host environment."""
    monkeypatch.setattr(cli, "configure_logging", lambda *args, **kwargs: None)
    for name in ["SUPERINT_SAVE_DIR", "SUPERINT_SEED", "SUPERINT_AUTOSAVE", "SUPERINT_ORGANIZATION"]:
        monkeypatch.delenv(name, raising=False)


class TestValidate:
    def test_builtin_content(self, capsys):
        assert cli.main(["validate"]) == 0
        assert "OK: 10 research definitions" in capsys.readouterr().out

    def test_invalid_file(self, tmp_path, capsys):
        path = tmp_path / "tree.json"
        path.write_text(json.dumps([
            {"id": "a", "name": "A", "prerequisites": ["b"]},
            {"id": "b", "name": "B", "prerequisites": ["a"]},
        ]))

        assert cli.main(["validate", "--file", str(path)]) == 1
        out = capsys.readouterr().out
        assert "Research content is invalid" in out
        assert "cycle" in out

    def test_missing_file(self, tmp_path, capsys):
        assert cli.main(["validate", "--file", str(tmp_path / "none.json")]) == 1
        assert "File not found" in capsys.readouterr().out


class TestRun:
    def test_run_prints_each_turn(self, capsys):
        code = cli.main(["run", "--turns", "2", "--seed", "1", "--start", "transformer_architecture:10"])

        out = capsys.readouterr().out
        assert code == 0
        assert "Turn 1:" in out
        assert "Turn 2:" in out
        assert "completed: 1" in out

    def test_bad_start_argument(self, capsys):
        assert cli.main(["run", "--turns", "1", "--start", "no-colon"]) == 1
        assert "ID:COMPUTE" in capsys.readouterr().out

    def test_non_finite_start_amount(self, capsys):
        assert cli.main(["run", "--turns", "1", "--start", "transformer_architecture:nan"]) == 1
        assert "finite" in capsys.readouterr().out

    def test_run_then_list_saves(self, tmp_path, capsys):
        assert cli.main(["run", "--turns", "2", "--save", "final", "--save-dir", str(tmp_path)]) == 0
        capsys.readouterr()

        assert cli.main(["saves", "--save-dir", str(tmp_path)]) == 0
        assert "final: turn 3" in capsys.readouterr().out

    def test_saves_needs_directory(self, capsys):
        assert cli.main(["saves"]) == 1


def test_no_command_prints_help(capsys):
    assert cli.main([]) == 1
    assert "usage" in capsys.readouterr().out.lower()
