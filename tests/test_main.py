import shutil
import tempfile
from argparse import ArgumentParser, Namespace, _SubParsersAction
from pathlib import Path

import pytest

from argscope.__main__ import build_settings, get_arg_parsers, main

GRAMMAR = """\
grammars:
  deploy:
    - option: '-e, --env=ENV'
      help: Target environment
      actions: [[ENV, [dev, staging, prod]]]
    - option: '-v, --verbose'
    - argument: '*'
      actions: '@files'
"""

HELP_TEXT = """\
Usage: tool [OPTIONS]
  -a, --all          show everything
  -C, --directory=DIR  change directory
"""


@pytest.fixture(autouse=True)
def fake_home(monkeypatch):
    """Redirect Path.home() to a temporary directory for all tests."""
    temp_home = Path(tempfile.mkdtemp())
    monkeypatch.setattr(Path, "home", lambda: temp_home)
    monkeypatch.delenv("ARGSCOPE_CONFIG", raising=False)
    yield temp_home
    shutil.rmtree(temp_home, ignore_errors=True)


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch, tmp_path):
    """Keep the command line from reconfiguring the root logger during tests."""
    monkeypatch.setattr("argscope.__main__.setup_logging", lambda **kwargs: None)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def grammar_file(tmp_path):
    path = tmp_path / "tools.yaml"
    path.write_text(GRAMMAR)
    return path


def test_get_arg_parsers():
    parsers = get_arg_parsers()
    assert isinstance(parsers.root, ArgumentParser)
    assert isinstance(parsers.subparsers, _SubParsersAction)
    args = parsers.parse_args(["complete", "deploy", "--env="])
    assert isinstance(args, Namespace)
    assert args.command == "complete"
    assert args.argv == ["deploy", "--env="]


def test_build_settings_reads_config(tmp_path, grammar_file):
    config = tmp_path / "argscope.yaml"
    config.write_text("help_timeout: 2\n")
    args = get_arg_parsers().parse_args(["--grammar", str(grammar_file), "shell"])
    settings = build_settings(args)
    assert settings.help_timeout == 2
    assert settings.grammar_files == [grammar_file]


def test_main_without_command(capsys):
    assert main([]) == 2
    assert "usage" in capsys.readouterr().out.lower()


def test_main_complete(grammar_file, capsys):
    assert main(["--grammar", str(grammar_file), "complete", "deploy", "--env=st"]) == 0
    assert capsys.readouterr().out.splitlines() == ["--env=staging"]


def test_main_complete_annotated(grammar_file, capsys):
    code = main(["--grammar", str(grammar_file), "complete", "--annotate", "deploy", "--e"])
    assert code == 0
    assert capsys.readouterr().out.splitlines() == ["--env\tTarget environment"]


def test_main_complete_requires_program(capsys):
    assert main(["complete"]) == 2


def test_main_trace(grammar_file, capsys):
    assert main(["--grammar", str(grammar_file), "trace", "deploy", "-v", "-e", "d"]) == 0
    out = capsys.readouterr().out
    assert "Match trace" in out
    assert "Literal" in out


def test_main_extract_from_file(tmp_path, capsys):
    help_file = tmp_path / "help.txt"
    help_file.write_text(HELP_TEXT)
    assert main(["extract", "tool", "--file", str(help_file)]) == 0
    out = capsys.readouterr().out
    assert "--all" in out
    assert "--directory" in out


def test_main_extract_missing_file(tmp_path, capsys):
    assert main(["extract", "tool", "--file", str(tmp_path / "missing.txt")]) == 1
    assert "Cannot read" in capsys.readouterr().out


def test_main_reports_config_errors(tmp_path, capsys):
    config = tmp_path / "broken.yaml"
    config.write_text("help_timeout: -5\n")
    assert main(["--config", str(config), "complete", "deploy", ""]) == 1
    assert "Invalid settings" in capsys.readouterr().out
