import os
import shutil
import tempfile
from pathlib import Path

import pytest

from argscope.config import (
    ArgScopeSettings,
    convert_grammars,
    find_config,
    import_object,
    load_grammar_file,
    load_settings,
    read_mapping,
)
from argscope.exceptions import ConfigError


@pytest.fixture(autouse=True)
def fake_home(monkeypatch):
    """Redirect Path.home() to a temporary directory for all tests."""
    temp_home = Path(tempfile.mkdtemp())
    monkeypatch.setattr(Path, "home", lambda: temp_home)
    monkeypatch.delenv("ARGSCOPE_CONFIG", raising=False)
    yield temp_home
    shutil.rmtree(temp_home, ignore_errors=True)


def test_default_settings():
    settings = ArgScopeSettings()
    assert settings.help_flags == ["--help"]
    assert settings.cache_default_duration == 60
    assert settings.use_man_pages is True


@pytest.mark.parametrize(
    "values",
    [
        {"help_timeout": 0},
        {"help_flags": []},
        {"help_flags": [" "]},
        {"man_width": 10},
        {"cache_default_duration": 100, "cache_max_duration": 10},
        {"unknown_key": True},
    ],
)
def test_invalid_settings(values):
    with pytest.raises(ValueError):
        ArgScopeSettings(**values)


def test_load_settings_yaml(tmp_path):
    config = tmp_path / "argscope.yaml"
    config.write_text(
        "help_timeout: 2\n"
        "use_man_pages: false\n"
        "grammar_files: [grammars/tools.yaml]\n"
    )
    settings = load_settings(config)
    assert settings.help_timeout == 2
    assert settings.use_man_pages is False
    assert settings.grammar_files == [tmp_path / "grammars" / "tools.yaml"]


def test_load_settings_toml(tmp_path):
    config = tmp_path / "argscope.toml"
    config.write_text('help_flags = ["-h"]\nannotation_width = 20\n')
    settings = load_settings(config)
    assert settings.help_flags == ["-h"]
    assert settings.annotation_width == 20


def test_load_settings_empty_file(tmp_path):
    config = tmp_path / "argscope.yaml"
    config.write_text("")
    assert load_settings(config) == ArgScopeSettings()


def test_load_settings_invalid(tmp_path):
    config = tmp_path / "argscope.yaml"
    config.write_text("help_timeout: -1\n")
    with pytest.raises(ConfigError, match="Invalid settings"):
        load_settings(config)


@pytest.mark.parametrize(
    "name, content",
    [
        ("argscope.yaml", "- just\n- a list\n"),
        ("argscope.yaml", "key: [unclosed\n"),
        ("argscope.toml", "key = \n"),
        ("argscope.json", "{}"),
    ],
)
def test_read_mapping_errors(tmp_path, name, content):
    path = tmp_path / name
    path.write_text(content)
    with pytest.raises(ConfigError):
        read_mapping(path)


def test_read_mapping_missing(tmp_path):
    with pytest.raises(ConfigError, match="No such config file"):
        read_mapping(tmp_path / "missing.yaml")


def test_load_grammar_file(tmp_path):
    grammar_file = tmp_path / "tools.yaml"
    grammar_file.write_text(
        "grammars:\n"
        "  deploy:\n"
        "    - option: '-e, --env=ENV'\n"
        "      actions: [[ENV, [dev, prod]]]\n"
        "    - argument: '*'\n"
        "      actions: '@files'\n"
    )
    grammars = load_grammar_file(grammar_file)
    assert list(grammars) == ["deploy"]
    assert grammars["deploy"][0]["option"] == "-e, --env=ENV"


def test_load_grammar_file_toml(tmp_path):
    grammar_file = tmp_path / "tools.toml"
    grammar_file.write_text(
        "[[grammars.tar]]\n"
        'option = "-f, --file=ARCHIVE"\n'
        "[[grammars.tar]]\n"
        'option = "-C, --directory=DIR"\n'
    )
    grammars = load_grammar_file(grammar_file)
    assert [entry["option"] for entry in grammars["tar"]] == [
        "-f, --file=ARCHIVE",
        "-C, --directory=DIR",
    ]


def test_load_grammar_file_requires_grammars(tmp_path):
    grammar_file = tmp_path / "tools.yaml"
    grammar_file.write_text("other: 1\n")
    with pytest.raises(ConfigError, match="no 'grammars' table"):
        load_grammar_file(grammar_file)


@pytest.mark.parametrize(
    "raw",
    [
        ["not", "a", "mapping"],
        {"tar": "not a list"},
        {"tar": ["not a mapping"]},
    ],
)
def test_convert_grammars_shape(raw):
    with pytest.raises(ConfigError):
        convert_grammars(raw)


def test_convert_grammars_resolves_subparsers():
    raw = {"sudo": [{"argument": 0, "subparser": "@command"}, {"option": "-u USER"}]}
    grammars = convert_grammars(raw, resolve_subparser=lambda value: f"resolved {value}")
    assert grammars["sudo"][0]["subparser"] == "resolved @command"
    assert "subparser" not in grammars["sudo"][1]
    assert raw["sudo"][0]["subparser"] == "@command"


def test_import_object():
    assert import_object("os.path.join") is os.path.join


@pytest.mark.parametrize("path", ["nodots", "no_such_module_xyz.attr", "os.no_such_attr"])
def test_import_object_errors(path):
    with pytest.raises(ConfigError):
        import_object(path)


def test_find_config_in_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert find_config() is None
    config = tmp_path / "argscope.toml"
    config.touch()
    assert find_config() == config


def test_find_config_in_home(tmp_path, monkeypatch, fake_home):
    monkeypatch.chdir(tmp_path)
    config_dir = fake_home / ".config" / "argscope"
    config_dir.mkdir(parents=True)
    config = config_dir / "argscope.yaml"
    config.touch()
    assert find_config() == config


def test_find_config_from_environment(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    config = tmp_path / "elsewhere.yaml"
    config.touch()
    monkeypatch.setenv("ARGSCOPE_CONFIG", str(config))
    assert find_config() == config
