# ArgScope — (c) 2025 rtj.dev LLC — MIT Licensed
"""config.py
Settings and grammar-file loading for ArgScope.

Settings and grammars are plain YAML or TOML files. A settings file holds
`ArgScopeSettings` fields and may embed grammars directly:

    cache_default_duration: 120
    help_timeout: 3
    grammar_files: [grammars/tools.yaml]
    grammars:
      deploy:
        - option: "-e, --env=ENV"
          actions: [["ENV", ["dev", "staging", "prod"]]]
        - argument: "*"
          actions: "@files"

A grammar file holds only the `grammars` table. Entries are validated by
`RawArgSpec`; a `subparser` given as a dotted path is imported.
"""
from __future__ import annotations

import importlib
import os
from pathlib import Path
from typing import Any, Callable

import toml
import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from argscope.exceptions import ConfigError
from argscope.logger import logger


def import_object(dotted_path: str) -> Any:
    """Import an attribute from a dotted path like 'my.module.func'."""
    module_path, _, attr = dotted_path.rpartition(".")
    if not module_path:
        raise ConfigError(f"Invalid import path: {dotted_path}")
    try:
        module = importlib.import_module(module_path)
    except ModuleNotFoundError as error:
        logger.error("Failed to import module '%s': %s", module_path, error)
        raise ConfigError(f"Could not import '{dotted_path}': {error}") from error
    try:
        return getattr(module, attr)
    except AttributeError as error:
        logger.error(
            "Module '%s' does not have attribute '%s': %s", module_path, attr, error
        )
        raise ConfigError(f"Module '{module_path}' has no attribute '{attr}'") from error


class ArgScopeSettings(BaseModel):
    """Settings for an `ArgScope` session."""

    model_config = ConfigDict(extra="forbid")

    cache_default_duration: float = Field(default=60.0, ge=0)
    cache_max_duration: float = Field(default=86400.0, ge=0)
    help_timeout: float = Field(default=5.0, gt=0)
    help_flags: list[str] = Field(default_factory=lambda: ["--help"])
    use_man_pages: bool = True
    man_width: int = Field(default=1000, ge=80)
    annotate: bool = True
    annotation_width: int = Field(default=40, ge=8)
    grammar_files: list[Path] = Field(default_factory=list)
    grammars: dict[str, list[dict[str, Any]]] = Field(default_factory=dict)

    @field_validator("help_flags")
    @classmethod
    def validate_help_flags(cls, value: list[str]) -> list[str]:
        if not value or any(not flag.strip() for flag in value):
            raise ValueError("help_flags must be a non-empty list of non-empty strings")
        return value

    @model_validator(mode="after")
    def validate_durations(self) -> ArgScopeSettings:
        if self.cache_default_duration > self.cache_max_duration:
            raise ValueError("cache_default_duration cannot exceed cache_max_duration")
        return self


def read_mapping(file_path: Path | str) -> dict[str, Any]:
    """
    Read a YAML or TOML file that must contain a mapping.

    Raises:
        ConfigError: If the file is missing, unreadable, of an unsupported format,
            or does not hold a mapping.
    """
    path = Path(file_path)
    if not path.is_file():
        raise ConfigError(f"No such config file: {file_path}")

    suffix = path.suffix
    try:
        with path.open("r", encoding="UTF-8") as config_file:
            if suffix in (".yaml", ".yml"):
                raw_config = yaml.safe_load(config_file)
            elif suffix == ".toml":
                raw_config = toml.load(config_file)
            else:
                raise ConfigError(f"Unsupported config format: {suffix}")
    except (OSError, yaml.YAMLError, toml.TomlDecodeError) as error:
        raise ConfigError(f"Cannot read {path}: {error}") from error

    if raw_config is None:
        return {}
    if not isinstance(raw_config, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    return raw_config


def load_settings(file_path: Path | str) -> ArgScopeSettings:
    """
    Load `ArgScopeSettings` from a YAML or TOML file.

    Relative `grammar_files` are resolved against the settings file's directory.
    """
    path = Path(file_path)
    raw_config = read_mapping(path)
    try:
        settings = ArgScopeSettings.model_validate(raw_config)
    except ValidationError as error:
        raise ConfigError(f"Invalid settings in {path}: {error}") from error
    settings.grammar_files = [
        grammar if grammar.is_absolute() else path.parent / grammar
        for grammar in settings.grammar_files
    ]
    logger.debug("Loaded settings from %s", path)
    return settings


def convert_grammars(
    raw_grammars: Any,
    resolve_subparser: Callable[[str], Any] = import_object,
    source: str = "<settings>",
) -> dict[str, list[dict[str, Any]]]:
    """
    Check the shape of a `grammars` table and resolve string subparsers.

    Entry mappings are otherwise left for the compiler to validate.
    """
    if not isinstance(raw_grammars, dict):
        raise ConfigError(f"'grammars' in {source} must map program names to entry lists")
    grammars: dict[str, list[dict[str, Any]]] = {}
    for program, entries in raw_grammars.items():
        if not isinstance(entries, list) or not all(
            isinstance(entry, dict) for entry in entries
        ):
            raise ConfigError(
                f"Grammar for '{program}' in {source} must be a list of mappings"
            )
        converted = []
        for entry in entries:
            subparser = entry.get("subparser")
            if isinstance(subparser, str):
                entry = {**entry, "subparser": resolve_subparser(subparser)}
            converted.append(entry)
        grammars[str(program)] = converted
    return grammars


def load_grammar_file(
    file_path: Path | str,
    resolve_subparser: Callable[[str], Any] = import_object,
) -> dict[str, list[dict[str, Any]]]:
    """
    Load a YAML or TOML grammar file.

    The file must contain a top-level `grammars` table mapping program names to
    lists of entry mappings, for example:

        grammars:
          tar:
            - option: "-f, --file=ARCHIVE"
            - option: "-C, --directory=DIR"

    Returns:
        dict[str, list[dict[str, Any]]]: Entry mappings per program.

    Raises:
        ConfigError: If the file cannot be read or has the wrong shape.
    """
    raw_config = read_mapping(file_path)
    if "grammars" not in raw_config:
        raise ConfigError(f"{file_path} has no 'grammars' table")
    return convert_grammars(raw_config["grammars"], resolve_subparser, str(file_path))


def find_config() -> Path | None:
    candidates = [
        Path.cwd() / "argscope.yaml",
        Path.cwd() / "argscope.toml",
        Path.cwd() / ".argscope.yaml",
        Path.cwd() / ".argscope.toml",
        Path(os.environ.get("ARGSCOPE_CONFIG", "argscope.yaml")),
        Path.home() / ".config" / "argscope" / "argscope.yaml",
        Path.home() / ".config" / "argscope" / "argscope.toml",
    ]
    return next((p for p in candidates if p.is_file()), None)
